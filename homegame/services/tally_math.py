"""Pure functions for session bookkeeping.

No database access, no async. A session is a list of PlayerLedger rows;
every function returns new rows instead of modifying the ones passed in.
"""

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Optional

from homegame.models.ledger import GameHistoryEntry, PlayerHistory, PlayerLedger
from homegame.services.errors import TallyError

logger = logging.getLogger("homegame.services.tally_math")

TALLY_TOLERANCE = 0.01


def _check_amount(amount: float, what: str) -> float:
    value = float(amount)
    if not math.isfinite(value) or value < 0:
        raise TallyError(f"{what} must be a finite number >= 0, got {amount!r}")
    return value


def _replace_player(
    players: Sequence[PlayerLedger], player_id: str, **changes
) -> list[PlayerLedger]:
    updated: list[PlayerLedger] = []
    found = False
    for player in players:
        if player.id == player_id:
            player = player.model_copy(update=changes)
            found = True
        updated.append(player)
    if not found:
        raise TallyError(f"Unknown player: {player_id}")
    return updated


def start_session(player_names: Iterable[str], buy_in: float) -> list[PlayerLedger]:
    """Open a session: every named player buys in for the same amount.

    Blank and repeated names are dropped, keeping first occurrences.
    """
    buy_in = _check_amount(buy_in, "buy-in")
    if buy_in == 0:
        raise TallyError("buy-in must be greater than 0")

    seen: set[str] = set()
    players: list[PlayerLedger] = []
    for raw_name in player_names:
        name = raw_name.strip()
        if not name or name in seen:
            continue
        seen.add(name)
        players.append(
            PlayerLedger(name=name, initial_buy_in=buy_in, total_buy_in=buy_in)
        )
    return players


def add_funds(
    players: Sequence[PlayerLedger], player_id: str, amount: float
) -> list[PlayerLedger]:
    """Record a mid-game top-up for one player."""
    amount = _check_amount(amount, "top-up")
    target = next((p for p in players if p.id == player_id), None)
    if target is None:
        raise TallyError(f"Unknown player: {player_id}")
    logger.debug("Top-up of %.2f for %s", amount, target.name)
    return _replace_player(
        players, player_id, total_buy_in=target.total_buy_in + amount
    )


def record_final_amount(
    players: Sequence[PlayerLedger], player_id: str, amount: float
) -> list[PlayerLedger]:
    """Record what a player cashed out with at the end of the game."""
    amount = _check_amount(amount, "final amount")
    return _replace_player(players, player_id, final_amount=amount)


def total_buy_in(players: Iterable[PlayerLedger]) -> float:
    return sum(p.total_buy_in for p in players)


def total_cash_out(players: Iterable[PlayerLedger]) -> float:
    return sum(p.final_amount or 0.0 for p in players)


def is_tally_balanced(players: Sequence[PlayerLedger]) -> bool:
    """True when the money cashed out matches the money bought in."""
    return abs(total_buy_in(players) - total_cash_out(players)) < TALLY_TOLERANCE


def compute_balances(players: Iterable[PlayerLedger]) -> dict[str, float]:
    """Net result per player id, for players that have been tallied."""
    return {
        p.id: p.final_amount - p.total_buy_in
        for p in players
        if p.final_amount is not None
    }


def to_history_entry(
    players: Sequence[PlayerLedger],
    game_id: Optional[str] = None,
    date: Optional[datetime] = None,
) -> GameHistoryEntry:
    """Snapshot a finished session for game history.

    Raises:
        TallyError: A player has no final amount yet.
    """
    missing = [p.name for p in players if p.final_amount is None]
    if missing:
        raise TallyError(f"Players not tallied: {', '.join(missing)}")

    history = [
        PlayerHistory(
            name=p.name,
            initial_buy_in=p.initial_buy_in,
            total_buy_in=p.total_buy_in,
            final_amount=p.final_amount,
            profit_loss=p.profit_loss,
        )
        for p in players
    ]
    fields: dict = {"players": history}
    if game_id is not None:
        fields["id"] = game_id
    if date is not None:
        fields["date"] = date
    return GameHistoryEntry(**fields)
