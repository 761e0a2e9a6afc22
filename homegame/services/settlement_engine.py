"""Pure functions for end-of-game debt settlement.

No database access, no async. Balances map a player id to a signed net
result (positive = is owed money, negative = owes money).

Settlement is computed twice: a strict pass that pays every cent, and a
threshold pass that forgives residuals up to a caller-chosen amount.
Both passes run the same greedy pipeline:

1. exact matches (a debtor and creditor whose amounts cancel),
2. near matches (each debtor pays the creditor closest to its amount),
3. a sweep over whatever is left, largest balances first.

In the threshold pass any balance still unpaid after the sweep becomes a
one-sided WRITE_OFF transaction, so every balance ends up either paid or
recorded as written off.
"""

import logging
import math
from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Callable, Optional

from homegame.config import settings
from homegame.models.common import TransactionKind
from homegame.models.ledger import PlayerLedger
from homegame.models.settlement import SettlementResult, Transaction
from homegame.services.errors import SettlementInputError
from homegame.services.tally_math import compute_balances

logger = logging.getLogger("homegame.services.settlement_engine")


@dataclass
class _Party:
    """Working copy of one side of the ledger; amount is always a magnitude."""
    name: str
    amount: float


@dataclass
class _Draft:
    """A transaction under construction; write_off may still grow."""
    from_player: Optional[str]
    to_player: Optional[str]
    amount: float
    write_off: Optional[float] = None
    kind: TransactionKind = TransactionKind.PAYMENT

    def add_write_off(self, value: float) -> None:
        self.write_off = (self.write_off or 0.0) + value


# ----------------------------------------------------------------------
# Input handling
# ----------------------------------------------------------------------

def _validate_balances(balances: Mapping[str, float]) -> dict[str, float]:
    """Copy balances into a plain dict, rejecting non-finite values."""
    checked: dict[str, float] = {}
    for player, balance in balances.items():
        value = float(balance)
        if not math.isfinite(value):
            raise SettlementInputError(
                f"balance for {player!r} must be a finite number, got {balance!r}"
            )
        checked[player] = value
    return checked


def _validate_threshold(threshold: float) -> float:
    value = float(threshold)
    if not math.isfinite(value) or value < 0:
        raise SettlementInputError(
            f"write-off threshold must be a finite number >= 0, got {threshold!r}"
        )
    return value


def _partition(balances: Mapping[str, float]) -> tuple[list[_Party], list[_Party]]:
    """Split balances into debtors and creditors, preserving input order."""
    debtors: list[_Party] = []
    creditors: list[_Party] = []
    for player, balance in balances.items():
        if balance > 0:
            creditors.append(_Party(player, balance))
        elif balance < 0:
            debtors.append(_Party(player, -balance))
    return debtors, creditors


def _sort_descending(parties: list[_Party]) -> None:
    parties.sort(key=lambda p: p.amount, reverse=True)


# ----------------------------------------------------------------------
# Strict pass
# ----------------------------------------------------------------------

def _match_exact(
    debtors: list[_Party],
    creditors: list[_Party],
    epsilon: float,
) -> list[_Draft]:
    """Pair debtors and creditors whose amounts differ by less than epsilon.

    Matched parties are zeroed and every party left under epsilon is
    dropped from both lists.
    """
    drafts: list[_Draft] = []
    matched_creditors: set[int] = set()

    for debtor in debtors:
        for j, creditor in enumerate(creditors):
            if j in matched_creditors:
                continue
            if abs(debtor.amount - creditor.amount) < epsilon:
                drafts.append(_Draft(debtor.name, creditor.name, debtor.amount))
                matched_creditors.add(j)
                debtor.amount = 0.0
                creditor.amount = 0.0
                break

    debtors[:] = [d for d in debtors if d.amount >= epsilon]
    creditors[:] = [c for c in creditors if c.amount >= epsilon]
    return drafts


def _closest_creditor(
    amount: float, creditors: list[_Party], is_open: Callable[[float], bool]
) -> Optional[_Party]:
    """Return the open creditor whose amount is nearest to ``amount``.

    Ties go to the earliest creditor in list order.
    """
    best: Optional[_Party] = None
    best_difference = math.inf
    for creditor in creditors:
        if not is_open(creditor.amount):
            continue
        difference = abs(amount - creditor.amount)
        if difference < best_difference:
            best_difference = difference
            best = creditor
    return best


def _minimize_splits(
    debtors: list[_Party],
    creditors: list[_Party],
    epsilon: float,
) -> list[_Draft]:
    """Near-match pass followed by a greedy sweep, paying every balance in full."""
    drafts: list[_Draft] = []
    if not debtors or not creditors:
        return drafts

    def is_open(amount: float) -> bool:
        return amount >= epsilon

    for debtor in debtors:
        if not is_open(debtor.amount):
            continue
        creditor = _closest_creditor(debtor.amount, creditors, is_open)
        if creditor is None:
            continue
        amount = min(debtor.amount, creditor.amount)
        drafts.append(_Draft(debtor.name, creditor.name, amount))
        debtor.amount -= amount
        creditor.amount -= amount

    drafts.extend(_sweep(debtors, creditors, is_open))
    return drafts


def _sweep(
    debtors: list[_Party],
    creditors: list[_Party],
    is_open: Callable[[float], bool],
    threshold: Optional[float] = None,
) -> list[_Draft]:
    """Walk both lists in order, settling min(debtor, creditor) each step.

    With a threshold, a leftover at or under it is written off on the
    transaction that produced it.
    """
    drafts: list[_Draft] = []
    d = 0
    c = 0
    while d < len(debtors) and c < len(creditors):
        while d < len(debtors) and not is_open(debtors[d].amount):
            d += 1
        while c < len(creditors) and not is_open(creditors[c].amount):
            c += 1
        if d >= len(debtors) or c >= len(creditors):
            break

        debtor = debtors[d]
        creditor = creditors[c]
        amount = min(debtor.amount, creditor.amount)
        draft = _Draft(debtor.name, creditor.name, amount)
        drafts.append(draft)
        debtor.amount -= amount
        creditor.amount -= amount

        if threshold is not None:
            _absorb_leftover(draft, debtor, threshold)
            _absorb_leftover(draft, creditor, threshold)
    return drafts


def _strict_settlement(balances: Mapping[str, float], epsilon: float) -> list[_Draft]:
    debtors, creditors = _partition(balances)
    drafts = _match_exact(debtors, creditors, epsilon)

    _sort_descending(debtors)
    _sort_descending(creditors)

    drafts.extend(_minimize_splits(debtors, creditors, epsilon))
    return drafts


# ----------------------------------------------------------------------
# Threshold pass
# ----------------------------------------------------------------------

def _absorb_leftover(draft: _Draft, party: _Party, threshold: float) -> None:
    if 0 < party.amount <= threshold:
        draft.add_write_off(party.amount)
        party.amount = 0.0


def _forgive_small_balances(
    balances: Mapping[str, float], threshold: float
) -> tuple[dict[str, float], dict[str, float]]:
    """Zero every non-zero balance whose magnitude is within the threshold.

    Returns the adjusted balances and the forgiven amounts by player.
    """
    adjusted = dict(balances)
    forgiven: dict[str, float] = {}
    for player, balance in adjusted.items():
        if balance != 0 and abs(balance) <= threshold:
            forgiven[player] = balance
            adjusted[player] = 0.0
    return adjusted, forgiven


def _match_exact_with_threshold(
    debtors: list[_Party],
    creditors: list[_Party],
    threshold: float,
) -> list[_Draft]:
    """Pair debtors and creditors that differ by at most the threshold.

    The smaller amount is paid and the difference written off.
    """
    drafts: list[_Draft] = []
    matched_creditors: set[int] = set()

    for debtor in debtors:
        for j, creditor in enumerate(creditors):
            if j in matched_creditors:
                continue
            difference = abs(debtor.amount - creditor.amount)
            if difference <= threshold:
                drafts.append(
                    _Draft(
                        debtor.name,
                        creditor.name,
                        min(debtor.amount, creditor.amount),
                        write_off=difference or None,
                    )
                )
                matched_creditors.add(j)
                debtor.amount = 0.0
                creditor.amount = 0.0
                break

    debtors[:] = [d for d in debtors if d.amount > threshold]
    creditors[:] = [c for c in creditors if c.amount > threshold]
    return drafts


def _minimize_splits_with_threshold(
    debtors: list[_Party],
    creditors: list[_Party],
    threshold: float,
) -> list[_Draft]:
    drafts: list[_Draft] = []

    def is_open(amount: float) -> bool:
        return amount > threshold

    for debtor in debtors:
        if not is_open(debtor.amount):
            continue
        creditor = _closest_creditor(debtor.amount, creditors, is_open)
        if creditor is None:
            continue

        difference = abs(debtor.amount - creditor.amount)
        amount = min(debtor.amount, creditor.amount)
        if difference <= threshold:
            drafts.append(
                _Draft(debtor.name, creditor.name, amount, write_off=difference or None)
            )
            debtor.amount = 0.0
            creditor.amount = 0.0
            continue

        draft = _Draft(debtor.name, creditor.name, amount)
        drafts.append(draft)
        debtor.amount -= amount
        creditor.amount -= amount
        _absorb_leftover(draft, debtor, threshold)
        _absorb_leftover(draft, creditor, threshold)

    # Residuals small enough to forgive but with nobody left to pair against.
    drafts.extend(
        _write_off_remaining(debtors, creditors, lambda amount: 0 < amount <= threshold)
    )
    drafts.extend(_sweep(debtors, creditors, is_open, threshold=threshold))

    # Earlier write-offs on one side can leave the other side owed more
    # than the threshold with no counterpart left.
    leftovers = _write_off_remaining(debtors, creditors, lambda amount: amount > 0)
    if leftovers:
        logger.info(
            "Writing off %d unmatched balance(s) above the threshold: %s",
            len(leftovers),
            ", ".join(d.from_player or d.to_player for d in leftovers),
        )
    drafts.extend(leftovers)
    return drafts


def _write_off_remaining(
    debtors: list[_Party],
    creditors: list[_Party],
    should_forgive: Callable[[float], bool],
) -> list[_Draft]:
    """Turn each matching residual into a one-sided WRITE_OFF draft."""
    drafts: list[_Draft] = []
    for debtor in debtors:
        if should_forgive(debtor.amount):
            drafts.append(
                _Draft(
                    debtor.name,
                    None,
                    0.0,
                    write_off=debtor.amount,
                    kind=TransactionKind.WRITE_OFF,
                )
            )
            debtor.amount = 0.0
    for creditor in creditors:
        if should_forgive(creditor.amount):
            drafts.append(
                _Draft(
                    None,
                    creditor.name,
                    0.0,
                    write_off=creditor.amount,
                    kind=TransactionKind.WRITE_OFF,
                )
            )
            creditor.amount = 0.0
    return drafts


def _threshold_settlement(
    balances: Mapping[str, float], threshold: float
) -> tuple[list[_Draft], dict[str, float]]:
    adjusted, forgiven = _forgive_small_balances(balances, threshold)
    debtors, creditors = _partition(adjusted)
    drafts = _match_exact_with_threshold(debtors, creditors, threshold)

    _sort_descending(debtors)
    _sort_descending(creditors)

    drafts.extend(_minimize_splits_with_threshold(debtors, creditors, threshold))
    return drafts, forgiven


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def _draft_id(draft: _Draft) -> str:
    if draft.to_player is None:
        return f"{draft.from_player}-writeoff"
    if draft.from_player is None:
        return f"writeoff-{draft.to_player}"
    return f"{draft.from_player}-{draft.to_player}"


def _finalize(drafts: list[_Draft]) -> list[Transaction]:
    """Freeze drafts into transactions with ids unique within the list."""
    seen: Counter[str] = Counter()
    transactions: list[Transaction] = []
    for draft in drafts:
        base_id = _draft_id(draft)
        seen[base_id] += 1
        tx_id = base_id if seen[base_id] == 1 else f"{base_id}-{seen[base_id]}"
        transactions.append(
            Transaction(
                id=tx_id,
                kind=draft.kind,
                from_player=draft.from_player,
                to_player=draft.to_player,
                amount=draft.amount,
                write_off=draft.write_off,
            )
        )
    return transactions


def settle(
    balances: Mapping[str, float],
    use_threshold: bool = False,
    threshold: float = 0.01,
    *,
    epsilon: Optional[float] = None,
) -> SettlementResult:
    """Compute the payments that settle a finished game.

    Args:
        balances: Player id -> net balance. Expected to sum to ~0; this is
            not checked. The mapping is never modified.
        use_threshold: Return the simplified (write-off) transactions as
            ``transactions`` instead of the strict ones.
        threshold: Largest residual that may be forgiven instead of paid.
            Should be at least the smallest meaningful currency unit.
        epsilon: Tolerance of the strict pass. Defaults to
            ``settings.SETTLEMENT_EPSILON``.

    Returns:
        SettlementResult with both transaction lists and the comparison.

    Raises:
        SettlementInputError: A balance is not finite, or the threshold is
            negative or not finite.
    """
    checked = _validate_balances(balances)
    threshold = _validate_threshold(threshold)
    if epsilon is None:
        epsilon = settings.SETTLEMENT_EPSILON

    strict = _finalize(_strict_settlement(checked, epsilon))
    simplified_drafts, forgiven = _threshold_settlement(checked, threshold)
    simplified = _finalize(simplified_drafts)

    transaction_difference = max(0, len(strict) - len(simplified))
    # Whatever the simplified payments leave behind was forgiven.
    total_write_off = sum(
        abs(remaining)
        for remaining in apply_transactions(checked, simplified).values()
    )

    logger.debug(
        "Settled %d balances: %d strict transactions, %d simplified "
        "(threshold=%s, write-off=%.2f)",
        len(checked),
        len(strict),
        len(simplified),
        threshold,
        total_write_off,
    )

    return SettlementResult(
        transactions=simplified if use_threshold else strict,
        strict_transactions=strict,
        simplified_transactions=simplified,
        simplification_possible=transaction_difference > 0,
        transaction_difference=transaction_difference,
        total_write_off=total_write_off,
        forgiven=forgiven,
    )


def settlement_from_players(
    players: Iterable[PlayerLedger],
    use_threshold: bool = False,
    threshold: float = 0.01,
) -> SettlementResult:
    """Settle a session from player ledgers.

    Players who have not been tallied (no final amount) are left out.
    """
    return settle(compute_balances(players), use_threshold, threshold)


def apply_transactions(
    balances: Mapping[str, float], transactions: Iterable[Transaction]
) -> dict[str, float]:
    """Return the balances left over after every payment is made.

    Whatever remains was written off (or is rounding noise in the strict
    pass). Write-off transactions move no money.
    """
    residual = dict(balances)
    for tx in transactions:
        if tx.kind != TransactionKind.PAYMENT:
            continue
        residual[tx.from_player] = residual.get(tx.from_player, 0.0) + tx.amount
        residual[tx.to_player] = residual.get(tx.to_player, 0.0) - tx.amount
    return residual
