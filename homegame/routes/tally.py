"""Tally route handlers.

Endpoints:
    POST /api/tally -- Check cash-outs against buy-ins and build a history entry.
"""

import logging
from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, model_validator

from homegame.models.ledger import GameHistoryEntry, PlayerLedger
from homegame.routes.errors import api_error
from homegame.services.errors import TallyError
from homegame.services import tally_math

logger = logging.getLogger("homegame.routes.tally")

router = APIRouter(tags=["Tally"])


# ---------------------------------------------------------------------------
# Pydantic request / response schemas
# ---------------------------------------------------------------------------

class TallyPlayerEntry(BaseModel):
    """One player's money over the session."""
    name: str = Field(..., min_length=1)
    initial_buy_in: float = Field(..., gt=0)
    top_ups: list[float] = Field(default_factory=list)
    final_amount: Optional[float] = Field(default=None, ge=0)


class TallyRequest(BaseModel):
    """Request body for POST /api/tally."""
    players: list[TallyPlayerEntry] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_unique_names(self) -> "TallyRequest":
        names = [p.name for p in self.players]
        if len(set(names)) != len(names):
            raise ValueError("Player names must be unique")
        return self


class TallyResponse(BaseModel):
    """Response for POST /api/tally.

    ``history`` is only present once every player has a final amount and
    the tally balances.
    """
    balanced: bool
    all_tallied: bool
    total_buy_in: float
    total_cash_out: float
    balances: dict[str, float]
    history: Optional[GameHistoryEntry] = None


# ---------------------------------------------------------------------------
# POST /api/tally
# ---------------------------------------------------------------------------

@router.post(
    "/tally",
    response_model=TallyResponse,
    status_code=status.HTTP_200_OK,
    summary="Tally cash-outs against buy-ins",
)
async def tally(body: TallyRequest) -> TallyResponse:
    """Replay buy-ins, top-ups and cash-outs and report the net results."""
    players: list[PlayerLedger] = []
    try:
        for entry in body.players:
            ledger = PlayerLedger(
                name=entry.name,
                initial_buy_in=entry.initial_buy_in,
                total_buy_in=entry.initial_buy_in,
            )
            players.append(ledger)
            for amount in entry.top_ups:
                players = tally_math.add_funds(players, ledger.id, amount)
            if entry.final_amount is not None:
                players = tally_math.record_final_amount(
                    players, ledger.id, entry.final_amount
                )
    except TallyError as e:
        raise api_error(code="invalid_tally", message=str(e))

    balanced = tally_math.is_tally_balanced(players)
    all_tallied = all(p.is_complete for p in players)
    if all_tallied and not balanced:
        logger.warning(
            "Tally does not balance: bought in %.2f, cashed out %.2f",
            tally_math.total_buy_in(players),
            tally_math.total_cash_out(players),
        )

    by_id = {p.id: p.name for p in players}
    balances = {
        by_id[player_id]: balance
        for player_id, balance in tally_math.compute_balances(players).items()
    }

    return TallyResponse(
        balanced=balanced,
        all_tallied=all_tallied,
        total_buy_in=tally_math.total_buy_in(players),
        total_cash_out=tally_math.total_cash_out(players),
        balances=balances,
        history=(
            tally_math.to_history_entry(players)
            if all_tallied and balanced
            else None
        ),
    )
