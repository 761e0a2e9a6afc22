"""Settlement route handlers.

Endpoints:
    POST /api/settlement -- Compute payments that settle a finished game.
"""

import logging
from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, model_validator

from homegame.config import settings
from homegame.models.settlement import SettlementResult
from homegame.routes.errors import api_error
from homegame.services.errors import SettlementInputError
from homegame.services.settlement_engine import settle

logger = logging.getLogger("homegame.routes.settlement")

router = APIRouter(tags=["Settlement"])


# ---------------------------------------------------------------------------
# Pydantic request schemas
# ---------------------------------------------------------------------------

class SettlementPlayerEntry(BaseModel):
    """A player's total buy-in and cash-out."""
    player_id: str = Field(..., min_length=1)
    total_buy_in: float = Field(..., ge=0)
    final_amount: float = Field(..., ge=0)


class SettlementRequest(BaseModel):
    """Request body for POST /api/settlement.

    Provide either net ``balances`` or ``players`` with buy-in and
    cash-out figures, not both.
    """
    balances: Optional[dict[str, float]] = None
    players: Optional[list[SettlementPlayerEntry]] = None
    use_threshold: bool = False
    threshold: float = Field(
        default_factory=lambda: settings.DEFAULT_WRITE_OFF_THRESHOLD,
        ge=0,
        description="Largest residual that may be written off.",
    )

    @model_validator(mode="after")
    def check_source(self) -> "SettlementRequest":
        if (self.balances is None) == (self.players is None):
            raise ValueError("Provide exactly one of balances or players")
        return self

    def to_balances(self) -> dict[str, float]:
        if self.balances is not None:
            return dict(self.balances)
        return {
            entry.player_id: entry.final_amount - entry.total_buy_in
            for entry in self.players
        }


# ---------------------------------------------------------------------------
# POST /api/settlement
# ---------------------------------------------------------------------------

@router.post(
    "/settlement",
    response_model=SettlementResult,
    status_code=status.HTTP_200_OK,
    summary="Compute settlement transactions",
)
async def compute_settlement(body: SettlementRequest) -> SettlementResult:
    """Return strict and simplified transactions for the given balances."""
    balances = body.to_balances()
    try:
        result = settle(balances, body.use_threshold, body.threshold)
    except SettlementInputError as e:
        raise api_error(code="invalid_balances", message=str(e))

    logger.info(
        "Settlement for %d players: %d transactions (simplification saves %d)",
        len(balances),
        len(result.transactions),
        result.transaction_difference,
    )
    return result
