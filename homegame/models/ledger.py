"""Session ledger and game history models.

A ledger row tracks one player's money over a session: the opening
buy-in, top-ups folded into ``total_buy_in``, and the cash-out tally.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_serializer


class PlayerLedger(BaseModel):
    """A player's running buy-in and final amount within one session."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = Field(..., min_length=1)
    initial_buy_in: float = Field(..., ge=0, allow_inf_nan=False)
    total_buy_in: float = Field(..., ge=0, allow_inf_nan=False)
    final_amount: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    @property
    def is_complete(self) -> bool:
        return self.final_amount is not None

    @property
    def profit_loss(self) -> float:
        """Net result; 0 until the player has been tallied."""
        if self.final_amount is None:
            return 0.0
        return self.final_amount - self.total_buy_in


class PlayerHistory(BaseModel):
    """A finished player's figures as stored in game history."""

    model_config = {"frozen": True}

    name: str
    initial_buy_in: float
    total_buy_in: float
    final_amount: float
    profit_loss: float


class GameHistoryEntry(BaseModel):
    """One completed session."""

    model_config = {"frozen": True}

    id: str = Field(default_factory=lambda: uuid4().hex)
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    players: list[PlayerHistory]

    @field_serializer("date")
    def serialize_date(self, value: datetime, _info) -> str:
        return value.isoformat()
