"""Settlement result models.

A settlement is a list of point-to-point transactions that zeroes every
player's net balance. Transactions are immutable once built.
"""

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from homegame.models.common import TransactionKind


class Transaction(BaseModel):
    """A single settlement step.

    PAYMENT moves ``amount`` from a debtor to a creditor. ``write_off``
    records any discrepancy forgiven while matching the pair.

    WRITE_OFF forgives a lone residual that has no counterpart: ``amount``
    is always 0 and exactly one of ``from_player`` / ``to_player`` is set.
    """

    model_config = {"frozen": True}

    id: str
    kind: TransactionKind = TransactionKind.PAYMENT
    from_player: Optional[str] = None
    to_player: Optional[str] = None
    amount: float = Field(..., ge=0, allow_inf_nan=False)
    write_off: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def check_parties(self) -> "Transaction":
        if self.kind == TransactionKind.PAYMENT:
            if self.from_player is None or self.to_player is None:
                raise ValueError("payment requires both from_player and to_player")
        else:
            if (self.from_player is None) == (self.to_player is None):
                raise ValueError(
                    "write-off requires exactly one of from_player / to_player"
                )
            if self.amount != 0:
                raise ValueError("write-off transactions carry no amount")
            if self.write_off is None:
                raise ValueError("write-off transactions must set write_off")
        return self

    @property
    def is_write_off(self) -> bool:
        return self.kind == TransactionKind.WRITE_OFF


class SettlementResult(BaseModel):
    """Both settlement passes and how they compare.

    ``transactions`` is the list the caller asked for: the simplified list
    when thresholding was requested, the strict list otherwise.
    """

    model_config = {"frozen": True}

    transactions: list[Transaction]
    strict_transactions: list[Transaction]
    simplified_transactions: list[Transaction]
    simplification_possible: bool
    transaction_difference: int = Field(..., ge=0)
    total_write_off: float = Field(..., ge=0)
    forgiven: dict[str, float] = Field(default_factory=dict)
