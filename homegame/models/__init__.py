"""Pydantic models for homegame."""

from homegame.models.common import (
    CHIP_COLORS,
    DENOMINATION_COUNT,
    ChipColor,
    TransactionKind,
)
from homegame.models.settlement import SettlementResult, Transaction
from homegame.models.chips import ChipSetPreset, ChipType, Solution, VariedSolution
from homegame.models.ledger import GameHistoryEntry, PlayerHistory, PlayerLedger

__all__ = [
    # Enums and constants
    "CHIP_COLORS",
    "DENOMINATION_COUNT",
    "ChipColor",
    "TransactionKind",
    # Settlement models
    "SettlementResult",
    "Transaction",
    # Chip models
    "ChipSetPreset",
    "ChipType",
    "Solution",
    "VariedSolution",
    # Ledger models
    "GameHistoryEntry",
    "PlayerHistory",
    "PlayerLedger",
]
