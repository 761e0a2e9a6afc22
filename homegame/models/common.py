"""Common enums and shared types for homegame models."""

from enum import StrEnum


class TransactionKind(StrEnum):
    """Settlement transaction variants."""
    PAYMENT = "PAYMENT"
    WRITE_OFF = "WRITE_OFF"


class ChipColor(StrEnum):
    """Chip denominations, ordered from lowest to highest value."""
    WHITE = "White"
    RED = "Red"
    BLUE = "Blue"
    GREEN = "Green"
    BLACK = "Black"


# Slot order used by every five-element chip array (values, quantities, inventory).
CHIP_COLORS: tuple[ChipColor, ...] = (
    ChipColor.WHITE,
    ChipColor.RED,
    ChipColor.BLUE,
    ChipColor.GREEN,
    ChipColor.BLACK,
)

DENOMINATION_COUNT = len(CHIP_COLORS)
