"""Standard chip set inventories and starting-stack conversion."""

from collections.abc import Sequence
from typing import Optional

from homegame.models.chips import ChipSetPreset, ChipType, Solution
from homegame.models.common import CHIP_COLORS

DEFAULT_CHIP_SET_ID = "300pc"

CHIP_SET_PRESETS: dict[str, ChipSetPreset] = {
    preset.id: preset
    for preset in (
        ChipSetPreset(
            id="300pc",
            label="300pc Standard Set",
            quantities=(100, 50, 50, 50, 50),
        ),
        ChipSetPreset(
            id="500pc",
            label="500pc Standard Set",
            quantities=(150, 150, 100, 50, 50),
        ),
        ChipSetPreset(
            id="100pc",
            label="100pc Standard Set",
            quantities=(20, 20, 20, 20, 20),
        ),
    )
}


def get_chip_set(preset_id: str) -> Optional[ChipSetPreset]:
    """Look up a preset by id ("300pc", "500pc", "100pc")."""
    return CHIP_SET_PRESETS.get(preset_id)


def list_chip_sets() -> list[ChipSetPreset]:
    return list(CHIP_SET_PRESETS.values())


def _chip_rows(values: Sequence[float], quantities: Sequence[int]) -> list[ChipType]:
    return [
        ChipType(
            id=color.value.lower(),
            display_name=color,
            value=value,
            quantity=quantity,
        )
        for color, value, quantity in zip(CHIP_COLORS, values, quantities)
    ]


def to_chip_types(solution: Solution) -> list[ChipType]:
    """One row per color with the solution's value and per-player count."""
    return _chip_rows(solution.chip_values, solution.distribution)


def fallback_chip_types() -> list[ChipType]:
    """The zero-value, zero-quantity stack shown when no distribution exists."""
    zeros = [0] * len(CHIP_COLORS)
    return _chip_rows(zeros, zeros)
