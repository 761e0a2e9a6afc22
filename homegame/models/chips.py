"""Chip distribution models."""

from pydantic import BaseModel, Field, computed_field, field_validator

from homegame.models.common import DENOMINATION_COUNT, ChipColor


class ChipType(BaseModel):
    """One denomination of a starting stack: its value and per-player count."""

    model_config = {"frozen": True}

    id: str
    display_name: ChipColor
    value: float = Field(..., ge=0)
    quantity: int = Field(..., ge=0)


class Solution(BaseModel):
    """A candidate chip distribution found by the solver.

    ``multipliers`` are cumulative factors applied to the small blind,
    ``individual_multipliers`` the step between consecutive chips.
    """

    model_config = {"frozen": True}

    multipliers: tuple[int, ...]
    individual_multipliers: tuple[int, ...]
    chip_values: tuple[float, ...]
    distribution: tuple[int, ...]
    total_chips: int
    total_value: float

    @field_validator("chip_values", "distribution", "multipliers", "individual_multipliers")
    @classmethod
    def check_length(cls, v):
        if len(v) != DENOMINATION_COUNT:
            raise ValueError(f"expected {DENOMINATION_COUNT} entries, got {len(v)}")
        return v

    @computed_field
    @property
    def denominations_used(self) -> int:
        return sum(1 for count in self.distribution if count > 0)

    @computed_field
    @property
    def small_blind_ratio(self) -> float:
        if self.total_chips == 0:
            return 0.0
        return self.distribution[0] / self.total_chips


class ChipSetPreset(BaseModel):
    """A physical chip set: how many chips of each color the host owns."""

    model_config = {"frozen": True}

    id: str
    label: str
    quantities: tuple[int, ...]

    @field_validator("quantities")
    @classmethod
    def check_quantities(cls, v):
        if len(v) != DENOMINATION_COUNT:
            raise ValueError(f"expected {DENOMINATION_COUNT} quantities, got {len(v)}")
        if any(q < 0 for q in v):
            raise ValueError("chip quantities must be >= 0")
        return v

    @property
    def total_chips(self) -> int:
        return sum(self.quantities)


class VariedSolution(BaseModel):
    """A named alternative stack offered next to the recommended one."""

    model_config = {"frozen": True}

    name: str
    solution: Solution
