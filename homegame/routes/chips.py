"""Chip distribution route handlers.

Endpoints:
    GET  /api/chips/presets       -- List standard chip set inventories.
    POST /api/chips/distribution  -- Recommend a per-player starting stack.
"""

import logging
from typing import Optional

from fastapi import APIRouter, status
from pydantic import BaseModel, Field, field_validator
from starlette.concurrency import run_in_threadpool

from homegame.models.chips import ChipSetPreset, ChipType, Solution, VariedSolution
from homegame.models.common import DENOMINATION_COUNT
from homegame.routes.errors import api_error
from homegame.services.chip_sets import DEFAULT_CHIP_SET_ID, get_chip_set, list_chip_sets
from homegame.services.chip_solver import (
    find_all_solutions_cached,
    find_varied_solutions,
    starting_stack_from,
)
from homegame.services.errors import ChipSolverInputError

logger = logging.getLogger("homegame.routes.chips")

router = APIRouter(prefix="/chips", tags=["Chips"])


# ---------------------------------------------------------------------------
# Pydantic request / response schemas
# ---------------------------------------------------------------------------

class ChipDistributionRequest(BaseModel):
    """Request body for POST /api/chips/distribution.

    ``available_chips`` overrides ``preset``; with neither, the 300pc set
    is assumed.
    """
    buy_in: float = Field(..., gt=0)
    big_blind: float = Field(..., gt=0)
    player_count: int = Field(..., ge=1)
    preset: Optional[str] = None
    available_chips: Optional[list[int]] = None

    @field_validator("available_chips")
    @classmethod
    def check_available_chips(cls, v):
        if v is None:
            return v
        if len(v) != DENOMINATION_COUNT:
            raise ValueError(f"available_chips must have {DENOMINATION_COUNT} entries")
        if any(q < 0 for q in v):
            raise ValueError("available_chips entries must be >= 0")
        return v


class ChipDistributionResponse(BaseModel):
    """Response for POST /api/chips/distribution."""
    solution: Optional[Solution]
    chip_types: list[ChipType]
    solution_count: int
    alternatives: list[VariedSolution]
    available_chips: list[int]


# ---------------------------------------------------------------------------
# GET /api/chips/presets
# ---------------------------------------------------------------------------

@router.get(
    "/presets",
    response_model=list[ChipSetPreset],
    summary="List standard chip sets",
)
async def get_presets() -> list[ChipSetPreset]:
    return list_chip_sets()


# ---------------------------------------------------------------------------
# POST /api/chips/distribution
# ---------------------------------------------------------------------------

@router.post(
    "/distribution",
    response_model=ChipDistributionResponse,
    status_code=status.HTTP_200_OK,
    summary="Recommend a starting chip stack",
)
async def recommend_distribution(
    body: ChipDistributionRequest,
) -> ChipDistributionResponse:
    """Search chip values and counts for a stack worth exactly the buy-in.

    The search runs in a worker thread. An empty result is not an error:
    ``solution`` is null and ``chip_types`` holds the zero stack.
    """
    if body.available_chips is not None:
        available = tuple(body.available_chips)
    else:
        preset_id = body.preset or DEFAULT_CHIP_SET_ID
        preset = get_chip_set(preset_id)
        if preset is None:
            raise api_error(
                code="unknown_chip_set",
                message=f"Unknown chip set: {preset_id}",
                status_code=status.HTTP_404_NOT_FOUND,
            )
        available = preset.quantities

    try:
        solutions = await run_in_threadpool(
            find_all_solutions_cached,
            body.buy_in,
            body.big_blind,
            body.player_count,
            available,
        )
    except ChipSolverInputError as e:
        raise api_error(code="invalid_chip_request", message=str(e))

    best, chip_types = starting_stack_from(solutions)

    return ChipDistributionResponse(
        solution=best,
        chip_types=chip_types,
        solution_count=len(solutions),
        alternatives=find_varied_solutions(solutions),
        available_chips=list(available),
    )
