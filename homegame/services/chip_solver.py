"""Pure functions for choosing a starting chip stack.

No database access, no async. Given a buy-in, big blind, player count and
the chips on hand, the solver searches two coupled spaces:

* chip values: the white chip is worth the small blind and every next
  color is worth the previous one times 2, 4 or 5 (81 value chains);
* per-player counts: a strictly decreasing count per color whose values
  add up exactly to the buy-in, with white chips making up at least 40%
  of the stack.

Every stack that fits the host's inventory for all players is a Solution;
``find_best_solution`` then picks the one closest to 25 chips, preferring
fewer colors.
"""

import itertools
import logging
import math
import operator
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional

from homegame.config import Settings, settings
from homegame.models.chips import ChipType, Solution, VariedSolution
from homegame.models.common import DENOMINATION_COUNT
from homegame.services.chip_sets import fallback_chip_types, to_chip_types
from homegame.services.errors import ChipSolverInputError

logger = logging.getLogger("homegame.services.chip_solver")


@dataclass(frozen=True)
class SolverConfig:
    """Search bounds and preferences for the chip solver."""
    min_chips: int = 15
    max_chips: int = 35
    preferred_total_chips: int = 25
    min_small_blind_ratio: float = 0.4
    multipliers: tuple[int, ...] = (2, 4, 5)
    value_tolerance: float = 0.001

    @classmethod
    def from_settings(cls, source: Settings = settings) -> "SolverConfig":
        return cls(
            min_chips=source.MIN_CHIPS_PER_PLAYER,
            max_chips=source.MAX_CHIPS_PER_PLAYER,
            preferred_total_chips=source.PREFERRED_TOTAL_CHIPS,
            min_small_blind_ratio=source.MIN_SMALL_BLIND_RATIO,
            value_tolerance=source.CHIP_VALUE_TOLERANCE,
        )


@dataclass(frozen=True)
class MultiplierChain:
    """Cumulative and step multipliers for the five chip colors."""
    multipliers: tuple[int, ...]
    individual_multipliers: tuple[int, ...]


def _resolve_config(config: Optional[SolverConfig]) -> SolverConfig:
    return config if config is not None else SolverConfig.from_settings()


# ----------------------------------------------------------------------
# Value space
# ----------------------------------------------------------------------

def generate_multiplier_chains(
    multipliers: Sequence[int] = (2, 4, 5),
) -> list[MultiplierChain]:
    """Every way to step from white to black using the given multipliers."""
    chains: list[MultiplierChain] = []
    for steps in itertools.product(multipliers, repeat=DENOMINATION_COUNT - 1):
        individual = (1, *steps)
        cumulative = tuple(itertools.accumulate(individual, operator.mul))
        chains.append(
            MultiplierChain(multipliers=cumulative, individual_multipliers=individual)
        )
    return chains


# ----------------------------------------------------------------------
# Quantity space
# ----------------------------------------------------------------------

def max_counts_for_inventory(
    available_chips: Sequence[int], player_count: int
) -> tuple[int, ...]:
    """Most chips of each color a single player can receive."""
    return tuple(quantity // player_count for quantity in available_chips)


def stack_capacity(previous_count: int, caps: Sequence[int]) -> int:
    """Upper bound on chips that still fit after a color holding ``previous_count``.

    Counts strictly decrease from color to color, so the k-th next color
    holds at most ``previous_count - k`` chips, and never more than its cap.
    """
    return sum(
        max(0, min(previous_count - offset, cap))
        for offset, cap in enumerate(caps, start=1)
    )


def is_reachable(
    chips_left: int,
    value_left: float,
    remaining_values: Sequence[float],
    tolerance: float,
) -> bool:
    """Whether ``chips_left`` chips of the remaining colors could total ``value_left``.

    Every remaining chip is worth at least the cheapest remaining color and
    at most the dearest one.
    """
    if not remaining_values:
        return False
    lowest = chips_left * remaining_values[0]
    highest = chips_left * remaining_values[-1]
    return lowest - tolerance <= value_left <= highest + tolerance


def _pad(prefix: tuple[int, ...]) -> tuple[int, ...]:
    return prefix + (0,) * (DENOMINATION_COUNT - len(prefix))


def _extend_stack(
    prefix: tuple[int, ...],
    chips_left: int,
    value_left: float,
    chip_values: Sequence[float],
    caps: Sequence[int],
    tolerance: float,
) -> Iterator[tuple[int, ...]]:
    if chips_left == 0:
        if len(prefix) >= 2 and abs(value_left) < tolerance:
            yield _pad(prefix)
        return

    index = len(prefix)
    if index >= DENOMINATION_COUNT:
        return
    if chips_left > stack_capacity(prefix[-1], caps[index:]):
        return
    if not is_reachable(chips_left, value_left, chip_values[index:], tolerance):
        return

    highest = min(prefix[-1] - 1, chips_left, caps[index])
    for count in range(1, highest + 1):
        yield from _extend_stack(
            prefix + (count,),
            chips_left - count,
            value_left - count * chip_values[index],
            chip_values,
            caps,
            tolerance,
        )


def enumerate_stacks(
    chip_values: Sequence[float],
    buy_in: float,
    total_chips: int,
    first_count: int,
    caps: Sequence[int],
    tolerance: float = 0.001,
) -> Iterator[tuple[int, ...]]:
    """Yield every strictly decreasing stack of exactly ``total_chips`` chips.

    The stack starts with ``first_count`` white chips, uses at least two
    colors, respects the per-color ``caps`` and is worth ``buy_in`` within
    ``tolerance``. Colors after the last one used hold zero chips.
    """
    if first_count > caps[0] or first_count > total_chips:
        return
    yield from _extend_stack(
        (first_count,),
        total_chips - first_count,
        buy_in - first_count * chip_values[0],
        chip_values,
        caps,
        tolerance,
    )


def fits_inventory(
    distribution: Sequence[int], player_count: int, available_chips: Sequence[int]
) -> bool:
    return all(
        count * player_count <= available
        for count, available in zip(distribution, available_chips)
    )


def find_chip_distributions(
    chain: MultiplierChain,
    buy_in: float,
    small_blind: float,
    player_count: int,
    available_chips: Sequence[int],
    config: SolverConfig,
) -> list[Solution]:
    """All stacks for one value chain, across every allowed stack size."""
    chip_values = tuple(small_blind * m for m in chain.multipliers)
    caps = max_counts_for_inventory(available_chips, player_count)
    solutions: list[Solution] = []

    for total_chips in range(config.min_chips, config.max_chips + 1):
        lowest_white = math.ceil(total_chips * config.min_small_blind_ratio)
        for first_count in range(lowest_white, total_chips + 1):
            for distribution in enumerate_stacks(
                chip_values,
                buy_in,
                total_chips,
                first_count,
                caps,
                config.value_tolerance,
            ):
                if not fits_inventory(distribution, player_count, available_chips):
                    continue
                solutions.append(
                    Solution(
                        multipliers=chain.multipliers,
                        individual_multipliers=chain.individual_multipliers,
                        chip_values=chip_values,
                        distribution=distribution,
                        total_chips=sum(distribution),
                        total_value=sum(
                            count * value
                            for count, value in zip(distribution, chip_values)
                        ),
                    )
                )
    return solutions


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def _validate_inputs(
    buy_in: float,
    big_blind: float,
    player_count: int,
    available_chips: Sequence[int],
) -> tuple[float, float, int, tuple[int, ...]]:
    buy_in = float(buy_in)
    big_blind = float(big_blind)
    if not math.isfinite(buy_in) or buy_in <= 0:
        raise ChipSolverInputError(f"buy-in must be a positive number, got {buy_in!r}")
    if not math.isfinite(big_blind) or big_blind <= 0:
        raise ChipSolverInputError(
            f"big blind must be a positive number, got {big_blind!r}"
        )
    if int(player_count) != player_count or player_count < 1:
        raise ChipSolverInputError(
            f"player count must be a positive integer, got {player_count!r}"
        )
    chips = tuple(int(q) for q in available_chips)
    if len(chips) != DENOMINATION_COUNT:
        raise ChipSolverInputError(
            f"expected {DENOMINATION_COUNT} chip quantities, got {len(chips)}"
        )
    if any(q < 0 for q in chips):
        raise ChipSolverInputError("chip quantities must be >= 0")
    return buy_in, big_blind, int(player_count), chips


def find_all_solutions(
    buy_in: float,
    big_blind: float,
    player_count: int,
    available_chips: Sequence[int],
    config: Optional[SolverConfig] = None,
) -> list[Solution]:
    """Search every value chain for stacks worth exactly the buy-in.

    Args:
        buy_in: Money each player buys in for.
        big_blind: Big blind; the white chip is worth half of it.
        player_count: Players who each receive the stack.
        available_chips: Chips owned per color, white to black.
        config: Search bounds. Defaults to the values in ``settings``.

    Returns:
        All solutions, possibly empty. Hundreds to a few thousand results
        are normal for common buy-ins.

    Raises:
        ChipSolverInputError: Inputs are not usable numbers.
    """
    config = _resolve_config(config)
    buy_in, big_blind, player_count, chips = _validate_inputs(
        buy_in, big_blind, player_count, available_chips
    )
    small_blind = big_blind / 2
    chains = generate_multiplier_chains(config.multipliers)

    logger.debug(
        "Searching %d multiplier chains for buy-in %s, big blind %s, "
        "%d players, chips %s",
        len(chains),
        buy_in,
        big_blind,
        player_count,
        chips,
    )

    solutions: list[Solution] = []
    for chain in chains:
        solutions.extend(
            find_chip_distributions(
                chain, buy_in, small_blind, player_count, chips, config
            )
        )

    logger.info("Found %d chip distributions for buy-in %s", len(solutions), buy_in)
    return solutions


def find_best_solution(
    solutions: Sequence[Solution], config: Optional[SolverConfig] = None
) -> Optional[Solution]:
    """Pick the most practical stack, or None when there is nothing to pick.

    Preference order, among stacks ranked by distance from the preferred
    chip count: preferred count with at most 3 colors, preferred count with
    exactly 4 colors, any stack at the preferred count, the closest stack.
    """
    if not solutions:
        return None

    preferred = _resolve_config(config).preferred_total_chips
    ranked = sorted(solutions, key=lambda s: abs(s.total_chips - preferred))
    at_preferred = [s for s in ranked if s.total_chips == preferred]

    for candidate in at_preferred:
        if candidate.denominations_used <= 3:
            return candidate
    for candidate in at_preferred:
        if candidate.denominations_used == 4:
            return candidate
    if at_preferred:
        return at_preferred[0]
    return ranked[0]


@dataclass(frozen=True)
class _Variety:
    name: str
    preferred_chips: int
    requirement: Callable[[Solution], bool]


VARIETIES: tuple[_Variety, ...] = (
    _Variety("Standard", 25, lambda s: 23 <= s.total_chips <= 27),
    _Variety("Compact", 17, lambda s: s.total_chips <= 20),
    _Variety("More Small Chips", 30, lambda s: s.total_chips >= 28),
    _Variety(
        "Skip Black",
        25,
        lambda s: s.distribution[4] == 0 and s.distribution[3] > 0,
    ),
    _Variety("Three Colors", 25, lambda s: s.denominations_used == 3),
)


def find_varied_solutions(solutions: Sequence[Solution]) -> list[VariedSolution]:
    """Best stack for each named style that has at least one candidate."""
    varied: list[VariedSolution] = []
    for variety in VARIETIES:
        matching = [s for s in solutions if variety.requirement(s)]
        if not matching:
            continue
        best = min(matching, key=lambda s: abs(s.total_chips - variety.preferred_chips))
        varied.append(VariedSolution(name=variety.name, solution=best))
    return varied


@lru_cache(maxsize=settings.SOLVER_CACHE_SIZE)
def find_all_solutions_cached(
    buy_in: float,
    big_blind: float,
    player_count: int,
    available_chips: tuple[int, ...],
) -> tuple[Solution, ...]:
    """Memoized ``find_all_solutions`` with the default configuration.

    Results depend only on the arguments, so repeated requests for the same
    game setup skip the search.
    """
    return tuple(
        find_all_solutions(buy_in, big_blind, player_count, available_chips)
    )


def recommend_starting_stack(
    buy_in: float,
    big_blind: float,
    player_count: int,
    available_chips: Sequence[int],
) -> tuple[Optional[Solution], list[ChipType]]:
    """Best solution plus its chip rows, or None and the zero fallback stack."""
    solutions = find_all_solutions_cached(
        buy_in, big_blind, player_count, tuple(available_chips)
    )
    return starting_stack_from(solutions)


def starting_stack_from(
    solutions: Sequence[Solution],
) -> tuple[Optional[Solution], list[ChipType]]:
    """Pick the best of already computed solutions and build its chip rows."""
    best = find_best_solution(solutions)
    if best is None:
        logger.info("No chip distribution found; using fallback stack")
        return None, fallback_chip_types()
    return best, to_chip_types(best)
