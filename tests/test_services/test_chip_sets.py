"""Tests for chip set presets and chip row conversion."""

from homegame.models.chips import Solution
from homegame.models.common import ChipColor
from homegame.services.chip_sets import (
    DEFAULT_CHIP_SET_ID,
    fallback_chip_types,
    get_chip_set,
    list_chip_sets,
    to_chip_types,
)


class TestChipSetPresets:

    def test_default_is_300_piece_set(self):
        preset = get_chip_set(DEFAULT_CHIP_SET_ID)
        assert preset.quantities == (100, 50, 50, 50, 50)
        assert preset.total_chips == 300

    def test_500_piece_set(self):
        preset = get_chip_set("500pc")
        assert preset.quantities == (150, 150, 100, 50, 50)
        assert preset.total_chips == 500

    def test_100_piece_set(self):
        assert get_chip_set("100pc").total_chips == 100

    def test_unknown_preset(self):
        assert get_chip_set("1000pc") is None

    def test_list_order(self):
        assert [p.id for p in list_chip_sets()] == ["300pc", "500pc", "100pc"]


class TestChipRows:

    def test_rows_follow_solution(self):
        solution = Solution(
            multipliers=(1, 2, 4, 20, 100),
            individual_multipliers=(1, 2, 2, 5, 5),
            chip_values=(0.5, 1.0, 2.0, 10.0, 50.0),
            distribution=(14, 9, 2, 0, 0),
            total_chips=25,
            total_value=20.0,
        )
        rows = to_chip_types(solution)

        assert [r.display_name for r in rows] == [
            ChipColor.WHITE,
            ChipColor.RED,
            ChipColor.BLUE,
            ChipColor.GREEN,
            ChipColor.BLACK,
        ]
        assert [r.value for r in rows] == [0.5, 1.0, 2.0, 10.0, 50.0]
        assert [r.quantity for r in rows] == [14, 9, 2, 0, 0]

    def test_fallback_rows_are_zero(self):
        rows = fallback_chip_types()
        assert [r.id for r in rows] == ["white", "red", "blue", "green", "black"]
        assert all(r.value == 0 for r in rows)
        assert all(r.quantity == 0 for r in rows)
