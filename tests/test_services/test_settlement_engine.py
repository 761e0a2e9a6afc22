"""Tests for the settlement engine pure functions.

Covers the strict and write-off passes, the worked examples from the
settlement screen, and conservation of money across both passes.
"""

import math
import random

import pytest

from homegame.models.common import TransactionKind
from homegame.models.ledger import PlayerLedger
from homegame.services.errors import SettlementInputError
from homegame.services.settlement_engine import (
    _Party,
    _minimize_splits_with_threshold,
    apply_transactions,
    settle,
    settlement_from_players,
)


BALANCED_GAMES = [
    {"A": 50.0, "B": -30.0, "C": -20.0},
    {"A": 30.0, "B": 20.0, "C": -20.0, "D": -30.0},
    {"A": 60.4, "B": 39.6, "C": -60.0, "D": -40.0},
    {"A": 40.3, "B": 19.7, "C": -25.0, "D": -35.0},
    {"A": 120.0, "B": -45.0, "C": -45.0, "D": 15.0, "E": -45.0},
    {"A": 10.25, "B": 5.5, "C": -7.75, "D": -8.0},
]


def _pairs(transactions):
    return [(tx.from_player, tx.to_player, tx.amount) for tx in transactions]


def _random_balanced_games(seed, count):
    """Balanced games with cent amounts, mixing large and near-zero balances."""
    rng = random.Random(seed)
    games = []
    for _ in range(count):
        size = rng.randint(2, 7)
        amounts = []
        for _ in range(size - 1):
            spread = rng.choice([1.0, 5.0, 40.0])
            amounts.append(round(rng.uniform(-spread, spread), 2))
        amounts.append(round(-sum(amounts), 2))
        games.append({chr(ord("A") + i): amount for i, amount in enumerate(amounts)})
    return games


RANDOM_GAMES = _random_balanced_games(seed=20240501, count=300)


class TestStrictSettlement:
    """The strict pass pays every balance to within a cent."""

    def test_one_creditor_two_debtors(self):
        result = settle({"A": 50, "B": -30, "C": -20})
        assert _pairs(result.strict_transactions) == [
            ("B", "A", 30),
            ("C", "A", 20),
        ]
        assert result.transactions == result.strict_transactions
        assert all(tx.write_off is None for tx in result.strict_transactions)

    def test_exact_matches_are_paired_first(self):
        result = settle({"A": 30, "B": 20, "C": -20, "D": -30})
        assert _pairs(result.strict_transactions) == [
            ("C", "B", 20),
            ("D", "A", 30),
        ]

    def test_debtor_pays_closest_creditor(self):
        """A 35 debtor prefers the 40.3 creditor over the 19.7 one."""
        result = settle({"A": 40.3, "B": 19.7, "C": -25, "D": -35})
        first = result.strict_transactions[0]
        assert (first.from_player, first.to_player) == ("D", "A")
        assert first.amount == pytest.approx(35)
        assert len(result.strict_transactions) == 3

    def test_all_settled_gives_no_transactions(self):
        result = settle({"A": 0, "B": 0})
        assert result.strict_transactions == []
        assert result.simplified_transactions == []
        assert result.simplification_possible is False
        assert result.total_write_off == 0

    def test_empty_balances(self):
        result = settle({})
        assert result.transactions == []
        assert result.transaction_difference == 0

    def test_transaction_ids_are_unique(self):
        result = settle({"A": 40.3, "B": 19.7, "C": -25, "D": -35})
        ids = [tx.id for tx in result.strict_transactions]
        assert len(ids) == len(set(ids))
        assert ids[0] == "D-A"

    def test_input_is_not_modified(self):
        balances = {"A": 60.4, "B": 39.6, "C": -60.0, "D": -40.0}
        snapshot = dict(balances)
        settle(balances, use_threshold=True, threshold=0.5)
        assert balances == snapshot


class TestThresholdSettlement:
    """The write-off pass forgives residuals up to the threshold."""

    def test_near_exact_example(self):
        balances = {"A": 50.50, "B": -50, "C": 0, "D": -0.50}
        result = settle(balances, use_threshold=True, threshold=1)

        assert len(result.strict_transactions) == 2
        assert len(result.simplified_transactions) == 1
        assert result.transactions == result.simplified_transactions

        tx = result.simplified_transactions[0]
        assert (tx.from_player, tx.to_player, tx.amount) == ("B", "A", 50)
        assert tx.write_off == pytest.approx(0.5)
        assert result.forgiven == {"D": -0.5}
        assert result.total_write_off == pytest.approx(1.0)
        assert result.simplification_possible is True
        assert result.transaction_difference == 1

    def test_strict_list_returned_when_threshold_not_requested(self):
        balances = {"A": 50.50, "B": -50, "C": 0, "D": -0.50}
        result = settle(balances, use_threshold=False, threshold=1)
        assert result.transactions == result.strict_transactions
        assert len(result.simplified_transactions) == 1

    def test_close_pairs_become_single_payments(self):
        result = settle(
            {"A": 60.4, "B": 39.6, "C": -60.0, "D": -40.0},
            use_threshold=True,
            threshold=0.5,
        )
        assert len(result.strict_transactions) == 3
        assert _pairs(result.simplified_transactions) == [
            ("C", "A", 60.0),
            ("D", "B", pytest.approx(39.6)),
        ]
        assert [tx.write_off for tx in result.simplified_transactions] == [
            pytest.approx(0.4),
            pytest.approx(0.4),
        ]
        assert result.transaction_difference == 1

    def test_leftover_after_partial_payment_is_written_off(self):
        """C pays 5.3 of 5.3 to A; the float crumb is absorbed, not paid."""
        result = settle(
            {"A": 40.3, "B": 19.7, "C": -25, "D": -35},
            use_threshold=True,
            threshold=0.5,
        )
        assert len(result.simplified_transactions) == 3
        assert result.total_write_off < 1e-9

    def test_zero_write_off_is_not_recorded(self):
        result = settle({"A": 20, "B": -20}, use_threshold=True, threshold=1)
        assert result.simplified_transactions[0].write_off is None
        assert result.total_write_off == 0

    def test_lone_residuals_become_write_off_transactions(self):
        debtors = [_Party("B", 30.0), _Party("C", 0.3)]
        creditors = [_Party("A", 30.0), _Party("D", 0.2)]
        drafts = _minimize_splits_with_threshold(debtors, creditors, 0.5)

        kinds = [(d.kind, d.from_player, d.to_player) for d in drafts]
        assert kinds == [
            (TransactionKind.PAYMENT, "B", "A"),
            (TransactionKind.WRITE_OFF, "C", None),
            (TransactionKind.WRITE_OFF, None, "D"),
        ]
        assert drafts[1].amount == 0
        assert drafts[1].write_off == pytest.approx(0.3)
        assert drafts[2].write_off == pytest.approx(0.2)

    def test_creditor_left_unpaid_by_debtor_write_offs(self):
        """D is forgiven and A's near match is short, so C is never paid."""
        balances = {"A": -2.49, "B": -16.04, "C": 0.56, "D": -0.33, "E": 18.3}
        result = settle(balances, use_threshold=True, threshold=0.5)

        assert result.forgiven == {"D": -0.33}
        assert [(tx.kind, tx.from_player, tx.to_player) for tx in result.transactions] == [
            (TransactionKind.PAYMENT, "B", "E"),
            (TransactionKind.PAYMENT, "A", "E"),
            (TransactionKind.WRITE_OFF, None, "C"),
        ]
        unpaid = result.transactions[2]
        assert unpaid.id == "writeoff-C"
        assert unpaid.amount == 0
        assert unpaid.write_off == pytest.approx(0.56)
        assert result.transactions[1].write_off == pytest.approx(0.23)
        assert result.total_write_off == pytest.approx(1.12)

    def test_creditor_left_alone_after_debtors_forgiven(self):
        result = settle({"A": -0.3, "B": -0.3, "C": 0.6}, use_threshold=True, threshold=0.5)

        assert [tx.id for tx in result.simplified_transactions] == ["writeoff-C"]
        assert result.simplified_transactions[0].write_off == pytest.approx(0.6)
        assert result.total_write_off == pytest.approx(1.2)
        assert len(result.strict_transactions) == 2


class TestSettlementProperties:
    """Invariants that hold for any balanced game."""

    @pytest.mark.parametrize("balances", BALANCED_GAMES)
    def test_strict_pass_zeroes_every_balance(self, balances):
        result = settle(balances)
        residual = apply_transactions(balances, result.strict_transactions)
        for player, remaining in residual.items():
            assert abs(remaining) < 0.01 + 1e-9, player

    @pytest.mark.parametrize("balances", BALANCED_GAMES)
    @pytest.mark.parametrize("threshold", [0.01, 0.5, 1.0])
    def test_close_games_leave_only_small_residuals(self, balances, threshold):
        result = settle(balances, use_threshold=True, threshold=threshold)
        residual = apply_transactions(balances, result.simplified_transactions)

        for player, remaining in residual.items():
            assert abs(remaining) <= threshold + 1e-9, player

    @pytest.mark.parametrize("balances", BALANCED_GAMES)
    def test_amounts_are_never_negative(self, balances):
        result = settle(balances, use_threshold=True, threshold=1.0)
        for tx in result.strict_transactions + result.simplified_transactions:
            assert tx.amount >= 0
            assert not math.isnan(tx.amount)
            assert tx.write_off is None or tx.write_off >= 0

    @pytest.mark.parametrize("balances", BALANCED_GAMES)
    def test_transaction_difference_is_never_negative(self, balances):
        result = settle(balances, use_threshold=True, threshold=1.0)
        assert result.transaction_difference >= 0
        assert result.simplification_possible == (result.transaction_difference > 0)

    @pytest.mark.parametrize(
        "balances",
        [
            {"A": 50.50, "B": -50, "C": 0, "D": -0.50},
            {"A": 60.4, "B": 39.6, "C": -60.0, "D": -40.0},
        ],
    )
    def test_raising_threshold_never_adds_transactions(self, balances):
        counts = [
            len(settle(balances, True, threshold).simplified_transactions)
            for threshold in (0.01, 0.5, 1.0, 5.0)
        ]
        assert counts == sorted(counts, reverse=True)

    def test_settlement_is_deterministic(self):
        balances = {"A": 120.0, "B": -45.0, "C": -45.0, "D": 15.0, "E": -45.0}
        assert settle(balances, True, 1.0) == settle(balances, True, 1.0)


class TestRandomBalancedGames:
    """Every balance is either paid or recorded as written off."""

    @pytest.mark.parametrize("threshold", [0.01, 0.25, 0.5, 1.0, 2.0])
    def test_write_offs_match_unpaid_money(self, threshold):
        for balances in RANDOM_GAMES:
            result = settle(balances, use_threshold=True, threshold=threshold)
            residual = apply_transactions(balances, result.simplified_transactions)

            recorded = sum(abs(v) for v in result.forgiven.values()) + sum(
                tx.write_off or 0.0 for tx in result.simplified_transactions
            )
            unpaid = sum(abs(v) for v in residual.values())
            assert unpaid == pytest.approx(recorded, abs=1e-6), balances
            assert result.total_write_off == pytest.approx(unpaid, abs=1e-9), balances

    @pytest.mark.parametrize("threshold", [0.01, 0.25, 0.5, 1.0, 2.0])
    def test_unpaid_players_appear_in_a_write_off(self, threshold):
        for balances in RANDOM_GAMES:
            result = settle(balances, use_threshold=True, threshold=threshold)
            residual = apply_transactions(balances, result.simplified_transactions)

            written_off = set(result.forgiven)
            for tx in result.simplified_transactions:
                if tx.write_off:
                    written_off.update(p for p in (tx.from_player, tx.to_player) if p)
            for player, remaining in residual.items():
                if abs(remaining) > 1e-6:
                    assert player in written_off, (balances, player)


class TestSettlementValidation:

    @pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf])
    def test_non_finite_balance_rejected(self, bad):
        with pytest.raises(SettlementInputError, match="finite"):
            settle({"A": 10, "B": bad})

    @pytest.mark.parametrize("bad", [-0.01, math.nan, math.inf])
    def test_bad_threshold_rejected(self, bad):
        with pytest.raises(SettlementInputError, match="threshold"):
            settle({"A": 10, "B": -10}, use_threshold=True, threshold=bad)


class TestSettlementFromPlayers:

    def test_balances_derived_from_ledgers(self):
        players = [
            PlayerLedger(id="p1", name="Alice", initial_buy_in=20, total_buy_in=40, final_amount=90),
            PlayerLedger(id="p2", name="Bob", initial_buy_in=20, total_buy_in=30, final_amount=0),
            PlayerLedger(id="p3", name="Cara", initial_buy_in=20, total_buy_in=20, final_amount=0),
        ]
        result = settlement_from_players(players)
        assert _pairs(result.transactions) == [
            ("p2", "p1", 30),
            ("p3", "p1", 20),
        ]

    def test_untallied_players_are_left_out(self):
        players = [
            PlayerLedger(id="p1", name="Alice", initial_buy_in=20, total_buy_in=20, final_amount=40),
            PlayerLedger(id="p2", name="Bob", initial_buy_in=20, total_buy_in=20, final_amount=0),
            PlayerLedger(id="p3", name="Cara", initial_buy_in=20, total_buy_in=20),
        ]
        result = settlement_from_players(players)
        assert _pairs(result.transactions) == [("p2", "p1", 20)]
