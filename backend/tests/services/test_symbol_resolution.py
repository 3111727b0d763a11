# backend/tests/services/test_symbol_resolution.py
"""
Tests for symbol normalization and fetch planning.

This module tests:
- Tokyo code normalization (broker suffixes dropped)
- Fund code lookup and deduplication
- FetchPlan construction and expansion back to holding symbols
"""

import pytest

from app.services.symbol_resolution import FetchPlan, SymbolResolver, normalize_symbol
from tests.conftest import make_holding


class TestNormalizeSymbol:
    """Tests for normalize_symbol()."""

    @pytest.mark.parametrize("symbol,expected", [
        ("1234A.T-sbi", "1234A.T"),
        ("1234A.T-rakuten", "1234A.T"),
        ("7203.T", "7203.T"),
        ("7203.T-nisa", "7203.T"),
        ("AAPL", "AAPL"),
        ("BRK-B", "BRK-B"),
        ("ghq-dist", "ghq-dist"),
    ])
    def test_normalization(self, symbol, expected):
        assert normalize_symbol(symbol) == expected

    def test_code_must_be_leading(self):
        """A Tokyo code in the middle of a symbol is not a fetch key."""
        assert normalize_symbol("x7203.T") == "x7203.T"

    def test_resolver_delegates(self):
        assert SymbolResolver.normalize("9984.T-sbi") == "9984.T"


class TestFundCodes:
    """Tests for fund code lookup."""

    def test_shared_fund_code(self):
        resolver = SymbolResolver()
        assert resolver.fund_code_for("ghq-dist") == resolver.fund_code_for("ghq-reinv")
        assert resolver.fund_code_for("ghq-dist") == "47316169"

    def test_unknown_fund(self):
        assert SymbolResolver().fund_code_for("unknown-fund") is None

    def test_injected_map(self):
        resolver = SymbolResolver({"my-fund": "ABC123"})
        assert resolver.fund_code_for("my-fund") == "ABC123"
        assert resolver.fund_code_for("ghq-dist") is None


class TestDedupe:
    """Tests for SymbolResolver.dedupe()."""

    def test_first_seen_order(self):
        assert SymbolResolver.dedupe(["B", "A", "B", "C", "A"]) == ["B", "A", "C"]

    def test_empty(self):
        assert SymbolResolver.dedupe([]) == []


class TestBuildPlan:
    """Tests for SymbolResolver.build_plan()."""

    def test_splits_equities_and_funds(self):
        holdings = [
            make_holding("7203.T"),
            make_holding("AAPL", currency="USD", category="us_stock"),
            make_holding("ghq-dist", category="mutual_fund"),
        ]

        plan = SymbolResolver().build_plan(holdings)

        assert plan.equity_keys == {"7203.T": ["7203.T"], "AAPL": ["AAPL"]}
        assert plan.fund_codes == {"47316169": ["ghq-dist"]}
        assert plan.unmapped == []

    def test_broker_suffixes_share_one_key(self):
        holdings = [
            make_holding("1234A.T-sbi"),
            make_holding("1234A.T-rakuten"),
        ]

        plan = SymbolResolver().build_plan(holdings)

        assert plan.equity_keys == {"1234A.T": ["1234A.T-sbi", "1234A.T-rakuten"]}

    def test_fund_classes_share_one_code(self):
        holdings = [
            make_holding("ghq-dist", category="mutual_fund"),
            make_holding("ghq-reinv", category="mutual_fund"),
        ]

        plan = SymbolResolver().build_plan(holdings)

        assert plan.fund_codes == {"47316169": ["ghq-dist", "ghq-reinv"]}

    def test_unmapped_fund(self):
        holdings = [make_holding("mystery-fund", category="mutual_fund")]

        plan = SymbolResolver().build_plan(holdings)

        assert plan.unmapped == ["mystery-fund"]
        assert plan.is_empty

    def test_fund_symbol_outside_fund_category_is_equity(self):
        """Category decides the path, not the symbol."""
        plan = SymbolResolver().build_plan([make_holding("ghq-dist", category="us_stock")])

        assert plan.equity_keys == {"ghq-dist": ["ghq-dist"]}
        assert plan.fund_codes == {}

    def test_duplicate_holding_symbol_listed_once(self):
        plan = SymbolResolver().build_plan([make_holding("AAPL"), make_holding("AAPL")])

        assert plan.equity_keys == {"AAPL": ["AAPL"]}

    def test_empty_holdings(self):
        plan = SymbolResolver().build_plan([])

        assert plan.is_empty
        assert plan.holding_symbols == []


class TestFetchPlanExpand:
    """Tests for FetchPlan.expand()."""

    def test_every_holding_symbol_receives_its_key_result(self):
        plan = FetchPlan(
            equity_keys={"1234A.T": ["1234A.T-sbi", "1234A.T-rakuten"], "AAPL": ["AAPL"]},
            fund_codes={"47316169": ["ghq-dist", "ghq-reinv"]},
        )

        expanded = plan.expand({"1234A.T": 100, "AAPL": 200}, {"47316169": 300})

        assert expanded == {
            "1234A.T-sbi": 100,
            "1234A.T-rakuten": 100,
            "AAPL": 200,
            "ghq-dist": 300,
            "ghq-reinv": 300,
        }

    def test_missing_results_are_skipped(self):
        plan = FetchPlan(equity_keys={"AAPL": ["AAPL"], "MSFT": ["MSFT"]})

        assert plan.expand({"AAPL": 1}) == {"AAPL": 1}

    def test_keys_never_leak_into_result(self):
        plan = FetchPlan(equity_keys={"1234A.T": ["1234A.T-sbi"]})

        expanded = plan.expand({"1234A.T": 1})

        assert "1234A.T" not in expanded

    def test_holding_symbols(self):
        plan = FetchPlan(
            equity_keys={"AAPL": ["AAPL"]},
            fund_codes={"X": ["fund-a", "fund-b"]},
        )

        assert plan.holding_symbols == ["AAPL", "fund-a", "fund-b"]
