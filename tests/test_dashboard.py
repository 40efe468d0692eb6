"""
test_dashboard.py
------------------
Tests for the logic behind the dashboard views: transaction table queries
and the selection state transitions (including the step debugger).

The Streamlit rendering itself is not tested here.

Run from the project root:
    python -m pytest tests/test_dashboard.py -v
"""

import sys
import os
import pytest

# Ensure the project root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config.config_loader import reset_config
from core.models import Rule, Transaction
from core.rule_engine import RuleEngine
from core.table_query import (
    filter_by_outcome, outcome_counts, search_transactions, short_date, status_label,
)
from core.dashboard_state import (
    NO_STEP, DashboardState, initial_state, next_step, prev_step, reset_step,
    select_rule, select_transaction, set_filter, set_search, step_controls,
    switch_to_rule, switch_view,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def reset_config_cache():
    """Clears config cache before each test for isolation."""
    reset_config()
    yield
    reset_config()


def _rule(rule_id: str, *conditions: dict) -> Rule:
    return Rule.from_record({
        "rule_id": rule_id,
        "name": f"Rule {rule_id}",
        "severity": "Medium",
        "action": "review",
        "conditions": list(conditions),
    })


@pytest.fixture
def transactions() -> list[Transaction]:
    records = [
        {"transaction_id": "TXN_001", "amount": 1500, "currency": "USD", "transaction_type": "card_not_present",
         "merchant_description": "ELECTROWORLD ONLINE", "merchant_country": "NG",
         "txn_date_time": "2024-03-01 02:14:09"},
        {"transaction_id": "TXN_002", "amount": 40, "currency": "USD", "transaction_type": "card_present",
         "merchant_description": "Corner Coffee", "merchant_country": "US",
         "txn_date_time": "2024-03-01 09:41:55"},
        {"transaction_id": "TXN_003", "amount": 900, "currency": "USD", "transaction_type": "wire_transfer",
         "merchant_description": None, "merchant_country": "US"},
    ]
    return [Transaction.from_record(r) for r in records]


@pytest.fixture
def rules() -> list[Rule]:
    return [
        _rule("R1",
              {"field": "amount", "source": "raw", "op": ">", "value": "1000"},
              {"field": "currency", "source": "raw", "op": "==", "value": "USD"}),
        _rule("R2", {"field": "merchant_country", "source": "raw", "op": "==", "value": "US"}),
    ]


@pytest.fixture
def results(rules, transactions):
    engine = RuleEngine()
    return {tx.transaction_id: engine.evaluate_rule(rules[0], tx) for tx in transactions}


# =============================================================================
# TABLE QUERIES
# =============================================================================

class TestSearch:
    def test_empty_search_returns_everything(self, transactions):
        assert search_transactions(transactions, "") == transactions
        assert search_transactions(transactions, None) == transactions

    def test_whitespace_is_matched_as_typed(self, transactions):
        # Only the merchant names contain a space
        assert [tx.transaction_id for tx in search_transactions(transactions, " ")] == ["TXN_001", "TXN_002"]
        assert search_transactions(transactions, "   ") == []

    def test_search_is_case_insensitive_on_merchant(self, transactions):
        found = search_transactions(transactions, "coffee")
        assert [tx.transaction_id for tx in found] == ["TXN_002"]

    def test_search_matches_id_type_and_country(self, transactions):
        assert [tx.transaction_id for tx in search_transactions(transactions, "txn_003")] == ["TXN_003"]
        assert [tx.transaction_id for tx in search_transactions(transactions, "WIRE")] == ["TXN_003"]
        assert [tx.transaction_id for tx in search_transactions(transactions, "ng")] == ["TXN_001"]

    def test_search_ignores_unconfigured_fields(self, transactions):
        assert search_transactions(transactions, "USD") == []

    def test_search_with_explicit_fields(self, transactions):
        assert len(search_transactions(transactions, "usd", fields=["currency"])) == 3

    def test_missing_field_is_treated_as_empty(self, transactions):
        # TXN_003 has no merchant_description; must not raise
        assert search_transactions(transactions, "online")[0].transaction_id == "TXN_001"


class TestOutcomeFilter:
    def test_all(self, transactions, results):
        assert filter_by_outcome(transactions, results, "all") == transactions

    def test_pass(self, transactions, results):
        assert [tx.transaction_id for tx in filter_by_outcome(transactions, results, "pass")] == ["TXN_001"]

    def test_fail(self, transactions, results):
        kept = filter_by_outcome(transactions, results, "fail")
        assert [tx.transaction_id for tx in kept] == ["TXN_002", "TXN_003"]

    def test_fail_includes_transactions_without_result(self, transactions):
        no_rule = {tx.transaction_id: None for tx in transactions}
        assert filter_by_outcome(transactions, no_rule, "fail") == transactions
        assert filter_by_outcome(transactions, no_rule, "pass") == []

    def test_unknown_mode_raises(self, transactions, results):
        with pytest.raises(ValueError):
            filter_by_outcome(transactions, results, "partial")

    def test_search_and_filter_compose(self, transactions, results):
        visible = search_transactions(transactions, "us")
        visible = filter_by_outcome(visible, results, "fail")
        assert [tx.transaction_id for tx in visible] == ["TXN_002", "TXN_003"]

    def test_counts_cover_full_dataset(self, transactions, results):
        assert outcome_counts(transactions, results) == {"pass": 1, "fail": 2, "total": 3}

    def test_counts_without_rule(self, transactions):
        no_rule = {tx.transaction_id: None for tx in transactions}
        assert outcome_counts(transactions, no_rule) == {"pass": 0, "fail": 3, "total": 3}


class TestStatusLabel:
    def test_labels(self, results):
        assert status_label(results["TXN_001"]) == "● FIRES"
        assert status_label(results["TXN_002"]) == "◐ 1/2"   # currency matches, amount does not
        assert status_label(None) == ""

    def test_miss(self, transactions):
        rule = _rule("R9", {"field": "amount", "source": "raw", "op": "<", "value": "0"})
        result = RuleEngine().evaluate_rule(rule, transactions[0])
        assert status_label(result) == "● miss"

    def test_short_date(self):
        assert short_date("2024-03-01 02:14:09") == "03-01 02:14"
        assert short_date(None) == ""
        assert short_date("") == ""


# =============================================================================
# DASHBOARD STATE
# =============================================================================

class TestDashboardState:
    def test_initial_state_selects_first_rule(self, rules):
        state = initial_state(rules)
        assert state.selected_rule_id == "R1"
        assert state.selected_transaction_id is None
        assert state.filter_mode == "all"
        assert state.step_index == NO_STEP
        assert state.view == "debug"

    def test_initial_state_without_rules(self):
        assert initial_state([]).selected_rule_id is None

    def test_select_rule_clears_transaction_and_step(self):
        state = DashboardState(selected_rule_id="R1", selected_transaction_id="TXN_001", step_index=1)
        new = select_rule(state, "R2")
        assert new.selected_rule_id == "R2"
        assert new.selected_transaction_id is None
        assert new.step_index == NO_STEP

    def test_transitions_do_not_mutate(self):
        state = DashboardState(selected_rule_id="R1")
        select_transaction(state, "TXN_001")
        assert state.selected_transaction_id is None

    def test_select_transaction_resets_step(self):
        state = DashboardState(selected_rule_id="R1", selected_transaction_id="TXN_001", step_index=1)
        new = select_transaction(state, "TXN_002")
        assert new.selected_transaction_id == "TXN_002"
        assert new.step_index == NO_STEP
        assert new.selected_rule_id == "R1"

    def test_switch_to_rule_keeps_transaction(self, rules):
        state = DashboardState(selected_rule_id="R1", selected_transaction_id="TXN_001", step_index=1)
        new = switch_to_rule(state, rules, "R2")
        assert new.selected_rule_id == "R2"
        assert new.selected_transaction_id == "TXN_001"
        assert new.step_index == NO_STEP

    def test_switch_to_unknown_rule_keeps_current(self, rules):
        state = DashboardState(selected_rule_id="R1", selected_transaction_id="TXN_001")
        assert switch_to_rule(state, rules, "R404").selected_rule_id == "R1"

    def test_filter_search_and_view(self):
        state = DashboardState()
        assert set_filter(state, "pass").filter_mode == "pass"
        assert set_search(state, "coffee").search_text == "coffee"
        assert set_search(state, None).search_text == ""
        assert switch_view(state, "matrix").view == "matrix"
        with pytest.raises(ValueError):
            set_filter(state, "maybe")
        with pytest.raises(ValueError):
            switch_view(state, "settings")


class TestStepDebugger:
    def _selected(self, step: int = NO_STEP) -> DashboardState:
        return DashboardState(selected_rule_id="R1", selected_transaction_id="TXN_001", step_index=step)

    def test_next_walks_to_last_condition_and_stops(self):
        state = self._selected()
        for expected in (0, 1, 2, 2):
            state = next_step(state, 3)
            assert state.step_index == expected

    def test_prev_stops_at_first_condition(self):
        state = self._selected(2)
        for expected in (1, 0, 0):
            state = prev_step(state)
            assert state.step_index == expected

    def test_prev_from_no_step_stays(self):
        assert prev_step(self._selected()).step_index == NO_STEP

    def test_reset(self):
        assert reset_step(self._selected(2)).step_index == NO_STEP

    def test_stepping_needs_rule_and_transaction(self):
        no_tx = DashboardState(selected_rule_id="R1")
        assert next_step(no_tx, 3) is no_tx
        no_rule = DashboardState(selected_transaction_id="TXN_001", step_index=1)
        assert prev_step(no_rule) is no_rule

    def test_step_controls(self):
        assert step_controls(self._selected(), 3) == (True, False)
        assert step_controls(self._selected(0), 3) == (True, False)
        assert step_controls(self._selected(1), 3) == (False, False)
        assert step_controls(self._selected(2), 3) == (False, True)
        assert step_controls(self._selected(0), 1) == (True, True)
