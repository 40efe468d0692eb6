"""
table_query.py
---------------
Query helpers behind the transaction table: text search, pass/fail filter,
header counts and the status pill. Pure functions over loaded data; the
Streamlit view only formats what these return.
"""

from typing import Dict, List, Mapping, Optional, Sequence

from core.models import RuleResult, RuleStatus, Transaction
from config.config_loader import get_dashboard_config


FILTER_MODES = ("all", "pass", "fail")


def search_transactions(
    transactions: Sequence[Transaction],
    text: str,
    fields: Sequence[str] | None = None,
) -> List[Transaction]:
    """
    Case-insensitive substring search over a few descriptive fields.

    Args:
        transactions: Transactions to search.
        text: Search text, matched as typed. Empty text returns everything.
        fields: Field names to match against. Defaults to config search_fields.
    """
    needle = (text or "").lower()
    if not needle:
        return list(transactions)

    if fields is None:
        fields = get_dashboard_config()["search_fields"]

    matches = []
    for tx in transactions:
        for name in fields:
            value = tx.get(name)
            if needle in ("" if value is None else str(value)).lower():
                matches.append(tx)
                break
    return matches


def filter_by_outcome(
    transactions: Sequence[Transaction],
    results: Mapping[str, Optional[RuleResult]],
    mode: str,
) -> List[Transaction]:
    """
    Keeps transactions by rule outcome.

    "pass" keeps transactions the rule fires on. "fail" keeps the rest,
    including transactions with no result (no rule selected).
    """
    if mode not in FILTER_MODES:
        raise ValueError(f"Unknown filter mode '{mode}'. Available: {list(FILTER_MODES)}")

    if mode == "all":
        return list(transactions)

    want_pass = mode == "pass"
    kept = []
    for tx in transactions:
        result = results.get(tx.transaction_id)
        fired = result is not None and result.passed
        if fired == want_pass:
            kept.append(tx)
    return kept


def outcome_counts(
    transactions: Sequence[Transaction],
    results: Mapping[str, Optional[RuleResult]],
) -> Dict[str, int]:
    """Pass / fail / total over the full dataset, not the filtered view."""
    passed = sum(
        1 for tx in transactions
        if results.get(tx.transaction_id) is not None and results[tx.transaction_id].passed
    )
    return {"pass": passed, "fail": len(transactions) - passed, "total": len(transactions)}


def status_label(result: Optional[RuleResult]) -> str:
    """Status pill text: FIRES, k/n for a partial match, or miss."""
    if result is None:
        return ""
    status = result.status
    if status is RuleStatus.FIRES:
        return "● FIRES"
    if status is RuleStatus.PARTIAL:
        return f"◐ {result.passed_count}/{result.total_count}"
    return "● miss"


def short_date(txn_date_time: Optional[str]) -> str:
    """'2024-03-15 14:32:00' → '03-15 14:32'. Empty when absent."""
    if not txn_date_time:
        return ""
    return str(txn_date_time)[5:16]
