"""
debug_view.py
--------------
Debugger View — the main working screen.

Layout:
    Header
    Left column:   Rule list (severity, action, condition count, hits, hit bar)
    Middle column: Transaction table (search, all/pass/fail filter, status pill)
    Right column:  Inspector → Conditions + step debugger → Verdict
                   → Feature vector → Raw fields → All rules vs. this transaction
"""

import html
import streamlit as st
import pandas as pd

from core.batch_evaluator import BatchEvaluator
from core.models import ConditionResult, Rule, RuleResult, Source, Transaction
from core.table_query import (
    FILTER_MODES,
    filter_by_outcome,
    outcome_counts,
    search_transactions,
    short_date,
    status_label,
)
from core.dashboard_state import (
    DashboardState,
    find_rule,
    next_step,
    prev_step,
    reset_step,
    select_rule,
    select_transaction,
    set_filter,
    set_search,
    step_controls,
    switch_to_rule,
)
from config.config_loader import get_dashboard_config, get_severity_color


def _state() -> DashboardState:
    return st.session_state["dashboard_state"]


def _dispatch(transition, *args):
    """Applies a state transition. Used as a widget callback."""
    st.session_state["dashboard_state"] = transition(_state(), *args)


def render_debug_view(batch: BatchEvaluator):
    """Renders the full Debugger page."""

    st.markdown("""
        <div class="main-header">
            <h1>🔬 Rule Debugger</h1>
            <p>Pick a rule, pick a transaction, and step through every condition</p>
        </div>
    """, unsafe_allow_html=True)

    if not batch.rules:
        st.warning("No rules loaded. Check the rules dataset.")
        return

    state = _state()
    rule = find_rule(batch.rules, state.selected_rule_id)

    col_rules, col_table, col_inspector = st.columns([1, 2, 1.6], gap="medium")

    with col_rules:
        _render_rule_list(batch, state)

    with col_table:
        _render_transaction_table(batch, state, rule)

    with col_inspector:
        _render_inspector(batch, _state(), rule)


# =============================================================================
# RULE LIST
# =============================================================================

def _render_rule_list(batch: BatchEvaluator, state: DashboardState):
    st.markdown(
        f'<div class="section-title">Rules · {len(batch.rules)} rules</div>',
        unsafe_allow_html=True,
    )

    for rule in batch.rules:
        stats = batch.rule_stats(rule)
        color = get_severity_color(rule.severity.value)
        is_active = rule.rule_id == state.selected_rule_id

        st.button(
            f"{'▶ ' if is_active else ''}{rule.rule_id} · {rule.name}",
            key=f"rule_btn_{rule.rule_id}",
            use_container_width=True,
            type="primary" if is_active else "secondary",
            help=f"Action: {rule.action}",
            on_click=_dispatch,
            args=(select_rule, rule.rule_id),
        )
        st.markdown(f"""
            <div class="rule-meta">
                <span class="sev-tag" style="background:{color}">{rule.severity.value}</span>
                <span style="color:#7f8c8d">{html.escape(rule.action)} · {len(rule.conditions)} conditions</span>
                <span style="margin-left:auto; font-weight:700; color:#1a2332">{stats.pass_count} hits</span>
            </div>
            <div class="rule-bar">
                <div class="rule-bar-fill" style="width:{stats.hit_percent}%; background:{color}"></div>
            </div>
        """, unsafe_allow_html=True)


# =============================================================================
# TRANSACTION TABLE
# =============================================================================

def _render_transaction_table(batch: BatchEvaluator, state: DashboardState, rule: Rule | None):
    st.markdown('<div class="section-title">Transactions</div>', unsafe_allow_html=True)

    col_search, col_filter = st.columns([2, 1.3], gap="small")

    # Keep widgets in step with the state container
    st.session_state["search_input"] = state.search_text
    st.session_state["filter_radio"] = state.filter_mode

    with col_search:
        st.text_input(
            "Search",
            placeholder="ID, merchant, type or country",
            key="search_input",
            on_change=lambda: _dispatch(set_search, st.session_state["search_input"]),
        )
    with col_filter:
        st.radio(
            "Filter",
            options=list(FILTER_MODES),
            horizontal=True,
            key="filter_radio",
            on_change=lambda: _dispatch(set_filter, st.session_state["filter_radio"]),
        )

    results: dict[str, RuleResult | None]
    if rule is not None:
        results = dict(batch.evaluate_rule_across(rule))
    else:
        results = {tx.transaction_id: None for tx in batch.transactions}

    visible = search_transactions(batch.transactions, state.search_text)
    visible = filter_by_outcome(visible, results, state.filter_mode)

    counts = outcome_counts(batch.transactions, results)
    st.markdown(f"""
        <div style="font-size:12px; margin-bottom:8px;">
            <span class="pill-pass">{counts['pass']} pass</span> ·
            <span class="pill-fail">{counts['fail']} fail</span> ·
            <span style="color:#1a2332">{counts['total']} total</span>
        </div>
    """, unsafe_allow_html=True)

    if not visible:
        st.info("No transactions match the current search and filter.")
        return

    rows = []
    for tx in visible:
        rows.append({
            "Txn ID": tx.transaction_id,
            "Date": short_date(tx.txn_date_time),
            "Amount": tx.amount,
            "Currency": tx.get("currency"),
            "Type": tx.get("transaction_type"),
            "Merchant": tx.get("merchant_description"),
            "Country": tx.get("merchant_country"),
            "Status": status_label(results.get(tx.transaction_id)),
        })
    st.dataframe(
        pd.DataFrame(rows),
        use_container_width=True,
        hide_index=True,
        height=min(460, max(160, len(rows) * 35 + 40)),
    )

    # Row selection
    options = [None] + [tx.transaction_id for tx in visible]
    st.session_state["tx_select"] = state.selected_transaction_id if state.selected_transaction_id in options else None
    st.selectbox(
        "Inspect transaction",
        options=options,
        format_func=lambda tx_id: "— Pick a transaction —" if tx_id is None else tx_id,
        key="tx_select",
        on_change=lambda: _dispatch(select_transaction, st.session_state["tx_select"]),
    )


# =============================================================================
# INSPECTOR
# =============================================================================

def _find_transaction(batch: BatchEvaluator, transaction_id: str | None) -> Transaction | None:
    if transaction_id is None:
        return None
    return next((tx for tx in batch.transactions if tx.transaction_id == transaction_id), None)


def _render_inspector(batch: BatchEvaluator, state: DashboardState, rule: Rule | None):
    st.markdown(
        f'<div class="section-title">Inspector · {rule.rule_id if rule else "no rule"}</div>',
        unsafe_allow_html=True,
    )

    tx = _find_transaction(batch, state.selected_transaction_id)
    if tx is None:
        st.markdown("""
            <div style="background:#f0f4f8; border-radius:8px; padding:30px; text-align:center; color:#7f8c8d;">
                <div style="font-size:22px;">◎</div>
                <div>Select a transaction</div>
                <div style="font-size:11px; margin-top:4px;">Pick any row to inspect</div>
            </div>
        """, unsafe_allow_html=True)
        return

    st.markdown(f"""
        <div style="margin-bottom:12px;">
            <div style="font-size:16px; font-weight:700; color:#1a2332; font-family:Consolas, monospace;">{html.escape(tx.transaction_id)}</div>
            <div style="font-size:11px; color:#7f8c8d;">
                {html.escape(str(tx.txn_date_time))} · {html.escape(str(tx.get("merchant_country")))} · {html.escape(str(tx.get("transaction_type")))}
            </div>
        </div>
    """, unsafe_allow_html=True)

    if rule is not None:
        _render_conditions(batch.evaluate(rule, tx), rule, state)

    _render_feature_vector(batch, tx)
    _render_raw_fields(tx)
    _render_all_rules(batch, tx)


def _render_conditions(result: RuleResult, rule: Rule, state: DashboardState):
    st.markdown(f'<div class="section-title">{html.escape(rule.name)}</div>', unsafe_allow_html=True)

    rows_html = "".join(
        _condition_row_html(r, active=(i == state.step_index))
        for i, r in enumerate(result.results)
    )
    st.markdown(rows_html, unsafe_allow_html=True)

    verdict_class = "verdict-pass" if result.passed else "verdict-fail"
    verdict_text = "● RULE FIRES" if result.passed else "● RULE DOES NOT FIRE"
    st.markdown(f"""
        <div class="verdict-box {verdict_class}">
            <span>{verdict_text}</span>
            <span style="font-size:10px; opacity:0.7">{result.passed_count} / {result.total_count} conditions met</span>
        </div>
    """, unsafe_allow_html=True)

    # --- Step debugger ---
    prev_disabled, next_disabled = step_controls(state, result.total_count)
    st.caption("Step through each condition one by one ↓")
    col_prev, col_next, col_reset = st.columns(3, gap="small")
    with col_prev:
        st.button("← Prev", key="step_prev", disabled=prev_disabled,
                  use_container_width=True, on_click=_dispatch, args=(prev_step,))
    with col_next:
        st.button("Next →", key="step_next", disabled=next_disabled,
                  use_container_width=True, on_click=_dispatch, args=(next_step, result.total_count))
    with col_reset:
        st.button("Reset", key="step_reset", type="primary",
                  use_container_width=True, on_click=_dispatch, args=(reset_step,))


def _condition_row_html(result: ConditionResult, active: bool) -> str:
    if result.source is Source.RAW:
        source_tag = '<span class="cond-source src-raw">transactions</span>'
    else:
        source_tag = '<span class="cond-source src-feat">feature_vectors</span>'

    pass_class = "pass" if result.passed else "fail"
    icon = "✓" if result.passed else "✗"
    step_class = "step-active" if active else ""

    return f"""
        <div class="condition-row {pass_class} {step_class}">
            <span>{icon}</span>
            <div>
                <div>
                    <b>{html.escape(result.field)}</b>
                    <span style="color:#8e44ad"> {html.escape(result.op.value)} </span>
                    <span>{html.escape(str(result.value))}</span>
                    {source_tag}
                </div>
                <div class="cond-actual">actual value → <b>{html.escape(str(result.actual))}</b></div>
            </div>
        </div>
    """


def _render_feature_vector(batch: BatchEvaluator, tx: Transaction):
    st.markdown('<div class="section-title" style="margin-top:16px;">Feature vector · computed fields</div>',
                unsafe_allow_html=True)

    fv = batch.feature_index.get(tx.transaction_id)
    if fv is None:
        cells = """
            <div class="feature-cell" style="grid-column:span 2">
                <div class="feature-key" style="color:#e74c3c">No feature vector found for this transaction</div>
            </div>"""
    else:
        cells = "".join(_feature_cell_html(k, v) for k, v in fv.fields.items())

    st.markdown(f'<div class="feature-grid">{cells}</div>', unsafe_allow_html=True)


def _render_raw_fields(tx: Transaction):
    st.markdown('<div class="section-title">Transaction · raw fields</div>', unsafe_allow_html=True)
    fields = get_dashboard_config()["inspector_raw_fields"]
    cells = "".join(_feature_cell_html(name, tx.get(name)) for name in fields)
    st.markdown(f'<div class="feature-grid">{cells}</div>', unsafe_allow_html=True)


def _feature_cell_html(key: str, value) -> str:
    return f"""
        <div class="feature-cell">
            <div class="feature-key">{html.escape(str(key))}</div>
            <div class="feature-val">{html.escape(str(value))}</div>
        </div>"""


def _render_all_rules(batch: BatchEvaluator, tx: Transaction):
    """Every rule against this transaction. Clicking one switches the selected rule."""
    fires = batch.fire_count(tx)
    st.markdown(
        f'<div class="section-title">All rules vs. this transaction · fires {fires} of {len(batch.rules)}</div>',
        unsafe_allow_html=True,
    )

    for rule, result in batch.evaluate_transaction(tx):
        label = f"{'● FIRES' if result.passed else '○ miss'} · {rule.name}"
        st.button(
            label,
            key=f"all_rules_{rule.rule_id}",
            use_container_width=True,
            on_click=_dispatch,
            args=(switch_to_rule, batch.rules, rule.rule_id),
        )
