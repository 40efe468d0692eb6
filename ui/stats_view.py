"""
stats_view.py
--------------
Rule Stats View: per-rule hit rate, flagged count and flagged amount.

Layout:
    Header
    KPI row (rules, transactions, flagged transactions, $ flagged)
    Hit rate chart
    Stat card grid, one card per rule
"""

import html
import streamlit as st
import plotly.graph_objects as go

from core.batch_evaluator import BatchEvaluator
from core.models import RuleStats
from config.config_loader import get_severity_color


def render_stats_view(batch: BatchEvaluator):
    """Renders the full Rule Stats page."""

    st.markdown("""
        <div class="main-header">
            <h1>📊 Rule Stats</h1>
            <p>How often each rule fires, and how much money it touches</p>
        </div>
    """, unsafe_allow_html=True)

    if not batch.rules:
        st.warning("No rules loaded. Check the rules dataset.")
        return

    all_stats = batch.all_rule_stats()

    _render_kpis(batch, all_stats)

    st.markdown('<div class="section-title" style="margin-top:12px;">Hit Rate by Rule</div>', unsafe_allow_html=True)
    _render_hit_rate_chart(all_stats)

    st.markdown('<div class="section-title" style="margin-top:20px;">Rules</div>', unsafe_allow_html=True)
    cols = st.columns(3, gap="small")
    for i, stats in enumerate(all_stats):
        with cols[i % 3]:
            _render_stat_card(stats)


def _render_kpis(batch: BatchEvaluator, all_stats: list[RuleStats]):
    flagged_ids = set()
    for stats in all_stats:
        flagged_ids.update(stats.flagged_transaction_ids)
    total_amount = sum(s.flagged_amount for s in all_stats)

    kpis = [
        ("Rules", f"{len(batch.rules):,}"),
        ("Transactions", f"{len(batch.transactions):,}"),
        ("Flagged by ≥1 rule", f"{len(flagged_ids):,}"),
        ("Flagged $ (sum over rules)", f"${total_amount:,.0f}"),
    ]

    for col, (label, value) in zip(st.columns(4, gap="small"), kpis):
        with col:
            st.markdown(f"""
                <div class="kpi-card">
                    <div class="kpi-value">{value}</div>
                    <div class="kpi-label">{label}</div>
                </div>
            """, unsafe_allow_html=True)


def _render_hit_rate_chart(all_stats: list[RuleStats]):
    """Horizontal bar chart of hit rate per rule, colored by severity."""
    labels = [f"{s.rule.rule_id} · {s.rule.name}" for s in all_stats]
    rates = [s.hit_percent for s in all_stats]
    colors = [get_severity_color(s.rule.severity.value) for s in all_stats]

    fig = go.Figure(go.Bar(
        x=rates,
        y=labels,
        orientation="h",
        marker_color=colors,
        text=[f"{r}%" for r in rates],
        textposition="outside",
        textfont=dict(size=12, color="#2c3e50"),
    ))

    fig.update_layout(
        height=max(220, 40 * len(all_stats) + 60),
        margin=dict(l=220, r=50, t=10, b=20),
        plot_bgcolor="white",
        paper_bgcolor="#f8fafc",
        xaxis=dict(range=[0, 110], showgrid=True, gridcolor="#edf1f4", ticksuffix="%", tickfont=dict(size=10)),
        yaxis=dict(autorange="reversed", showgrid=False, tickfont=dict(size=11, color="#2c3e50")),
        showlegend=False,
    )

    st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})


def _render_stat_card(stats: RuleStats):
    rule = stats.rule
    color = get_severity_color(rule.severity.value)

    st.markdown(f"""
        <div class="kpi-card" style="border-left-color:{color};">
            <div style="font-size:11px; color:#7f8c8d;">
                {html.escape(rule.rule_id)} · <span style="color:{color}; font-weight:600;">{rule.severity.value}</span> · {html.escape(rule.action)}
            </div>
            <div style="font-size:14px; font-weight:600; color:#1a2332; margin:4px 0 10px 0;">{html.escape(rule.name)}</div>
            <div style="display:flex; gap:18px;">
                <div><div class="kpi-label">Hit Rate</div><div class="kpi-value" style="color:{color}">{stats.hit_percent}%</div></div>
                <div><div class="kpi-label">Flagged</div><div class="kpi-value">{stats.pass_count}</div></div>
                <div><div class="kpi-label">Total $</div><div class="kpi-value">${stats.flagged_amount:,.0f}</div></div>
            </div>
            <div class="rule-bar" style="margin-top:10px;">
                <div class="rule-bar-fill" style="width:{stats.hit_percent}%; background:{color}"></div>
            </div>
        </div>
    """, unsafe_allow_html=True)
