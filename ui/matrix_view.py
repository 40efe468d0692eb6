"""
matrix_view.py
---------------
Hit Matrix View: every rule against every transaction.

Layout:
    Header
    Heatmap (transactions × rules)
    Matrix table with a Total Fires column
"""

import streamlit as st
import plotly.graph_objects as go

from core.batch_evaluator import BatchEvaluator


def render_matrix_view(batch: BatchEvaluator):
    """Renders the full Hit Matrix page."""

    st.markdown("""
        <div class="main-header">
            <h1>🧮 Hit Matrix</h1>
            <p>Which rules fire on which transactions</p>
        </div>
    """, unsafe_allow_html=True)

    if not batch.rules or not batch.transactions:
        st.warning("Nothing to show. The matrix needs at least one rule and one transaction.")
        return

    matrix = batch.hit_matrix()
    rule_ids = [rule.rule_id for rule in batch.rules]

    _render_heatmap(batch, matrix, rule_ids)

    st.markdown('<div class="section-title" style="margin-top:20px;">Matrix</div>', unsafe_allow_html=True)
    display_df = matrix.copy()
    for rule_id in rule_ids:
        display_df[rule_id] = display_df[rule_id].map({True: "●", False: "·"})
    display_df = display_df.rename(columns={"total_fires": "Total Fires"}).reset_index()
    display_df = display_df.rename(columns={"transaction_id": "Txn ID"})

    st.dataframe(
        display_df,
        use_container_width=True,
        hide_index=True,
        height=min(600, max(200, len(display_df) * 35 + 40)),
    )
    st.caption("● Rule fires on this transaction   · Rule does not fire")


def _render_heatmap(batch: BatchEvaluator, matrix, rule_ids: list[str]):
    names = {rule.rule_id: rule.name for rule in batch.rules}
    z = matrix[rule_ids].astype(int).values

    fig = go.Figure(go.Heatmap(
        z=z,
        x=rule_ids,
        y=matrix.index.tolist(),
        colorscale=[[0, "#edf1f4"], [1, "#e74c3c"]],
        showscale=False,
        xgap=2,
        ygap=2,
        customdata=[[names[r] for r in rule_ids] for _ in range(len(matrix))],
        hovertemplate="%{y} · %{x}<br>%{customdata}<extra></extra>",
    ))

    fig.update_layout(
        height=max(260, 22 * len(matrix) + 80),
        margin=dict(l=90, r=20, t=10, b=40),
        plot_bgcolor="white",
        paper_bgcolor="#f8fafc",
        xaxis=dict(side="top", tickfont=dict(size=10)),
        yaxis=dict(autorange="reversed", tickfont=dict(size=10)),
    )

    st.plotly_chart(fig, use_container_width=True, config={"displayModeBar": False})
