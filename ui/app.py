"""
app.py
-------
Streamlit application entry point for the Rule Debugger.

Run from the project root:
    streamlit run ui/app.py

Architecture:
    - Datasets are loaded once per data directory and cached with
      st.cache_resource. All three files must load before anything renders.
    - Selection state lives in a single immutable DashboardState kept in
      st.session_state and replaced through pure transitions.
    - Sidebar handles navigation. Each view is a separate module.
"""

import sys
import os
import streamlit as st

# Ensure project root is on path regardless of where streamlit is invoked
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from pipeline import RuleEvaluationPipeline, default_data_dir
from core.batch_evaluator import BatchEvaluator
from core.models import DatasetError, RuleDefinitionError
from core.dashboard_state import initial_state, switch_view
from config.config_loader import get_dashboard_config
from ui.debug_view import render_debug_view
from ui.matrix_view import render_matrix_view
from ui.stats_view import render_stats_view


# =============================================================================
# PAGE CONFIG
# =============================================================================

st.set_page_config(
    page_title=get_dashboard_config()["page_title"],
    page_icon="🧪",
    layout="wide",
    initial_sidebar_state="expanded",
)


# =============================================================================
# CUSTOM CSS
# =============================================================================

st.markdown("""
<style>
    .stApp {
        font-family: 'Segoe UI', system-ui, sans-serif;
        background-color: #f4f6f9;
    }

    [data-testid="stSidebar"] {
        background-color: #1a2332 !important;
    }
    [data-testid="stSidebar"] * {
        color: #c8d6e5 !important;
    }

    .main-header {
        background: linear-gradient(135deg, #1a2332 0%, #2c3e50 100%);
        color: white;
        padding: 16px 26px;
        border-radius: 12px;
        margin-bottom: 18px;
    }
    .main-header h1 { margin: 0; font-size: 22px; font-weight: 600; }
    .main-header p  { margin: 4px 0 0 0; opacity: 0.7; font-size: 13px; }

    .section-title {
        font-size: 12px;
        font-weight: 600;
        color: #1a2332;
        text-transform: uppercase;
        letter-spacing: 0.8px;
        padding-bottom: 6px;
        border-bottom: 2px solid #edf1f4;
        margin-bottom: 10px;
    }

    /* Rule list */
    .rule-meta { display: flex; gap: 8px; align-items: center; font-size: 11px; margin: -6px 0 4px 0; }
    .rule-bar { height: 4px; background: #edf1f4; border-radius: 2px; margin-bottom: 12px; }
    .rule-bar-fill { height: 4px; border-radius: 2px; }
    .sev-tag {
        display: inline-block; padding: 1px 8px; border-radius: 10px;
        font-size: 10px; font-weight: 600; text-transform: uppercase; color: white;
    }

    /* Status pills */
    .pill-pass    { color: #c0392b; font-weight: 700; }
    .pill-partial { color: #e67e22; font-weight: 600; }
    .pill-fail    { color: #95a5a6; }

    /* Inspector */
    .condition-row {
        display: flex; gap: 10px; padding: 8px 12px; border-radius: 8px;
        margin-bottom: 6px; border: 1px solid #edf1f4; background: white;
        font-family: 'Consolas', monospace; font-size: 12px;
    }
    .condition-row.pass { border-left: 4px solid #27ae60; }
    .condition-row.fail { border-left: 4px solid #e74c3c; }
    .condition-row.step-active { box-shadow: 0 0 0 2px #3498db; background: #eaf2f8; }
    .cond-source {
        font-size: 10px; padding: 1px 6px; border-radius: 6px; margin-left: 6px;
    }
    .src-raw  { background: #eef2f7; color: #2c3e50; }
    .src-feat { background: #f4ecf7; color: #8e44ad; }
    .cond-actual { color: #7f8c8d; font-size: 11px; margin-top: 2px; }

    .verdict-box {
        display: flex; justify-content: space-between; align-items: center;
        padding: 10px 14px; border-radius: 8px; margin: 10px 0; font-weight: 700; font-size: 13px;
    }
    .verdict-pass { background: #fdecea; color: #c0392b; }
    .verdict-fail { background: #eef2f7; color: #5a6a7a; }

    .feature-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 6px; margin-bottom: 14px; }
    .feature-cell { background: white; border: 1px solid #edf1f4; border-radius: 6px; padding: 6px 10px; }
    .feature-key  { font-size: 10px; color: #7f8c8d; text-transform: uppercase; }
    .feature-val  { font-size: 12px; color: #1a2332; font-family: 'Consolas', monospace; word-break: break-all; }

    /* KPI / stat cards */
    .kpi-card {
        background: white; border-radius: 10px; padding: 14px 18px;
        box-shadow: 0 2px 8px rgba(0,0,0,0.06); border-left: 4px solid #3498db;
        margin-bottom: 12px;
    }
    .kpi-value { font-size: 24px; font-weight: 700; color: #1a2332; line-height: 1.2; }
    .kpi-label { font-size: 11px; color: #7f8c8d; text-transform: uppercase; letter-spacing: 0.5px; margin-top: 4px; }
</style>
""", unsafe_allow_html=True)


# =============================================================================
# DATA LOADING & CACHING
# =============================================================================

@st.cache_resource(show_spinner="Loading datasets and evaluating rules...")
def load_batch(data_dir: str) -> BatchEvaluator:
    """Loads the three datasets once per data directory."""
    return RuleEvaluationPipeline(data_dir=data_dir).load()


def initialize_data() -> BatchEvaluator:
    """
    Loads datasets (cached) and seeds the dashboard state on first visit.
    Stops the page with an error if any dataset is missing or malformed.
    """
    data_dir = default_data_dir()
    try:
        batch = load_batch(data_dir)
    except FileNotFoundError as e:
        st.error(f"❌ {e}")
        st.stop()
    except (DatasetError, RuleDefinitionError) as e:
        st.error(f"❌ Malformed dataset: {e}")
        st.stop()

    if "dashboard_state" not in st.session_state:
        st.session_state["dashboard_state"] = initial_state(batch.rules)

    return batch


# =============================================================================
# SIDEBAR
# =============================================================================

def _go_to(view: str):
    st.session_state["dashboard_state"] = switch_view(st.session_state["dashboard_state"], view)


def render_sidebar(batch: BatchEvaluator):
    """Renders the sidebar navigation and dataset footer."""

    st.sidebar.markdown(f"""
        <div style="padding: 10px 0 20px 0; text-align: center;">
            <div style="font-size: 22px; font-weight: 700; color: #fff;">🧪 {get_dashboard_config()["page_title"]}</div>
            <div style="font-size: 11px; color: #7f8c8d; margin-top: 2px;">Rule × transaction inspector</div>
        </div>
    """, unsafe_allow_html=True)

    pages = {
        "🔬  Debugger": "debug",
        "🧮  Hit Matrix": "matrix",
        "📊  Rule Stats": "stats",
    }
    for label, key in pages.items():
        st.sidebar.button(
            label, key=f"nav_{key}", use_container_width=True,
            on_click=_go_to, args=(key,),
        )

    st.sidebar.markdown("<hr style='border-color:#2c3e50; margin: 20px 0 12px 0;'>", unsafe_allow_html=True)
    n_fv = sum(1 for tx in batch.transactions if tx.transaction_id in batch.feature_index)
    st.sidebar.markdown(f"""
        <div style='font-size:11px; color:#5a6a7a; line-height:1.6;'>
            <b style='color:#8a9bb0;'>Dataset</b><br>
            {len(batch.transactions):,} transactions<br>
            {n_fv:,} with feature vectors<br>
            {len(batch.rules):,} rules
        </div>
    """, unsafe_allow_html=True)


# =============================================================================
# MAIN APP
# =============================================================================

def main():
    batch = initialize_data()
    render_sidebar(batch)

    view = st.session_state["dashboard_state"].view

    if view == "debug":
        render_debug_view(batch)
    elif view == "matrix":
        render_matrix_view(batch)
    elif view == "stats":
        render_stats_view(batch)


if __name__ == "__main__":
    main()
