"""
dashboard_state.py
-------------------
Selection state for the dashboard: which rule and transaction are selected,
the active table filter, the search text, the current view and the step
debugger position.

DashboardState is immutable. Every user action goes through a transition
function that returns a new state; the Streamlit layer stores the latest
one in st.session_state and renders from it.
"""

from dataclasses import dataclass, replace
from typing import Optional, Sequence, Tuple

from core.models import Rule
from core.table_query import FILTER_MODES


VIEWS = ("debug", "matrix", "stats")

# step_index value meaning "no condition highlighted"
NO_STEP = -1


@dataclass(frozen=True)
class DashboardState:
    selected_rule_id: Optional[str] = None
    selected_transaction_id: Optional[str] = None
    filter_mode: str = "all"
    step_index: int = NO_STEP
    search_text: str = ""
    view: str = "debug"


def initial_state(rules: Sequence[Rule]) -> DashboardState:
    """First rule selected, nothing else."""
    return DashboardState(selected_rule_id=rules[0].rule_id if rules else None)


def find_rule(rules: Sequence[Rule], rule_id: Optional[str]) -> Optional[Rule]:
    if rule_id is None:
        return None
    return next((r for r in rules if r.rule_id == rule_id), None)


# =============================================================================
# SELECTION
# =============================================================================

def select_rule(state: DashboardState, rule_id: str) -> DashboardState:
    """Picking a rule from the rule list clears the transaction selection."""
    return replace(state, selected_rule_id=rule_id, selected_transaction_id=None, step_index=NO_STEP)


def select_transaction(state: DashboardState, transaction_id: Optional[str]) -> DashboardState:
    return replace(state, selected_transaction_id=transaction_id, step_index=NO_STEP)


def switch_to_rule(state: DashboardState, rules: Sequence[Rule], rule_id: str) -> DashboardState:
    """
    Jump to another rule from the inspector's all-rules list. The
    transaction stays selected. Unknown ids keep the current rule.
    """
    rule = find_rule(rules, rule_id)
    selected = rule.rule_id if rule is not None else state.selected_rule_id
    return replace(state, selected_rule_id=selected, step_index=NO_STEP)


def set_filter(state: DashboardState, mode: str) -> DashboardState:
    if mode not in FILTER_MODES:
        raise ValueError(f"Unknown filter mode '{mode}'. Available: {list(FILTER_MODES)}")
    return replace(state, filter_mode=mode)


def set_search(state: DashboardState, text: str) -> DashboardState:
    return replace(state, search_text=text or "")


def switch_view(state: DashboardState, view: str) -> DashboardState:
    if view not in VIEWS:
        raise ValueError(f"Unknown view '{view}'. Available: {list(VIEWS)}")
    return replace(state, view=view)


# =============================================================================
# STEP DEBUGGER
# =============================================================================

def _can_step(state: DashboardState) -> bool:
    return state.selected_rule_id is not None and state.selected_transaction_id is not None


def next_step(state: DashboardState, condition_count: int) -> DashboardState:
    """Highlight the next condition, stopping at the last one."""
    if not _can_step(state):
        return state
    if state.step_index < condition_count - 1:
        return replace(state, step_index=state.step_index + 1)
    return state


def prev_step(state: DashboardState) -> DashboardState:
    """Highlight the previous condition, stopping at the first one."""
    if not _can_step(state):
        return state
    if state.step_index > 0:
        return replace(state, step_index=state.step_index - 1)
    return state


def reset_step(state: DashboardState) -> DashboardState:
    return replace(state, step_index=NO_STEP)


def step_controls(state: DashboardState, condition_count: int) -> Tuple[bool, bool]:
    """Returns (prev_disabled, next_disabled) for the step buttons."""
    return state.step_index <= 0, state.step_index >= condition_count - 1
