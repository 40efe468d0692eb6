"""
rule_engine.py
---------------
Condition and rule evaluation. This is the core of the debugger: given a
rule and a transaction (plus its feature vector, if any), decide pass/fail
for every condition and for the rule as a whole.

Evaluation is total. Missing values, unparsable numbers and missing feature
vectors all resolve to a failed condition, never to an exception.

Comparison semantics:
    - >, <, >=, <=   Both sides parsed as floats from their leading numeric
                     prefix ("12px" → 12.0). Anything unparsable becomes NaN,
                     and every comparison with NaN is False.
    - ==, !=         Compare string renderings, not typed values. "5" == 5
                     is True, and so is "1500" == 1500.0. Existing rules
                     depend on this.
    - contains       Case-insensitive substring of the rule value in the
                     actual value, both rendered as strings.
    - out_of_hours   Ignores the rule value. Passes when the actual value,
                     read as an hour of day, falls in the configured night
                     window (>= start_hour or <= end_hour).

Usage:
    engine = RuleEngine()
    result = engine.evaluate_rule(rule, transaction, feature_vector)
"""

import math
import re
from typing import Any, Callable, Dict, Optional

from core.models import (
    Condition,
    ConditionResult,
    FeatureVector,
    Operator,
    Rule,
    RuleResult,
    Source,
    Transaction,
)
from config.config_loader import get_evaluation_config


_LEADING_FLOAT = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)


# =============================================================================
# COERCION HELPERS
# =============================================================================

def parse_leading_float(value: Any) -> float:
    """
    Reads a number the lenient way rule authors expect.

    Numbers pass through. Strings are parsed from their leading numeric
    prefix. Booleans, None, empty strings and garbage give NaN.
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, float):
        return value
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf

    match = _LEADING_FLOAT.match(loose_string(value))
    if match is None:
        return math.nan
    text = match.group(1)
    if text.lstrip("+-") == "Infinity":
        return -math.inf if text.startswith("-") else math.inf
    return float(text)


def loose_string(value: Any) -> str:
    """
    Renders a value as rules see it when comparing as text.

    Integral floats drop their trailing ".0" so that 1500.0 and "1500" match.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else loose_string(v) for v in value)
    if isinstance(value, dict):
        return "[object Object]"
    return str(value)


# =============================================================================
# ENGINE
# =============================================================================

class RuleEngine:
    """
    Stateless evaluator for conditions and rules.

    Holds only configuration (not-found marker, out-of-hours window). The
    same engine can be shared across every evaluation in a session.
    """

    def __init__(self):
        config = get_evaluation_config()
        self.not_found_marker: str = config["not_found_marker"]
        self.out_of_hours_start: float = config["out_of_hours"]["start_hour"]
        self.out_of_hours_end: float = config["out_of_hours"]["end_hour"]

        self._comparators: Dict[Operator, Callable[[Any, Any], bool]] = {
            Operator.EQ: lambda actual, expected: loose_string(actual) == loose_string(expected),
            Operator.NE: lambda actual, expected: loose_string(actual) != loose_string(expected),
            Operator.GT: lambda actual, expected: parse_leading_float(actual) > parse_leading_float(expected),
            Operator.LT: lambda actual, expected: parse_leading_float(actual) < parse_leading_float(expected),
            Operator.GE: lambda actual, expected: parse_leading_float(actual) >= parse_leading_float(expected),
            Operator.LE: lambda actual, expected: parse_leading_float(actual) <= parse_leading_float(expected),
            Operator.CONTAINS: self._contains,
            Operator.OUT_OF_HOURS: self._out_of_hours,
        }
        missing = set(Operator) - set(self._comparators)
        if missing:
            raise RuntimeError(f"No comparator registered for operators: {sorted(o.value for o in missing)}")

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def evaluate_condition(
        self,
        condition: Condition,
        transaction: Transaction,
        feature_vector: Optional[FeatureVector] = None,
    ) -> ConditionResult:
        """
        Evaluate one condition against one transaction.

        Returns:
            ConditionResult. A missing value reports the not-found marker
            as the actual value and fails.
        """
        actual = self._lookup(condition, transaction, feature_vector)

        if actual is None:
            return ConditionResult(
                field=condition.field,
                op=condition.op,
                value=condition.value,
                actual=self.not_found_marker,
                passed=False,
                source=condition.source,
            )

        passed = self._comparators[condition.op](actual, condition.value)

        return ConditionResult(
            field=condition.field,
            op=condition.op,
            value=condition.value,
            actual=actual,
            passed=bool(passed),
            source=condition.source,
        )

    def evaluate_rule(
        self,
        rule: Rule,
        transaction: Transaction,
        feature_vector: Optional[FeatureVector] = None,
    ) -> RuleResult:
        """
        Evaluate every condition of a rule. No short-circuit: the debugger
        shows the full breakdown even after the first failure.
        """
        results = tuple(
            self.evaluate_condition(condition, transaction, feature_vector)
            for condition in rule.conditions
        )
        return RuleResult(passed=all(r.passed for r in results), results=results)

    # -------------------------------------------------------------------------
    # INTERNAL
    # -------------------------------------------------------------------------

    @staticmethod
    def _lookup(
        condition: Condition,
        transaction: Transaction,
        feature_vector: Optional[FeatureVector],
    ) -> Any:
        if condition.source is Source.RAW:
            return transaction.get(condition.field)
        if feature_vector is None:
            return None
        return feature_vector.get(condition.field)

    @staticmethod
    def _contains(actual: Any, expected: Any) -> bool:
        return loose_string(expected).lower() in loose_string(actual).lower()

    def _out_of_hours(self, actual: Any, _expected: Any) -> bool:
        hour = parse_leading_float(actual)
        return hour >= self.out_of_hours_start or hour <= self.out_of_hours_end
