"""
models.py
----------
Core domain models. These are the typed contracts between engine layers.

- Transaction / FeatureVector: read-only records loaded from the datasets.
  Field lookup is by name; unknown names resolve to None.

- Rule / Condition: declarative rule definitions. Conditions are ANDed.
  Operator, source and severity are closed enums; unknown values are
  rejected when the rule is parsed, never at evaluation time.

- ConditionResult / RuleResult / RuleStats: derived evaluation output
  consumed by the dashboard and the CLI. Never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


# =============================================================================
# ERRORS
# =============================================================================

class RuleDefinitionError(ValueError):
    """A rule record cannot be turned into a Rule."""


class UnknownOperatorError(RuleDefinitionError):
    """A condition names an operator the engine does not implement."""


class DatasetError(ValueError):
    """A dataset file has the wrong shape (not a list, missing keys, ...)."""


# =============================================================================
# ENUMS
# =============================================================================

class Source(str, Enum):
    RAW = "raw"            # Transaction record
    DERIVED = "derived"    # Feature vector record


class Operator(str, Enum):
    EQ = "=="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    CONTAINS = "contains"
    # Hour-of-day probe. Ignores the condition value.
    OUT_OF_HOURS = "out_of_hours"


class Severity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class RuleStatus(str, Enum):
    FIRES = "fires"        # Every condition passed
    PARTIAL = "partial"    # Some conditions passed
    MISS = "miss"          # No condition passed


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class Transaction:
    """
    One raw transaction. All fields, including transaction_id, stay
    reachable through get() so rules can reference any of them.
    """

    transaction_id: str
    fields: Mapping[str, Any]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Transaction":
        return cls(
            transaction_id=str(record["transaction_id"]),
            fields=MappingProxyType(dict(record)),
        )

    def get(self, name: str) -> Any:
        return self.fields.get(name)

    @property
    def amount(self) -> Any:
        return self.fields.get("amount")

    @property
    def txn_date_time(self) -> Optional[str]:
        return self.fields.get("txn_date_time")


@dataclass(frozen=True)
class FeatureVector:
    """Precomputed derived fields for one transaction."""

    transaction_id: str
    fields: Mapping[str, Any]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "FeatureVector":
        return cls(
            transaction_id=str(record["transaction_id"]),
            fields=MappingProxyType(dict(record)),
        )

    def get(self, name: str) -> Any:
        return self.fields.get(name)


@dataclass(frozen=True)
class Condition:
    field: str
    source: Source
    op: Operator
    value: Any

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Condition":
        if not isinstance(record, Mapping):
            raise RuleDefinitionError(f"Condition must be an object, got {record!r}")
        for key in ("field", "source", "op"):
            if key not in record:
                raise RuleDefinitionError(f"Condition is missing '{key}': {record!r}")

        try:
            source = Source(record["source"])
        except ValueError:
            raise RuleDefinitionError(
                f"Unknown condition source '{record['source']}'. "
                f"Available: {[s.value for s in Source]}"
            ) from None

        try:
            op = Operator(record["op"])
        except ValueError:
            raise UnknownOperatorError(
                f"Unknown operator '{record['op']}' on field '{record['field']}'. "
                f"Available: {[o.value for o in Operator]}"
            ) from None

        return cls(
            field=str(record["field"]),
            source=source,
            op=op,
            value=record.get("value"),
        )


@dataclass(frozen=True)
class Rule:
    """
    A named, severity-tagged AND-combination of conditions.

    Condition order drives display and step-through order only; it never
    changes the outcome.
    """

    rule_id: str
    name: str
    severity: Severity
    action: str
    conditions: tuple[Condition, ...]

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Rule":
        if not isinstance(record, Mapping):
            raise RuleDefinitionError(f"Rule must be an object, got {record!r}")
        missing = [k for k in ("rule_id", "name", "severity", "action", "conditions") if k not in record]
        if missing:
            raise RuleDefinitionError(f"Rule is missing keys {missing}: {record.get('rule_id', '?')}")

        rule_id = str(record["rule_id"])

        try:
            severity = Severity(record["severity"])
        except ValueError:
            raise RuleDefinitionError(
                f"Rule {rule_id}: unknown severity '{record['severity']}'. "
                f"Available: {[s.value for s in Severity]}"
            ) from None

        raw_conditions = record["conditions"]
        if not isinstance(raw_conditions, list) or not raw_conditions:
            raise RuleDefinitionError(f"Rule {rule_id} must have at least one condition.")

        try:
            conditions = tuple(Condition.from_record(c) for c in raw_conditions)
        except UnknownOperatorError as e:
            raise UnknownOperatorError(f"Rule {rule_id}: {e}") from None
        except RuleDefinitionError as e:
            raise RuleDefinitionError(f"Rule {rule_id}: {e}") from None

        return cls(
            rule_id=rule_id,
            name=str(record["name"]),
            severity=severity,
            action=str(record["action"]),
            conditions=conditions,
        )


# =============================================================================
# EVALUATION OUTPUT
# =============================================================================

@dataclass(frozen=True)
class ConditionResult:
    field: str
    op: Operator
    value: Any                       # Expected value as written in the rule
    actual: Any                      # Looked-up value, or the not-found marker
    passed: bool
    source: Source


@dataclass(frozen=True)
class RuleResult:
    """Overall outcome plus the full per-condition breakdown."""

    passed: bool
    results: tuple[ConditionResult, ...]

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def status(self) -> RuleStatus:
        if self.passed:
            return RuleStatus.FIRES
        if self.passed_count > 0:
            return RuleStatus.PARTIAL
        return RuleStatus.MISS


@dataclass
class RuleStats:
    """Aggregate outcome of one rule across the whole transaction set."""

    rule: Rule
    pass_count: int
    total_count: int
    hit_percent: int                 # 0–100, rounded half up. 0 when total_count == 0.
    flagged_amount: float
    flagged_transaction_ids: list[str] = field(default_factory=list)

    @property
    def fail_count(self) -> int:
        return self.total_count - self.pass_count
