"""
batch_evaluator.py
-------------------
Applies rules across the transaction set.

Two directions, both needed by the dashboard:
    - One rule × all transactions  →  RuleStats (hit count, hit rate, $ flagged)
    - All rules × one transaction  →  list of (Rule, RuleResult), fire count

Plus the full rule × transaction hit matrix as a DataFrame.

Inputs are read-only for the whole session, so each (rule, transaction)
pair is evaluated at most once and the result is reused.
"""

import math
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import pandas as pd

from core.models import Rule, RuleResult, RuleStats, Transaction
from core.feature_index import FeatureIndex
from core.rule_engine import RuleEngine, parse_leading_float

logger = logging.getLogger(__name__)

TOTAL_FIRES_COLUMN = "total_fires"
INDEX_NAME = "transaction_id"

# Matrix column and index names; a rule may not use them as its rule_id.
RESERVED_RULE_IDS = frozenset({TOTAL_FIRES_COLUMN, INDEX_NAME})


def hit_percent(pass_count: int, total_count: int) -> int:
    """
    Percentage of transactions a rule fires on, rounded half up.

    An empty transaction set is 0%, not a division error.
    """
    if total_count == 0:
        return 0
    return int(math.floor(100 * pass_count / total_count + 0.5))


@dataclass
class BatchReport:
    """Everything the stats and matrix views need, computed in one pass."""
    rule_stats: List[RuleStats] = field(default_factory=list)
    hit_matrix: pd.DataFrame = field(default_factory=pd.DataFrame)


class BatchEvaluator:
    """
    Evaluates rules across a fixed, read-only dataset.

    Usage:
        batch = BatchEvaluator(rules, transactions, feature_index)
        stats = batch.all_rule_stats()
        matrix = batch.hit_matrix()
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        transactions: Sequence[Transaction],
        feature_index: FeatureIndex | None = None,
        engine: RuleEngine | None = None,
    ):
        self.rules = list(rules)
        self.transactions = list(transactions)
        self.feature_index = feature_index if feature_index is not None else FeatureIndex()
        self.engine = engine or RuleEngine()
        self._cache: Dict[Tuple[str, str], RuleResult] = {}

    # -------------------------------------------------------------------------
    # SINGLE PAIR
    # -------------------------------------------------------------------------

    def evaluate(self, rule: Rule, transaction: Transaction) -> RuleResult:
        """Evaluates one rule against one transaction, joining its feature vector."""
        key = (rule.rule_id, transaction.transaction_id)
        result = self._cache.get(key)
        if result is None:
            feature_vector = self.feature_index.get(transaction.transaction_id)
            result = self.engine.evaluate_rule(rule, transaction, feature_vector)
            self._cache[key] = result
        return result

    # -------------------------------------------------------------------------
    # ONE RULE × ALL TRANSACTIONS
    # -------------------------------------------------------------------------

    def evaluate_rule_across(self, rule: Rule) -> Dict[str, RuleResult]:
        """Returns {transaction_id: RuleResult} for every transaction."""
        return {tx.transaction_id: self.evaluate(rule, tx) for tx in self.transactions}

    def rule_stats(self, rule: Rule) -> RuleStats:
        """Hit count, hit rate and flagged amount for one rule."""
        flagged = [tx for tx in self.transactions if self.evaluate(rule, tx).passed]

        flagged_amount = 0.0
        for tx in flagged:
            amount = parse_leading_float(tx.amount)
            if not math.isnan(amount):
                flagged_amount += amount

        return RuleStats(
            rule=rule,
            pass_count=len(flagged),
            total_count=len(self.transactions),
            hit_percent=hit_percent(len(flagged), len(self.transactions)),
            flagged_amount=flagged_amount,
            flagged_transaction_ids=[tx.transaction_id for tx in flagged],
        )

    def all_rule_stats(self) -> List[RuleStats]:
        """One RuleStats per rule, in rule order."""
        return [self.rule_stats(rule) for rule in self.rules]

    # -------------------------------------------------------------------------
    # ALL RULES × ONE TRANSACTION
    # -------------------------------------------------------------------------

    def evaluate_transaction(self, transaction: Transaction) -> List[Tuple[Rule, RuleResult]]:
        """Every rule's result against one transaction, in rule order."""
        return [(rule, self.evaluate(rule, transaction)) for rule in self.rules]

    def fire_count(self, transaction: Transaction) -> int:
        """How many rules fire on this transaction."""
        return sum(1 for _, result in self.evaluate_transaction(transaction) if result.passed)

    # -------------------------------------------------------------------------
    # MATRIX
    # -------------------------------------------------------------------------

    def hit_matrix(self) -> pd.DataFrame:
        """
        Rule × transaction hit matrix.

        Returns:
            DataFrame indexed by transaction_id, one boolean column per
            rule_id (in rule order), plus an integer total_fires column.
        """
        columns = [rule.rule_id for rule in self.rules]
        rows = []
        for tx in self.transactions:
            row = {rule.rule_id: self.evaluate(rule, tx).passed for rule in self.rules}
            row[TOTAL_FIRES_COLUMN] = sum(1 for v in row.values() if v)
            rows.append(row)

        matrix = pd.DataFrame(
            rows,
            index=pd.Index([tx.transaction_id for tx in self.transactions], name=INDEX_NAME),
            columns=columns + [TOTAL_FIRES_COLUMN],
        )
        if matrix.empty:
            return matrix.astype({c: bool for c in columns} | {TOTAL_FIRES_COLUMN: int})
        return matrix

    # -------------------------------------------------------------------------
    # EVERYTHING
    # -------------------------------------------------------------------------

    def evaluate_all(self) -> BatchReport:
        """Rule stats and the hit matrix."""
        logger.info(
            f"Evaluating {len(self.rules):,} rules × {len(self.transactions):,} transactions."
        )
        report = BatchReport(
            rule_stats=self.all_rule_stats(),
            hit_matrix=self.hit_matrix(),
        )
        logger.info(
            f"Evaluation complete. {sum(s.pass_count for s in report.rule_stats):,} rule hits in total."
        )
        return report
