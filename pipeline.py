"""
pipeline.py
------------
Main orchestration layer. Wires together:
    1. Dataset loading      →  transactions, feature index, rules
    2. Batch evaluation     →  rule stats, hit matrix, fire counts
    3. Output serialization →  flat DataFrames for CSV export

The dashboard and the CLI both go through here.

Usage:
    from pipeline import RuleEvaluationPipeline

    pipeline = RuleEvaluationPipeline(data_dir="data")
    stats_df, matrix_df = pipeline.run()
"""

import os
import logging
from typing import List, Tuple

import pandas as pd

from core.models import RuleStats
from core.loader import Datasets, load_datasets
from core.batch_evaluator import BatchEvaluator, BatchReport
from config.config_loader import get_data_config

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.dirname(os.path.abspath(__file__))

RULE_STATS_COLUMNS = [
    "rule_id", "name", "severity", "action", "condition_count",
    "pass_count", "fail_count", "total_count", "hit_percent", "flagged_amount",
]


def default_data_dir() -> str:
    """Configured data directory, resolved against the project root."""
    data_dir = get_data_config()["data_dir"]
    return data_dir if os.path.isabs(data_dir) else os.path.join(PROJECT_ROOT, data_dir)


class RuleEvaluationPipeline:
    """
    End-to-end evaluation: load once, evaluate everything, serialize.
    """

    def __init__(self, data_dir: str | None = None, rule_ids: List[str] | None = None):
        """
        Args:
            data_dir: Directory with the three JSON datasets. Defaults to config.
            rule_ids: Restrict evaluation to these rules. None means all rules.
        """
        self.data_dir = data_dir or default_data_dir()
        self.rule_ids = rule_ids
        self.datasets: Datasets | None = None
        self.batch: BatchEvaluator | None = None

        logger.info(f"Pipeline initialized. Data dir: {self.data_dir}.")

    # -------------------------------------------------------------------------
    # PUBLIC INTERFACE
    # -------------------------------------------------------------------------

    def load(self) -> BatchEvaluator:
        """Load the datasets and build the batch evaluator. Idempotent."""
        if self.batch is not None:
            return self.batch

        self.datasets = load_datasets(self.data_dir)
        rules = list(self.datasets.rules)

        if self.rule_ids:
            known = {r.rule_id for r in rules}
            unknown = [rid for rid in self.rule_ids if rid not in known]
            if unknown:
                raise KeyError(f"Unknown rule id(s) {unknown}. Available: {sorted(known)}")
            rules = [r for r in rules if r.rule_id in self.rule_ids]

        self.batch = BatchEvaluator(rules, self.datasets.transactions, self.datasets.feature_index)
        return self.batch

    def run(self) -> Tuple[pd.DataFrame, pd.DataFrame]:
        """
        Run the full evaluation.

        Returns:
            (rule_stats_df, hit_matrix_df). The matrix keeps transaction_id
            as a regular column so it round-trips through CSV.
        """
        batch = self.load()

        report = batch.evaluate_all()
        logger.info(f"Stage 2 complete. Rules evaluated: {len(report.rule_stats):,}.")

        stats_df = self.serialize_rule_stats(report.rule_stats)
        matrix_df = self._serialize_matrix(report)
        logger.info(f"Pipeline complete. Stats rows: {len(stats_df):,}, matrix rows: {len(matrix_df):,}.")

        return stats_df, matrix_df

    # -------------------------------------------------------------------------
    # OUTPUT SERIALIZATION
    # -------------------------------------------------------------------------

    @staticmethod
    def serialize_rule_stats(rule_stats: List[RuleStats]) -> pd.DataFrame:
        """One row per rule, in rule order."""
        if not rule_stats:
            return pd.DataFrame(columns=RULE_STATS_COLUMNS)

        rows = []
        for s in rule_stats:
            rows.append({
                "rule_id": s.rule.rule_id,
                "name": s.rule.name,
                "severity": s.rule.severity.value,
                "action": s.rule.action,
                "condition_count": len(s.rule.conditions),
                "pass_count": s.pass_count,
                "fail_count": s.fail_count,
                "total_count": s.total_count,
                "hit_percent": s.hit_percent,
                "flagged_amount": round(s.flagged_amount, 2),
            })
        return pd.DataFrame(rows, columns=RULE_STATS_COLUMNS)

    @staticmethod
    def _serialize_matrix(report: BatchReport) -> pd.DataFrame:
        return report.hit_matrix.reset_index()
