"""
loader.py
----------
Loads the three input datasets (transactions, feature vectors, rules) from
JSON files and turns them into domain objects.

All three are loaded before anything is returned, so evaluation never runs
on partial data. Shape problems surface here as DatasetError or
RuleDefinitionError; the engine downstream assumes validated input.
"""

import os
import json
import logging
from dataclasses import dataclass
from typing import Any, List

from core.models import DatasetError, FeatureVector, Rule, Transaction
from core.feature_index import FeatureIndex
from core.batch_evaluator import RESERVED_RULE_IDS
from config.config_loader import get_data_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Datasets:
    """The loaded, read-only inputs for one session."""
    transactions: tuple[Transaction, ...]
    feature_index: FeatureIndex
    rules: tuple[Rule, ...]


def resolve_data_paths(data_dir: str) -> dict[str, str]:
    """Returns {dataset_name: file_path} for the configured file names."""
    cfg = get_data_config()
    return {
        "transactions": os.path.join(data_dir, cfg["transactions_file"]),
        "feature_vectors": os.path.join(data_dir, cfg["feature_vectors_file"]),
        "rules": os.path.join(data_dir, cfg["rules_file"]),
    }


def _read_records(path: str) -> List[dict]:
    """Reads a JSON file that must hold a list of objects."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Dataset file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            data: Any = json.load(f)
        except json.JSONDecodeError as e:
            raise DatasetError(f"{path}: invalid JSON ({e})") from e

    if not isinstance(data, list):
        raise DatasetError(f"{path}: expected a JSON array, got {type(data).__name__}")

    for i, record in enumerate(data):
        if not isinstance(record, dict):
            raise DatasetError(f"{path}: record {i} is not an object")

    return data


def _require_transaction_id(path: str, records: List[dict]) -> None:
    for i, record in enumerate(records):
        if record.get("transaction_id") is None:
            raise DatasetError(f"{path}: record {i} has no transaction_id")


def parse_transactions(records: List[dict], path: str = "<transactions>") -> tuple[Transaction, ...]:
    _require_transaction_id(path, records)
    transactions = tuple(Transaction.from_record(r) for r in records)

    seen = set()
    for tx in transactions:
        if tx.transaction_id in seen:
            raise DatasetError(f"{path}: duplicate transaction_id '{tx.transaction_id}'")
        seen.add(tx.transaction_id)

    return transactions


def parse_feature_vectors(records: List[dict], path: str = "<feature_vectors>") -> FeatureIndex:
    _require_transaction_id(path, records)
    return FeatureIndex(FeatureVector.from_record(r) for r in records)


def parse_rules(records: List[dict]) -> tuple[Rule, ...]:
    """Raises RuleDefinitionError (or UnknownOperatorError) on a bad rule."""
    rules = tuple(Rule.from_record(r) for r in records)

    seen = set()
    for rule in rules:
        if rule.rule_id in RESERVED_RULE_IDS:
            raise DatasetError(
                f"rule_id '{rule.rule_id}' is reserved. Reserved ids: {sorted(RESERVED_RULE_IDS)}"
            )
        if rule.rule_id in seen:
            raise DatasetError(f"Duplicate rule_id '{rule.rule_id}'")
        seen.add(rule.rule_id)

    return rules


def load_datasets(data_dir: str) -> Datasets:
    """
    Load and validate all three datasets.

    Args:
        data_dir: Directory holding the three JSON files.

    Returns:
        Datasets with transactions, a feature index and parsed rules.

    Raises:
        FileNotFoundError: A dataset file is missing.
        DatasetError / RuleDefinitionError: A dataset is malformed.
    """
    paths = resolve_data_paths(data_dir)

    # Read everything first; nothing is parsed until all three files are in.
    tx_records = _read_records(paths["transactions"])
    fv_records = _read_records(paths["feature_vectors"])
    rule_records = _read_records(paths["rules"])

    datasets = Datasets(
        transactions=parse_transactions(tx_records, paths["transactions"]),
        feature_index=parse_feature_vectors(fv_records, paths["feature_vectors"]),
        rules=parse_rules(rule_records),
    )

    logger.info(
        f"Loaded {len(datasets.transactions):,} transactions, "
        f"{len(datasets.feature_index):,} feature vectors, {len(datasets.rules):,} rules."
    )
    missing_fv = sum(1 for tx in datasets.transactions if tx.transaction_id not in datasets.feature_index)
    if missing_fv:
        logger.info(f"{missing_fv:,} transaction(s) have no feature vector; derived conditions will fail for them.")

    return datasets
