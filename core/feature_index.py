"""
feature_index.py
-----------------
Feature vector lookup layer.

Feature vectors arrive as a list. The engine needs them keyed on
transaction_id, so this builds a read-only index once, right after load.
A transaction without a feature vector is valid; lookups return None.
"""

import logging
from typing import Dict, Iterable, Optional

from core.models import FeatureVector

logger = logging.getLogger(__name__)


class FeatureIndex:
    """
    Lookup from transaction_id → FeatureVector.

    Built once at init. Never mutated afterwards.
    """

    def __init__(self, feature_vectors: Iterable[FeatureVector] = ()):
        self._index: Dict[str, FeatureVector] = {}
        self._build(feature_vectors)

    def _build(self, feature_vectors: Iterable[FeatureVector]) -> None:
        duplicates = 0
        for fv in feature_vectors:
            # Later records win, same as a plain list → dict conversion
            if fv.transaction_id in self._index:
                duplicates += 1
            self._index[fv.transaction_id] = fv

        if duplicates:
            logger.warning(f"{duplicates} duplicate feature vector(s) found; kept the last occurrence of each.")

    def get(self, transaction_id: str) -> Optional[FeatureVector]:
        return self._index.get(transaction_id)

    def __contains__(self, transaction_id: str) -> bool:
        return transaction_id in self._index

    def __len__(self) -> int:
        return len(self._index)

    def __repr__(self) -> str:
        return f"FeatureIndex(entries={len(self)})"
