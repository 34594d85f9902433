"""
State for a single anomaly injection call.

An InjectionSession owns the working copy of the dataset, the anomaly-id
counter, the truth records and the lookup indexes the injectors share. A
new session starts for every ``inject()`` call, so ids restart at
ANOM-000001 each time.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, TypeVar

from ..ids import anomaly_id
from ..models import AnomalyTruthRecord, Invoice, P2PDataset
from ..rng import SeededRandom
from .taxonomy import TestStep, get_test_step, get_test_step_ids

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InjectionSession:
    """Working dataset, shared rng stream and truth-record bookkeeping."""

    def __init__(self, dataset: P2PDataset, rng: SeededRandom):
        self.dataset = dataset
        self.rng = rng
        self.truth_records: List[AnomalyTruthRecord] = []
        self._counter = 0

        # Captured before any mutation so renumbered invoices still resolve
        self.invoice_index: Dict[str, Invoice] = dataset.invoice_index()
        self.vendor_index = dataset.vendor_index()
        self.po_index = dataset.po_index()

    def resolve_test_step(self, key: str) -> Optional[TestStep]:
        """
        Pick the test step for this call: one draw among the mapped ids.

        Returns None (and the anomaly type is skipped) when the key has no
        mapping or the chosen id has no metadata.
        """
        ids = get_test_step_ids(key)
        if not ids:
            logger.warning("No test steps mapped for %s; skipping", key)
            return None
        chosen = ids[int(self.rng.next() * len(ids))]
        step = get_test_step(chosen)
        if step is None:
            logger.warning("No metadata for test step %s (%s); skipping", chosen, key)
        return step

    def fixed_test_step(self, test_step_id: str) -> Optional[TestStep]:
        step = get_test_step(test_step_id)
        if step is None:
            logger.warning("No metadata for test step %s; skipping", test_step_id)
        return step

    def select(self, eligible: Sequence[T], pct: float, minimum: int = 1) -> List[T]:
        """
        ``floor(len(eligible) * pct / 100)`` records from a seeded shuffle.

        Returns an empty list when the count is below ``minimum``.
        """
        count = int(len(eligible) * pct / 100)
        if count < minimum:
            logger.debug("Only %d of %d eligible records selected; nothing to plant", count, len(eligible))
            return []
        return self.rng.shuffle(eligible)[:count]

    def record(
        self,
        step: TestStep,
        entity_type: str,
        entity_id: str,
        planted_fields: List[str],
        summary: str,
        secondary_ids: Optional[Dict[str, Any]] = None,
        notes: str = "",
    ) -> AnomalyTruthRecord:
        self._counter += 1
        truth = AnomalyTruthRecord(
            anomaly_id=anomaly_id(self._counter),
            test_step_id=step.test_step_id,
            test_step_name=step.name,
            process_area=step.process_area,
            entity_type=entity_type,
            entity_id=entity_id,
            secondary_ids=dict(secondary_ids or {}),
            planted_fields=list(planted_fields),
            planted_values_summary=summary,
            expected_flag=True,
            notes=notes,
        )
        self.truth_records.append(truth)
        return truth
