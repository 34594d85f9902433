"""
Anomaly injection entry point.

Usage:
    result = inject(dataset, config.anomalies, rng)
    result.dataset          # mutated copy
    result.truth_records    # one per planted anomaly

The caller's dataset is never touched: injection works on a deep copy.
Anomaly types run in ANOMALY_KEYS order and share the given rng stream.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, List

from ..config import ANOMALY_KEYS, AnomalyConfig
from ..models import AnomalyTruthRecord, P2PDataset
from ..rng import SeededRandom
from . import master_data, process
from .session import InjectionSession

logger = logging.getLogger(__name__)

Injector = Callable[[InjectionSession, float, AnomalyConfig], None]

INJECTORS: Dict[str, Injector] = {
    "missing_pan_pct": master_data.inject_missing_pan,
    "duplicate_vendor_pan_pct": master_data.inject_duplicate_vendor_pan,
    "duplicate_vendor_bank_pct": master_data.inject_duplicate_vendor_bank,
    "vendor_without_approval_pct": master_data.inject_vendor_without_approval,
    "bank_change_unverified_pct": master_data.inject_bank_change_unverified,
    "inactive_vendor_used_pct": master_data.inject_inactive_vendor_used,
    "duplicate_invoice_number_pct": master_data.inject_duplicate_invoice_number,
    "invoice_without_grn_pct": master_data.inject_invoice_without_grn,
    "payment_before_invoice_pct": master_data.inject_payment_before_invoice,
    "pr_without_approval_pct": process.inject_pr_without_approval,
    "pr_bypass_pct": process.inject_pr_bypass,
    "pr_duplicate_pct": process.inject_pr_duplicate,
    "pr_threshold_violation_pct": process.inject_pr_threshold_violation,
    "po_approval_violation_pct": process.inject_po_approval_violation,
    "po_inactive_vendor_pct": process.inject_po_inactive_vendor,
    "po_without_pr_pct": process.inject_po_without_pr,
    "po_threshold_bypass_pct": process.inject_po_threshold_bypass,
    "grn_without_po_pct": process.inject_grn_without_po,
    "grn_delayed_receipt_pct": process.inject_grn_delayed_receipt,
    "grn_partial_receipt_pct": process.inject_grn_partial_receipt,
    "invoice_vendor_compliance_pct": process.inject_invoice_vendor_compliance,
    "invoice_approval_violation_pct": process.inject_invoice_approval_violation,
    "payment_early_discount_pct": process.inject_payment_early_discount,
    "payment_approval_violation_pct": process.inject_payment_approval_violation,
    "payment_high_volume_pct": process.inject_payment_high_volume,
}


@dataclass
class InjectionResult:
    """Mutated dataset copy and the truth records describing every change."""

    dataset: P2PDataset
    truth_records: List[AnomalyTruthRecord] = field(default_factory=list)

    def counts_by_test_step(self) -> Dict[str, int]:
        return dict(sorted(Counter(t.test_step_id for t in self.truth_records).items()))


def inject(dataset: P2PDataset, config: AnomalyConfig, rng: SeededRandom) -> InjectionResult:
    """
    Plant the configured anomalies into a copy of ``dataset``.

    Keys left as None or 0 are skipped without drawing from ``rng``.
    """
    session = InjectionSession(dataset.copy(), rng)

    for key in ANOMALY_KEYS:
        pct = config.get(key)
        if not pct:
            continue
        before = len(session.truth_records)
        INJECTORS[key](session, pct, config)
        logger.info("%s=%s: %d anomalies planted", key, pct, len(session.truth_records) - before)

    logger.info("Injection complete: %d truth records", len(session.truth_records))
    return InjectionResult(dataset=session.dataset, truth_records=session.truth_records)
