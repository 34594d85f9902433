"""
Anomaly taxonomy: which test steps an anomaly type is meant to trigger.

ANOMALY_TEST_STEPS maps each anomaly key (without the ``_pct`` suffix) to
one or more test-step ids. Names and process areas come from the scenario
pack catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..scenarios import PACKS


@dataclass(frozen=True)
class TestStep:
    """Metadata written into every truth record."""

    __test__ = False  # not a pytest class

    test_step_id: str
    name: str
    process_area: str


ANOMALY_TEST_STEPS: Dict[str, List[str]] = {
    # Vendor master
    "missing_pan": ["TS-002", "TS-003"],
    "duplicate_vendor_pan": ["TS-004"],
    "duplicate_vendor_bank": ["TS-005", "TS-179"],
    "vendor_without_approval": ["TS-006"],
    "bank_change_unverified": ["TS-007"],
    "inactive_vendor_used": ["TS-012", "TS-063", "TS-132", "TS-142", "TS-175"],
    # Purchase requisitions
    "pr_without_approval": ["TS-041", "TS-044"],
    "pr_bypass": ["TS-046"],
    "pr_duplicate": ["TS-052"],
    "pr_threshold_violation": ["TS-060"],
    # Purchase orders
    "po_approval_violation": ["TS-061", "TS-062"],
    "po_inactive_vendor": ["TS-063"],
    "po_without_pr": ["TS-064"],
    "po_threshold_bypass": ["TS-071"],
    # Goods receipts
    "grn_without_po": ["TS-081", "TS-082"],
    "grn_delayed_receipt": ["TS-085"],
    "grn_partial_receipt": ["TS-088"],
    # Invoices
    "invoice_without_grn": ["TS-116", "TS-117", "TS-176"],
    "duplicate_invoice_number": ["TS-118"],
    "invoice_vendor_compliance": ["TS-120"],
    "invoice_approval_violation": ["TS-121"],
    # Payments
    "payment_before_invoice": ["TS-136", "TS-137", "TS-177"],
    "payment_early_discount": ["TS-139"],
    "payment_approval_violation": ["TS-142"],
    "payment_high_volume": ["TS-150"],
}

# Fan-out ids for transactions that touch a deactivated vendor
INACTIVE_VENDOR_STEPS = {
    "po": "TS-063",
    "invoice": "TS-132",
    "payment": "TS-142",
}


def _build_catalog() -> Dict[str, TestStep]:
    catalog: Dict[str, TestStep] = {}
    for pack in PACKS.values():
        for scenario in pack.scenarios:
            catalog[scenario.scenario_id] = TestStep(scenario.scenario_id, scenario.name, pack.pack_name)
    return catalog


TEST_STEPS: Dict[str, TestStep] = _build_catalog()


def anomaly_name(key: str) -> str:
    """``missing_pan_pct`` -> ``missing_pan``."""
    return key[:-4] if key.endswith("_pct") else key


def get_test_step_ids(key: str) -> List[str]:
    return list(ANOMALY_TEST_STEPS.get(anomaly_name(key), []))


def get_test_step(test_step_id: str) -> Optional[TestStep]:
    return TEST_STEPS.get(test_step_id)
