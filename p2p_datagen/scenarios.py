"""
Scenario packs: named test steps grouped by process area.

Each scenario carries a suggested dataset shape, a policy overlay and the
anomaly percentages that plant the exceptions its test step should find.
The anomaly taxonomy takes test-step names and process areas from here.

Usage:
    config = GeneratorConfig(seed=7)
    apply_scenario(config, "TS-002")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .config import GeneratorConfig


@dataclass
class Scenario:
    """
    One test step.

    Attributes:
        scenario_id: Test-step id, e.g. TS-002
        name: Display name
        description: What the scenario exercises
        vendors: Suggested vendor count
        pos: Suggested PO count
        policy: Policy overlay (pass-through)
        anomalies: Anomaly percentages to plant
        expected_range: Expected (min, max) exception volume
    """

    scenario_id: str
    name: str
    description: str
    vendors: int = 500
    pos: int = 3000
    policy: Dict[str, Any] = field(default_factory=dict)
    anomalies: Dict[str, float] = field(default_factory=dict)
    expected_range: Tuple[int, int] = (0, 50)


@dataclass
class ScenarioPack:
    pack_name: str
    description: str
    scenarios: List[Scenario] = field(default_factory=list)

    def get(self, scenario_id: str) -> Optional[Scenario]:
        for scenario in self.scenarios:
            if scenario.scenario_id == scenario_id:
                return scenario
        return None


_VENDOR_MASTER_PACK = ScenarioPack(
    "vendor_master_pack",
    "Vendor master data quality and compliance scenarios",
    [
        Scenario("TS-001", "Clean Vendor Master", "All vendors with complete PAN, GSTIN, bank verification",
                 1000, 5000, {"require_pan_for_vendor": True, "require_gstin_for_vendor": True,
                              "require_bank_verification": True}),
        Scenario("TS-002", "Missing PAN Compliance", "10% vendors missing PAN", 1000, 5000,
                 {"require_pan_for_vendor": True, "require_gstin_for_vendor": True,
                  "require_bank_verification": True},
                 {"missing_pan_pct": 10}, (100, 120)),
        Scenario("TS-003", "Missing GSTIN Compliance", "15% vendors missing GSTIN", 1000, 5000,
                 {"require_pan_for_vendor": True, "require_gstin_for_vendor": True,
                  "require_bank_verification": True},
                 {"missing_pan_pct": 15}, (150, 170)),
        Scenario("TS-004", "Duplicate PAN Detection", "5% vendors with duplicate PAN", 1000, 5000,
                 {"require_pan_for_vendor": True}, {"duplicate_vendor_pan_pct": 5}, (50, 60)),
        Scenario("TS-005", "Duplicate Bank Account Detection", "3% vendors with duplicate bank accounts",
                 1000, 5000, {"require_bank_verification": True}, {"duplicate_vendor_bank_pct": 3}, (30, 40)),
        Scenario("TS-006", "Unapproved Vendors", "20% vendors created without approval", 1000, 5000,
                 {"require_pan_for_vendor": True, "require_bank_verification": True},
                 {"vendor_without_approval_pct": 20}, (200, 220)),
        Scenario("TS-007", "Unverified Bank Changes", "25% vendors with unverified bank changes", 1000, 5000,
                 {"require_bank_verification": True}, {"bank_change_unverified_pct": 25}, (250, 270)),
        Scenario("TS-012", "Vendor Master with Inactive Usage", "5% inactive vendors used in transactions",
                 1000, 5000, {"require_pan_for_vendor": True}, {"inactive_vendor_used_pct": 5}, (250, 300)),
    ],
)

_PR_CONTROLS_PACK = ScenarioPack(
    "pr_controls_pack",
    "Purchase Requisition control scenarios",
    [
        Scenario("TS-041", "Standard PR Process", "All POs require PR approval", policy={
            "require_pr_for_goods": True, "allow_service_po_without_pr": False,
            "approval_threshold_amount": 50000}),
        Scenario("TS-044", "PR Without Approval", "PRs created without proper approval",
                 policy={"require_pr_for_goods": True, "approval_threshold_amount": 50000},
                 anomalies={"pr_without_approval_pct": 15}, expected_range=(300, 400)),
        Scenario("TS-046", "PR Bypass Scenarios", "POs created without required PR",
                 policy={"require_pr_for_goods": True, "allow_service_po_without_pr": False},
                 anomalies={"pr_bypass_pct": 25}, expected_range=(500, 600)),
        Scenario("TS-052", "PR Duplicate Checks", "Detection of duplicate PRs",
                 policy={"require_pr_for_goods": True}, anomalies={"pr_duplicate_pct": 2}),
        Scenario("TS-060", "PR Audit Scenario", "Comprehensive PR audit scenario",
                 policy={"require_pr_for_goods": True, "allow_service_po_without_pr": False,
                         "approval_threshold_amount": 50000, "multi_level_approval_threshold": 500000,
                         "require_pan_for_vendor": True},
                 anomalies={"missing_pan_pct": 8, "inactive_vendor_used_pct": 5,
                            "vendor_without_approval_pct": 12, "pr_threshold_violation_pct": 10},
                 expected_range=(1250, 1400)),
    ],
)

_PO_CONTROLS_PACK = ScenarioPack(
    "po_controls_pack",
    "Purchase Order control scenarios",
    [
        Scenario("TS-061", "Standard PO Process", "Standard PO with all controls", policy={
            "approval_threshold_amount": 50000, "require_pr_for_goods": True, "goods_require_grn": True}),
        Scenario("TS-062", "PO Approval Violations", "POs exceeding approval thresholds",
                 policy={"approval_threshold_amount": 50000, "multi_level_approval_threshold": 500000},
                 anomalies={"po_approval_violation_pct": 30}, expected_range=(300, 400)),
        Scenario("TS-063", "PO with Inactive Vendors", "POs using inactive vendors",
                 policy={"require_pan_for_vendor": True}, anomalies={"inactive_vendor_used_pct": 8},
                 expected_range=(240, 300)),
        Scenario("TS-064", "PO Without PR", "POs created without required PR",
                 policy={"require_pr_for_goods": True, "allow_service_po_without_pr": False},
                 anomalies={"po_without_pr_pct": 50}, expected_range=(600, 700)),
        Scenario("TS-071", "PO Budget Controls", "POs with budget control checks",
                 policy={"approval_threshold_amount": 50000, "max_po_amount": 5000000},
                 anomalies={"po_threshold_bypass_pct": 100}, expected_range=(0, 100)),
    ],
)

_GRN_CONTROLS_PACK = ScenarioPack(
    "grn_controls_pack",
    "Goods Receipt Note control scenarios",
    [
        Scenario("TS-081", "Standard GRN Process", "All goods POs require GRN",
                 policy={"goods_require_grn": True, "require_quality_check": True}),
        Scenario("TS-082", "GRN Without PO", "GRNs created without valid PO",
                 policy={"goods_require_grn": True}, anomalies={"grn_without_po_pct": 2}),
        Scenario("TS-085", "GRN Delayed Receipt", "GRNs with significant delay from PO",
                 policy={"goods_require_grn": True}, anomalies={"grn_delayed_receipt_pct": 100},
                 expected_range=(150, 250)),
        Scenario("TS-088", "Partial GRN Scenarios", "Multiple partial GRNs for same PO",
                 policy={"goods_require_grn": True, "tolerance_amount": 1000},
                 anomalies={"grn_partial_receipt_pct": 100}, expected_range=(200, 300)),
    ],
)

_INVOICE_PACK = ScenarioPack(
    "invoice_pack",
    "Invoice processing and control scenarios",
    [
        Scenario("TS-116", "Standard Invoice Process", "Standard invoice with all controls", policy={
            "goods_require_grn": True, "invoice_matching_required": True, "tolerance_amount": 1000}),
        Scenario("TS-117", "Invoice Without GRN", "Invoices without required GRN",
                 policy={"goods_require_grn": True}, anomalies={"invoice_without_grn_pct": 12},
                 expected_range=(360, 420)),
        Scenario("TS-118", "Duplicate Invoice Numbers", "Duplicate invoice numbers detected",
                 policy={"invoice_matching_required": True}, anomalies={"duplicate_invoice_number_pct": 3},
                 expected_range=(90, 110)),
        Scenario("TS-120", "Invoice Vendor Compliance", "Invoices with vendor compliance issues",
                 policy={"require_pan_for_vendor": True, "invoice_matching_required": True},
                 anomalies={"missing_pan_pct": 10, "inactive_vendor_used_pct": 6,
                            "invoice_vendor_compliance_pct": 100},
                 expected_range=(480, 570)),
        Scenario("TS-121", "Invoice Approval Violations", "Invoices exceeding approval thresholds",
                 policy={"approval_threshold_amount": 50000, "invoice_matching_required": True},
                 anomalies={"invoice_approval_violation_pct": 20}, expected_range=(300, 400)),
        Scenario("TS-132", "Invoice Vendor Risk", "Invoices with high-risk vendors",
                 policy={"require_pan_for_vendor": True, "require_bank_verification": True,
                         "invoice_matching_required": True},
                 anomalies={"inactive_vendor_used_pct": 8, "bank_change_unverified_pct": 12,
                            "invoice_without_grn_pct": 10},
                 expected_range=(900, 1050)),
    ],
)

_PAYMENT_PACK = ScenarioPack(
    "payment_pack",
    "Payment processing and control scenarios",
    [
        Scenario("TS-136", "Standard Payment Process", "Standard payment with all controls",
                 policy={"payment_terms_days": 30, "require_bank_verification": True}),
        Scenario("TS-137", "Payment Before Invoice Date", "Payments made before invoice date",
                 policy={"payment_terms_days": 30}, anomalies={"payment_before_invoice_pct": 5},
                 expected_range=(128, 150)),
        Scenario("TS-139", "Early Payment Discounts", "Payments with early payment discounts",
                 policy={"payment_terms_days": 30, "early_payment_discount_pct": 2},
                 anomalies={"payment_early_discount_pct": 2}),
        Scenario("TS-142", "Payment Approval Violations", "Payments exceeding approval thresholds",
                 policy={"approval_threshold_amount": 50000, "payment_terms_days": 30},
                 anomalies={"payment_approval_violation_pct": 15}, expected_range=(200, 300)),
        Scenario("TS-150", "Payment High-Volume Scenario", "High-volume payment processing", 2000, 15000,
                 {"payment_terms_days": 30},
                 {"payment_before_invoice_pct": 3, "payment_high_volume_pct": 10}, (405, 480)),
    ],
)

_FRAUD_SOD_PACK = ScenarioPack(
    "fraud_sod_pack",
    "Fraud detection and segregation of duties scenarios",
    [
        Scenario("TS-175", "Fraud - Payment to Inactive Vendors", "Payments made to inactive vendors",
                 policy={"require_pan_for_vendor": True}, anomalies={"inactive_vendor_used_pct": 10},
                 expected_range=(300, 375)),
        Scenario("TS-176", "Fraud - Invoice Without GRN", "Invoices paid without GRN (policy violation)",
                 policy={"goods_require_grn": True}, anomalies={"invoice_without_grn_pct": 15},
                 expected_range=(405, 480)),
        Scenario("TS-177", "Fraud - Payment Before Invoice", "Payments made before invoice date",
                 policy={"payment_terms_days": 30}, anomalies={"payment_before_invoice_pct": 8},
                 expected_range=(216, 260)),
        Scenario("TS-179", "Fraud - Duplicate Vendor Bank Accounts", "Multiple vendors sharing bank accounts",
                 policy={"require_bank_verification": True},
                 anomalies={"duplicate_vendor_bank_pct": 8, "bank_change_unverified_pct": 15},
                 expected_range=(115, 150)),
    ],
)

PACKS: Dict[str, ScenarioPack] = {
    pack.pack_name: pack
    for pack in (
        _VENDOR_MASTER_PACK,
        _PR_CONTROLS_PACK,
        _PO_CONTROLS_PACK,
        _GRN_CONTROLS_PACK,
        _INVOICE_PACK,
        _PAYMENT_PACK,
        _FRAUD_SOD_PACK,
    )
}


def find_scenario(scenario_id: str) -> Optional[Tuple[ScenarioPack, Scenario]]:
    for pack in PACKS.values():
        scenario = pack.get(scenario_id)
        if scenario is not None:
            return pack, scenario
    return None


def get_scenario(scenario_id: str) -> Tuple[ScenarioPack, Scenario]:
    found = find_scenario(scenario_id)
    if found is None:
        raise ValueError(f"Unknown scenario: {scenario_id}")
    return found


def apply_pack(config: GeneratorConfig, pack_name: str) -> GeneratorConfig:
    """Overlay every scenario in a pack (later scenarios win on shared keys)."""
    if pack_name not in PACKS:
        raise ValueError(f"Unknown pack: {pack_name}. Available: {list(PACKS.keys())}")
    config.pack_name = pack_name
    for scenario in PACKS[pack_name].scenarios:
        config.policy.update(scenario.policy)
        config.anomalies.update(scenario.anomalies)
    return config


def apply_scenario(config: GeneratorConfig, scenario_id: str, use_shape: bool = False) -> GeneratorConfig:
    """Overlay one scenario's policy and anomaly settings onto ``config``."""
    pack, scenario = get_scenario(scenario_id)
    config.pack_name = pack.pack_name
    config.scenario_id = scenario.scenario_id
    config.policy.update(scenario.policy)
    config.anomalies.update(scenario.anomalies)
    if use_shape:
        config.vendor_count = scenario.vendors
        config.po_count = scenario.pos
    return config
