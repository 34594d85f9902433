"""
Post-generation constraint pass and dataset validator.

The constraint pass runs once after all base entities exist and before
anomaly injection. It applies, in order:

1. Vendor concentration: the earliest-created vendors receive a target
   share of POs.
2. Goods/service split: only the top POs by value are goods; GRNs of
   service POs are removed.
3. Invoice arithmetic: total_amount = round(invoice_amount + tax_amount, 2).
4. Due and payment dates: missing due dates are filled from credit days
   and payments dated before their invoice are clamped forward.

The validator re-derives the same properties independently, adds the
referential and date-order checks, and reports violations per category.
It never changes the dataset.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, List, Optional, Set

from ..config import ConstraintConfig
from ..models import P2PDataset, PurchaseOrder, Vendor
from ..rng import SeededRandom

logger = logging.getLogger(__name__)

VIOLATION_CATEGORIES = (
    "vendor_distribution",
    "goods_service_grn",
    "invoice_amount",
    "payment_due_date",
    "po_grn_linkage",
    "po_invoice_linkage",
    "invoice_payment_linkage",
    "date_sequencing",
)


def top_vendor_cohort(vendors: List[Vendor], ratio: float) -> List[Vendor]:
    """Earliest-created ``max(1, floor(n * ratio))`` vendors."""
    ordered = sorted(vendors, key=lambda v: v.created_date)
    return ordered[: max(1, int(len(vendors) * ratio))]


def goods_po_numbers(purchase_orders: List[PurchaseOrder], ratio: float) -> Set[str]:
    """Top ``floor(n * ratio)`` POs by total amount."""
    ranked = sorted(purchase_orders, key=lambda po: po.total_amount, reverse=True)
    return {po.po_no for po in ranked[: int(len(purchase_orders) * ratio)]}


# =============================================================================
# CONSTRAINT PASS
# =============================================================================

def _reassign_vendor(po: PurchaseOrder, vendor: Vendor, links: Dict) -> None:
    """Move a PO and its downstream documents to ``vendor``."""
    po.vendor_id = vendor.vendor_id
    if po.contract_id is not None and links["contract_vendor"].get(po.contract_id) != vendor.vendor_id:
        po.contract_id = None
    for grn in links["grns"].get(po.po_no, []):
        grn.vendor_id = vendor.vendor_id
    for quotation in links["quotations"].get(po.po_no, []):
        if quotation.is_selected:
            quotation.vendor_id = vendor.vendor_id
    for invoice in links["invoices"].get(po.po_no, []):
        invoice.vendor_id = vendor.vendor_id
        for payment in links["payments"].get(invoice.invoice_no, []):
            payment.vendor_id = vendor.vendor_id
            payment.bank_account = vendor.bank_account
            payment.ifsc = vendor.ifsc


def enforce_vendor_concentration(dataset: P2PDataset, config: ConstraintConfig, rng: SeededRandom) -> int:
    """
    Single pass over POs with running quotas for the top cohort and the rest.

    Replacement vendors are drawn from the active members of a cohort.
    Returns the number of POs reassigned.
    """
    top = top_vendor_cohort(dataset.vendors, config.top_vendor_ratio)
    top_ids = {v.vendor_id for v in top}
    top_pool = [v for v in top if v.is_active]
    other_pool = [v for v in dataset.vendors if v.vendor_id not in top_ids and v.is_active]
    if not top_pool:
        logger.warning("No active vendor in the top cohort; skipping vendor concentration")
        return 0

    links: Dict[str, Dict] = {
        "grns": defaultdict(list),
        "quotations": defaultdict(list),
        "invoices": defaultdict(list),
        "payments": defaultdict(list),
        "contract_vendor": {c.contract_id: c.vendor_id for c in dataset.contracts},
    }
    for grn in dataset.grns:
        links["grns"][grn.po_no].append(grn)
    for quotation in dataset.quotations:
        links["quotations"][quotation.po_no].append(quotation)
    for invoice in dataset.invoices:
        links["invoices"][invoice.po_no].append(invoice)
    for payment in dataset.payments:
        links["payments"][payment.invoice_no].append(payment)

    total = len(dataset.purchase_orders)
    target_top = int(total * config.top_vendor_po_share)
    target_other = total - target_top
    top_assigned = other_assigned = reassigned = 0

    for po in dataset.purchase_orders:
        if top_assigned < target_top:
            if po.vendor_id not in top_ids:
                _reassign_vendor(po, rng.choice(top_pool), links)
                reassigned += 1
            top_assigned += 1
        elif other_assigned < target_other:
            if po.vendor_id in top_ids and other_pool:
                _reassign_vendor(po, rng.choice(other_pool), links)
                reassigned += 1
            other_assigned += 1

    return reassigned


def enforce_goods_service_split(dataset: P2PDataset, config: ConstraintConfig) -> Dict[str, int]:
    """Classify POs and drop GRNs (and invoice GRN references) of service POs."""
    goods = goods_po_numbers(dataset.purchase_orders, config.goods_po_ratio)
    for po in dataset.purchase_orders:
        po.procurement_type = "goods" if po.po_no in goods else "services"

    kept, removed = [], set()
    for grn in dataset.grns:
        if grn.po_no is None or grn.po_no in goods:
            kept.append(grn)
        else:
            removed.add(grn.grn_no)
    dataset.grns = kept

    unlinked = 0
    for invoice in dataset.invoices:
        if invoice.grn_no in removed:
            invoice.grn_no = None
            unlinked += 1

    return {"stripped_grns": len(removed), "unlinked_invoices": unlinked}


def normalize_invoice_totals(dataset: P2PDataset) -> int:
    changed = 0
    for invoice in dataset.invoices:
        total = round(invoice.invoice_amount + invoice.tax_amount, 2)
        if invoice.total_amount != total:
            changed += 1
        invoice.total_amount = total
    return changed


def normalize_due_and_payment_dates(dataset: P2PDataset, config: ConstraintConfig) -> Dict[str, int]:
    filled = clamped = 0
    for invoice in dataset.invoices:
        if invoice.due_date is None:
            invoice.due_date = invoice.invoice_date + timedelta(days=config.credit_days)
            filled += 1

    invoices = dataset.invoice_index()
    for payment in dataset.payments:
        invoice = invoices.get(payment.invoice_no)
        if invoice is not None and payment.payment_date < invoice.invoice_date:
            payment.payment_date = invoice.invoice_date
            clamped += 1

    return {"filled_due_dates": filled, "clamped_payments": clamped}


def apply_constraints(dataset: P2PDataset, config: ConstraintConfig, rng: SeededRandom) -> Dict[str, int]:
    """Run the four adjustments in order, in place. Returns adjustment counts."""
    summary = {"reassigned_pos": enforce_vendor_concentration(dataset, config, rng)}
    summary.update(enforce_goods_service_split(dataset, config))
    summary["normalized_invoices"] = normalize_invoice_totals(dataset)
    summary.update(normalize_due_and_payment_dates(dataset, config))
    logger.info("Constraint pass: %s", summary)
    return summary


# =============================================================================
# VALIDATOR
# =============================================================================

@dataclass
class ValidationResult:
    """Violation counts per category plus representative messages."""

    violations: Dict[str, int] = field(default_factory=lambda: {c: 0 for c in VIOLATION_CATEGORIES})
    messages: List[str] = field(default_factory=list)

    @property
    def total_violations(self) -> int:
        return sum(self.violations.values())

    @property
    def is_valid(self) -> bool:
        return self.total_violations == 0

    def to_dict(self) -> Dict:
        return {
            "violations": dict(self.violations),
            "total_violations": self.total_violations,
            "is_valid": self.is_valid,
            "messages": list(self.messages),
        }


class _Collector:
    """Counts violations and keeps the first message of each category."""

    def __init__(self) -> None:
        self.result = ValidationResult()
        self._first: Dict[str, str] = {}

    def add(self, category: str, message: str, count: int = 1) -> None:
        self.result.violations[category] += count
        self._first.setdefault(category, message)

    def finish(self) -> ValidationResult:
        for category in VIOLATION_CATEGORIES:
            if category in self._first:
                self.result.messages.append(self._first[category])
        for category in VIOLATION_CATEGORIES:
            count = self.result.violations[category]
            if count:
                self.result.messages.append(f"{category} violations: {count}")
        return self.result


def validate_dataset(dataset: P2PDataset, config: Optional[ConstraintConfig] = None) -> ValidationResult:
    """Re-derive the constraint properties and linkage checks; read-only."""
    config = config or ConstraintConfig()
    collector = _Collector()
    pos = dataset.po_index()
    grns = dataset.grn_index()
    invoices = dataset.invoice_index()

    # Vendor concentration
    total_pos = len(dataset.purchase_orders)
    if dataset.vendors and total_pos:
        top_ids = {v.vendor_id for v in top_vendor_cohort(dataset.vendors, config.top_vendor_ratio)}
        actual = sum(1 for po in dataset.purchase_orders if po.vendor_id in top_ids)
        expected = int(total_pos * config.top_vendor_po_share)
        if abs(actual - expected) > total_pos * config.vendor_share_tolerance:
            collector.add(
                "vendor_distribution",
                f"Top vendors hold {actual} of {total_pos} POs, expected about {expected}",
                abs(actual - expected),
            )

    # Goods/service GRN applicability
    goods = goods_po_numbers(dataset.purchase_orders, config.goods_po_ratio)
    for grn in dataset.grns:
        if grn.po_no in pos and grn.po_no not in goods:
            collector.add("goods_service_grn", f"GRN {grn.grn_no} belongs to service PO {grn.po_no}")

    for invoice in dataset.invoices:
        expected_total = round(invoice.invoice_amount + invoice.tax_amount, 2)
        if abs(invoice.total_amount - expected_total) > 0.01:
            collector.add(
                "invoice_amount",
                f"Invoice {invoice.invoice_no} total {invoice.total_amount:.2f} != {expected_total:.2f}",
            )
        expected_due = invoice.invoice_date + timedelta(days=config.credit_days)
        if invoice.due_date is None or abs((invoice.due_date - expected_due).days) > 1:
            collector.add(
                "payment_due_date",
                f"Invoice {invoice.invoice_no} due date {invoice.due_date} != {expected_due}",
            )

    # Referential integrity
    for grn in dataset.grns:
        if grn.po_no is None or grn.po_no not in pos:
            collector.add("po_grn_linkage", f"GRN {grn.grn_no} references unknown PO {grn.po_no}")
    for invoice in dataset.invoices:
        if invoice.po_no is not None and invoice.po_no not in pos:
            collector.add("po_invoice_linkage", f"Invoice {invoice.invoice_no} references unknown PO {invoice.po_no}")
        if invoice.grn_no is not None and invoice.grn_no not in grns:
            collector.add("po_invoice_linkage", f"Invoice {invoice.invoice_no} references unknown GRN {invoice.grn_no}")
    for payment in dataset.payments:
        if payment.invoice_no not in invoices:
            collector.add(
                "invoice_payment_linkage",
                f"Payment {payment.payment_id} references unknown invoice {payment.invoice_no}",
            )

    # Date sequencing
    for grn in dataset.grns:
        po = pos.get(grn.po_no)
        if po is not None and grn.grn_date < po.po_date:
            collector.add("date_sequencing", f"GRN {grn.grn_no} dated before PO {po.po_no}")
    for invoice in dataset.invoices:
        po = pos.get(invoice.po_no)
        if po is not None and invoice.invoice_date < po.po_date:
            collector.add("date_sequencing", f"Invoice {invoice.invoice_no} dated before PO {po.po_no}")
        grn = grns.get(invoice.grn_no)
        if grn is not None and invoice.invoice_date < grn.grn_date:
            collector.add("date_sequencing", f"Invoice {invoice.invoice_no} dated before GRN {grn.grn_no}")
    for payment in dataset.payments:
        invoice = invoices.get(payment.invoice_no)
        if invoice is not None and payment.payment_date < invoice.invoice_date:
            collector.add(
                "date_sequencing",
                f"Payment {payment.payment_id} dated before invoice {invoice.invoice_no}",
            )

    return collector.finish()


def format_validation_results(result: ValidationResult, limit: int = 10) -> str:
    lines = [
        "Dataset validation: " + ("PASSED" if result.is_valid else "FAILED"),
        f"  Total violations: {result.total_violations}",
    ]
    for category in VIOLATION_CATEGORIES:
        lines.append(f"  {category}: {result.violations[category]}")
    if result.messages:
        lines.append("  Messages:")
        for message in result.messages[:limit]:
            lines.append(f"    - {message}")
        if len(result.messages) > limit:
            lines.append(f"    ... and {len(result.messages) - limit} more")
    return "\n".join(lines)
