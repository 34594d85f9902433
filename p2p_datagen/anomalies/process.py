"""
Process-control anomalies for PRs, POs, GRNs, invoices and payments.

Mutating injectors change the selected records. Detection-only injectors
find records that already break a rule (delayed receipts, near-threshold
POs, high-volume payments and so on) and emit truth records without
touching the data.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import List

import numpy as np

from ..config import AnomalyConfig
from .session import InjectionSession

logger = logging.getLogger(__name__)


def _clear_approval(session: InjectionSession, key: str, records: List, threshold: float,
                    amount_attr: str, entity_type: str, id_attr: str, pct: float) -> None:
    """Strip the approval from records at or above ``threshold`` and reopen them as pending."""
    step = session.resolve_test_step(key)
    if step is None:
        return
    eligible = [
        r for r in records
        if getattr(r, amount_attr) >= threshold and (r.approved_by or r.approval_date)
    ]
    for record in session.select(eligible, pct):
        previous = record.approved_by
        record.approved_by = None
        record.approval_date = None
        record.approval_status = "pending"
        session.record(
            step, entity_type, getattr(record, id_attr), ["approved_by", "approval_date", "approval_status"],
            f"Approval removed on {getattr(record, amount_attr):.2f} (threshold {threshold:.2f})",
            secondary_ids={"original_approved_by": previous},
        )


# =============================================================================
# PURCHASE REQUISITIONS
# =============================================================================

def inject_pr_without_approval(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    _clear_approval(
        session, "pr_without_approval_pct", session.dataset.pr_headers, config.pr_approval_threshold,
        "total_amount", "pr", "pr_no", pct,
    )


def inject_pr_bypass(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Detach the requisition lines of selected POs so they look raised without a PR."""
    step = session.resolve_test_step("pr_bypass_pct")
    if step is None:
        return
    lines_by_po = defaultdict(list)
    for line in session.dataset.pr_lines:
        if line.po_no:
            lines_by_po[line.po_no].append(line)
    eligible = [po for po in session.dataset.purchase_orders if po.po_no in lines_by_po]
    for po in session.select(eligible, pct):
        lines = lines_by_po[po.po_no]
        for line in lines:
            line.po_no = None
            line.status = "open"
        session.record(
            step, "po", po.po_no, ["pr_line.po_no"],
            f"{len(lines)} requisition line(s) detached",
            secondary_ids={"pr_no": lines[0].pr_no, "pr_line_ids": [line.pr_line_id for line in lines]},
        )


def inject_pr_duplicate(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Make other PRs structural copies of a source PR."""
    step = session.resolve_test_step("pr_duplicate_pct")
    if step is None:
        return
    selected = session.select(session.dataset.pr_headers, pct, minimum=2)
    if not selected:
        return
    source = selected[0]
    for pr in selected[1:]:
        pr.total_amount = source.total_amount
        pr.requested_by = source.requested_by
        pr.department = source.department
        session.record(
            step, "pr", pr.pr_no, ["total_amount", "requested_by", "department"],
            f"Copied from {source.pr_no}: {source.total_amount:.2f} by {source.requested_by}",
            secondary_ids={"source_pr_no": source.pr_no},
        )


def inject_pr_threshold_violation(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("pr_threshold_violation_pct")
    if step is None:
        return
    threshold = config.pr_approval_threshold
    eligible = [pr for pr in session.dataset.pr_headers if pr.total_amount < threshold]
    for pr in session.select(eligible, pct):
        original = pr.total_amount
        pr.total_amount = round(threshold + session.rng.randint(0, 10_000), 2)
        session.record(
            step, "pr", pr.pr_no, ["total_amount"],
            f"Total raised from {original:.2f} to {pr.total_amount:.2f} (threshold {threshold:.2f})",
        )


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def inject_po_approval_violation(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    _clear_approval(
        session, "po_approval_violation_pct", session.dataset.purchase_orders, config.po_approval_threshold,
        "total_amount", "po", "po_no", pct,
    )


def inject_po_inactive_vendor(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("po_inactive_vendor_pct")
    if step is None:
        return
    vendors = session.vendor_index
    eligible = [
        po for po in session.dataset.purchase_orders
        if po.vendor_id in vendors and not vendors[po.vendor_id].is_active
    ]
    for po in session.select(eligible, pct):
        session.record(
            step, "po", po.po_no, [],
            f"PO raised against inactive vendor {po.vendor_id}",
            secondary_ids={"vendor_id": po.vendor_id},
            notes="Detected, not mutated",
        )


def inject_po_without_pr(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("po_without_pr_pct")
    if step is None:
        return
    linked = {line.po_no for line in session.dataset.pr_lines if line.po_no}
    eligible = [po for po in session.dataset.purchase_orders if po.po_no not in linked]
    for po in session.select(eligible, pct):
        session.record(
            step, "po", po.po_no, [],
            "No requisition line references this PO",
            notes="Detected, not mutated",
        )


def inject_po_threshold_bypass(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Flag POs priced just under the approval threshold."""
    step = session.resolve_test_step("po_threshold_bypass_pct")
    if step is None:
        return
    threshold = config.po_approval_threshold
    floor = threshold * config.near_threshold_ratio
    eligible = [po for po in session.dataset.purchase_orders if floor <= po.total_amount < threshold]
    for po in session.select(eligible, pct):
        session.record(
            step, "po", po.po_no, [],
            f"Total {po.total_amount:.2f} within {floor:.2f}-{threshold:.2f}",
            notes="Detected, not mutated",
        )


# =============================================================================
# GOODS RECEIPTS
# =============================================================================

def inject_grn_without_po(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("grn_without_po_pct")
    if step is None:
        return
    eligible = [grn for grn in session.dataset.grns if grn.po_no]
    for grn in session.select(eligible, pct):
        original = grn.po_no
        grn.po_no = None
        session.record(
            step, "grn", grn.grn_no, ["po_no"],
            f"PO reference {original} removed",
            secondary_ids={"original_po_no": original},
        )


def inject_grn_delayed_receipt(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("grn_delayed_receipt_pct")
    if step is None:
        return
    pos = session.po_index
    delayed = []
    for grn in session.dataset.grns:
        po = pos.get(grn.po_no) if grn.po_no else None
        if po is not None and (grn.grn_date - po.po_date).days > config.grn_delay_days:
            delayed.append((grn, po))
    for grn, po in session.select(delayed, pct):
        session.record(
            step, "grn", grn.grn_no, [],
            f"Received {(grn.grn_date - po.po_date).days} days after PO date",
            secondary_ids={"po_no": po.po_no},
            notes="Detected, not mutated",
        )


def inject_grn_partial_receipt(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("grn_partial_receipt_pct")
    if step is None:
        return
    receipts = Counter(grn.po_no for grn in session.dataset.grns if grn.po_no)
    eligible = [po for po in session.dataset.purchase_orders if receipts[po.po_no] > 1]
    for po in session.select(eligible, pct):
        session.record(
            step, "po", po.po_no, [],
            f"Received across {receipts[po.po_no]} GRNs",
            notes="Detected, not mutated",
        )


# =============================================================================
# INVOICES
# =============================================================================

def inject_invoice_vendor_compliance(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("invoice_vendor_compliance_pct")
    if step is None:
        return
    vendors = session.dataset.vendor_index()
    eligible = []
    for invoice in session.dataset.invoices:
        vendor = vendors.get(invoice.vendor_id)
        if vendor is None:
            continue
        gaps = [name for name, missing in (
            ("pan", not vendor.pan),
            ("gstin", not vendor.gstin),
            ("status", not vendor.is_active),
        ) if missing]
        if gaps:
            eligible.append((invoice, gaps))
    for invoice, gaps in session.select(eligible, pct):
        session.record(
            step, "invoice", invoice.invoice_no, [],
            f"Vendor {invoice.vendor_id} non-compliant: {', '.join(gaps)}",
            secondary_ids={"vendor_id": invoice.vendor_id},
            notes="Detected, not mutated",
        )


def inject_invoice_approval_violation(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    _clear_approval(
        session, "invoice_approval_violation_pct", session.dataset.invoices, config.invoice_approval_threshold,
        "total_amount", "invoice", "invoice_no", pct,
    )


# =============================================================================
# PAYMENTS
# =============================================================================

def inject_payment_early_discount(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Pay selected invoices net of an early-payment discount."""
    step = session.resolve_test_step("payment_early_discount_pct")
    if step is None:
        return
    invoices = session.invoice_index
    eligible = [p for p in session.dataset.payments if p.invoice_no in invoices]
    factor = 1 - config.early_discount_rate / 100
    for payment in session.select(eligible, pct):
        invoice = invoices[payment.invoice_no]
        original = payment.payment_amount
        payment.payment_amount = round(invoice.total_amount * factor, 2)
        session.record(
            step, "payment", payment.payment_id, ["payment_amount"],
            f"Paid {payment.payment_amount:.2f} against invoice total {invoice.total_amount:.2f}",
            secondary_ids={"invoice_no": payment.invoice_no, "original_amount": original},
        )


def inject_payment_approval_violation(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    _clear_approval(
        session, "payment_approval_violation_pct", session.dataset.payments, config.payment_approval_threshold,
        "payment_amount", "payment", "payment_id", pct,
    )


def inject_payment_high_volume(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("payment_high_volume_pct")
    if step is None:
        return
    payments = session.dataset.payments
    if not payments:
        return
    cutoff = float(np.percentile([p.payment_amount for p in payments], config.high_volume_percentile))
    eligible = [p for p in payments if p.payment_amount >= cutoff]
    for payment in session.select(eligible, pct):
        session.record(
            step, "payment", payment.payment_id, [],
            f"Amount {payment.payment_amount:.2f} at or above p{config.high_volume_percentile:g} ({cutoff:.2f})",
            notes="Detected, not mutated",
        )
