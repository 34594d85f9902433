"""
Vendor-master and transaction anomalies.

Each injector takes the session, its percentage and the anomaly config.
It filters eligible records, selects an exact count from a seeded shuffle,
mutates the selection and writes one truth record per mutation.
Duplicate-style injectors keep the first selected record untouched as the
source and need at least two candidates.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..config import AnomalyConfig
from .session import InjectionSession
from .taxonomy import INACTIVE_VENDOR_STEPS, get_test_step_ids

logger = logging.getLogger(__name__)


def inject_missing_pan(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Clear PAN (and GSTIN, which embeds it) on vendors that have one."""
    step = session.resolve_test_step("missing_pan_pct")
    if step is None:
        return
    eligible = [v for v in session.dataset.vendors if v.pan]
    for vendor in session.select(eligible, pct):
        planted = ["pan"]
        removed = {"pan": vendor.pan}
        vendor.pan = None
        if vendor.gstin:
            planted.append("gstin")
            removed["gstin"] = vendor.gstin
            vendor.gstin = None
        session.record(
            step, "vendor", vendor.vendor_id, planted,
            "Tax identifiers removed: " + ", ".join(planted),
            secondary_ids=removed,
        )


def inject_duplicate_vendor_pan(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Copy one vendor's PAN onto other vendors."""
    step = session.resolve_test_step("duplicate_vendor_pan_pct")
    if step is None:
        return
    eligible = [v for v in session.dataset.vendors if v.pan]
    selected = session.select(eligible, pct, minimum=2)
    if not selected:
        return
    source = selected[0]
    for vendor in selected[1:]:
        original = vendor.pan
        vendor.pan = source.pan
        planted = ["pan"]
        if vendor.gstin:
            vendor.gstin = vendor.gstin[:2] + source.pan + vendor.gstin[12:]
            planted.append("gstin")
        session.record(
            step, "vendor", vendor.vendor_id, planted,
            f"PAN set to {source.pan} (shared with {source.vendor_id})",
            secondary_ids={"source_vendor_id": source.vendor_id, "original_pan": original},
        )


def inject_duplicate_vendor_bank(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Copy one vendor's bank account onto other vendors."""
    step = session.resolve_test_step("duplicate_vendor_bank_pct")
    if step is None:
        return
    eligible = [v for v in session.dataset.vendors if v.bank_account]
    selected = session.select(eligible, pct, minimum=2)
    if not selected:
        return
    source = selected[0]
    for vendor in selected[1:]:
        original = vendor.bank_account
        vendor.bank_account = source.bank_account
        vendor.ifsc = source.ifsc
        vendor.bank_name = source.bank_name
        session.record(
            step, "vendor", vendor.vendor_id, ["bank_account", "ifsc", "bank_name"],
            f"Bank account set to {source.bank_account} (shared with {source.vendor_id})",
            secondary_ids={"source_vendor_id": source.vendor_id, "original_bank_account": original},
        )


def inject_vendor_without_approval(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("vendor_without_approval_pct")
    if step is None:
        return
    eligible = [v for v in session.dataset.vendors if v.verified_by or v.verification_date]
    for vendor in session.select(eligible, pct):
        vendor.verified_by = None
        vendor.verification_date = None
        session.record(
            step, "vendor", vendor.vendor_id, ["verified_by", "verification_date"],
            "Verification actor and date cleared",
        )


def inject_bank_change_unverified(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("bank_change_unverified_pct")
    if step is None:
        return
    eligible = [v for v in session.dataset.vendors if v.bank_change_verification]
    for vendor in session.select(eligible, pct):
        vendor.bank_change_verification = False
        session.record(
            step, "vendor", vendor.vendor_id, ["bank_change_verification"],
            "Bank change verification set to false",
        )


def inject_inactive_vendor_used(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """
    Deactivate active vendors, then flag every PO, invoice and payment that
    references one of them. Output size follows the fan-out, not the count.
    """
    if not get_test_step_ids("inactive_vendor_used_pct"):
        logger.warning("No test steps mapped for inactive_vendor_used_pct; skipping")
        return
    steps = {entity: session.fixed_test_step(ts) for entity, ts in INACTIVE_VENDOR_STEPS.items()}

    eligible = [v for v in session.dataset.vendors if v.is_active]
    selected = session.select(eligible, pct)
    for vendor in selected:
        vendor.status = "inactive"
    deactivated = {v.vendor_id for v in selected}
    if not deactivated:
        return

    dataset = session.dataset
    fan_out = (
        ("po", dataset.purchase_orders, "po_no"),
        ("invoice", dataset.invoices, "invoice_no"),
        ("payment", dataset.payments, "payment_id"),
    )
    for entity_type, records, id_attr in fan_out:
        step = steps[entity_type]
        if step is None:
            continue
        for record in records:
            if record.vendor_id in deactivated:
                session.record(
                    step, entity_type, getattr(record, id_attr), ["vendor.status"],
                    f"Vendor {record.vendor_id} set to inactive",
                    secondary_ids={"vendor_id": record.vendor_id},
                )


def inject_duplicate_invoice_number(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Give other invoices the number of one source invoice."""
    step = session.resolve_test_step("duplicate_invoice_number_pct")
    if step is None:
        return
    selected = session.select(session.dataset.invoices, pct, minimum=2)
    if not selected:
        return
    source = selected[0]
    for invoice in selected[1:]:
        original = invoice.invoice_no
        invoice.invoice_no = source.invoice_no
        session.record(
            step, "invoice", invoice.invoice_no, ["invoice_no"],
            f"Invoice number {original} replaced with {source.invoice_no}",
            secondary_ids={
                "source_invoice_no": source.invoice_no,
                "original_invoice_no": original,
                "source_vendor_id": source.vendor_id,
            },
            notes="Duplicate primary key planted on purpose",
        )


def inject_invoice_without_grn(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    step = session.resolve_test_step("invoice_without_grn_pct")
    if step is None:
        return
    eligible = [inv for inv in session.dataset.invoices if inv.grn_no]
    for invoice in session.select(eligible, pct):
        original = invoice.grn_no
        invoice.grn_no = None
        session.record(
            step, "invoice", invoice.invoice_no, ["grn_no"],
            f"GRN reference {original} removed",
            secondary_ids={"original_grn_no": original, "po_no": invoice.po_no},
        )


def inject_payment_before_invoice(session: InjectionSession, pct: float, config: AnomalyConfig) -> None:
    """Date payments 1-30 days before their invoice."""
    step = session.resolve_test_step("payment_before_invoice_pct")
    if step is None:
        return
    eligible = [p for p in session.dataset.payments if p.invoice_no in session.invoice_index]
    for payment in session.select(eligible, pct):
        invoice = session.invoice_index[payment.invoice_no]
        days_before = session.rng.randint(1, 30)
        original = payment.payment_date
        payment.payment_date = invoice.invoice_date - timedelta(days=days_before)
        session.record(
            step, "payment", payment.payment_id, ["payment_date"],
            f"Payment dated {days_before} days before invoice date {invoice.invoice_date.isoformat()}",
            secondary_ids={"invoice_no": payment.invoice_no, "original_payment_date": original.isoformat()},
        )
