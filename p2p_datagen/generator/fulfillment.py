"""
Fulfillment documents: goods receipts, invoices and payments.

Each generator filters its upstream list by business-rule status, takes a
ratio-sized subset of a seeded shuffle and restores date order before
building records. Dates move forward along the chain:
PO <= GRN <= invoice <= payment.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, List, Mapping

from ..config import TimingConfig
from ..ids import GRN_PREFIX, INVOICE_PREFIX, PAYMENT_PREFIX, SequenceCounters, number_by_date
from ..models import (
    INVOICE_STATUSES,
    INVOICEABLE_PO_STATUSES,
    PAYABLE_INVOICE_STATUSES,
    PAYMENT_MODES,
    PAYMENT_STATUSES,
    RECEIVABLE_PO_STATUSES,
    GoodsReceipt,
    Invoice,
    Payment,
    PurchaseOrder,
    Vendor,
)
from ..rng import SeededRandom
from .master import random_user
from .procurement import REJECTION_REASONS, approval_status_for

logger = logging.getLogger(__name__)

# Share of partial receipts that get a follow-up GRN for the remainder
FOLLOW_UP_RATIO = 0.3

PAYMENT_APPROVAL = {
    "pending": "pending",
    "initiated": "approved",
    "completed": "approved",
    "failed": "rejected",
    "cancelled": "rejected",
}


# =============================================================================
# GOODS RECEIPTS
# =============================================================================

def generate_grns(
    purchase_orders: List[PurchaseOrder],
    rng: SeededRandom,
    ratio: float,
    counters: SequenceCounters,
    timing: TimingConfig,
    user_count: int,
) -> List[GoodsReceipt]:
    """Receive goods against ``ratio`` of approved/completed POs."""
    eligible = [po for po in purchase_orders if po.status in RECEIVABLE_PO_STATUSES]
    selected = rng.shuffle(eligible)[: int(len(eligible) * ratio)]
    selected.sort(key=lambda po: po.po_date)

    grns = []
    for po in selected:
        grn_date = po.po_date + timedelta(days=int(rng.next() * timing.grn_window_days))
        received_amount = rng.jitter(po.order_amount, timing.grn_variance_pct)
        tax_amount = round(received_amount * po.tax_ratio, 2)
        quantity_ordered = int(rng.next() * 1000) + 10
        quantity_received = int(quantity_ordered * (0.8 + rng.next() * 0.2))
        status = "completed" if quantity_received >= quantity_ordered else "partial"

        quality = None
        if rng.chance(0.7):
            quality = "passed" if rng.next() > 0.1 else "failed"

        grn = GoodsReceipt(
            grn_no="",
            po_no=po.po_no,
            vendor_id=po.vendor_id,
            grn_date=grn_date,
            received_date=grn_date if rng.chance(0.8) else None,
            received_amount=received_amount,
            tax_amount=tax_amount,
            total_amount=round(received_amount + tax_amount, 2),
            quantity_ordered=quantity_ordered,
            quantity_received=quantity_received,
            status=status,
            quality_check_status=quality,
            received_by=random_user(rng, user_count),
            created_date=grn_date,
        )
        grns.append(grn)

        if status == "partial" and rng.chance(FOLLOW_UP_RATIO):
            remaining = quantity_ordered - quantity_received
            follow_up_date = grn_date + timedelta(days=rng.randint(1, 30))
            follow_up_amount = round(po.order_amount * remaining / quantity_ordered, 2)
            follow_up_tax = round(follow_up_amount * po.tax_ratio, 2)
            grns.append(GoodsReceipt(
                grn_no="",
                po_no=po.po_no,
                vendor_id=po.vendor_id,
                grn_date=follow_up_date,
                received_date=follow_up_date,
                received_amount=follow_up_amount,
                tax_amount=follow_up_tax,
                total_amount=round(follow_up_amount + follow_up_tax, 2),
                quantity_ordered=quantity_ordered,
                quantity_received=remaining,
                status="completed",
                quality_check_status="passed",
                received_by=random_user(rng, user_count),
                created_date=follow_up_date,
                remarks="Balance quantity against partial receipt",
            ))

    return number_by_date(grns, "grn_date", "grn_no", GRN_PREFIX, counters)


def first_grn_by_po(grns: List[GoodsReceipt]) -> Dict[str, GoodsReceipt]:
    """Earliest GRN per PO."""
    first: Dict[str, GoodsReceipt] = {}
    for grn in sorted(grns, key=lambda g: g.grn_date):
        if grn.po_no is not None and grn.po_no not in first:
            first[grn.po_no] = grn
    return first


# =============================================================================
# INVOICES
# =============================================================================

def generate_invoices(
    purchase_orders: List[PurchaseOrder],
    grns: List[GoodsReceipt],
    rng: SeededRandom,
    ratio: float,
    counters: SequenceCounters,
    timing: TimingConfig,
    credit_days: int,
    user_count: int,
) -> List[Invoice]:
    """
    Invoice ``ratio`` of approved/completed POs, GRN-backed POs first.

    An invoice references its PO's earliest GRN and is dated on or after
    both the PO and that GRN.
    """
    grn_by_po = first_grn_by_po(grns)
    eligible = [po for po in purchase_orders if po.status in INVOICEABLE_PO_STATUSES]
    ranked = rng.shuffle(eligible)
    ranked.sort(key=lambda po: po.po_no not in grn_by_po)
    selected = ranked[: int(len(eligible) * ratio)]
    selected.sort(key=lambda po: po.po_date)

    invoices = []
    for po in selected:
        grn = grn_by_po.get(po.po_no)
        base_date = max(po.po_date, grn.grn_date) if grn else po.po_date
        invoice_date = base_date + timedelta(days=int(rng.next() * timing.invoice_window_days))

        invoice_amount = rng.jitter(po.order_amount, timing.invoice_variance_pct)
        tax_amount = round(invoice_amount * po.tax_ratio, 2)
        status = rng.choice(INVOICE_STATUSES)

        approved_by = approval_date = None
        if status in ("approved", "paid") and rng.chance(0.75):
            approved_by = random_user(rng, user_count)
            approval_date = invoice_date + timedelta(days=rng.randint(0, 5))

        due_date = invoice_date + timedelta(days=credit_days) if rng.chance(0.8) else None

        invoices.append(Invoice(
            invoice_no="",
            vendor_id=po.vendor_id,
            po_no=po.po_no,
            grn_no=grn.grn_no if grn else None,
            invoice_date=invoice_date,
            due_date=due_date,
            invoice_amount=invoice_amount,
            tax_amount=tax_amount,
            total_amount=round(invoice_amount + tax_amount, 2),
            tax_rate=round(po.tax_ratio * 100, 2),
            status=status,
            approval_status=approval_status_for(status),
            approved_by=approved_by,
            approval_date=approval_date,
            rejected_reason=rng.choice(REJECTION_REASONS) if status == "rejected" else None,
            created_by=random_user(rng, user_count),
            created_date=invoice_date,
            updated_date=invoice_date + timedelta(days=rng.randint(1, 15)) if rng.chance(0.4) else None,
        ))

    return number_by_date(invoices, "invoice_date", "invoice_no", INVOICE_PREFIX, counters)


# =============================================================================
# PAYMENTS
# =============================================================================

def generate_payments(
    invoices: List[Invoice],
    vendors: Mapping[str, Vendor],
    rng: SeededRandom,
    ratio: float,
    counters: SequenceCounters,
    timing: TimingConfig,
    user_count: int,
) -> List[Payment]:
    """Pay ``ratio`` of approved/paid invoices in full."""
    eligible = [inv for inv in invoices if inv.status in PAYABLE_INVOICE_STATUSES]
    selected = rng.shuffle(eligible)[: int(len(eligible) * ratio)]
    selected.sort(key=lambda inv: inv.invoice_date)

    payments = []
    for invoice in selected:
        vendor = vendors[invoice.vendor_id]
        payment_date = invoice.invoice_date + timedelta(days=int(rng.next() * timing.payment_window_days))
        mode = rng.choice(PAYMENT_MODES)
        status = rng.choice(PAYMENT_STATUSES)
        approval_status = PAYMENT_APPROVAL[status]

        approved_by = approval_date = None
        if approval_status == "approved" and rng.chance(0.8):
            approved_by = random_user(rng, user_count)
            approval_date = max(invoice.invoice_date, payment_date - timedelta(days=rng.randint(0, 2)))

        processed_by = processed_date = None
        if status in ("initiated", "completed"):
            processed_by = random_user(rng, user_count)
            processed_date = payment_date

        payments.append(Payment(
            payment_id="",
            invoice_no=invoice.invoice_no,
            vendor_id=invoice.vendor_id,
            payment_date=payment_date,
            payment_amount=invoice.total_amount,
            payment_mode=mode,
            bank_account=vendor.bank_account,
            ifsc=vendor.ifsc,
            cheque_number=rng.digits(6) if mode == "cheque" else None,
            transaction_reference=f"TXN{rng.digits(12)}" if mode != "cash" else None,
            status=status,
            approval_status=approval_status,
            approved_by=approved_by,
            approval_date=approval_date,
            processed_by=processed_by,
            processed_date=processed_date,
            created_by=random_user(rng, user_count),
            created_date=payment_date,
        ))

    return number_by_date(payments, "payment_date", "payment_id", PAYMENT_PREFIX, counters)
