"""
Procurement documents: purchase orders, purchase requisitions and quotations.

Purchase orders are drawn first, sorted by date and then numbered, so
sequence numbers rise with po_date inside each year of a batch. PRs and
quotations are derived from the POs of the same batch.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional, Tuple

from ..config import TimingConfig
from ..ids import (
    PO_PREFIX,
    PR_PREFIX,
    QUOTATION_PREFIX,
    SequenceCounters,
    number_by_date,
    parse_sequence,
    pr_line_id,
)
from ..models import (
    PO_STATUSES,
    PR_STATUSES,
    PRHeader,
    PRLine,
    PurchaseOrder,
    Quotation,
    Vendor,
)
from ..rng import SeededRandom
from .master import DEPARTMENTS, random_user

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """A generator had no eligible upstream records to work from."""


TAX_RATES = [5, 12, 18, 28]

QUOTE_THRESHOLD = 50_000.0

REJECTION_REASONS = [
    "Budget not available",
    "Vendor not approved",
    "Price exceeds benchmark",
    "Duplicate request",
    "Insufficient justification",
]

PO_REMARKS = [
    "Urgent requirement",
    "As per annual rate contract",
    "Partial delivery acceptable",
    "Deliver to central stores",
    "Replacement order",
]

# (description, category)
ITEM_CATALOG = [
    ("Office stationery", "goods"),
    ("Laptop computers", "capex"),
    ("Network switches", "capex"),
    ("Industrial lubricants", "goods"),
    ("Safety equipment", "goods"),
    ("Packaging material", "goods"),
    ("Spare parts kit", "goods"),
    ("Annual maintenance service", "services"),
    ("Housekeeping service", "services"),
    ("IT consulting", "services"),
    ("Security service", "services"),
    ("Furniture", "capex"),
    ("Printing and courier", "other"),
    ("Travel arrangements", "other"),
]

# Statuses an unlinked PR can have
OPEN_PR_STATUSES = [s for s in PR_STATUSES if s != "converted"]


def approval_status_for(status: str) -> str:
    if status in ("approved", "completed", "converted", "paid"):
        return "approved"
    if status == "rejected":
        return "rejected"
    return "pending"


def random_date_in_year(rng: SeededRandom, year: int) -> date:
    return date(year, rng.randint(1, 12), rng.randint(1, 28))


# =============================================================================
# PURCHASE ORDERS
# =============================================================================

def generate_purchase_orders(
    count: int,
    vendors: List[Vendor],
    rng: SeededRandom,
    start_year: int,
    end_year: int,
    counters: SequenceCounters,
    user_count: int,
) -> List[PurchaseOrder]:
    """Generate ``count`` POs against active vendors, numbered per year."""
    active = [v for v in vendors if v.is_active]
    if not active:
        raise GenerationError("No active vendors available for purchase order generation")

    span = end_year - start_year + 1
    orders = []
    for _ in range(count):
        vendor = rng.choice(active)
        po_date = random_date_in_year(rng, start_year + int(rng.next() * span))

        order_amount = round(rng.next() * 990_000 + 10_000, 2)
        tax_rate = rng.choice(TAX_RATES)
        tax_amount = round(order_amount * tax_rate / 100, 2)
        status = rng.choice(PO_STATUSES)

        approved_by = approval_date = None
        if status in ("approved", "completed") and rng.chance(0.7):
            approved_by = random_user(rng, user_count)
            approval_date = po_date + timedelta(days=rng.randint(0, 5))

        expected_delivery = None
        if rng.chance(0.8):
            expected_delivery = po_date + timedelta(days=7 + int(rng.next() * 60))
        updated = po_date + timedelta(days=rng.randint(1, 30)) if rng.chance(0.6) else None

        orders.append(PurchaseOrder(
            po_no="",
            vendor_id=vendor.vendor_id,
            po_date=po_date,
            expected_delivery_date=expected_delivery,
            order_amount=order_amount,
            tax_amount=tax_amount,
            total_amount=round(order_amount + tax_amount, 2),
            status=status,
            approval_status=approval_status_for(status),
            approved_by=approved_by,
            approval_date=approval_date,
            rejected_reason=rng.choice(REJECTION_REASONS) if status == "rejected" else None,
            created_by=random_user(rng, user_count),
            created_date=po_date,
            updated_date=updated,
            remarks=rng.choice(PO_REMARKS) if rng.chance(0.3) else None,
        ))

    return number_by_date(orders, "po_date", "po_no", PO_PREFIX, counters)


# =============================================================================
# PURCHASE REQUISITIONS
# =============================================================================

def _split_amount(rng: SeededRandom, total: float, parts: int) -> List[float]:
    """Split ``total`` into positive 2dp parts; the last part takes the remainder."""
    weights = [0.5 + rng.next() for _ in range(parts)]
    weight_sum = sum(weights)
    amounts = [round(total * w / weight_sum, 2) for w in weights[:-1]]
    amounts.append(round(total - sum(amounts), 2))
    return amounts


def generate_purchase_requisitions(
    purchase_orders: List[PurchaseOrder],
    rng: SeededRandom,
    start_year: int,
    end_year: int,
    counters: SequenceCounters,
    timing: TimingConfig,
    user_count: int,
) -> Tuple[List[PRHeader], List[PRLine]]:
    """
    Generate PRs for a batch of POs (80% of the batch size).

    A PR links to a distinct PO of the batch when its draw clears 0.3; a
    linked PR precedes its PO, carries the PO total and its last line holds
    the po_no.
    """
    count = int(len(purchase_orders) * 0.8)
    candidates = rng.shuffle(purchase_orders)
    span = end_year - start_year + 1

    drafts: List[Tuple[PRHeader, Optional[PurchaseOrder], int]] = []
    for i in range(count):
        po = candidates[i] if rng.next() > 0.3 else None

        if po is not None:
            pr_date = po.po_date - timedelta(days=rng.randint(1, timing.pr_lead_days))
            total = po.total_amount
            status = "converted"
            approval_window = (po.po_date - pr_date).days
        else:
            pr_date = random_date_in_year(rng, start_year + int(rng.next() * span))
            total = round(5_000 + rng.next() * 495_000, 2)
            status = rng.choice(OPEN_PR_STATUSES)
            approval_window = 5

        approved_by = approval_date = None
        if status in ("approved", "converted") and rng.chance(0.8):
            approved_by = random_user(rng, user_count)
            approval_date = pr_date + timedelta(days=int(rng.next() * (approval_window + 1)))

        header = PRHeader(
            pr_no="",
            pr_date=pr_date,
            requested_by=random_user(rng, user_count),
            department=rng.choice(DEPARTMENTS),
            status=status,
            approval_status=approval_status_for(status),
            approved_by=approved_by,
            approval_date=approval_date,
            total_amount=total,
            created_by=random_user(rng, user_count),
            created_date=pr_date,
            updated_date=pr_date + timedelta(days=rng.randint(1, 10)) if rng.chance(0.3) else None,
        )
        drafts.append((header, po, rng.randint(1, 3)))

    drafts.sort(key=lambda draft: draft[0].pr_date)
    number_by_date([d[0] for d in drafts], "pr_date", "pr_no", PR_PREFIX, counters)

    headers: List[PRHeader] = []
    lines: List[PRLine] = []
    for header, po, line_count in drafts:
        headers.append(header)
        pr_sequence = parse_sequence(header.pr_no)
        amounts = _split_amount(rng, header.total_amount, line_count)
        for line_number, line_amount in enumerate(amounts, start=1):
            description, category = rng.choice(ITEM_CATALOG)
            quantity = rng.randint(1, 100)
            is_last = line_number == line_count
            linked_po = po.po_no if (po is not None and is_last) else None
            lines.append(PRLine(
                pr_line_id=pr_line_id(header.pr_date.year, pr_sequence, line_number),
                pr_no=header.pr_no,
                line_number=line_number,
                item_description=description,
                quantity=quantity,
                unit_price=round(line_amount / quantity, 2),
                line_amount=line_amount,
                category=category,
                po_no=linked_po,
                status="converted" if linked_po else "open",
                created_date=header.pr_date,
            ))

    return headers, lines


# =============================================================================
# QUOTATIONS
# =============================================================================

def generate_quotations(
    purchase_orders: List[PurchaseOrder],
    vendors: List[Vendor],
    rng: SeededRandom,
    counters: SequenceCounters,
    timing: TimingConfig,
    user_count: int,
    threshold: float = QUOTE_THRESHOLD,
) -> List[Quotation]:
    """1-3 quotations ahead of every PO at or above ``threshold``; the first wins."""
    active = [v for v in vendors if v.is_active]
    quotations = []

    for po in purchase_orders:
        if po.total_amount < threshold:
            continue
        for k in range(rng.randint(1, 3)):
            vendor_id = po.vendor_id if k == 0 else rng.choice(active).vendor_id
            quote_date = po.po_date - timedelta(days=rng.randint(1, timing.quote_lead_days))
            quotations.append(Quotation(
                quotation_id="",
                po_no=po.po_no,
                vendor_id=vendor_id,
                quotation_date=quote_date,
                quote_amount=rng.jitter(po.total_amount, timing.quote_variance_pct),
                validity_days=rng.choice([15, 30, 45, 60, 90]),
                status="accepted" if k == 0 else "rejected",
                is_selected=k == 0,
                created_by=random_user(rng, user_count),
                created_ip=f"10.{rng.randint(0, 255)}.{rng.randint(0, 255)}.{rng.randint(1, 254)}",
                created_date=quote_date,
            ))

    return number_by_date(quotations, "quotation_date", "quotation_id", QUOTATION_PREFIX, counters)
