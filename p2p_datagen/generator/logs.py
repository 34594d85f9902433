"""
Workflow history and change logs.

Workflow logs give every PR, PO and payment an ordered history that starts
with a ``created`` step. Change logs record vendor bank detail changes and
PO amendments.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Sequence

from ..ids import PO_CHANGE_PREFIX, VENDOR_BANK_CHANGE_PREFIX, SequenceCounters, log_id, vendor_id
from ..models import CHANGE_TYPES, POChangeLog, PurchaseOrder, Vendor, VendorBankChangeLog, WorkflowLog
from ..rng import SeededRandom
from .master import BANKS, generate_bank_account, generate_ifsc, random_user

logger = logging.getLogger(__name__)

# Final status -> action recorded for the transition step
STATUS_ACTIONS = {
    "pending_approval": "submitted",
    "approved": "approved",
    "rejected": "rejected",
    "cancelled": "cancelled",
    "completed": "completed",
    "converted": "converted_to_po",
    "initiated": "initiated",
    "failed": "failed",
}

BANK_CHANGE_REASONS = [
    "Bank merger",
    "Account closed",
    "Vendor request",
    "Branch relocation",
    "Change of banking partner",
]

PO_CHANGE_REASONS = [
    "Revised quotation",
    "Scope change",
    "Vendor request",
    "Delivery schedule change",
    "Correction of data entry error",
]


def generate_workflow_logs(
    records: Sequence,
    parent_type: str,
    id_attr: str,
    date_attr: str,
    prefix: str,
    rng: SeededRandom,
    counters: SequenceCounters,
    user_count: int,
    initial_status: str = "draft",
) -> List[WorkflowLog]:
    """
    Build a ``created`` step per record, then one transition step when the
    record's status has moved past ``initial_status``.
    """
    logs = []
    for record in records:
        parent_id = getattr(record, id_attr)
        created_on = getattr(record, date_attr)
        year = created_on.year
        logs.append(WorkflowLog(
            log_id=log_id(prefix, year, counters.next(prefix, year)),
            parent_type=parent_type,
            parent_id=parent_id,
            step_number=1,
            action="created",
            from_status=None,
            to_status=initial_status,
            performed_by=record.created_by,
            performed_date=created_on,
        ))

        if record.status == initial_status:
            continue
        performed_on = getattr(record, "approval_date", None) or created_on + timedelta(days=rng.randint(0, 5))
        performed_by = getattr(record, "approved_by", None) or random_user(rng, user_count)
        year = performed_on.year
        logs.append(WorkflowLog(
            log_id=log_id(prefix, year, counters.next(prefix, year)),
            parent_type=parent_type,
            parent_id=parent_id,
            step_number=2,
            action=STATUS_ACTIONS.get(record.status, "status_changed"),
            from_status=initial_status,
            to_status=record.status,
            performed_by=performed_by,
            performed_date=performed_on,
            comments=getattr(record, "rejected_reason", None),
        ))

    return logs


def generate_vendor_bank_change_logs(
    vendors: List[Vendor],
    rng: SeededRandom,
    counters: SequenceCounters,
    user_count: int,
) -> List[VendorBankChangeLog]:
    """Bank detail change history for roughly 30% of vendors."""
    logs = []
    for vendor in vendors:
        if rng.next() >= 0.3:
            continue
        change_date = vendor.updated_date or vendor.created_date + timedelta(days=rng.randint(1, 180))
        old_bank = rng.choice(list(BANKS))
        verified = vendor.bank_change_verification
        year = change_date.year
        logs.append(VendorBankChangeLog(
            change_id=log_id(VENDOR_BANK_CHANGE_PREFIX, year, counters.next(VENDOR_BANK_CHANGE_PREFIX, year)),
            vendor_id=vendor.vendor_id,
            change_date=change_date,
            old_bank_account=generate_bank_account(rng),
            new_bank_account=vendor.bank_account,
            old_ifsc=generate_ifsc(rng, BANKS[old_bank]),
            new_ifsc=vendor.ifsc,
            change_reason=rng.choice(BANK_CHANGE_REASONS),
            changed_by=random_user(rng, user_count),
            verified=verified,
            verified_by=random_user(rng, user_count) if verified else None,
            verification_date=change_date + timedelta(days=rng.randint(0, 7)) if verified else None,
        ))
    return logs


def _change_values(po: PurchaseOrder, change_type: str, rng: SeededRandom, vendor_count: int):
    if change_type == "amount":
        return f"{po.total_amount * (0.9 + rng.next() * 0.2):.2f}", f"{po.total_amount:.2f}"
    if change_type == "quantity":
        return str(rng.randint(1, 500)), str(rng.randint(1, 500))
    if change_type == "delivery_date":
        new = po.expected_delivery_date or po.po_date + timedelta(days=30)
        return (new - timedelta(days=rng.randint(1, 30))).isoformat(), new.isoformat()
    if change_type == "vendor":
        return vendor_id(rng.randint(1, vendor_count)), po.vendor_id
    if change_type == "status":
        return "draft", po.status
    return "", po.remarks or "Updated terms"


def generate_po_change_logs(
    purchase_orders: List[PurchaseOrder],
    rng: SeededRandom,
    counters: SequenceCounters,
    user_count: int,
    vendor_count: int,
    approval_threshold: float,
) -> List[POChangeLog]:
    """Amendment records for roughly 40% of POs that were updated."""
    logs = []
    for po in purchase_orders:
        if po.updated_date is None or rng.next() >= 0.4:
            continue
        change_type = rng.choice(CHANGE_TYPES)
        old_value, new_value = _change_values(po, change_type, rng, vendor_count)
        approval_required = po.total_amount > approval_threshold

        approved_by = approval_date = None
        if approval_required and rng.chance(0.7):
            approved_by = random_user(rng, user_count)
            approval_date = po.updated_date + timedelta(days=rng.randint(0, 3))

        year = po.updated_date.year
        logs.append(POChangeLog(
            change_id=log_id(PO_CHANGE_PREFIX, year, counters.next(PO_CHANGE_PREFIX, year)),
            po_no=po.po_no,
            change_date=po.updated_date,
            change_type=change_type,
            old_value=old_value,
            new_value=new_value,
            change_reason=rng.choice(PO_CHANGE_REASONS),
            changed_by=random_user(rng, user_count),
            approval_required=approval_required,
            approved_by=approved_by,
            approval_date=approval_date,
        ))
    return logs
