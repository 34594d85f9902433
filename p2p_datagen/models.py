"""
Record types for the synthetic procure-to-pay dataset.

Each entity is a dataclass validated once at construction. Optional fields
default to None and are written as empty cells. Records are mutated only by
the constraint pass and by the anomaly injector (on its own deep copy).

Entities:
- Vendor, PRHeader, PRLine, PurchaseOrder, Quotation, Contract
- GoodsReceipt, Invoice, Payment, RoleAssignment
- WorkflowLog, VendorBankChangeLog, POChangeLog
- AnomalyTruthRecord (ground truth for planted anomalies)
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Type


# =============================================================================
# ALLOWED VALUES
# =============================================================================

VENDOR_STATUSES = ("active", "inactive")
APPROVAL_STATUSES = ("pending", "approved", "rejected")
PR_STATUSES = ("draft", "pending_approval", "approved", "rejected", "converted", "cancelled")
PR_LINE_STATUSES = ("open", "converted", "cancelled")
PR_LINE_CATEGORIES = ("goods", "services", "capex", "other")
PO_STATUSES = ("draft", "pending_approval", "approved", "rejected", "cancelled", "completed")
PROCUREMENT_TYPES = ("goods", "services")
GRN_STATUSES = ("completed", "partial")
QUALITY_STATUSES = ("passed", "failed")
INVOICE_STATUSES = ("draft", "pending_approval", "approved", "rejected", "paid", "cancelled")
PAYMENT_MODES = ("cheque", "neft", "rtgs", "upi", "card", "cash", "other")
PAYMENT_STATUSES = ("pending", "initiated", "completed", "failed", "cancelled")
QUOTATION_STATUSES = ("submitted", "accepted", "rejected")
CONTRACT_STATUSES = ("active", "expired")
CONTRACT_TYPES = ("framework", "fixed_price", "rate_contract", "annual_maintenance")
CHANGE_TYPES = ("amount", "quantity", "delivery_date", "vendor", "status", "other")

# Business-rule eligibility for downstream documents
RECEIVABLE_PO_STATUSES = ("approved", "completed")
INVOICEABLE_PO_STATUSES = ("approved", "completed")
PAYABLE_INVOICE_STATUSES = ("approved", "paid")


def _check_choice(record: str, name: str, value: Optional[str], allowed: Sequence[str]) -> None:
    if value is not None and value not in allowed:
        raise ValueError(f"{record}.{name} must be one of {list(allowed)}, got {value!r}")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


class Record:
    """Mixin giving dataclass records a flat, ordered row representation."""

    @classmethod
    def columns(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def to_row(self) -> Dict[str, str]:
        return {name: _cell(getattr(self, name)) for name in self.columns()}


# =============================================================================
# MASTER DATA
# =============================================================================

@dataclass
class Vendor(Record):
    """Vendor master record."""

    entity_type = "vendor"

    vendor_id: str
    vendor_name: str
    bank_account: str
    bank_name: str
    account_holder_name: str
    address: str
    contact_email: str
    contact_phone: str
    status: str
    bank_change_verification: bool
    created_date: date
    pan: Optional[str] = None
    gstin: Optional[str] = None
    ifsc: Optional[str] = None
    updated_date: Optional[date] = None
    verified_by: Optional[str] = None
    verification_date: Optional[date] = None

    def __post_init__(self) -> None:
        _check_choice("Vendor", "status", self.status, VENDOR_STATUSES)

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass
class Contract(Record):
    """Vendor contract with a validity window."""

    entity_type = "contract"

    contract_id: str
    contract_number: str
    vendor_id: str
    contract_date: date
    start_date: date
    end_date: date
    contract_type: str
    status: str
    created_by: str
    created_date: date
    currency: str = "INR"
    contract_amount: Optional[float] = None
    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("Contract", "status", self.status, CONTRACT_STATUSES)
        _check_choice("Contract", "contract_type", self.contract_type, CONTRACT_TYPES)
        if self.end_date < self.start_date:
            raise ValueError("Contract.end_date must not precede start_date")

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class RoleAssignment(Record):
    """User to role assignment for segregation-of-duties checks."""

    entity_type = "role_assignment"

    role_assignment_id: str
    user_id: str
    role_name: str
    department: str
    effective_from: date
    is_active: bool
    created_by: str
    created_date: date
    effective_to: Optional[date] = None


# =============================================================================
# TRANSACTIONS
# =============================================================================

@dataclass
class PRHeader(Record):
    """Purchase requisition header."""

    entity_type = "pr"

    pr_no: str
    pr_date: date
    requested_by: str
    department: str
    status: str
    approval_status: str
    total_amount: float
    created_by: str
    created_date: date
    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    updated_date: Optional[date] = None
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("PRHeader", "status", self.status, PR_STATUSES)
        _check_choice("PRHeader", "approval_status", self.approval_status, APPROVAL_STATUSES)


@dataclass
class PRLine(Record):
    """Purchase requisition line. Only the last line of a linked PR carries po_no."""

    entity_type = "pr_line"

    pr_line_id: str
    pr_no: str
    line_number: int
    item_description: str
    quantity: int
    unit_price: float
    line_amount: float
    category: str
    status: str
    created_date: date
    po_no: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("PRLine", "category", self.category, PR_LINE_CATEGORIES)
        _check_choice("PRLine", "status", self.status, PR_LINE_STATUSES)


@dataclass
class PurchaseOrder(Record):
    """Purchase order header. total_amount = order_amount + tax_amount."""

    entity_type = "po"

    po_no: str
    vendor_id: str
    po_date: date
    order_amount: float
    tax_amount: float
    total_amount: float
    status: str
    approval_status: str
    created_by: str
    created_date: date
    currency: str = "INR"
    contract_id: Optional[str] = None
    procurement_type: Optional[str] = None
    expected_delivery_date: Optional[date] = None
    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    rejected_reason: Optional[str] = None
    updated_date: Optional[date] = None
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("PurchaseOrder", "status", self.status, PO_STATUSES)
        _check_choice("PurchaseOrder", "approval_status", self.approval_status, APPROVAL_STATUSES)
        _check_choice("PurchaseOrder", "procurement_type", self.procurement_type, PROCUREMENT_TYPES)

    @property
    def tax_ratio(self) -> float:
        return self.tax_amount / self.order_amount if self.order_amount else 0.0


@dataclass
class Quotation(Record):
    """Vendor quotation received ahead of a PO."""

    entity_type = "quotation"

    quotation_id: str
    po_no: str
    vendor_id: str
    quotation_date: date
    quote_amount: float
    validity_days: int
    status: str
    is_selected: bool
    created_by: str
    created_ip: str
    created_date: date
    currency: str = "INR"
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("Quotation", "status", self.status, QUOTATION_STATUSES)


@dataclass
class GoodsReceipt(Record):
    """Goods receipt note. A PO may have several (partial receipts)."""

    entity_type = "grn"

    grn_no: str
    vendor_id: str
    grn_date: date
    received_amount: float
    tax_amount: float
    total_amount: float
    quantity_ordered: int
    quantity_received: int
    status: str
    received_by: str
    created_date: date
    po_no: Optional[str] = None
    received_date: Optional[date] = None
    quality_check_status: Optional[str] = None
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("GoodsReceipt", "status", self.status, GRN_STATUSES)
        _check_choice("GoodsReceipt", "quality_check_status", self.quality_check_status, QUALITY_STATUSES)


@dataclass
class Invoice(Record):
    """Vendor invoice. total_amount = invoice_amount + tax_amount."""

    entity_type = "invoice"

    invoice_no: str
    vendor_id: str
    invoice_date: date
    invoice_amount: float
    tax_amount: float
    total_amount: float
    tax_rate: float
    status: str
    approval_status: str
    created_by: str
    created_date: date
    currency: str = "INR"
    po_no: Optional[str] = None
    grn_no: Optional[str] = None
    due_date: Optional[date] = None
    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    rejected_reason: Optional[str] = None
    updated_date: Optional[date] = None
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("Invoice", "status", self.status, INVOICE_STATUSES)
        _check_choice("Invoice", "approval_status", self.approval_status, APPROVAL_STATUSES)


@dataclass
class Payment(Record):
    """Payment against an invoice."""

    entity_type = "payment"

    payment_id: str
    invoice_no: str
    vendor_id: str
    payment_date: date
    payment_amount: float
    payment_mode: str
    bank_account: str
    status: str
    approval_status: str
    created_by: str
    created_date: date
    ifsc: Optional[str] = None
    cheque_number: Optional[str] = None
    transaction_reference: Optional[str] = None
    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    processed_by: Optional[str] = None
    processed_date: Optional[date] = None
    remarks: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("Payment", "payment_mode", self.payment_mode, PAYMENT_MODES)
        _check_choice("Payment", "status", self.status, PAYMENT_STATUSES)
        _check_choice("Payment", "approval_status", self.approval_status, APPROVAL_STATUSES)


# =============================================================================
# LOGS
# =============================================================================

@dataclass
class WorkflowLog(Record):
    """One step in the ordered workflow history of a PR, PO or payment."""

    entity_type = "workflow_log"

    log_id: str
    parent_type: str
    parent_id: str
    step_number: int
    action: str
    to_status: str
    performed_by: str
    performed_date: date
    from_status: Optional[str] = None
    comments: Optional[str] = None


@dataclass
class VendorBankChangeLog(Record):
    entity_type = "vendor_bank_change_log"

    change_id: str
    vendor_id: str
    change_date: date
    old_bank_account: str
    new_bank_account: str
    change_reason: str
    changed_by: str
    verified: bool
    old_ifsc: Optional[str] = None
    new_ifsc: Optional[str] = None
    verified_by: Optional[str] = None
    verification_date: Optional[date] = None


@dataclass
class POChangeLog(Record):
    entity_type = "po_change_log"

    change_id: str
    po_no: str
    change_date: date
    change_type: str
    old_value: str
    new_value: str
    changed_by: str
    approval_required: bool
    approved_by: Optional[str] = None
    approval_date: Optional[date] = None
    change_reason: Optional[str] = None

    def __post_init__(self) -> None:
        _check_choice("POChangeLog", "change_type", self.change_type, CHANGE_TYPES)


# =============================================================================
# GROUND TRUTH
# =============================================================================

@dataclass
class AnomalyTruthRecord(Record):
    """
    Ground-truth record for one planted anomaly.

    Attributes:
        anomaly_id: Sequential id, scoped to one injection call
        test_step_id: Taxonomy id the anomaly should trigger (e.g. TS-002)
        test_step_name: Human-readable name of the test step
        process_area: Scenario pack the test step belongs to
        entity_type: Type of the mutated or flagged record
        entity_id: Id of the mutated or flagged record
        secondary_ids: Related ids (source vendor, original number, ...)
        planted_fields: Field names touched by the mutation
        planted_values_summary: Short description of what was planted
        expected_flag: Always True; a detector should flag this record
        notes: Free text
    """

    anomaly_id: str
    test_step_id: str
    test_step_name: str
    process_area: str
    entity_type: str
    entity_id: str
    secondary_ids: Dict[str, Any] = field(default_factory=dict)
    planted_fields: List[str] = field(default_factory=list)
    planted_values_summary: str = ""
    expected_flag: bool = True
    notes: str = ""

    def to_row(self) -> Dict[str, str]:
        row = super().to_row()
        row["secondary_ids"] = json.dumps(self.secondary_ids, sort_keys=True, default=str)
        row["planted_fields"] = ",".join(self.planted_fields)
        return row


# =============================================================================
# DATASET
# =============================================================================

# (output file stem, dataset attribute, record class)
DATASET_TABLES: Tuple[Tuple[str, str, Type[Record]], ...] = (
    ("vendors", "vendors", Vendor),
    ("pr_headers", "pr_headers", PRHeader),
    ("pr_lines", "pr_lines", PRLine),
    ("purchase_orders", "purchase_orders", PurchaseOrder),
    ("quotations", "quotations", Quotation),
    ("contracts", "contracts", Contract),
    ("grns", "grns", GoodsReceipt),
    ("invoices", "invoices", Invoice),
    ("payments", "payments", Payment),
    ("role_assignments", "role_assignments", RoleAssignment),
    ("pr_workflow_logs", "pr_workflow_logs", WorkflowLog),
    ("po_workflow_logs", "po_workflow_logs", WorkflowLog),
    ("payment_workflow_logs", "payment_workflow_logs", WorkflowLog),
    ("vendor_bank_change_logs", "vendor_bank_change_logs", VendorBankChangeLog),
    ("po_change_logs", "po_change_logs", POChangeLog),
)


@dataclass
class P2PDataset:
    """All generated entity lists for one run."""

    vendors: List[Vendor] = field(default_factory=list)
    pr_headers: List[PRHeader] = field(default_factory=list)
    pr_lines: List[PRLine] = field(default_factory=list)
    purchase_orders: List[PurchaseOrder] = field(default_factory=list)
    quotations: List[Quotation] = field(default_factory=list)
    contracts: List[Contract] = field(default_factory=list)
    grns: List[GoodsReceipt] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)
    payments: List[Payment] = field(default_factory=list)
    role_assignments: List[RoleAssignment] = field(default_factory=list)
    pr_workflow_logs: List[WorkflowLog] = field(default_factory=list)
    po_workflow_logs: List[WorkflowLog] = field(default_factory=list)
    payment_workflow_logs: List[WorkflowLog] = field(default_factory=list)
    vendor_bank_change_logs: List[VendorBankChangeLog] = field(default_factory=list)
    po_change_logs: List[POChangeLog] = field(default_factory=list)

    def copy(self) -> "P2PDataset":
        """Deep copy; the injector works on one of these."""
        return copy.deepcopy(self)

    def tables(self) -> Iterator[Tuple[str, Type[Record], List[Record]]]:
        for stem, attr, record_cls in DATASET_TABLES:
            yield stem, record_cls, getattr(self, attr)

    def counts(self) -> Dict[str, int]:
        return {stem: len(records) for stem, _, records in self.tables()}

    def vendor_index(self) -> Dict[str, Vendor]:
        return {vendor.vendor_id: vendor for vendor in self.vendors}

    def po_index(self) -> Dict[str, PurchaseOrder]:
        return {po.po_no: po for po in self.purchase_orders}

    def grn_index(self) -> Dict[str, GoodsReceipt]:
        return {grn.grn_no: grn for grn in self.grns}

    def invoice_index(self) -> Dict[str, Invoice]:
        return {invoice.invoice_no: invoice for invoice in self.invoices}
