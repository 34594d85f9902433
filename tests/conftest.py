"""
Pytest configuration and fixtures for the P2P generator tests.
"""

from datetime import date

import pytest

from p2p_datagen.config import GeneratorConfig
from p2p_datagen.models import (
    GoodsReceipt,
    Invoice,
    P2PDataset,
    Payment,
    PRHeader,
    PRLine,
    PurchaseOrder,
    Vendor,
)
from p2p_datagen.pipeline import generate
from p2p_datagen.rng import SeededRandom


def small_config(**overrides) -> GeneratorConfig:
    """A seeded config small enough for fast end-to-end runs."""
    config = GeneratorConfig(seed=42, vendor_count=100, po_count=500, start_year=2023, end_year=2024)
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


@pytest.fixture
def config():
    """Fresh small config per test."""
    return small_config()


@pytest.fixture
def rng():
    return SeededRandom(42)


@pytest.fixture(scope="session")
def clean_result():
    """Generated once per session: constraints applied, no anomalies."""
    return generate(small_config(enable_anomalies=False))


@pytest.fixture(scope="session")
def anomalous_result():
    """Generated once per session with a spread of anomaly types."""
    config = small_config()
    config.anomalies.update({
        "missing_pan_pct": 10,
        "duplicate_vendor_bank_pct": 5,
        "invoice_without_grn_pct": 10,
        "payment_before_invoice_pct": 10,
        "po_approval_violation_pct": 20,
        "grn_delayed_receipt_pct": 50,
    })
    return generate(config)


# =============================================================================
# RECORD FACTORIES
# =============================================================================

@pytest.fixture
def make_vendor():
    """Factory for vendors with every optional field present."""
    def _make(seq: int, **overrides) -> Vendor:
        fields = dict(
            vendor_id=f"VND{seq:06d}",
            vendor_name=f"Vendor {seq}",
            pan=f"ABCDE{seq % 10000:04d}F",
            gstin=f"27ABCDE{seq % 10000:04d}F1Z5",
            bank_account=f"{1000000000 + seq}",
            ifsc="HDFC0001234",
            bank_name="HDFC Bank",
            account_holder_name=f"Vendor {seq}",
            address="1 Main Road, Pune",
            contact_email=f"accounts{seq}@example.com",
            contact_phone="+91-9800000000",
            status="active",
            bank_change_verification=True,
            created_date=date(2024, 1, 1),
            verified_by="USER000001",
            verification_date=date(2024, 1, 10),
        )
        fields.update(overrides)
        return Vendor(**fields)
    return _make


@pytest.fixture
def make_po():
    def _make(seq: int, vendor_id: str = "VND000001", **overrides) -> PurchaseOrder:
        fields = dict(
            po_no=f"PO2024-{seq:05d}",
            vendor_id=vendor_id,
            po_date=date(2024, 2, 1),
            order_amount=10_000.0,
            tax_amount=1_800.0,
            total_amount=11_800.0,
            status="approved",
            approval_status="approved",
            created_by="USER000001",
            created_date=date(2024, 2, 1),
        )
        fields.update(overrides)
        return PurchaseOrder(**fields)
    return _make


@pytest.fixture
def make_grn():
    def _make(seq: int, po_no: str = "PO2024-00001", vendor_id: str = "VND000001", **overrides) -> GoodsReceipt:
        fields = dict(
            grn_no=f"GRN2024-{seq:05d}",
            po_no=po_no,
            vendor_id=vendor_id,
            grn_date=date(2024, 2, 10),
            received_amount=10_000.0,
            tax_amount=1_800.0,
            total_amount=11_800.0,
            quantity_ordered=100,
            quantity_received=100,
            status="completed",
            received_by="USER000002",
            created_date=date(2024, 2, 10),
        )
        fields.update(overrides)
        return GoodsReceipt(**fields)
    return _make


@pytest.fixture
def make_invoice():
    def _make(seq: int, vendor_id: str = "VND000001", **overrides) -> Invoice:
        fields = dict(
            invoice_no=f"INV2024-{seq:05d}",
            vendor_id=vendor_id,
            po_no="PO2024-00001",
            grn_no="GRN2024-00001",
            invoice_date=date(2024, 3, 1),
            due_date=date(2024, 3, 31),
            invoice_amount=10_000.0,
            tax_amount=1_800.0,
            total_amount=11_800.0,
            tax_rate=18.0,
            status="approved",
            approval_status="approved",
            created_by="USER000003",
            created_date=date(2024, 3, 1),
        )
        fields.update(overrides)
        return Invoice(**fields)
    return _make


@pytest.fixture
def make_payment():
    def _make(seq: int, invoice_no: str = "INV2024-00001", vendor_id: str = "VND000001",
              **overrides) -> Payment:
        fields = dict(
            payment_id=f"PAY2024-{seq:05d}",
            invoice_no=invoice_no,
            vendor_id=vendor_id,
            payment_date=date(2024, 3, 20),
            payment_amount=11_800.0,
            payment_mode="neft",
            bank_account="1000000001",
            ifsc="HDFC0001234",
            status="completed",
            approval_status="approved",
            created_by="USER000004",
            created_date=date(2024, 3, 20),
        )
        fields.update(overrides)
        return Payment(**fields)
    return _make


@pytest.fixture
def make_pr():
    def _make(seq: int, **overrides) -> PRHeader:
        fields = dict(
            pr_no=f"PR2024-{seq:05d}",
            pr_date=date(2024, 1, 20),
            requested_by="USER000005",
            department="Operations",
            status="converted",
            approval_status="approved",
            total_amount=11_800.0,
            created_by="USER000005",
            created_date=date(2024, 1, 20),
        )
        fields.update(overrides)
        return PRHeader(**fields)
    return _make


@pytest.fixture
def make_pr_line():
    def _make(pr_no: str, line_number: int = 1, po_no=None, **overrides) -> PRLine:
        fields = dict(
            pr_line_id=f"PRL{pr_no[2:]}-{line_number:03d}",
            pr_no=pr_no,
            line_number=line_number,
            item_description="Industrial valves",
            quantity=10,
            unit_price=1_180.0,
            line_amount=11_800.0,
            category="goods",
            status="converted" if po_no else "open",
            created_date=date(2024, 1, 20),
            po_no=po_no,
        )
        fields.update(overrides)
        return PRLine(**fields)
    return _make


@pytest.fixture
def linked_dataset(make_vendor, make_po, make_grn, make_invoice, make_payment):
    """One vendor with a PO -> GRN -> invoice -> payment chain."""
    return P2PDataset(
        vendors=[make_vendor(1)],
        purchase_orders=[make_po(1)],
        grns=[make_grn(1)],
        invoices=[make_invoice(1)],
        payments=[make_payment(1)],
    )
