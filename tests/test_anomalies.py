"""
Tests for anomaly injection on vendor master and transaction data.

Tests cover:
- Exact percentage-to-count selection
- No-op behaviour for absent or zero percentages
- Copy-on-inject (the caller's dataset is never mutated)
- One taxonomy id per injector call
- Inactive-vendor fan-out
- Soft-skip on missing taxonomy mappings or metadata
"""

from collections import Counter
from datetime import timedelta

import pytest

from p2p_datagen.anomalies import inject, taxonomy
from p2p_datagen.config import AnomalyConfig
from p2p_datagen.models import P2PDataset
from p2p_datagen.rng import SeededRandom


def run(dataset, seed=1, **pcts):
    return inject(dataset, AnomalyConfig().update(pcts), SeededRandom(seed))


@pytest.fixture
def thousand_vendors(make_vendor):
    return P2PDataset(vendors=[make_vendor(i) for i in range(1, 1001)])


class TestSelection:
    """Tests for exact-count selection."""

    def test_exact_cardinality(self, thousand_vendors):
        result = run(thousand_vendors, missing_pan_pct=10)
        assert len(result.truth_records) == 100
        assert sum(1 for v in result.dataset.vendors if v.pan is None) == 100
        flagged = {t.entity_id for t in result.truth_records}
        assert len(flagged) == 100
        assert all(v.pan is None for v in result.dataset.vendors if v.vendor_id in flagged)

    def test_gstin_cleared_with_pan(self, thousand_vendors):
        result = run(thousand_vendors, missing_pan_pct=10)
        for truth in result.truth_records:
            assert truth.planted_fields == ["pan", "gstin"]
        assert sum(1 for v in result.dataset.vendors if v.gstin is None) == 100

    def test_count_floors(self, make_vendor):
        dataset = P2PDataset(vendors=[make_vendor(i) for i in range(1, 20)])
        assert len(run(dataset, vendor_without_approval_pct=10).truth_records) == 1

    def test_count_below_one_is_noop(self, make_vendor):
        dataset = P2PDataset(vendors=[make_vendor(i) for i in range(1, 10)])
        result = run(dataset, missing_pan_pct=10)
        assert result.truth_records == []
        assert all(v.pan for v in result.dataset.vendors)

    def test_only_eligible_records_selected(self, make_vendor):
        vendors = [make_vendor(i) for i in range(1, 11)] + [make_vendor(i, pan=None) for i in range(11, 21)]
        result = run(P2PDataset(vendors=vendors), missing_pan_pct=50)
        assert len(result.truth_records) == 5
        assert all(int(t.entity_id[3:]) <= 10 for t in result.truth_records)


class TestNoOp:
    """Tests for absent and zero percentages."""

    def test_empty_config(self, thousand_vendors):
        rng = SeededRandom(1)
        result = inject(thousand_vendors, AnomalyConfig(), rng)
        assert result.truth_records == []
        assert result.dataset == thousand_vendors
        assert rng.draws == 0

    def test_zero_percent(self, thousand_vendors):
        result = run(thousand_vendors, missing_pan_pct=0)
        assert result.truth_records == []
        assert all(v.pan for v in result.dataset.vendors)


class TestCopySemantics:
    """Tests that injection works on a copy."""

    def test_input_untouched(self, thousand_vendors):
        result = run(thousand_vendors, missing_pan_pct=50, bank_change_unverified_pct=50)
        assert all(v.pan for v in thousand_vendors.vendors)
        assert all(v.bank_change_verification for v in thousand_vendors.vendors)
        assert result.dataset is not thousand_vendors

    def test_deterministic(self, thousand_vendors):
        a = run(thousand_vendors, seed=5, missing_pan_pct=10, duplicate_vendor_bank_pct=3)
        b = run(thousand_vendors, seed=5, missing_pan_pct=10, duplicate_vendor_bank_pct=3)
        assert [t.to_row() for t in a.truth_records] == [t.to_row() for t in b.truth_records]


class TestTruthRecords:
    """Tests for truth-record bookkeeping."""

    def test_one_test_step_per_call(self, thousand_vendors):
        result = run(thousand_vendors, missing_pan_pct=20)
        step_ids = {t.test_step_id for t in result.truth_records}
        assert len(step_ids) == 1
        assert step_ids <= {"TS-002", "TS-003"}

    def test_metadata_from_catalog(self, thousand_vendors):
        truth = run(thousand_vendors, bank_change_unverified_pct=1).truth_records[0]
        assert truth.test_step_id == "TS-007"
        assert truth.test_step_name == "Unverified Bank Changes"
        assert truth.process_area == "vendor_master_pack"
        assert truth.entity_type == "vendor"
        assert truth.expected_flag is True

    def test_anomaly_ids_restart_per_call(self, thousand_vendors):
        first = run(thousand_vendors, missing_pan_pct=1)
        second = run(thousand_vendors, missing_pan_pct=1)
        expected = [f"ANOM-{i:06d}" for i in range(1, 11)]
        assert [t.anomaly_id for t in first.truth_records] == expected
        assert [t.anomaly_id for t in second.truth_records] == expected

    def test_row_serialization(self, thousand_vendors):
        truth = run(thousand_vendors, missing_pan_pct=1).truth_records[0]
        row = truth.to_row()
        assert row["planted_fields"] == "pan,gstin"
        assert row["secondary_ids"].startswith("{")
        assert row["expected_flag"] == "true"

    def test_counts_by_test_step(self, thousand_vendors):
        result = run(thousand_vendors, missing_pan_pct=1, vendor_without_approval_pct=2)
        counts = result.counts_by_test_step()
        assert sum(counts.values()) == 30
        assert counts["TS-006"] == 20


class TestDuplicates:
    """Tests for duplicate-style injectors."""

    def test_duplicate_pan(self, make_vendor):
        dataset = P2PDataset(vendors=[make_vendor(i) for i in range(1, 101)])
        result = run(dataset, duplicate_vendor_pan_pct=5)
        assert len(result.truth_records) == 4
        source_id = result.truth_records[0].secondary_ids["source_vendor_id"]
        source = result.dataset.vendor_index()[source_id]
        for truth in result.truth_records:
            vendor = result.dataset.vendor_index()[truth.entity_id]
            assert vendor.pan == source.pan
            assert vendor.gstin[2:12] == source.pan

    def test_duplicate_needs_two(self, make_vendor):
        dataset = P2PDataset(vendors=[make_vendor(i) for i in range(1, 11)])
        assert run(dataset, duplicate_vendor_pan_pct=10).truth_records == []

    def test_duplicate_bank(self, make_vendor):
        dataset = P2PDataset(vendors=[make_vendor(i) for i in range(1, 101)])
        result = run(dataset, duplicate_vendor_bank_pct=3)
        assert len(result.truth_records) == 2
        accounts = Counter(v.bank_account for v in result.dataset.vendors)
        assert accounts.most_common(1)[0][1] == 3

    def test_duplicate_invoice_number(self, make_invoice):
        dataset = P2PDataset(invoices=[make_invoice(i) for i in range(1, 11)])
        result = run(dataset, duplicate_invoice_number_pct=30)
        assert len(result.truth_records) == 2
        numbers = Counter(inv.invoice_no for inv in result.dataset.invoices)
        assert numbers.most_common(1)[0][1] == 3
        assert all(t.test_step_id == "TS-118" for t in result.truth_records)
        duplicated = numbers.most_common(1)[0][0]
        for truth in result.truth_records:
            assert truth.secondary_ids["source_invoice_no"] == duplicated
            assert truth.secondary_ids["original_invoice_no"] != duplicated


class TestInactiveVendorFanOut:
    """Tests for inactive_vendor_used_pct."""

    def test_one_record_per_referencing_transaction(self, make_vendor, make_po, make_invoice, make_payment):
        dataset = P2PDataset(
            vendors=[make_vendor(1), make_vendor(2, status="inactive")],
            purchase_orders=[make_po(i) for i in range(1, 8)] + [make_po(8, vendor_id="VND000002")],
            invoices=[make_invoice(i) for i in range(1, 4)],
            payments=[make_payment(i, invoice_no=f"INV2024-{i:05d}") for i in range(1, 3)],
        )
        result = run(dataset, inactive_vendor_used_pct=100)

        assert len(result.truth_records) == 12
        by_step = Counter(t.test_step_id for t in result.truth_records)
        assert by_step == {"TS-063": 7, "TS-132": 3, "TS-142": 2}
        assert Counter(t.entity_type for t in result.truth_records) == {"po": 7, "invoice": 3, "payment": 2}
        assert not result.dataset.vendor_index()["VND000001"].is_active

    def test_no_active_vendors(self, make_vendor, make_po):
        dataset = P2PDataset(vendors=[make_vendor(1, status="inactive")], purchase_orders=[make_po(1)])
        assert run(dataset, inactive_vendor_used_pct=100).truth_records == []


class TestTransactionAnomalies:
    """Tests for invoice and payment mutations."""

    def test_invoice_without_grn(self, linked_dataset):
        result = run(linked_dataset, invoice_without_grn_pct=100)
        assert result.dataset.invoices[0].grn_no is None
        assert result.truth_records[0].secondary_ids["original_grn_no"] == "GRN2024-00001"

    def test_payment_before_invoice(self, linked_dataset):
        result = run(linked_dataset, payment_before_invoice_pct=100)
        invoice_date = result.dataset.invoices[0].invoice_date
        payment_date = result.dataset.payments[0].payment_date
        assert invoice_date - timedelta(days=30) <= payment_date <= invoice_date - timedelta(days=1)
        assert result.truth_records[0].entity_id == "PAY2024-00001"

    def test_payment_resolves_invoice_after_renumbering(self, make_invoice, make_payment):
        """Payments resolve invoices through the index captured before mutation."""
        dataset = P2PDataset(
            invoices=[make_invoice(i) for i in range(1, 11)],
            payments=[make_payment(i, invoice_no=f"INV2024-{i:05d}") for i in range(1, 11)],
        )
        result = run(dataset, duplicate_invoice_number_pct=50, payment_before_invoice_pct=100)
        assert sum(1 for t in result.truth_records if t.entity_type == "payment") == 10


class TestSoftSkip:
    """Tests for unresolved taxonomy entries."""

    def test_missing_mapping_skips_type(self, monkeypatch, thousand_vendors):
        monkeypatch.setitem(taxonomy.ANOMALY_TEST_STEPS, "missing_pan", [])
        result = run(thousand_vendors, missing_pan_pct=10, vendor_without_approval_pct=10)
        assert all(v.pan for v in result.dataset.vendors)
        assert {t.test_step_id for t in result.truth_records} == {"TS-006"}
        assert len(result.truth_records) == 100

    def test_missing_metadata_skips_type(self, monkeypatch, make_vendor):
        monkeypatch.delitem(taxonomy.TEST_STEPS, "TS-004")
        dataset = P2PDataset(vendors=[make_vendor(i) for i in range(1, 101)])
        result = run(dataset, duplicate_vendor_pan_pct=10)
        assert result.truth_records == []
        assert len({v.pan for v in result.dataset.vendors}) == 100

    def test_missing_mapping_logs_warning(self, monkeypatch, thousand_vendors, caplog):
        monkeypatch.setitem(taxonomy.ANOMALY_TEST_STEPS, "missing_pan", [])
        run(thousand_vendors, missing_pan_pct=10)
        assert "No test steps mapped for missing_pan_pct" in caplog.text
