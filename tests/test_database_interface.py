"""Tests for Database interface returning domain models."""

import pytest
from datetime import date, datetime
from decimal import Decimal

from gstrecon.domain import entities
from gstrecon.domain.entities import (
    ActionStatus,
    DocumentType,
    ImportStatus,
    MatchResult,
    MatchStatus,
    RecordDraft,
    SupplySection,
    TaxBreakdown,
)
from gstrecon.domain.errors import ConflictError, NotFoundError


def make_draft(number, supplier="27AAPFU0939F1ZV", name="Alpha Supplies", igst="18"):
    taxes = TaxBreakdown(igst=Decimal(igst))
    return RecordDraft(
        supplier_gstin=supplier,
        supplier_name=name,
        document_number=number,
        document_date=date(2024, 5, 1),
        document_type=DocumentType.INVOICE,
        section=SupplySection.B2B,
        taxable_value=Decimal("100"),
        taxes=taxes,
        total_value=Decimal("100") + taxes.total,
        itc_eligible=True,
        itc=taxes,
    )


@pytest.fixture
def company_id(temp_db):
    return temp_db.create_company(name="Acme", gstin="29aabca1234f1z5")


@pytest.fixture
def import_id(temp_db, company_id):
    return temp_db.create_import(
        company_id=company_id,
        return_period="May-2024",
        period_start=date(2024, 5, 1),
        gstin="29AABCA1234F1Z5",
        file_hash="ABC",
        raw_payload="{}",
    )


class TestDatabaseInterface:
    """Tests to verify Database interface returns domain models."""

    def test_get_company_returns_domain_model(self, temp_db, company_id):
        """Test that get_company returns a domain Company entity."""
        company = temp_db.get_company(company_id)

        assert isinstance(company, entities.Company)
        assert company.name == "Acme"
        assert company.gstin == "29AABCA1234F1Z5"
        assert isinstance(company.created_at, datetime)

    def test_duplicate_company_name(self, temp_db, company_id):
        with pytest.raises(ConflictError):
            temp_db.create_company(name="Acme")

    def test_create_import_starts_pending(self, temp_db, import_id):
        gstr_import = temp_db.get_import(import_id)

        assert isinstance(gstr_import, entities.GstrImport)
        assert gstr_import.status == ImportStatus.PENDING
        assert gstr_import.imported_at is not None
        assert gstr_import.processed_at is None
        assert gstr_import.total_itc_amount == Decimal("0")

    def test_duplicate_hash_is_a_conflict(self, temp_db, company_id, import_id):
        with pytest.raises(ConflictError, match="already been imported for May-2024"):
            temp_db.create_import(
                company_id=company_id,
                return_period="May-2024",
                period_start=date(2024, 5, 1),
                gstin="29AABCA1234F1Z5",
                file_hash="ABC",
                raw_payload="{}",
            )

    def test_same_hash_other_period_is_allowed(self, temp_db, company_id, import_id):
        other = temp_db.create_import(
            company_id=company_id,
            return_period="Jun-2024",
            period_start=date(2024, 6, 1),
            gstin="29AABCA1234F1Z5",
            file_hash="ABC",
            raw_payload="{}",
        )
        assert other != import_id
        assert temp_db.get_import_by_hash(company_id, "Jun-2024", "ABC").id == other

    def test_status_transitions(self, temp_db, import_id):
        temp_db.update_import_status(import_id, ImportStatus.PROCESSING)
        temp_db.update_import_status(import_id, ImportStatus.COMPLETED)

        gstr_import = temp_db.get_import(import_id)
        assert gstr_import.status == ImportStatus.COMPLETED
        assert gstr_import.processed_at is not None

        with pytest.raises(ConflictError, match="cannot move from 'completed' to 'processing'"):
            temp_db.update_import_status(import_id, ImportStatus.PROCESSING)

    def test_failed_status_keeps_message(self, temp_db, import_id):
        temp_db.update_import_status(import_id, ImportStatus.FAILED, error_message="bad file")
        assert temp_db.get_import(import_id).error_message == "bad file"

    def test_update_missing_import(self, temp_db):
        with pytest.raises(NotFoundError):
            temp_db.update_import_status(99, ImportStatus.PROCESSING)

    def test_latest_import_by_status(self, temp_db, company_id, import_id):
        assert temp_db.get_latest_import(company_id, "May-2024").id == import_id
        assert temp_db.get_latest_import(company_id, "May-2024", ImportStatus.COMPLETED) is None

    def test_bulk_insert_and_count(self, temp_db, company_id, import_id):
        drafts = [make_draft(f"INV-{n}") for n in range(7)]
        inserted = temp_db.bulk_insert_records(import_id, company_id, "May-2024", drafts, batch_size=3)

        assert inserted == 7
        records = temp_db.list_records_for_import(import_id)
        assert len(records) == 7
        assert all(isinstance(r, entities.ExternalRecord) for r in records)
        counts = temp_db.count_records_by_match_status(import_id)
        assert counts == {
            MatchStatus.PENDING: 7,
            MatchStatus.MATCHED: 0,
            MatchStatus.PARTIAL_MATCH: 0,
            MatchStatus.UNMATCHED: 0,
        }

    def test_update_matches_and_sum_itc(self, temp_db, company_id, import_id):
        temp_db.bulk_insert_records(
            import_id, company_id, "May-2024", [make_draft("A"), make_draft("B", igst="36")]
        )
        first, second = temp_db.list_records_for_import(import_id)
        temp_db.update_record_matches(
            [
                (first.id, MatchResult(is_match=True, confidence=100, rule_code="EXACT")),
                (second.id, MatchResult(is_match=False)),
            ]
        )

        updated = temp_db.get_record(first.id)
        assert updated.match_status == MatchStatus.MATCHED
        assert updated.match_confidence == 100
        assert updated.match_rule_code == "EXACT"
        assert temp_db.sum_itc_by_match_status(import_id, MatchStatus.MATCHED) == Decimal("18")
        assert temp_db.sum_itc_by_match_status(import_id, MatchStatus.UNMATCHED) == Decimal("36")
        assert len(temp_db.list_records_for_import(import_id, [MatchStatus.UNMATCHED])) == 1

    def test_record_action(self, temp_db, company_id, import_id):
        temp_db.bulk_insert_records(import_id, company_id, "May-2024", [make_draft("A")])
        record = temp_db.list_records_for_import(import_id)[0]

        temp_db.update_record_action(record.id, ActionStatus.REJECTED, "asha", "wrong supplier")
        rejected = temp_db.get_record(record.id)
        assert rejected.action_status == ActionStatus.REJECTED
        assert isinstance(rejected.action_at, datetime)

        temp_db.update_record_action(record.id, None, None, None)
        assert temp_db.get_record(record.id).action_at is None

    def test_records_page_search(self, temp_db, company_id, import_id):
        temp_db.bulk_insert_records(
            import_id,
            company_id,
            "May-2024",
            [make_draft("A-1"), make_draft("B-1", supplier="29AAACB2222C1ZX", name="Beta Traders")],
        )
        items, total = temp_db.list_records_page(import_id, 0, 10, search="BETA")
        assert total == 1
        assert items[0].document_number == "B-1"

    def test_delete_records_for_import(self, temp_db, company_id, import_id):
        temp_db.bulk_insert_records(import_id, company_id, "May-2024", [make_draft("A")])
        assert temp_db.delete_records_for_import(import_id) == 1
        assert temp_db.list_records_for_import(import_id) == []

    def test_duplicate_global_rule_code(self, temp_db, company_id):
        temp_db.create_rule(None, "EXACT", "Exact", 10, confidence_score=100)
        with pytest.raises(ConflictError):
            temp_db.create_rule(None, "EXACT", "Exact again", 11, confidence_score=100)

        assert temp_db.create_rule(company_id, "EXACT", "Company exact", 5, confidence_score=100)

    def test_vendor_invoice_round_trip(self, temp_db, company_id):
        invoice_id = temp_db.create_vendor_invoice(
            company_id=company_id,
            supplier_gstin="27aapfu0939f1zv",
            invoice_number="INV-1",
            invoice_date=date(2024, 5, 3),
            subtotal=Decimal("100.00"),
            taxes=TaxBreakdown(cgst=Decimal("9.00"), sgst=Decimal("9.00")),
        )
        invoice = temp_db.get_vendor_invoice(invoice_id)

        assert isinstance(invoice, entities.VendorInvoice)
        assert invoice.supplier_gstin == "27AAPFU0939F1ZV"
        assert invoice.total_tax == Decimal("18.00")
        assert temp_db.query_vendor_invoices(company_id, supplier_gstin="27aapfu0939f1zv")[0].id == invoice_id
