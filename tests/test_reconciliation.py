"""Tests for reconciliation runs and the read side."""

import dataclasses
import json
import pytest
from datetime import date
from decimal import Decimal

from gstrecon.config import Settings
from gstrecon.domain.entities import (
    ActionStatus,
    DocumentType,
    MatchStatus,
    MatchStrategy,
    SupplySection,
)
from gstrecon.domain.errors import NotFoundError, ValidationError
from gstrecon.domain.reconciliation import ReconciliationService

ALPHA_GSTIN = "27AAPFU0939F1ZV"


def records_by_number(temp_db, import_id):
    return {r.document_number: r for r in temp_db.list_records_for_import(import_id)}


@pytest.fixture
def reconciled(reconciliation_service, sample_invoices, default_rules, sample_import):
    """Sample statement reconciled against the sample invoices."""
    result = reconciliation_service.run_reconciliation(sample_import.id)
    assert result.ok, result.error
    return result.value


def test_summary_counts(reconciled):
    assert reconciled.return_period == "May-2024"
    assert reconciled.total_records == 5
    assert reconciled.matched_records == 1
    assert reconciled.partial_match_records == 1
    assert reconciled.unmatched_records == 3
    assert reconciled.pending_records == 0
    assert reconciled.pending_review_records == 4
    assert reconciled.match_percentage == Decimal("20.00")


def test_summary_values(reconciled):
    assert reconciled.total_taxable_value == Decimal("68000")
    assert reconciled.matched_taxable_value == Decimal("10000")
    assert reconciled.unmatched_taxable_value == Decimal("53000")
    assert reconciled.total_itc_available == Decimal("11880")
    assert reconciled.matched_itc == Decimal("1800")
    assert reconciled.unmatched_itc == Decimal("9180")


def test_record_outcomes(temp_db, sample_import, sample_invoices, reconciled):
    records = records_by_number(temp_db, sample_import.id)

    matched = records["INV/001-A"]
    assert matched.match_status == MatchStatus.MATCHED
    assert matched.matched_invoice_id == sample_invoices[0].id
    assert matched.match_confidence == 90
    assert matched.match_rule_code == "FUZZY_NUMBER"
    assert matched.discrepancies == ()
    assert matched.match_details["date_difference_days"] == 2

    partial = records["INV-002"]
    assert partial.match_status == MatchStatus.PARTIAL_MATCH
    assert partial.matched_invoice_id == sample_invoices[1].id
    assert partial.discrepancies == ("Taxable value mismatch: 2B=5000.00, Books=5000.50",)

    for number in ("B-77", "CN-5", "BE1234"):
        assert records[number].match_status == MatchStatus.UNMATCHED
        assert records[number].matched_invoice_id is None
        assert records[number].match_confidence == 0


def test_import_counts_are_stored(temp_db, sample_import, reconciled):
    gstr_import = temp_db.get_import(sample_import.id)
    assert gstr_import.total_records == 5
    assert gstr_import.matched_records == 1
    assert gstr_import.partially_matched_records == 1
    assert gstr_import.unmatched_records == 3
    assert gstr_import.matched_itc_amount == Decimal("1800")


def test_second_run_only_touches_pending(
    temp_db, reconciliation_service, invoice_service, sample_company, sample_import, reconciled
):
    invoice_service.create_invoice(
        company_id=sample_company.id,
        supplier_gstin="29AAACB2222C1ZX",
        invoice_number="B-77",
        invoice_date=date(2024, 5, 20),
        subtotal=Decimal("2000"),
        cgst=Decimal("180"),
        sgst=Decimal("180"),
    )

    again = reconciliation_service.run_reconciliation(sample_import.id).value
    assert again.matched_records == 1

    forced = reconciliation_service.run_reconciliation(sample_import.id, force=True).value
    assert forced.matched_records == 2
    assert records_by_number(temp_db, sample_import.id)["B-77"].match_rule_code == "EXACT"


def test_best_score_strategy(temp_db, reconciliation_service, sample_import, sample_invoices, default_rules):
    summary = reconciliation_service.run_reconciliation(
        sample_import.id, strategy=MatchStrategy.BEST_SCORE
    ).value
    assert summary.matched_records == 1
    record = records_by_number(temp_db, sample_import.id)["INV/001-A"]
    assert record.match_details["strategy"] == "best_score"


def test_without_rules_everything_is_unmatched(
    reconciliation_service, sample_import, sample_invoices
):
    summary = reconciliation_service.run_reconciliation(sample_import.id).value
    assert summary.unmatched_records == 5
    assert summary.match_percentage == Decimal("0.00")


def test_invoices_outside_window_are_ignored(
    temp_db, invoice_service, sample_company, sample_import, default_rules
):
    invoice_service.create_invoice(
        company_id=sample_company.id,
        supplier_gstin=ALPHA_GSTIN,
        invoice_number="CN-5",
        invoice_date=date(2024, 1, 25),
        subtotal=Decimal("1000"),
        igst=Decimal("180"),
    )
    service = ReconciliationService(temp_db, Settings(trailing_months=0))

    summary = service.run_reconciliation(sample_import.id).value

    assert summary.matched_records == 0


def test_unknown_import(reconciliation_service):
    result = reconciliation_service.run_reconciliation(404)
    assert isinstance(result.error, NotFoundError)


def test_failed_import_cannot_be_reconciled(reconciliation_service, sample_company):
    payload = json.dumps(
        {"rtnprd": "052024", "docdata": {"impg": [{"benum": "X", "bedt": "bad"}]}}
    )
    reconciliation_service.import_document(sample_company.id, "May-2024", payload)
    failed = reconciliation_service.get_import_by_period(sample_company.id, "May-2024").value

    result = reconciliation_service.run_reconciliation(failed.id)

    assert isinstance(result.error, ValidationError)
    assert "only completed imports can be reconciled" in str(result.error)


def test_empty_import(reconciliation_service, sample_company):
    payload = json.dumps({"rtnprd": "052024", "docdata": {}})
    gstr_import = reconciliation_service.import_document(
        sample_company.id, "May-2024", payload
    ).value

    result = reconciliation_service.run_reconciliation(gstr_import.id)

    assert str(result.error) == "No records found in this import"


def test_matching_failure_is_recorded_per_record(
    temp_db, reconciliation_service, sample_import, sample_invoices, default_rules, monkeypatch
):
    from gstrecon.domain import matching

    original = matching.MatchingEngine.match

    def flaky(self, record, invoices):
        if record.document_number == "INV-002":
            raise RuntimeError("boom")
        return original(self, record, invoices)

    monkeypatch.setattr(matching.MatchingEngine, "match", flaky)

    summary = reconciliation_service.run_reconciliation(sample_import.id).value

    assert summary.matched_records == 1
    record = records_by_number(temp_db, sample_import.id)["INV-002"]
    assert record.match_status == MatchStatus.UNMATCHED
    assert record.discrepancies == ("Matching failed: boom",)


def test_invoice_without_supplier_gstin_is_skipped(
    temp_db, reconciliation_service, sample_import, sample_invoices, default_rules, monkeypatch
):
    original = temp_db.query_vendor_invoices

    def with_broken_invoice(*args, **kwargs):
        invoices = original(*args, **kwargs)
        return invoices + [dataclasses.replace(invoices[0], id=999, supplier_gstin=None)]

    monkeypatch.setattr(temp_db, "query_vendor_invoices", with_broken_invoice)

    result = reconciliation_service.run_reconciliation(sample_import.id)

    assert result.ok, result.error
    assert result.value.matched_records == 1
    assert result.value.partial_match_records == 1
    assert result.value.pending_records == 0
    matched = records_by_number(temp_db, sample_import.id)["INV/001-A"]
    assert matched.matched_invoice_id == sample_invoices[0].id


def test_summary_without_import_is_empty(reconciliation_service, sample_company):
    summary = reconciliation_service.get_reconciliation_summary(
        sample_company.id, "May-2024"
    ).value
    assert summary.return_period == "May-2024"
    assert summary.total_records == 0
    assert summary.match_percentage == Decimal("0")


def test_summary_before_reconciliation(reconciliation_service, sample_company, sample_import):
    summary = reconciliation_service.get_reconciliation_summary(
        sample_company.id, "2024-05"
    ).value
    assert summary.total_records == 5
    assert summary.pending_records == 5
    assert summary.pending_review_records == 5


def test_summary_matches_run(reconciliation_service, sample_company, reconciled):
    summary = reconciliation_service.get_reconciliation_summary(
        sample_company.id, "May-2024"
    ).value
    assert summary == reconciled


def test_summary_counts_actions(
    temp_db, reconciliation_service, action_service, sample_company, sample_import, reconciled
):
    records = records_by_number(temp_db, sample_import.id)
    action_service.accept_mismatch(records["INV-002"].id, actor="asha")
    action_service.reject_invoice(records["B-77"].id, actor="asha", reason="Not ours")

    summary = reconciliation_service.get_reconciliation_summary(
        sample_company.id, "May-2024"
    ).value

    assert summary.accepted_records == 1
    assert summary.rejected_records == 1
    assert summary.pending_review_records == 2


def test_summary_invalid_period(reconciliation_service, sample_company):
    result = reconciliation_service.get_reconciliation_summary(sample_company.id, "13-2024")
    assert isinstance(result.error, ValidationError)


def test_supplier_summary(reconciliation_service, sample_company, reconciled):
    rows = reconciliation_service.get_supplier_summary(sample_company.id, "May-2024").value

    assert [r.supplier_gstin for r in rows] == ["IMPORT", ALPHA_GSTIN, "29AAACB2222C1ZX"]
    alpha = rows[1]
    assert alpha.supplier_name == "Alpha Supplies"
    assert alpha.record_count == 3
    assert alpha.matched_count == 1
    assert alpha.partial_count == 1
    assert alpha.unmatched_count == 1
    assert alpha.total_taxable_value == Decimal("16000")
    assert alpha.total_itc == Decimal("2880")
    assert alpha.match_percentage == Decimal("33.33")


def test_supplier_summary_without_import(reconciliation_service, sample_company):
    assert reconciliation_service.get_supplier_summary(sample_company.id, "May-2024").value == []


def test_itc_comparison(reconciliation_service, sample_company, sample_invoices, sample_import):
    comparison = reconciliation_service.get_itc_comparison(sample_company.id, "May-2024").value

    assert comparison.statement.igst == Decimal("11880")
    assert comparison.books.igst == Decimal("2700")
    assert comparison.difference.igst == Decimal("9180")
    assert comparison.difference.total == Decimal("9180")


def test_itc_comparison_skips_ineligible_invoices(
    reconciliation_service, invoice_service, sample_company
):
    invoice_service.create_invoice(
        company_id=sample_company.id,
        supplier_gstin=ALPHA_GSTIN,
        invoice_number="X-1",
        invoice_date=date(2024, 5, 2),
        subtotal=Decimal("100"),
        igst=Decimal("18"),
        itc_eligible=False,
    )
    comparison = reconciliation_service.get_itc_comparison(sample_company.id, "May-2024").value
    assert comparison.books.total == Decimal("0")
    assert comparison.statement.total == Decimal("0")


def test_list_records_filters(reconciliation_service, sample_import, reconciled):
    def numbers(**filters):
        page = reconciliation_service.list_records(sample_import.id, **filters).value
        return sorted(r.document_number for r in page.items)

    assert numbers(match_status=MatchStatus.PARTIAL_MATCH) == ["INV-002"]
    assert numbers(document_type=DocumentType.CREDIT_NOTE) == ["CN-5"]
    assert numbers(section=SupplySection.IMPG) == ["BE1234"]
    assert numbers(search="beta") == ["B-77"]
    assert numbers(search="inv") == ["INV-002", "INV/001-A"]


def test_list_records_paging(reconciliation_service, sample_import):
    page = reconciliation_service.list_records(sample_import.id, page=2, page_size=2).value
    assert page.total_count == 5
    assert len(page.items) == 2
    assert page.page == 2


def test_list_records_unknown_import(reconciliation_service):
    assert isinstance(reconciliation_service.list_records(404).error, NotFoundError)


def test_list_records_bad_page(reconciliation_service, sample_import):
    result = reconciliation_service.list_records(sample_import.id, page=0)
    assert isinstance(result.error, ValidationError)


def test_get_record(temp_db, reconciliation_service, sample_import):
    record = temp_db.list_records_for_import(sample_import.id)[0]
    assert reconciliation_service.get_record(record.id).value == record
    assert isinstance(reconciliation_service.get_record(9999).error, NotFoundError)


def test_unmatched_records(reconciliation_service, sample_company, reconciled):
    rows = reconciliation_service.get_unmatched_records(sample_company.id, "May-2024").value
    assert sorted(r.document_number for r in rows) == ["B-77", "BE1234", "CN-5", "INV-002"]
    assert all(r.match_status != MatchStatus.MATCHED for r in rows)


def test_unmatched_records_without_import(reconciliation_service, sample_company):
    assert reconciliation_service.get_unmatched_records(sample_company.id, "May-2024").value == []


def test_reject_keeps_match_status(temp_db, action_service, sample_import, reconciled):
    record = records_by_number(temp_db, sample_import.id)["INV/001-A"]
    updated = action_service.reject_invoice(record.id, "asha", "Duplicate").value
    assert updated.action_status == ActionStatus.REJECTED
    assert updated.match_status == MatchStatus.MATCHED
