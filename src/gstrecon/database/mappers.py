"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, so the ORM schema can change without
touching the matching engine or the services.
"""

from decimal import Decimal
from typing import Optional

from gstrecon.domain import entities as domain
from gstrecon.database.models import (
    Company as ORMCompany,
    VendorInvoice as ORMVendorInvoice,
    GstrImport as ORMGstrImport,
    ExternalRecord as ORMExternalRecord,
    MatchingRule as ORMMatchingRule,
)


def _dec(value: Optional[Decimal]) -> Decimal:
    return Decimal("0") if value is None else Decimal(value)


def company_to_domain(orm_company: ORMCompany) -> domain.Company:
    """Convert SQLAlchemy Company model to domain Company entity."""
    return domain.Company(
        id=orm_company.id,
        name=orm_company.name,
        gstin=orm_company.gstin,
        created_at=orm_company.created_at,
    )


def vendor_invoice_to_domain(orm_invoice: ORMVendorInvoice) -> domain.VendorInvoice:
    """Convert SQLAlchemy VendorInvoice model to domain VendorInvoice entity."""
    return domain.VendorInvoice(
        id=orm_invoice.id,
        company_id=orm_invoice.company_id,
        supplier_gstin=orm_invoice.supplier_gstin,
        supplier_name=orm_invoice.supplier_name,
        invoice_number=orm_invoice.invoice_number,
        invoice_date=orm_invoice.invoice_date,
        subtotal=_dec(orm_invoice.subtotal),
        igst=_dec(orm_invoice.igst),
        cgst=_dec(orm_invoice.cgst),
        sgst=_dec(orm_invoice.sgst),
        cess=_dec(orm_invoice.cess),
        itc_eligible=bool(orm_invoice.itc_eligible),
    )


def import_to_domain(orm_import: ORMGstrImport) -> domain.GstrImport:
    """Convert SQLAlchemy GstrImport model to domain GstrImport entity."""
    return domain.GstrImport(
        id=orm_import.id,
        company_id=orm_import.company_id,
        return_period=orm_import.return_period,
        period_start=orm_import.period_start,
        gstin=orm_import.gstin or "",
        import_source=orm_import.import_source,
        file_name=orm_import.file_name,
        file_hash=orm_import.file_hash,
        status=orm_import.status,
        error_message=orm_import.error_message,
        total_records=orm_import.total_records or 0,
        matched_records=orm_import.matched_records or 0,
        unmatched_records=orm_import.unmatched_records or 0,
        partially_matched_records=orm_import.partially_matched_records or 0,
        total_itc_igst=_dec(orm_import.total_itc_igst),
        total_itc_cgst=_dec(orm_import.total_itc_cgst),
        total_itc_sgst=_dec(orm_import.total_itc_sgst),
        total_itc_cess=_dec(orm_import.total_itc_cess),
        matched_itc_amount=_dec(orm_import.matched_itc_amount),
        imported_by=orm_import.imported_by,
        imported_at=orm_import.imported_at,
        processed_at=orm_import.processed_at,
        created_at=orm_import.created_at,
    )


def record_to_domain(orm_record: ORMExternalRecord) -> domain.ExternalRecord:
    """Convert SQLAlchemy ExternalRecord model to domain ExternalRecord entity."""
    return domain.ExternalRecord(
        id=orm_record.id,
        import_id=orm_record.import_id,
        company_id=orm_record.company_id,
        return_period=orm_record.return_period,
        supplier_gstin=orm_record.supplier_gstin,
        supplier_name=orm_record.supplier_name,
        document_number=orm_record.document_number,
        document_date=orm_record.document_date,
        document_type=orm_record.document_type,
        section=orm_record.section,
        taxable_value=_dec(orm_record.taxable_value),
        igst=_dec(orm_record.igst),
        cgst=_dec(orm_record.cgst),
        sgst=_dec(orm_record.sgst),
        cess=_dec(orm_record.cess),
        total_value=_dec(orm_record.total_value),
        itc_eligible=bool(orm_record.itc_eligible),
        itc_igst=_dec(orm_record.itc_igst),
        itc_cgst=_dec(orm_record.itc_cgst),
        itc_sgst=_dec(orm_record.itc_sgst),
        itc_cess=_dec(orm_record.itc_cess),
        place_of_supply=orm_record.place_of_supply,
        reverse_charge=bool(orm_record.reverse_charge),
        original_document_number=orm_record.original_document_number,
        original_document_date=orm_record.original_document_date,
        match_status=orm_record.match_status,
        matched_invoice_id=orm_record.matched_invoice_id,
        match_confidence=orm_record.match_confidence or 0,
        match_rule_code=orm_record.match_rule_code,
        match_details=dict(orm_record.match_details or {}),
        discrepancies=tuple(orm_record.discrepancies or ()),
        action_status=orm_record.action_status,
        action_by=orm_record.action_by,
        action_at=orm_record.action_at,
        action_notes=orm_record.action_notes,
    )


def draft_to_orm(
    draft: domain.RecordDraft, import_id: int, company_id: int, return_period: str
) -> ORMExternalRecord:
    """Build an unsaved ExternalRecord row from a parsed draft."""
    return ORMExternalRecord(
        import_id=import_id,
        company_id=company_id,
        return_period=return_period,
        supplier_gstin=draft.supplier_gstin,
        supplier_name=draft.supplier_name,
        document_number=draft.document_number,
        document_date=draft.document_date,
        document_type=draft.document_type,
        section=draft.section,
        original_document_number=draft.original_document_number,
        original_document_date=draft.original_document_date,
        taxable_value=draft.taxable_value,
        igst=draft.taxes.igst,
        cgst=draft.taxes.cgst,
        sgst=draft.taxes.sgst,
        cess=draft.taxes.cess,
        total_value=draft.total_value,
        place_of_supply=draft.place_of_supply,
        reverse_charge=draft.reverse_charge,
        itc_eligible=draft.itc_eligible,
        itc_igst=draft.itc.igst,
        itc_cgst=draft.itc.cgst,
        itc_sgst=draft.itc.sgst,
        itc_cess=draft.itc.cess,
        match_status=domain.MatchStatus.PENDING,
        match_confidence=0,
    )


def rule_to_domain(orm_rule: ORMMatchingRule) -> domain.MatchingRule:
    """Convert SQLAlchemy MatchingRule model to domain MatchingRule entity."""
    return domain.MatchingRule(
        id=orm_rule.id,
        company_id=orm_rule.company_id,
        code=orm_rule.code,
        name=orm_rule.name,
        priority=orm_rule.priority,
        match_document_number=bool(orm_rule.match_document_number),
        match_amount=bool(orm_rule.match_amount),
        match_date=bool(orm_rule.match_date),
        number_fuzzy_threshold=orm_rule.number_fuzzy_threshold or 0,
        amount_tolerance_percent=_dec(orm_rule.amount_tolerance_percent),
        amount_tolerance_absolute=_dec(orm_rule.amount_tolerance_absolute),
        date_tolerance_days=orm_rule.date_tolerance_days or 0,
        confidence_score=orm_rule.confidence_score,
        is_active=bool(orm_rule.is_active),
        description=orm_rule.description,
    )
