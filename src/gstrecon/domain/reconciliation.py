"""GSTR-2B reconciliation domain service.

Drives the ingestion pipeline (dedup gate, parse, bulk persist), batch
matching runs, and the read-side summaries over persisted records.
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from typing import Iterable, Optional, Union

from gstrecon.config import Settings
from gstrecon.database.base import Database
from gstrecon.domain import errors
from gstrecon.domain.dedup import compute_content_hash
from gstrecon.domain.entities import (
    ZERO,
    ActionStatus,
    Company,
    DocumentType,
    ExternalRecord,
    GstrImport,
    ImportStatus,
    ItcComparison,
    MatchResult,
    MatchStatus,
    MatchStrategy,
    Page,
    ReconciliationSummary,
    SupplierSummary,
    SupplySection,
    TaxBreakdown,
    VendorInvoice,
)
from gstrecon.domain.matching import MatchingEngine
from gstrecon.domain.parser import Gstr2bParser, decode_document
from gstrecon.domain.result import returns_result
from gstrecon.utils.period import ReturnPeriod, parse_return_period

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500


def resolve_period(period: Union[str, ReturnPeriod]) -> ReturnPeriod:
    """Parse a return period, converting parse failures to ValidationError."""
    if isinstance(period, ReturnPeriod):
        return period
    try:
        return parse_return_period(period)
    except ValueError as e:
        raise errors.ValidationError(str(e))


def _check_paging(page: int, page_size: int) -> int:
    """Validate paging arguments and return the row offset."""
    if page < 1:
        raise errors.ValidationError(f"Page must be 1 or greater, got {page}")
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise errors.ValidationError(
            f"Page size must be between 1 and {MAX_PAGE_SIZE}, got {page_size}"
        )
    return (page - 1) * page_size


class ReconciliationService:
    """Service for importing GSTR-2B statements and reconciling them with the books."""

    def __init__(self, db: Database, settings: Optional[Settings] = None):
        """Initialize reconciliation service.

        Args:
            db: Database instance
            settings: Runtime settings (defaults when omitted)
        """
        self.db = db
        self.settings = settings or Settings()

    # Ingestion

    @returns_result
    def import_document(
        self,
        company_id: int,
        period: Union[str, ReturnPeriod],
        payload: Union[bytes, str],
        file_name: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> GstrImport:
        """Import a GSTR-2B JSON statement for a company and return period.

        The same bytes can only be imported once per company and period; a
        re-submission is refused without writing anything. Once the import row
        exists, any failure leaves it in ``failed`` with the cause recorded and
        no records behind.

        Args:
            company_id: Company ID
            period: Return period ("May-2024", "052024" or "2024-05")
            payload: Raw JSON document
            file_name: Original file name, for display
            actor: Who performed the import

        Returns:
            Result carrying the completed GstrImport, or a failure with:
            ValidationError for a malformed period, document or header;
            NotFoundError for an unknown company; ConflictError for a
            duplicate file; InternalError for unexpected faults
        """
        return_period = resolve_period(period)
        company = self.db.get_company(company_id)
        if company is None:
            raise errors.NotFoundError(errors.company_not_found(company_id))

        root = decode_document(payload)
        document_gstin = self._validate_header(company, root, return_period)

        raw_text = payload.decode("utf-8-sig") if isinstance(payload, bytes) else payload
        import_id = self.db.create_import(
            company_id=company_id,
            return_period=return_period.label,
            period_start=return_period.start_date,
            gstin=company.gstin or document_gstin or "",
            file_hash=compute_content_hash(payload),
            raw_payload=raw_text,
            file_name=file_name,
            imported_by=actor,
        )
        logger.info(
            "Created import %d for company %d, period %s", import_id, company_id, return_period
        )

        try:
            self.db.update_import_status(import_id, ImportStatus.PROCESSING)
            parser = Gstr2bParser(allow_date_fallback=self.settings.allow_date_fallback)
            parsed = parser.parse_decoded(root)
            inserted = self.db.bulk_insert_records(
                import_id,
                company_id,
                return_period.label,
                parsed.records,
                batch_size=self.settings.insert_batch_size,
            )
            self.db.update_import_totals(import_id, inserted, parsed.itc_totals)
            self.db.update_import_status(import_id, ImportStatus.COMPLETED)
        except errors.DocumentParseError as e:
            logger.warning("Import %d failed to parse: %s", import_id, e)
            self._fail_import(import_id, str(e))
            raise
        except Exception as e:
            logger.exception("Import %d failed while processing", import_id)
            self._fail_import(import_id, str(e))
            raise errors.InternalError(f"Failed to process GSTR-2B data: {e}") from e

        logger.info("Import %d completed with %d records", import_id, inserted)
        return self.db.get_import(import_id)

    def _validate_header(
        self, company: Company, root: dict, return_period: ReturnPeriod
    ) -> Optional[str]:
        """Check the document's GSTIN and period against the request.

        Returns:
            The document's GSTIN, if it has one
        """
        document_gstin = root.get("gstin")
        document_gstin = str(document_gstin).strip().upper() if document_gstin else None
        if company.gstin and document_gstin and company.gstin.upper() != document_gstin:
            raise errors.ValidationError(
                f"Document GSTIN {document_gstin} does not match company GSTIN {company.gstin}"
            )

        document_period = root.get("rtnprd")
        if document_period:
            try:
                parsed_period = parse_return_period(str(document_period))
            except ValueError:
                raise errors.ValidationError(
                    f"Document has an invalid return period '{document_period}'"
                )
            if parsed_period != return_period:
                raise errors.ValidationError(
                    f"Document is for period {parsed_period}, not {return_period}"
                )
        return document_gstin

    def _fail_import(self, import_id: int, message: str) -> None:
        self.db.delete_records_for_import(import_id)
        self.db.update_import_status(import_id, ImportStatus.FAILED, error_message=message)

    # Imports

    @returns_result
    def get_import(self, import_id: int) -> GstrImport:
        """Get an import by ID (NotFoundError when missing)."""
        gstr_import = self.db.get_import(import_id)
        if gstr_import is None:
            raise errors.NotFoundError(errors.import_not_found(import_id))
        return gstr_import

    @returns_result
    def get_import_by_period(
        self, company_id: int, period: Union[str, ReturnPeriod]
    ) -> GstrImport:
        """Get the most recent import for a company and return period."""
        return_period = resolve_period(period)
        gstr_import = self.db.get_latest_import(company_id, return_period.label)
        if gstr_import is None:
            raise errors.NotFoundError(errors.import_not_found_for_period(return_period.label))
        return gstr_import

    @returns_result
    def list_imports(
        self,
        company_id: int,
        page: int = 1,
        page_size: int = 12,
        status: Optional[ImportStatus] = None,
    ) -> Page[GstrImport]:
        """List a company's imports, newest return period first."""
        offset = _check_paging(page, page_size)
        items, total = self.db.list_imports(company_id, offset, page_size, status=status)
        return Page(items=tuple(items), total_count=total, page=page, page_size=page_size)

    @returns_result
    def delete_import(self, import_id: int) -> None:
        """Delete an import together with its records."""
        if self.db.get_import(import_id) is None:
            raise errors.NotFoundError(errors.import_not_found(import_id))
        self.db.delete_import(import_id)
        logger.info("Deleted import %d", import_id)

    # Matching runs

    @returns_result
    def run_reconciliation(
        self,
        import_id: int,
        force: bool = False,
        strategy: Optional[MatchStrategy] = None,
    ) -> ReconciliationSummary:
        """Match an import's records against the company's vendor invoices.

        Only records still ``pending`` are evaluated unless ``force`` is set.
        Records are matched concurrently; outcomes are written afterwards on
        this thread and the import's counts are recounted from the stored rows.

        Args:
            import_id: Import ID
            force: Re-evaluate records that already have a match status
            strategy: Override the configured match strategy

        Returns:
            Result carrying the ReconciliationSummary of the import, or a
            failure with NotFoundError for an unknown import and
            ValidationError when the import is not completed or is empty
        """
        gstr_import = self.db.get_import(import_id)
        if gstr_import is None:
            raise errors.NotFoundError(errors.import_not_found(import_id))
        if gstr_import.status != ImportStatus.COMPLETED:
            raise errors.ValidationError(
                f"Import {import_id} is {gstr_import.status.value}; only completed imports "
                "can be reconciled"
            )

        records = self.db.list_records_for_import(import_id)
        if not records:
            raise errors.ValidationError("No records found in this import")

        eligible = records if force else [r for r in records if r.match_status == MatchStatus.PENDING]
        engine = MatchingEngine(
            self.db.list_rules(gstr_import.company_id),
            strategy or self.settings.match_strategy,
        )
        period = resolve_period(gstr_import.return_period)
        invoices = self.db.query_vendor_invoices(
            gstr_import.company_id,
            start_date=period.window_start(self.settings.trailing_months),
            end_date=period.end_date,
        )
        logger.info(
            "Reconciling import %d: %d of %d records, %d candidate invoices, %d rules",
            import_id,
            len(eligible),
            len(records),
            len(invoices),
            len(engine.rules),
        )

        outcomes = self._evaluate(engine, eligible, invoices)
        self.db.update_record_matches(outcomes)

        counts = self.db.count_records_by_match_status(import_id)
        self.db.update_import_summary(
            import_id,
            total=sum(counts.values()),
            matched=counts[MatchStatus.MATCHED],
            unmatched=counts[MatchStatus.UNMATCHED],
            partial=counts[MatchStatus.PARTIAL_MATCH],
            matched_itc=self.db.sum_itc_by_match_status(import_id, MatchStatus.MATCHED),
        )
        return self._summarize(gstr_import.return_period, self.db.list_records_for_import(import_id))

    def _evaluate(
        self,
        engine: MatchingEngine,
        records: list[ExternalRecord],
        invoices: Iterable[VendorInvoice],
    ) -> list[tuple[int, MatchResult]]:
        """Match records on a bounded worker pool, keeping record order."""
        by_supplier: dict[str, list[VendorInvoice]] = defaultdict(list)
        for invoice in invoices:
            gstin = (invoice.supplier_gstin or "").strip().upper()
            if not gstin:
                logger.warning("Skipping vendor invoice %s without a supplier GSTIN", invoice.id)
                continue
            by_supplier[gstin].append(invoice)

        def match_one(record: ExternalRecord) -> tuple[int, MatchResult]:
            try:
                candidates = by_supplier.get((record.supplier_gstin or "").upper(), [])
                return record.id, engine.match(record, candidates)
            except Exception as e:
                logger.exception("Matching failed for record %d", record.id)
                return record.id, MatchResult(
                    is_match=False, discrepancies=(f"Matching failed: {e}",)
                )

        if not records:
            return []
        with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
            return list(executor.map(match_one, records))

    # Read side

    @returns_result
    def get_reconciliation_summary(
        self, company_id: int, period: Union[str, ReturnPeriod]
    ) -> ReconciliationSummary:
        """Summarize the latest completed import of a period (empty when there is none)."""
        return_period = resolve_period(period)
        gstr_import = self.db.get_latest_import(
            company_id, return_period.label, status=ImportStatus.COMPLETED
        )
        if gstr_import is None:
            return ReconciliationSummary(return_period=return_period.label)
        return self._summarize(return_period.label, self.db.list_records_for_import(gstr_import.id))

    @staticmethod
    def _summarize(return_period: str, records: list[ExternalRecord]) -> ReconciliationSummary:
        status_counts = {status: 0 for status in MatchStatus}
        action_counts = {status: 0 for status in ActionStatus}
        taxable = {status: ZERO for status in MatchStatus}
        itc = {status: ZERO for status in MatchStatus}
        pending_review = 0

        for record in records:
            status_counts[record.match_status] += 1
            taxable[record.match_status] += record.taxable_value
            itc[record.match_status] += record.total_itc
            if record.action_status is not None:
                action_counts[record.action_status] += 1
            elif record.match_status != MatchStatus.MATCHED:
                pending_review += 1

        total = len(records)
        matched = status_counts[MatchStatus.MATCHED]
        percentage = round(Decimal(matched) / Decimal(total) * 100, 2) if total else ZERO
        return ReconciliationSummary(
            return_period=return_period,
            total_records=total,
            matched_records=matched,
            partial_match_records=status_counts[MatchStatus.PARTIAL_MATCH],
            unmatched_records=status_counts[MatchStatus.UNMATCHED],
            pending_records=status_counts[MatchStatus.PENDING],
            accepted_records=action_counts[ActionStatus.ACCEPTED],
            rejected_records=action_counts[ActionStatus.REJECTED],
            pending_review_records=pending_review,
            match_percentage=percentage,
            total_taxable_value=sum(taxable.values(), ZERO),
            matched_taxable_value=taxable[MatchStatus.MATCHED],
            unmatched_taxable_value=taxable[MatchStatus.UNMATCHED],
            total_itc_available=sum(itc.values(), ZERO),
            matched_itc=itc[MatchStatus.MATCHED],
            unmatched_itc=itc[MatchStatus.UNMATCHED],
        )

    @returns_result
    def get_supplier_summary(
        self, company_id: int, period: Union[str, ReturnPeriod]
    ) -> list[SupplierSummary]:
        """Roll up the latest completed import by supplier, largest taxable value first."""
        records = self._latest_completed_records(company_id, resolve_period(period))

        groups: dict[str, list[ExternalRecord]] = defaultdict(list)
        for record in records:
            groups[record.supplier_gstin].append(record)

        summaries = []
        for gstin, group in groups.items():
            names = [r.supplier_name for r in group if r.supplier_name]
            summaries.append(
                SupplierSummary(
                    supplier_gstin=gstin,
                    supplier_name=names[0] if names else None,
                    record_count=len(group),
                    matched_count=sum(1 for r in group if r.match_status == MatchStatus.MATCHED),
                    partial_count=sum(
                        1 for r in group if r.match_status == MatchStatus.PARTIAL_MATCH
                    ),
                    unmatched_count=sum(
                        1 for r in group if r.match_status == MatchStatus.UNMATCHED
                    ),
                    total_taxable_value=sum((r.taxable_value for r in group), ZERO),
                    total_itc=sum((r.total_itc for r in group), ZERO),
                )
            )
        summaries.sort(key=lambda s: (-s.total_taxable_value, s.supplier_gstin))
        return summaries

    @returns_result
    def get_itc_comparison(
        self, company_id: int, period: Union[str, ReturnPeriod]
    ) -> ItcComparison:
        """Compare ITC per the statement with ITC per books for a return period.

        Books ITC is the tax on ITC-eligible vendor invoices dated inside the
        period.
        """
        return_period = resolve_period(period)
        statement = TaxBreakdown()
        for record in self._latest_completed_records(company_id, return_period):
            statement = statement + record.itc

        books = TaxBreakdown()
        for invoice in self.db.query_vendor_invoices(
            company_id,
            start_date=return_period.start_date,
            end_date=return_period.end_date,
            itc_eligible_only=True,
        ):
            books = books + invoice.taxes

        return ItcComparison(return_period=return_period.label, statement=statement, books=books)

    @returns_result
    def list_records(
        self,
        import_id: int,
        page: int = 1,
        page_size: int = 50,
        match_status: Optional[MatchStatus] = None,
        document_type: Optional[DocumentType] = None,
        section: Optional[SupplySection] = None,
        search: Optional[str] = None,
    ) -> Page[ExternalRecord]:
        """List an import's records with optional filters.

        Args:
            import_id: Import ID
            page: 1-based page number
            page_size: Records per page
            match_status: Only records with this match status
            document_type: Only records of this document type
            section: Only records from this statement section
            search: Case-insensitive text found in supplier GSTIN, supplier
                name or document number

        Returns:
            Result carrying a Page of records ordered by supplier, date and ID
        """
        offset = _check_paging(page, page_size)
        if self.db.get_import(import_id) is None:
            raise errors.NotFoundError(errors.import_not_found(import_id))
        items, total = self.db.list_records_page(
            import_id,
            offset,
            page_size,
            match_status=match_status,
            document_type=document_type,
            section=section,
            search=search or None,
        )
        return Page(items=tuple(items), total_count=total, page=page, page_size=page_size)

    @returns_result
    def get_record(self, record_id: int) -> ExternalRecord:
        """Get a record by ID (NotFoundError when missing)."""
        record = self.db.get_record(record_id)
        if record is None:
            raise errors.NotFoundError(errors.record_not_found(record_id))
        return record

    @returns_result
    def get_unmatched_records(
        self, company_id: int, period: Union[str, ReturnPeriod]
    ) -> list[ExternalRecord]:
        """Unmatched and partially matched records of the latest completed import."""
        gstr_import = self.db.get_latest_import(
            company_id, resolve_period(period).label, status=ImportStatus.COMPLETED
        )
        if gstr_import is None:
            return []
        return self.db.list_records_for_import(
            gstr_import.id, [MatchStatus.UNMATCHED, MatchStatus.PARTIAL_MATCH]
        )

    def _latest_completed_records(
        self, company_id: int, return_period: ReturnPeriod
    ) -> list[ExternalRecord]:
        gstr_import = self.db.get_latest_import(
            company_id, return_period.label, status=ImportStatus.COMPLETED
        )
        if gstr_import is None:
            return []
        return self.db.list_records_for_import(gstr_import.id)

