"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Sequence
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from gstrecon.domain.entities import (
    ActionStatus,
    Company,
    DocumentType,
    ExternalRecord,
    GstrImport,
    ImportStatus,
    MatchingRule,
    MatchResult,
    MatchStatus,
    RecordDraft,
    SupplySection,
    TaxBreakdown,
    VendorInvoice,
)


class Database(ABC):
    """Abstract database interface for gstrecon.

    Besides the engine's own import, record and rule persistence, it carries
    the two collaborator interfaces the engine consumes: the company store and
    the vendor invoice store.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Company store
    @abstractmethod
    def create_company(self, name: str, gstin: Optional[str] = None) -> int:
        """Create a company. Returns company ID."""
        pass

    @abstractmethod
    def get_company(self, company_id: int) -> Optional[Company]:
        """Get company by ID."""
        pass

    @abstractmethod
    def list_companies(self) -> list[Company]:
        """List all companies."""
        pass

    # Vendor invoice store
    @abstractmethod
    def create_vendor_invoice(
        self,
        company_id: int,
        supplier_gstin: str,
        invoice_number: str,
        invoice_date: date,
        subtotal: Decimal,
        taxes: TaxBreakdown,
        supplier_name: Optional[str] = None,
        itc_eligible: bool = True,
    ) -> int:
        """Create a vendor invoice. Returns invoice ID."""
        pass

    @abstractmethod
    def get_vendor_invoice(self, invoice_id: int) -> Optional[VendorInvoice]:
        """Get vendor invoice by ID."""
        pass

    @abstractmethod
    def query_vendor_invoices(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        supplier_gstin: Optional[str] = None,
        itc_eligible_only: bool = False,
    ) -> list[VendorInvoice]:
        """List vendor invoices for a company, ordered by date then ID."""
        pass

    # Import operations
    @abstractmethod
    def create_import(
        self,
        company_id: int,
        return_period: str,
        period_start: date,
        gstin: str,
        file_hash: str,
        raw_payload: str,
        file_name: Optional[str] = None,
        imported_by: Optional[str] = None,
    ) -> int:
        """Insert a pending import in one conditional step.

        Raises:
            ConflictError: If an import with the same company, period and hash exists
        """
        pass

    @abstractmethod
    def get_import(self, import_id: int) -> Optional[GstrImport]:
        """Get import by ID."""
        pass

    @abstractmethod
    def get_latest_import(
        self, company_id: int, return_period: str, status: Optional[ImportStatus] = None
    ) -> Optional[GstrImport]:
        """Get the most recently created import for a period."""
        pass

    @abstractmethod
    def get_import_by_hash(
        self, company_id: int, return_period: str, file_hash: str
    ) -> Optional[GstrImport]:
        """Get import by its content hash."""
        pass

    @abstractmethod
    def list_imports(
        self, company_id: int, offset: int, limit: int, status: Optional[ImportStatus] = None
    ) -> tuple[list[GstrImport], int]:
        """List imports newest period first. Returns (items, total_count)."""
        pass

    @abstractmethod
    def get_raw_payload(self, import_id: int) -> Optional[str]:
        """Get the stored copy of the imported document."""
        pass

    @abstractmethod
    def update_import_status(
        self, import_id: int, status: ImportStatus, error_message: Optional[str] = None
    ) -> None:
        """Move an import to a new status.

        Raises:
            ConflictError: If the transition is not allowed
        """
        pass

    @abstractmethod
    def update_import_totals(self, import_id: int, total_records: int, itc: TaxBreakdown) -> None:
        """Store record count and ITC totals computed at ingestion."""
        pass

    @abstractmethod
    def update_import_summary(
        self,
        import_id: int,
        total: int,
        matched: int,
        unmatched: int,
        partial: int,
        matched_itc: Decimal,
    ) -> None:
        """Store reconciliation counts on the import."""
        pass

    @abstractmethod
    def delete_import(self, import_id: int) -> None:
        """Delete an import and its records."""
        pass

    # Record operations
    @abstractmethod
    def bulk_insert_records(
        self,
        import_id: int,
        company_id: int,
        return_period: str,
        drafts: Iterable[RecordDraft],
        batch_size: int = 500,
    ) -> int:
        """Insert parsed records, committing every batch_size rows. Returns count."""
        pass

    @abstractmethod
    def delete_records_for_import(self, import_id: int) -> int:
        """Delete every record of an import. Returns count."""
        pass

    @abstractmethod
    def get_record(self, record_id: int) -> Optional[ExternalRecord]:
        """Get record by ID."""
        pass

    @abstractmethod
    def list_records_for_import(
        self, import_id: int, match_statuses: Optional[Sequence[MatchStatus]] = None
    ) -> list[ExternalRecord]:
        """List records of an import ordered by supplier, date and ID."""
        pass

    @abstractmethod
    def list_records_page(
        self,
        import_id: int,
        offset: int,
        limit: int,
        match_status: Optional[MatchStatus] = None,
        document_type: Optional[DocumentType] = None,
        section: Optional[SupplySection] = None,
        search: Optional[str] = None,
    ) -> tuple[list[ExternalRecord], int]:
        """List a filtered page of records. Returns (items, total_count)."""
        pass

    @abstractmethod
    def count_records_by_match_status(self, import_id: int) -> dict[MatchStatus, int]:
        """Count persisted records of an import per match status."""
        pass

    @abstractmethod
    def sum_itc_by_match_status(self, import_id: int, match_status: MatchStatus) -> Decimal:
        """Sum total ITC of an import's records with the given match status."""
        pass

    @abstractmethod
    def update_record_matches(self, outcomes: Sequence[tuple[int, MatchResult]]) -> None:
        """Persist match outcomes for many records in one transaction."""
        pass

    @abstractmethod
    def update_record_action(
        self,
        record_id: int,
        action_status: Optional[ActionStatus],
        action_by: Optional[str],
        notes: Optional[str],
    ) -> None:
        """Set (or clear, with None) the human action on a record."""
        pass

    # Rule operations
    @abstractmethod
    def create_rule(self, company_id: Optional[int], code: str, name: str, priority: int, **fields: Any) -> int:
        """Create a matching rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[MatchingRule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def get_rule_by_code(self, company_id: Optional[int], code: str) -> Optional[MatchingRule]:
        """Get rule by code within a scope (None for global rules)."""
        pass

    @abstractmethod
    def list_rules(self, company_id: Optional[int], include_inactive: bool = False) -> list[MatchingRule]:
        """List global rules plus the company's own, by ascending priority."""
        pass

    @abstractmethod
    def update_rule(self, rule_id: int, **fields: Any) -> None:
        """Update rule fields."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        pass
