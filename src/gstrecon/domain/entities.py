"""Domain model entities for gstrecon.

These are pure data classes representing business concepts, independent of
database schema. Services and the command line only ever see these; the
SQLAlchemy models stay behind the database layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")

ZERO = Decimal("0")
IMPORT_SUPPLIER_GSTIN = "IMPORT"
MANUAL_RULE_CODE = "MANUAL"


class ImportStatus(str, Enum):
    """Processing state of a GSTR-2B import."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    def can_transition_to(self, target: "ImportStatus") -> bool:
        return target in _IMPORT_TRANSITIONS[self]


_IMPORT_TRANSITIONS: dict[ImportStatus, frozenset[ImportStatus]] = {
    ImportStatus.PENDING: frozenset({ImportStatus.PROCESSING, ImportStatus.FAILED}),
    ImportStatus.PROCESSING: frozenset({ImportStatus.COMPLETED, ImportStatus.FAILED}),
    ImportStatus.COMPLETED: frozenset(),
    ImportStatus.FAILED: frozenset(),
}


class MatchStatus(str, Enum):
    """Outcome of automatic matching for one record."""

    PENDING = "pending"
    MATCHED = "matched"
    PARTIAL_MATCH = "partial_match"
    UNMATCHED = "unmatched"


class ActionStatus(str, Enum):
    """Human decision layered on top of the match status."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DocumentType(str, Enum):
    """Kind of document reported in the statement."""

    INVOICE = "invoice"
    CREDIT_NOTE = "credit_note"
    DEBIT_NOTE = "debit_note"
    IMPORT_ENTRY = "import_entry"


class SupplySection(str, Enum):
    """GSTR-2B section a record was reported under."""

    B2B = "B2B"
    B2BA = "B2BA"
    CDNR = "CDNR"
    CDNRA = "CDNRA"
    IMPG = "IMPG"


class MatchStrategy(str, Enum):
    """How the matching engine picks a winner among passing candidates."""

    FIRST_MATCH = "first_match"
    BEST_SCORE = "best_score"


class ImportSource(str, Enum):
    """Where the statement came from."""

    FILE_UPLOAD = "file_upload"


@dataclass(frozen=True)
class TaxBreakdown:
    """Per-component GST amounts."""

    igst: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    cess: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.igst + self.cgst + self.sgst + self.cess

    def __add__(self, other: "TaxBreakdown") -> "TaxBreakdown":
        return TaxBreakdown(
            igst=self.igst + other.igst,
            cgst=self.cgst + other.cgst,
            sgst=self.sgst + other.sgst,
            cess=self.cess + other.cess,
        )

    def __sub__(self, other: "TaxBreakdown") -> "TaxBreakdown":
        return TaxBreakdown(
            igst=self.igst - other.igst,
            cgst=self.cgst - other.cgst,
            sgst=self.sgst - other.sgst,
            cess=self.cess - other.cess,
        )


@dataclass(frozen=True)
class Company:
    """Company (party master) domain entity."""

    id: int
    name: str
    gstin: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class VendorInvoice:
    """Vendor invoice as recorded in the company's own books."""

    id: int
    company_id: int
    supplier_gstin: str
    supplier_name: Optional[str]
    invoice_number: str
    invoice_date: date
    subtotal: Decimal
    igst: Decimal = ZERO
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    cess: Decimal = ZERO
    itc_eligible: bool = True

    @property
    def taxes(self) -> TaxBreakdown:
        return TaxBreakdown(igst=self.igst, cgst=self.cgst, sgst=self.sgst, cess=self.cess)

    @property
    def total_tax(self) -> Decimal:
        return self.taxes.total


@dataclass(frozen=True)
class GstrImport:
    """One ingested GSTR-2B statement for a company and return period."""

    id: int
    company_id: int
    return_period: str
    period_start: date
    gstin: str
    import_source: ImportSource
    file_name: Optional[str]
    file_hash: str
    status: ImportStatus
    error_message: Optional[str]
    total_records: int
    matched_records: int
    unmatched_records: int
    partially_matched_records: int
    total_itc_igst: Decimal
    total_itc_cgst: Decimal
    total_itc_sgst: Decimal
    total_itc_cess: Decimal
    matched_itc_amount: Decimal
    imported_by: Optional[str]
    imported_at: Optional[datetime]
    processed_at: Optional[datetime]
    created_at: datetime

    @property
    def total_itc_amount(self) -> Decimal:
        return self.total_itc_igst + self.total_itc_cgst + self.total_itc_sgst + self.total_itc_cess


@dataclass(frozen=True)
class RecordDraft:
    """A parsed statement line, not yet persisted."""

    supplier_gstin: str
    supplier_name: Optional[str]
    document_number: str
    document_date: date
    document_type: DocumentType
    section: SupplySection
    taxable_value: Decimal
    taxes: TaxBreakdown
    total_value: Decimal
    itc_eligible: bool
    itc: TaxBreakdown
    place_of_supply: Optional[str] = None
    reverse_charge: bool = False
    original_document_number: Optional[str] = None
    original_document_date: Optional[date] = None


@dataclass(frozen=True)
class ExternalRecord:
    """A persisted GSTR-2B line with its match and action state."""

    id: int
    import_id: int
    company_id: int
    return_period: str
    supplier_gstin: str
    supplier_name: Optional[str]
    document_number: str
    document_date: date
    document_type: DocumentType
    section: SupplySection
    taxable_value: Decimal
    igst: Decimal
    cgst: Decimal
    sgst: Decimal
    cess: Decimal
    total_value: Decimal
    itc_eligible: bool
    itc_igst: Decimal
    itc_cgst: Decimal
    itc_sgst: Decimal
    itc_cess: Decimal
    place_of_supply: Optional[str]
    reverse_charge: bool
    original_document_number: Optional[str]
    original_document_date: Optional[date]
    match_status: MatchStatus
    matched_invoice_id: Optional[int]
    match_confidence: int
    match_rule_code: Optional[str]
    match_details: dict[str, Any]
    discrepancies: tuple[str, ...]
    action_status: Optional[ActionStatus]
    action_by: Optional[str]
    action_at: Optional[datetime]
    action_notes: Optional[str]

    @property
    def taxes(self) -> TaxBreakdown:
        return TaxBreakdown(igst=self.igst, cgst=self.cgst, sgst=self.sgst, cess=self.cess)

    @property
    def itc(self) -> TaxBreakdown:
        return TaxBreakdown(
            igst=self.itc_igst, cgst=self.itc_cgst, sgst=self.itc_sgst, cess=self.itc_cess
        )

    @property
    def total_tax(self) -> Decimal:
        return self.taxes.total

    @property
    def total_itc(self) -> Decimal:
        return self.itc.total


@dataclass(frozen=True)
class MatchingRule:
    """A prioritized set of comparison criteria."""

    id: int
    company_id: Optional[int]
    code: str
    name: str
    priority: int
    match_document_number: bool
    match_amount: bool
    match_date: bool
    number_fuzzy_threshold: int
    amount_tolerance_percent: Decimal
    amount_tolerance_absolute: Decimal
    date_tolerance_days: int
    confidence_score: int
    is_active: bool
    description: Optional[str] = None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one matching attempt (never persisted as such)."""

    is_match: bool
    confidence: int = 0
    matched_invoice_id: Optional[int] = None
    rule_code: Optional[str] = None
    discrepancies: tuple[str, ...] = ()
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def match_status(self) -> MatchStatus:
        if not self.is_match:
            return MatchStatus.UNMATCHED
        if self.discrepancies:
            return MatchStatus.PARTIAL_MATCH
        return MatchStatus.MATCHED


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a listing plus the unpaged total."""

    items: tuple[T, ...]
    total_count: int
    page: int
    page_size: int


@dataclass(frozen=True)
class ReconciliationSummary:
    """Counts and values for one company and return period."""

    return_period: str
    total_records: int = 0
    matched_records: int = 0
    partial_match_records: int = 0
    unmatched_records: int = 0
    pending_records: int = 0
    accepted_records: int = 0
    rejected_records: int = 0
    pending_review_records: int = 0
    match_percentage: Decimal = ZERO
    total_taxable_value: Decimal = ZERO
    matched_taxable_value: Decimal = ZERO
    unmatched_taxable_value: Decimal = ZERO
    total_itc_available: Decimal = ZERO
    matched_itc: Decimal = ZERO
    unmatched_itc: Decimal = ZERO


@dataclass(frozen=True)
class SupplierSummary:
    """Per-supplier roll-up of one return period."""

    supplier_gstin: str
    supplier_name: Optional[str]
    record_count: int
    matched_count: int
    partial_count: int
    unmatched_count: int
    total_taxable_value: Decimal
    total_itc: Decimal

    @property
    def match_percentage(self) -> Decimal:
        if self.record_count == 0:
            return ZERO
        return round(Decimal(self.matched_count) / Decimal(self.record_count) * 100, 2)


@dataclass(frozen=True)
class ItcComparison:
    """ITC as per the statement versus as per books."""

    return_period: str
    statement: TaxBreakdown
    books: TaxBreakdown

    @property
    def difference(self) -> TaxBreakdown:
        return self.statement - self.books
