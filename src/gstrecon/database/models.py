"""SQLAlchemy models for gstrecon database."""

from datetime import datetime, UTC
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

from gstrecon.domain.entities import (
    ActionStatus,
    DocumentType,
    ImportSource,
    ImportStatus,
    MatchStatus,
    SupplySection,
)

Base = declarative_base()


def _enum_column_type(enum_cls: type) -> Enum:
    """Store an enum by value as a constrained string."""
    return Enum(
        enum_cls,
        native_enum=False,
        create_constraint=True,
        validate_strings=True,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


def _money() -> Numeric:
    return Numeric(15, 2, asdecimal=True)


class Company(Base):
    """Company (party master) model."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    gstin = Column(String(15), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    vendor_invoices = relationship(
        "VendorInvoice", back_populates="company", cascade="all, delete-orphan"
    )
    imports = relationship("GstrImport", back_populates="company", cascade="all, delete-orphan")


class VendorInvoice(Base):
    """Vendor invoice recorded in the company's books."""

    __tablename__ = "vendor_invoices"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    supplier_gstin = Column(String(15), nullable=False)
    supplier_name = Column(String, nullable=True)
    invoice_number = Column(String, nullable=False)
    invoice_date = Column(Date, nullable=False)
    subtotal = Column(_money(), nullable=False)
    igst = Column(_money(), default=0, nullable=False)
    cgst = Column(_money(), default=0, nullable=False)
    sgst = Column(_money(), default=0, nullable=False)
    cess = Column(_money(), default=0, nullable=False)
    itc_eligible = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (Index("ix_vendor_invoices_company_date", "company_id", "invoice_date"),)

    # Relationships
    company = relationship("Company", back_populates="vendor_invoices")


class GstrImport(Base):
    """One ingested GSTR-2B statement."""

    __tablename__ = "gstr2b_imports"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    return_period = Column(String(8), nullable=False)
    period_start = Column(Date, nullable=False)
    gstin = Column(String(15), nullable=False, default="")
    import_source = Column(
        _enum_column_type(ImportSource), default=ImportSource.FILE_UPLOAD, nullable=False
    )
    file_name = Column(String, nullable=True)
    file_hash = Column(String(64), nullable=False)
    status = Column(_enum_column_type(ImportStatus), default=ImportStatus.PENDING, nullable=False)
    error_message = Column(Text, nullable=True)
    raw_payload = Column(Text, nullable=False)

    total_records = Column(Integer, default=0, nullable=False)
    matched_records = Column(Integer, default=0, nullable=False)
    unmatched_records = Column(Integer, default=0, nullable=False)
    partially_matched_records = Column(Integer, default=0, nullable=False)

    total_itc_igst = Column(_money(), default=0, nullable=False)
    total_itc_cgst = Column(_money(), default=0, nullable=False)
    total_itc_sgst = Column(_money(), default=0, nullable=False)
    total_itc_cess = Column(_money(), default=0, nullable=False)
    matched_itc_amount = Column(_money(), default=0, nullable=False)

    imported_by = Column(String, nullable=True)
    imported_at = Column(DateTime, nullable=True)
    processed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # The dedup gate: a re-submitted file fails this constraint on insert
    __table_args__ = (
        UniqueConstraint("company_id", "return_period", "file_hash", name="uq_import_period_hash"),
    )

    # Relationships
    company = relationship("Company", back_populates="imports")
    records = relationship(
        "ExternalRecord",
        back_populates="gstr_import",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ExternalRecord(Base):
    """One statement line (invoice, note or bill of entry)."""

    __tablename__ = "gstr2b_records"

    id = Column(Integer, primary_key=True)
    import_id = Column(
        Integer, ForeignKey("gstr2b_imports.id", ondelete="CASCADE"), nullable=False
    )
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    return_period = Column(String(8), nullable=False)

    supplier_gstin = Column(String(15), nullable=False)
    supplier_name = Column(String, nullable=True)
    document_number = Column(String, nullable=False)
    document_date = Column(Date, nullable=False)
    document_type = Column(_enum_column_type(DocumentType), nullable=False)
    section = Column(_enum_column_type(SupplySection), nullable=False)
    original_document_number = Column(String, nullable=True)
    original_document_date = Column(Date, nullable=True)

    taxable_value = Column(_money(), default=0, nullable=False)
    igst = Column(_money(), default=0, nullable=False)
    cgst = Column(_money(), default=0, nullable=False)
    sgst = Column(_money(), default=0, nullable=False)
    cess = Column(_money(), default=0, nullable=False)
    total_value = Column(_money(), default=0, nullable=False)
    place_of_supply = Column(String(4), nullable=True)
    reverse_charge = Column(Boolean, default=False, nullable=False)

    itc_eligible = Column(Boolean, default=False, nullable=False)
    itc_igst = Column(_money(), default=0, nullable=False)
    itc_cgst = Column(_money(), default=0, nullable=False)
    itc_sgst = Column(_money(), default=0, nullable=False)
    itc_cess = Column(_money(), default=0, nullable=False)

    match_status = Column(
        _enum_column_type(MatchStatus), default=MatchStatus.PENDING, nullable=False
    )
    matched_invoice_id = Column(Integer, ForeignKey("vendor_invoices.id"), nullable=True)
    match_confidence = Column(Integer, default=0, nullable=False)
    match_rule_code = Column(String, nullable=True)
    match_details = Column(JSON, nullable=True)
    discrepancies = Column(JSON, nullable=True)

    action_status = Column(_enum_column_type(ActionStatus), nullable=True)
    action_by = Column(String, nullable=True)
    action_at = Column(DateTime, nullable=True)
    action_notes = Column(Text, nullable=True)

    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_gstr2b_records_import_status", "import_id", "match_status"),
        Index("ix_gstr2b_records_company_period", "company_id", "return_period"),
    )

    # Relationships
    gstr_import = relationship("GstrImport", back_populates="records")


class MatchingRule(Base):
    """Matching rule model. A NULL company_id makes the rule global."""

    __tablename__ = "matching_rules"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=True)
    code = Column(String, nullable=False)
    name = Column(String, nullable=False)
    priority = Column(Integer, nullable=False)
    match_document_number = Column(Boolean, default=True, nullable=False)
    match_amount = Column(Boolean, default=True, nullable=False)
    match_date = Column(Boolean, default=True, nullable=False)
    number_fuzzy_threshold = Column(Integer, default=0, nullable=False)
    amount_tolerance_percent = Column(Numeric(7, 4, asdecimal=True), default=0, nullable=False)
    amount_tolerance_absolute = Column(_money(), default=0, nullable=False)
    date_tolerance_days = Column(Integer, default=0, nullable=False)
    confidence_score = Column(Integer, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        UniqueConstraint("company_id", "code", name="uq_rule_company_code"),
        # NULL company_id values never collide in the constraint above
        Index(
            "uq_rule_global_code",
            "code",
            unique=True,
            sqlite_where=text("company_id IS NULL"),
            postgresql_where=text("company_id IS NULL"),
        ),
    )


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
