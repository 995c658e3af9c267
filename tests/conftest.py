"""Shared pytest fixtures for gstrecon tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
import pytest

from gstrecon.config import Settings
from gstrecon.database.factories import create_sqlite_database
from gstrecon.domain.actions import ActionService
from gstrecon.domain.companies import CompanyService, InvoiceService
from gstrecon.domain.reconciliation import ReconciliationService
from gstrecon.domain.rules import RuleService

COMPANY_GSTIN = "29AABCA1234F1Z5"
ALPHA_GSTIN = "27AAPFU0939F1ZV"
BETA_GSTIN = "29AAACB2222C1ZX"


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def company_service(temp_db):
    """Create a CompanyService with a temporary database."""
    return CompanyService(temp_db)


@pytest.fixture
def invoice_service(temp_db):
    """Create an InvoiceService with a temporary database."""
    return InvoiceService(temp_db)


@pytest.fixture
def rule_service(temp_db):
    """Create a RuleService with a temporary database."""
    return RuleService(temp_db)


@pytest.fixture
def reconciliation_service(temp_db):
    """Create a ReconciliationService with a small worker pool."""
    return ReconciliationService(temp_db, Settings(max_workers=2))


@pytest.fixture
def action_service(temp_db):
    """Create an ActionService with a temporary database."""
    return ActionService(temp_db)


@pytest.fixture
def sample_company(company_service):
    """Create a sample company whose GSTIN matches the sample statement."""
    company_id = company_service.create_company(name="Acme Manufacturing", gstin=COMPANY_GSTIN)
    return company_service.get_company(company_id)


@pytest.fixture
def sample_invoices(invoice_service, sample_company):
    """Record two vendor invoices from Alpha Supplies in the books.

    The first matches INV/001-A of the sample statement exactly on money; the
    second differs from INV-002 by 0.50 in taxable value.
    """
    first = invoice_service.create_invoice(
        company_id=sample_company.id,
        supplier_gstin=ALPHA_GSTIN,
        supplier_name="Alpha Supplies",
        invoice_number="INV001A",
        invoice_date=date(2024, 5, 12),
        subtotal=Decimal("10000.00"),
        igst=Decimal("1800.00"),
    )
    second = invoice_service.create_invoice(
        company_id=sample_company.id,
        supplier_gstin=ALPHA_GSTIN,
        supplier_name="Alpha Supplies",
        invoice_number="INV-002",
        invoice_date=date(2024, 5, 15),
        subtotal=Decimal("5000.50"),
        igst=Decimal("900.00"),
    )
    return [invoice_service.get_invoice(first), invoice_service.get_invoice(second)]


@pytest.fixture
def default_rules(rule_service):
    """Seed the global default rule set."""
    rule_service.seed_default_rules()
    return rule_service.list_rules()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_payload(fixtures_dir):
    """Raw bytes of the sample May-2024 statement."""
    return (fixtures_dir / "gstr2b_may2024.json").read_bytes()


@pytest.fixture
def sample_import(reconciliation_service, sample_company, sample_payload):
    """Import the sample statement and return the completed import."""
    result = reconciliation_service.import_document(
        sample_company.id, "May-2024", sample_payload, file_name="gstr2b_may2024.json"
    )
    assert result.ok, result.error
    return result.value


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
