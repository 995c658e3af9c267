"""Company and vendor invoice domain services.

Both are thin wrappers over the collaborator stores the reconciliation engine
reads from; they exist so the command line and tests can populate them.
"""

import re
from datetime import date
from decimal import Decimal
from typing import Optional

from gstrecon.database.base import Database
from gstrecon.domain import errors
from gstrecon.domain.entities import Company, TaxBreakdown, VendorInvoice

# 2 digit state code, 10 character PAN, entity number, 'Z', checksum
GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z0-9]{10}[0-9A-Z]Z[0-9A-Z]$")


def normalize_gstin(gstin: str) -> str:
    """Upper-case and validate a GSTIN.

    Raises:
        ValidationError: If the GSTIN is not 15 characters of the expected shape
    """
    value = (gstin or "").strip().upper()
    if not GSTIN_PATTERN.match(value):
        raise errors.ValidationError(f"Invalid GSTIN '{gstin}'")
    return value


class CompanyService:
    """Service for managing companies."""

    def __init__(self, db: Database):
        """Initialize company service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_company(self, name: str, gstin: Optional[str] = None) -> int:
        """Create a new company.

        Args:
            name: Company name
            gstin: Company's own GSTIN, used to validate statement headers

        Returns:
            Company ID

        Raises:
            ValidationError: If name is empty or GSTIN is malformed
            ConflictError: If company name already exists
        """
        name = (name or "").strip()
        if not name:
            raise errors.ValidationError("Company name cannot be empty")
        if gstin:
            gstin = normalize_gstin(gstin)

        for company in self.db.list_companies():
            if company.name == name:
                raise errors.ConflictError(f"Company with name '{name}' already exists")

        return self.db.create_company(name=name, gstin=gstin or None)

    def get_company(self, company_id: int) -> Optional[Company]:
        """Get company by ID.

        Args:
            company_id: Company ID

        Returns:
            Company entity or None if not found
        """
        return self.db.get_company(company_id)

    def list_companies(self) -> list[Company]:
        """List all companies.

        Returns:
            List of company entities
        """
        return self.db.list_companies()


class InvoiceService:
    """Service for recording vendor invoices in the company's books."""

    def __init__(self, db: Database):
        """Initialize invoice service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_invoice(
        self,
        company_id: int,
        supplier_gstin: str,
        invoice_number: str,
        invoice_date: date,
        subtotal: Decimal,
        igst: Decimal = Decimal("0"),
        cgst: Decimal = Decimal("0"),
        sgst: Decimal = Decimal("0"),
        cess: Decimal = Decimal("0"),
        supplier_name: Optional[str] = None,
        itc_eligible: bool = True,
    ) -> int:
        """Record a vendor invoice.

        Args:
            company_id: Company ID
            supplier_gstin: Supplier's GSTIN
            invoice_number: Supplier's invoice number
            invoice_date: Invoice date
            subtotal: Taxable value
            igst: Integrated tax
            cgst: Central tax
            sgst: State tax
            cess: Cess
            supplier_name: Optional supplier name
            itc_eligible: Whether the invoice's tax can be claimed as credit

        Returns:
            Invoice ID

        Raises:
            NotFoundError: If company doesn't exist
            ValidationError: If the invoice number is empty or GSTIN is malformed
        """
        if self.db.get_company(company_id) is None:
            raise errors.NotFoundError(errors.company_not_found(company_id))
        invoice_number = (invoice_number or "").strip()
        if not invoice_number:
            raise errors.ValidationError("Invoice number cannot be empty")

        return self.db.create_vendor_invoice(
            company_id=company_id,
            supplier_gstin=normalize_gstin(supplier_gstin),
            invoice_number=invoice_number,
            invoice_date=invoice_date,
            subtotal=subtotal,
            taxes=TaxBreakdown(igst=igst, cgst=cgst, sgst=sgst, cess=cess),
            supplier_name=supplier_name,
            itc_eligible=itc_eligible,
        )

    def get_invoice(self, invoice_id: int) -> Optional[VendorInvoice]:
        """Get vendor invoice by ID."""
        return self.db.get_vendor_invoice(invoice_id)

    def list_invoices(
        self,
        company_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        supplier_gstin: Optional[str] = None,
    ) -> list[VendorInvoice]:
        """List vendor invoices for a company, oldest first."""
        return self.db.query_vendor_invoices(
            company_id, start_date=start_date, end_date=end_date, supplier_gstin=supplier_gstin
        )
