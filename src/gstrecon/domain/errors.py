"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class DocumentParseError(ValidationError):
    """The GSTR-2B payload could not be decoded into records."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as a duplicate import or an illegal state change."""


class InternalError(DomainError):
    """Unexpected failure while processing, e.g. a storage fault mid-insert."""


def company_not_found(company_id: int) -> str:
    """Return message for missing company."""
    return f"Company with ID {company_id} not found"


def import_not_found(import_id: int) -> str:
    """Return message for missing import."""
    return f"Import with ID {import_id} not found"


def import_not_found_for_period(period: str) -> str:
    """Return message when no import exists for a return period."""
    return f"No GSTR-2B import found for period {period}"


def record_not_found(record_id: int) -> str:
    """Return message for missing GSTR-2B record."""
    return f"GSTR-2B record with ID {record_id} not found"


def vendor_invoice_not_found(invoice_id: int) -> str:
    """Return message for missing vendor invoice."""
    return f"Vendor invoice with ID {invoice_id} not found"


def rule_not_found(rule_id: int) -> str:
    """Return message for missing matching rule."""
    return f"Matching rule with ID {rule_id} not found"


def duplicate_import(period: str) -> str:
    """Return message for a re-submitted GSTR-2B file."""
    return f"This GSTR-2B file has already been imported for {period}"


def duplicate_rule_code(code: str) -> str:
    """Return message for a rule code already used in the same scope."""
    return f"Matching rule with code '{code}' already exists"


def illegal_import_transition(import_id: int, current: str, target: str) -> str:
    """Return message for an import status change that is not allowed."""
    return f"Import {import_id} cannot move from '{current}' to '{target}'"
