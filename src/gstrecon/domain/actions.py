"""Human review actions on reconciled GSTR-2B records.

An action (accepted or rejected) sits beside the automatic match status and
never changes it, except for a manual match, which binds the record to an
invoice chosen by the reviewer.
"""

import logging
from typing import Optional

from gstrecon.database.base import Database
from gstrecon.domain import errors
from gstrecon.domain.entities import (
    MANUAL_RULE_CODE,
    ActionStatus,
    ExternalRecord,
    MatchResult,
)
from gstrecon.domain.matching import collect_discrepancies
from gstrecon.domain.result import returns_result

logger = logging.getLogger(__name__)


class ActionService:
    """Service for accepting, rejecting and manually matching records."""

    def __init__(self, db: Database):
        """Initialize action service.

        Args:
            db: Database instance
        """
        self.db = db

    def _get_record(self, record_id: int) -> ExternalRecord:
        record = self.db.get_record(record_id)
        if record is None:
            raise errors.NotFoundError(errors.record_not_found(record_id))
        return record

    @returns_result
    def accept_mismatch(
        self, record_id: int, actor: Optional[str] = None, notes: Optional[str] = None
    ) -> ExternalRecord:
        """Mark a record as accepted, whatever its match status.

        Args:
            record_id: Record ID
            actor: Who accepted it
            notes: Optional notes

        Returns:
            Result carrying the updated record (NotFoundError when missing)
        """
        self._get_record(record_id)
        self.db.update_record_action(record_id, ActionStatus.ACCEPTED, actor, notes)
        logger.info("Record %d accepted by %s", record_id, actor or "unknown")
        return self._get_record(record_id)

    @returns_result
    def reject_invoice(self, record_id: int, actor: Optional[str], reason: str) -> ExternalRecord:
        """Mark a record as rejected. A reason is required.

        Args:
            record_id: Record ID
            actor: Who rejected it
            reason: Why the record is disputed

        Returns:
            Result carrying the updated record, or a failure with
            NotFoundError or ValidationError (blank reason)
        """
        self._get_record(record_id)
        reason = (reason or "").strip()
        if not reason:
            raise errors.ValidationError("A reason is required to reject a record")
        self.db.update_record_action(record_id, ActionStatus.REJECTED, actor, reason)
        logger.info("Record %d rejected by %s", record_id, actor or "unknown")
        return self._get_record(record_id)

    @returns_result
    def manual_match(
        self,
        record_id: int,
        invoice_id: int,
        actor: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ExternalRecord:
        """Bind a record to a vendor invoice chosen by hand.

        Taxable value and tax totals are still compared, so the record ends up
        ``matched`` or ``partial_match``; confidence is always 100 and the
        record is accepted.

        Args:
            record_id: Record ID
            invoice_id: Vendor invoice ID
            actor: Who made the match
            notes: Optional notes

        Returns:
            Result carrying the updated record, or a failure with
            NotFoundError (record or invoice) or ValidationError (invoice of
            another company)
        """
        record = self._get_record(record_id)
        invoice = self.db.get_vendor_invoice(invoice_id)
        if invoice is None:
            raise errors.NotFoundError(errors.vendor_invoice_not_found(invoice_id))
        if invoice.company_id != record.company_id:
            raise errors.ValidationError(
                f"Vendor invoice {invoice_id} belongs to a different company than record {record_id}"
            )

        result = MatchResult(
            is_match=True,
            confidence=100,
            matched_invoice_id=invoice.id,
            rule_code=MANUAL_RULE_CODE,
            discrepancies=tuple(collect_discrepancies(record, invoice)),
            details={
                "manual": True,
                "matched_by": actor,
                "notes": notes,
                "matched_invoice_number": invoice.invoice_number,
                "matched_invoice_date": invoice.invoice_date.isoformat(),
            },
        )
        self.db.update_record_matches([(record_id, result)])
        self.db.update_record_action(record_id, ActionStatus.ACCEPTED, actor, notes)
        logger.info(
            "Record %d manually matched to invoice %d (%s)",
            record_id,
            invoice_id,
            result.match_status.value,
        )
        return self._get_record(record_id)

    @returns_result
    def reset_action(self, record_id: int) -> ExternalRecord:
        """Clear the action on a record, leaving its match untouched."""
        self._get_record(record_id)
        self.db.update_record_action(record_id, None, None, None)
        return self._get_record(record_id)
