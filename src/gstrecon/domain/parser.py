"""GSTR-2B document parser.

Turns the JSON statement published by the GST portal into a list of
RecordDraft objects, one per invoice, credit/debit note or bill of entry.
Both the bare layout (``{"gstin", "rtnprd", "docdata": {...}}``) and the
portal download wrapper (``{"data": {...}}``) are understood, and keys are
matched case-insensitively.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterator, Optional, Union

from gstrecon.domain.entities import (
    IMPORT_SUPPLIER_GSTIN,
    ZERO,
    DocumentType,
    RecordDraft,
    SupplySection,
    TaxBreakdown,
)
from gstrecon.domain.errors import DocumentParseError
from gstrecon.utils.amount_parser import to_decimal
from gstrecon.utils.date_parser import parse_document_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedDocument:
    """Header fields and records of one decoded statement."""

    gstin: Optional[str]
    return_period: Optional[str]
    records: list[RecordDraft]

    @property
    def itc_totals(self) -> TaxBreakdown:
        total = TaxBreakdown()
        for record in self.records:
            total = total + record.itc
        return total


def _lower_keys(obj: Any) -> Any:
    """Recursively lower-case dictionary keys."""
    if isinstance(obj, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_lower_keys(v) for v in obj]
    return obj


def decode_document(payload: Union[bytes, str]) -> dict[str, Any]:
    """Decode the JSON payload and unwrap the portal's ``data`` envelope.

    Raises:
        DocumentParseError: If the payload is not a JSON object
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DocumentParseError(f"Invalid GSTR-2B JSON format: {e}")
    try:
        root = json.loads(payload.lstrip("\ufeff"))
    except json.JSONDecodeError as e:
        raise DocumentParseError(f"Invalid GSTR-2B JSON format: {e}")

    if not isinstance(root, dict):
        raise DocumentParseError("Invalid GSTR-2B JSON format: root must be an object")

    root = _lower_keys(root)
    if "docdata" not in root and isinstance(root.get("data"), dict):
        root = root["data"]
    return root


class Gstr2bParser:
    """Maps each statement section onto uniform record drafts."""

    def __init__(self, allow_date_fallback: bool = False, today: Optional[date] = None):
        """Initialize parser.

        Args:
            allow_date_fallback: Use today's date for an empty or unreadable
                document date instead of rejecting the document
            today: Date used by the fallback (defaults to date.today())
        """
        self.allow_date_fallback = allow_date_fallback
        self.today = today

    def parse(self, payload: Union[bytes, str]) -> ParsedDocument:
        """Parse a raw statement.

        Args:
            payload: JSON document as bytes or text

        Returns:
            ParsedDocument with header fields and records

        Raises:
            DocumentParseError: If the payload cannot be decoded or a record is malformed
        """
        return self.parse_decoded(decode_document(payload))

    def parse_decoded(self, root: dict[str, Any]) -> ParsedDocument:
        """Parse an already decoded (lower-cased) statement."""
        docdata = root.get("docdata")
        if not isinstance(docdata, dict):
            raise DocumentParseError("Invalid GSTR-2B JSON format: missing 'docdata' section")

        records = list(self._iter_records(docdata))
        logger.debug("Parsed %d records from GSTR-2B document", len(records))
        return ParsedDocument(
            gstin=_text(root.get("gstin")),
            return_period=_text(root.get("rtnprd")),
            records=records,
        )

    def _iter_records(self, docdata: dict[str, Any]) -> Iterator[RecordDraft]:
        for supplier in _entries(docdata, "b2b"):
            for inv in _entries(supplier, "inv"):
                yield self._document(supplier, inv, SupplySection.B2B, "inum", DocumentType.INVOICE)

        for supplier in _entries(docdata, "b2ba"):
            for inv in _entries(supplier, "inv"):
                yield self._document(
                    supplier,
                    inv,
                    SupplySection.B2BA,
                    "inum",
                    DocumentType.INVOICE,
                    original_keys=("oinum", "oidt"),
                )

        note_sections = (
            (SupplySection.CDNR, None),
            (SupplySection.CDNRA, ("ontnum", "ontdt")),
        )
        for section, original_keys in note_sections:
            for supplier in _entries(docdata, section.value.lower()):
                for note in _entries(supplier, "nt"):
                    yield self._document(
                        supplier,
                        note,
                        section,
                        "ntnum",
                        _note_type(note),
                        original_keys=original_keys,
                    )

        for entry in _entries(docdata, "impg"):
            yield self._import_entry(entry)

    def _document(
        self,
        supplier: dict[str, Any],
        doc: dict[str, Any],
        section: SupplySection,
        number_key: str,
        document_type: DocumentType,
        original_keys: Optional[tuple[str, str]] = None,
    ) -> RecordDraft:
        number = _text(doc.get(number_key)) or ""
        taxable_value, taxes = self._amounts(doc, section, number)
        itc_eligible = _flag(doc.get("itcavl"))

        original_number = original_date = None
        if original_keys is not None:
            original_number = _text(doc.get(original_keys[0]))
            original_date = parse_document_date(doc.get(original_keys[1]))

        return RecordDraft(
            supplier_gstin=(_text(supplier.get("ctin")) or "").upper(),
            supplier_name=_text(supplier.get("trdnm")),
            document_number=number,
            document_date=self._date(doc.get("dt"), section, number),
            document_type=document_type,
            section=section,
            taxable_value=taxable_value,
            taxes=taxes,
            total_value=self._amount(doc.get("val"), section, number),
            itc_eligible=itc_eligible,
            itc=taxes if itc_eligible else TaxBreakdown(),
            place_of_supply=_text(doc.get("pos")),
            reverse_charge=_flag(doc.get("rev")),
            original_document_number=original_number,
            original_document_date=original_date,
        )

    def _import_entry(self, entry: dict[str, Any]) -> RecordDraft:
        section = SupplySection.IMPG
        number = _text(entry.get("benum")) or ""
        taxable_value = self._amount(entry.get("txval"), section, number)
        taxes = TaxBreakdown(
            igst=self._amount(entry.get("igst"), section, number),
            cess=self._amount(entry.get("cess"), section, number),
        )
        return RecordDraft(
            supplier_gstin=IMPORT_SUPPLIER_GSTIN,
            supplier_name=None,
            document_number=number,
            document_date=self._date(entry.get("bedt"), section, number),
            document_type=DocumentType.IMPORT_ENTRY,
            section=section,
            taxable_value=taxable_value,
            taxes=taxes,
            total_value=taxable_value + taxes.igst + taxes.cess,
            itc_eligible=True,
            itc=taxes,
        )

    def _amounts(
        self, doc: dict[str, Any], section: SupplySection, number: str
    ) -> tuple[Decimal, TaxBreakdown]:
        """Sum line items, or read document-level amounts when there are none."""
        items = doc.get("items")
        if items is None:
            items = doc.get("itms")
        if not items:
            items = [doc]

        taxable_value = ZERO
        taxes = TaxBreakdown()
        for item in items:
            if not isinstance(item, dict):
                raise DocumentParseError(f"{section.value} {number}: line item must be an object")
            # Older downloads nest the amounts under "itm_det"
            detail = item.get("itm_det") if isinstance(item.get("itm_det"), dict) else item
            taxable_value += self._amount(detail.get("txval"), section, number)
            taxes = taxes + TaxBreakdown(
                igst=self._amount(detail.get("igst"), section, number),
                cgst=self._amount(detail.get("cgst"), section, number),
                sgst=self._amount(detail.get("sgst"), section, number),
                cess=self._amount(detail.get("cess"), section, number),
            )
        return taxable_value, taxes

    def _amount(self, value: Any, section: SupplySection, number: str) -> Decimal:
        try:
            return to_decimal(value)
        except ValueError as e:
            raise DocumentParseError(f"{section.value} {number}: {e}")

    def _date(self, value: Any, section: SupplySection, number: str) -> date:
        parsed = parse_document_date(value)
        if parsed is not None:
            return parsed
        if self.allow_date_fallback:
            fallback = self.today or date.today()
            logger.warning(
                "%s %s: unreadable date %r, using %s", section.value, number, value, fallback
            )
            return fallback
        raise DocumentParseError(
            f"{section.value} {number or '(no number)'}: invalid or missing date {value!r}"
        )


def parse_gstr2b(payload: Union[bytes, str], allow_date_fallback: bool = False) -> ParsedDocument:
    """Parse a GSTR-2B JSON document with default options."""
    return Gstr2bParser(allow_date_fallback=allow_date_fallback).parse(payload)


def _entries(container: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = container.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise DocumentParseError(f"Invalid GSTR-2B JSON format: '{key}' must be a list")
    for entry in value:
        if not isinstance(entry, dict):
            raise DocumentParseError(f"Invalid GSTR-2B JSON format: '{key}' entries must be objects")
    return value


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _flag(value: Any) -> bool:
    return isinstance(value, str) and value.strip().upper() == "Y"


def _note_type(note: dict[str, Any]) -> DocumentType:
    if (_text(note.get("typ")) or "").upper() == "C":
        return DocumentType.CREDIT_NOTE
    return DocumentType.DEBIT_NOTE
