"""Rule-driven matching of statement records against vendor invoices.

Everything here is pure: no database access and no shared mutable state, so a
MatchingEngine can be used from several worker threads at once.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional, Protocol, Sequence

from gstrecon.domain.entities import (
    ZERO,
    MatchingRule,
    MatchResult,
    MatchStrategy,
    TaxBreakdown,
    VendorInvoice,
)
from gstrecon.utils.amount_parser import round_paise

_NUMBER_NOISE = str.maketrans("", "", " -/_")


class MatchableRecord(Protocol):
    """The fields of a statement record the engine reads."""

    supplier_gstin: str
    document_number: str
    document_date: date
    taxable_value: Decimal

    @property
    def taxes(self) -> TaxBreakdown: ...


def normalize_document_number(number: Optional[str]) -> str:
    """Upper-case a document number and drop spaces, hyphens, slashes and underscores."""
    return (number or "").upper().translate(_NUMBER_NOISE)


def levenshtein_distance(s1: str, s2: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if len(s1) < len(s2):
        s1, s2 = s2, s1
    previous = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1, start=1):
        current = [i]
        for j, c2 in enumerate(s2, start=1):
            cost = 0 if c1 == c2 else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def compare_document_numbers(number1: str, number2: str, threshold: int) -> tuple[bool, int]:
    """Compare two document numbers.

    Returns:
        (is_match, distance). Distance is 0 for equal normalized numbers and
        -1 when the numbers differ and no fuzziness is allowed.
    """
    n1 = normalize_document_number(number1)
    n2 = normalize_document_number(number2)
    if n1 == n2:
        return True, 0
    if threshold <= 0:
        return False, -1
    distance = levenshtein_distance(n1, n2)
    return distance <= threshold, distance


def compare_amounts(
    amount1: Decimal,
    amount2: Decimal,
    tolerance_percent: Decimal,
    tolerance_absolute: Decimal,
) -> tuple[bool, Decimal]:
    """Compare two amounts under a percentage and/or absolute tolerance.

    A zero tolerance disables that branch. Both bounds are inclusive.

    Returns:
        (is_match, amount1 - amount2)
    """
    signed = amount1 - amount2
    difference = abs(signed)
    if difference == 0:
        return True, ZERO

    if tolerance_percent > 0:
        max_amount = max(amount1, amount2)
        percent_diff = difference / max_amount * 100 if max_amount > 0 else ZERO
        if percent_diff <= tolerance_percent:
            return True, signed

    if tolerance_absolute > 0 and difference <= tolerance_absolute:
        return True, signed

    return False, signed


def compare_dates(date1: date, date2: date, tolerance_days: int) -> tuple[bool, int]:
    """Compare two dates. Returns (is_match, absolute day difference)."""
    days = abs((date1 - date2).days)
    return days <= tolerance_days, days


def collect_discrepancies(record: MatchableRecord, invoice: VendorInvoice) -> list[str]:
    """Describe money disagreements between a record and the invoice it matched."""
    discrepancies = []
    statement_value = round_paise(record.taxable_value)
    books_value = round_paise(invoice.subtotal)
    if statement_value != books_value:
        discrepancies.append(
            f"Taxable value mismatch: 2B={statement_value}, Books={books_value}"
        )

    statement_tax = round_paise(record.taxes.total)
    books_tax = round_paise(invoice.total_tax)
    if statement_tax != books_tax:
        discrepancies.append(f"GST amount mismatch: 2B={statement_tax}, Books={books_tax}")
    return discrepancies


@dataclass(frozen=True)
class _Evaluation:
    """A candidate that passed every enabled criterion of one rule."""

    rule: MatchingRule
    rule_index: int
    invoice: VendorInvoice
    candidate_index: int
    number_distance: Optional[int]
    amount_difference: Optional[Decimal]
    date_difference_days: Optional[int]

    def score_key(self, record: MatchableRecord) -> tuple:
        """Sort key for best-score selection: smaller is better."""
        distance = levenshtein_distance(
            normalize_document_number(record.document_number),
            normalize_document_number(self.invoice.invoice_number),
        )
        days = abs((record.document_date - self.invoice.invoice_date).days)
        amount = abs(record.taxable_value - self.invoice.subtotal)
        return (
            -self.rule.confidence_score,
            self.rule.priority,
            distance,
            days,
            amount,
            self.candidate_index,
            self.rule_index,
        )


class MatchingEngine:
    """Evaluates prioritized rules against a record's candidate invoices."""

    def __init__(
        self,
        rules: Iterable[MatchingRule],
        strategy: MatchStrategy = MatchStrategy.FIRST_MATCH,
    ):
        """Initialize engine.

        Args:
            rules: Matching rules; inactive ones are ignored
            strategy: FIRST_MATCH stops at the first passing rule/candidate pair,
                BEST_SCORE evaluates every pair and keeps the highest confidence
        """
        self.rules = sorted(
            (r for r in rules if r.is_active), key=lambda r: (r.priority, r.id)
        )
        self.strategy = strategy

    @staticmethod
    def filter_candidates(
        record: MatchableRecord, invoices: Iterable[VendorInvoice]
    ) -> list[VendorInvoice]:
        """Keep invoices from the record's supplier (GSTIN compared case-insensitively)."""
        gstin = (record.supplier_gstin or "").upper()
        if not gstin:
            return []
        return [inv for inv in invoices if (inv.supplier_gstin or "").upper() == gstin]

    def match(self, record: MatchableRecord, invoices: Iterable[VendorInvoice]) -> MatchResult:
        """Match one record against the candidate pool.

        Args:
            record: Statement record
            invoices: Candidate invoices, in a stable order

        Returns:
            MatchResult; unmatched with confidence 0 when nothing passes
        """
        candidates = self.filter_candidates(record, invoices)
        if not candidates or not self.rules:
            return MatchResult(is_match=False)

        if self.strategy == MatchStrategy.BEST_SCORE:
            winner = self._best_score(record, candidates)
        else:
            winner = self._first_match(record, candidates)

        if winner is None:
            return MatchResult(is_match=False)
        return self._result(record, winner)

    def evaluate(
        self,
        rule: MatchingRule,
        record: MatchableRecord,
        invoice: VendorInvoice,
        rule_index: int = 0,
        candidate_index: int = 0,
    ) -> Optional[_Evaluation]:
        """Apply one rule to one candidate. Returns None if any enabled criterion fails."""
        distance = amount_difference = days = None

        if rule.match_document_number:
            ok, distance = compare_document_numbers(
                record.document_number, invoice.invoice_number, rule.number_fuzzy_threshold
            )
            if not ok:
                return None

        if rule.match_amount:
            ok, amount_difference = compare_amounts(
                record.taxable_value,
                invoice.subtotal,
                rule.amount_tolerance_percent,
                rule.amount_tolerance_absolute,
            )
            if not ok:
                return None

        if rule.match_date:
            ok, days = compare_dates(
                record.document_date, invoice.invoice_date, rule.date_tolerance_days
            )
            if not ok:
                return None

        return _Evaluation(
            rule=rule,
            rule_index=rule_index,
            invoice=invoice,
            candidate_index=candidate_index,
            number_distance=distance,
            amount_difference=amount_difference,
            date_difference_days=days,
        )

    def _first_match(
        self, record: MatchableRecord, candidates: Sequence[VendorInvoice]
    ) -> Optional[_Evaluation]:
        for rule_index, rule in enumerate(self.rules):
            for candidate_index, invoice in enumerate(candidates):
                evaluation = self.evaluate(rule, record, invoice, rule_index, candidate_index)
                if evaluation is not None:
                    return evaluation
        return None

    def _best_score(
        self, record: MatchableRecord, candidates: Sequence[VendorInvoice]
    ) -> Optional[_Evaluation]:
        passing = []
        for rule_index, rule in enumerate(self.rules):
            for candidate_index, invoice in enumerate(candidates):
                evaluation = self.evaluate(rule, record, invoice, rule_index, candidate_index)
                if evaluation is not None:
                    passing.append(evaluation)
        if not passing:
            return None
        return min(passing, key=lambda e: e.score_key(record))

    def _result(self, record: MatchableRecord, evaluation: _Evaluation) -> MatchResult:
        invoice = evaluation.invoice
        details: dict[str, Any] = {
            "rule_code": evaluation.rule.code,
            "strategy": self.strategy.value,
            "matched_invoice_number": invoice.invoice_number,
            "matched_invoice_date": invoice.invoice_date.isoformat(),
        }
        if evaluation.number_distance is not None:
            details["number_distance"] = evaluation.number_distance
        if evaluation.amount_difference is not None:
            details["amount_difference"] = str(evaluation.amount_difference)
        if evaluation.date_difference_days is not None:
            details["date_difference_days"] = evaluation.date_difference_days

        return MatchResult(
            is_match=True,
            confidence=evaluation.rule.confidence_score,
            matched_invoice_id=invoice.id,
            rule_code=evaluation.rule.code,
            discrepancies=tuple(collect_discrepancies(record, invoice)),
            details=details,
        )
