"""Matching rule domain service."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from gstrecon.database.base import Database
from gstrecon.domain import errors
from gstrecon.domain.entities import MatchingRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleTemplate:
    """Definition of a rule in the default set."""

    code: str
    name: str
    priority: int
    number_fuzzy_threshold: int
    amount_tolerance_percent: Decimal
    amount_tolerance_absolute: Decimal
    date_tolerance_days: int
    confidence_score: int
    description: str

    def fields(self) -> dict[str, Any]:
        return {
            "number_fuzzy_threshold": self.number_fuzzy_threshold,
            "amount_tolerance_percent": self.amount_tolerance_percent,
            "amount_tolerance_absolute": self.amount_tolerance_absolute,
            "date_tolerance_days": self.date_tolerance_days,
            "confidence_score": self.confidence_score,
            "description": self.description,
        }


# Strict first, progressively looser
DEFAULT_RULES: tuple[RuleTemplate, ...] = (
    RuleTemplate(
        code="EXACT",
        name="Exact match",
        priority=10,
        number_fuzzy_threshold=0,
        amount_tolerance_percent=Decimal("0"),
        amount_tolerance_absolute=Decimal("0"),
        date_tolerance_days=0,
        confidence_score=100,
        description="Same document number, taxable value and date",
    ),
    RuleTemplate(
        code="FUZZY_NUMBER",
        name="Fuzzy document number",
        priority=20,
        number_fuzzy_threshold=2,
        amount_tolerance_percent=Decimal("0"),
        amount_tolerance_absolute=Decimal("1.00"),
        date_tolerance_days=3,
        confidence_score=90,
        description="Number within 2 edits, value within 1.00, date within 3 days",
    ),
    RuleTemplate(
        code="AMOUNT_TOLERANCE",
        name="Amount within 1%",
        priority=30,
        number_fuzzy_threshold=0,
        amount_tolerance_percent=Decimal("1"),
        amount_tolerance_absolute=Decimal("0"),
        date_tolerance_days=7,
        confidence_score=80,
        description="Same number, value within 1%, date within 7 days",
    ),
    RuleTemplate(
        code="LOOSE",
        name="Loose match",
        priority=40,
        number_fuzzy_threshold=3,
        amount_tolerance_percent=Decimal("5"),
        amount_tolerance_absolute=Decimal("0"),
        date_tolerance_days=30,
        confidence_score=60,
        description="Number within 3 edits, value within 5%, date within 30 days",
    ),
)

_NON_NEGATIVE = (
    "priority",
    "number_fuzzy_threshold",
    "amount_tolerance_percent",
    "amount_tolerance_absolute",
    "date_tolerance_days",
)


def validate_rule_fields(fields: dict[str, Any]) -> None:
    """Check rule values that can be checked without the store.

    Raises:
        ValidationError: If a value is out of range
    """
    if "code" in fields and not (fields["code"] or "").strip():
        raise errors.ValidationError("Rule code cannot be empty")
    if "name" in fields and not (fields["name"] or "").strip():
        raise errors.ValidationError("Rule name cannot be empty")
    if "confidence_score" in fields:
        score = fields["confidence_score"]
        if score is None or not 0 <= score <= 100:
            raise errors.ValidationError(
                f"Confidence score must be between 0 and 100, got {score}"
            )
    for name in _NON_NEGATIVE:
        if name in fields and fields[name] is not None and fields[name] < 0:
            raise errors.ValidationError(f"{name.replace('_', ' ').capitalize()} cannot be negative")


class RuleService:
    """Service for managing matching rules."""

    def __init__(self, db: Database):
        """Initialize rule service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_rule(
        self,
        code: str,
        name: str,
        priority: int,
        confidence_score: int,
        company_id: Optional[int] = None,
        match_document_number: bool = True,
        match_amount: bool = True,
        match_date: bool = True,
        number_fuzzy_threshold: int = 0,
        amount_tolerance_percent: Decimal = Decimal("0"),
        amount_tolerance_absolute: Decimal = Decimal("0"),
        date_tolerance_days: int = 0,
        description: Optional[str] = None,
    ) -> int:
        """Create a matching rule.

        Args:
            code: Short code, unique within the rule's scope
            name: Display name
            priority: Lower runs first
            confidence_score: Confidence (0-100) given to matches this rule produces
            company_id: Owning company, or None for a global rule
            match_document_number: Compare document numbers
            match_amount: Compare taxable values
            match_date: Compare document dates
            number_fuzzy_threshold: Maximum edit distance between normalized numbers
            amount_tolerance_percent: Allowed difference as a percentage (0 disables)
            amount_tolerance_absolute: Allowed absolute difference (0 disables)
            date_tolerance_days: Allowed date difference in days
            description: Optional description

        Returns:
            Rule ID

        Raises:
            ValidationError: If a value is out of range
            NotFoundError: If company doesn't exist
            ConflictError: If the code is already used in the same scope
        """
        code = (code or "").strip().upper()
        fields = {
            "name": name,
            "match_document_number": match_document_number,
            "match_amount": match_amount,
            "match_date": match_date,
            "number_fuzzy_threshold": number_fuzzy_threshold,
            "amount_tolerance_percent": Decimal(amount_tolerance_percent),
            "amount_tolerance_absolute": Decimal(amount_tolerance_absolute),
            "date_tolerance_days": date_tolerance_days,
            "confidence_score": confidence_score,
            "description": description,
        }
        validate_rule_fields({"code": code, "priority": priority, **fields})

        if company_id is not None and self.db.get_company(company_id) is None:
            raise errors.NotFoundError(errors.company_not_found(company_id))
        if self.db.get_rule_by_code(company_id, code) is not None:
            raise errors.ConflictError(errors.duplicate_rule_code(code))

        del fields["name"]
        rule_id = self.db.create_rule(company_id, code, name, priority, **fields)
        logger.info("Created matching rule %s (id=%d, priority=%d)", code, rule_id, priority)
        return rule_id

    def get_rule(self, rule_id: int) -> Optional[MatchingRule]:
        """Get rule by ID.

        Args:
            rule_id: Rule ID

        Returns:
            MatchingRule entity or None if not found
        """
        return self.db.get_rule(rule_id)

    def list_rules(
        self, company_id: Optional[int] = None, include_inactive: bool = False
    ) -> list[MatchingRule]:
        """List rules that apply to a company, lowest priority number first.

        Args:
            company_id: Company ID; None lists only global rules
            include_inactive: Include disabled rules

        Returns:
            Global rules plus the company's own
        """
        return self.db.list_rules(company_id, include_inactive=include_inactive)

    def update_rule(self, rule_id: int, **fields: Any) -> None:
        """Update rule fields.

        Args:
            rule_id: Rule ID
            **fields: Any of the fields accepted by create_rule except code and company_id

        Raises:
            NotFoundError: If rule doesn't exist
            ValidationError: If a value is out of range
        """
        if self.db.get_rule(rule_id) is None:
            raise errors.NotFoundError(errors.rule_not_found(rule_id))
        if "code" in fields or "company_id" in fields:
            raise errors.ValidationError("Rule code and scope cannot be changed")
        validate_rule_fields(fields)
        try:
            self.db.update_rule(rule_id, **fields)
        except ValueError as e:
            raise errors.ValidationError(str(e))

    def set_rule_active(self, rule_id: int, is_active: bool) -> None:
        """Enable or disable a rule.

        Raises:
            NotFoundError: If rule doesn't exist
        """
        self.update_rule(rule_id, is_active=is_active)

    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule.

        Raises:
            NotFoundError: If rule doesn't exist
        """
        if self.db.get_rule(rule_id) is None:
            raise errors.NotFoundError(errors.rule_not_found(rule_id))
        self.db.delete_rule(rule_id)

    def seed_default_rules(self, company_id: Optional[int] = None) -> list[int]:
        """Create the default rule set, skipping codes that already exist.

        Args:
            company_id: Company to seed for, or None for global rules

        Returns:
            IDs of newly created rules (empty when everything already existed)
        """
        created = []
        for template in DEFAULT_RULES:
            if self.db.get_rule_by_code(company_id, template.code) is not None:
                continue
            created.append(
                self.create_rule(
                    code=template.code,
                    name=template.name,
                    priority=template.priority,
                    company_id=company_id,
                    **template.fields(),
                )
            )
        return created
