"""Tests for matching rule management."""

import pytest
from decimal import Decimal

from gstrecon.domain.errors import ConflictError, NotFoundError, ValidationError
from gstrecon.domain.rules import DEFAULT_RULES


def test_seed_creates_four_rules(rule_service):
    created = rule_service.seed_default_rules()

    assert len(created) == 4
    rules = rule_service.list_rules()
    assert [r.code for r in rules] == ["EXACT", "FUZZY_NUMBER", "AMOUNT_TOLERANCE", "LOOSE"]
    assert [r.confidence_score for r in rules] == [100, 90, 80, 60]
    assert all(r.company_id is None for r in rules)


def test_seed_is_idempotent(rule_service):
    rule_service.seed_default_rules()
    assert rule_service.seed_default_rules() == []
    assert len(rule_service.list_rules()) == len(DEFAULT_RULES)


def test_fuzzy_rule_tolerances(default_rules):
    fuzzy = next(r for r in default_rules if r.code == "FUZZY_NUMBER")
    assert fuzzy.number_fuzzy_threshold == 2
    assert fuzzy.amount_tolerance_absolute == Decimal("1.00")
    assert fuzzy.date_tolerance_days == 3


def test_seed_for_company(rule_service, sample_company, default_rules):
    created = rule_service.seed_default_rules(sample_company.id)
    assert len(created) == 4
    # Global and company rules both apply to the company
    assert len(rule_service.list_rules(sample_company.id)) == 8
    assert len(rule_service.list_rules()) == 4


def test_create_rule(rule_service, sample_company):
    rule_id = rule_service.create_rule(
        code="same_amount",
        name="Same amount only",
        priority=5,
        confidence_score=40,
        company_id=sample_company.id,
        match_document_number=False,
        match_date=False,
    )

    rule = rule_service.get_rule(rule_id)
    assert rule.code == "SAME_AMOUNT"
    assert rule.company_id == sample_company.id
    assert rule.match_document_number is False
    assert rule.match_amount is True
    assert rule.is_active is True


def test_company_rules_sort_with_globals(rule_service, sample_company, default_rules):
    rule_service.create_rule(
        "FIRST", "Runs first", priority=1, confidence_score=50, company_id=sample_company.id
    )
    codes = [r.code for r in rule_service.list_rules(sample_company.id)]
    assert codes[0] == "FIRST"


def test_duplicate_code_in_scope(rule_service, default_rules):
    with pytest.raises(ConflictError, match="'EXACT' already exists"):
        rule_service.create_rule("exact", "Again", priority=1, confidence_score=100)


def test_same_code_in_company_scope_is_allowed(rule_service, sample_company, default_rules):
    rule_id = rule_service.create_rule(
        "EXACT", "Company exact", priority=10, confidence_score=100, company_id=sample_company.id
    )
    assert rule_service.get_rule(rule_id).company_id == sample_company.id


def test_unknown_company(rule_service):
    with pytest.raises(NotFoundError):
        rule_service.create_rule("X", "X", priority=1, confidence_score=1, company_id=99)


@pytest.mark.parametrize(
    "overrides",
    [
        {"confidence_score": 101},
        {"confidence_score": -1},
        {"priority": -1},
        {"number_fuzzy_threshold": -2},
        {"amount_tolerance_percent": Decimal("-1")},
        {"name": " "},
        {"code": ""},
    ],
)
def test_invalid_values(rule_service, overrides):
    values = {"code": "R", "name": "Rule", "priority": 1, "confidence_score": 50}
    values.update(overrides)
    with pytest.raises(ValidationError):
        rule_service.create_rule(**values)


def test_update_rule(rule_service, default_rules):
    rule = default_rules[0]
    rule_service.update_rule(rule.id, date_tolerance_days=1, name="Exact-ish")

    updated = rule_service.get_rule(rule.id)
    assert updated.date_tolerance_days == 1
    assert updated.name == "Exact-ish"


def test_update_rule_rejects_code_change(rule_service, default_rules):
    with pytest.raises(ValidationError, match="cannot be changed"):
        rule_service.update_rule(default_rules[0].id, code="NEW")


def test_update_rule_rejects_unknown_field(rule_service, default_rules):
    with pytest.raises(ValidationError):
        rule_service.update_rule(default_rules[0].id, colour="blue")


def test_update_missing_rule(rule_service):
    with pytest.raises(NotFoundError, match="Matching rule with ID 77 not found"):
        rule_service.update_rule(77, priority=3)


def test_disable_and_enable(rule_service, default_rules):
    rule_id = default_rules[0].id
    rule_service.set_rule_active(rule_id, False)

    assert [r.code for r in rule_service.list_rules()] == [
        "FUZZY_NUMBER",
        "AMOUNT_TOLERANCE",
        "LOOSE",
    ]
    assert len(rule_service.list_rules(include_inactive=True)) == 4

    rule_service.set_rule_active(rule_id, True)
    assert rule_service.list_rules()[0].code == "EXACT"


def test_delete_rule(rule_service, default_rules):
    rule_service.delete_rule(default_rules[-1].id)
    assert rule_service.get_rule(default_rules[-1].id) is None
    with pytest.raises(NotFoundError):
        rule_service.delete_rule(default_rules[-1].id)
