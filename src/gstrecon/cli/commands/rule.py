"""Matching rule commands."""

from decimal import Decimal

import click
from gstrecon.cli.company_resolution import resolve_company_or_exit
from gstrecon.domain.errors import DomainError
from gstrecon.domain.rules import RuleService


def _scope(ctx, company: str | None) -> int | None:
    if company is None:
        return None
    return resolve_company_or_exit(ctx, ctx.obj["db"], company)


def _tolerance(rule) -> str:
    parts = []
    if rule.match_document_number:
        parts.append(f"number<={rule.number_fuzzy_threshold}" if rule.number_fuzzy_threshold else "number=")
    if rule.match_amount:
        amount = []
        if rule.amount_tolerance_percent:
            amount.append(f"{rule.amount_tolerance_percent.normalize()}%")
        if rule.amount_tolerance_absolute:
            amount.append(f"{rule.amount_tolerance_absolute:.2f}")
        parts.append(f"amount<={'/'.join(amount)}" if amount else "amount=")
    if rule.match_date:
        parts.append(f"date+-{rule.date_tolerance_days}d")
    return " ".join(parts)


@click.group()
def rule_group():
    """Manage matching rules."""
    pass


@rule_group.command("list")
@click.option("--company", help="Company name, GSTIN or ID (global rules only if omitted)")
@click.option("--all", "include_inactive", is_flag=True, help="Include disabled rules")
@click.pass_context
def list_rules(ctx, company: str | None, include_inactive: bool):
    """List matching rules in evaluation order."""
    service = RuleService(ctx.obj["db"])
    rules = service.list_rules(_scope(ctx, company), include_inactive=include_inactive)
    if not rules:
        click.echo("No matching rules found. Run 'gstrecon rule seed' to create the defaults.")
        return

    click.echo("\nMatching rules:")
    click.echo("-" * 90)
    for rule in rules:
        scope = "global" if rule.company_id is None else f"company {rule.company_id}"
        state = "" if rule.is_active else " (disabled)"
        click.echo(
            f"ID: {rule.id:3d} | P{rule.priority:<4d} | {rule.code:18s} | {rule.confidence_score:3d}% | "
            f"{_tolerance(rule):40s} | {scope}{state}"
        )


@rule_group.command("add")
@click.argument("code")
@click.option("--name", required=True, help="Display name")
@click.option("--priority", type=int, required=True, help="Lower runs first")
@click.option("--confidence", type=click.IntRange(0, 100), required=True, help="Confidence score (0-100)")
@click.option("--company", help="Company name, GSTIN or ID (global rule if omitted)")
@click.option("--number-threshold", type=int, default=0, show_default=True, help="Max edit distance between document numbers")
@click.option("--amount-percent", default="0", show_default=True, help="Allowed taxable value difference in percent")
@click.option("--amount-absolute", default="0", show_default=True, help="Allowed taxable value difference")
@click.option("--date-days", type=int, default=0, show_default=True, help="Allowed date difference in days")
@click.option("--skip-number", is_flag=True, help="Do not compare document numbers")
@click.option("--skip-amount", is_flag=True, help="Do not compare taxable values")
@click.option("--skip-date", is_flag=True, help="Do not compare dates")
@click.option("--description", help="Optional description")
@click.pass_context
def add_rule(
    ctx,
    code: str,
    name: str,
    priority: int,
    confidence: int,
    company: str | None,
    number_threshold: int,
    amount_percent: str,
    amount_absolute: str,
    date_days: int,
    skip_number: bool,
    skip_amount: bool,
    skip_date: bool,
    description: str | None,
):
    """Add a matching rule.

    Examples:
        gstrecon rule add NEAR --name "Near match" --priority 25 --confidence 85 \\
            --number-threshold 1 --amount-percent 0.5 --date-days 5
    """
    service = RuleService(ctx.obj["db"])
    try:
        rule_id = service.create_rule(
            code=code,
            name=name,
            priority=priority,
            confidence_score=confidence,
            company_id=_scope(ctx, company),
            match_document_number=not skip_number,
            match_amount=not skip_amount,
            match_date=not skip_date,
            number_fuzzy_threshold=number_threshold,
            amount_tolerance_percent=Decimal(amount_percent),
            amount_tolerance_absolute=Decimal(amount_absolute),
            date_tolerance_days=date_days,
            description=description,
        )
        click.echo(f"Created rule {code.upper()} (ID: {rule_id})")
    except ArithmeticError:
        click.echo("Error: Amount tolerances must be numbers", err=True)
        ctx.exit(1)
    except DomainError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@rule_group.command("seed")
@click.option("--company", help="Company name, GSTIN or ID (global rules if omitted)")
@click.pass_context
def seed_rules(ctx, company: str | None):
    """Create the default rule set (EXACT, FUZZY_NUMBER, AMOUNT_TOLERANCE, LOOSE)."""
    service = RuleService(ctx.obj["db"])
    created = service.seed_default_rules(_scope(ctx, company))
    if created:
        click.echo(f"Created {len(created)} default rule{'s' if len(created) != 1 else ''}")
    else:
        click.echo("Default rules already exist.")


def _set_active(ctx, rule_id: int, is_active: bool) -> None:
    service = RuleService(ctx.obj["db"])
    try:
        service.set_rule_active(rule_id, is_active)
        click.echo(f"Rule {rule_id} {'enabled' if is_active else 'disabled'}")
    except DomainError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@rule_group.command("enable")
@click.argument("rule_id", type=int)
@click.pass_context
def enable_rule(ctx, rule_id: int):
    """Enable a rule."""
    _set_active(ctx, rule_id, True)


@rule_group.command("disable")
@click.argument("rule_id", type=int)
@click.pass_context
def disable_rule(ctx, rule_id: int):
    """Disable a rule."""
    _set_active(ctx, rule_id, False)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
