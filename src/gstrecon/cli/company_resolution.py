"""CLI helpers for company resolution."""

from __future__ import annotations

import click
from gstrecon.domain.companies import CompanyService
from gstrecon.utils.company_resolver import resolve_company


def resolve_company_or_exit(ctx: click.Context, db, company: str | int) -> int:
    """Resolve company name, GSTIN or ID, or exit with a CLI error."""
    try:
        return resolve_company(CompanyService(db), company)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)
