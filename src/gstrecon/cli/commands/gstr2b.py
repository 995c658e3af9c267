"""GSTR-2B import and reconciliation commands."""

from pathlib import Path

import click
from gstrecon.cli.company_resolution import resolve_company_or_exit
from gstrecon.cli.error_handling import unwrap_or_exit
from gstrecon.config import parse_match_strategy
from gstrecon.domain.entities import DocumentType, ImportStatus, MatchStatus, SupplySection
from gstrecon.domain.errors import DomainError
from gstrecon.domain.reconciliation import ReconciliationService


def _service(ctx) -> ReconciliationService:
    return ReconciliationService(ctx.obj["db"], ctx.obj.get("settings"))


def _echo_import(gstr_import) -> None:
    click.echo(f"Import ID:      {gstr_import.id}")
    click.echo(f"Return period:  {gstr_import.return_period}")
    click.echo(f"GSTIN:          {gstr_import.gstin or '-'}")
    click.echo(f"File:           {gstr_import.file_name or '-'}")
    click.echo(f"Status:         {gstr_import.status.value}")
    if gstr_import.error_message:
        click.echo(f"Error:          {gstr_import.error_message}")
    click.echo(f"Records:        {gstr_import.total_records}")
    click.echo(
        f"  matched {gstr_import.matched_records}, partial {gstr_import.partially_matched_records}, "
        f"unmatched {gstr_import.unmatched_records}"
    )
    click.echo(f"ITC available:  {gstr_import.total_itc_amount:,.2f}")
    click.echo(f"ITC matched:    {gstr_import.matched_itc_amount:,.2f}")


def _echo_summary(summary) -> None:
    click.echo(f"\nReconciliation summary for {summary.return_period}:")
    click.echo("-" * 50)
    click.echo(f"  Total records:      {summary.total_records}")
    click.echo(f"  Matched:            {summary.matched_records}")
    click.echo(f"  Partial match:      {summary.partial_match_records}")
    click.echo(f"  Unmatched:          {summary.unmatched_records}")
    click.echo(f"  Not yet reconciled: {summary.pending_records}")
    click.echo(f"  Accepted:           {summary.accepted_records}")
    click.echo(f"  Rejected:           {summary.rejected_records}")
    click.echo(f"  Pending review:     {summary.pending_review_records}")
    click.echo(f"  Match rate:         {summary.match_percentage}%")
    click.echo(f"  Taxable value:      {summary.total_taxable_value:,.2f}")
    click.echo(f"    matched:          {summary.matched_taxable_value:,.2f}")
    click.echo(f"    unmatched:        {summary.unmatched_taxable_value:,.2f}")
    click.echo(f"  ITC available:      {summary.total_itc_available:,.2f}")
    click.echo(f"    matched:          {summary.matched_itc:,.2f}")
    click.echo(f"    unmatched:        {summary.unmatched_itc:,.2f}")


def _echo_records(records) -> None:
    click.echo(
        f"\n{'ID':>5} | {'Supplier GSTIN':15s} | {'Number':16s} | {'Date':10s} | "
        f"{'Taxable':>12s} | {'ITC':>10s} | {'Match':13s} | {'Conf':>4s} | Action"
    )
    click.echo("-" * 110)
    for rec in records:
        action = rec.action_status.value if rec.action_status else "-"
        click.echo(
            f"{rec.id:5d} | {rec.supplier_gstin:15s} | {rec.document_number[:16]:16s} | "
            f"{rec.document_date.isoformat()} | {rec.taxable_value:12,.2f} | {rec.total_itc:10,.2f} | "
            f"{rec.match_status.value:13s} | {rec.match_confidence:4d} | {action}"
        )
        for discrepancy in rec.discrepancies:
            click.echo(f"{'':7s}! {discrepancy}")


@click.group()
def gstr2b_group():
    """Import and reconcile GSTR-2B statements."""
    pass


@gstr2b_group.command("import")
@click.argument("json_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option("--period", required=True, help="Return period (e.g. May-2024, 052024, 2024-05)")
@click.option("--actor", help="Name recorded as the importer")
@click.pass_context
def import_statement(ctx, json_file: str, company: str, period: str, actor: str | None):
    """Import a GSTR-2B JSON file downloaded from the GST portal.

    Importing the same file twice for the same company and period is refused.

    Examples:
        gstrecon gstr2b import GSTR2B_052024.json --company Acme --period May-2024
    """
    company_id = resolve_company_or_exit(ctx, ctx.obj["db"], company)
    path = Path(json_file)
    result = _service(ctx).import_document(
        company_id, period, path.read_bytes(), file_name=path.name, actor=actor
    )
    gstr_import = unwrap_or_exit(ctx, result)

    click.echo("\nImport complete:")
    _echo_import(gstr_import)


@gstr2b_group.command("list")
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option(
    "--status",
    type=click.Choice([s.value for s in ImportStatus]),
    help="Only imports in this status",
)
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=12, show_default=True)
@click.pass_context
def list_imports(ctx, company: str, status: str | None, page: int, page_size: int):
    """List imported statements, newest period first."""
    company_id = resolve_company_or_exit(ctx, ctx.obj["db"], company)
    result = _service(ctx).list_imports(
        company_id, page=page, page_size=page_size, status=ImportStatus(status) if status else None
    )
    listing = unwrap_or_exit(ctx, result)
    if not listing.items:
        click.echo("No GSTR-2B imports found.")
        return

    click.echo(f"\n{'ID':>4} | {'Period':8s} | {'Status':10s} | {'Records':>7s} | {'Matched':>7s} | {'ITC':>14s} | File")
    click.echo("-" * 90)
    for imp in listing.items:
        click.echo(
            f"{imp.id:4d} | {imp.return_period:8s} | {imp.status.value:10s} | {imp.total_records:7d} | "
            f"{imp.matched_records:7d} | {imp.total_itc_amount:14,.2f} | {imp.file_name or '-'}"
        )
    click.echo(f"\nShowing page {listing.page} ({len(listing.items)} of {listing.total_count} imports)")


@gstr2b_group.command("show")
@click.argument("import_id", type=int)
@click.pass_context
def show_import(ctx, import_id: int):
    """Show one import."""
    gstr_import = unwrap_or_exit(ctx, _service(ctx).get_import(import_id))
    _echo_import(gstr_import)


@gstr2b_group.command("delete")
@click.argument("import_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_import(ctx, import_id: int, yes: bool):
    """Delete an import and all of its records."""
    service = _service(ctx)
    gstr_import = unwrap_or_exit(ctx, service.get_import(import_id))

    if not yes and not click.confirm(
        f"Delete import {import_id} ({gstr_import.return_period}, {gstr_import.total_records} records)?"
    ):
        click.echo("Deletion cancelled.")
        return

    unwrap_or_exit(ctx, service.delete_import(import_id))
    click.echo(f"Deleted import {import_id}")


@gstr2b_group.command("reconcile")
@click.argument("import_id", type=int)
@click.option("--force", is_flag=True, help="Re-match records that already have a match status")
@click.option(
    "--strategy",
    type=click.Choice(["first_match", "best_score"]),
    help="Override GSTRECON_MATCH_STRATEGY",
)
@click.pass_context
def reconcile(ctx, import_id: int, force: bool, strategy: str | None):
    """Match an import's records against vendor invoices."""
    try:
        match_strategy = parse_match_strategy(strategy) if strategy else None
    except DomainError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    result = _service(ctx).run_reconciliation(import_id, force=force, strategy=match_strategy)
    _echo_summary(unwrap_or_exit(ctx, result))


@gstr2b_group.command("summary")
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option("--period", required=True, help="Return period")
@click.pass_context
def summary(ctx, company: str, period: str):
    """Show reconciliation counts and values for a return period."""
    company_id = resolve_company_or_exit(ctx, ctx.obj["db"], company)
    result = _service(ctx).get_reconciliation_summary(company_id, period)
    _echo_summary(unwrap_or_exit(ctx, result))


@gstr2b_group.command("suppliers")
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option("--period", required=True, help="Return period")
@click.pass_context
def suppliers(ctx, company: str, period: str):
    """Show reconciliation per supplier."""
    company_id = resolve_company_or_exit(ctx, ctx.obj["db"], company)
    rows = unwrap_or_exit(ctx, _service(ctx).get_supplier_summary(company_id, period))
    if not rows:
        click.echo("No reconciled records for this period.")
        return

    click.echo(
        f"\n{'Supplier GSTIN':15s} | {'Name':24s} | {'Docs':>4s} | {'Match':>5s} | {'Part':>4s} | "
        f"{'Unm':>4s} | {'Taxable':>14s} | {'ITC':>12s} | {'Rate':>7s}"
    )
    click.echo("-" * 110)
    for row in rows:
        click.echo(
            f"{row.supplier_gstin:15s} | {(row.supplier_name or '-')[:24]:24s} | {row.record_count:4d} | "
            f"{row.matched_count:5d} | {row.partial_count:4d} | {row.unmatched_count:4d} | "
            f"{row.total_taxable_value:14,.2f} | {row.total_itc:12,.2f} | {row.match_percentage:6.2f}%"
        )


@gstr2b_group.command("itc")
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option("--period", required=True, help="Return period")
@click.pass_context
def itc(ctx, company: str, period: str):
    """Compare ITC as per GSTR-2B with ITC as per books."""
    company_id = resolve_company_or_exit(ctx, ctx.obj["db"], company)
    comparison = unwrap_or_exit(ctx, _service(ctx).get_itc_comparison(company_id, period))

    click.echo(f"\nITC comparison for {comparison.return_period}:")
    click.echo(f"{'':8s} | {'GSTR-2B':>14s} | {'Books':>14s} | {'Difference':>14s}")
    click.echo("-" * 60)
    rows = (
        ("IGST", "igst"),
        ("CGST", "cgst"),
        ("SGST", "sgst"),
        ("Cess", "cess"),
    )
    for label, attr in rows:
        click.echo(
            f"{label:8s} | {getattr(comparison.statement, attr):14,.2f} | "
            f"{getattr(comparison.books, attr):14,.2f} | {getattr(comparison.difference, attr):14,.2f}"
        )
    click.echo(
        f"{'Total':8s} | {comparison.statement.total:14,.2f} | {comparison.books.total:14,.2f} | "
        f"{comparison.difference.total:14,.2f}"
    )


@gstr2b_group.command("records")
@click.argument("import_id", type=int)
@click.option("--status", type=click.Choice([s.value for s in MatchStatus]), help="Match status")
@click.option("--type", "document_type", type=click.Choice([t.value for t in DocumentType]), help="Document type")
@click.option("--section", type=click.Choice([s.value for s in SupplySection], case_sensitive=False), help="GSTR-2B section")
@click.option("--search", help="Text in supplier GSTIN, supplier name or document number")
@click.option("--page", type=int, default=1, show_default=True)
@click.option("--page-size", type=int, default=50, show_default=True)
@click.pass_context
def records(
    ctx,
    import_id: int,
    status: str | None,
    document_type: str | None,
    section: str | None,
    search: str | None,
    page: int,
    page_size: int,
):
    """List an import's records."""
    result = _service(ctx).list_records(
        import_id,
        page=page,
        page_size=page_size,
        match_status=MatchStatus(status) if status else None,
        document_type=DocumentType(document_type) if document_type else None,
        section=SupplySection(section.upper()) if section else None,
        search=search,
    )
    listing = unwrap_or_exit(ctx, result)
    if not listing.items:
        click.echo("No records found.")
        return

    _echo_records(listing.items)
    click.echo(f"\nShowing page {listing.page} ({len(listing.items)} of {listing.total_count} records)")


@gstr2b_group.command("unmatched")
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option("--period", required=True, help="Return period")
@click.pass_context
def unmatched(ctx, company: str, period: str):
    """List records that are unmatched or only partially matched."""
    company_id = resolve_company_or_exit(ctx, ctx.obj["db"], company)
    rows = unwrap_or_exit(ctx, _service(ctx).get_unmatched_records(company_id, period))
    if not rows:
        click.echo("No unmatched records.")
        return
    _echo_records(rows)


def register_commands(cli):
    """Register GSTR-2B commands with main CLI."""
    cli.add_command(gstr2b_group, name="gstr2b")
