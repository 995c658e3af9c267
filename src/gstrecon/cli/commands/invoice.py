"""Vendor invoice commands."""

from decimal import Decimal

import click
from gstrecon.cli.company_resolution import resolve_company_or_exit
from gstrecon.domain.companies import InvoiceService
from gstrecon.domain.errors import DomainError
from gstrecon.utils.amount_parser import parse_amount
from gstrecon.utils.date_parser import parse_date


def _amount(ctx, value: str | None, label: str) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


@click.group()
def invoice_group():
    """Record vendor invoices from your books."""
    pass


@invoice_group.command("add")
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option("--supplier-gstin", required=True, help="Supplier's GSTIN")
@click.option("--supplier-name", help="Supplier's name")
@click.option("--number", "invoice_number", required=True, help="Supplier's invoice number")
@click.option("--date", "invoice_date", required=True, help="Invoice date (e.g. 15-05-2024)")
@click.option("--taxable", required=True, help="Taxable value")
@click.option("--igst", help="Integrated tax")
@click.option("--cgst", help="Central tax")
@click.option("--sgst", help="State tax")
@click.option("--cess", help="Cess")
@click.option("--no-itc", is_flag=True, help="Tax on this invoice is not claimable")
@click.pass_context
def add_invoice(
    ctx,
    company: str,
    supplier_gstin: str,
    supplier_name: str | None,
    invoice_number: str,
    invoice_date: str,
    taxable: str,
    igst: str | None,
    cgst: str | None,
    sgst: str | None,
    cess: str | None,
    no_itc: bool,
):
    """Add a vendor invoice.

    Examples:
        gstrecon invoice add --company Acme --supplier-gstin 27AAPFU0939F1ZV \\
            --number INV-001 --date 10-05-2024 --taxable 10000 --igst 1800
    """
    db = ctx.obj["db"]
    company_id = resolve_company_or_exit(ctx, db, company)

    try:
        parsed_date = parse_date(invoice_date)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    service = InvoiceService(db)
    try:
        invoice_id = service.create_invoice(
            company_id=company_id,
            supplier_gstin=supplier_gstin,
            supplier_name=supplier_name,
            invoice_number=invoice_number,
            invoice_date=parsed_date,
            subtotal=_amount(ctx, taxable, "taxable value"),
            igst=_amount(ctx, igst, "IGST"),
            cgst=_amount(ctx, cgst, "CGST"),
            sgst=_amount(ctx, sgst, "SGST"),
            cess=_amount(ctx, cess, "cess"),
            itc_eligible=not no_itc,
        )
        click.echo(f"Created vendor invoice {invoice_number} (ID: {invoice_id})")
    except DomainError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@invoice_group.command("list")
@click.option("--company", required=True, help="Company name, GSTIN or ID")
@click.option("--supplier-gstin", help="Only this supplier")
@click.pass_context
def list_invoices(ctx, company: str, supplier_gstin: str | None):
    """List vendor invoices."""
    db = ctx.obj["db"]
    company_id = resolve_company_or_exit(ctx, db, company)

    invoices = InvoiceService(db).list_invoices(company_id, supplier_gstin=supplier_gstin)
    if not invoices:
        click.echo("No vendor invoices found.")
        return

    click.echo(f"\n{'ID':>4} | {'Date':10s} | {'Supplier GSTIN':15s} | {'Number':16s} | {'Taxable':>12s} | {'Tax':>10s}")
    click.echo("-" * 84)
    for inv in invoices:
        click.echo(
            f"{inv.id:4d} | {inv.invoice_date.isoformat()} | {inv.supplier_gstin:15s} | "
            f"{inv.invoice_number[:16]:16s} | {inv.subtotal:12,.2f} | {inv.total_tax:10,.2f}"
        )


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
