"""Company management commands."""

import click
from gstrecon.domain.companies import CompanyService
from gstrecon.domain.errors import DomainError


@click.group()
def company_group():
    """Manage companies."""
    pass


@company_group.command("add")
@click.argument("name", metavar="COMPANY_NAME")
@click.option("--gstin", help="Company's own GSTIN (checked against imported statements)")
@click.pass_context
def add_company(ctx, name: str, gstin: str | None):
    """Add a company.

    Examples:
        gstrecon company add "Acme Traders" --gstin 29AABCA1234F1Z5
        gstrecon company add "Branch Office"
    """
    service = CompanyService(ctx.obj["db"])

    try:
        company_id = service.create_company(name=name, gstin=gstin)
        click.echo(f"Created company '{name}' (ID: {company_id})")
    except DomainError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)


@company_group.command("list")
@click.pass_context
def list_companies(ctx):
    """List all companies."""
    service = CompanyService(ctx.obj["db"])

    companies = service.list_companies()
    if not companies:
        click.echo("No companies found.")
        return

    click.echo("\nCompanies:")
    click.echo("-" * 60)
    for comp in companies:
        click.echo(f"ID: {comp.id:3d} | {comp.name:25s} | GSTIN: {comp.gstin or '-'}")


def register_commands(cli):
    """Register company commands with main CLI."""
    cli.add_command(company_group, name="company")
