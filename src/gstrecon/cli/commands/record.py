"""Review actions on individual GSTR-2B records."""

import click
from gstrecon.cli.error_handling import unwrap_or_exit
from gstrecon.domain.actions import ActionService


def _echo_state(record) -> None:
    action = record.action_status.value if record.action_status else "none"
    click.echo(f"  Match status:  {record.match_status.value} (confidence {record.match_confidence})")
    if record.matched_invoice_id is not None:
        click.echo(f"  Invoice:       {record.matched_invoice_id}")
    click.echo(f"  Action:        {action}")
    for discrepancy in record.discrepancies:
        click.echo(f"  ! {discrepancy}")


@click.group()
def record_group():
    """Accept, reject or manually match records."""
    pass


@record_group.command("accept")
@click.argument("record_id", type=int)
@click.option("--actor", help="Who is accepting")
@click.option("--notes", help="Notes")
@click.pass_context
def accept(ctx, record_id: int, actor: str | None, notes: str | None):
    """Accept a record as correct, whatever its match status."""
    record = unwrap_or_exit(ctx, ActionService(ctx.obj["db"]).accept_mismatch(record_id, actor, notes))
    click.echo(f"Accepted record {record_id}")
    _echo_state(record)


@record_group.command("reject")
@click.argument("record_id", type=int)
@click.option("--reason", required=True, help="Why the record is disputed")
@click.option("--actor", help="Who is rejecting")
@click.pass_context
def reject(ctx, record_id: int, reason: str, actor: str | None):
    """Reject (dispute) a record."""
    record = unwrap_or_exit(ctx, ActionService(ctx.obj["db"]).reject_invoice(record_id, actor, reason))
    click.echo(f"Rejected record {record_id}")
    _echo_state(record)


@record_group.command("match")
@click.argument("record_id", type=int)
@click.argument("invoice_id", type=int)
@click.option("--actor", help="Who is matching")
@click.option("--notes", help="Notes")
@click.pass_context
def match(ctx, record_id: int, invoice_id: int, actor: str | None, notes: str | None):
    """Match a record to a vendor invoice by hand."""
    service = ActionService(ctx.obj["db"])
    record = unwrap_or_exit(ctx, service.manual_match(record_id, invoice_id, actor, notes))
    click.echo(f"Matched record {record_id} to invoice {invoice_id}")
    _echo_state(record)


@record_group.command("reset")
@click.argument("record_id", type=int)
@click.pass_context
def reset(ctx, record_id: int):
    """Clear the action on a record (its match is kept)."""
    record = unwrap_or_exit(ctx, ActionService(ctx.obj["db"]).reset_action(record_id))
    click.echo(f"Reset action on record {record_id}")
    _echo_state(record)


def register_commands(cli):
    """Register record commands with main CLI."""
    cli.add_command(record_group, name="record")
