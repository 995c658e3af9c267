"""CLI error handling helpers."""

from typing import TypeVar

import click

from gstrecon.domain.errors import DomainError
from gstrecon.domain.result import Result

T = TypeVar("T")


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def unwrap_or_exit(ctx: click.Context, result: Result[T]) -> T:
    """Return a successful result's value, or render its error and exit."""
    if not result.ok:
        handle_domain_error(ctx, result.error)
    return result.value
