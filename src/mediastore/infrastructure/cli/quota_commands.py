"""CLI commands for product-manager quotas and edit sessions."""

from __future__ import annotations

import click

from mediastore.domain.exceptions import DomainException
from mediastore.infrastructure.bootstrap import Container


@click.command("status")
@click.option("--manager", required=True, help="Product manager ID.")
@click.pass_obj
def quota_status(container: Container, manager: str) -> None:
    """Show today's operation counts for a manager."""
    status = container.quotas.get_quota_status(manager)

    click.echo(f"Manager {status.manager_id} on {status.day.isoformat()}")
    click.echo(
        f"  Edit/delete operations: {status.operations_used}/{status.daily_limit} "
        f"(remaining {status.operations_remaining})"
    )
    click.echo(f"  Additions: {status.additions}")
    click.echo(f"  Edits: {status.edits}  Deletions: {status.deletions}")
    click.echo(f"  Price updates: {status.price_updates}")
    for product_id, count in sorted(status.price_updates_by_product.items()):
        click.echo(f"    {product_id}: {count} (remaining {status.price_updates_remaining(product_id)})")
    if status.has_active_edit_session:
        click.echo(f"  Editing product {status.active_edit_product_id}")


@click.command("start-session")
@click.option("--manager", required=True, help="Product manager ID.")
@click.option("--product", "product_id", required=True, help="Product to edit.")
@click.pass_obj
def quota_start_session(container: Container, manager: str, product_id: str) -> None:
    """Open the manager's single edit session."""
    try:
        session = container.quotas.start_edit_session(manager, product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Edit session for product {product_id} open until "
        f"{session.expires_at.strftime('%Y-%m-%d %H:%M UTC')}"
    )


@click.command("end-session")
@click.option("--manager", required=True, help="Product manager ID.")
@click.option("--product", "product_id", default=None, help="Product being edited.")
@click.pass_obj
def quota_end_session(container: Container, manager: str, product_id: str | None) -> None:
    """Close the manager's edit session."""
    try:
        container.quotas.end_edit_session(manager, product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Edit session for {manager} closed")
