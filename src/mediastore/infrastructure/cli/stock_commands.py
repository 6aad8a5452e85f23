"""CLI commands for stock levels and reservations."""

from __future__ import annotations

import time

import click

from mediastore.application.show_inventory import ShowInventoryHandler
from mediastore.domain.exceptions import DomainException
from mediastore.infrastructure.bootstrap import Container


@click.command("show")
@click.pass_obj
def stock_show(container: Container) -> None:
    """Show actual, reserved and available stock per product."""
    handler = ShowInventoryHandler(container.product_repo, container.stock_validation)
    lines = handler.handle()

    if not lines:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<8} {'Product':<24} {'Actual':>8} {'Reserved':>10} {'Available':>10}")
    click.echo("-" * 64)
    for line in lines:
        flag = "  LOW" if line.low_stock else ""
        click.echo(
            f"{line.product_id:<8} {line.product_name:<24} {line.actual:>8} "
            f"{line.reserved:>10} {line.available:>10}{flag}"
        )


@click.command("set")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=int, help="Actual quantity on hand.")
@click.pass_obj
def stock_set(container: Container, product_id: str, quantity: int) -> None:
    """Restock or correct a product's actual stock."""
    try:
        product = container.ledger.set_actual_stock(product_id, quantity)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Stock for '{product.name}' set to {product.stock}")


@click.command("reserve")
@click.option("--product", "product_id", required=True, help="Product ID.")
@click.option("--quantity", required=True, type=int, help="Units to hold.")
@click.option("--id", "reservation_id", required=True, help="Reservation ID.")
@click.option("--ttl", "ttl_minutes", type=int, default=None, help="Minutes until expiry.")
@click.pass_obj
def stock_reserve(
    container: Container,
    product_id: str,
    quantity: int,
    reservation_id: str,
    ttl_minutes: int | None,
) -> None:
    """Hold stock for a reservation."""
    try:
        reserved = container.ledger.reserve_stock(
            product_id, quantity, reservation_id, ttl_minutes
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not reserved:
        available = container.ledger.get_available_stock(product_id)
        raise click.ClickException(
            f"Insufficient stock: requested {quantity}, available {available}"
        )
    click.echo(f"Reservation {reservation_id} holds {quantity} of product {product_id}")


@click.command("confirm")
@click.option("--id", "reservation_id", required=True, help="Reservation ID.")
@click.pass_obj
def stock_confirm(container: Container, reservation_id: str) -> None:
    """Commit a reservation, decrementing actual stock."""
    try:
        reservation = container.ledger.confirm_reservation(reservation_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Reservation {reservation_id} confirmed "
        f"({reservation.quantity} of product {reservation.product_id})"
    )


@click.command("release")
@click.option("--id", "reservation_id", required=True, help="Reservation ID.")
@click.pass_obj
def stock_release(container: Container, reservation_id: str) -> None:
    """Release a reservation without touching actual stock."""
    if container.ledger.release_reservation(reservation_id):
        click.echo(f"Reservation {reservation_id} released")
    else:
        click.echo(f"Reservation {reservation_id} was not active; nothing to release")


@click.command("sweep")
@click.option(
    "--follow", is_flag=True,
    help="Keep sweeping in the background until interrupted (Ctrl+C).",
)
@click.pass_obj
def stock_sweep(container: Container, follow: bool) -> None:
    """Mark reservations past their TTL as expired."""
    if follow:
        _follow_sweeper(container)
        return

    try:
        expired = container.sweeper.run_once()
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Expired {expired} reservation(s)")


def _follow_sweeper(container: Container) -> None:
    container.sweeper.start()
    click.echo("Sweeping expired reservations; press Ctrl+C to stop.")
    try:
        while container.sweeper.running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        container.sweeper.stop()
