"""CLI commands for product managers working on the catalog."""

from __future__ import annotations

import click

from mediastore.application.add_product import AddProductHandler
from mediastore.application.delete_products import DeleteProductsHandler
from mediastore.application.edit_product import EditProductHandler
from mediastore.application.update_product_price import UpdateProductPriceHandler
from mediastore.domain.exceptions import DomainException
from mediastore.infrastructure.bootstrap import Container
from mediastore.infrastructure.cli.params import parse_ids


@click.command("list")
@click.pass_obj
def product_list(container: Container) -> None:
    """List all products."""
    products = sorted(container.product_repo.list_all(), key=lambda p: p.id)

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<8} {'Name':<24} {'Price':>20} {'Value':>20} {'Stock':>7}")
    click.echo("-" * 83)
    for p in products:
        click.echo(f"{p.id:<8} {p.name:<24} {str(p.price):>20} {str(p.value):>20} {p.stock:>7}")


@click.command("add")
@click.option("--manager", required=True, help="Product manager ID.")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Selling price, e.g. 150000.")
@click.option("--value", required=True, help="Base value the price is bounded by.")
@click.option("--stock", default=0, type=int, show_default=True, help="Opening stock.")
@click.option("--id", "product_id", default=None, help="Product ID (auto-assigned if omitted).")
@click.pass_obj
def product_add(
    container: Container,
    manager: str,
    name: str,
    price: str,
    value: str,
    stock: int,
    product_id: str | None,
) -> None:
    """Add a new product to the catalog."""
    handler = AddProductHandler(container.product_repo, container.quotas, container.locks)

    try:
        product = handler.handle(manager, name, price, value, stock, product_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product '{product.name}' added (id={product.id}, price={product.price})")


@click.command("edit")
@click.option("--manager", required=True, help="Product manager ID.")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--name", default=None, help="New product name.")
@click.option("--stock", default=None, type=int, help="New actual stock level.")
@click.pass_obj
def product_edit(
    container: Container,
    manager: str,
    product_id: str,
    name: str | None,
    stock: int | None,
) -> None:
    """Edit a product's name and/or stock (counts toward the daily limit)."""
    handler = EditProductHandler(
        container.product_repo, container.ledger, container.quotas, container.notifier
    )

    try:
        product = handler.handle(manager, product_id, name=name, stock=stock)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product {product.id} updated: name='{product.name}', stock={product.stock}")


@click.command("price")
@click.option("--manager", required=True, help="Product manager ID.")
@click.option("--id", "product_id", required=True, help="Product ID.")
@click.option("--price", required=True, help="New selling price.")
@click.pass_obj
def product_price(container: Container, manager: str, product_id: str, price: str) -> None:
    """Update a product's price (30%-150% of value, twice a day at most)."""
    handler = UpdateProductPriceHandler(
        container.product_repo,
        container.ledger,
        container.quotas,
        container.price_service,
        container.notifier,
    )

    try:
        product = handler.handle(manager, product_id, price)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Product {product.id} price updated to {product.price}")


@click.command("delete")
@click.option("--manager", required=True, help="Product manager ID.")
@click.option("--ids", required=True, help="Comma-separated product IDs (max 10).")
@click.pass_obj
def product_delete(container: Container, manager: str, ids: str) -> None:
    """Delete one or more products."""
    handler = DeleteProductsHandler(
        container.product_repo, container.ledger, container.quotas, container.notifier
    )

    try:
        deleted = handler.handle(manager, parse_ids(ids))
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Deleted {deleted} product(s)")
