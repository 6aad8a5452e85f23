"""CLI commands for the Order aggregate."""

from __future__ import annotations

from datetime import timedelta

import click

from mediastore.application.dto import OrderDTO
from mediastore.application.place_order import PlaceOrderHandler
from mediastore.application.settle_payment import SettlePaymentHandler
from mediastore.application.show_order import ShowOrderHandler
from mediastore.domain.exceptions import DomainException
from mediastore.domain.model.actor import Actor
from mediastore.domain.model.order import OrderStatus
from mediastore.infrastructure.bootstrap import Container
from mediastore.infrastructure.cli.params import ACTOR, ORDER_STATUS, parse_items


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    click.echo(f"Order #{dto.id}  (status={dto.status})")
    click.echo(f"Customer: {dto.customer_id}")
    click.echo(f"Created:  {dto.created_at}")
    if dto.reservation_id:
        click.echo(f"Reservation: {dto.reservation_id}")
    click.echo()
    click.echo(f"  {'Product':<20} {'Qty':>5} {'Price':>18} {'Total':>18}")
    click.echo(f"  {'-'*63}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<20} {item.quantity:>5} {item.unit_price:>18} {item.line_total:>18}"
        )
    click.echo(f"  {'-'*63}")
    click.echo(f"  {'Order Total':<27} {dto.total:>36}")


@click.command("place")
@click.option("--customer", required=True, help="Customer ID.")
@click.option("--items", required=True, help="Items as 'ProductId:Qty,ProductId:Qty'.")
@click.pass_obj
def order_place(container: Container, customer: str, items: str) -> None:
    """Check out a cart and submit the order for approval."""
    specs = parse_items(items)
    handler = PlaceOrderHandler(
        order_repo=container.order_repo,
        product_repo=container.product_repo,
        stock_validation=container.stock_validation,
        state_machine=container.state_machine,
    )

    try:
        result = handler.handle(customer_id=customer, item_specs=specs)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if result.order is None:
        click.echo(result.message)
        for line in result.product_messages:
            click.echo(f"  - {line}")
        for product_id, action in result.suggested_actions.items():
            click.echo(f"  {product_id}: {action}")
        raise click.ClickException("Order not placed")

    _display_order(result.order)


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.pass_obj
def order_show(container: Container, order_id: int) -> None:
    """Show details of an existing order."""
    handler = ShowOrderHandler(container.order_repo, container.state_machine)

    try:
        dto = handler.handle(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_order(dto)


@click.command("submit")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--as", "actor", required=True, type=ACTOR, help="Who submits, e.g. customer:c1.")
@click.pass_obj
def order_submit(container: Container, order_id: int, actor: Actor) -> None:
    """Submit a created order for approval."""
    try:
        result = container.state_machine.submit_for_approval(order_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(result.message)


@click.command("approve")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--as", "actor", required=True, type=ACTOR, help="Approving manager, e.g. manager:pm1.")
@click.option("--notes", default="", help="Approval notes.")
@click.pass_obj
def order_approve(container: Container, order_id: int, actor: Actor, notes: str) -> None:
    """Approve a pending order, reserving its stock."""
    try:
        result = container.state_machine.approve_order(order_id, actor, notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    for warning in result.warnings:
        click.echo(f"Warning: {warning}")
    if not result.approved:
        raise click.ClickException(result.message)
    click.echo(f"Order #{order_id} approved (reservation {result.reservation_id})")


@click.command("reject")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--as", "actor", required=True, type=ACTOR, help="Rejecting manager.")
@click.option("--reason", required=True, help="Why the order is rejected.")
@click.option("--notes", default="", help="Additional notes.")
@click.pass_obj
def order_reject(
    container: Container, order_id: int, actor: Actor, reason: str, notes: str
) -> None:
    """Reject a pending order."""
    try:
        container.state_machine.reject_order(order_id, actor, reason, notes)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Order #{order_id} rejected: {reason}")


@click.command("transition")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--to", "to_status", required=True, type=ORDER_STATUS, help="Target status.")
@click.option("--as", "actor", required=True, type=ACTOR, help="Who performs the change.")
@click.option("--reason", default="", help="Reason for the change.")
@click.option("--notes", default="", help="Additional notes.")
@click.pass_obj
def order_transition(
    container: Container,
    order_id: int,
    to_status: str,
    actor: Actor,
    reason: str,
    notes: str,
) -> None:
    """Move an order to another status (ship, deliver, cancel, ...)."""
    try:
        result = container.state_machine.transition_order_state(
            order_id, OrderStatus(to_status.upper()), actor, reason, notes
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not result.success:
        raise click.ClickException(result.message)
    click.echo(result.message)


@click.command("pay")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--failed", is_flag=True, default=False, help="Report a failed payment.")
@click.option("--reference", default="", help="Payment gateway reference.")
@click.pass_obj
def order_pay(container: Container, order_id: int, failed: bool, reference: str) -> None:
    """Report the payment outcome for an approved order."""
    handler = SettlePaymentHandler(
        order_repo=container.order_repo,
        ledger=container.ledger,
        state_machine=container.state_machine,
    )

    try:
        dto = handler.handle(order_id, succeeded=not failed, reference=reference)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if failed:
        click.echo(f"Payment failed; order #{order_id} is {dto.status}")
    else:
        click.echo(f"Payment settled; stock committed for order #{order_id}")


@click.command("history")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.pass_obj
def order_history(container: Container, order_id: int) -> None:
    """Show every recorded transition attempt for an order."""
    handler = ShowOrderHandler(container.order_repo, container.state_machine)

    try:
        records = handler.history(order_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    for r in records:
        outcome = "ok" if r.success else "FAILED"
        click.echo(
            f"{r.timestamp}  {r.from_status:>18} -> {r.to_status:<18} "
            f"{outcome:<6} by {r.performed_by}  {r.reason}"
        )


@click.command("next-states")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--as", "actor", required=True, type=ACTOR, help="Who would act.")
@click.pass_obj
def order_next_states(container: Container, order_id: int, actor: Actor) -> None:
    """List the statuses this actor may move the order to."""
    try:
        states = container.state_machine.get_valid_next_states(order_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if not states:
        click.echo("No transitions available.")
    for status, description in states.items():
        click.echo(f"{status.value:<20} {description}")


@click.command("pending")
@click.pass_obj
def order_pending(container: Container) -> None:
    """List orders waiting for manager approval."""
    handler = ShowOrderHandler(container.order_repo, container.state_machine)
    orders = handler.pending()

    if not orders:
        click.echo("No orders pending approval.")
        return
    for dto in orders:
        click.echo(f"#{dto.id:<6} {dto.customer_id:<16} {dto.total:>20}  {dto.created_at}")


@click.command("stats")
@click.option("--days", default=1, type=int, show_default=True, help="Look-back window in days.")
@click.pass_obj
def order_stats(container: Container, days: int) -> None:
    """Summarize recorded transitions over the last N days."""
    end = container.clock.now() + timedelta(seconds=1)
    stats = container.state_machine.get_transition_statistics(end - timedelta(days=days), end)

    click.echo(f"Transitions: {stats.total_transitions}  (failed attempts: {stats.failed_attempts})")
    click.echo(f"Approvals:   {stats.approvals}")
    click.echo(f"Rejections:  {stats.rejections}")
    for edge, count in sorted(stats.transition_counts.items()):
        click.echo(f"  {edge:<40} {count:>5}")
