from __future__ import annotations

from pathlib import Path

import click

from mediastore.infrastructure.bootstrap import build_container
from mediastore.infrastructure.cli.order_commands import (
    order_approve,
    order_history,
    order_next_states,
    order_pay,
    order_pending,
    order_place,
    order_reject,
    order_show,
    order_stats,
    order_submit,
    order_transition,
)
from mediastore.infrastructure.cli.product_commands import (
    product_add,
    product_delete,
    product_edit,
    product_list,
    product_price,
)
from mediastore.infrastructure.cli.quota_commands import (
    quota_end_session,
    quota_start_session,
    quota_status,
)
from mediastore.infrastructure.cli.stock_commands import (
    stock_confirm,
    stock_release,
    stock_reserve,
    stock_set,
    stock_show,
    stock_sweep,
)
from mediastore.infrastructure.config import get_settings
from mediastore.infrastructure.logging_config import configure_logging


@click.group()
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the JSON data files.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override MEDIASTORE_LOG_LEVEL.",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: Path | None, log_level: str | None) -> None:
    """Media store order fulfillment."""
    overrides: dict = {}
    if data_dir is not None:
        overrides["data_dir"] = data_dir
    if log_level is not None:
        overrides["log_level"] = log_level.upper()
    settings = get_settings()
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(settings.log_level, settings.json_logs)
    ctx.obj = build_container(settings)


@cli.group()
def stock() -> None:
    """Manage stock and reservations."""


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def quota() -> None:
    """Inspect manager quotas and edit sessions."""


# Register subcommands
stock.add_command(stock_confirm)
stock.add_command(stock_release)
stock.add_command(stock_reserve)
stock.add_command(stock_set)
stock.add_command(stock_show)
stock.add_command(stock_sweep)
order.add_command(order_approve)
order.add_command(order_history)
order.add_command(order_next_states)
order.add_command(order_pay)
order.add_command(order_pending)
order.add_command(order_place)
order.add_command(order_reject)
order.add_command(order_show)
order.add_command(order_stats)
order.add_command(order_submit)
order.add_command(order_transition)
product.add_command(product_add)
product.add_command(product_delete)
product.add_command(product_edit)
product.add_command(product_list)
product.add_command(product_price)
quota.add_command(quota_end_session)
quota.add_command(quota_start_session)
quota.add_command(quota_status)
