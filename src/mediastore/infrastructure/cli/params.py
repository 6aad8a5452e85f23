"""Shared click parameter types and parsing helpers."""

from __future__ import annotations

import click

from mediastore.application.dto import CheckoutItemSpec
from mediastore.domain.exceptions import ValidationError
from mediastore.domain.model.actor import Actor
from mediastore.domain.model.order import OrderStatus


class ActorParamType(click.ParamType):
    """``customer:<id>``, ``manager:<id>`` or ``system:<id>``."""

    name = "actor"

    def convert(self, value, param, ctx) -> Actor:
        if isinstance(value, Actor):
            return value
        try:
            return Actor.parse(value)
        except ValidationError as exc:
            self.fail(str(exc), param, ctx)


ACTOR = ActorParamType()

ORDER_STATUS = click.Choice([s.value for s in OrderStatus], case_sensitive=False)


def parse_items(raw: str) -> list[CheckoutItemSpec]:
    """Parse 'P1:3,P2:5' into a CheckoutItemSpec list."""
    specs: list[CheckoutItemSpec] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId:Quantity'."
            )
        product_id, qty_str = pair.rsplit(":", 1)
        try:
            qty = int(qty_str)
        except ValueError:
            raise click.BadParameter(
                f"Invalid quantity '{qty_str}' for product '{product_id}'."
            )
        specs.append(CheckoutItemSpec(product_id=product_id.strip(), quantity=qty))
    return specs


def parse_ids(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]
