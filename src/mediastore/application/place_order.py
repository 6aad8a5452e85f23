"""Application service: Place Order (checkout) use case.

Checks the cart against available stock before anything is written. A cart
that cannot be fulfilled produces a notification with per-product
suggestions and no order. A good cart becomes an order with price
snapshots, submitted for product-manager approval on the customer's behalf.
Stock is only reserved later, when a manager approves.
"""

from __future__ import annotations

from uuid import uuid4

import structlog

from mediastore.application.dto import CheckoutItemSpec, PlaceOrderResult, order_to_dto
from mediastore.domain.exceptions import EntityNotFoundError
from mediastore.domain.model.actor import Actor
from mediastore.domain.model.cart import Cart, CartItem
from mediastore.domain.model.order import Order, OrderLineItem
from mediastore.domain.model.value_objects import Quantity
from mediastore.domain.repository.order_repository import OrderRepository
from mediastore.domain.repository.product_repository import ProductRepository
from mediastore.domain.service.order_state_machine import OrderStateMachine
from mediastore.domain.service.stock_validation_service import StockValidationService

logger = structlog.get_logger(__name__)


class PlaceOrderHandler:

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        stock_validation: StockValidationService,
        state_machine: OrderStateMachine,
    ) -> None:
        self._order_repo = order_repo
        self._product_repo = product_repo
        self._stock = stock_validation
        self._state_machine = state_machine

    def handle(
        self,
        customer_id: str,
        item_specs: list[CheckoutItemSpec],
        cart_id: str | None = None,
    ) -> PlaceOrderResult:
        """Validate the cart, then create and submit the order.

        Steps:
        1. Validate every line against available stock.
        2. On any shortfall, return the notification and stop.
        3. Build line items with *current* prices (snapshot).
        4. Persist the order and submit it for approval.
        """
        cart = Cart(
            cart_id=cart_id or f"cart-{uuid4().hex[:8]}",
            items=[CartItem(spec.product_id, spec.quantity) for spec in item_specs],
        )
        log = logger.bind(customer_id=customer_id, cart_id=cart.cart_id)

        validation = self._stock.validate_cart_stock(cart)
        if not validation.is_valid:
            notification = self._stock.generate_insufficient_stock_notification(
                validation.bulk
            )
            log.info("checkout.blocked", failed=len(validation.bulk.failures))
            return PlaceOrderResult(
                order=None,
                message=notification.message,
                product_messages=notification.product_messages,
                suggested_actions=notification.suggested_actions,
            )

        line_items: list[OrderLineItem] = []
        for spec in item_specs:
            product = self._product_repo.get_by_id(spec.product_id)
            if product is None:
                raise EntityNotFoundError(f"Product with ID '{spec.product_id}' not found")
            line_items.append(
                OrderLineItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=Quantity(spec.quantity),
                    unit_price=product.price,  # <-- price snapshot
                )
            )

        order = Order.create(customer_id=customer_id, items=line_items)
        self._order_repo.save(order)
        self._state_machine.submit_for_approval(
            order.id, Actor.customer(order.customer_id)  # type: ignore[arg-type]
        )

        placed = self._order_repo.get_by_id(order.id)  # type: ignore[arg-type]
        log.info("checkout.order_placed", order_id=order.id, total=str(order.total))
        return PlaceOrderResult(
            order=order_to_dto(placed or order),
            message=validation.message,
        )
