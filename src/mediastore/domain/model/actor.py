"""Who is acting on an order: a customer, a product manager or the system."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mediastore.domain.exceptions import ValidationError


class Role(Enum):
    CUSTOMER = "CUSTOMER"
    PRODUCT_MANAGER = "PRODUCT_MANAGER"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Actor:

    id: str
    role: Role

    def __post_init__(self) -> None:
        if not self.id or not self.id.strip():
            raise ValidationError("Actor id is required")

    @staticmethod
    def customer(customer_id: str) -> Actor:
        return Actor(customer_id, Role.CUSTOMER)

    @staticmethod
    def manager(manager_id: str) -> Actor:
        return Actor(manager_id, Role.PRODUCT_MANAGER)

    @staticmethod
    def system(name: str = "system") -> Actor:
        return Actor(name, Role.SYSTEM)

    @staticmethod
    def parse(raw: str) -> Actor:
        """Parse ``role:id`` as typed on the command line, e.g. ``manager:pm-1``."""
        aliases = {
            "customer": Role.CUSTOMER,
            "manager": Role.PRODUCT_MANAGER,
            "pm": Role.PRODUCT_MANAGER,
            "system": Role.SYSTEM,
        }
        role_name, sep, actor_id = raw.partition(":")
        role = aliases.get(role_name.strip().lower())
        if not sep or role is None:
            raise ValidationError(
                f"Invalid actor '{raw}'. Expected customer:<id>, manager:<id> or system:<id>."
            )
        return Actor(actor_id.strip(), role)

    def __str__(self) -> str:
        return f"{self.role.value.lower()}:{self.id}"
