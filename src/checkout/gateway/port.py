"""Payment gateway port (abstract interface).

Defines what the order service needs from a payment gateway, so the
sandbox adapter and the PayU adapter are interchangeable.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class LineItem:
    """A product line as sent to the gateway."""

    name: str
    unit_price_minor: int
    quantity: int


@dataclass(frozen=True)
class BuyerContact:
    """Customer contact fields as entered in the storefront; any may be blank."""

    email: str = ""
    phone: str = ""
    full_name: str = ""


@dataclass(frozen=True)
class OrderRequest:
    """Everything the gateway needs to open a hosted payment for a local order."""

    local_order_id: str
    total_minor_units: int
    currency: str
    description: str
    buyer: BuyerContact
    items: list[LineItem] = field(default_factory=list)
    customer_ip: str = "127.0.0.1"


@dataclass(frozen=True)
class GatewayOrder:
    """The gateway's acknowledgement of a created order."""

    redirect_uri: str
    gateway_order_id: str


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def create_order(self, request: OrderRequest) -> GatewayOrder:
        """Create an order at the gateway and return where to send the buyer."""
        ...

    @abstractmethod
    def verify_notification(self, body: bytes, signature_header: str | None) -> bool:
        """Verify that a notification body is authentically from the gateway."""
        ...
