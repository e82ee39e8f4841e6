"""Order placement: the order service plus the command that records the order.

The gateway is called first; the local Order is written only after the
gateway has acknowledged it. A failed gateway call therefore leaves no local
record behind, and a resubmitted cart gets a fresh ``local_order_id``.
"""

import json
import secrets
import string
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation


import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.config import CheckoutSettings
from checkout.domain import checkout
from checkout.errors import (
    AuthError,
    GatewayError,
    GatewayUnreachable,
    InvalidRequest,
    MalformedResponse,
)
from checkout.gateway.port import BuyerContact, LineItem, OrderRequest, PaymentGateway
from checkout.metrics import ORDER_PLACEMENTS
from checkout.order.order import Order, to_minor_units

logger = structlog.get_logger(__name__)

ORDER_ID_ALPHABET = string.ascii_uppercase + string.digits
ORDER_ID_SUFFIX_LENGTH = 10


@checkout.command(part_of="Order")
class RecordOrder:
    """Persist an order the gateway has acknowledged."""

    local_order_id: Identifier(required=True)
    gateway_order_id: String(required=True, max_length=64, sanitize=False)
    total: Float(required=True)
    amount_minor_units: Integer(required=True)
    currency: String(max_length=3, default="PLN")
    items: Text(required=True, sanitize=False)  # JSON array of line items
    customer: Text(sanitize=False)  # JSON object
    invoice: Text(sanitize=False)  # JSON object
    notes: Text(sanitize=False)
    redirect_uri: String(max_length=1000, sanitize=False)


@checkout.command_handler(part_of=Order)
class RecordOrderHandler:
    @handle(RecordOrder)
    def record_order(self, command):
        order = Order.place(
            local_order_id=command.local_order_id,
            gateway_order_id=command.gateway_order_id,
            total=command.total,
            amount_minor_units=command.amount_minor_units,
            currency=command.currency or "PLN",
            items=json.loads(command.items),
            customer=json.loads(command.customer) if command.customer else None,
            invoice=json.loads(command.invoice) if command.invoice else None,
            notes=command.notes,
            redirect_uri=command.redirect_uri,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.local_order_id)


@dataclass(frozen=True)
class CartLine:
    name: str
    price: float | Decimal
    qty: int = 1
    kind: str | None = None
    contents: tuple[str, ...] = ()


@dataclass(frozen=True)
class CustomerInfo:
    full_name: str = ""
    phone: str = ""
    email: str = ""
    city: str = ""
    postal_code: str = ""
    street: str = ""
    building_no: str = ""
    floor: str = ""
    apartment: str = ""


@dataclass(frozen=True)
class InvoiceInfo:
    tax_id: str = ""
    company: str = ""


@dataclass(frozen=True)
class PlacedOrder:
    redirect_uri: str
    local_order_id: str
    gateway_order_id: str
    amount_minor_units: int = field(default=0, compare=False)


def _placement_outcome(exc: Exception) -> str:
    if isinstance(exc, AuthError):
        return "auth_error"
    if isinstance(exc, GatewayUnreachable):
        return "unreachable"
    if isinstance(exc, MalformedResponse):
        return "malformed_response"
    return "rejected"


class OrderService:
    """Places orders: validate, call the gateway, then record the local order."""

    def __init__(self, gateway: PaymentGateway, settings: CheckoutSettings) -> None:
        self.gateway = gateway
        self.settings = settings

    def generate_order_id(self, now: datetime | None = None) -> str:
        """``E251018-7QK2M9XZ4B``: storefront prefix, UTC date, random suffix."""
        now = now or datetime.now(UTC)
        suffix = "".join(secrets.choice(ORDER_ID_ALPHABET) for _ in range(ORDER_ID_SUFFIX_LENGTH))
        return f"{self.settings.order_id_prefix}{now:%y%m%d}-{suffix}"

    @staticmethod
    def _validate(cart: list[CartLine], total) -> Decimal:
        if not cart:
            raise InvalidRequest("Cart is empty")
        if total is None:
            raise InvalidRequest("Order total is required")

        try:
            amount = Decimal(str(total))
        except InvalidOperation:
            raise InvalidRequest("Order total is not a number") from None
        if not amount.is_finite() or amount <= 0:
            raise InvalidRequest("Order total must be greater than zero")

        for line in cart:
            if not (line.name or "").strip():
                raise InvalidRequest("Every cart item needs a name")
            try:
                price = Decimal(str(line.price))
            except InvalidOperation:
                raise InvalidRequest(f"Cart item '{line.name}' has a price that is not a number") from None
            if not price.is_finite() or price < 0:
                raise InvalidRequest(f"Cart item '{line.name}' has a negative or invalid price")
            if line.qty is None or line.qty < 1:
                raise InvalidRequest(f"Cart item '{line.name}' needs a quantity of at least 1")
        return amount

    async def place_order(
        self,
        cart: list[CartLine],
        customer: CustomerInfo | None,
        total,
        notes: str | None = None,
        invoice: InvoiceInfo | None = None,
        customer_ip: str | None = None,
    ) -> PlacedOrder:
        """Create the gateway order and record it locally.

        Raises ``InvalidRequest`` before any network call, and propagates
        ``GatewayError`` subclasses unchanged; neither leaves a local record.
        """
        try:
            amount = self._validate(cart, total)
            amount_minor_units = to_minor_units(amount)
            if amount_minor_units < 1:
                raise InvalidRequest("Order total is below the smallest currency unit")
        except InvalidRequest:
            ORDER_PLACEMENTS.labels(outcome="invalid").inc()
            raise

        customer = customer or CustomerInfo()
        local_order_id = self.generate_order_id()
        lines = [
            {
                "name": line.name.strip(),
                "kind": line.kind,
                "unit_price": float(line.price),
                "unit_price_minor": to_minor_units(line.price),
                "quantity": int(line.qty),
                "contents": list(line.contents),
            }
            for line in cart
        ]

        request = OrderRequest(
            local_order_id=local_order_id,
            total_minor_units=amount_minor_units,
            currency=self.settings.currency,
            description=f"Zamówienie {local_order_id}",
            buyer=BuyerContact(email=customer.email, phone=customer.phone, full_name=customer.full_name),
            items=[LineItem(line["name"], line["unit_price_minor"], line["quantity"]) for line in lines],
            customer_ip=customer_ip or "127.0.0.1",
        )

        try:
            gateway_order = await self.gateway.create_order(request)
        except GatewayError as exc:
            ORDER_PLACEMENTS.labels(outcome=_placement_outcome(exc)).inc()
            logger.warning(
                "Gateway order creation failed",
                local_order_id=local_order_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

        try:
            current_domain.process(
                RecordOrder(
                    local_order_id=local_order_id,
                    gateway_order_id=gateway_order.gateway_order_id,
                    total=float(amount),
                    amount_minor_units=amount_minor_units,
                    currency=self.settings.currency,
                    items=json.dumps(lines),
                    customer=json.dumps(asdict(customer)),
                    invoice=json.dumps(asdict(invoice)) if invoice else None,
                    notes=notes,
                    redirect_uri=gateway_order.redirect_uri,
                ),
                asynchronous=False,
            )
        except Exception:
            # The gateway holds an order we have no record of
            ORDER_PLACEMENTS.labels(outcome="store_error").inc()
            logger.exception(
                "Gateway order created but local record could not be written",
                local_order_id=local_order_id,
                gateway_order_id=gateway_order.gateway_order_id,
            )
            raise

        ORDER_PLACEMENTS.labels(outcome="placed").inc()
        logger.info(
            "Order placed",
            local_order_id=local_order_id,
            gateway_order_id=gateway_order.gateway_order_id,
            amount_minor_units=amount_minor_units,
        )
        return PlacedOrder(
            redirect_uri=gateway_order.redirect_uri,
            local_order_id=local_order_id,
            gateway_order_id=gateway_order.gateway_order_id,
            amount_minor_units=amount_minor_units,
        )
