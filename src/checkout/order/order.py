"""Order aggregate: the storefront's local record of a gateway payment.

An Order is written once the gateway has acknowledged the payment order, so
``gateway_order_id`` is always present. After that only the status moves,
driven by gateway notifications or an explicit sandbox confirmation.

State Machine:
    NEW → PENDING → WAITING_FOR_CONFIRMATION → COMPLETED | CANCELED

Moves only go up in precedence. COMPLETED and CANCELED are terminal.
"""

from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    List,
    String,
    Text,
    ValueObject,
)

from checkout.domain import checkout


class OrderStatus(Enum):
    NEW = "NEW"
    PENDING = "PENDING"
    WAITING_FOR_CONFIRMATION = "WAITING_FOR_CONFIRMATION"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class ItemKind(Enum):
    CUSTOM_BOX = "custom-box"
    READY_BOX = "ready-box"


class TransitionOutcome(Enum):
    """What happened when a status was offered to an order."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    STALE = "stale"
    TERMINAL = "terminal"
    UNSUPPORTED_STATUS = "unsupported_status"


TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELED})

_STATUS_RANK = {
    OrderStatus.NEW: 0,
    OrderStatus.PENDING: 1,
    OrderStatus.WAITING_FOR_CONFIRMATION: 2,
    OrderStatus.COMPLETED: 3,
    OrderStatus.CANCELED: 3,
}

_CENT = Decimal("1")


def to_minor_units(amount) -> int:
    """Convert a display-currency amount to integer minor units.

    Rounds half up (``10.005`` → ``1001``). Goes through ``str`` so a float
    such as ``19.99`` is taken at its printed value rather than its binary
    approximation. The result is lossy and must be stored, never recomputed.
    """
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return int((value * 100).quantize(_CENT, rounding=ROUND_HALF_UP))


def _as_utc(value: datetime) -> datetime:
    # SQL providers may hand back naive timestamps
    return value if value.tzinfo else value.replace(tzinfo=UTC)


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@checkout.value_object(part_of="Order")
class CustomerDetails:
    """Contact and delivery details as entered at checkout."""

    full_name: String(max_length=200, sanitize=False)
    phone: String(max_length=30, sanitize=False)
    email: String(max_length=254, sanitize=False)
    city: String(max_length=100, sanitize=False)
    postal_code: String(max_length=20, sanitize=False)
    street: String(max_length=255, sanitize=False)
    building_no: String(max_length=20, sanitize=False)
    floor: String(max_length=20, sanitize=False)
    apartment: String(max_length=20, sanitize=False)


@checkout.value_object(part_of="Order")
class InvoiceDetails:
    tax_id: String(max_length=20, sanitize=False)
    company: String(max_length=255, sanitize=False)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@checkout.entity(part_of="Order")
class OrderItem:
    """A cart line frozen at order time, with its price already in minor units."""

    name: String(required=True, max_length=200, sanitize=False)
    kind: String(max_length=20, choices=ItemKind)
    unit_price: Float(required=True, min_value=0.0)
    unit_price_minor: Integer(required=True, min_value=0)
    quantity: Integer(required=True, min_value=1)
    contents: List(content_type=String)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@checkout.aggregate
class Order:
    local_order_id: Identifier(identifier=True)
    gateway_order_id: String(required=True, max_length=64, unique=True, sanitize=False)
    status: String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    total: Float(required=True, min_value=0.0)
    amount_minor_units: Integer(required=True, min_value=1)
    currency: String(max_length=3, default="PLN")
    items: HasMany(OrderItem)
    customer: ValueObject(CustomerDetails)
    invoice: ValueObject(InvoiceDetails)
    notes: Text(sanitize=False)
    redirect_uri: String(max_length=1000, sanitize=False)
    created_at: DateTime()
    updated_at: DateTime()
    paid_at: DateTime()

    @invariant.post
    def completed_order_must_have_paid_at(self):
        if self.status == OrderStatus.COMPLETED.value and self.paid_at is None:
            raise ValidationError({"paid_at": ["Completed orders must record when they were paid"]})

    @classmethod
    def place(
        cls,
        local_order_id: str,
        gateway_order_id: str,
        total: float,
        amount_minor_units: int,
        items: list[dict],
        currency: str = "PLN",
        customer: dict | None = None,
        invoice: dict | None = None,
        notes: str | None = None,
        redirect_uri: str | None = None,
    ):
        """Record an order the gateway has just acknowledged."""
        from checkout.order.events import OrderPlaced

        if not items:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            local_order_id=local_order_id,
            gateway_order_id=gateway_order_id,
            status=OrderStatus.PENDING.value,
            total=total,
            amount_minor_units=amount_minor_units,
            currency=currency,
            items=[
                OrderItem(
                    name=item["name"],
                    kind=item.get("kind"),
                    unit_price=item["unit_price"],
                    unit_price_minor=item["unit_price_minor"],
                    quantity=item.get("quantity", 1),
                    contents=list(item.get("contents") or []),
                )
                for item in items
            ],
            customer=CustomerDetails(**customer) if customer else None,
            invoice=InvoiceDetails(**invoice) if invoice else None,
            notes=notes,
            redirect_uri=redirect_uri,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                local_order_id=local_order_id,
                gateway_order_id=gateway_order_id,
                total=total,
                amount_minor_units=amount_minor_units,
                currency=currency,
                item_count=len(items),
                placed_at=now,
            )
        )
        return order

    @property
    def is_terminal(self) -> bool:
        return OrderStatus(self.status) in TERMINAL_STATUSES

    def apply_gateway_status(self, status: str, reported_at: datetime | None = None) -> TransitionOutcome:
        """Offer a status reported by the gateway; apply it only if it is forward progress.

        Duplicates leave the order untouched, including ``updated_at``.
        """
        from checkout.order.events import OrderPaid, OrderStatusChanged

        try:
            target = OrderStatus(status)
        except ValueError:
            return TransitionOutcome.UNSUPPORTED_STATUS

        current = OrderStatus(self.status)
        if target == current:
            return TransitionOutcome.DUPLICATE
        if current in TERMINAL_STATUSES:
            return TransitionOutcome.TERMINAL
        if _STATUS_RANK[target] <= _STATUS_RANK[current]:
            return TransitionOutcome.STALE

        now = _as_utc(reported_at) if reported_at else datetime.now(UTC)

        with atomic_change(self):
            self.status = target.value
            if self.updated_at is None or now > _as_utc(self.updated_at):
                self.updated_at = now
            if target == OrderStatus.COMPLETED:
                self.paid_at = now

        self.raise_(
            OrderStatusChanged(
                local_order_id=str(self.local_order_id),
                gateway_order_id=self.gateway_order_id,
                previous_status=current.value,
                status=target.value,
                changed_at=now,
            )
        )
        if target == OrderStatus.COMPLETED:
            self.raise_(
                OrderPaid(
                    local_order_id=str(self.local_order_id),
                    gateway_order_id=self.gateway_order_id,
                    amount_minor_units=self.amount_minor_units,
                    currency=self.currency,
                    paid_at=now,
                )
            )
        return TransitionOutcome.APPLIED
