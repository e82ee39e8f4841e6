"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """The gateway acknowledged an order and the local record was written."""

    __version__ = 1

    local_order_id: Identifier(required=True)
    gateway_order_id: String(required=True, sanitize=False)
    total: Float(required=True)
    amount_minor_units: Integer(required=True)
    currency: String(required=True)
    item_count: Integer(required=True)
    placed_at: DateTime(required=True)


@checkout.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    local_order_id: Identifier(required=True)
    gateway_order_id: String(required=True, sanitize=False)
    previous_status: String(required=True)
    status: String(required=True)
    changed_at: DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaid:
    """The gateway reported the payment as completed."""

    __version__ = 1

    local_order_id: Identifier(required=True)
    gateway_order_id: String(required=True, sanitize=False)
    amount_minor_units: Integer(required=True)
    currency: String(required=True)
    paid_at: DateTime(required=True)
