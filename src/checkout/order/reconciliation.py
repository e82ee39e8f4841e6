"""Webhook reconciliation: applies gateway status notifications to orders.

Notifications arrive at least once, in any order, possibly for orders this
environment never created. The reconciler acknowledges all of them: every
internal problem is logged and counted, never reported back to the gateway,
because a non-200 answer only makes the gateway redeliver.

Updates for the same gateway order are serialized. The reconciler holds a
lock for that order while the command handler re-reads the order, decides,
and writes; if the store still reports a version conflict the whole
read-decide-write is retried against fresh state.
"""

import json
import threading
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean import handle
from protean.exceptions import ExpectedVersionError
from protean.fields import DateTime, String
from protean.utils.globals import current_domain

from checkout.config import CheckoutSettings
from checkout.domain import checkout
from checkout.gateway.port import PaymentGateway
from checkout.metrics import WEBHOOK_NOTIFICATIONS
from checkout.order.order import Order, TransitionOutcome

logger = structlog.get_logger(__name__)

MAX_WRITE_ATTEMPTS = 3

_LOCK_STRIPES = 64
_order_locks = [threading.Lock() for _ in range(_LOCK_STRIPES)]


def order_lock(gateway_order_id: str) -> threading.Lock:
    return _order_locks[hash(gateway_order_id) % _LOCK_STRIPES]


class NotificationOutcome(Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    STALE = "stale"
    TERMINAL = "terminal"
    UNSUPPORTED_STATUS = "unsupported_status"
    UNKNOWN_ORDER = "unknown_order"
    AMBIGUOUS_ORDER = "ambiguous_order"
    EMPTY = "empty"
    INVALID_SIGNATURE = "invalid_signature"
    MALFORMED = "malformed"
    ERROR = "error"


@checkout.command(part_of="Order")
class ReconcileOrderStatus:
    """Apply a status the gateway reported for one of its orders."""

    gateway_order_id: String(required=True, max_length=64, sanitize=False)
    status: String(required=True, max_length=50, sanitize=False)
    ext_order_id: String(max_length=64, sanitize=False)
    reported_at: DateTime()


@checkout.command_handler(part_of=Order)
class ReconcileOrderStatusHandler:
    @handle(ReconcileOrderStatus)
    def reconcile(self, command):
        repo = current_domain.repository_for(Order)
        matches = repo.find_by_gateway_order_id(command.gateway_order_id)

        if not matches:
            return NotificationOutcome.UNKNOWN_ORDER.value
        if len(matches) > 1:
            logger.error(
                "Gateway order id maps to several local orders",
                gateway_order_id=command.gateway_order_id,
                local_order_ids=[str(o.local_order_id) for o in matches],
            )
            return NotificationOutcome.AMBIGUOUS_ORDER.value

        order = matches[0]
        if command.ext_order_id and command.ext_order_id != str(order.local_order_id):
            logger.error(
                "Notification correlation key does not match the local order",
                gateway_order_id=command.gateway_order_id,
                ext_order_id=command.ext_order_id,
                local_order_id=str(order.local_order_id),
            )
            return NotificationOutcome.AMBIGUOUS_ORDER.value

        outcome = order.apply_gateway_status(command.status, command.reported_at)
        if outcome is TransitionOutcome.APPLIED:
            repo.add(order)
        return outcome.value


def _first_order_record(payload) -> dict | None:
    if not isinstance(payload, dict):
        return None
    orders = payload.get("orders")
    if isinstance(orders, list):
        return orders[0] if orders and isinstance(orders[0], dict) else None
    # PayU's own notifications carry a single "order" object
    order = payload.get("order")
    return order if isinstance(order, dict) else None


class WebhookReconciler:
    """Turns raw gateway notifications into idempotent order status updates."""

    def __init__(self, gateway: PaymentGateway, settings: CheckoutSettings) -> None:
        self.gateway = gateway
        self.settings = settings

    def handle_notification(self, raw_body: bytes, signature_header: str | None = None) -> NotificationOutcome:
        """Process one notification. Never raises."""
        try:
            outcome = self._reconcile(raw_body, signature_header)
        except Exception:
            logger.exception("Notification processing failed", body=raw_body[:500].decode("utf-8", "replace"))
            outcome = NotificationOutcome.ERROR

        WEBHOOK_NOTIFICATIONS.labels(outcome=outcome.value).inc()
        return outcome

    def _reconcile(self, raw_body: bytes, signature_header: str | None) -> NotificationOutcome:
        if self.settings.verify_notifications and not self.gateway.verify_notification(raw_body, signature_header):
            logger.warning("Notification signature rejected", signature=signature_header)
            return NotificationOutcome.INVALID_SIGNATURE

        try:
            payload = json.loads(raw_body)
        except ValueError:
            logger.warning("Notification body is not JSON")
            return NotificationOutcome.MALFORMED

        record = _first_order_record(payload)
        if record is None:
            return NotificationOutcome.EMPTY

        gateway_order_id = record.get("orderId")
        status = record.get("status")
        if not gateway_order_id or not status:
            logger.warning("Notification record lacks orderId or status", record=record)
            return NotificationOutcome.MALFORMED

        ext_order_id = record.get("extOrderId")
        outcome = self._apply(str(gateway_order_id), str(status), str(ext_order_id) if ext_order_id else None)

        log = logger.info if outcome is NotificationOutcome.APPLIED else logger.debug
        if outcome in (NotificationOutcome.UNKNOWN_ORDER, NotificationOutcome.UNSUPPORTED_STATUS):
            log = logger.warning
        log("Notification reconciled", gateway_order_id=gateway_order_id, status=status, outcome=outcome.value)
        return outcome

    def _apply(self, gateway_order_id: str, status: str, ext_order_id: str | None) -> NotificationOutcome:
        with order_lock(gateway_order_id):
            for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
                try:
                    result = current_domain.process(
                        ReconcileOrderStatus(
                            gateway_order_id=gateway_order_id,
                            status=status,
                            ext_order_id=ext_order_id,
                            reported_at=datetime.now(UTC),
                        ),
                        asynchronous=False,
                    )
                    return NotificationOutcome(result)
                except ExpectedVersionError:
                    logger.info(
                        "Order changed underneath the update, retrying",
                        gateway_order_id=gateway_order_id,
                        attempt=attempt,
                    )

        logger.error("Gave up updating order after repeated conflicts", gateway_order_id=gateway_order_id)
        return NotificationOutcome.ERROR
