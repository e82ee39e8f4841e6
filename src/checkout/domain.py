"""Checkout bounded context: payment order lifecycle.

Creates signed orders with the payment gateway, keeps the local order
record, and reconciles it against asynchronous gateway notifications.
"""

from protean.domain import Domain

from checkout.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

checkout = Domain(name="checkout")
