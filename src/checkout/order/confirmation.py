"""Sandbox payment confirmation: command and handler.

Without a real gateway nobody sends notifications, so a sandbox order is
marked paid explicitly. The same forward-only rules apply as for webhooks,
and the write is serialized with webhook updates for the same order.
"""

import structlog
from protean import handle
from protean.exceptions import ExpectedVersionError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.order.order import Order, OrderStatus, TransitionOutcome
from checkout.order.reconciliation import MAX_WRITE_ATTEMPTS, order_lock

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class ConfirmSandboxPayment:
    local_order_id: Identifier(required=True)


@checkout.command_handler(part_of=Order)
class ConfirmSandboxPaymentHandler:
    @handle(ConfirmSandboxPayment)
    def confirm_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.local_order_id)
        outcome = order.apply_gateway_status(OrderStatus.COMPLETED.value)
        if outcome is TransitionOutcome.APPLIED:
            repo.add(order)
        return outcome.value


def confirm_sandbox_order(local_order_id: str) -> str:
    """Mark a sandbox order paid under the same per-order lock webhooks use.

    Raises ``ObjectNotFoundError`` for an unknown order, and re-raises
    ``ExpectedVersionError`` once every attempt has hit a conflict.
    """
    order = current_domain.repository_for(Order).get(local_order_id)

    with order_lock(order.gateway_order_id):
        for attempt in range(1, MAX_WRITE_ATTEMPTS + 1):
            try:
                return current_domain.process(
                    ConfirmSandboxPayment(local_order_id=local_order_id),
                    asynchronous=False,
                )
            except ExpectedVersionError:
                if attempt == MAX_WRITE_ATTEMPTS:
                    logger.error(
                        "Gave up confirming sandbox order after repeated conflicts",
                        local_order_id=local_order_id,
                    )
                    raise
                logger.info(
                    "Order changed underneath the confirmation, retrying",
                    local_order_id=local_order_id,
                    attempt=attempt,
                )
