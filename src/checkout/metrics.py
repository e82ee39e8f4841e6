"""Prometheus counters for order placement and notification handling."""

from prometheus_client import Counter

ORDER_PLACEMENTS = Counter(
    "checkout_order_placements",
    "Order placement attempts by outcome",
    ["outcome"],
)

WEBHOOK_NOTIFICATIONS = Counter(
    "checkout_webhook_notifications",
    "Gateway status notifications by reconciliation outcome",
    ["outcome"],
)
