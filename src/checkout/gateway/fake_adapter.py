"""Sandbox payment gateway for development and testing.

Stands in for the hosted payment page when ``SANDBOX_PAYMENTS`` is on: it
acknowledges orders without any network call, hands back a redirect to the
storefront's continue URL, and can be configured at runtime to fail so the
error paths are reachable by hand (``/api/payments/gateway/configure``).

Notifications are verified with the real signature codec using a fixed
sandbox key, so a test notification is signed exactly like a real one.
"""

from uuid import uuid4

from checkout.errors import GatewayRejected, GatewayUnreachable
from checkout.gateway import signature
from checkout.gateway.port import GatewayOrder, OrderRequest, PaymentGateway

SANDBOX_SECOND_KEY = "sandbox-second-key"


class FakeGateway(PaymentGateway):
    """Configurable sandbox gateway."""

    def __init__(self, continue_url: str = "http://localhost:8080/", second_key: str = SANDBOX_SECOND_KEY) -> None:
        self.continue_url = continue_url
        self.second_key = second_key
        self.should_succeed: bool = True
        self.failure_reason: str = "Sandbox rejection"
        self.unreachable: bool = False
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Sandbox rejection",
        unreachable: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unreachable = unreachable

    async def create_order(self, request: OrderRequest) -> GatewayOrder:
        self.calls.append(
            {
                "method": "create_order",
                "local_order_id": request.local_order_id,
                "total_minor_units": request.total_minor_units,
                "currency": request.currency,
                "items": [(i.name, i.unit_price_minor, i.quantity) for i in request.items],
            }
        )

        if self.unreachable:
            raise GatewayUnreachable("Sandbox gateway configured as unreachable")
        if not self.should_succeed:
            raise GatewayRejected(self.failure_reason, status_code=400, body=self.failure_reason)

        gateway_order_id = f"SANDBOX{uuid4().hex[:12].upper()}"
        separator = "&" if "?" in self.continue_url else "?"
        return GatewayOrder(
            redirect_uri=f"{self.continue_url}{separator}sandbox=1&extOrderId={request.local_order_id}",
            gateway_order_id=gateway_order_id,
        )

    def verify_notification(self, body: bytes, signature_header: str | None) -> bool:
        return signature.verify(body, signature_header, self.second_key)
