"""PayU REST API adapter.

Each ``create_order`` call performs two requests on one async HTTP client:

1. ``POST /pl/standard/user/oauth/authorize`` (client-credentials grant) for
   a short-lived bearer token.
2. ``POST /api/v2_1/orders`` with the signed order document.

Nothing is retried here. A failed credential exchange raises ``AuthError``;
the order call raises ``GatewayUnreachable`` on transport failure and
``GatewayRejected`` / ``MalformedResponse`` on a bad answer. PayU answers a
successful order creation with ``302 Found`` and a JSON body, which is
accepted alongside 2xx.
"""

from typing import Any

import httpx
import structlog

from checkout.config import CheckoutSettings
from checkout.errors import AuthError, GatewayRejected, GatewayUnreachable, MalformedResponse
from checkout.gateway import signature
from checkout.gateway.port import GatewayOrder, OrderRequest, PaymentGateway

logger = structlog.get_logger(__name__)

AUTHORIZE_PATH = "/pl/standard/user/oauth/authorize"
ORDERS_PATH = "/api/v2_1/orders"

PLACEHOLDER_FIRST_NAME = "Customer"

# Keep at most this much of a rejected body for diagnostics
_MAX_BODY_CHARS = 2000


class PayUGateway(PaymentGateway):
    """Gateway adapter for the PayU REST API."""

    def __init__(self, settings: CheckoutSettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.gateway_base_url,
            timeout=self.settings.gateway_timeout,
            transport=self._transport,
        )

    async def create_order(self, request: OrderRequest) -> GatewayOrder:
        async with self._client() as client:
            token = await self._authorize(client)

            body = signature.canonical_json(self.build_payload(request))
            headers = {
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
                signature.SIGNATURE_HEADER: signature.sign(
                    body,
                    self.settings.second_key,
                    sender=self.settings.pos_id,
                ),
            }

            try:
                response = await client.post(ORDERS_PATH, content=body, headers=headers)
            except httpx.TransportError as exc:
                logger.warning(
                    "Gateway order call failed in transport",
                    local_order_id=request.local_order_id,
                    error=str(exc),
                )
                raise GatewayUnreachable(f"Payment gateway unreachable: {exc}") from exc

        return self._parse_order_response(request, response)

    async def _authorize(self, client: httpx.AsyncClient) -> str:
        try:
            response = await client.post(
                AUTHORIZE_PATH,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.settings.client_id,
                    "client_secret": self.settings.client_secret,
                },
            )
        except httpx.TransportError as exc:
            raise AuthError(f"Authorization endpoint unreachable: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "Gateway rejected credential exchange",
                status_code=response.status_code,
                body=response.text[:_MAX_BODY_CHARS],
            )
            raise AuthError(f"Authorization failed with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = None
        token = data.get("access_token") if isinstance(data, dict) else None
        if not token:
            raise AuthError("Authorization response carried no access_token")
        return token

    def _parse_order_response(self, request: OrderRequest, response: httpx.Response) -> GatewayOrder:
        raw = response.text[:_MAX_BODY_CHARS]

        if not (response.is_success or response.status_code == httpx.codes.FOUND):
            logger.warning(
                "Gateway rejected order",
                local_order_id=request.local_order_id,
                status_code=response.status_code,
                body=raw,
            )
            raise GatewayRejected(
                f"Gateway rejected order with HTTP {response.status_code}",
                status_code=response.status_code,
                body=raw,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponse("Gateway response is not JSON", response.status_code, raw) from exc

        redirect_uri = data.get("redirectUri") if isinstance(data, dict) else None
        gateway_order_id = data.get("orderId") if isinstance(data, dict) else None
        if not redirect_uri or not gateway_order_id:
            raise MalformedResponse(
                "Gateway response is missing redirectUri or orderId",
                response.status_code,
                raw,
            )

        return GatewayOrder(redirect_uri=redirect_uri, gateway_order_id=str(gateway_order_id))

    def build_payload(self, request: OrderRequest) -> dict[str, Any]:
        """Build the order document exactly as it will be serialized and signed."""
        buyer = request.buyer
        first_name, _, last_name = (buyer.full_name or "").strip().partition(" ")

        buyer_doc = {
            "email": buyer.email.strip() or self.settings.placeholder_email,
            "firstName": first_name or PLACEHOLDER_FIRST_NAME,
            "lastName": last_name.strip() or self.settings.brand_name,
            "language": "pl",
        }
        if buyer.phone.strip():
            buyer_doc["phone"] = buyer.phone.strip()

        return {
            "notifyUrl": self.settings.notify_url,
            "continueUrl": self.settings.continue_url,
            "customerIp": request.customer_ip,
            "merchantPosId": self.settings.pos_id,
            "description": request.description,
            "currencyCode": request.currency,
            "totalAmount": str(request.total_minor_units),
            "extOrderId": request.local_order_id,
            "buyer": buyer_doc,
            "products": [
                {
                    "name": item.name,
                    "unitPrice": str(item.unit_price_minor),
                    "quantity": str(item.quantity),
                }
                for item in request.items
            ],
        }

    def verify_notification(self, body: bytes, signature_header: str | None) -> bool:
        return signature.verify(body, signature_header, self.settings.second_key)
