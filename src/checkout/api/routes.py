"""FastAPI routes for the Checkout domain: order placement and gateway notifications."""

import ipaddress
import math
import os
from datetime import date

import structlog
from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    OrderListResponse,
    OrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
)
from checkout.config import get_settings
from checkout.errors import GatewayError, InvalidRequest
from checkout.gateway import get_gateway
from checkout.gateway.fake_adapter import FakeGateway
from checkout.gateway.signature import SIGNATURE_HEADER
from checkout.order.confirmation import confirm_sandbox_order
from checkout.order.order import Order
from checkout.order.placement import OrderService
from checkout.order.reconciliation import WebhookReconciler

logger = structlog.get_logger(__name__)

MAX_PAGE_SIZE = 100


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _client_ip(request: Request) -> str | None:
    host = request.client.host if request.client else None
    try:
        return str(ipaddress.ip_address(host)) if host else None
    except ValueError:
        return None


def _parse_day(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/api/orders", tags=["orders"])


@order_router.post("")
async def place_order(request: Request) -> JSONResponse:
    """Create the gateway order and return where to redirect the buyer."""
    try:
        body = PlaceOrderRequest.model_validate(await request.json())
    except ValueError as exc:
        logger.info("Rejected malformed order request", error=str(exc))
        return _error(400, "Invalid order request")

    service = OrderService(gateway=get_gateway(), settings=get_settings())
    try:
        placed = await service.place_order(
            cart=[item.to_cart_line() for item in body.cart],
            customer=body.customer.to_customer_info(),
            total=body.total,
            notes=body.uwagi,
            invoice=body.faktura.to_invoice_info() if body.faktura else None,
            customer_ip=_client_ip(request),
        )
    except (InvalidRequest, ValidationError) as exc:
        return _error(400, str(exc))
    except GatewayError:
        return _error(500, "Payment could not be started, please try again")
    except Exception:
        logger.exception("Order placement failed")
        return _error(500, "Server error")

    response = PlaceOrderResponse(
        redirect_uri=placed.redirect_uri,
        local_order_id=placed.local_order_id,
        gateway_order_id=placed.gateway_order_id,
    )
    return JSONResponse(status_code=200, content=response.model_dump(by_alias=True))


@order_router.get("")
async def list_orders(page: int = 1, limit: int = 50, day: str | None = Query(None, alias="date")) -> JSONResponse:
    page = max(1, page)
    limit = min(MAX_PAGE_SIZE, max(1, limit))

    result = current_domain.repository_for(Order).list_orders(page=page, limit=limit, day=_parse_day(day))
    response = OrderListResponse(
        orders=[OrderResponse.from_order(order) for order in result.items],
        total=result.total,
        page=page,
        pages=math.ceil(result.total / limit),
    )
    return JSONResponse(content=response.model_dump(mode="json", by_alias=True))


@order_router.get("/{local_order_id}")
async def get_order(local_order_id: str) -> JSONResponse:
    try:
        order = current_domain.repository_for(Order).get(local_order_id)
    except ObjectNotFoundError:
        return _error(404, "Not found")
    return JSONResponse(content=OrderResponse.from_order(order).model_dump(mode="json", by_alias=True))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/api/payments", tags=["payments"])


@payment_router.post("/notify")
async def gateway_notification(request: Request) -> Response:
    """Receive a gateway status notification.

    Always answers 200 with an empty body; the outcome is logged and counted.
    """
    body = await request.body()
    reconciler = WebhookReconciler(gateway=get_gateway(), settings=get_settings())
    reconciler.handle_notification(body, request.headers.get(SIGNATURE_HEADER))
    return Response(status_code=200)


def _require_sandbox() -> FakeGateway:
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Sandbox payments are not available in production")

    gateway = get_gateway()
    if not get_settings().sandbox_payments or not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=403, detail="Sandbox payments are disabled")
    return gateway


@payment_router.post("/sandbox/confirm/{local_order_id}")
async def confirm_sandbox_payment(local_order_id: str) -> JSONResponse:
    """Mark a sandbox order as paid (non-production only)."""
    _require_sandbox()

    try:
        outcome = confirm_sandbox_order(local_order_id)
    except ObjectNotFoundError:
        return _error(404, "Not found")

    order = current_domain.repository_for(Order).get(local_order_id)
    content = OrderResponse.from_order(order).model_dump(mode="json", by_alias=True)
    content["outcome"] = outcome
    return JSONResponse(content=content)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the sandbox gateway behavior (non-production only)."""
    gateway = _require_sandbox()
    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        unreachable=body.unreachable,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        failure_reason=gateway.failure_reason,
        unreachable=gateway.unreachable,
    )
