"""eatmi storefront checkout FastAPI application.

Places payment orders with the gateway and reconciles gateway notifications.
Commands are processed synchronously within each request.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8080 --reload
"""

import os
from datetime import UTC, datetime

from checkout.config import get_settings
from checkout.domain import checkout
from checkout.utils.logging import add_context, clear_context
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

checkout.init()

# ---------------------------------------------------------------------------
# Route-to-domain mapping
# ---------------------------------------------------------------------------
_ROUTE_DOMAIN_MAP = {
    "/api/orders": checkout,
    "/api/payments": checkout,
}


def _resolve_domain(path: str):
    """Return the domain for the given request path, or None."""
    for prefix, domain in _ROUTE_DOMAIN_MAP.items():
        if path.startswith(prefix):
            return domain
    return None


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="eatmi Checkout API",
    description="Order placement with hosted payments and gateway notification reconciliation",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the Protean domain context for each API request."""
    clear_context()
    add_context(method=request.method, path=request.url.path)

    domain = _resolve_domain(request.url.path)
    if domain is not None:
        with domain.domain_context():
            response = await call_next(request)
        return response
    # No domain match, pass through (health check, metrics, docs)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from checkout.api.routes import order_router, payment_router  # noqa: E402

app.include_router(order_router)
app.include_router(payment_router)

app.mount("/metrics", make_asgi_app())


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "time": datetime.now(UTC).isoformat(),
            "domain": checkout.name,
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8080")))
