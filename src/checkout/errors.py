"""Failure taxonomy for the payment order lifecycle.

``InvalidRequest`` is client-correctable. The ``GatewayError`` family covers
upstream failures; they abort order placement before anything is persisted
and are reported to the end user as a generic server error.
"""


class CheckoutError(Exception):
    """Base class for checkout failures."""


class InvalidRequest(CheckoutError):
    """The order request cannot be placed as submitted."""


class GatewayError(CheckoutError):
    """The payment gateway could not complete the call."""


class AuthError(GatewayError):
    """The bearer credential could not be obtained."""


class GatewayUnreachable(GatewayError):
    """The gateway did not answer.

    A timeout leaves the gateway-side outcome unknown: the order may or may
    not exist at the gateway. No local record is written in that case, so a
    notification for it later is treated as one for an unknown order.
    """


class GatewayRejected(GatewayError):
    """The gateway answered with a non-success status."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedResponse(GatewayRejected):
    """The gateway answered successfully but the body is unusable."""
