"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway when sandbox payments are enabled (the default)
- PayUGateway against the configured PayU environment otherwise
"""

from checkout.config import get_settings
from checkout.gateway.fake_adapter import FakeGateway
from checkout.gateway.payu_adapter import PayUGateway
from checkout.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from the active settings."""
    global _current_gateway
    if _current_gateway is None:
        settings = get_settings()
        if settings.sandbox_payments:
            _current_gateway = FakeGateway(continue_url=settings.continue_url)
        else:
            _current_gateway = PayUGateway(settings)
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
