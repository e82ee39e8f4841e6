"""Checkout configuration.

Gateway credentials, callback URLs and storefront defaults are collected into
one immutable ``CheckoutSettings`` object that is handed to the gateway
adapter, the order service and the webhook reconciler when they are built.
Nothing reads the environment at request time.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

_TRUTHY = {"1", "true", "yes", "on"}

SANDBOX_GATEWAY_URL = "https://secure.snd.payu.com"


def _flag(value: str | None, default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUTHY


@dataclass(frozen=True)
class CheckoutSettings:
    """Explicit configuration for the payment order lifecycle."""

    gateway_base_url: str = SANDBOX_GATEWAY_URL
    pos_id: str = ""
    client_id: str = ""
    client_secret: str = ""
    second_key: str = ""
    notify_url: str = "http://localhost:8080/api/payments/notify"
    continue_url: str = "http://localhost:8080/"
    currency: str = "PLN"
    brand_name: str = "eatmi"
    placeholder_email: str = "zamowienia@eatmi.pl"
    order_id_prefix: str = "E"
    sandbox_payments: bool = True
    verify_notifications: bool = True
    gateway_timeout: float = 10.0
    cors_origins: tuple[str, ...] = field(default=("*",))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "CheckoutSettings":
        """Build settings from environment variables (or any mapping)."""
        env = os.environ if environ is None else environ

        public_url = env.get("PUBLIC_URL", "http://localhost:8080").rstrip("/")
        origins = tuple(o.strip() for o in env.get("CORS_ORIGIN", "*").split(",") if o.strip())

        return cls(
            gateway_base_url=env.get("PAYU_BASE_URL", SANDBOX_GATEWAY_URL).rstrip("/"),
            pos_id=env.get("PAYU_POS_ID", ""),
            client_id=env.get("PAYU_CLIENT_ID", ""),
            client_secret=env.get("PAYU_CLIENT_SECRET", ""),
            second_key=env.get("PAYU_SECOND_KEY", ""),
            notify_url=env.get("PAYU_NOTIFY_URL", f"{public_url}/api/payments/notify"),
            continue_url=env.get("PAYU_CONTINUE_URL", f"{public_url}/"),
            currency=env.get("CURRENCY", "PLN"),
            brand_name=env.get("BRAND_NAME", "eatmi"),
            placeholder_email=env.get("PLACEHOLDER_EMAIL", "zamowienia@eatmi.pl"),
            order_id_prefix=env.get("ORDER_ID_PREFIX", "E"),
            sandbox_payments=_flag(env.get("SANDBOX_PAYMENTS"), default=True),
            verify_notifications=_flag(env.get("VERIFY_NOTIFICATIONS"), default=True),
            gateway_timeout=float(env.get("GATEWAY_TIMEOUT", "10")),
            cors_origins=origins or ("*",),
        )


_current_settings: CheckoutSettings | None = None


def get_settings() -> CheckoutSettings:
    """Return the active settings, loading them from the environment once."""
    global _current_settings
    if _current_settings is None:
        _current_settings = CheckoutSettings.from_env()
    return _current_settings


def set_settings(settings: CheckoutSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _current_settings
    _current_settings = None
