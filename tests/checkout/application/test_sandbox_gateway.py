"""Tests for the sandbox gateway and the gateway factory."""

import pytest
from builders import TEST_SETTINGS, run
from checkout.config import CheckoutSettings, set_settings
from checkout.errors import GatewayRejected, GatewayUnreachable
from checkout.gateway import get_gateway, reset_gateway, set_gateway
from checkout.gateway import signature
from checkout.gateway.fake_adapter import SANDBOX_SECOND_KEY, FakeGateway
from checkout.gateway.payu_adapter import PayUGateway
from checkout.gateway.port import BuyerContact, LineItem, OrderRequest


def _request(local_order_id="E261018-ABC123"):
    return OrderRequest(
        local_order_id=local_order_id,
        total_minor_units=3200,
        currency="PLN",
        description=f"Zamówienie {local_order_id}",
        buyer=BuyerContact(),
        items=[LineItem("Box 1", 3200, 1)],
    )


class TestFakeGateway:
    def test_issues_sandbox_order(self):
        gateway = FakeGateway(continue_url="https://shop.test/")
        result = run(gateway.create_order(_request()))
        assert result.gateway_order_id.startswith("SANDBOX")
        assert result.redirect_uri == "https://shop.test/?sandbox=1&extOrderId=E261018-ABC123"

    def test_redirect_keeps_existing_query(self):
        gateway = FakeGateway(continue_url="https://shop.test/?lang=pl")
        result = run(gateway.create_order(_request()))
        assert result.redirect_uri.startswith("https://shop.test/?lang=pl&sandbox=1")

    def test_each_order_gets_a_new_id(self):
        gateway = FakeGateway()
        first = run(gateway.create_order(_request("E261018-000001")))
        second = run(gateway.create_order(_request("E261018-000002")))
        assert first.gateway_order_id != second.gateway_order_id

    def test_records_calls(self):
        gateway = FakeGateway()
        run(gateway.create_order(_request()))
        assert gateway.calls == [
            {
                "method": "create_order",
                "local_order_id": "E261018-ABC123",
                "total_minor_units": 3200,
                "currency": "PLN",
                "items": [("Box 1", 3200, 1)],
            }
        ]

    def test_configured_rejection(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Card declined")
        with pytest.raises(GatewayRejected) as exc:
            run(gateway.create_order(_request()))
        assert str(exc.value) == "Card declined"
        assert exc.value.status_code == 400

    def test_configured_unreachable(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=True, unreachable=True)
        with pytest.raises(GatewayUnreachable):
            run(gateway.create_order(_request()))

    def test_verifies_with_sandbox_key(self):
        body = b'{"orders":[{"orderId":"G1","status":"COMPLETED"}]}'
        gateway = FakeGateway()
        assert gateway.verify_notification(body, signature.sign(body, SANDBOX_SECOND_KEY))
        assert not gateway.verify_notification(body, signature.sign(body, "other"))
        assert not gateway.verify_notification(body, None)


class TestGatewayFactory:
    def test_sandbox_by_default(self):
        set_settings(CheckoutSettings(continue_url="https://shop.test/"))
        gateway = get_gateway()
        assert isinstance(gateway, FakeGateway)
        assert gateway.continue_url == "https://shop.test/"

    def test_payu_when_sandbox_disabled(self):
        set_settings(TEST_SETTINGS)
        gateway = get_gateway()
        assert isinstance(gateway, PayUGateway)
        assert gateway.settings is TEST_SETTINGS

    def test_gateway_is_cached(self):
        assert get_gateway() is get_gateway()

    def test_set_and_reset(self):
        custom = FakeGateway()
        set_gateway(custom)
        assert get_gateway() is custom
        reset_gateway()
        assert get_gateway() is not custom
