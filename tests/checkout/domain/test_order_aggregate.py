"""Tests for Order aggregate creation and structure."""

import pytest
from builders import make_order
from checkout.order.events import OrderPlaced
from checkout.order.order import (
    CustomerDetails,
    InvoiceDetails,
    ItemKind,
    Order,
    OrderItem,
    OrderStatus,
)
from protean.exceptions import ValidationError


class TestOrderPlacement:
    def test_place_sets_identifiers(self):
        order = make_order()
        assert str(order.local_order_id) == "E261018-AAAAAA"
        assert order.gateway_order_id == "G1"

    def test_place_sets_status_to_pending(self):
        order = make_order()
        assert order.status == OrderStatus.PENDING.value

    def test_place_stores_amounts(self):
        order = make_order(total=32.5, amount_minor_units=3250)
        assert order.total == 32.5
        assert order.amount_minor_units == 3250
        assert order.currency == "PLN"

    def test_place_sets_timestamps(self):
        order = make_order()
        assert order.created_at is not None
        assert order.updated_at == order.created_at
        assert order.paid_at is None

    def test_place_builds_items(self):
        order = make_order(
            items=[
                {
                    "name": "Twój box",
                    "kind": ItemKind.CUSTOM_BOX.value,
                    "unit_price": 45.0,
                    "unit_price_minor": 4500,
                    "quantity": 2,
                    "contents": ["Sałatka", "Zupa dnia"],
                },
                {"name": "Box 1", "unit_price": 32.0, "unit_price_minor": 3200},
            ]
        )
        assert len(order.items) == 2
        first = order.items[0]
        assert isinstance(first, OrderItem)
        assert first.kind == "custom-box"
        assert first.unit_price_minor == 4500
        assert first.quantity == 2
        assert first.contents == ["Sałatka", "Zupa dnia"]
        assert order.items[1].quantity == 1

    def test_place_sets_customer(self):
        order = make_order()
        assert isinstance(order.customer, CustomerDetails)
        assert order.customer.full_name == "Jan Kowalski"
        assert order.customer.email == "jan@example.com"

    def test_place_without_customer(self):
        order = make_order(customer=None)
        assert order.customer is None

    def test_place_sets_invoice_and_notes(self):
        order = make_order(invoice={"tax_id": "5250001009", "company": "Firma Sp. z o.o."}, notes="Bez cebuli")
        assert isinstance(order.invoice, InvoiceDetails)
        assert order.invoice.tax_id == "5250001009"
        assert order.notes == "Bez cebuli"

    def test_place_raises_order_placed(self):
        order = make_order()
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.local_order_id == "E261018-AAAAAA"
        assert event.gateway_order_id == "G1"
        assert event.amount_minor_units == 3200
        assert event.item_count == 1

    def test_place_rejects_empty_items(self):
        with pytest.raises(ValidationError) as exc:
            make_order(items=[])
        assert "items" in exc.value.messages

    def test_place_rejects_non_positive_minor_units(self):
        with pytest.raises(ValidationError):
            make_order(amount_minor_units=0)

    def test_place_rejects_unknown_item_kind(self):
        with pytest.raises(ValidationError):
            make_order(items=[{"name": "Box", "kind": "crate", "unit_price": 1.0, "unit_price_minor": 100}])


class TestOrderInvariants:
    def test_completed_order_requires_paid_at(self):
        order = make_order()
        with pytest.raises(ValidationError) as exc:
            order.status = OrderStatus.COMPLETED.value
        assert "paid_at" in exc.value.messages

    def test_gateway_order_id_is_required(self):
        with pytest.raises(ValidationError):
            Order(
                local_order_id="E261018-BBBBBB",
                total=10.0,
                amount_minor_units=1000,
            )

    def test_is_terminal(self):
        order = make_order()
        assert order.is_terminal is False
        order.apply_gateway_status("CANCELED")
        assert order.is_terminal is True
