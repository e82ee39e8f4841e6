"""Shared BDD fixtures and step definitions for the Checkout domain."""

import pytest
from builders import make_order
from checkout.order.order import OrderStatus
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def reports():
    """Outcome and paid_at after each status report, in order."""
    return []


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending order", target_fixture="order")
def pending_order():
    order = make_order()
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == OrderStatus(status).value


@then("the order has a payment time")
def order_has_payment_time(order):
    assert order.paid_at is not None


@then("the order has no payment time")
def order_has_no_payment_time(order):
    assert order.paid_at is None
