"""Order Store: repository for the Order aggregate."""

from datetime import UTC, date, datetime, time, timedelta

from checkout.domain import checkout
from checkout.order.order import Order


@checkout.repository(part_of=Order)
class OrderRepository:
    """Keyed by ``local_order_id``; also looked up by the gateway's order id."""

    def find_by_gateway_order_id(self, gateway_order_id: str) -> list[Order]:
        """Return every order carrying this gateway id.

        More than one match breaks the one-to-one mapping; callers treat that
        as a reconciliation error rather than picking one.
        """
        return self._dao.query.filter(gateway_order_id=gateway_order_id).all().items

    def list_orders(self, page: int = 1, limit: int = 50, day: date | None = None):
        """Newest first, optionally limited to one UTC calendar day."""
        query = self._dao.query
        if day is not None:
            start = datetime.combine(day, time.min, tzinfo=UTC)
            query = query.filter(created_at__gte=start, created_at__lt=start + timedelta(days=1))

        return query.order_by("-created_at").offset((page - 1) * limit).limit(limit).all()
