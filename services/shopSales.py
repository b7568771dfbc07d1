from core.imports import datetime, timedelta
from core.errors import ValidationError
from models.orderModels import Order
from models.statuses import OrderStatus


class ShopSales:
    """Revenue of a shop's completed orders, grouped per day."""

    def __init__(self, session, clock=datetime.utcnow):
        self.session = session
        self.clock = clock

    def daily(self, shop_id, days=7):
        if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
            raise ValidationError("days must be a positive number")

        since = self.clock() - timedelta(days=days)
        orders = (
            self.session.query(Order)
            .filter(
                Order.shop_id == shop_id,
                Order.status == OrderStatus.COMPLETED.value,
                Order.order_time >= since,
            )
            .all()
        )

        grouped = {}
        for order in orders:
            day = grouped.setdefault(order.order_time.date(), {"revenue": 0, "orders": 0})
            day["revenue"] += order.total_cost
            day["orders"] += 1

        return [
            {
                "date": day.strftime("%d/%m"),
                "revenue": totals["revenue"],
                "orders": totals["orders"],
                "average": totals["revenue"] / totals["orders"],
            }
            for day, totals in sorted(grouped.items())
        ]
