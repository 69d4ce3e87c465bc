from typing import Dict, Any, List
from decimal import Decimal

from django.db.models import Count, Sum, Prefetch
from django.utils import timezone

from workshop.models import WorkOrder, WorkOrderItem, Payment
from workshop.services.base_service import round_decimal
from workshop.services.workflow import Status, FLOOR_STATUSES, FINISHED_STATUSES

LATE_ORDERS_LIMIT = 6
RECENT_ORDERS_LIMIT = 10


class DashboardService:

    @classmethod
    def _serialize_row(cls, order: WorkOrder) -> Dict[str, Any]:
        return {
            "id": order.id,
            "code": order.code,
            "customer": order.customer.name,
            "branch": order.branch.name,
            "status": order.status,
            "status_display": order.get_status_display(),
            "priority": order.priority,
            "due_date": order.due_date.isoformat(),
            "balance": str(order.balance),
        }

    @classmethod
    def overview(cls) -> Dict[str, Any]:
        now = timezone.now()
        today = timezone.localdate(now)
        orders = WorkOrder.objects.select_related("customer", "branch")

        total_orders = orders.count()
        active_orders = orders.exclude(status__in=[Status.CLOSED, Status.DELIVERED]).count()
        due_today = orders.filter(due_date__date=today).count()
        payments_total = Payment.objects.aggregate(total=Sum("amount"))["total"] or Decimal("0")

        counts = dict(
            orders.filter(status__in=FLOOR_STATUSES)
            .values_list("status")
            .annotate(count=Count("id"))
            .order_by()
        )
        wip = [
            {
                "status": status.value,
                "label": status.label,
                "count": counts.get(status.value, 0),
            }
            for status in FLOOR_STATUSES
        ]

        late = (
            orders.filter(due_date__lt=now)
            .exclude(status__in=FINISHED_STATUSES)
            .order_by("due_date", "id")[:LATE_ORDERS_LIMIT]
        )
        recent = orders.order_by("-created_at", "-id")[:RECENT_ORDERS_LIMIT]

        return {
            "metrics": {
                "total_orders": total_orders,
                "active_orders": active_orders,
                "due_today": due_today,
                "payments_total": str(round_decimal(payments_total)),
            },
            "wip": wip,
            "late_orders": [cls._serialize_row(o) for o in late],
            "recent_orders": [cls._serialize_row(o) for o in recent],
        }

    @classmethod
    def factory_board(cls) -> List[Dict[str, Any]]:
        orders = (
            WorkOrder.objects.filter(status__in=FLOOR_STATUSES)
            .select_related("customer", "branch")
            .prefetch_related(Prefetch("items", queryset=WorkOrderItem.objects.order_by("id")))
            .order_by("due_date", "id")
        )

        board = []
        for order in orders:
            items = list(order.items.all())
            row = cls._serialize_row(order)
            row["garment_type"] = items[0].garment_type if items else None
            row["item_count"] = len(items)
            board.append(row)
        return board
