"""
Task ledger - per item history of production stage tasks.

Tasks are only ever appended (``open_tasks``) or closed (``close_open_tasks``);
a task with ``finished_at`` unset is the item's current piece of floor work.
"""
from datetime import datetime
from typing import Dict, Any, Iterable, List

from django.db.models import QuerySet

from workshop.models import ProductionTask, WorkOrder, WorkOrderItem
from workshop.services.base_service import BaseService, NotFoundError


class ProductionTaskService(BaseService):
    model = ProductionTask

    @classmethod
    def serialize(cls, task: ProductionTask) -> Dict[str, Any]:
        return {
            "id": task.id,
            "work_order_item_id": task.work_order_item_id,
            "stage": task.stage,
            "stage_display": task.get_stage_display(),
            "started_at": task.started_at.isoformat(),
            "finished_at": task.finished_at.isoformat() if task.finished_at else None,
            "is_open": task.is_open,
            "notes": task.notes,
        }

    @classmethod
    def open_tasks(cls,
                   items: Iterable[WorkOrderItem],
                   stage: str,
                   now: datetime,
                   notes: str = "") -> List[ProductionTask]:
        """Start one task in ``stage`` for every item, all at the same instant."""
        tasks = [
            ProductionTask(
                work_order_item=item,
                stage=stage,
                started_at=now,
                notes=notes,
            )
            for item in items
        ]
        return ProductionTask.objects.bulk_create(tasks)

    @classmethod
    def open_tasks_for_order(cls, order: WorkOrder) -> QuerySet:
        return ProductionTask.objects.filter(
            work_order_item__work_order=order,
            finished_at__isnull=True,
        )

    @classmethod
    def close_open_tasks(cls, order: WorkOrder, stage: str, now: datetime) -> int:
        """
        Finish the order's open tasks in ``stage``. Open tasks of any other
        stage are left alone. Returns the number of tasks closed.
        """
        return cls.open_tasks_for_order(order).filter(stage=stage).update(finished_at=now)

    @classmethod
    def history(cls, item_id: int) -> List[Dict[str, Any]]:
        if not WorkOrderItem.objects.filter(id=item_id).exists():
            raise NotFoundError("Work order item", item_id)

        tasks = ProductionTask.objects.filter(work_order_item_id=item_id).order_by("started_at", "id")
        return [cls.serialize(task) for task in tasks]
