"""
Stage advancement - moves a work order along the status graph and keeps the
per-item task ledger in step with it.

Usage:
    from workshop.services import StageAdvancementService

    StageAdvancementService.advance(order_id=12, target_status="SEWING")
    StageAdvancementService.advance_stage(order_id=12, name="pressing")
"""
import logging
from datetime import datetime
from typing import Dict, Any, List

from django.db import transaction
from django.utils import timezone

from workshop.models import WorkOrder
from workshop.services.base_service import (
    NotFoundError, IllegalTransitionError, InvalidTargetError, with_conflict_retry,
)
from workshop.services.order_service import WorkOrderService
from workshop.services.task_service import ProductionTaskService
from workshop.services.workflow import (
    Status, can_transition, next_statuses, stage_for, resolve_target,
)

logger = logging.getLogger(__name__)


class StageAdvancementService:

    @classmethod
    def _apply_advancement(cls, order: WorkOrder, target: Status, now: datetime) -> Dict[str, int]:
        """
        Close the tasks of the stage being left, open one task per item for
        the stage being entered, then persist the new status.

        ``order`` must be the row locked by the caller's transaction.
        """
        current_stage = stage_for(order.status)
        next_stage = stage_for(target)

        closed = 0
        if current_stage is not None:
            closed = ProductionTaskService.close_open_tasks(order, current_stage, now)

        opened = 0
        if next_stage is not None:
            opened = len(ProductionTaskService.open_tasks(order.items.all(), next_stage, now))

        order.status = target
        order.save(update_fields=["status", "updated_at"])

        return {"closed": closed, "opened": opened}

    @classmethod
    @with_conflict_retry
    def advance(cls, order_id: int, target_status: Any) -> WorkOrder:
        """
        Move an order to ``target_status``.

        The order row is locked for the whole unit of work and the transition
        is validated against that locked row, so two racing requests can never
        both apply a move from the same starting status. Any failure rolls
        back the status and every task write together.
        """
        try:
            target = Status(target_status)
        except ValueError:
            raise InvalidTargetError(target_status)

        with transaction.atomic():
            try:
                order = WorkOrder.objects.select_for_update().filter(id=order_id).first()
            except (ValueError, TypeError):
                order = None
            if order is None:
                raise NotFoundError("Work order", order_id)

            previous = order.status
            if not can_transition(previous, target):
                allowed = [s.value for s in next_statuses(previous)]
                logger.warning(
                    "Rejected transition for %s: %s -> %s (allowed: %s)",
                    order.code, previous, target.value, ", ".join(allowed) or "none"
                )
                raise IllegalTransitionError(previous, target.value, allowed)

            now = timezone.now()
            counts = cls._apply_advancement(order, target, now)

            logger.info(
                "Advanced %s: %s -> %s (%d task(s) closed, %d opened)",
                order.code, previous, target.value, counts["closed"], counts["opened"]
            )

            return WorkOrderService.get(order.id)

    @classmethod
    def advance_stage(cls, order_id: int, name: str) -> WorkOrder:
        """Boundary form of ``advance``: accepts a status or a stage name."""
        return cls.advance(order_id, resolve_target(name))

    @classmethod
    def next_statuses_for(cls, order_id: int) -> Dict[str, Any]:
        order = WorkOrderService.get_or_404(order_id)
        allowed: List[Status] = list(next_statuses(order.status))
        return {
            "work_order_id": order.id,
            "code": order.code,
            "status": order.status,
            "next_statuses": [
                {"value": s.value, "label": s.label}
                for s in allowed
            ],
        }
