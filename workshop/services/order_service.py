import logging
from typing import Dict, Any, List

from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import Prefetch
from django.utils import timezone

from workshop.models import (
    WorkOrder, WorkOrderItem, ProductionTask, Payment,
    Customer, Branch, Fabric, MeasurementProfile, GarmentType,
)
from workshop.services.base_service import (
    BaseService, ValidationError, NotFoundError, TransactionConflictError,
    to_decimal, round_decimal, to_datetime, require_choice, generate_order_code,
)
from workshop.services.task_service import ProductionTaskService
from workshop.services.workflow import Status, Stage, stage_for, next_statuses

logger = logging.getLogger(__name__)

INITIAL_TASK_NOTE = "Started automatically at order creation."


class WorkOrderService(BaseService):
    model = WorkOrder

    @classmethod
    def detailed_queryset(cls):
        return cls.model.objects.select_related("customer", "branch").prefetch_related(
            Prefetch(
                "items",
                queryset=WorkOrderItem.objects.select_related("fabric", "measurement_profile").prefetch_related(
                    Prefetch("production_tasks", queryset=ProductionTask.objects.order_by("started_at", "id"))
                ),
            ),
            Prefetch("payments", queryset=Payment.objects.order_by("-created_at", "-id")),
        )

    @classmethod
    def serialize_item(cls, item: WorkOrderItem) -> Dict[str, Any]:
        return {
            "id": item.id,
            "garment_type": item.garment_type,
            "price": str(item.price),
            "options": item.options,
            "measurement_profile_id": item.measurement_profile_id,
            "measurement_profile_version": item.measurement_profile.version,
            "fabric_id": item.fabric_id,
            "fabric": {
                "id": item.fabric.id,
                "sku": item.fabric.sku,
                "name": item.fabric.name,
            } if item.fabric else None,
            "production_tasks": [
                ProductionTaskService.serialize(task)
                for task in item.production_tasks.all()
            ],
        }

    @classmethod
    def serialize(cls, order: WorkOrder,
                  include_items: bool = True,
                  include_payments: bool = True) -> Dict[str, Any]:
        stage = stage_for(order.status)
        data = {
            "id": order.id,
            "uuid": str(order.uuid),
            "code": order.code,

            "customer_id": order.customer_id,
            "customer": order.customer.name,
            "branch_id": order.branch_id,
            "branch": order.branch.name,

            "status": order.status,
            "status_display": order.get_status_display(),
            "current_stage": stage.value if stage else None,
            "next_statuses": [s.value for s in next_statuses(order.status)],
            "priority": order.priority,

            "total": str(order.total),
            "deposit": str(order.deposit),
            "balance": str(order.balance),

            "due_date": order.due_date.isoformat(),
            "is_late": order.is_late,
            "notes": order.notes,
            "created_at": order.created_at.isoformat(),
            "updated_at": order.updated_at.isoformat(),
        }

        if include_items:
            data["items"] = [cls.serialize_item(item) for item in order.items.all()]

        if include_payments:
            from workshop.services.payment_service import PaymentService
            data["payments"] = [PaymentService.serialize(p) for p in order.payments.all()]

        return data

    @classmethod
    def get(cls, order_id: int = None, code: str = None) -> WorkOrder:
        if order_id is None and not code:
            raise ValidationError("id or code is required", "id")

        queryset = cls.detailed_queryset()
        try:
            if order_id is not None:
                order = queryset.filter(id=order_id).first()
            else:
                order = queryset.filter(code=code).first()
        except (ValueError, TypeError):
            order = None

        if not order:
            raise NotFoundError("Work order", order_id if order_id is not None else code)
        return order

    @classmethod
    def _validate_items(cls, customer: Customer, items: List[Dict]) -> List[Dict]:
        if not isinstance(items, (list, tuple)):
            raise ValidationError("items must be a list", "items")
        if not items:
            raise ValidationError("Order must contain at least one item", "items")

        cleaned = []
        for idx, item in enumerate(items):
            if not isinstance(item, dict):
                raise ValidationError(f"Item {idx} must be an object", f"items[{idx}]")
            profile_id = item.get("measurement_profile_id")
            if not profile_id:
                raise ValidationError(
                    f"Item {idx} is missing measurement_profile_id", f"items[{idx}].measurement_profile_id"
                )

            try:
                profile = MeasurementProfile.objects.get(id=profile_id)
            except (MeasurementProfile.DoesNotExist, ValueError, TypeError):
                raise NotFoundError("Measurement profile", profile_id)

            if profile.customer_id != customer.id:
                raise ValidationError(
                    f"Measurement profile {profile_id} belongs to another customer",
                    f"items[{idx}].measurement_profile_id"
                )

            fabric = None
            fabric_id = item.get("fabric_id")
            if fabric_id:
                try:
                    fabric = Fabric.objects.get(id=fabric_id)
                except (Fabric.DoesNotExist, ValueError, TypeError):
                    raise NotFoundError("Fabric", fabric_id)

            price = to_decimal(item.get("price", 0), default=None)
            if price is None or price < 0:
                raise ValidationError(f"Item {idx} price must be 0 or more", f"items[{idx}].price")

            garment_type = require_choice(
                item.get("garment_type", GarmentType.THAWB), GarmentType, f"items[{idx}].garment_type"
            )

            cleaned.append({
                "garment_type": garment_type,
                "measurement_profile": profile,
                "fabric": fabric,
                "price": round_decimal(price),
                "options": item.get("options"),
            })

        return cleaned

    @classmethod
    def _insert_with_unique_code(cls, now, **fields) -> WorkOrder:
        attempts = max(1, settings.ORDER_CODE_RETRIES)

        for attempt in range(attempts):
            code = generate_order_code(now, attempt)
            try:
                with transaction.atomic():
                    return cls.model.objects.create(code=code, **fields)
            except IntegrityError:
                if not cls.model.objects.filter(code=code).exists():
                    raise
                logger.warning("Work order code %s already taken, retrying", code)

        raise TransactionConflictError("Could not allocate a unique work order code, try again")

    @classmethod
    @transaction.atomic
    def create(cls,
               customer_id: int,
               branch_id: int,
               due_date: Any,
               items: List[Dict],
               total: Any,
               deposit: Any = 0,
               priority: str = WorkOrder.Priority.NORMAL,
               notes: str = "",
               deposit_method: str = Payment.Method.CASH) -> WorkOrder:
        """
        Open a work order with its items.

        Every item starts production right away with an open CUTTING task,
        whether or not a deposit was taken. A non-zero deposit is booked as
        the order's first payment so the balance always equals total minus
        payments.
        """
        try:
            customer = Customer.objects.get(id=customer_id)
        except (Customer.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Customer", customer_id)

        try:
            branch = Branch.objects.get(id=branch_id)
        except (Branch.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Branch", branch_id)

        total = to_decimal(total, default=None)
        if total is None or total < 0:
            raise ValidationError("total must be 0 or more", "total")

        deposit = to_decimal(deposit, default=None)
        if deposit is None or deposit < 0:
            raise ValidationError("deposit must be 0 or more", "deposit")
        if deposit > total:
            raise ValidationError("deposit cannot exceed total", "deposit")

        require_choice(priority, WorkOrder.Priority, "priority")
        if deposit > 0:
            require_choice(deposit_method, Payment.Method, "deposit_method")

        due_date = to_datetime(due_date, "due_date")
        cleaned_items = cls._validate_items(customer, items)

        total = round_decimal(total)
        deposit = round_decimal(deposit)
        now = timezone.now()

        order = cls._insert_with_unique_code(
            now,
            customer=customer,
            branch=branch,
            due_date=due_date,
            priority=priority,
            notes=notes or "",
            total=total,
            deposit=deposit,
            balance=total - deposit,
            status=Status.CONFIRMED if deposit > 0 else Status.NEW,
        )

        created_items = [
            WorkOrderItem.objects.create(work_order=order, **item)
            for item in cleaned_items
        ]
        ProductionTaskService.open_tasks(created_items, Stage.CUTTING, now, notes=INITIAL_TASK_NOTE)

        if deposit > 0:
            Payment.objects.create(
                work_order=order,
                amount=deposit,
                method=deposit_method,
                txn_ref=None,
            )

        logger.info(
            "Created work order %s for customer %s at %s: %d item(s), total=%s deposit=%s status=%s",
            order.code, customer.id, branch.name, len(created_items), total, deposit, order.status
        )

        return cls.get(order.id)
