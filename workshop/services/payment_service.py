import logging
from typing import Dict, Any, List
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum

from workshop.models import Payment, WorkOrder
from workshop.services.base_service import (
    BaseService, NotFoundError, InvalidAmountError,
    to_decimal, round_decimal, require_choice, with_conflict_retry,
)

logger = logging.getLogger(__name__)


class PaymentService(BaseService):
    model = Payment

    @classmethod
    def serialize(cls, payment: Payment) -> Dict[str, Any]:
        return {
            "id": payment.id,
            "uuid": str(payment.uuid),
            "work_order_id": payment.work_order_id,
            "amount": str(payment.amount),
            "method": payment.method,
            "method_display": payment.get_method_display(),
            "txn_ref": payment.txn_ref,
            "created_at": payment.created_at.isoformat(),
        }

    @classmethod
    @with_conflict_retry
    def record(cls, order_id: int, amount: Any, method: str, txn_ref: str = None) -> Payment:
        """
        Append a payment and lower the order's balance by the same amount,
        never below zero. The order's status is not touched.
        """
        value = to_decimal(amount, default=None)
        if value is None or value <= 0:
            raise InvalidAmountError(amount)
        value = round_decimal(value)
        if value <= 0:
            raise InvalidAmountError(amount)

        require_choice(method, Payment.Method, "method")

        with transaction.atomic():
            try:
                order = WorkOrder.objects.select_for_update().filter(id=order_id).first()
            except (ValueError, TypeError):
                order = None
            if order is None:
                raise NotFoundError("Work order", order_id)

            payment = Payment.objects.create(
                work_order=order,
                amount=value,
                method=method,
                txn_ref=txn_ref or None,
            )

            order.balance = max(order.balance - value, Decimal("0.00"))
            order.save(update_fields=["balance", "updated_at"])

            logger.info(
                "Recorded %s payment of %s on %s, balance now %s",
                method, value, order.code, order.balance
            )

        return payment

    @classmethod
    def list_for_order(cls, order_id: int) -> List[Dict[str, Any]]:
        if not WorkOrder.objects.filter(id=order_id).exists():
            raise NotFoundError("Work order", order_id)

        payments = cls.model.objects.filter(work_order_id=order_id).order_by("-created_at", "-id")
        return [cls.serialize(p) for p in payments]

    @classmethod
    def summary(cls, order_id: int) -> Dict[str, Any]:
        try:
            order = WorkOrder.objects.get(id=order_id)
        except (WorkOrder.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Work order", order_id)

        paid = order.payments.aggregate(total=Sum("amount"))["total"] or Decimal("0")
        return {
            "work_order_id": order.id,
            "code": order.code,
            "total": str(order.total),
            "amount_paid": str(round_decimal(paid)),
            "balance": str(order.balance),
        }
