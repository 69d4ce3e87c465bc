import logging
from typing import Dict, Any, Optional

from django.db import transaction
from django.db.models import Q

from workshop.models import Fabric
from workshop.services.base_service import (
    BaseService, ValidationError, paginate_queryset, to_decimal, round_decimal,
)

logger = logging.getLogger(__name__)


class FabricService(BaseService):
    model = Fabric

    @classmethod
    def serialize(cls, fabric: Fabric) -> Dict[str, Any]:
        return {
            "id": fabric.id,
            "uuid": str(fabric.uuid),
            "sku": fabric.sku,
            "name": fabric.name,
            "color": fabric.color,
            "composition": fabric.composition,
            "width_cm": str(fabric.width_cm),
            "stock_qty": fabric.stock_qty,
            "price": str(fabric.price),
            "updated_at": fabric.updated_at.isoformat(),
        }

    @classmethod
    def list(cls, page: int = 1, per_page: int = 50, search: str = None) -> Dict[str, Any]:
        queryset = cls.model.objects.all()

        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(sku__icontains=search) |
                Q(color__icontains=search)
            )

        items, pagination = paginate_queryset(queryset.order_by("name", "id"), page, per_page)
        return {
            "items": [cls.serialize(f) for f in items],
            "pagination": pagination,
        }

    @classmethod
    def _clean_quantity(cls, value: Any) -> int:
        try:
            qty = int(value)
        except (ValueError, TypeError):
            raise ValidationError("stock_qty must be a whole number", "stock_qty")
        if qty < 0:
            raise ValidationError("stock_qty cannot be negative", "stock_qty")
        return qty

    @classmethod
    def _clean_amount(cls, value: Any, field: str, places: int = 2):
        amount = to_decimal(value, default=None)
        if amount is None or amount < 0:
            raise ValidationError(f"{field} must be 0 or more", field)
        return round_decimal(amount, places)

    @classmethod
    @transaction.atomic
    def create(cls,
               sku: str,
               name: str,
               color: str,
               composition: str,
               width_cm: Any,
               price: Any,
               stock_qty: Any = 0) -> Fabric:
        sku = (sku or "").strip()
        if not sku:
            raise ValidationError("sku is required", "sku")
        if not (name or "").strip():
            raise ValidationError("name is required", "name")

        if cls.model.objects.filter(sku=sku).exists():
            raise ValidationError(f"Fabric with SKU {sku} already exists", "sku")

        fabric = cls.model.objects.create(
            sku=sku,
            name=name.strip(),
            color=color or "",
            composition=composition or "",
            width_cm=cls._clean_amount(width_cm, "width_cm", 1),
            price=cls._clean_amount(price, "price"),
            stock_qty=cls._clean_quantity(stock_qty),
        )
        logger.info("Created fabric %s", fabric.sku)
        return fabric

    @classmethod
    @transaction.atomic
    def update(cls, fabric_id: int, **data) -> Fabric:
        fabric = cls.get_or_404(fabric_id)

        sku: Optional[str] = data.get("sku")
        if sku is not None:
            sku = sku.strip()
            if not sku:
                raise ValidationError("sku cannot be empty", "sku")
            if cls.model.objects.filter(sku=sku).exclude(id=fabric.id).exists():
                raise ValidationError(f"Fabric with SKU {sku} already exists", "sku")
            fabric.sku = sku

        for field in ("name", "color", "composition"):
            if data.get(field) is not None:
                setattr(fabric, field, data[field])

        if data.get("width_cm") is not None:
            fabric.width_cm = cls._clean_amount(data["width_cm"], "width_cm", 1)
        if data.get("price") is not None:
            fabric.price = cls._clean_amount(data["price"], "price")
        if data.get("stock_qty") is not None:
            fabric.stock_qty = cls._clean_quantity(data["stock_qty"])

        fabric.save()
        logger.info("Updated fabric %s", fabric.sku)
        return fabric
