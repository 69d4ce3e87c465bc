import logging
from typing import Dict, Any, List

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from workshop.models import Shipment, ShipmentScan, Branch, WorkOrder
from workshop.services.base_service import (
    BaseService, ValidationError, NotFoundError, require_choice,
)

logger = logging.getLogger(__name__)

SYSTEM_SCANNER = "System"


class ShipmentService(BaseService):
    """Inter-branch shipments. Scans are a tracking trail only; order status is never changed here."""

    model = Shipment

    @classmethod
    def serialize_scan(cls, scan: ShipmentScan) -> Dict[str, Any]:
        return {
            "id": scan.id,
            "shipment_id": scan.shipment_id,
            "direction": scan.direction,
            "work_order_id": scan.work_order_id,
            "work_order_code": scan.work_order.code,
            "scanned_by_name": scan.scanned_by_name,
            "scanned_at": scan.scanned_at.isoformat(),
        }

    @classmethod
    def serialize(cls, shipment: Shipment, include_scans: bool = True) -> Dict[str, Any]:
        data = {
            "id": shipment.id,
            "uuid": str(shipment.uuid),
            "date": shipment.date.isoformat(),
            "from_branch_id": shipment.from_branch_id,
            "from_branch": shipment.from_branch.name,
            "to_branch_id": shipment.to_branch_id,
            "to_branch": shipment.to_branch.name,
            "notes": shipment.notes,
        }
        if include_scans:
            data["scans"] = [cls.serialize_scan(s) for s in shipment.scans.all()]
        return data

    @classmethod
    def list(cls) -> List[Dict[str, Any]]:
        shipments = cls.model.objects.select_related("from_branch", "to_branch").prefetch_related(
            Prefetch(
                "scans",
                queryset=ShipmentScan.objects.select_related("work_order").order_by("-scanned_at", "-id"),
            )
        ).order_by("-date", "-id")
        return [cls.serialize(s) for s in shipments]

    @classmethod
    def _get_branch(cls, branch_id: int, field: str) -> Branch:
        if not branch_id:
            raise ValidationError(f"{field} is required", field)
        try:
            return Branch.objects.get(id=branch_id)
        except (Branch.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Branch", branch_id)

    @classmethod
    @transaction.atomic
    def create(cls,
               from_branch_id: int,
               to_branch_id: int,
               order_ids: List[int],
               notes: str = "") -> Shipment:
        from_branch = cls._get_branch(from_branch_id, "from_branch_id")
        to_branch = cls._get_branch(to_branch_id, "to_branch_id")

        if from_branch.id == to_branch.id:
            raise ValidationError("A shipment cannot go to the branch it leaves from", "to_branch_id")

        if not order_ids:
            raise ValidationError("At least one work order is required", "order_ids")

        try:
            unique_ids = list(dict.fromkeys(int(i) for i in order_ids))
        except (ValueError, TypeError):
            raise ValidationError("order_ids must be work order ids", "order_ids")

        orders = list(WorkOrder.objects.filter(id__in=unique_ids))

        found = {o.id for o in orders}
        missing = [i for i in unique_ids if i not in found]
        if missing:
            raise NotFoundError("Work order", ", ".join(str(i) for i in missing))

        shipment = cls.model.objects.create(
            from_branch=from_branch,
            to_branch=to_branch,
            notes=notes or "",
        )

        now = timezone.now()
        ShipmentScan.objects.bulk_create([
            ShipmentScan(
                shipment=shipment,
                work_order=order,
                direction=ShipmentScan.Direction.OUT,
                scanned_by_name=SYSTEM_SCANNER,
                scanned_at=now,
            )
            for order in orders
        ])

        logger.info(
            "Created shipment %s from %s to %s with %d order(s)",
            shipment.id, from_branch.name, to_branch.name, len(orders)
        )
        return shipment

    @classmethod
    @transaction.atomic
    def record_scan(cls,
                    shipment_id: int,
                    work_order_id: int,
                    direction: str,
                    scanned_by_name: str) -> ShipmentScan:
        shipment = cls.get_or_404(shipment_id)

        try:
            order = WorkOrder.objects.get(id=work_order_id)
        except (WorkOrder.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Work order", work_order_id)

        require_choice(direction, ShipmentScan.Direction, "direction")

        scanned_by_name = (scanned_by_name or "").strip()
        if len(scanned_by_name) < 2:
            raise ValidationError("scanned_by_name must be at least 2 characters", "scanned_by_name")

        scan = ShipmentScan.objects.create(
            shipment=shipment,
            work_order=order,
            direction=direction,
            scanned_by_name=scanned_by_name,
            scanned_at=timezone.now(),
        )
        logger.info("Scan %s for %s on shipment %s by %s", direction, order.code, shipment.id, scanned_by_name)
        return scan
