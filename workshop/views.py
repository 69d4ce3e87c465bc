from django.http import JsonResponse
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework.exceptions import ParseError, UnsupportedMediaType
from rest_framework.views import APIView
import logging

from workshop.services import (
    ServiceError, ValidationError, TransactionConflictError,
    WorkOrderService, StageAdvancementService, ProductionTaskService, PaymentService,
    CustomerService, FabricService, MeasurementService, ShipmentService,
    DashboardService,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    "NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "ILLEGAL_TRANSITION": 400,
    "INVALID_TARGET": 400,
    "INVALID_AMOUNT": 400,
    "TRANSACTION_CONFLICT": 409,
}


def error_response(message: str, code: str = "error", status: int = 400, details: dict = None):
    data = {"success": False, "error": {"code": code, "message": message}}
    if details:
        data["error"]["details"] = details
    return JsonResponse(data, status=status)


def handle_service_error(e: Exception):
    if isinstance(e, ValidationError):
        details = dict(e.details)
        if e.field:
            details["field"] = e.field
        return error_response(e.message, e.code, 400, details)
    elif isinstance(e, TransactionConflictError):
        return error_response(e.message, e.code, 409, e.details)
    elif isinstance(e, ServiceError):
        return error_response(e.message, e.code, ERROR_STATUS.get(e.code, 400), e.details)
    else:
        logger.exception("Unhandled error while serving request")
        return error_response("Internal server error", "server_error", 500)


def pick(data: dict, *keys, default=None):
    """First present key wins; lets clients send ``workOrderId`` or ``work_order_id``."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def to_int(value, field: str):
    try:
        return int(value)
    except (ValueError, TypeError):
        raise ValidationError(f"{field} must be an integer", field)


def json_schema(tag: str):
    """Free-form JSON bodies in and out, grouped under ``tag``."""
    return extend_schema(tags=[tag], request=OpenApiTypes.OBJECT, responses=OpenApiTypes.OBJECT)


class BaseWorkshopView(APIView):
    """
    DRF view so the default authentication, permission and throttle classes
    apply and the route shows up in ``/api/schema/``. Handlers still answer
    with the ``success``/``error`` JSON envelope.
    """

    def get_json_body(self, request):
        try:
            body = request.data
        except (ParseError, UnsupportedMediaType):
            return {}
        return body if isinstance(body, dict) else {}

    def success(self, data: dict, status: int = 200):
        return JsonResponse({"success": True, **data}, status=status)


# ==================== PRODUCTION ====================

@json_schema("production")
class MoveStageView(BaseWorkshopView):

    def patch(self, request):
        try:
            data = self.get_json_body(request)
            order_id = pick(data, "workOrderId", "work_order_id")
            to_stage = pick(data, "toStage", "to_stage")

            if order_id is None:
                raise ValidationError("workOrderId is required", "workOrderId")
            if to_stage is None:
                raise ValidationError("toStage is required", "toStage")

            order = StageAdvancementService.advance_stage(order_id, to_stage)
            return self.success({"work_order": WorkOrderService.serialize(order)})
        except Exception as e:
            return handle_service_error(e)


@json_schema("production")
class NextStatusesView(BaseWorkshopView):

    def get(self, request, order_id):
        try:
            return self.success(StageAdvancementService.next_statuses_for(order_id))
        except Exception as e:
            return handle_service_error(e)


@json_schema("production")
class ItemTaskHistoryView(BaseWorkshopView):

    def get(self, request, item_id):
        try:
            return self.success({"tasks": ProductionTaskService.history(item_id)})
        except Exception as e:
            return handle_service_error(e)


# ==================== WORK ORDERS ====================

@json_schema("work-orders")
class WorkOrderListView(BaseWorkshopView):

    def get(self, request):
        try:
            order_id = request.GET.get("id")
            code = request.GET.get("code")
            if not order_id and not code:
                raise ValidationError("id or code is required", "id")

            order = WorkOrderService.get(
                order_id=to_int(order_id, "id") if order_id else None,
                code=code,
            )
            return self.success({"work_order": WorkOrderService.serialize(order)})
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            raw_items = pick(data, "items", default=[])
            if not isinstance(raw_items, list):
                raise ValidationError("items must be a list", "items")

            items = [
                {
                    "garment_type": pick(item, "garmentType", "garment_type", default="THAWB"),
                    "measurement_profile_id": pick(item, "measurementProfileId", "measurement_profile_id"),
                    "fabric_id": pick(item, "fabricId", "fabric_id"),
                    "price": pick(item, "price", default=0),
                    "options": pick(item, "optionsJson", "options"),
                } if isinstance(item, dict) else item
                for item in raw_items
            ]

            order = WorkOrderService.create(
                customer_id=pick(data, "customerId", "customer_id"),
                branch_id=pick(data, "branchId", "branch_id"),
                due_date=pick(data, "dueDate", "due_date"),
                items=items,
                total=pick(data, "total"),
                deposit=pick(data, "deposit", default=0),
                priority=pick(data, "priority", default="NORMAL"),
                notes=pick(data, "notes", default=""),
                deposit_method=pick(data, "depositMethod", "deposit_method", default="CASH"),
            )
            return self.success({"work_order": WorkOrderService.serialize(order)}, 201)
        except Exception as e:
            return handle_service_error(e)


@json_schema("work-orders")
class WorkOrderDetailView(BaseWorkshopView):

    def get(self, request, order_id):
        try:
            order = WorkOrderService.get(order_id=order_id)
            return self.success({"work_order": WorkOrderService.serialize(order)})
        except Exception as e:
            return handle_service_error(e)


@json_schema("work-orders")
class WorkOrderPaymentsView(BaseWorkshopView):

    def get(self, request, order_id):
        try:
            return self.success({
                "payments": PaymentService.list_for_order(order_id),
                "summary": PaymentService.summary(order_id),
            })
        except Exception as e:
            return handle_service_error(e)

    def post(self, request, order_id):
        try:
            data = self.get_json_body(request)
            payment = PaymentService.record(
                order_id,
                amount=pick(data, "amount"),
                method=pick(data, "method"),
                txn_ref=pick(data, "txnRef", "txn_ref"),
            )
            return self.success({
                "payment": PaymentService.serialize(payment),
                "summary": PaymentService.summary(order_id),
            }, 201)
        except Exception as e:
            return handle_service_error(e)


# ==================== CATALOG ====================

@json_schema("catalog")
class CustomerListView(BaseWorkshopView):

    def get(self, request):
        try:
            customers = CustomerService.search(request.GET.get("search") or request.GET.get("q"))
            return self.success({"customers": customers})
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            customer = CustomerService.create(
                name=pick(data, "name"),
                phone=pick(data, "phone"),
                alt_phone=pick(data, "altPhone", "alt_phone"),
                preferred_lang=pick(data, "preferredLang", "preferred_lang"),
                default_branch_id=pick(data, "defaultBranchId", "default_branch_id"),
            )
            return self.success({"customer": CustomerService.serialize(customer)}, 201)
        except Exception as e:
            return handle_service_error(e)


@json_schema("catalog")
class FabricListView(BaseWorkshopView):

    def get(self, request):
        try:
            result = FabricService.list(
                page=to_int(request.GET.get("page", 1), "page"),
                per_page=to_int(request.GET.get("per_page", 50), "per_page"),
                search=request.GET.get("search"),
            )
            return self.success(result)
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            fabric = FabricService.create(
                sku=pick(data, "sku"),
                name=pick(data, "name"),
                color=pick(data, "color", default=""),
                composition=pick(data, "composition", default=""),
                width_cm=pick(data, "widthCm", "width_cm"),
                price=pick(data, "price"),
                stock_qty=pick(data, "stockQty", "stock_qty", default=0),
            )
            return self.success({"fabric": FabricService.serialize(fabric)}, 201)
        except Exception as e:
            return handle_service_error(e)

    def patch(self, request):
        try:
            data = self.get_json_body(request)
            fabric_id = pick(data, "id")
            if fabric_id is None:
                raise ValidationError("id is required", "id")

            fabric = FabricService.update(
                fabric_id,
                sku=pick(data, "sku"),
                name=pick(data, "name"),
                color=pick(data, "color"),
                composition=pick(data, "composition"),
                width_cm=pick(data, "widthCm", "width_cm"),
                price=pick(data, "price"),
                stock_qty=pick(data, "stockQty", "stock_qty"),
            )
            return self.success({"fabric": FabricService.serialize(fabric)})
        except Exception as e:
            return handle_service_error(e)


@json_schema("catalog")
class MeasurementListView(BaseWorkshopView):

    def get(self, request):
        try:
            customer_id = request.GET.get("customerId") or request.GET.get("customer_id")
            if not customer_id:
                raise ValidationError("customerId is required", "customerId")

            profiles = MeasurementService.list_for_customer(to_int(customer_id, "customerId"))
            return self.success({"measurements": profiles})
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            profile = MeasurementService.create(
                customer_id=pick(data, "customerId", "customer_id"),
                taken_by_name=pick(data, "takenByName", "taken_by_name"),
                data=pick(data, "data", default={}),
                garment_type=pick(data, "garmentType", "garment_type", default="THAWB"),
                taken_at=pick(data, "takenAt", "taken_at"),
            )
            return self.success({"measurement": MeasurementService.serialize(profile)}, 201)
        except Exception as e:
            return handle_service_error(e)


@json_schema("shipments")
class ShipmentListView(BaseWorkshopView):

    def get(self, request):
        try:
            return self.success({"shipments": ShipmentService.list()})
        except Exception as e:
            return handle_service_error(e)

    def post(self, request):
        try:
            data = self.get_json_body(request)
            shipment = ShipmentService.create(
                from_branch_id=pick(data, "fromBranchId", "from_branch_id"),
                to_branch_id=pick(data, "toBranchId", "to_branch_id"),
                order_ids=pick(data, "orderIds", "order_ids", default=[]),
                notes=pick(data, "notes", default=""),
            )
            return self.success({"shipment": ShipmentService.serialize(shipment)}, 201)
        except Exception as e:
            return handle_service_error(e)


@json_schema("shipments")
class ShipmentScanView(BaseWorkshopView):

    def post(self, request):
        try:
            data = self.get_json_body(request)
            scan = ShipmentService.record_scan(
                shipment_id=pick(data, "shipmentId", "shipment_id"),
                work_order_id=pick(data, "workOrderId", "work_order_id"),
                direction=pick(data, "direction"),
                scanned_by_name=pick(data, "scannedByName", "scanned_by_name"),
            )
            return self.success({"scan": ShipmentService.serialize_scan(scan)}, 201)
        except Exception as e:
            return handle_service_error(e)


# ==================== REPORTING ====================

@json_schema("reporting")
class DashboardView(BaseWorkshopView):

    def get(self, request):
        try:
            return self.success(DashboardService.overview())
        except Exception as e:
            return handle_service_error(e)


@json_schema("reporting")
class FactoryBoardView(BaseWorkshopView):

    def get(self, request):
        try:
            return self.success({"orders": DashboardService.factory_board()})
        except Exception as e:
            return handle_service_error(e)
