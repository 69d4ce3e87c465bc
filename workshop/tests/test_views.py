import json
from datetime import timedelta
from unittest import mock

from django.core.cache import cache
from django.db import OperationalError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.throttling import AnonRateThrottle

from workshop.models import WorkOrder
from workshop.views import ERROR_STATUS, BaseWorkshopView
from workshop.services import (
    StageAdvancementService, NotFoundError, ValidationError, IllegalTransitionError,
    InvalidTargetError, InvalidAmountError, TransactionConflictError,
)
from workshop.tests.factories import (
    make_branch, make_customer, make_profile, make_fabric, make_order, thawb_data,
)


class ApiTestCase(TestCase):

    def send(self, method, url, data=None):
        return getattr(self.client, method)(
            url, data=json.dumps(data or {}), content_type="application/json"
        )


class MoveStageViewTests(ApiTestCase):
    url = "/api/production/move-stage/"

    def setUp(self):
        self.order = make_order(item_count=2, deposit="100")

    def test_moves_by_stage_name(self):
        response = self.send("patch", self.url, {"workOrderId": self.order.id, "toStage": "cutting"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["work_order"]["status"], "CUTTING")
        self.assertEqual(body["work_order"]["next_statuses"], ["SEWING"])

    def test_illegal_transition_is_400(self):
        response = self.send("patch", self.url, {"workOrderId": self.order.id, "toStage": "QC"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "ILLEGAL_TRANSITION")

    def test_invalid_target_is_400(self):
        response = self.send("patch", self.url, {"work_order_id": self.order.id, "to_stage": "LAUNDRY"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_TARGET")

    def test_unknown_order_is_404(self):
        response = self.send("patch", self.url, {"workOrderId": 99999, "toStage": "CUTTING"})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["code"], "NOT_FOUND")

    def test_missing_fields_are_400(self):
        response = self.send("patch", self.url, {"toStage": "CUTTING"})
        self.assertEqual(response.status_code, 400)

    def test_conflict_is_409(self):
        with mock.patch.object(StageAdvancementService, "advance", side_effect=TransactionConflictError()):
            response = self.send("patch", self.url, {"workOrderId": self.order.id, "toStage": "CUTTING"})

        self.assertEqual(response.status_code, 409)
        body = response.json()
        self.assertEqual(body["error"]["code"], "TRANSACTION_CONFLICT")
        self.assertTrue(body["error"]["details"]["retryable"])

    def test_unexpected_error_is_500(self):
        with mock.patch.object(StageAdvancementService, "advance", side_effect=RuntimeError("boom")):
            with self.assertLogs("workshop.views", level="ERROR"):
                response = self.send("patch", self.url, {"workOrderId": self.order.id, "toStage": "CUTTING"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"]["code"], "server_error")

    def test_database_error_outside_lock_conflicts_is_500(self):
        with mock.patch.object(
            StageAdvancementService, "_apply_advancement",
            side_effect=OperationalError("disk I/O error"),
        ):
            with self.assertLogs("workshop.views", level="ERROR"):
                response = self.send("patch", self.url, {"workOrderId": self.order.id, "toStage": "CUTTING"})

        self.assertEqual(response.status_code, 500)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, "CONFIRMED")

    def test_malformed_body_is_treated_as_empty(self):
        response = self.client.patch(self.url, data="{not json", content_type="application/json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["details"]["field"], "workOrderId")

    def test_next_statuses(self):
        response = self.client.get(f"/api/work-orders/{self.order.id}/next-statuses/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["next_statuses"][0]["value"], "CUTTING")


class WorkOrderViewTests(ApiTestCase):

    def setUp(self):
        self.branch = make_branch()
        self.customer = make_customer(branch=self.branch)
        self.profile = make_profile(self.customer)
        self.fabric = make_fabric()

    def test_create_with_camel_case_body(self):
        response = self.send("post", "/api/work-orders/", {
            "customerId": self.customer.id,
            "branchId": self.branch.id,
            "dueDate": (timezone.now() + timedelta(days=5)).isoformat(),
            "priority": "HIGH",
            "total": 240,
            "deposit": 40,
            "items": [{
                "garmentType": "THAWB",
                "measurementProfileId": self.profile.id,
                "fabricId": self.fabric.id,
                "price": 240,
                "optionsJson": {"embroidery": True},
            }],
        })

        self.assertEqual(response.status_code, 201)
        order = response.json()["work_order"]
        self.assertEqual(order["status"], "CONFIRMED")
        self.assertEqual(order["balance"], "200.00")
        self.assertEqual(order["items"][0]["options"], {"embroidery": True})

    def test_create_validation_error(self):
        response = self.send("post", "/api/work-orders/", {
            "customerId": self.customer.id,
            "branchId": self.branch.id,
            "dueDate": "2030-01-01",
            "total": 100,
            "deposit": 150,
            "items": [{"measurementProfileId": self.profile.id, "price": 100}],
        })

        self.assertEqual(response.status_code, 400)
        error = response.json()["error"]
        self.assertEqual(error["code"], "VALIDATION_ERROR")
        self.assertEqual(error["details"]["field"], "deposit")
        self.assertFalse(WorkOrder.objects.exists())

    def test_items_must_be_a_list(self):
        response = self.send("post", "/api/work-orders/", {
            "customerId": self.customer.id,
            "branchId": self.branch.id,
            "dueDate": "2030-01-01",
            "total": 100,
            "items": "THAWB x2",
        })

        self.assertEqual(response.status_code, 400)
        error = response.json()["error"]
        self.assertEqual(error["code"], "VALIDATION_ERROR")
        self.assertEqual(error["details"]["field"], "items")
        self.assertFalse(WorkOrder.objects.exists())

    def test_item_entries_must_be_objects(self):
        response = self.send("post", "/api/work-orders/", {
            "customerId": self.customer.id,
            "branchId": self.branch.id,
            "dueDate": "2030-01-01",
            "total": 100,
            "items": [self.profile.id],
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["details"]["field"], "items[0]")

    def test_fetch_by_query_and_path(self):
        order = make_order(customer=self.customer, branch=self.branch)

        by_code = self.client.get("/api/work-orders/", {"code": order.code})
        by_id = self.client.get(f"/api/work-orders/{order.id}/")

        self.assertEqual(by_code.status_code, 200)
        self.assertEqual(by_code.json()["work_order"]["id"], order.id)
        self.assertEqual(by_id.json()["work_order"]["code"], order.code)

    def test_fetch_requires_id_or_code(self):
        self.assertEqual(self.client.get("/api/work-orders/").status_code, 400)


class PaymentViewTests(ApiTestCase):

    def setUp(self):
        self.order = make_order(total="300", deposit="100")
        self.url = f"/api/work-orders/{self.order.id}/payments/"

    def test_record_and_list(self):
        response = self.send("post", self.url, {"amount": "75", "method": "CARD", "txnRef": "A1"})

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["payment"]["txn_ref"], "A1")
        self.assertEqual(body["summary"]["balance"], "125.00")

        listing = self.client.get(self.url).json()
        self.assertEqual(len(listing["payments"]), 2)

    def test_invalid_amount(self):
        response = self.send("post", self.url, {"amount": -3, "method": "CASH"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"]["code"], "INVALID_AMOUNT")


class CatalogViewTests(ApiTestCase):

    def test_customer_roundtrip(self):
        created = self.send("post", "/api/customers/", {"name": "Yousef", "phone": "66612345"})
        self.assertEqual(created.status_code, 201)

        found = self.client.get("/api/customers/", {"search": "666"})
        self.assertEqual(found.json()["customers"][0]["name"], "Yousef")

    def test_fabric_create_and_patch(self):
        created = self.send("post", "/api/fabrics/", {
            "sku": "WOL-9", "name": "Wool", "color": "Grey", "composition": "Merino",
            "widthCm": 150, "price": 80, "stockQty": 3,
        })
        fabric_id = created.json()["fabric"]["id"]

        patched = self.send("patch", "/api/fabrics/", {"id": fabric_id, "stockQty": 9})

        self.assertEqual(patched.status_code, 200)
        self.assertEqual(patched.json()["fabric"]["stock_qty"], 9)

    def test_measurement_create_and_list(self):
        customer = make_customer()
        created = self.send("post", "/api/measurements/", {
            "customerId": customer.id,
            "takenByName": "Salim",
            "garmentType": "THAWB",
            "data": thawb_data(),
        })
        self.assertEqual(created.status_code, 201)

        listed = self.client.get("/api/measurements/", {"customerId": customer.id})
        self.assertEqual(listed.json()["measurements"][0]["version"], 1)

    def test_shipment_and_scan(self):
        source, target = make_branch(), make_branch()
        order = make_order(branch=target)

        created = self.send("post", "/api/shipments/", {
            "fromBranchId": source.id, "toBranchId": target.id, "orderIds": [order.id],
        })
        self.assertEqual(created.status_code, 201)
        shipment_id = created.json()["shipment"]["id"]

        scanned = self.send("post", "/api/shipments/scan/", {
            "shipmentId": shipment_id, "workOrderId": order.id,
            "direction": "IN", "scannedByName": "Fatima",
        })
        self.assertEqual(scanned.status_code, 201)
        self.assertEqual(scanned.json()["scan"]["direction"], "IN")

    def test_dashboard_and_board(self):
        make_order(deposit="10")

        dashboard = self.client.get("/api/dashboard/")
        board = self.client.get("/api/factory/board/")

        self.assertEqual(dashboard.status_code, 200)
        self.assertEqual(dashboard.json()["metrics"]["total_orders"], 1)
        self.assertEqual(board.json()["orders"], [])


class TwoPerMinuteThrottle(AnonRateThrottle):
    rate = "2/min"


class ApiSurfaceTests(ApiTestCase):

    def setUp(self):
        cache.clear()

    def test_schema_lists_workshop_routes(self):
        response = self.client.get("/api/schema/", {"format": "json"})

        self.assertEqual(response.status_code, 200)
        paths = json.loads(response.content)["paths"]
        self.assertIn("patch", paths["/api/production/move-stage/"])
        self.assertIn("post", paths["/api/work-orders/{order_id}/payments/"])
        self.assertIn("get", paths["/api/factory/board/"])

    def test_anonymous_requests_are_throttled(self):
        with mock.patch.object(BaseWorkshopView, "throttle_classes", [TwoPerMinuteThrottle]):
            statuses = [self.client.get("/api/factory/board/").status_code for _ in range(3)]

        self.assertEqual(statuses, [200, 200, 429])


class ErrorStatusTests(SimpleTestCase):

    def test_every_mapped_code_is_raised_by_a_service_error(self):
        errors = [
            NotFoundError("Work order", 1),
            ValidationError("bad", "field"),
            IllegalTransitionError("QC", "SEWING"),
            InvalidTargetError("LAUNDRY"),
            InvalidAmountError("0"),
            TransactionConflictError(),
        ]

        self.assertEqual(set(ERROR_STATUS), {e.code for e in errors})
