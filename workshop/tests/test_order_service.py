import re
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import IntegrityError
from django.test import TestCase, override_settings
from django.utils import timezone

from workshop.models import WorkOrder, ProductionTask, Payment
from workshop.services import (
    WorkOrderService, ValidationError, NotFoundError, TransactionConflictError,
    generate_order_code,
)
from workshop.services.order_service import INITIAL_TASK_NOTE
from workshop.tests.factories import (
    make_branch, make_customer, make_profile, make_fabric, make_order,
)


class OrderCodeTests(TestCase):

    def test_format(self):
        code = generate_order_code()
        self.assertRegex(code, r"^TW-\d{8}-\d{6}$")

    def test_attempt_shifts_sequence(self):
        now = timezone.now()
        first = int(generate_order_code(now, 0)[-6:])
        second = int(generate_order_code(now, 1)[-6:])
        self.assertEqual(second, (first + 1) % 1_000_000)

    @override_settings(ORDER_CODE_PREFIX="QA")
    def test_prefix_comes_from_settings(self):
        self.assertTrue(generate_order_code().startswith("QA-"))


class WorkOrderCreateTests(TestCase):

    def setUp(self):
        self.branch = make_branch("Souq Waqif")
        self.customer = make_customer(branch=self.branch)
        self.profile = make_profile(self.customer)
        self.fabric = make_fabric()
        self.due = timezone.now() + timedelta(days=10)

    def _create(self, **overrides):
        params = {
            "customer_id": self.customer.id,
            "branch_id": self.branch.id,
            "due_date": self.due,
            "items": [
                {"garment_type": "THAWB", "measurement_profile_id": self.profile.id,
                 "fabric_id": self.fabric.id, "price": "150"},
                {"garment_type": "THAWB", "measurement_profile_id": self.profile.id,
                 "price": "150"},
            ],
            "total": "300",
            "deposit": "100",
        }
        params.update(overrides)
        return WorkOrderService.create(**params)

    def test_deposit_confirms_order_and_starts_cutting(self):
        order = self._create()

        self.assertEqual(order.status, WorkOrder.Status.CONFIRMED)
        self.assertEqual(order.balance, Decimal("200.00"))
        self.assertTrue(re.match(r"^TW-\d{8}-\d{6}$", order.code))

        tasks = ProductionTask.objects.filter(work_order_item__work_order=order)
        self.assertEqual(tasks.count(), 2)
        for task in tasks:
            self.assertEqual(task.stage, ProductionTask.Stage.CUTTING)
            self.assertIsNone(task.finished_at)
            self.assertEqual(task.notes, INITIAL_TASK_NOTE)

    def test_deposit_is_booked_as_first_payment(self):
        order = self._create(deposit_method="CARD")

        payment = Payment.objects.get(work_order=order)
        self.assertEqual(payment.amount, Decimal("100.00"))
        self.assertEqual(payment.method, Payment.Method.CARD)
        self.assertEqual(order.amount_paid + order.balance, order.total)

    def test_no_deposit_keeps_order_new_but_still_cuts(self):
        order = self._create(deposit="0")

        self.assertEqual(order.status, WorkOrder.Status.NEW)
        self.assertEqual(order.balance, Decimal("300.00"))
        self.assertFalse(order.payments.exists())
        self.assertEqual(
            ProductionTask.objects.filter(work_order_item__work_order=order, stage="CUTTING").count(), 2
        )

    def test_deposit_above_total_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self._create(deposit="301")
        self.assertEqual(ctx.exception.field, "deposit")
        self.assertFalse(WorkOrder.objects.exists())

    def test_negative_total_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._create(total="-1", deposit="0")

    def test_items_are_required(self):
        with self.assertRaises(ValidationError):
            self._create(items=[])

    def test_items_must_be_a_list_of_objects(self):
        with self.assertRaises(ValidationError) as ctx:
            self._create(items="THAWB")
        self.assertEqual(ctx.exception.field, "items")

        with self.assertRaises(ValidationError) as ctx:
            self._create(items=[self.profile.id])
        self.assertEqual(ctx.exception.field, "items[0]")
        self.assertFalse(WorkOrder.objects.exists())

    def test_unknown_priority_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._create(priority="URGENT")

    def test_missing_customer(self):
        with self.assertRaises(NotFoundError):
            self._create(customer_id=999999)

    def test_missing_fabric(self):
        items = [{"measurement_profile_id": self.profile.id, "fabric_id": 999999, "price": "10"}]
        with self.assertRaises(NotFoundError):
            self._create(items=items)

    def test_profile_of_another_customer_is_rejected(self):
        stranger = make_customer(name="Someone Else")
        foreign_profile = make_profile(stranger)
        items = [{"measurement_profile_id": foreign_profile.id, "price": "10"}]

        with self.assertRaises(ValidationError):
            self._create(items=items)
        self.assertFalse(WorkOrder.objects.exists())

    def test_bad_due_date(self):
        with self.assertRaises(ValidationError):
            self._create(due_date="next tuesday")

    def test_code_collision_retries_with_next_sequence(self):
        now = timezone.now()
        taken = generate_order_code(now, 0)
        make_order(customer=self.customer, branch=self.branch)
        WorkOrder.objects.update(code=taken)

        with mock.patch("workshop.services.order_service.timezone.now", return_value=now):
            order = self._create()

        self.assertEqual(order.code, generate_order_code(now, 1))

    @override_settings(ORDER_CODE_RETRIES=2)
    def test_code_collision_gives_up_after_retries(self):
        with mock.patch(
            "workshop.services.order_service.generate_order_code", return_value="TW-20250101-000001"
        ):
            make_order(customer=self.customer, branch=self.branch)
            with self.assertRaises(TransactionConflictError):
                self._create()

    def test_unrelated_integrity_error_is_not_swallowed(self):
        with mock.patch.object(WorkOrder.objects, "create", side_effect=IntegrityError("boom")):
            with self.assertRaises(IntegrityError):
                self._create()


class WorkOrderLookupTests(TestCase):

    def test_get_by_id_and_code(self):
        order = make_order(item_count=2)

        self.assertEqual(WorkOrderService.get(order_id=order.id).code, order.code)
        self.assertEqual(WorkOrderService.get(code=order.code).id, order.id)

    def test_missing_order(self):
        with self.assertRaises(NotFoundError):
            WorkOrderService.get(order_id=424242)

    def test_serialize_includes_items_tasks_and_payments(self):
        order = make_order(item_count=2, deposit="50")
        data = WorkOrderService.serialize(WorkOrderService.get(order_id=order.id))

        self.assertEqual(data["status"], "CONFIRMED")
        self.assertEqual(data["current_stage"], None)
        self.assertEqual(data["next_statuses"], ["CUTTING"])
        self.assertEqual(len(data["items"]), 2)
        self.assertEqual(data["items"][0]["production_tasks"][0]["stage"], "CUTTING")
        self.assertEqual(data["payments"][0]["amount"], "50.00")
