from unittest import mock

from django.db import OperationalError
from django.test import TestCase, override_settings
from psycopg2 import errorcodes

from workshop.models import WorkOrder, ProductionTask
from workshop.services import (
    StageAdvancementService, ProductionTaskService,
    IllegalTransitionError, InvalidTargetError, NotFoundError, TransactionConflictError,
)
from workshop.services.workflow import Status
from workshop.tests.factories import make_order


def tasks_for(order, **filters):
    return ProductionTask.objects.filter(work_order_item__work_order=order, **filters)


class AdvanceTests(TestCase):

    def setUp(self):
        self.order = make_order(item_count=2, deposit="100")

    def _walk(self, *statuses):
        for status in statuses:
            StageAdvancementService.advance(self.order.id, status)
        self.order.refresh_from_db()

    def test_confirmed_to_cutting_opens_a_second_cutting_task(self):
        StageAdvancementService.advance(self.order.id, Status.CUTTING)

        cutting = tasks_for(self.order, stage="CUTTING")
        self.assertEqual(cutting.count(), 4)
        self.assertEqual(cutting.filter(finished_at__isnull=True).count(), 4)

    def test_cutting_to_sewing_closes_cutting_and_opens_sewing(self):
        self._walk(Status.CUTTING, Status.SEWING)

        self.assertEqual(self.order.status, Status.SEWING)
        self.assertFalse(tasks_for(self.order, stage="CUTTING", finished_at__isnull=True).exists())

        sewing = tasks_for(self.order, stage="SEWING")
        self.assertEqual(sewing.count(), 2)
        self.assertTrue(all(t.is_open for t in sewing))

    def test_close_and_open_share_one_timestamp(self):
        self._walk(Status.CUTTING, Status.SEWING)

        finished = set(tasks_for(self.order, stage="CUTTING").values_list("finished_at", flat=True))
        started = set(tasks_for(self.order, stage="SEWING").values_list("started_at", flat=True))
        self.assertEqual(len(finished), 1)
        self.assertEqual(finished, started)

    def test_qc_to_alteration(self):
        self._walk(Status.CUTTING, Status.SEWING, Status.PRESSING, Status.QC)

        order = StageAdvancementService.advance(self.order.id, Status.ALTERATION)

        self.assertEqual(order.status, Status.ALTERATION)
        self.assertFalse(tasks_for(self.order, stage="QC", finished_at__isnull=True).exists())
        self.assertEqual(tasks_for(self.order, stage="ALTERATION", finished_at__isnull=True).count(), 2)

    def test_ready_for_pickup_opens_no_task(self):
        self._walk(
            Status.CUTTING, Status.SEWING, Status.PRESSING, Status.QC,
            Status.DISPATCHED, Status.AT_BRANCH,
        )
        open_before = tasks_for(self.order).count()

        StageAdvancementService.advance(self.order.id, Status.READY_FOR_PICKUP)

        self.assertEqual(tasks_for(self.order).count(), open_before)
        self.assertFalse(tasks_for(self.order, finished_at__isnull=True).exists())

    def test_full_walk_to_closed(self):
        self._walk(
            Status.CUTTING, Status.SEWING, Status.EMBROIDERY, Status.PRESSING, Status.QC,
            Status.DISPATCHED, Status.AT_BRANCH, Status.FITTING, Status.ALTERATION,
            Status.READY_FOR_PICKUP, Status.DELIVERED, Status.CLOSED,
        )
        self.assertEqual(self.order.status, Status.CLOSED)
        self.assertFalse(tasks_for(self.order, finished_at__isnull=True).exists())

    def test_stale_read_cannot_replay_a_move(self):
        self._walk(Status.CUTTING)
        stale = WorkOrder.objects.get(id=self.order.id)

        StageAdvancementService.advance(stale.id, Status.SEWING)

        with self.assertRaises(IllegalTransitionError):
            StageAdvancementService.advance(stale.id, Status.SEWING)

        self.assertEqual(tasks_for(self.order, stage="SEWING").count(), 2)

    def test_returns_refreshed_order_with_tasks(self):
        order = StageAdvancementService.advance(self.order.id, Status.CUTTING)

        self.assertEqual(order.status, Status.CUTTING)
        item = order.items.all()[0]
        self.assertEqual(len(item.production_tasks.all()), 2)


class RejectionTests(TestCase):

    def setUp(self):
        self.order = make_order(item_count=2, deposit="100")
        for status in (Status.CUTTING, Status.SEWING, Status.PRESSING, Status.QC):
            StageAdvancementService.advance(self.order.id, status)

    def _snapshot(self):
        self.order.refresh_from_db()
        return (
            self.order.status,
            self.order.updated_at,
            list(tasks_for(self.order).order_by("id").values_list("id", "stage", "finished_at")),
        )

    def test_illegal_transition_changes_nothing(self):
        before = self._snapshot()

        with self.assertRaises(IllegalTransitionError) as ctx:
            StageAdvancementService.advance(self.order.id, Status.SEWING)

        self.assertEqual(ctx.exception.details["current"], "QC")
        self.assertEqual(ctx.exception.details["allowed"], ["DISPATCHED", "ALTERATION"])
        self.assertEqual(self._snapshot(), before)

    def test_invalid_target(self):
        before = self._snapshot()

        with self.assertRaises(InvalidTargetError):
            StageAdvancementService.advance_stage(self.order.id, "SHIPPED")
        with self.assertRaises(InvalidTargetError):
            StageAdvancementService.advance(self.order.id, "SHIPPED")

        self.assertEqual(self._snapshot(), before)

    def test_missing_order(self):
        with self.assertRaises(NotFoundError):
            StageAdvancementService.advance(987654, Status.CUTTING)

    def test_failure_mid_advancement_rolls_back(self):
        before = self._snapshot()

        with mock.patch.object(ProductionTaskService, "open_tasks", side_effect=RuntimeError("disk full")):
            with self.assertRaises(RuntimeError):
                StageAdvancementService.advance(self.order.id, Status.DISPATCHED)

        self.assertEqual(self._snapshot(), before)
        self.assertTrue(tasks_for(self.order, stage="QC", finished_at__isnull=True).exists())


class LockNotAvailable(Exception):
    pgcode = errorcodes.LOCK_NOT_AVAILABLE


def lock_timeout_error():
    error = OperationalError("canceling statement due to lock timeout")
    error.__cause__ = LockNotAvailable()
    return error


class ConflictRetryTests(TestCase):

    def setUp(self):
        self.order = make_order(item_count=1, deposit="10")

    def test_transient_conflict_is_retried(self):
        original = StageAdvancementService._apply_advancement
        calls = []

        def flaky(order, target, now):
            calls.append(target)
            if len(calls) == 1:
                raise OperationalError("database is locked")
            return original(order, target, now)

        with mock.patch.object(StageAdvancementService, "_apply_advancement", side_effect=flaky):
            order = StageAdvancementService.advance(self.order.id, Status.CUTTING)

        self.assertEqual(len(calls), 2)
        self.assertEqual(order.status, Status.CUTTING)
        self.assertEqual(tasks_for(self.order, stage="CUTTING").count(), 2)

    @override_settings(WORKFLOW_TRANSACTION_RETRIES=3)
    def test_persistent_conflict_surfaces_as_conflict_error(self):
        with mock.patch.object(
            StageAdvancementService, "_apply_advancement",
            side_effect=lock_timeout_error(),
        ) as apply:
            with self.assertRaises(TransactionConflictError) as ctx:
                StageAdvancementService.advance(self.order.id, Status.CUTTING)

        self.assertEqual(apply.call_count, 3)
        self.assertTrue(ctx.exception.details["retryable"])
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Status.CONFIRMED)

    def test_other_operational_errors_are_not_retried(self):
        with mock.patch.object(
            StageAdvancementService, "_apply_advancement",
            side_effect=OperationalError("no such table: workshop_productiontask"),
        ) as apply:
            with self.assertRaises(OperationalError):
                StageAdvancementService.advance(self.order.id, Status.CUTTING)

        self.assertEqual(apply.call_count, 1)
        self.order.refresh_from_db()
        self.assertEqual(self.order.status, Status.CONFIRMED)


class NextStatusesTests(TestCase):

    def test_lists_successors_with_labels(self):
        order = make_order(deposit="0")

        result = StageAdvancementService.next_statuses_for(order.id)

        self.assertEqual(result["status"], "NEW")
        self.assertEqual(result["next_statuses"], [{"value": "CONFIRMED", "label": "Confirmed"}])


class TaskHistoryTests(TestCase):

    def test_history_is_chronological(self):
        order = make_order(item_count=1, deposit="10")
        StageAdvancementService.advance(order.id, Status.CUTTING)
        StageAdvancementService.advance(order.id, Status.SEWING)

        item = order.items.first()
        history = ProductionTaskService.history(item.id)

        self.assertEqual([t["stage"] for t in history], ["CUTTING", "CUTTING", "SEWING"])
        self.assertTrue(history[-1]["is_open"])

    def test_unknown_item(self):
        with self.assertRaises(NotFoundError):
            ProductionTaskService.history(31337)
