"""
Work order lifecycle: the fixed status graph and its mapping to production stages.

Usage:
    from workshop.services.workflow import next_statuses, can_transition, resolve_target

    next_statuses(Status.QC)                    # (DISPATCHED, ALTERATION)
    can_transition(Status.QC, Status.SEWING)    # False
    resolve_target("pressing")                  # Status.PRESSING

Branch points (SEWING, QC, AT_BRANCH, FITTING, ALTERATION) have several
legal successors; picking one is an operator decision, this module only
validates membership.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Optional, Tuple

from workshop.models import WorkOrder, ProductionTask
from workshop.services.base_service import InvalidTargetError

Status = WorkOrder.Status
Stage = ProductionTask.Stage


TRANSITIONS = MappingProxyType({
    Status.NEW: (Status.CONFIRMED,),
    Status.CONFIRMED: (Status.CUTTING,),
    Status.CUTTING: (Status.SEWING,),
    Status.SEWING: (Status.EMBROIDERY, Status.PRESSING),
    Status.EMBROIDERY: (Status.PRESSING,),
    Status.PRESSING: (Status.QC,),
    Status.QC: (Status.DISPATCHED, Status.ALTERATION),
    Status.DISPATCHED: (Status.AT_BRANCH,),
    Status.AT_BRANCH: (Status.FITTING, Status.READY_FOR_PICKUP),
    Status.FITTING: (Status.ALTERATION, Status.READY_FOR_PICKUP),
    Status.ALTERATION: (Status.FITTING, Status.READY_FOR_PICKUP),
    Status.READY_FOR_PICKUP: (Status.DELIVERED,),
    Status.DELIVERED: (Status.CLOSED,),
    Status.CLOSED: (),
})

STATUS_TO_STAGE = MappingProxyType({
    Status.CUTTING: Stage.CUTTING,
    Status.SEWING: Stage.SEWING,
    Status.EMBROIDERY: Stage.EMBROIDERY,
    Status.PRESSING: Stage.PRESSING,
    Status.QC: Stage.QC,
    Status.DISPATCHED: Stage.DISPATCHED,
    Status.AT_BRANCH: Stage.AT_BRANCH,
    Status.FITTING: Stage.FITTING,
    Status.ALTERATION: Stage.ALTERATION,
})

STAGE_TO_STATUS = MappingProxyType({stage: status for status, stage in STATUS_TO_STAGE.items()})

PRODUCTION_FLOW: Tuple[Status, ...] = tuple(Status)

# Statuses counted as work-in-progress on the factory floor
FLOOR_STATUSES: Tuple[Status, ...] = (
    Status.CUTTING,
    Status.SEWING,
    Status.EMBROIDERY,
    Status.PRESSING,
    Status.QC,
    Status.DISPATCHED,
)

FINISHED_STATUSES: Tuple[Status, ...] = (
    Status.READY_FOR_PICKUP,
    Status.DELIVERED,
    Status.CLOSED,
)


def _as_status(value: Any) -> Optional[Status]:
    try:
        return Status(value)
    except ValueError:
        return None


def next_statuses(current) -> Tuple[Status, ...]:
    status = _as_status(current)
    if status is None:
        return ()
    return TRANSITIONS[status]


def can_transition(current, target) -> bool:
    status = _as_status(target)
    return status is not None and status in next_statuses(current)


def stage_for(status) -> Optional[Stage]:
    status = _as_status(status)
    if status is None:
        return None
    return STATUS_TO_STAGE.get(status)


def status_for_stage(stage) -> Optional[Status]:
    try:
        return STAGE_TO_STATUS.get(Stage(stage))
    except ValueError:
        return None


def is_terminal(status) -> bool:
    return _as_status(status) is not None and not next_statuses(status)


def is_late_status(status) -> bool:
    """Whether an order in this status still counts against its due date."""
    return _as_status(status) not in FINISHED_STATUSES


@dataclass(frozen=True)
class TargetResolution:
    """Outcome of parsing a target name: either ``status`` or ``error`` is set."""

    status: Optional[Status] = None
    error: Optional[InvalidTargetError] = None

    @property
    def ok(self) -> bool:
        return self.status is not None

    def unwrap(self) -> Status:
        if self.error is not None:
            raise self.error
        return self.status


def parse_target(value: Any) -> TargetResolution:
    """Resolve a Status name or a Stage name (case-insensitive) to the target Status."""
    if not isinstance(value, str) or not value.strip():
        return TargetResolution(error=InvalidTargetError(value))

    name = value.strip().upper()

    status = _as_status(name)
    if status is not None:
        return TargetResolution(status=status)

    status = status_for_stage(name)
    if status is not None:
        return TargetResolution(status=status)

    return TargetResolution(error=InvalidTargetError(value))


def resolve_target(value: Any) -> Status:
    return parse_target(value).unwrap()
