"""
Workshop Services - work orders, production stages and payments

Usage:
    from workshop.services import WorkOrderService, StageAdvancementService, PaymentService

    # Open an order (items start in CUTTING)
    order = WorkOrderService.create(customer_id=1, branch_id=1, due_date="2025-03-01", ...)

    # Move it along the floor
    StageAdvancementService.advance_stage(order.id, "SEWING")

    # Take a payment
    PaymentService.record(order.id, amount="50.00", method="CASH")
"""

# Base utilities
from workshop.services.base_service import (
    ServiceError,
    ValidationError,
    NotFoundError,
    IllegalTransitionError,
    InvalidTargetError,
    InvalidAmountError,
    TransactionConflictError,
    paginate_queryset,
    to_decimal,
    round_decimal,
    generate_order_code,
    with_conflict_retry,
    BaseService,
)

# Lifecycle
from .workflow import (
    Status,
    Stage,
    next_statuses,
    can_transition,
    stage_for,
    status_for_stage,
    parse_target,
    resolve_target,
)

# Orders & production
from .task_service import ProductionTaskService
from .order_service import WorkOrderService
from .production_service import StageAdvancementService
from .payment_service import PaymentService

# Catalog
from .customer_service import CustomerService
from .fabric_service import FabricService
from .measurement_service import MeasurementService
from .shipment_service import ShipmentService

# Reporting
from .dashboard_service import DashboardService
