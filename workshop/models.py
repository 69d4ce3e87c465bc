import uuid as uuid_lib
from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.utils import timezone


class Branch(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=100, unique=True)
    area = models.CharField(max_length=100, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "branches"
        ordering = ["name"]

    def __str__(self):
        return self.name


class Customer(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=150)
    phone = models.CharField(max_length=30, unique=True)
    alt_phone = models.CharField(max_length=30, null=True, blank=True)
    preferred_lang = models.CharField(max_length=30, null=True, blank=True)
    default_branch = models.ForeignKey(
        Branch,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="customers",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.phone})"


class GarmentType(models.TextChoices):
    THAWB = "THAWB", "Thawb"
    BISHT = "BISHT", "Bisht"
    SHIRT = "SHIRT", "Shirt"
    TROUSER = "TROUSER", "Trouser"


class MeasurementProfile(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    customer = models.ForeignKey(
        Customer, on_delete=models.CASCADE, related_name="measurement_profiles"
    )
    garment_type = models.CharField(
        max_length=20, choices=GarmentType.choices, default=GarmentType.THAWB
    )
    version = models.PositiveIntegerField(default=1)
    unit = models.CharField(max_length=10, default="cm")
    data = models.JSONField(default=dict, blank=True)
    taken_by_name = models.CharField(max_length=100)
    taken_at = models.DateTimeField(default=timezone.now)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-taken_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer", "garment_type", "version"],
                name="unique_measurement_version",
            ),
        ]

    def __str__(self):
        return f"{self.customer.name} - {self.get_garment_type_display()} v{self.version}"


class Fabric(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    sku = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=100)
    color = models.CharField(max_length=50)
    composition = models.CharField(max_length=150)
    width_cm = models.DecimalField(max_digits=6, decimal_places=1)
    stock_qty = models.PositiveIntegerField(default=0)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.name} ({self.sku})"


class WorkOrder(models.Model):
    class Status(models.TextChoices):
        NEW = "NEW", "New"
        CONFIRMED = "CONFIRMED", "Confirmed"
        CUTTING = "CUTTING", "Cutting"
        SEWING = "SEWING", "Sewing"
        EMBROIDERY = "EMBROIDERY", "Embroidery"
        PRESSING = "PRESSING", "Pressing"
        QC = "QC", "Quality Check"
        DISPATCHED = "DISPATCHED", "Dispatched"
        AT_BRANCH = "AT_BRANCH", "At Branch"
        FITTING = "FITTING", "Fitting"
        ALTERATION = "ALTERATION", "Alteration"
        READY_FOR_PICKUP = "READY_FOR_PICKUP", "Ready for Pickup"
        DELIVERED = "DELIVERED", "Delivered"
        CLOSED = "CLOSED", "Closed"

    class Priority(models.TextChoices):
        LOW = "LOW", "Low"
        NORMAL = "NORMAL", "Normal"
        HIGH = "HIGH", "High"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    code = models.CharField(max_length=30, unique=True)
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="work_orders"
    )
    branch = models.ForeignKey(
        Branch, on_delete=models.PROTECT, related_name="work_orders"
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.NEW, db_index=True
    )
    priority = models.CharField(
        max_length=10, choices=Priority.choices, default=Priority.NORMAL
    )
    total = models.DecimalField(max_digits=12, decimal_places=2)
    deposit = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    balance = models.DecimalField(max_digits=12, decimal_places=2)
    due_date = models.DateTimeField()
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.code

    @property
    def current_stage(self):
        from workshop.services.workflow import stage_for
        return stage_for(self.status)

    @property
    def next_statuses(self):
        from workshop.services.workflow import next_statuses
        return next_statuses(self.status)

    @property
    def amount_paid(self) -> Decimal:
        return self.payments.aggregate(total=Sum("amount"))["total"] or Decimal("0")

    @property
    def is_late(self) -> bool:
        from workshop.services.workflow import is_late_status
        return self.due_date < timezone.now() and is_late_status(self.status)


class WorkOrderItem(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    work_order = models.ForeignKey(
        WorkOrder, on_delete=models.CASCADE, related_name="items"
    )
    garment_type = models.CharField(
        max_length=20, choices=GarmentType.choices, default=GarmentType.THAWB
    )
    measurement_profile = models.ForeignKey(
        MeasurementProfile, on_delete=models.PROTECT, related_name="+"
    )
    fabric = models.ForeignKey(
        Fabric,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="work_order_items",
    )
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    options = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.work_order.code} - {self.get_garment_type_display()}"


class ProductionTask(models.Model):
    class Stage(models.TextChoices):
        CUTTING = "CUTTING", "Cutting"
        SEWING = "SEWING", "Sewing"
        EMBROIDERY = "EMBROIDERY", "Embroidery"
        PRESSING = "PRESSING", "Pressing"
        QC = "QC", "Quality Check"
        DISPATCHED = "DISPATCHED", "Dispatched"
        AT_BRANCH = "AT_BRANCH", "At Branch"
        FITTING = "FITTING", "Fitting"
        ALTERATION = "ALTERATION", "Alteration"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    work_order_item = models.ForeignKey(
        WorkOrderItem, on_delete=models.CASCADE, related_name="production_tasks"
    )
    stage = models.CharField(max_length=20, choices=Stage.choices)
    started_at = models.DateTimeField()
    finished_at = models.DateTimeField(null=True, blank=True, db_index=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["started_at", "id"]

    def __str__(self):
        state = "open" if self.finished_at is None else "done"
        return f"{self.get_stage_display()} ({state})"

    @property
    def is_open(self) -> bool:
        return self.finished_at is None


class Payment(models.Model):
    class Method(models.TextChoices):
        CASH = "CASH", "Cash"
        CARD = "CARD", "Card"
        TRANSFER = "TRANSFER", "Transfer"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    work_order = models.ForeignKey(
        WorkOrder, on_delete=models.PROTECT, related_name="payments"
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    method = models.CharField(max_length=10, choices=Method.choices)
    txn_ref = models.CharField(max_length=100, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.work_order.code}: {self.amount} ({self.method})"


class Shipment(models.Model):
    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    date = models.DateTimeField(default=timezone.now)
    from_branch = models.ForeignKey(
        Branch, on_delete=models.PROTECT, related_name="outgoing_shipments"
    )
    to_branch = models.ForeignKey(
        Branch, on_delete=models.PROTECT, related_name="incoming_shipments"
    )
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-date"]

    def __str__(self):
        return f"{self.from_branch.name} -> {self.to_branch.name} ({self.date:%Y-%m-%d})"


class ShipmentScan(models.Model):
    class Direction(models.TextChoices):
        OUT = "OUT", "Out"
        IN = "IN", "In"

    uuid = models.UUIDField(default=uuid_lib.uuid4, unique=True, editable=False)
    shipment = models.ForeignKey(
        Shipment, on_delete=models.CASCADE, related_name="scans"
    )
    work_order = models.ForeignKey(
        WorkOrder, on_delete=models.PROTECT, related_name="shipment_scans"
    )
    direction = models.CharField(max_length=3, choices=Direction.choices)
    scanned_by_name = models.CharField(max_length=100)
    scanned_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-scanned_at"]

    def __str__(self):
        return f"{self.work_order.code} {self.direction} by {self.scanned_by_name}"
