from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from django.urls import reverse
from unfold.admin import ModelAdmin, TabularInline
from unfold.decorators import display
from unfold.contrib.filters.admin import (
    RangeDateFilter,
    RangeDateTimeFilter,
    RangeNumericFilter,
)
from .models import (
    Branch, Customer, MeasurementProfile, Fabric, WorkOrder, WorkOrderItem,
    ProductionTask, Payment, Shipment, ShipmentScan,
)


STATUS_COLORS = {
    'NEW': 'info',
    'CONFIRMED': 'info',
    'CUTTING': 'warning',
    'SEWING': 'warning',
    'EMBROIDERY': 'warning',
    'PRESSING': 'warning',
    'QC': 'warning',
    'DISPATCHED': 'primary',
    'AT_BRANCH': 'primary',
    'FITTING': 'primary',
    'ALTERATION': 'danger',
    'READY_FOR_PICKUP': 'success',
    'DELIVERED': 'success',
    'CLOSED': 'success',
}


class ReadOnlyInline(TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class WorkOrderItemInline(TabularInline):
    model = WorkOrderItem
    extra = 0
    can_delete = False
    fields = ('garment_type', 'measurement_profile', 'fabric', 'price', 'current_task')
    readonly_fields = ('garment_type', 'measurement_profile', 'fabric', 'price', 'current_task')
    show_change_link = True

    def has_add_permission(self, request, obj=None):
        return False

    @display(description=_("Open Task"))
    def current_task(self, obj):
        if obj.pk:
            task = obj.production_tasks.filter(finished_at__isnull=True).order_by('-started_at').first()
            return task.get_stage_display() if task else "-"
        return "-"


class PaymentInline(ReadOnlyInline):
    model = Payment
    fields = ('amount', 'method', 'txn_ref', 'created_at')
    readonly_fields = ('amount', 'method', 'txn_ref', 'created_at')


class ProductionTaskInline(ReadOnlyInline):
    model = ProductionTask
    fields = ('stage', 'started_at', 'finished_at', 'notes')
    readonly_fields = ('stage', 'started_at', 'finished_at', 'notes')


class ShipmentScanInline(ReadOnlyInline):
    model = ShipmentScan
    fields = ('work_order', 'direction', 'scanned_by_name', 'scanned_at')
    readonly_fields = ('work_order', 'direction', 'scanned_by_name', 'scanned_at')


@admin.register(Branch)
class BranchAdmin(ModelAdmin):
    list_display = ['id', 'name', 'area', 'order_count', 'created_at']
    search_fields = ['name', 'area']

    @display(description=_("Orders"))
    def order_count(self, obj):
        return obj.work_orders.count()


@admin.register(Customer)
class CustomerAdmin(ModelAdmin):
    list_display = ['id', 'name', 'phone', 'alt_phone', 'default_branch', 'created_at']
    list_filter = [
        'default_branch',
        ('created_at', RangeDateFilter),
    ]
    search_fields = ['name', 'phone', 'alt_phone']
    list_filter_submit = True


@admin.register(MeasurementProfile)
class MeasurementProfileAdmin(ModelAdmin):
    list_display = ['id', 'customer_link', 'garment_type', 'version', 'taken_by_name', 'taken_at']
    list_filter = [
        'garment_type',
        ('taken_at', RangeDateTimeFilter),
    ]
    search_fields = ['customer__name', 'customer__phone', 'taken_by_name']
    list_filter_submit = True
    readonly_fields = ['version', 'created_at']

    @display(description=_("Customer"))
    def customer_link(self, obj):
        url = reverse('admin:workshop_customer_change', args=[obj.customer_id])
        return format_html('<a href="{}">{}</a>', url, obj.customer.name)


@admin.register(Fabric)
class FabricAdmin(ModelAdmin):
    list_display = ['id', 'sku', 'name', 'color', 'stock_qty', 'price_display', 'updated_at']
    list_filter = [
        ('stock_qty', RangeNumericFilter),
        ('price', RangeNumericFilter),
    ]
    search_fields = ['sku', 'name', 'color', 'composition']
    list_filter_submit = True

    @display(description=_("Price"), ordering='price')
    def price_display(self, obj):
        return f"{obj.price:.2f}"


@admin.register(WorkOrder)
class WorkOrderAdmin(ModelAdmin):
    list_display = ['code', 'customer_link', 'branch', 'status_badge', 'priority',
                    'total_display', 'balance_display', 'due_date', 'created_at']
    list_filter = [
        'status',
        'priority',
        'branch',
        ('due_date', RangeDateTimeFilter),
        ('balance', RangeNumericFilter),
    ]
    search_fields = ['code', 'customer__name', 'customer__phone']
    list_filter_submit = True
    list_fullwidth = True
    inlines = [WorkOrderItemInline, PaymentInline]
    readonly_fields = ['code', 'status', 'total', 'deposit', 'balance', 'created_at', 'updated_at']

    fieldsets = (
        (_('Order Information'), {
            'fields': ('code', 'customer', 'branch', 'status', 'priority', 'due_date')
        }),
        (_('Financial'), {
            'fields': ('total', 'deposit', 'balance')
        }),
        (_('Notes'), {
            'fields': ('notes',)
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at')
        }),
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @display(description=_("Customer"))
    def customer_link(self, obj):
        url = reverse('admin:workshop_customer_change', args=[obj.customer_id])
        return format_html('<a href="{}">{}</a>', url, obj.customer.name)

    @display(description=_("Status"), ordering='status', label=STATUS_COLORS)
    def status_badge(self, obj):
        return obj.status, obj.get_status_display()

    @display(description=_("Total"), ordering='total')
    def total_display(self, obj):
        return f"{obj.total:.2f}"

    @display(description=_("Balance"), ordering='balance')
    def balance_display(self, obj):
        return f"{obj.balance:.2f}"


@admin.register(WorkOrderItem)
class WorkOrderItemAdmin(ModelAdmin):
    list_display = ['id', 'work_order', 'garment_type', 'fabric', 'price']
    list_filter = ['garment_type']
    search_fields = ['work_order__code']
    inlines = [ProductionTaskInline]
    readonly_fields = ['work_order', 'measurement_profile', 'created_at']

    def has_add_permission(self, request):
        return False


@admin.register(ProductionTask)
class ProductionTaskAdmin(ModelAdmin):
    list_display = ['id', 'order_code', 'stage', 'started_at', 'finished_at', 'open_badge']
    list_filter = [
        'stage',
        ('started_at', RangeDateTimeFilter),
    ]
    search_fields = ['work_order_item__work_order__code']
    list_filter_submit = True

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @display(description=_("Order"))
    def order_code(self, obj):
        return obj.work_order_item.work_order.code

    @display(description=_("State"), label=True)
    def open_badge(self, obj):
        if obj.is_open:
            return 'warning', _('Open')
        return 'success', _('Done')


@admin.register(Payment)
class PaymentAdmin(ModelAdmin):
    list_display = ['id', 'work_order', 'amount_display', 'method', 'txn_ref', 'created_at']
    list_filter = [
        'method',
        ('created_at', RangeDateTimeFilter),
        ('amount', RangeNumericFilter),
    ]
    search_fields = ['work_order__code', 'txn_ref']
    list_filter_submit = True

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @display(description=_("Amount"), ordering='amount')
    def amount_display(self, obj):
        return f"{obj.amount:.2f}"


@admin.register(Shipment)
class ShipmentAdmin(ModelAdmin):
    list_display = ['id', 'date', 'from_branch', 'to_branch', 'scan_count']
    list_filter = [
        'from_branch',
        'to_branch',
        ('date', RangeDateFilter),
    ]
    list_filter_submit = True
    inlines = [ShipmentScanInline]

    @display(description=_("Scans"))
    def scan_count(self, obj):
        return obj.scans.count()
