from django.urls import path
from . import views

app_name = "workshop"

urlpatterns = [
    path("production/move-stage/", views.MoveStageView.as_view(), name="move-stage"),
    path("items/<int:item_id>/tasks/", views.ItemTaskHistoryView.as_view(), name="item-tasks"),

    path("work-orders/", views.WorkOrderListView.as_view(), name="work-order-list"),
    path("work-orders/<int:order_id>/", views.WorkOrderDetailView.as_view(), name="work-order-detail"),
    path("work-orders/<int:order_id>/next-statuses/", views.NextStatusesView.as_view(), name="work-order-next-statuses"),
    path("work-orders/<int:order_id>/payments/", views.WorkOrderPaymentsView.as_view(), name="work-order-payments"),

    path("customers/", views.CustomerListView.as_view(), name="customer-list"),
    path("fabrics/", views.FabricListView.as_view(), name="fabric-list"),
    path("measurements/", views.MeasurementListView.as_view(), name="measurement-list"),

    path("shipments/", views.ShipmentListView.as_view(), name="shipment-list"),
    path("shipments/scan/", views.ShipmentScanView.as_view(), name="shipment-scan"),

    path("dashboard/", views.DashboardView.as_view(), name="dashboard"),
    path("factory/board/", views.FactoryBoardView.as_view(), name="factory-board"),
]
