from django.utils import timezone

from workshop.services.dashboard_service import DashboardService


def dashboard_callback(request, context):
    overview = DashboardService.overview()
    metrics = overview["metrics"]
    now = timezone.localtime()

    context.update({
        'current_time': now.strftime('%d.%m.%Y %H:%M'),
        'timezone_label': str(timezone.get_current_timezone()),

        'kpis': [
            {
                'title': 'Total Orders',
                'metric': metrics['total_orders'],
                'icon': 'receipt_long',
            },
            {
                'title': 'Active Orders',
                'metric': metrics['active_orders'],
                'icon': 'pending_actions',
            },
            {
                'title': 'Due Today',
                'metric': metrics['due_today'],
                'icon': 'event',
            },
            {
                'title': 'Payments Received',
                'metric': metrics['payments_total'],
                'icon': 'payments',
            },
        ],

        'wip_chart': {
            'labels': [row['label'] for row in overview['wip']],
            'datasets': [{
                'label': 'Orders on the floor',
                'data': [row['count'] for row in overview['wip']],
                'backgroundColor': '#6366f1',
            }],
        },

        'late_orders': overview['late_orders'],
        'recent_orders': overview['recent_orders'],
        'factory_board': DashboardService.factory_board(),
    })

    return context
