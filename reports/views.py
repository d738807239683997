from __future__ import annotations

from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.permissions import Capability, HasCapability
from core.serializers import ConfirmationSerializer
from . import services

DELETE_ALL_REPORTS_PHRASE = "DELETE ALL REPORTS"


class SalesReportViewSet(viewsets.GenericViewSet):
    """
    Sales reporting for the dashboard.

    Figures come from completed regular orders only. Date ranges are given
    as ``date_from`` / ``date_to`` (YYYY-MM-DD) and default to the last 30 days.
    """
    permission_classes = [HasCapability]
    filter_backends = []
    pagination_class = None
    required_capabilities = {
        'summary': (Capability.REPORTS_VIEW, Capability.REPORTS_ANALYTICS),
        'daily': (Capability.REPORTS_VIEW, Capability.REPORTS_ANALYTICS),
        'today': (Capability.REPORTS_VIEW, Capability.POS_ACCESS),
        'delete_all': (Capability.REPORTS_DELETE,),
    }

    def _range(self, request):
        return services.parse_range(
            request.query_params.get('date_from'),
            request.query_params.get('date_to'),
        )

    @action(detail=False, methods=['get'])
    def summary(self, request):
        date_from, date_to = self._range(request)
        return Response(services.sales_summary(date_from, date_to))

    @action(detail=False, methods=['get'])
    def today(self, request):
        return Response(services.today_stats())

    @action(detail=False, methods=['get'])
    def daily(self, request):
        """Per-day sales with empty days filled in, for charting."""
        date_from, date_to = self._range(request)
        return Response({
            'period': {'date_from': date_from, 'date_to': date_to},
            'data': services.daily_sales(date_from, date_to),
        })

    @action(detail=False, methods=['delete'], url_path='delete-all')
    def delete_all(self, request):
        ConfirmationSerializer(
            data=request.data, context={'phrase': DELETE_ALL_REPORTS_PHRASE}
        ).is_valid(raise_exception=True)
        result = services.delete_all_reports(by_user=request.user)
        return Response({
            'message': 'All reports and sales data have been deleted successfully',
            **result,
        })
