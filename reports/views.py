# reports/views.py - Bite-case analytics and the barangay map
import logging

from django.shortcuts import redirect
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.views.generic import TemplateView
from django.views.decorators.http import require_http_methods

from core.utils import get_manila_today, parse_int
from . import analytics, geo

logger = logging.getLogger(__name__)


class ReportPermissionMixin:
    permission_module = 'reports'

    def dispatch(self, request, *args, **kwargs):
        if not request.user.has_permission(self.permission_module):
            messages.error(request, 'You do not have permission to access this page.')
            return redirect('core:dashboard')
        return super().dispatch(request, *args, **kwargs)


def _selection(request):
    """(year, period) from the query string, defaulting to this month"""
    today = get_manila_today()
    year = parse_int(request.GET.get('year'), today.year)
    period = request.GET.get('period', 'month')
    if period not in analytics.PERIODS:
        period = 'month'
    return year, period


class AnalyticsView(LoginRequiredMixin, ReportPermissionMixin, TemplateView):
    """
    Bite-case analytics for the selected year and period:
    animal types, time of day, victim age, monthly and yearly trends.
    """
    template_name = 'reports/analytics.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        year, period = _selection(self.request)
        context.update(analytics.build_analytics(analytics.appointment_rows(), year, period))
        context['periods'] = [('week', 'This Week'), ('month', 'This Month'), ('year', 'This Year')]
        return context


class MapView(LoginRequiredMixin, ReportPermissionMixin, TemplateView):
    permission_module = 'map'
    template_name = 'reports/map.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        markers = geo.barangay_map_data()
        context.update({
            'markers': markers,
            'map_center': geo.MAP_CENTER,
            'risk_levels': geo.RISK_LEVELS,
            'total_cases': sum(marker['count'] for marker in markers),
        })
        return context


@login_required
@require_http_methods(["GET"])
def analytics_api(request):
    if not request.user.has_permission('reports'):
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    year, period = _selection(request)
    data = analytics.build_analytics(analytics.appointment_rows(), year, period)
    return JsonResponse({'success': True, **data})


@login_required
@require_http_methods(["GET"])
def map_data_api(request):
    if not request.user.has_permission('map'):
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    return JsonResponse({
        'success': True,
        'center': list(geo.MAP_CENTER),
        'markers': geo.barangay_map_data(),
    })


@login_required
@require_http_methods(["GET"])
def barangay_case_count_api(request):
    """Case count for one barangay (?name=)"""
    if not request.user.has_permission('map'):
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    name = (request.GET.get('name') or '').strip()
    if not name:
        return JsonResponse({'success': False, 'error': 'Barangay name is required'}, status=400)

    count = geo.barangay_case_count(name)
    level, color = geo.risk_level(count)
    return JsonResponse({
        'success': True,
        'barangay': name,
        'count': count,
        'risk_level': level,
        'color': color,
    })
