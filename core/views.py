# core/views.py
import calendar
import logging
from datetime import date, datetime, timedelta

from django.shortcuts import redirect
from django.contrib import messages
from django.contrib.auth.mixins import LoginRequiredMixin
from django.db.models import Count
from django.urls import reverse_lazy
from django.views.generic import TemplateView, ListView, FormView, RedirectView

from appointments.models import Appointment, AppointmentSlot
from treatments.models import TreatmentRecord
from treatments.doses import patients_due_today
from users.models import User
from .forms import SystemSettingsForm
from .models import AuditLog, SystemSetting
from .utils import get_manila_today, month_from_request, parse_int

logger = logging.getLogger(__name__)


class MaintenancePermissionMixin:
    def dispatch(self, request, *args, **kwargs):
        if not request.user.has_permission('maintenance'):
            messages.error(request, 'You do not have permission to access this page.')
            return redirect('core:dashboard')
        return super().dispatch(request, *args, **kwargs)


class HomeView(RedirectView):
    """Staff-only site: the root goes straight to the dashboard (or login)"""
    pattern_name = 'core:dashboard'


def booking_calendar(year, month):
    """
    Weeks of the month (Monday first) with the number of appointments and
    the configured slot capacity for each day. Days outside the month are None.
    """
    first_day = date(year, month, 1)
    last_day = date(year, month, calendar.monthrange(year, month)[1])

    counts = dict(
        Appointment.objects
        .filter(appointment_date__gte=first_day, appointment_date__lte=last_day)
        .exclude(status='cancelled')
        .order_by()
        .values_list('appointment_date')
        .annotate(total=Count('id'))
    )
    capacity = dict(
        AppointmentSlot.objects
        .filter(date__gte=first_day, date__lte=last_day)
        .values_list('date', 'available_slots')
    )

    weeks = []
    for week in calendar.Calendar(firstweekday=0).monthdatescalendar(year, month):
        weeks.append([
            {
                'date': day,
                'count': counts.get(day, 0),
                'available_slots': capacity.get(day),
            } if day.month == month else None
            for day in week
        ])
    return weeks


class DashboardView(LoginRequiredMixin, TemplateView):
    """Booking calendar plus the headline figures for the clinic"""
    template_name = 'core/dashboard.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        today = get_manila_today()
        year, month = month_from_request(self.request, today)

        first_day = date(year, month, 1)
        prev_month = (first_day - timedelta(days=1)).replace(day=1)
        next_month = (first_day + timedelta(days=32)).replace(day=1)

        due_today = patients_due_today(today)

        context.update({
            'today': today,
            'year': year,
            'month': month,
            'month_name': first_day.strftime('%B'),
            'prev_month': prev_month,
            'next_month': next_month,
            'weekday_names': [calendar.day_abbr[d] for d in range(7)],
            'calendar_weeks': booking_calendar(year, month),
            'due_today': due_today,
            'stats': {
                'total_appointments': Appointment.objects.count(),
                'missed_appointments': Appointment.objects.filter(status='cancelled').count(),
                'total_patients': TreatmentRecord.objects.count(),
                'completed_vaccinations': TreatmentRecord.completed_vaccinations().count(),
                'pending_requests': Appointment.objects.filter(status='pending').count(),
                'patients_due_today': len(due_today),
            },
        })

        if self.request.user.has_permission('appointments'):
            context['recent_pending'] = Appointment.objects.filter(status='pending').order_by('-created_at')[:5]

        return context


class MaintenanceHubView(LoginRequiredMixin, MaintenancePermissionMixin, TemplateView):
    """Maintenance hub for admin functions"""
    template_name = 'core/maintenance_hub.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['stats'] = {
            'users_count': User.objects.count(),
            'appointments_count': Appointment.objects.count(),
            'records_count': TreatmentRecord.objects.count(),
            'audit_logs_count': AuditLog.objects.count(),
        }
        return context


class AuditLogListView(LoginRequiredMixin, MaintenancePermissionMixin, ListView):
    """Audit logs with user, action, module and date filters"""
    model = AuditLog
    template_name = 'core/audit_log_list.html'
    context_object_name = 'logs'
    paginate_by = 50

    def get_queryset(self):
        queryset = AuditLog.objects.select_related('user').order_by('-timestamp')

        # Build active filters list for display
        self.active_filters = []

        user_id = parse_int(self.request.GET.get('user'))
        if user_id:
            user = User.objects.filter(id=user_id).first()
            if user:
                queryset = queryset.filter(user=user)
                self.active_filters.append(f"User: {user.full_name}")

        action_filter = self.request.GET.get('action')
        if action_filter:
            queryset = queryset.filter(action=action_filter)
            action_display = dict(AuditLog.ACTION_CHOICES).get(action_filter, action_filter)
            self.active_filters.append(f"Action: {action_display}")

        model_filter = self.request.GET.get('model_name')
        if model_filter:
            queryset = queryset.filter(model_name=model_filter)
            self.active_filters.append(f"Module: {model_filter.title()}")

        for param, lookup, label in (('date_from', 'gte', 'From'), ('date_to', 'lte', 'To')):
            value = self.request.GET.get(param)
            if not value:
                continue
            try:
                value = datetime.strptime(value, '%Y-%m-%d').date()
            except ValueError:
                continue
            queryset = queryset.filter(**{f'timestamp__date__{lookup}': value})
            self.active_filters.append(f"{label}: {value:%b %d, %Y}")

        return queryset

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update({
            'users': User.objects.filter(is_active=True).order_by('first_name', 'last_name'),
            'action_choices': AuditLog.ACTION_CHOICES,
            'model_choices': AuditLog.objects.values_list('model_name', flat=True).distinct().order_by('model_name'),
            'filters': {
                'user': self.request.GET.get('user', ''),
                'action': self.request.GET.get('action', ''),
                'model_name': self.request.GET.get('model_name', ''),
                'date_from': self.request.GET.get('date_from', ''),
                'date_to': self.request.GET.get('date_to', ''),
            },
            'active_filters': getattr(self, 'active_filters', []),
            'total_count': context['paginator'].count if context.get('paginator') else len(context['logs']),
        })
        return context


class SystemSettingsView(LoginRequiredMixin, MaintenancePermissionMixin, FormView):
    """System settings management"""
    template_name = 'core/system_settings.html'
    form_class = SystemSettingsForm
    success_url = reverse_lazy('core:settings')

    def form_valid(self, form):
        changes = form.save(user=self.request.user)

        if changes:
            setting = SystemSetting.objects.filter(key__in=list(changes)).first()
            AuditLog.log_action(
                user=self.request.user,
                action='update',
                model_instance=setting,
                changes=changes,
                request=self.request,
                description=f"Updated {len(changes)} system setting(s)"
            )
            logger.info(f"{self.request.user.username} updated settings: {', '.join(changes)}")
            messages.success(self.request, f'Settings updated successfully. {len(changes)} setting(s) changed.')
        else:
            messages.info(self.request, 'No changes were made.')

        return super().form_valid(form)

    def form_invalid(self, form):
        messages.error(self.request, 'Please correct the errors in the form.')
        return super().form_invalid(form)

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['page_title'] = 'System Settings'
        return context
