# appointments/views.py - Appointment list, actions, slots and the pending feed

from datetime import datetime, date, timedelta
import calendar
import logging

from django.shortcuts import get_object_or_404, redirect
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.http import JsonResponse, HttpResponse
from django.urls import reverse, reverse_lazy
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.html import escape
from django.views.generic import ListView, DetailView, CreateView, UpdateView, TemplateView
from django.views.decorators.http import require_POST, require_http_methods

from core.models import AuditLog, SystemSetting
from core.email_service import EmailService
from core.utils import get_manila_today, month_from_request
from .models import Appointment, AppointmentSlot
from .forms import AppointmentBookingForm, AppointmentSlotForm, CancelAppointmentForm

logger = logging.getLogger(__name__)


class AppointmentPermissionMixin:
    def dispatch(self, request, *args, **kwargs):
        if not request.user.has_permission('appointments'):
            messages.error(request, 'You do not have permission to access this page.')
            return redirect('core:dashboard')
        return super().dispatch(request, *args, **kwargs)


def _parse_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


# ============================================================================
# SECTION 1: APPOINTMENT LIST & DETAIL
# ============================================================================
class AppointmentListView(LoginRequiredMixin, AppointmentPermissionMixin, ListView):
    """
    Appointment list with search and filters.
    Completed appointments are hidden unless the status filter asks for them.
    """
    model = Appointment
    template_name = 'appointments/appointment_list.html'
    context_object_name = 'appointments'

    SEARCH_FIELDS = [
        'patient_name', 'patient_contact', 'patient_email', 'patient_address',
        'biting_animal', 'place_bitten', 'site_of_bite',
    ]

    def get_paginate_by(self, queryset):
        return SystemSetting.get_int_setting('appointments_per_page', 10)

    def get_queryset(self):
        queryset = Appointment.objects.select_related('confirmed_by')

        status = self.request.GET.get('status')
        if status in dict(Appointment.STATUS_CHOICES):
            queryset = queryset.filter(status=status)
        else:
            queryset = queryset.exclude(status='completed')

        date_from = _parse_date(self.request.GET.get('date_from'))
        if date_from:
            queryset = queryset.filter(appointment_date__gte=date_from)

        date_to = _parse_date(self.request.GET.get('date_to'))
        if date_to:
            queryset = queryset.filter(appointment_date__lte=date_to)

        search = (self.request.GET.get('search') or '').strip()
        if search:
            query = Q()
            for field in self.SEARCH_FIELDS:
                query |= Q(**{f'{field}__icontains': search})
            queryset = queryset.filter(query)

        return queryset.order_by('-created_at')

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update({
            'status_choices': Appointment.STATUS_CHOICES,
            'pending_count': Appointment.objects.filter(status='pending').count(),
            'filters': {
                'status': self.request.GET.get('status', ''),
                'date_from': self.request.GET.get('date_from', ''),
                'date_to': self.request.GET.get('date_to', ''),
                'search': self.request.GET.get('search', ''),
            }
        })
        return context


class AppointmentDetailView(LoginRequiredMixin, AppointmentPermissionMixin, DetailView):
    model = Appointment
    template_name = 'appointments/appointment_detail.html'
    context_object_name = 'appointment'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        appointment = self.object
        context.update({
            'can_confirm': appointment.can_transition_to('confirmed'),
            'can_cancel': appointment.can_transition_to('cancelled'),
            'can_complete': appointment.can_transition_to('completed'),
            'cancel_form': CancelAppointmentForm(),
            'treatment_record': getattr(appointment, 'treatment_record', None),
        })
        return context


class AppointmentBookView(LoginRequiredMixin, AppointmentPermissionMixin, CreateView):
    """Book an appointment on behalf of a walk-in or phone caller"""
    model = Appointment
    form_class = AppointmentBookingForm
    template_name = 'appointments/appointment_form.html'

    def get_initial(self):
        initial = super().get_initial()
        requested_date = _parse_date(self.request.GET.get('date'))
        if requested_date:
            initial['appointment_date'] = requested_date
        return initial

    def form_valid(self, form):
        try:
            self.object = Appointment.book(booked_by=self.request.user, **form.cleaned_data)
        except ValidationError as e:
            for message in e.messages:
                form.add_error('appointment_date', message)
            return self.form_invalid(form)

        logger.info(f"Appointment {self.object.pk} booked for {self.object.appointment_date} by {self.request.user.username}")
        messages.success(self.request, f'Appointment booked for {self.object.patient_name}.')
        return redirect('appointments:appointment_detail', pk=self.object.pk)


# ============================================================================
# SECTION 2: STATUS ACTIONS (HTMX compatible)
# ============================================================================
def _action_denied(request):
    if request.headers.get('HX-Request'):
        return HttpResponse('<div class="text-red-600">Permission denied</div>', status=403)
    messages.error(request, 'You do not have permission to perform this action.')
    return redirect('core:dashboard')


def _action_error(request, pk, message):
    if request.headers.get('HX-Request'):
        return HttpResponse(f'<div class="text-red-600">{escape(message)}</div>', status=400)
    messages.error(request, message)
    return redirect('appointments:appointment_detail', pk=pk)


def _action_success(request, pk, message, trigger):
    if request.headers.get('HX-Request'):
        response = HttpResponse(f'<div class="text-green-700">{escape(message)}</div>')
        response['HX-Trigger'] = trigger
        return response
    messages.success(request, message)
    return redirect('appointments:appointment_detail', pk=pk)


@login_required
@require_POST
def confirm_appointment(request, pk):
    """ACTION VIEW: pending -> confirmed, then email the patient"""
    if not request.user.has_permission('appointments'):
        return _action_denied(request)

    try:
        with transaction.atomic():
            appointment = get_object_or_404(Appointment.objects.select_for_update(), pk=pk)
            old_status = appointment.status

            appointment._skip_audit_log = True
            appointment.confirm(request.user)

            AuditLog.log_action(
                user=request.user,
                action='confirm',
                model_instance=appointment,
                changes={'status': {'old': old_status, 'new': 'confirmed', 'label': 'Status'}},
                description=f"Confirmed appointment for {appointment.patient_name} on {appointment.appointment_date:%B %d, %Y}",
                request=request
            )
    except ValidationError as e:
        return _action_error(request, pk, ' '.join(e.messages))

    email_sent = EmailService.send_appointment_confirmed_email(appointment)
    if appointment.patient_email and not email_sent and not request.headers.get('HX-Request'):
        messages.warning(request, 'Failed to send confirmation email.')

    return _action_success(
        request, pk, f'Appointment for {appointment.patient_name} has been confirmed.', 'appointmentConfirmed'
    )


@login_required
@require_POST
def cancel_appointment(request, pk):
    """ACTION VIEW: pending/confirmed -> cancelled, then email the patient"""
    if not request.user.has_permission('appointments'):
        return _action_denied(request)

    form = CancelAppointmentForm(request.POST)
    reason = form.cleaned_data['reason'] if form.is_valid() else ''

    try:
        with transaction.atomic():
            appointment = get_object_or_404(Appointment.objects.select_for_update(), pk=pk)
            old_status = appointment.status

            appointment._skip_audit_log = True
            appointment.cancel(reason)

            AuditLog.log_action(
                user=request.user,
                action='cancel',
                model_instance=appointment,
                changes={'status': {'old': old_status, 'new': 'cancelled', 'label': 'Status'}},
                description=f"Cancelled appointment for {appointment.patient_name}" + (f": {reason}" if reason else ''),
                request=request
            )
    except ValidationError as e:
        return _action_error(request, pk, ' '.join(e.messages))

    email_sent = EmailService.send_appointment_cancelled_email(appointment, reason=reason)
    if appointment.patient_email and not email_sent and not request.headers.get('HX-Request'):
        messages.warning(request, 'Failed to send cancellation email.')

    return _action_success(
        request, pk, f'Appointment for {appointment.patient_name} has been cancelled.', 'appointmentCancelled'
    )


@login_required
@require_POST
def complete_appointment(request, pk):
    """ACTION VIEW: confirmed -> completed"""
    if not request.user.has_permission('appointments'):
        return _action_denied(request)

    try:
        with transaction.atomic():
            appointment = get_object_or_404(Appointment.objects.select_for_update(), pk=pk)

            appointment._skip_audit_log = True
            appointment.complete()

            AuditLog.log_action(
                user=request.user,
                action='complete',
                model_instance=appointment,
                changes={'status': {'old': 'confirmed', 'new': 'completed', 'label': 'Status'}},
                description=f"Marked appointment for {appointment.patient_name} as completed",
                request=request
            )
    except ValidationError as e:
        return _action_error(request, pk, ' '.join(e.messages))

    return _action_success(
        request, pk, f'Appointment for {appointment.patient_name} has been marked as completed.', 'appointmentCompleted'
    )


# ============================================================================
# SECTION 3: DAILY SLOT MANAGEMENT
# ============================================================================
class AppointmentSlotCalendarView(LoginRequiredMixin, AppointmentPermissionMixin, TemplateView):
    """Month view of configured slots with booked/remaining figures"""
    template_name = 'appointments/slot_calendar.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        today = get_manila_today()

        year, month = month_from_request(self.request, today)
        start_date = date(year, month, 1)
        end_date = date(year, month, calendar.monthrange(year, month)[1])

        slots = AppointmentSlot.objects.filter(date__gte=start_date, date__lte=end_date)
        slot_rows = [{'slot': slot, 'metrics': slot.get_metrics()} for slot in slots]

        prev_month = (start_date.replace(day=1) - timedelta(days=1)).replace(day=1)
        next_month = end_date + timedelta(days=1)

        context.update({
            'slot_rows': slot_rows,
            'month': month,
            'year': year,
            'month_name': start_date.strftime('%B'),
            'prev_month': prev_month,
            'next_month': next_month,
            'today': today,
        })
        return context


class AppointmentSlotCreateView(LoginRequiredMixin, AppointmentPermissionMixin, CreateView):
    model = AppointmentSlot
    form_class = AppointmentSlotForm
    template_name = 'appointments/slot_form.html'
    success_url = reverse_lazy('appointments:slot_calendar')

    def get_initial(self):
        initial = super().get_initial()
        requested_date = _parse_date(self.request.GET.get('date'))
        if requested_date:
            initial['date'] = requested_date
        return initial

    def form_valid(self, form):
        form.instance.created_by = self.request.user
        messages.success(self.request, f'Slots created for {form.cleaned_data["date"]:%B %d, %Y}.')
        return super().form_valid(form)


class AppointmentSlotUpdateView(LoginRequiredMixin, AppointmentPermissionMixin, UpdateView):
    model = AppointmentSlot
    form_class = AppointmentSlotForm
    template_name = 'appointments/slot_form.html'
    success_url = reverse_lazy('appointments:slot_calendar')

    def form_valid(self, form):
        messages.success(self.request, f'Slots updated for {self.object.date:%B %d, %Y}.')
        return super().form_valid(form)


@login_required
@require_POST
def delete_appointment_slot(request, pk):
    """Remove a day's capacity; existing appointments are kept"""
    if not request.user.has_permission('appointments'):
        messages.error(request, 'You do not have permission to perform this action.')
        return redirect('core:dashboard')

    slot = get_object_or_404(AppointmentSlot, pk=pk)
    slot_date = slot.date
    slot.delete()

    messages.success(request, f'Slots deleted for {slot_date:%B %d, %Y}.')
    return redirect('appointments:slot_calendar')


# ============================================================================
# SECTION 4: JSON APIs
# ============================================================================
@login_required
@require_http_methods(["GET"])
def slot_metrics_api(request):
    """
    Capacity figures for one date (?date=YYYY-MM-DD).
    Used by the booking form to warn before a full day is submitted.
    """
    slot_date = _parse_date(request.GET.get('date'))
    if slot_date is None:
        return JsonResponse({'success': False, 'error': 'Invalid date'}, status=400)

    slot = AppointmentSlot.get_for_date(slot_date)
    if slot is None:
        return JsonResponse({'success': True, 'date': slot_date.isoformat(), 'configured': False})

    return JsonResponse({
        'success': True,
        'date': slot_date.isoformat(),
        'configured': True,
        **slot.get_metrics(),
    })


@login_required
@require_http_methods(["GET"])
def pending_feed_api(request):
    """
    Change feed for newly booked appointments.

    Clients poll with ?since=<ISO timestamp from the previous response> and
    get the pending bookings created after it plus the current pending count.
    """
    if not request.user.has_permission('appointments'):
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    try:
        since = parse_datetime(request.GET.get('since') or '')
    except ValueError:
        # Well formed but out of range, e.g. month 13
        since = None
    if since is not None and timezone.is_naive(since):
        since = timezone.make_aware(since)

    new_appointments = Appointment.pending_since(since)[:20]

    return JsonResponse({
        'success': True,
        'server_time': timezone.now().isoformat(),
        'pending_count': Appointment.objects.filter(status='pending').count(),
        'events': [
            {
                'id': appointment.id,
                'patient_name': appointment.patient_name,
                'appointment_date': appointment.appointment_date.isoformat(),
                'created_at': appointment.created_at.isoformat(),
                'message': f"New appointment booked by {appointment.patient_name or 'a patient'}",
                'url': reverse('appointments:appointment_detail', kwargs={'pk': appointment.pk}),
            }
            for appointment in new_appointments
        ],
    })
