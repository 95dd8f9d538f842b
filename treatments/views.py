# treatments/views.py - Treatment records, dose tracking and vaccine stock

import logging

from django.shortcuts import get_object_or_404, redirect
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import ValidationError
from django.db.models import Q
from django.http import JsonResponse, HttpResponse
from django.urls import reverse, reverse_lazy
from django.utils.html import escape
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.generic import ListView, DetailView, CreateView, UpdateView, TemplateView
from django.views.decorators.http import require_POST, require_http_methods

from appointments.models import Appointment
from core.models import AuditLog, SystemSetting
from core.utils import get_manila_today, parse_int
from .models import TreatmentRecord, Vaccine, DOSE_SCHEDULE, DOSE_NUMBERS
from .forms import TreatmentRecordForm, DoseStatusForm, VaccineForm
from . import doses

logger = logging.getLogger(__name__)


class TreatmentPermissionMixin:
    permission_module = 'treatments'

    def dispatch(self, request, *args, **kwargs):
        if not request.user.has_permission(self.permission_module):
            messages.error(request, 'You do not have permission to access this page.')
            return redirect('core:dashboard')
        return super().dispatch(request, *args, **kwargs)


class VaccinePermissionMixin(TreatmentPermissionMixin):
    permission_module = 'vaccines'


# ============================================================================
# SECTION 1: TREATMENT RECORDS
# ============================================================================
class TreatmentRecordListView(LoginRequiredMixin, TreatmentPermissionMixin, ListView):
    model = TreatmentRecord
    template_name = 'treatments/record_list.html'
    context_object_name = 'records'

    def get_paginate_by(self, queryset):
        return SystemSetting.get_int_setting('appointments_per_page', 10)

    def get_queryset(self):
        queryset = TreatmentRecord.objects.all()
        search = (self.request.GET.get('search') or '').strip()
        if search:
            queryset = queryset.filter(
                Q(patient_name__icontains=search) |
                Q(patient_contact__icontains=search) |
                Q(place_bitten_barangay__icontains=search) |
                Q(biting_animal__icontains=search)
            )
        return queryset.order_by('-created_at')

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['search'] = self.request.GET.get('search', '')
        return context


class TreatmentRecordCreateView(LoginRequiredMixin, TreatmentPermissionMixin, CreateView):
    """
    New treatment record, either standalone or prefilled from an appointment
    (?appointment=<id>). Saving completes the appointment and deducts vaccine
    stock; nothing is saved when either step fails.
    """
    model = TreatmentRecord
    form_class = TreatmentRecordForm
    template_name = 'treatments/record_form.html'

    def get(self, request, *args, **kwargs):
        self.appointment = self.get_appointment()
        return super().get(request, *args, **kwargs)

    def post(self, request, *args, **kwargs):
        self.appointment = self.get_appointment()
        return super().post(request, *args, **kwargs)

    def get_appointment(self):
        appointment_id = parse_int(self.request.GET.get('appointment') or self.request.POST.get('appointment'))
        if appointment_id:
            return get_object_or_404(Appointment, pk=appointment_id)
        return None

    def get_initial(self):
        initial = super().get_initial()
        initial['d0_date'] = get_manila_today()
        if self.appointment is not None:
            initial.update(TreatmentRecord.initial_from_appointment(self.appointment))
        return initial

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['appointment'] = self.appointment
        return context

    def form_valid(self, form):
        fields = {name: value for name, value in form.cleaned_data.items()}
        try:
            self.object = TreatmentRecord.create_record(
                created_by=self.request.user,
                appointment=self.appointment,
                **fields
            )
        except ValidationError as e:
            for message in e.messages:
                form.add_error(None, message)
            return self.form_invalid(form)

        logger.info(f"Treatment record {self.object.pk} created for {self.object.patient_name} by {self.request.user.username}")
        messages.success(self.request, f'Treatment record saved for {self.object.patient_name}.')
        return redirect('treatments:record_detail', pk=self.object.pk)


class TreatmentRecordDetailView(LoginRequiredMixin, TreatmentPermissionMixin, DetailView):
    model = TreatmentRecord
    template_name = 'treatments/record_detail.html'
    context_object_name = 'record'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update({
            'doses': self.object.doses,
            'dose_updates': self.object.dose_updates.select_related('updated_by')[:50],
            'dose_form': DoseStatusForm(),
        })
        return context


# ============================================================================
# SECTION 2: DOSE TRACKING
# ============================================================================
class DoseTrackerView(LoginRequiredMixin, TreatmentPermissionMixin, TemplateView):
    """Per-dose counts plus the queue of patients awaiting the selected dose"""
    template_name = 'treatments/dose_tracker.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        selected = parse_int(self.request.GET.get('dose'), 1)
        if selected not in DOSE_SCHEDULE:
            selected = 1

        stats = doses.dose_statistics()
        context.update({
            'selected_dose': selected,
            'selected_label': DOSE_SCHEDULE[selected][1],
            'dose_tabs': [
                {'number': n, 'label': DOSE_SCHEDULE[n][1], 'stats': stats[n]}
                for n in DOSE_NUMBERS
            ],
            'queue': doses.dose_queue(selected),
        })
        return context


class PatientsDueTodayView(LoginRequiredMixin, TreatmentPermissionMixin, TemplateView):
    template_name = 'treatments/due_today.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        today = get_manila_today()
        context.update({
            'today': today,
            'due_rows': doses.patients_due_today(today),
        })
        return context


@login_required
@require_POST
def update_dose_status_view(request, pk):
    """ACTION VIEW: mark one dose completed or missed (HTMX compatible)"""
    is_htmx = bool(request.headers.get('HX-Request'))

    if not request.user.has_permission('treatments'):
        if is_htmx:
            return HttpResponse('<div class="text-red-600">Permission denied</div>', status=403)
        messages.error(request, 'You do not have permission to perform this action.')
        return redirect('core:dashboard')

    record = get_object_or_404(TreatmentRecord, pk=pk)
    next_url = request.POST.get('next')
    if not url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()},
                                           require_https=request.is_secure()):
        next_url = reverse('treatments:record_detail', kwargs={'pk': pk})

    form = DoseStatusForm(request.POST)
    try:
        if not form.is_valid():
            raise ValidationError('Invalid dose number or status.')
        dose_number = form.cleaned_data['dose_number']
        new_status = form.cleaned_data['status']
        previous = record.get_dose(dose_number)
        record = doses.update_dose_status(record.pk, dose_number, new_status, updated_by=request.user)
    except ValidationError as e:
        message = ' '.join(e.messages)
        if is_htmx:
            return HttpResponse(f'<div class="text-red-600">{escape(message)}</div>', status=400)
        messages.error(request, message)
        return redirect(next_url)

    label = DOSE_SCHEDULE[dose_number][1]
    AuditLog.log_action(
        user=request.user,
        action='dose_update',
        model_instance=record,
        changes={f'{previous.prefix}_status': {'old': previous.status, 'new': new_status, 'label': f'{label} status'}},
        description=f"Marked {label} as {new_status} for {record.patient_name}",
        request=request
    )

    message = f'{label} marked as {new_status} for {record.patient_name}.'
    if is_htmx:
        response = HttpResponse(f'<div class="text-green-700">{escape(message)}</div>')
        response['HX-Trigger'] = 'doseUpdated'
        return response

    messages.success(request, message)
    return redirect(next_url)


@login_required
@require_http_methods(["GET"])
def dose_statistics_api(request):
    if not request.user.has_permission('treatments'):
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    stats = doses.dose_statistics()
    return JsonResponse({
        'success': True,
        'doses': [
            {'dose_number': n, 'label': DOSE_SCHEDULE[n][1], **stats[n]}
            for n in DOSE_NUMBERS
        ],
    })


# ============================================================================
# SECTION 3: VACCINE STOCK
# ============================================================================
class VaccineListView(LoginRequiredMixin, VaccinePermissionMixin, ListView):
    model = Vaccine
    template_name = 'treatments/vaccine_list.html'
    context_object_name = 'vaccines'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['today'] = get_manila_today()
        return context


class VaccineCreateView(LoginRequiredMixin, VaccinePermissionMixin, CreateView):
    model = Vaccine
    form_class = VaccineForm
    template_name = 'treatments/vaccine_form.html'
    success_url = reverse_lazy('treatments:vaccine_list')

    def form_valid(self, form):
        messages.success(self.request, f'Vaccine {form.cleaned_data["vaccine_brand"]} added.')
        return super().form_valid(form)


class VaccineUpdateView(LoginRequiredMixin, VaccinePermissionMixin, UpdateView):
    model = Vaccine
    form_class = VaccineForm
    template_name = 'treatments/vaccine_form.html'
    success_url = reverse_lazy('treatments:vaccine_list')

    def form_valid(self, form):
        messages.success(self.request, f'Vaccine {self.object.vaccine_brand} updated.')
        return super().form_valid(form)
