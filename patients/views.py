# patients/views.py - Patient history and patient groups
import logging

from django.shortcuts import get_object_or_404, redirect
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.views.generic import ListView, DetailView, TemplateView, FormView
from django.views.decorators.http import require_POST
from django.urls import reverse

from core.models import AuditLog
from .models import PatientGroup, Prescription
from .forms import PatientSearchForm, PatientGroupForm, AutoGroupForm, PrescriptionForm, GroupMessageForm
from . import utils

logger = logging.getLogger(__name__)


class PatientPermissionMixin:
    def dispatch(self, request, *args, **kwargs):
        if not request.user.has_permission('patients'):
            messages.error(request, 'You do not have permission to access this page.')
            return redirect('core:dashboard')
        return super().dispatch(request, *args, **kwargs)


def _denied(request):
    messages.error(request, 'You do not have permission to perform this action.')
    return redirect('core:dashboard')


# ============================================================================
# SECTION 1: PATIENT HISTORY
# ============================================================================
class PatientHistoryView(LoginRequiredMixin, PatientPermissionMixin, TemplateView):
    """Treatment records grouped per patient, newest first"""
    template_name = 'patients/patient_history.html'
    paginate_by = 20

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        form = PatientSearchForm(self.request.GET or None)
        search = form.cleaned_data['search'] if form.is_valid() else ''

        history = utils.patient_history(search)
        page_obj = Paginator(history, self.paginate_by).get_page(self.request.GET.get('page'))

        context.update({
            'search_form': form,
            'search': search,
            'page_obj': page_obj,
            'patients': page_obj.object_list,
            'total_patients': len(history),
        })
        return context


# ============================================================================
# SECTION 2: PATIENT GROUPS
# ============================================================================
class PatientGroupListView(LoginRequiredMixin, PatientPermissionMixin, ListView):
    model = PatientGroup
    template_name = 'patients/group_list.html'
    context_object_name = 'groups'
    paginate_by = 20

    def get_queryset(self):
        return PatientGroup.objects.select_related('created_by').prefetch_related('members')

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['auto_group_form'] = AutoGroupForm()
        context['available_count'] = len(utils.available_patients())
        return context


class PatientGroupCreateView(LoginRequiredMixin, PatientPermissionMixin, FormView):
    form_class = PatientGroupForm
    template_name = 'patients/group_form.html'

    def get_form_kwargs(self):
        kwargs = super().get_form_kwargs()
        kwargs['available'] = utils.available_patients()
        return kwargs

    def form_valid(self, form):
        with transaction.atomic():
            group = form.save(commit=False)
            group.created_by = self.request.user
            group.save()
            utils.add_members(group, form.selected_patients())

        logger.info(f"Patient group '{group.name}' created by {self.request.user.username}")
        messages.success(self.request, f'Group "{group.name}" created.')
        return redirect('patients:group_detail', pk=group.pk)


class AutoGroupView(LoginRequiredMixin, PatientPermissionMixin, FormView):
    """Split every available patient into fixed-size groups"""
    form_class = AutoGroupForm
    template_name = 'patients/auto_group_form.html'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['available_count'] = len(utils.available_patients())
        return context

    def form_valid(self, form):
        patients = utils.available_patients()
        if not patients:
            messages.warning(self.request, 'There are no patients to group.')
            return redirect('patients:group_list')

        try:
            groups = utils.auto_group(
                patients,
                form.cleaned_data['per_group'],
                form.cleaned_data['base_name'],
                created_by=self.request.user,
            )
        except ValidationError as e:
            for message in e.messages:
                form.add_error(None, message)
            return self.form_invalid(form)

        messages.success(self.request, f'{len(groups)} group(s) created from {len(patients)} patients.')
        return redirect('patients:group_list')


class PatientGroupDetailView(LoginRequiredMixin, PatientPermissionMixin, DetailView):
    """Group members, attached prescriptions and the message thread"""
    model = PatientGroup
    template_name = 'patients/group_detail.html'
    context_object_name = 'group'

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context.update({
            'members': self.object.members.all(),
            'prescriptions': self.object.prescriptions.select_related('uploaded_by'),
            'group_messages': self.object.messages.select_related('sender'),
            'prescription_form': PrescriptionForm(),
            'message_form': GroupMessageForm(),
        })
        return context


@login_required
@require_POST
def delete_patient_group(request, pk):
    if not request.user.has_permission('patients'):
        return _denied(request)

    group = get_object_or_404(PatientGroup, pk=pk)
    name = group.name
    with transaction.atomic():
        for prescription in group.prescriptions.all():
            prescription.delete()
        group.delete()

    messages.success(request, f'Group "{name}" deleted.')
    return redirect('patients:group_list')


@login_required
@require_POST
def upload_prescription(request, pk):
    if not request.user.has_permission('patients'):
        return _denied(request)

    group = get_object_or_404(PatientGroup, pk=pk)
    form = PrescriptionForm(request.POST, request.FILES)
    if form.is_valid():
        prescription = form.save(commit=False)
        prescription.group = group
        prescription.uploaded_by = request.user
        prescription.original_name = request.FILES['file'].name
        prescription._skip_audit_log = True
        prescription.save()

        AuditLog.log_action(
            user=request.user,
            action='create',
            model_instance=prescription,
            description=f"Uploaded prescription {prescription.original_name} to group {group.name}",
            request=request
        )
        messages.success(request, f'Prescription "{prescription.original_name}" uploaded.')
    else:
        for errors in form.errors.values():
            for error in errors:
                messages.error(request, error)

    return redirect('patients:group_detail', pk=group.pk)


@login_required
@require_POST
def remove_prescription(request, pk, prescription_pk):
    if not request.user.has_permission('patients'):
        return _denied(request)

    prescription = get_object_or_404(Prescription, pk=prescription_pk, group_id=pk)
    name = prescription.filename
    prescription.delete()

    messages.success(request, f'Prescription "{name}" removed.')
    return redirect('patients:group_detail', pk=pk)


@login_required
@require_POST
def post_group_message(request, pk):
    if not request.user.has_permission('patients'):
        return _denied(request)

    group = get_object_or_404(PatientGroup, pk=pk)
    form = GroupMessageForm(request.POST)
    if form.is_valid():
        message = form.save(commit=False)
        message.group = group
        message.sender = request.user
        message.save()
    else:
        messages.error(request, 'Message cannot be empty.')

    return redirect(reverse('patients:group_detail', kwargs={'pk': group.pk}) + '#messages')
