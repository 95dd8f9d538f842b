# patients/utils.py
"""
Patient history and group-building helpers.

There is no separate patient table: a patient is identified by the name and
contact number carried on appointments and treatment records.
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q

from appointments.models import Appointment
from core.utils import get_manila_date
from treatments.models import TreatmentRecord
from .models import PatientGroup, PatientGroupMember

logger = logging.getLogger(__name__)


def _clean(value):
    return (value or '').strip()


def patient_history(search=''):
    """
    Treatment records grouped per patient.

    Records are grouped by (trimmed name, trimmed contact); each group lists
    its records newest first, and groups are ordered by their latest record.

    Returns:
        list of dicts: name, contact, latest, records (each with record,
        completion_status and doses_completed)
    """
    queryset = TreatmentRecord.objects.all()
    search = _clean(search)
    if search:
        queryset = queryset.filter(
            Q(patient_name__icontains=search) |
            Q(patient_contact__icontains=search) |
            Q(place_bitten_barangay__icontains=search)
        )

    groups = {}
    for record in queryset.order_by('-created_at', '-pk'):
        key = (_clean(record.patient_name), _clean(record.patient_contact))
        entry = groups.get(key)
        if entry is None:
            entry = groups[key] = {
                'name': key[0],
                'contact': key[1],
                'latest': record.created_at,
                'records': [],
            }
        entry['records'].append({
            'record': record,
            'completion_status': record.completion_status,
            'doses_completed': record.doses_completed,
        })

    # dicts keep insertion order, which is already newest first
    return list(groups.values())


def available_patients():
    """
    Everyone seen through an appointment or a treatment record, one entry
    per contact number (the most recent name wins), sorted by name.
    """
    patients = {}

    def add(name, contact, seen_on, source):
        name, contact = _clean(name), _clean(contact)
        if not name:
            return
        key = contact or name.lower()
        current = patients.get(key)
        if current is None or (seen_on and (current['last_seen'] is None or seen_on > current['last_seen'])):
            patients[key] = {'name': name, 'contact': contact, 'last_seen': seen_on, 'source': source}

    for name, contact, created_at in Appointment.objects.values_list('patient_name', 'patient_contact', 'created_at'):
        add(name, contact, get_manila_date(created_at), 'appointment')

    for name, contact, created_at in TreatmentRecord.objects.values_list('patient_name', 'patient_contact', 'created_at'):
        add(name, contact, get_manila_date(created_at), 'treatment')

    return sorted(patients.values(), key=lambda p: (p['name'].lower(), p['contact']))


def chunk_patients(patients, per_group):
    """Consecutive chunks of at most per_group patients"""
    if per_group < 1:
        raise ValidationError('Patients per group must be at least 1.')
    return [patients[i:i + per_group] for i in range(0, len(patients), per_group)]


def auto_group(patients, per_group, base_name, created_by=None):
    """
    Split patients into groups named "<base_name> - Group <i>".

    Returns the created PatientGroup objects in order.
    """
    base_name = _clean(base_name)
    if not base_name:
        raise ValidationError('Please enter a group name.')

    chunks = chunk_patients(list(patients), per_group)
    created = []
    with transaction.atomic():
        for index, chunk in enumerate(chunks, start=1):
            group = PatientGroup.objects.create(name=f"{base_name} - Group {index}", created_by=created_by)
            add_members(group, chunk)
            created.append(group)

    logger.info(f"Auto-grouped {len(patients)} patients into {len(created)} groups named '{base_name}'")
    return created


def add_members(group, patients):
    """Append patients (dicts with name and contact) to a group in order"""
    start = group.members.count()
    PatientGroupMember.objects.bulk_create([
        PatientGroupMember(group=group, name=patient['name'], contact=patient.get('contact', ''), order=start + i)
        for i, patient in enumerate(patients)
    ])
