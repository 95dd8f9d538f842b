# treatments/doses.py
"""
Dose tracking operations.

Each of the five dose slots moves from 'pending' to 'completed' or 'missed'
when staff record the visit. Every change is written to the slot (status,
updater, timestamp) and appended to DoseUpdate.
"""
import logging
from datetime import datetime, time, timedelta

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.models import SystemSetting
from core.utils import get_manila_now, get_manila_today
from users.models import User
from .models import TreatmentRecord, DoseUpdate, DOSE_SCHEDULE, DOSE_NUMBERS, dose_prefix

logger = logging.getLogger(__name__)

STAFF_DOSE_STATUSES = ('completed', 'missed')

DEFAULT_VISIBILITY_HOURS = 12


def update_dose_status(record_id, dose_number, new_status, updated_by=None, updated_by_name=None):
    """
    Record a dose visit outcome.

    Args:
        record_id: TreatmentRecord primary key
        dose_number: 1..5 (D0, D3, D7, D14, D28/30)
        new_status: 'completed' or 'missed'
        updated_by: User recording the change
        updated_by_name: Display name to store; derived from updated_by when omitted

    Returns:
        The updated TreatmentRecord

    Raises:
        ValidationError: invalid dose number or status. The record is left unchanged.
        TreatmentRecord.DoesNotExist: unknown record
    """
    prefix = dose_prefix(dose_number)
    dose_number = int(dose_number)

    if new_status not in STAFF_DOSE_STATUSES:
        raise ValidationError(f"Invalid dose status: {new_status}")

    if updated_by_name is None:
        updated_by_name = User.display_name_for(updated_by)

    with transaction.atomic():
        record = TreatmentRecord.objects.select_for_update().get(pk=record_id)
        previous_status = getattr(record, f'{prefix}_status')
        now = timezone.now()

        setattr(record, f'{prefix}_status', new_status)
        setattr(record, f'{prefix}_updated_by', updated_by)
        setattr(record, f'{prefix}_updated_at', now)
        record._skip_audit_log = True
        record.save(update_fields=[
            f'{prefix}_status', f'{prefix}_updated_by', f'{prefix}_updated_at', 'updated_at'
        ])

        DoseUpdate.objects.create(
            treatment_record=record,
            dose_number=dose_number,
            previous_status=previous_status,
            status=new_status,
            dose_date=getattr(record, f'{prefix}_date'),
            updated_by=updated_by,
            updated_by_name=updated_by_name,
        )

    logger.info(
        f"Dose {DOSE_SCHEDULE[dose_number][1]} of record {record.pk} set {previous_status} -> {new_status} "
        f"by {updated_by_name}"
    )
    return record


def dose_statistics():
    """
    Per-dose counts across all records that have that dose scheduled.

    Returns:
        {dose_number: {'pending': n, 'completed': n, 'missed': n, 'total': n}}
    """
    stats = {}
    for number in DOSE_NUMBERS:
        prefix = DOSE_SCHEDULE[number][0]
        counts = {'pending': 0, 'completed': 0, 'missed': 0, 'total': 0}
        statuses = TreatmentRecord.objects.filter(
            **{f'{prefix}_date__isnull': False}
        ).values_list(f'{prefix}_status', flat=True)
        for status in statuses:
            if status in counts:
                counts[status] += 1
            counts['total'] += 1
        stats[number] = counts
    return stats


def patients_by_dose(dose_number, include_completed=False):
    """
    Records with the given dose scheduled, ordered by that dose's date.

    Only pending and missed doses are returned unless include_completed is set.
    Each item is a dict with the record and the dose's date, status, updated_at
    and updater display name.
    """
    prefix = dose_prefix(dose_number)

    queryset = TreatmentRecord.objects.filter(
        **{f'{prefix}_date__isnull': False}
    ).select_related(f'{prefix}_updated_by')

    if not include_completed:
        queryset = queryset.filter(**{f'{prefix}_status__in': ['pending', 'missed']})

    rows = []
    for record in queryset.order_by(f'{prefix}_date', 'pk'):
        updater = getattr(record, f'{prefix}_updated_by')
        rows.append({
            'record': record,
            'dose_number': int(dose_number),
            'dose_date': getattr(record, f'{prefix}_date'),
            'dose_status': getattr(record, f'{prefix}_status'),
            'updated_at': getattr(record, f'{prefix}_updated_at'),
            'updated_by_name': User.display_name_for(updater),
        })
    return rows


def _date_start(value):
    """Midnight (Manila) at the start of a date, as an aware datetime"""
    return timezone.make_aware(datetime.combine(value, time.min))


def _completed_within(status, updated_at, dose_date, now, window):
    if status != 'completed':
        return False
    if updated_at is not None:
        return now - updated_at <= window
    if dose_date is not None:
        return now - _date_start(dose_date) <= window
    return False


def _elapsed_since_completion(updated_at, dose_date, now):
    if updated_at is not None:
        return now - updated_at
    if dose_date is not None:
        return now - _date_start(dose_date)
    return None


def is_due_in_queue(record, dose_number, now=None, visibility_hours=None):
    """
    Whether a record belongs in the "awaiting dose N" queue.

    Dose 1 shows while D0 is not completed, or for a while after it was.
    Later doses need the previous dose completed; they show while not yet
    completed (or recently completed) and either scheduled today or later,
    or once the visibility window has passed since the previous dose.
    """
    now = now or get_manila_now()
    if visibility_hours is None:
        visibility_hours = SystemSetting.get_int_setting('dose_visibility_hours', DEFAULT_VISIBILITY_HOURS)
    window = timedelta(hours=visibility_hours)
    today = timezone.localtime(now).date()

    current = record.get_dose(dose_number)

    if current.number == 1:
        if current.status == 'completed':
            return _completed_within(current.status, current.updated_at, current.date, now, window)
        return True

    previous = record.get_dose(current.number - 1)
    if previous.status != 'completed':
        return False

    if current.status == 'completed':
        return _completed_within(current.status, current.updated_at, current.date, now, window)

    if current.date is not None and current.date >= today:
        return True

    elapsed = _elapsed_since_completion(previous.updated_at, previous.date, now)
    return elapsed is not None and elapsed >= window


def dose_queue(dose_number, now=None, visibility_hours=None):
    """Patients awaiting a dose, in dose date order"""
    if visibility_hours is None:
        visibility_hours = SystemSetting.get_int_setting('dose_visibility_hours', DEFAULT_VISIBILITY_HOURS)
    return [
        row for row in patients_by_dose(dose_number, include_completed=True)
        if is_due_in_queue(row['record'], dose_number, now=now, visibility_hours=visibility_hours)
    ]


def patients_due_today(today=None):
    """Records with a dose scheduled today, paired with that dose"""
    today = today or get_manila_today()
    query = Q()
    for number in DOSE_NUMBERS:
        query |= Q(**{f'{DOSE_SCHEDULE[number][0]}_date': today})

    return [
        (record, record.today_dose(today))
        for record in TreatmentRecord.objects.filter(query).order_by('patient_name')
    ]
