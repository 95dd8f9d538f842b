# treatments/models.py - Post-exposure treatment records and vaccine stock
from collections import namedtuple
from datetime import timedelta

from django.db import models, transaction
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator


# Dose number -> (field prefix, label, day offset from D0)
DOSE_SCHEDULE = {
    1: ('d0', 'D0', 0),
    2: ('d3', 'D3', 3),
    3: ('d7', 'D7', 7),
    4: ('d14', 'D14', 14),
    5: ('d28_30', 'D28/30', 28),
}

DOSE_NUMBERS = sorted(DOSE_SCHEDULE)

DOSE_STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('completed', 'Completed'),
    ('missed', 'Missed'),
]

Dose = namedtuple('Dose', 'number prefix label date status updated_by_id updated_at')


def dose_prefix(dose_number):
    """Field prefix for a dose number, e.g. 3 -> 'd7'"""
    try:
        return DOSE_SCHEDULE[int(dose_number)][0]
    except (KeyError, TypeError, ValueError):
        raise ValidationError('Invalid dose number')


def _dose_date_field():
    return models.DateField(null=True, blank=True)


def _dose_status_field():
    return models.CharField(max_length=10, choices=DOSE_STATUS_CHOICES, default='pending')


def _dose_updated_by_field():
    return models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                             related_name='+')


class TreatmentRecord(models.Model):
    """
    One patient encounter under post-exposure prophylaxis.

    Patient and bite details are copied from the appointment so the record
    stands on its own. Five dose slots (D0, D3, D7, D14, D28/30) each carry a
    scheduled date, a status and who last changed it.
    """
    EXPOSURE_CATEGORY_CHOICES = [
        ('category_i', 'Category I'),
        ('category_ii', 'Category II'),
        ('category_iii', 'Category III'),
    ]

    TREATMENT_TYPE_CHOICES = [
        ('pre_exposure', 'Pre-exposure'),
        ('post_exposure', 'Post-exposure'),
    ]

    EXPOSURE_TYPE_CHOICES = [
        ('bite', 'Bite'),
        ('non_bite', 'Non-bite'),
    ]

    ROUTE_CHOICES = [
        ('intradermal', 'Intradermal (ID)'),
        ('intramuscular', 'Intramuscular (IM)'),
    ]

    appointment = models.OneToOneField(
        'appointments.Appointment',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='treatment_record'
    )

    # Patient
    patient_name = models.CharField(max_length=200)
    patient_contact = models.CharField(max_length=20, blank=True)
    patient_email = models.EmailField(blank=True)
    patient_address = models.TextField(blank=True)
    patient_age = models.PositiveIntegerField(null=True, blank=True)
    patient_sex = models.CharField(max_length=10, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    # Bite incident
    place_bitten_barangay = models.CharField(max_length=150, blank=True)
    biting_animal = models.CharField(max_length=100, blank=True)
    site_of_bite = models.CharField(max_length=150, blank=True)
    date_bitten = models.DateField(null=True, blank=True)
    time_bitten = models.CharField(max_length=20, blank=True)
    animal_status = models.CharField(max_length=100, blank=True)
    status_of_animal_date = models.DateField(null=True, blank=True)
    provoked = models.CharField(max_length=20, blank=True)
    local_wound_treatment = models.CharField(max_length=200, blank=True)

    # Classification and regimen
    type_of_exposure = models.CharField(max_length=20, choices=EXPOSURE_TYPE_CHOICES, blank=True)
    exposure_categories = models.JSONField(default=list, blank=True,
                                           help_text="Subset of category_i, category_ii, category_iii")
    treatment_types = models.JSONField(default=list, blank=True,
                                       help_text="Subset of pre_exposure, post_exposure")
    vaccine_brand_name = models.CharField(max_length=100, blank=True)
    route = models.CharField(max_length=20, choices=ROUTE_CHOICES, blank=True)
    rig = models.CharField(max_length=100, blank=True, verbose_name='RIG',
                           help_text="Rabies immunoglobulin given, if any")
    remarks = models.TextField(blank=True)

    # Dose slots
    d0_date = _dose_date_field()
    d0_status = _dose_status_field()
    d0_updated_by = _dose_updated_by_field()
    d0_updated_at = models.DateTimeField(null=True, blank=True)

    d3_date = _dose_date_field()
    d3_status = _dose_status_field()
    d3_updated_by = _dose_updated_by_field()
    d3_updated_at = models.DateTimeField(null=True, blank=True)

    d7_date = _dose_date_field()
    d7_status = _dose_status_field()
    d7_updated_by = _dose_updated_by_field()
    d7_updated_at = models.DateTimeField(null=True, blank=True)

    d14_date = _dose_date_field()
    d14_status = _dose_status_field()
    d14_updated_by = _dose_updated_by_field()
    d14_updated_at = models.DateTimeField(null=True, blank=True)

    d28_30_date = _dose_date_field()
    d28_30_status = _dose_status_field()
    d28_30_updated_by = _dose_updated_by_field()
    d28_30_updated_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='created_treatment_records')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['patient_name', 'patient_contact'], name='treat_patient_idx'),
            models.Index(fields=['d0_date'], name='treat_d0_date_idx'),
            models.Index(fields=['created_at'], name='treat_created_idx'),
        ]

    def __str__(self):
        return f"{self.patient_name} - {self.created_at:%Y-%m-%d}" if self.created_at else self.patient_name

    # ------------------------------------------------------------------
    # Dose slots
    # ------------------------------------------------------------------
    def get_dose(self, dose_number):
        prefix = dose_prefix(dose_number)
        return Dose(
            number=int(dose_number),
            prefix=prefix,
            label=DOSE_SCHEDULE[int(dose_number)][1],
            date=getattr(self, f'{prefix}_date'),
            status=getattr(self, f'{prefix}_status'),
            updated_by_id=getattr(self, f'{prefix}_updated_by_id'),
            updated_at=getattr(self, f'{prefix}_updated_at'),
        )

    @property
    def doses(self):
        return [self.get_dose(number) for number in DOSE_NUMBERS]

    @property
    def dose_statuses(self):
        return [getattr(self, f'{DOSE_SCHEDULE[n][0]}_status') for n in DOSE_NUMBERS]

    @property
    def doses_completed(self):
        return sum(1 for status in self.dose_statuses if status == 'completed')

    @property
    def completion_status(self):
        """completed when all five doses are done, incomplete when any was missed, else ongoing"""
        statuses = self.dose_statuses
        if all(status == 'completed' for status in statuses):
            return 'completed'
        if any(status == 'missed' for status in statuses):
            return 'incomplete'
        return 'ongoing'

    def today_dose(self, today=None):
        """First dose, in schedule order, whose date is today (Manila); None when no dose falls today"""
        if today is None:
            from core.utils import get_manila_today
            today = get_manila_today()
        for number in DOSE_NUMBERS:
            if getattr(self, f'{DOSE_SCHEDULE[number][0]}_date') == today:
                return self.get_dose(number)
        return None

    def fill_schedule_from_d0(self):
        """Default the D3..D28/30 dates to their day offsets from D0 where unset"""
        if not self.d0_date:
            return
        for number in DOSE_NUMBERS[1:]:
            prefix, _, offset = DOSE_SCHEDULE[number]
            if getattr(self, f'{prefix}_date') is None:
                setattr(self, f'{prefix}_date', self.d0_date + timedelta(days=offset))

    # Appointment field -> record field
    APPOINTMENT_FIELD_MAP = {
        'patient_name': 'patient_name',
        'patient_contact': 'patient_contact',
        'patient_email': 'patient_email',
        'patient_address': 'patient_address',
        'patient_age': 'patient_age',
        'patient_sex': 'patient_sex',
        'date_of_birth': 'date_of_birth',
        'place_bitten': 'place_bitten_barangay',
        'biting_animal': 'biting_animal',
        'site_of_bite': 'site_of_bite',
        'date_bitten': 'date_bitten',
        'time_bitten': 'time_bitten',
        'animal_status': 'animal_status',
        'provoked': 'provoked',
        'local_wound_treatment': 'local_wound_treatment',
    }

    @classmethod
    def initial_from_appointment(cls, appointment):
        return {
            record_field: getattr(appointment, appointment_field)
            for appointment_field, record_field in cls.APPOINTMENT_FIELD_MAP.items()
        }

    @classmethod
    def create_record(cls, created_by, appointment=None, **fields):
        """
        Save a new treatment record and deduct one use of its vaccine brand.

        When created from an appointment the appointment is completed in the
        same transaction (a pending one is confirmed first). Raises
        ValidationError and saves nothing when the appointment is closed or
        already has a record, or when the vaccine is expired or out of stock.
        """
        from appointments.models import Appointment

        with transaction.atomic():
            if appointment is not None:
                appointment = Appointment.objects.select_for_update().get(pk=appointment.pk)
                if appointment.status not in Appointment.ACTIVE_STATUSES:
                    raise ValidationError(
                        f'A treatment record cannot be created for a {appointment.get_status_display().lower()} appointment.'
                    )
                if cls.objects.filter(appointment=appointment).exists():
                    raise ValidationError('This appointment already has a treatment record.')

            record = cls(appointment=appointment, created_by=created_by, **fields)
            record.fill_schedule_from_d0()
            record.full_clean()
            record.save()

            if appointment is not None:
                if appointment.status == 'pending':
                    appointment.confirm(created_by)
                appointment.complete()

            Vaccine.deduct_for_brand(record.vaccine_brand_name)

        return record

    @classmethod
    def completed_vaccinations(cls):
        """Records with every dose completed"""
        filters = {f'{DOSE_SCHEDULE[n][0]}_status': 'completed' for n in DOSE_NUMBERS}
        return cls.objects.filter(**filters)

    def clean(self):
        valid_categories = dict(self.EXPOSURE_CATEGORY_CHOICES)
        if not isinstance(self.exposure_categories, list) or \
                any(c not in valid_categories for c in self.exposure_categories):
            raise ValidationError({'exposure_categories': 'Unknown exposure category.'})

        valid_types = dict(self.TREATMENT_TYPE_CHOICES)
        if not isinstance(self.treatment_types, list) or \
                any(t not in valid_types for t in self.treatment_types):
            raise ValidationError({'treatment_types': 'Unknown treatment type.'})

        # Keep the tagged sets free of duplicates
        self.exposure_categories = sorted(set(self.exposure_categories))
        self.treatment_types = sorted(set(self.treatment_types))

    @property
    def exposure_category_labels(self):
        labels = dict(self.EXPOSURE_CATEGORY_CHOICES)
        return [labels[c] for c in self.exposure_categories if c in labels]

    @property
    def treatment_type_labels(self):
        labels = dict(self.TREATMENT_TYPE_CHOICES)
        return [labels[t] for t in self.treatment_types if t in labels]


class DoseUpdate(models.Model):
    """Append-only history of dose status changes"""
    treatment_record = models.ForeignKey(TreatmentRecord, on_delete=models.CASCADE,
                                         related_name='dose_updates')
    dose_number = models.PositiveSmallIntegerField(choices=[(n, DOSE_SCHEDULE[n][1]) for n in DOSE_NUMBERS])
    previous_status = models.CharField(max_length=10, choices=DOSE_STATUS_CHOICES)
    status = models.CharField(max_length=10, choices=DOSE_STATUS_CHOICES)
    dose_date = models.DateField(null=True, blank=True)
    updated_by = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='dose_updates')
    updated_by_name = models.CharField(max_length=200, blank=True)
    updated_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-updated_at']
        indexes = [
            models.Index(fields=['treatment_record', 'dose_number'], name='dose_update_record_idx'),
        ]

    def __str__(self):
        return f"{self.treatment_record.patient_name} {self.get_dose_number_display()} -> {self.status}"


class Vaccine(models.Model):
    """
    Anti-rabies vaccine stock. One vial serves `people_per_vaccine` patients;
    `usage_count` tracks how many patients the open vial has served.
    """
    vaccine_brand = models.CharField(max_length=100)
    stock_quantity = models.PositiveIntegerField(default=0)
    people_per_vaccine = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    usage_count = models.PositiveIntegerField(default=0)
    expiry_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['vaccine_brand', 'expiry_date']
        indexes = [
            models.Index(fields=['vaccine_brand', 'expiry_date'], name='vaccine_brand_expiry_idx'),
        ]

    def __str__(self):
        return f"{self.vaccine_brand} (exp. {self.expiry_date})"

    def is_expired(self, today=None):
        if today is None:
            from core.utils import get_manila_today
            today = get_manila_today()
        return self.expiry_date <= today

    @property
    def is_out_of_stock(self):
        return self.stock_quantity <= 0

    def record_usage(self):
        """Count one patient against the open vial; a full vial comes off stock"""
        self.usage_count += 1
        if self.usage_count >= self.people_per_vaccine:
            self.stock_quantity = max(0, self.stock_quantity - 1)
            self.usage_count = 0
        self.save(update_fields=['usage_count', 'stock_quantity', 'updated_at'])

    @classmethod
    def deduct_for_brand(cls, brand_name, today=None):
        """
        Deduct one patient's use from the earliest-expiring vaccine of a brand.

        Returns the vaccine used, or None when the brand is not in the catalog.
        Raises ValidationError when that vaccine is expired or out of stock.
        """
        brand_name = (brand_name or '').strip()
        if not brand_name:
            return None

        with transaction.atomic():
            vaccine = cls.objects.select_for_update().filter(
                vaccine_brand__iexact=brand_name
            ).order_by('expiry_date').first()

            if vaccine is None:
                return None
            if vaccine.is_expired(today):
                raise ValidationError(f'{vaccine.vaccine_brand} stock expired on {vaccine.expiry_date:%B %d, %Y}.')
            if vaccine.is_out_of_stock:
                raise ValidationError(f'{vaccine.vaccine_brand} is out of stock.')

            vaccine.record_usage()
        return vaccine
