# appointments/models.py - Bite-incident appointments with daily slot capacity
from django.db import models, transaction
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.utils import timezone


class AppointmentSlot(models.Model):
    """
    Daily booking capacity.
    A date can only be booked when a slot row exists for it.
    """
    DEFAULT_AVAILABLE_SLOTS = 40

    date = models.DateField(unique=True)
    available_slots = models.PositiveIntegerField(
        default=DEFAULT_AVAILABLE_SLOTS,
        help_text="Maximum number of appointments for this date"
    )
    notes = models.TextField(blank=True, help_text="Optional notes for this date")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                                   related_name='created_appointment_slots')

    class Meta:
        ordering = ['date']
        verbose_name = 'Appointment Slot'
        verbose_name_plural = 'Appointment Slots'

    def __str__(self):
        return f"{self.date} - {self.available_slots} slots"

    @classmethod
    def get_for_date(cls, date_obj):
        return cls.objects.filter(date=date_obj).first()

    @classmethod
    def default_capacity(cls):
        from core.models import SystemSetting
        return SystemSetting.get_int_setting('default_available_slots', cls.DEFAULT_AVAILABLE_SLOTS)

    def get_booked_count(self):
        return Appointment.objects.filter(
            appointment_date=self.date
        ).exclude(status='cancelled').count()

    def get_metrics(self):
        """Capacity figures shown on the schedule calendar"""
        booked = self.get_booked_count()
        available = self.available_slots or 0
        return {
            'available': available,
            'booked': booked,
            'remaining': max(0, available - booked),
            'percentage': round(booked / available * 100) if available > 0 else 0,
        }

    def has_capacity(self):
        return self.get_booked_count() < self.available_slots


class Appointment(models.Model):
    """
    A patient's booking for a bite consultation, carrying the incident details
    that later seed the treatment record.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('confirmed', 'Confirmed'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
    ]

    # Staff actions allowed from each status
    ALLOWED_TRANSITIONS = {
        'pending': ['confirmed', 'cancelled'],
        'confirmed': ['completed', 'cancelled'],
        'completed': [],
        'cancelled': [],
    }

    ACTIVE_STATUSES = ['pending', 'confirmed']

    SEX_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
    ]

    PROVOCATION_CHOICES = [
        ('provoked', 'Provoked'),
        ('unprovoked', 'Unprovoked'),
    ]

    # Patient identity and contact
    patient_name = models.CharField(max_length=200)
    patient_contact = models.CharField(max_length=20)
    patient_email = models.EmailField(blank=True)
    patient_address = models.TextField(blank=True)
    patient_age = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(0)])
    patient_sex = models.CharField(max_length=10, choices=SEX_CHOICES, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)

    # Bite incident
    biting_animal = models.CharField(max_length=100, help_text="e.g. Dog, Cat")
    place_bitten = models.CharField(max_length=150, help_text="Barangay where the bite happened")
    site_of_bite = models.CharField(max_length=150, blank=True, help_text="Body part")
    date_bitten = models.DateField(null=True, blank=True)
    time_bitten = models.CharField(max_length=20, blank=True, help_text="HH:MM, 24-hour")
    animal_status = models.CharField(max_length=100, blank=True, help_text="e.g. Alive, Dead, Unknown")
    provoked = models.CharField(max_length=20, choices=PROVOCATION_CHOICES, blank=True)
    local_wound_treatment = models.CharField(max_length=200, blank=True,
                                             help_text="Washing of bite / first aid given")

    # Scheduling
    appointment_date = models.DateField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    booked_by = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                                  related_name='booked_appointments')

    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmed_by = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True,
                                     related_name='confirmed_appointments')
    cancellation_reason = models.TextField(blank=True)
    staff_notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='appt_status_idx'),
            models.Index(fields=['appointment_date'], name='appt_date_idx'),
            models.Index(fields=['created_at'], name='appt_created_idx'),
            models.Index(fields=['place_bitten'], name='appt_place_bitten_idx'),
            models.Index(fields=['patient_contact'], name='appt_contact_idx'),
        ]

    def __str__(self):
        return f"{self.patient_name} - {self.appointment_date} ({self.get_status_display()})"

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, [])

    def _transition(self, new_status):
        if not self.can_transition_to(new_status):
            raise ValidationError(
                f'Cannot change status from {self.get_status_display()} to '
                f'{dict(self.STATUS_CHOICES).get(new_status, new_status)}.'
            )
        self.status = new_status

    def confirm(self, confirmed_by_user):
        self._transition('confirmed')
        self.confirmed_at = timezone.now()
        self.confirmed_by = confirmed_by_user
        self.save(update_fields=['status', 'confirmed_at', 'confirmed_by', 'updated_at'])

    def cancel(self, reason=''):
        self._transition('cancelled')
        self.cancellation_reason = reason
        self.save(update_fields=['status', 'cancellation_reason', 'updated_at'])

    def complete(self):
        self._transition('completed')
        self.save(update_fields=['status', 'updated_at'])

    @classmethod
    def book(cls, booked_by=None, **fields):
        """
        Create a pending appointment if the date still has capacity.

        Raises ValidationError when no slot is configured for the date or the
        slot is full.
        """
        appointment_date = fields.get('appointment_date')
        with transaction.atomic():
            slot = AppointmentSlot.objects.select_for_update().filter(date=appointment_date).first()
            if slot is None:
                raise ValidationError(
                    f"No appointment slots are open for {appointment_date:%B %d, %Y}."
                )
            if not slot.has_capacity():
                raise ValidationError(
                    f"No available slots for {appointment_date:%B %d, %Y}. Please choose another date."
                )

            appointment = cls(booked_by=booked_by, status='pending', **fields)
            appointment.full_clean()
            appointment.save()
        return appointment

    @classmethod
    def pending_since(cls, since=None):
        """Pending bookings created after `since`, newest first"""
        queryset = cls.objects.filter(status='pending')
        if since is not None:
            queryset = queryset.filter(created_at__gt=since)
        return queryset.order_by('-created_at')
