# appointments/forms.py
from django import forms
from django.core.exceptions import ValidationError

from core.utils import get_manila_today
from core.validators import clean_name, clean_philippine_phone_number, clean_time_of_day
from .models import Appointment, AppointmentSlot


class AppointmentBookingForm(forms.ModelForm):
    """Booking form for a bite consultation"""

    class Meta:
        model = Appointment
        fields = [
            'patient_name', 'patient_contact', 'patient_email', 'patient_address',
            'patient_age', 'patient_sex', 'date_of_birth',
            'biting_animal', 'place_bitten', 'site_of_bite', 'date_bitten', 'time_bitten',
            'animal_status', 'provoked', 'local_wound_treatment',
            'appointment_date',
        ]
        widgets = {
            'appointment_date': forms.DateInput(attrs={'type': 'date'}),
            'date_bitten': forms.DateInput(attrs={'type': 'date'}),
            'date_of_birth': forms.DateInput(attrs={'type': 'date'}),
            'time_bitten': forms.TimeInput(attrs={'type': 'time'}),
            'patient_address': forms.Textarea(attrs={'rows': 2}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['appointment_date'].widget.attrs['min'] = get_manila_today().isoformat()

    def clean_patient_name(self):
        return clean_name(self.cleaned_data.get('patient_name'), 'patient name', max_length=200)

    def clean_patient_contact(self):
        contact = clean_philippine_phone_number(self.cleaned_data.get('patient_contact'), 'contact number')
        if not contact:
            raise ValidationError('Please enter a contact number.')
        return contact

    def clean_biting_animal(self):
        return ' '.join((self.cleaned_data.get('biting_animal') or '').split())

    def clean_place_bitten(self):
        return (self.cleaned_data.get('place_bitten') or '').strip()

    def clean_time_bitten(self):
        return clean_time_of_day(self.cleaned_data.get('time_bitten'))

    def clean_appointment_date(self):
        appointment_date = self.cleaned_data.get('appointment_date')
        if appointment_date and appointment_date < get_manila_today():
            raise ValidationError('Appointment date cannot be in the past.')
        return appointment_date

    def clean(self):
        cleaned_data = super().clean()
        date_bitten = cleaned_data.get('date_bitten')
        if date_bitten and date_bitten > get_manila_today():
            self.add_error('date_bitten', 'Date bitten cannot be in the future.')
        return cleaned_data


class AppointmentSlotForm(forms.ModelForm):
    """Create or edit a day's booking capacity"""

    class Meta:
        model = AppointmentSlot
        fields = ['date', 'available_slots', 'notes']
        widgets = {
            'date': forms.DateInput(attrs={'type': 'date'}),
            'notes': forms.Textarea(attrs={'rows': 2, 'placeholder': 'Optional notes for this date...'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if not self.instance.pk:
            self.fields['available_slots'].initial = AppointmentSlot.default_capacity()
        else:
            # Date is fixed once the slot exists
            self.fields['date'].disabled = True

    def clean_available_slots(self):
        available_slots = self.cleaned_data.get('available_slots')
        if self.instance.pk and available_slots is not None:
            booked = self.instance.get_booked_count()
            if available_slots < booked:
                raise ValidationError(
                    f'{booked} appointments are already booked for this date; capacity cannot go below that.'
                )
        return available_slots


class CancelAppointmentForm(forms.Form):
    reason = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 2}))
