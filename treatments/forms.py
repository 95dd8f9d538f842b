# treatments/forms.py
from django import forms
from django.core.exceptions import ValidationError

from core.validators import clean_name, clean_philippine_phone_number, clean_time_of_day
from .models import TreatmentRecord, Vaccine, DOSE_NUMBERS
from .doses import STAFF_DOSE_STATUSES


class TreatmentRecordForm(forms.ModelForm):
    """
    Treatment record entry. Exposure categories and treatment types are
    chosen as sets; D3..D28/30 default from D0 when left blank.
    """
    exposure_categories = forms.MultipleChoiceField(
        choices=TreatmentRecord.EXPOSURE_CATEGORY_CHOICES,
        widget=forms.CheckboxSelectMultiple,
        required=False,
    )
    treatment_types = forms.MultipleChoiceField(
        choices=TreatmentRecord.TREATMENT_TYPE_CHOICES,
        widget=forms.CheckboxSelectMultiple,
        required=False,
    )
    vaccine_brand_name = forms.ChoiceField(required=False)

    class Meta:
        model = TreatmentRecord
        fields = [
            'patient_name', 'patient_contact', 'patient_email', 'patient_address',
            'patient_age', 'patient_sex', 'date_of_birth',
            'place_bitten_barangay', 'biting_animal', 'site_of_bite', 'date_bitten', 'time_bitten',
            'animal_status', 'status_of_animal_date', 'provoked', 'local_wound_treatment',
            'type_of_exposure', 'exposure_categories', 'treatment_types',
            'vaccine_brand_name', 'route', 'rig', 'remarks',
            'd0_date', 'd3_date', 'd7_date', 'd14_date', 'd28_30_date',
        ]
        widgets = {
            'date_of_birth': forms.DateInput(attrs={'type': 'date'}),
            'date_bitten': forms.DateInput(attrs={'type': 'date'}),
            'status_of_animal_date': forms.DateInput(attrs={'type': 'date'}),
            'time_bitten': forms.TimeInput(attrs={'type': 'time'}),
            'd0_date': forms.DateInput(attrs={'type': 'date'}),
            'd3_date': forms.DateInput(attrs={'type': 'date'}),
            'd7_date': forms.DateInput(attrs={'type': 'date'}),
            'd14_date': forms.DateInput(attrs={'type': 'date'}),
            'd28_30_date': forms.DateInput(attrs={'type': 'date'}),
            'patient_address': forms.Textarea(attrs={'rows': 2}),
            'remarks': forms.Textarea(attrs={'rows': 3}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        brands = Vaccine.objects.order_by('vaccine_brand').values_list('vaccine_brand', flat=True).distinct()
        choices = [('', '-- None --')] + [(brand, brand) for brand in brands]
        current = self.initial.get('vaccine_brand_name') or getattr(self.instance, 'vaccine_brand_name', '')
        if current and current not in brands:
            choices.append((current, current))
        self.fields['vaccine_brand_name'].choices = choices
        self.fields['d0_date'].required = True

    def clean_patient_name(self):
        return clean_name(self.cleaned_data.get('patient_name'), 'patient name', max_length=200)

    def clean_patient_contact(self):
        return clean_philippine_phone_number(self.cleaned_data.get('patient_contact'), 'contact number')

    def clean_time_bitten(self):
        return clean_time_of_day(self.cleaned_data.get('time_bitten'))

    def clean_place_bitten_barangay(self):
        return (self.cleaned_data.get('place_bitten_barangay') or '').strip()

    def clean(self):
        cleaned_data = super().clean()
        d0_date = cleaned_data.get('d0_date')
        if d0_date:
            for field in ('d3_date', 'd7_date', 'd14_date', 'd28_30_date'):
                value = cleaned_data.get(field)
                if value and value < d0_date:
                    self.add_error(field, 'Follow-up doses cannot be scheduled before D0.')
        return cleaned_data


class DoseStatusForm(forms.Form):
    """Staff dose action: mark one dose completed or missed"""
    dose_number = forms.TypedChoiceField(
        choices=[(n, n) for n in DOSE_NUMBERS],
        coerce=int,
    )
    status = forms.ChoiceField(choices=[(s, s.title()) for s in STAFF_DOSE_STATUSES])


class VaccineForm(forms.ModelForm):
    class Meta:
        model = Vaccine
        fields = ['vaccine_brand', 'stock_quantity', 'people_per_vaccine', 'usage_count', 'expiry_date']
        widgets = {
            'expiry_date': forms.DateInput(attrs={'type': 'date'}),
        }
        help_texts = {
            'people_per_vaccine': 'Number of patients one vial serves',
            'usage_count': 'Patients already served by the open vial',
        }

    def clean_vaccine_brand(self):
        return ' '.join((self.cleaned_data.get('vaccine_brand') or '').split())

    def clean(self):
        cleaned_data = super().clean()
        usage_count = cleaned_data.get('usage_count')
        people_per_vaccine = cleaned_data.get('people_per_vaccine')
        if usage_count is not None and people_per_vaccine and usage_count >= people_per_vaccine:
            raise ValidationError('Usage count must be lower than the number of people per vaccine.')
        return cleaned_data
