# patients/forms.py
from django import forms
from django.conf import settings

from core.models import SystemSetting
from .models import PatientGroup, Prescription, GroupMessage


class PatientSearchForm(forms.Form):
    search = forms.CharField(
        required=False,
        widget=forms.TextInput(attrs={'placeholder': 'Search by name, contact or barangay...'})
    )


class PatientGroupForm(forms.ModelForm):
    """
    Manual group: a name plus the selected patients. Patients are chosen by
    key (contact, or lowercased name when there is no contact).
    """
    patients = forms.MultipleChoiceField(widget=forms.CheckboxSelectMultiple, required=False)

    class Meta:
        model = PatientGroup
        fields = ['name']

    def __init__(self, *args, available=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.available = {self.patient_key(p): p for p in (available or [])}
        self.fields['patients'].choices = [
            (key, f"{p['name']} ({p['contact']})" if p['contact'] else p['name'])
            for key, p in self.available.items()
        ]

    @staticmethod
    def patient_key(patient):
        return patient['contact'] or patient['name'].lower()

    def clean_name(self):
        name = ' '.join((self.cleaned_data.get('name') or '').split())
        if not name:
            raise forms.ValidationError('Please enter a group name.')
        return name

    def selected_patients(self):
        return [self.available[key] for key in self.cleaned_data.get('patients', []) if key in self.available]


class AutoGroupForm(forms.Form):
    base_name = forms.CharField(max_length=150, label='Group name')
    per_group = forms.IntegerField(min_value=1, max_value=500, label='Patients per group')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['per_group'].initial = SystemSetting.get_int_setting('patients_per_group', 5)


class PrescriptionForm(forms.ModelForm):
    class Meta:
        model = Prescription
        fields = ['file']
        help_texts = {
            'file': 'Allowed: ' + ', '.join(f'.{ext}' for ext in settings.PRESCRIPTION_ALLOWED_EXTENSIONS),
        }


class GroupMessageForm(forms.ModelForm):
    class Meta:
        model = GroupMessage
        fields = ['body']
        widgets = {
            'body': forms.Textarea(attrs={'rows': 2, 'placeholder': 'Write a message...'}),
        }
        labels = {'body': ''}

    def clean_body(self):
        body = (self.cleaned_data.get('body') or '').strip()
        if not body:
            raise forms.ValidationError('Message cannot be empty.')
        return body
