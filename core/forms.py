from django import forms
from core.models import SystemSetting

INPUT_CLASS = 'mt-1 block w-full rounded-md border-gray-300 shadow-sm focus:border-primary-500 focus:ring-primary-500'


class SystemSettingsForm(forms.Form):
    """Single form for all system settings"""

    # Clinic Identity
    clinic_name = forms.CharField(
        max_length=200,
        widget=forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': 'Animal Bite Treatment Center'}),
        help_text='Displayed in header and throughout the site'
    )

    clinic_phone = forms.CharField(
        max_length=50,
        required=False,
        widget=forms.TextInput(attrs={'class': INPUT_CLASS, 'placeholder': '+63 912 345 6789'}),
        help_text='Primary contact number'
    )

    clinic_address = forms.CharField(
        required=False,
        widget=forms.Textarea(attrs={'class': INPUT_CLASS, 'rows': 3, 'placeholder': 'Bogo City, Cebu'}),
    )

    # Scheduling
    default_available_slots = forms.IntegerField(
        min_value=0,
        max_value=1000,
        widget=forms.NumberInput(attrs={'class': INPUT_CLASS}),
        help_text='Capacity used when a new daily slot is created without a value'
    )

    appointments_per_page = forms.IntegerField(
        min_value=5,
        max_value=100,
        widget=forms.NumberInput(attrs={'class': INPUT_CLASS}),
    )

    # Patient groups and dose tracking
    patients_per_group = forms.IntegerField(
        min_value=1,
        max_value=500,
        widget=forms.NumberInput(attrs={'class': INPUT_CLASS}),
        help_text='Default group size for auto-grouping'
    )

    dose_visibility_hours = forms.IntegerField(
        min_value=0,
        max_value=168,
        widget=forms.NumberInput(attrs={'class': INPUT_CLASS}),
        help_text='Hours a completed dose stays on the dose tracker queue'
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Load current values from database
        for field_name in self.fields:
            current_value = SystemSetting.get_setting(field_name, SystemSetting.DEFAULTS.get(field_name, ('',))[0])
            if current_value is not None and current_value != '':
                self.fields[field_name].initial = current_value

    def save(self, user=None):
        """Save all settings and return changes for audit log"""
        changes = {}

        for field_name, value in self.cleaned_data.items():
            old_value = SystemSetting.get_setting(field_name, '') or ''
            new_value = '' if value is None else str(value)

            if old_value != new_value:
                SystemSetting.set_setting(field_name, new_value)
                changes[field_name] = {
                    'old': old_value or '(empty)',
                    'new': new_value or '(empty)',
                    'label': self.fields[field_name].label or field_name.replace('_', ' ').capitalize()
                }

        return changes
