# users/forms.py
from django import forms
from django.contrib.auth.forms import AuthenticationForm
from .models import User, Role


class CustomLoginForm(AuthenticationForm):
    """Staff sign-in; retired and terminated accounts are refused"""
    error_messages = {
        **AuthenticationForm.error_messages,
        'blocked_status': 'Your account is %(status)s. Please contact the administrator.',
    }

    username = forms.CharField(
        widget=forms.TextInput(attrs={'class': 'form-input', 'placeholder': 'Username'})
    )
    password = forms.CharField(
        widget=forms.PasswordInput(attrs={'class': 'form-input', 'placeholder': 'Password'})
    )

    def confirm_login_allowed(self, user):
        super().confirm_login_allowed(user)
        if user.employment_status in User.BLOCKED_STATUSES:
            raise forms.ValidationError(
                self.error_messages['blocked_status'],
                code='blocked_status',
                params={'status': user.get_employment_status_display().lower()},
            )


class UserForm(forms.ModelForm):
    """Form for creating and updating staff accounts"""
    password1 = forms.CharField(
        label='Password',
        widget=forms.PasswordInput(attrs={'class': 'form-input'}),
        required=False,
        help_text="Leave blank to keep current password (for updates)"
    )
    password2 = forms.CharField(
        label='Confirm Password',
        widget=forms.PasswordInput(attrs={'class': 'form-input'}),
        required=False
    )

    class Meta:
        model = User
        fields = [
            'username', 'first_name', 'last_name', 'email', 'phone',
            'position', 'role', 'employment_status', 'is_active',
        ]
        labels = {
            'is_active': 'Account is active',
        }

    def __init__(self, *args, **kwargs):
        self.is_update = kwargs.pop('is_update', False)
        super().__init__(*args, **kwargs)

        if not self.is_update:
            self.fields['password1'].required = True
            self.fields['password2'].required = True

        self.fields['role'].queryset = Role.objects.all()

    def clean(self):
        cleaned_data = super().clean()
        password1 = cleaned_data.get('password1')
        password2 = cleaned_data.get('password2')

        if password1 or password2:
            if password1 != password2:
                raise forms.ValidationError("Passwords don't match.")
            if len(password1) < 8:
                raise forms.ValidationError("Password must be at least 8 characters long.")

        return cleaned_data

    def save(self, commit=True):
        user = super().save(commit=False)
        password = self.cleaned_data.get('password1')
        if password:
            user.set_password(password)
        if commit:
            user.save()
        return user
