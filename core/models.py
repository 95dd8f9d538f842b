# core/models.py
from django.db import models


class SystemSetting(models.Model):
    """Runtime-editable clinic settings stored as key/value pairs"""
    DEFAULTS = {
        'clinic_name': ('Bogo City Animal Bite Treatment Center', 'Clinic name shown on pages and emails'),
        'clinic_address': ('Bogo City, Cebu', 'Clinic address'),
        'clinic_phone': ('', 'Clinic contact number'),
        'default_available_slots': ('40', 'Daily appointment capacity used when creating slots'),
        'appointments_per_page': ('10', 'Rows per page on the appointment list'),
        'patients_per_group': ('5', 'Group size used by automatic patient grouping'),
        'dose_visibility_hours': ('12', 'Hours a completed dose stays visible in the dose queue'),
    }

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'System Setting'
        verbose_name_plural = 'System Settings'
        ordering = ['key']

    def __str__(self):
        return f"{self.key}: {self.value}"

    @classmethod
    def get_setting(cls, key, default=None):
        """Get a setting value by key"""
        try:
            setting = cls.objects.get(key=key, is_active=True)
            return setting.value
        except cls.DoesNotExist:
            return default

    @classmethod
    def get_int_setting(cls, key, default=0):
        """Get an integer setting value"""
        try:
            setting = cls.objects.get(key=key, is_active=True)
            return int(setting.value)
        except (cls.DoesNotExist, ValueError):
            return default

    @classmethod
    def set_setting(cls, key, value, description=''):
        """Set or update a setting"""
        setting, created = cls.objects.get_or_create(
            key=key,
            defaults={
                'value': str(value),
                'description': description,
                'is_active': True
            }
        )
        if not created:
            setting.value = str(value)
            if description:
                setting.description = description
            setting.is_active = True
            setting.save()
        return setting

    @classmethod
    def initialize_defaults(cls):
        """Create missing default settings; returns the keys that were created"""
        created_keys = []
        for key, (value, description) in cls.DEFAULTS.items():
            _, created = cls.objects.get_or_create(
                key=key,
                defaults={
                    'value': value,
                    'description': description,
                    'is_active': True
                }
            )
            if created:
                created_keys.append(key)
        return created_keys


class AuditLog(models.Model):
    """Who did what to which record"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('login_failed', 'Login Failed'),
        ('confirm', 'Confirm'),
        ('cancel', 'Cancel'),
        ('complete', 'Complete'),
        ('dose_update', 'Dose Update'),
        ('status_change', 'Status Change'),
    ]

    user = models.ForeignKey('users.User', on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)

    model_name = models.CharField(max_length=50)
    object_id = models.PositiveIntegerField(null=True, blank=True)
    object_repr = models.CharField(max_length=200, blank=True)

    changes = models.JSONField(default=dict, blank=True)
    description = models.TextField(blank=True, help_text="Human-readable description of the change")

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)

    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user', 'timestamp'], name='audit_user_time_idx'),
            models.Index(fields=['model_name', 'timestamp'], name='audit_model_time_idx'),
            models.Index(fields=['action', 'timestamp'], name='audit_action_time_idx'),
        ]
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'

    def __str__(self):
        user_str = self.user.username if self.user else 'Anonymous'
        return f"{user_str} {self.action} {self.model_name} at {self.timestamp}"

    @classmethod
    def log_action(cls, user, action, model_instance, changes=None, request=None, description=''):
        """
        Log an action with optional change details

        Args:
            user: User who performed the action (can be None for anonymous)
            action: One of ACTION_CHOICES
            model_instance: The model instance that was changed
            changes: Dict of field changes {field_name: {'old': ..., 'new': ...}}
            request: HttpRequest object for IP/user agent
            description: Human-readable description
        """
        log_entry = cls(
            user=user,
            action=action,
            model_name=model_instance._meta.model_name,
            object_id=model_instance.pk,
            object_repr=str(model_instance)[:200],
            changes=changes or {},
            description=description
        )
        log_entry.attach_request(request)
        log_entry.save()
        return log_entry

    @classmethod
    def log_auth_event(cls, action, request, user=None, username='', description=''):
        """Log login, logout and failed login attempts"""
        log_entry = cls(
            user=user if action != 'login_failed' else None,
            action=action,
            model_name='user',
            object_id=user.pk if user else None,
            object_repr=user.username if user else (username or 'Unknown'),
            description=description
        )
        log_entry.attach_request(request)
        log_entry.save()
        return log_entry

    def attach_request(self, request):
        if request is None:
            return
        self.ip_address = self.get_client_ip(request)
        self.user_agent = request.META.get('HTTP_USER_AGENT', '')[:255]

    @staticmethod
    def get_client_ip(request):
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            return x_forwarded_for.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')

    @staticmethod
    def format_field_value(value):
        """Format field value for display in logs"""
        if value is None:
            return 'None'
        if isinstance(value, bool):
            return 'Yes' if value else 'No'
        if isinstance(value, (list, tuple)):
            return ', '.join(str(v) for v in value)
        if hasattr(value, 'strftime'):
            return value.strftime('%Y-%m-%d %H:%M:%S')
        return str(value)

    @staticmethod
    def get_field_changes(old_instance, new_instance, fields_to_ignore=('updated_at', 'created_at')):
        """
        Compare two model instances and return
        {field_name: {'old': ..., 'new': ..., 'label': ...}} for each changed field
        """
        changes = {}
        for field in new_instance._meta.fields:
            if field.name in fields_to_ignore:
                continue

            old_value = getattr(old_instance, field.name, None)
            new_value = getattr(new_instance, field.name, None)
            if old_value != new_value:
                changes[field.name] = {
                    'old': AuditLog.format_field_value(old_value),
                    'new': AuditLog.format_field_value(new_value),
                    'label': field.verbose_name.title(),
                }
        return changes
