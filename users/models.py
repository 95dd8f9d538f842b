# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models


class Role(models.Model):
    ADMIN = 'admin'
    STAFF = 'staff'

    ROLE_CHOICES = [
        (ADMIN, 'Admin'),
        (STAFF, 'Staff'),
    ]

    MODULES = [
        'dashboard',
        'appointments',
        'treatments',
        'patients',
        'reports',
        'map',
        'vaccines',
        'maintenance',
    ]

    name = models.CharField(max_length=50, unique=True)
    display_name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    permissions = models.JSONField(default=dict, help_text="Module permissions")
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.display_name

    def is_protected(self):
        """Only admin role is protected from editing"""
        return self.name == self.ADMIN

    @classmethod
    def default_permissions(cls, name):
        if name == cls.ADMIN:
            return {module: True for module in cls.MODULES}
        if name == cls.STAFF:
            return {
                module: module not in ('vaccines', 'maintenance')
                for module in cls.MODULES
            }
        return {}

    def save(self, *args, **kwargs):
        # Default roles get their permission map on first save
        if self.is_default and not self.permissions:
            self.permissions = self.default_permissions(self.name)
        super().save(*args, **kwargs)


class User(AbstractUser):
    STATUS_ACTIVE = 'active'
    STATUS_RETIRED = 'retired'
    STATUS_TERMINATED = 'terminated'

    EMPLOYMENT_STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_RETIRED, 'Retired'),
        (STATUS_TERMINATED, 'Terminated'),
    ]

    BLOCKED_STATUSES = [STATUS_RETIRED, STATUS_TERMINATED]

    role = models.ForeignKey(Role, on_delete=models.PROTECT, null=True, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    position = models.CharField(max_length=100, blank=True)
    employment_status = models.CharField(
        max_length=20, choices=EMPLOYMENT_STATUS_CHOICES, default=STATUS_ACTIVE
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_full_name()} ({self.username})"

    def has_permission(self, module_name):
        """Check if user has permission for a specific module"""
        if self.is_superuser:
            return True
        if not self.role:
            return False
        return self.role.permissions.get(module_name, False)

    @property
    def is_admin(self):
        return self.is_superuser or (self.role is not None and self.role.name == Role.ADMIN)

    @property
    def can_sign_in(self):
        return self.is_active and self.employment_status not in self.BLOCKED_STATUSES

    @property
    def full_name(self):
        return self.get_full_name() or self.username

    @staticmethod
    def display_name_for(user):
        """Name shown next to dose updates and group messages"""
        if user is None:
            return 'Unknown'
        return user.get_full_name() or user.username or 'Unknown'
