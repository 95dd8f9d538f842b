# users/admin.py
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin
from .models import User, Role


@admin.register(Role)
class RoleAdmin(admin.ModelAdmin):
    list_display = ['name', 'display_name', 'is_default', 'created_at']
    search_fields = ['name', 'display_name']


@admin.register(User)
class StaffUserAdmin(UserAdmin):
    list_display = ['username', 'first_name', 'last_name', 'role', 'employment_status', 'is_active']
    list_filter = ['role', 'employment_status', 'is_active']
    fieldsets = UserAdmin.fieldsets + (
        ('Clinic', {'fields': ('role', 'phone', 'position', 'employment_status')}),
    )
