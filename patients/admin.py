# patients/admin.py
from django.contrib import admin
from .models import PatientGroup, PatientGroupMember, Prescription, GroupMessage


class PatientGroupMemberInline(admin.TabularInline):
    model = PatientGroupMember
    extra = 0


class PrescriptionInline(admin.TabularInline):
    model = Prescription
    extra = 0
    readonly_fields = ['uploaded_by', 'uploaded_at']


@admin.register(PatientGroup)
class PatientGroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'member_count', 'created_by', 'created_at']
    search_fields = ['name', 'members__name', 'members__contact']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [PatientGroupMemberInline, PrescriptionInline]


@admin.register(GroupMessage)
class GroupMessageAdmin(admin.ModelAdmin):
    list_display = ['group', 'sender', 'created_at']
    search_fields = ['body', 'group__name']
    readonly_fields = ['created_at']
