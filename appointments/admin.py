# appointments/admin.py
from django.contrib import admin
from .models import AppointmentSlot, Appointment


@admin.register(AppointmentSlot)
class AppointmentSlotAdmin(admin.ModelAdmin):
    list_display = ['date', 'available_slots', 'booked_count', 'created_by']
    date_hierarchy = 'date'
    readonly_fields = ['created_at', 'updated_at']

    def booked_count(self, obj):
        return obj.get_booked_count()
    booked_count.short_description = 'Booked'


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['patient_name', 'patient_contact', 'appointment_date', 'biting_animal', 'place_bitten', 'status']
    list_filter = ['status', 'appointment_date', 'patient_sex']
    search_fields = ['patient_name', 'patient_contact', 'patient_email', 'place_bitten', 'biting_animal']
    date_hierarchy = 'appointment_date'
    readonly_fields = ['created_at', 'updated_at', 'confirmed_at']

    fieldsets = (
        ('Patient', {
            'fields': ('patient_name', 'patient_contact', 'patient_email', 'patient_address',
                       'patient_age', 'patient_sex', 'date_of_birth')
        }),
        ('Bite Incident', {
            'fields': ('biting_animal', 'place_bitten', 'site_of_bite', 'date_bitten', 'time_bitten',
                       'animal_status', 'provoked', 'local_wound_treatment')
        }),
        ('Scheduling', {
            'fields': ('appointment_date', 'status', 'booked_by', 'confirmed_by', 'confirmed_at',
                       'cancellation_reason', 'staff_notes')
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
            'classes': ['collapse']
        }),
    )
