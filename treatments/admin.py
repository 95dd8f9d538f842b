# treatments/admin.py
from django.contrib import admin
from .models import TreatmentRecord, DoseUpdate, Vaccine


class DoseUpdateInline(admin.TabularInline):
    model = DoseUpdate
    extra = 0
    can_delete = False
    readonly_fields = ['dose_number', 'previous_status', 'status', 'dose_date', 'updated_by_name', 'updated_at']
    fields = readonly_fields


@admin.register(TreatmentRecord)
class TreatmentRecordAdmin(admin.ModelAdmin):
    list_display = ['patient_name', 'patient_contact', 'place_bitten_barangay', 'vaccine_brand_name',
                    'd0_date', 'doses_completed', 'created_at']
    list_filter = ['type_of_exposure', 'route', 'd0_status', 'd28_30_status']
    search_fields = ['patient_name', 'patient_contact', 'place_bitten_barangay', 'biting_animal']
    date_hierarchy = 'd0_date'
    readonly_fields = ['created_at', 'updated_at']
    inlines = [DoseUpdateInline]

    def doses_completed(self, obj):
        return f"{obj.doses_completed}/5"
    doses_completed.short_description = 'Doses'


@admin.register(Vaccine)
class VaccineAdmin(admin.ModelAdmin):
    list_display = ['vaccine_brand', 'stock_quantity', 'people_per_vaccine', 'usage_count', 'expiry_date']
    search_fields = ['vaccine_brand']
    readonly_fields = ['created_at', 'updated_at']
