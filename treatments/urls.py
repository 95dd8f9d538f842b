# treatments/urls.py
from django.urls import path
from . import views

app_name = 'treatments'

urlpatterns = [
    path('', views.TreatmentRecordListView.as_view(), name='record_list'),
    path('new/', views.TreatmentRecordCreateView.as_view(), name='record_create'),
    path('<int:pk>/', views.TreatmentRecordDetailView.as_view(), name='record_detail'),
    path('<int:pk>/dose/', views.update_dose_status_view, name='update_dose_status'),

    # Dose tracking
    path('doses/', views.DoseTrackerView.as_view(), name='dose_tracker'),
    path('due-today/', views.PatientsDueTodayView.as_view(), name='due_today'),

    # Vaccine stock
    path('vaccines/', views.VaccineListView.as_view(), name='vaccine_list'),
    path('vaccines/add/', views.VaccineCreateView.as_view(), name='vaccine_create'),
    path('vaccines/<int:pk>/edit/', views.VaccineUpdateView.as_view(), name='vaccine_update'),

    # APIs
    path('api/dose-statistics/', views.dose_statistics_api, name='dose_statistics_api'),
]
