# core/urls.py
from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('', views.HomeView.as_view(), name='home'),
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),

    # Maintenance module
    path('maintenance/', views.MaintenanceHubView.as_view(), name='maintenance_hub'),
    path('maintenance/settings/', views.SystemSettingsView.as_view(), name='settings'),
    path('audit-logs/', views.AuditLogListView.as_view(), name='audit_logs'),
]
