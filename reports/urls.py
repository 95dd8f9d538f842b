# reports/urls.py
from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    path('', views.AnalyticsView.as_view(), name='analytics'),
    path('map/', views.MapView.as_view(), name='map'),

    # APIs
    path('api/analytics/', views.analytics_api, name='analytics_api'),
    path('api/map-data/', views.map_data_api, name='map_data_api'),
    path('api/barangay-count/', views.barangay_case_count_api, name='barangay_case_count_api'),
]
