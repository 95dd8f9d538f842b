# appointments/urls.py
from django.urls import path
from . import views

app_name = 'appointments'

urlpatterns = [
    path('', views.AppointmentListView.as_view(), name='appointment_list'),
    path('book/', views.AppointmentBookView.as_view(), name='appointment_book'),
    path('<int:pk>/', views.AppointmentDetailView.as_view(), name='appointment_detail'),
    path('<int:pk>/confirm/', views.confirm_appointment, name='confirm_appointment'),
    path('<int:pk>/cancel/', views.cancel_appointment, name='cancel_appointment'),
    path('<int:pk>/complete/', views.complete_appointment, name='complete_appointment'),

    # Daily slots
    path('slots/', views.AppointmentSlotCalendarView.as_view(), name='slot_calendar'),
    path('slots/create/', views.AppointmentSlotCreateView.as_view(), name='slot_create'),
    path('slots/<int:pk>/edit/', views.AppointmentSlotUpdateView.as_view(), name='slot_update'),
    path('slots/<int:pk>/delete/', views.delete_appointment_slot, name='slot_delete'),

    # APIs
    path('api/slot-metrics/', views.slot_metrics_api, name='slot_metrics_api'),
    path('api/pending-feed/', views.pending_feed_api, name='pending_feed_api'),
]
