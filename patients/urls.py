# patients/urls.py
from django.urls import path
from . import views

app_name = 'patients'

urlpatterns = [
    path('', views.PatientHistoryView.as_view(), name='patient_history'),

    # Groups
    path('groups/', views.PatientGroupListView.as_view(), name='group_list'),
    path('groups/create/', views.PatientGroupCreateView.as_view(), name='group_create'),
    path('groups/auto/', views.AutoGroupView.as_view(), name='auto_group'),
    path('groups/<int:pk>/', views.PatientGroupDetailView.as_view(), name='group_detail'),
    path('groups/<int:pk>/delete/', views.delete_patient_group, name='group_delete'),
    path('groups/<int:pk>/prescriptions/', views.upload_prescription, name='upload_prescription'),
    path('groups/<int:pk>/prescriptions/<int:prescription_pk>/remove/', views.remove_prescription,
         name='remove_prescription'),
    path('groups/<int:pk>/messages/', views.post_group_message, name='post_group_message'),
]
