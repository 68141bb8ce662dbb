"""
URL mappings for the SmartOPD API.

Paths carry no trailing slash (``APPEND_SLASH`` is off).  Public
endpoints sit under ``/api/register``, ``/api/queue`` and
``/api/departments``; doctor, admin and auth endpoints under their own
prefixes.
"""
from django.urls import include, path

from .auth_views import jwt_logout_view, jwt_refresh_view, login_view
from .views import admin, doctors, health, patients, queue
from .views.departments import departments
from .views.registration import register

urlpatterns = [
    # prometheus exports /metrics
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Auth
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/refresh', jwt_refresh_view, name='jwt_refresh'),
    path('api/auth/logout', jwt_logout_view, name='jwt_logout'),

    # Public
    path('api/register', register, name='register'),
    path('api/departments', departments, name='departments'),
    path('api/queue/current', queue.queue_current, name='queue_current'),
    path('api/queue/live', queue.queue_live, name='queue_live'),
    path('api/queue/status/<str:token_id>', queue.queue_token_status, name='queue_status'),

    # Queue operators
    path('api/queue/next', queue.queue_next, name='queue_next'),
    path('api/queue/tokens/<str:token_id>/complete', queue.token_complete, name='token_complete'),
    path('api/queue/tokens/<str:token_id>/miss', queue.token_miss, name='token_miss'),
    path('api/queue/reset', queue.queue_reset, name='queue_reset'),

    # Doctors
    path('api/doctor/signup', doctors.doctor_signup, name='doctor_signup'),
    path('api/doctor/dashboard', doctors.doctor_dashboard_view, name='doctor_dashboard'),
    path('api/doctor/queue/pause', doctors.doctor_queue_pause, name='doctor_queue_pause'),

    # Admin
    path('api/admin/doctors', admin.admin_doctors, name='admin_doctors'),
    path('api/admin/doctors/<str:doctor_id>/approve', admin.admin_doctor_approve, name='admin_doctor_approve'),
    path('api/admin/doctors/<str:doctor_id>/reject', admin.admin_doctor_reject, name='admin_doctor_reject'),
    path('api/admin/doctors/<str:doctor_id>/toggle-queue', admin.admin_doctor_toggle_queue,
         name='admin_doctor_toggle_queue'),
    path('api/admin/patients', admin.admin_patients, name='admin_patients'),
    path('api/patients/<str:token_id>', patients.patient_detail, name='patient_detail'),
]
