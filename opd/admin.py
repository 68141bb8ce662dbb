"""
Django admin registrations for the OPD models.

Superusers can inspect departments, doctors and tokens at ``/admin/``
and correct data by hand during development.
"""
from django.contrib import admin

from .models import AuditEvent, Department, Doctor, Token, TokenTransition, User


@admin.register(Department)
class DepartmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'code', 'avg_consultation_minutes', 'is_open')
    list_filter = ('is_open',)
    search_fields = ('name', 'code')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('name', 'department', 'status', 'is_queue_paused', 'reviewed_at')
    list_filter = ('status', 'department', 'is_queue_paused')
    search_fields = ('name', 'user__username', 'license_no')


class TokenTransitionInline(admin.TabularInline):
    model = TokenTransition
    extra = 0
    readonly_fields = ('from_status', 'to_status', 'operator', 'timestamp', 'reason')


@admin.register(Token)
class TokenAdmin(admin.ModelAdmin):
    list_display = ('id', 'department', 'number', 'name', 'status', 'created_at')
    list_filter = ('department', 'status')
    search_fields = ('name', 'phone')
    inlines = [TokenTransitionInline]


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'user', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
