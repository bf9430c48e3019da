"""
Django admin registrations for the registry models.

Patients are read-mostly here: merging must go through the merge API so
that related records move with the identity, so deletion from the admin
is disabled.
"""

from django.contrib import admin

from .models import (
    Tenant,
    Branch,
    User,
    Patient,
    AuditEvent,
)
from .services.merge import PATIENT_RELATIONS


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'is_active', 'created_at')
    search_fields = ('id', 'name')


@admin.register(Branch)
class BranchAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'tenant', 'is_active')
    list_filter = ('tenant', 'is_active')
    search_fields = ('id', 'name')


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'tenant', 'branch', 'is_staff', 'is_superuser')
    list_filter = ('role', 'tenant')
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('name', 'mrn', 'dob', 'gender', 'contact', 'tenant', 'branch', 'created_at')
    list_filter = ('tenant', 'branch', 'gender')
    search_fields = ('name', 'mrn', 'contact', 'email')

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'tenant', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'user__username')


class PatientRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient')
    search_fields = ('patient__name', 'patient__mrn')
    raw_id_fields = ('patient',)


for relation in PATIENT_RELATIONS:
    admin.site.register(relation.model, PatientRecordAdmin)
