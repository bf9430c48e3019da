"""
Database models for the patient registry.

A :class:`Patient` belongs to exactly one tenant (and one branch inside
that tenant).  Clinical and financial records hang off the patient via a
``patient`` foreign key; those are the rows a merge moves from the
duplicate onto the surviving identity.  The record models only carry
enough columns to be realistic; their CRUD lives outside this app.
"""
from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models


class Tenant(models.Model):
    """An organisation.  Nothing is ever matched or merged across tenants."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class Branch(models.Model):
    """A hospital or clinic site inside a tenant."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE, related_name='branches')
    name = models.CharField(max_length=255)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"{self.name} ({self.tenant_id})"


class User(AbstractUser):
    """Staff account bound to a tenant (and optionally a branch).

    Only ``admin`` and ``super`` roles may run duplicate checks and
    merges; ``staff`` accounts exist for the wider platform.
    """
    ROLE_CHOICES = [
        ('staff', 'Staff'),
        ('admin', 'Administrator'),
        ('super', 'Super Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='staff')
    tenant = models.ForeignKey(
        Tenant, null=True, blank=True, on_delete=models.SET_NULL, related_name='users', db_index=True
    )
    branch = models.ForeignKey(
        Branch, null=True, blank=True, on_delete=models.SET_NULL, related_name='users'
    )

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """A registered patient identity.

    Optional demographic fields are stored as empty strings (or ``NULL``
    for ``dob``) when unknown; the matcher treats both as "absent".
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(Tenant, on_delete=models.PROTECT, related_name='patients')
    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name='patients')
    mrn = models.CharField(max_length=64, blank=True, help_text="Medical record number")
    name = models.CharField(max_length=255, db_index=True)
    dob = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=20, blank=True)
    contact = models.CharField(max_length=32, blank=True, db_index=True)
    email = models.EmailField(max_length=254, blank=True, db_index=True)
    address = models.TextField(blank=True)
    emergency_contact = models.CharField(max_length=255, blank=True)
    blood_group = models.CharField(max_length=8, blank=True)
    allergies = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['tenant', 'branch', 'created_at'], name='patient_scope_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.mrn or self.id})"


# ---------------------------------------------------------------------------
# Records owned by a patient.  Every model here must appear in
# registry.services.merge.PATIENT_RELATIONS so merges move it; PROTECT
# makes deleting a patient that still owns rows fail instead of cascading.
# ---------------------------------------------------------------------------

class Appointment(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='appointments')
    scheduled_at = models.DateTimeField()
    department = models.CharField(max_length=100, blank=True)
    status = models.CharField(max_length=20, default='scheduled')
    reason = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)


class Encounter(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='encounters')
    branch = models.ForeignKey(Branch, null=True, blank=True, on_delete=models.SET_NULL, related_name='encounters')
    encounter_type = models.CharField(max_length=20, default='opd')
    visit_date = models.DateTimeField(auto_now_add=True)
    status = models.CharField(max_length=20, default='active')
    chief_complaint = models.TextField(blank=True)


class Admission(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='admissions')
    encounter = models.ForeignKey(Encounter, null=True, blank=True, on_delete=models.SET_NULL, related_name='admissions')
    admitted_at = models.DateTimeField(auto_now_add=True)
    discharged_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=20, default='active')
    diagnosis = models.TextField(blank=True)


class Invoice(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='invoices')
    encounter = models.ForeignKey(Encounter, null=True, blank=True, on_delete=models.SET_NULL, related_name='invoices')
    invoice_type = models.CharField(max_length=20, default='opd')
    total = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    paid = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(max_length=20, default='draft')
    created_at = models.DateTimeField(auto_now_add=True)


class Order(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='orders')
    encounter = models.ForeignKey(Encounter, null=True, blank=True, on_delete=models.SET_NULL, related_name='orders')
    order_type = models.CharField(max_length=20)
    details = models.JSONField(default=dict, blank=True)
    priority = models.CharField(max_length=20, default='routine')
    status = models.CharField(max_length=20, default='pending')
    ordered_at = models.DateTimeField(auto_now_add=True)


class Document(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='documents')
    title = models.CharField(max_length=255)
    category = models.CharField(max_length=50, blank=True)
    storage_key = models.CharField(max_length=512, blank=True)
    uploaded_at = models.DateTimeField(auto_now_add=True)


class ClinicalNote(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='clinical_notes')
    encounter = models.ForeignKey(Encounter, null=True, blank=True, on_delete=models.SET_NULL, related_name='notes')
    assessment = models.TextField(blank=True)
    plan = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)


class Prescription(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='prescriptions')
    note = models.ForeignKey(ClinicalNote, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions')
    drugs = models.JSONField(default=list, blank=True)
    status = models.CharField(max_length=20, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)


class Feedback(models.Model):
    patient = models.ForeignKey(Patient, null=True, blank=True, on_delete=models.PROTECT, related_name='feedbacks')
    feedback_type = models.CharField(max_length=20)
    message = models.TextField()
    status = models.CharField(max_length=20, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)


class Incident(models.Model):
    patient = models.ForeignKey(Patient, null=True, blank=True, on_delete=models.PROTECT, related_name='incidents')
    incident_type = models.CharField(max_length=50)
    severity = models.CharField(max_length=20)
    description = models.TextField()
    status = models.CharField(max_length=20, default='reported')
    reported_at = models.DateTimeField(auto_now_add=True)


class DietOrder(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='diet_orders')
    admission = models.ForeignKey(Admission, null=True, blank=True, on_delete=models.SET_NULL, related_name='diet_orders')
    diet_type = models.CharField(max_length=50)
    meal_type = models.CharField(max_length=20)
    status = models.CharField(max_length=20, default='pending')
    ordered_at = models.DateTimeField(auto_now_add=True)


class PreAuthorization(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='pre_authorizations')
    payer = models.CharField(max_length=255)
    requested_amount = models.DecimalField(max_digits=10, decimal_places=2)
    approved_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    status = models.CharField(max_length=20, default='pending')
    requested_at = models.DateTimeField(auto_now_add=True)


class PatientInsurance(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='insurances')
    payer = models.CharField(max_length=255)
    policy_number = models.CharField(max_length=64)
    valid_from = models.DateField()
    valid_till = models.DateField()
    is_active = models.BooleanField(default=True)


class Commission(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='commissions')
    invoice = models.ForeignKey(Invoice, null=True, blank=True, on_delete=models.SET_NULL, related_name='commissions')
    referral_source = models.CharField(max_length=255)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=20, default='pending')
    created_at = models.DateTimeField(auto_now_add=True)


class CriticalAlert(models.Model):
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='critical_alerts')
    alert_type = models.CharField(max_length=50)
    message = models.TextField()
    acknowledged = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    tenant = models.ForeignKey(Tenant, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=64, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_idx'),
        ]

    def __str__(self):
        return f"{self.action}:{self.object_type}/{self.object_id}"
