"""
Persistence port for duplicate detection and merging.

Candidate retrieval and the merge executor never touch the ORM directly;
they receive a :class:`PatientStore`.  :class:`DjangoPatientStore` is the
production implementation.  Tests subclass it to inject failures.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ContextManager, Iterable, List, Optional, Type

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Q

from registry.models import Patient

PatientId = Any  # UUID or its string form


@dataclass(frozen=True)
class CandidateScope:
    """Partition a candidate search may not leave."""
    tenant_id: PatientId
    branch_id: Optional[PatientId] = None
    exclude_patient_id: Optional[PatientId] = None


class PatientStore:
    """Operations the dedupe core needs from the surrounding platform."""

    def search_by_name_tokens(self, tokens: Iterable[str], scope: CandidateScope, limit: int) -> List[Patient]:
        raise NotImplementedError

    def search_by_contact_suffix(self, suffix: str, scope: CandidateScope, limit: int) -> List[Patient]:
        raise NotImplementedError

    def search_by_email(self, email: str, scope: CandidateScope, limit: int) -> List[Patient]:
        raise NotImplementedError

    def get_patient(self, patient_id: PatientId, *, for_update: bool = False) -> Optional[Patient]:
        raise NotImplementedError

    def atomic(self) -> ContextManager:
        raise NotImplementedError

    def on_commit(self, callback: Callable[[], None]) -> None:
        raise NotImplementedError

    def reassign(self, model: Type[models.Model], from_patient_id: PatientId, to_patient_id: PatientId) -> int:
        """Point every ``model`` row owned by one patient at another; return the row count."""
        raise NotImplementedError

    def update_patient(self, patient: Patient, fields: dict) -> Patient:
        raise NotImplementedError

    def delete_patient(self, patient: Patient) -> None:
        raise NotImplementedError


class DjangoPatientStore(PatientStore):

    def __init__(self, using: Optional[str] = None):
        self.using = using

    def _scoped(self, scope: CandidateScope):
        qs = Patient.objects.using(self.using).filter(tenant_id=scope.tenant_id)
        if scope.branch_id:
            qs = qs.filter(branch_id=scope.branch_id)
        if scope.exclude_patient_id:
            qs = qs.exclude(id=scope.exclude_patient_id)
        return qs.order_by('created_at', 'id')

    def search_by_name_tokens(self, tokens, scope, limit):
        condition = Q()
        for token in tokens:
            condition |= Q(name__icontains=token)
        if not condition:
            return []
        return list(self._scoped(scope).filter(condition)[:limit])

    def search_by_contact_suffix(self, suffix, scope, limit):
        return list(self._scoped(scope).filter(contact__contains=suffix)[:limit])

    def search_by_email(self, email, scope, limit):
        return list(self._scoped(scope).filter(email__iexact=email)[:limit])

    def get_patient(self, patient_id, *, for_update=False):
        qs = Patient.objects.using(self.using)
        if for_update:
            qs = qs.select_for_update()
        try:
            return qs.filter(id=patient_id).first()
        except (ValueError, ValidationError):
            # malformed UUID
            return None

    def atomic(self):
        return transaction.atomic(using=self.using)

    def on_commit(self, callback):
        transaction.on_commit(callback, using=self.using)

    def reassign(self, model, from_patient_id, to_patient_id):
        return model._default_manager.using(self.using).filter(patient_id=from_patient_id).update(patient_id=to_patient_id)

    def update_patient(self, patient, fields):
        if not fields:
            return patient
        for name, value in fields.items():
            setattr(patient, name, value)
        patient.save(using=self.using, update_fields=[*fields, 'updated_at'])
        return patient

    def delete_patient(self, patient):
        patient.delete(using=self.using)


def default_store() -> PatientStore:
    return DjangoPatientStore()
