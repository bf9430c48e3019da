"""
Merge two patient records that an operator confirmed are the same person.

The duplicate's clinical and financial records are re-pointed at the
primary, empty demographic fields on the primary are filled from the
duplicate, and the duplicate row is deleted.  All of it runs in one
transaction: it commits completely or not at all.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Tuple, Type

import structlog
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import DatabaseError, models

from registry.exceptions import InvalidOperation, MergeFailed, PatientNotFound, TenantMismatch
from registry.models import (
    Admission,
    Appointment,
    ClinicalNote,
    Commission,
    CriticalAlert,
    DietOrder,
    Document,
    Encounter,
    Feedback,
    Incident,
    Invoice,
    Order,
    Patient,
    PatientInsurance,
    PreAuthorization,
    Prescription,
)
from registry.services.audit import log_action
from registry.services.store import PatientStore, default_store

logger = structlog.get_logger(__name__)


class PatientRelation(NamedTuple):
    key: str
    model: Type[models.Model]
    counted: bool = False


# Every model with a foreign key to Patient.  Reassigned in this order.
PATIENT_RELATIONS: Tuple[PatientRelation, ...] = (
    PatientRelation('appointments', Appointment, counted=True),
    PatientRelation('encounters', Encounter, counted=True),
    PatientRelation('admissions', Admission, counted=True),
    PatientRelation('invoices', Invoice, counted=True),
    PatientRelation('orders', Order, counted=True),
    PatientRelation('documents', Document, counted=True),
    PatientRelation('clinical_notes', ClinicalNote),
    PatientRelation('prescriptions', Prescription),
    PatientRelation('feedbacks', Feedback),
    PatientRelation('incidents', Incident),
    PatientRelation('diet_orders', DietOrder),
    PatientRelation('pre_authorizations', PreAuthorization),
    PatientRelation('insurances', PatientInsurance),
    PatientRelation('commissions', Commission),
    PatientRelation('critical_alerts', CriticalAlert),
)

# Copied from the duplicate only where the primary has no value.
BACKFILL_FIELDS = (
    'contact',
    'email',
    'address',
    'dob',
    'gender',
    'blood_group',
    'allergies',
    'emergency_contact',
)


@dataclass
class MergeResult:
    primary_patient: Patient
    duplicate_id: str
    records_transferred: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            'duplicateId': self.duplicate_id,
            'recordsTransferred': dict(self.records_transferred),
        }


def _is_empty(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def backfill_values(primary: Patient, duplicate: Patient) -> dict:
    """Fields the primary lacks and the duplicate can supply."""
    updates = {}
    for name in BACKFILL_FIELDS:
        current = getattr(primary, name)
        incoming = getattr(duplicate, name)
        if _is_empty(current) and not _is_empty(incoming):
            updates[name] = incoming
    return updates


def _resolve_pair(store: PatientStore, primary_id, duplicate_id, tenant_id, *, for_update: bool):
    primary = store.get_patient(primary_id, for_update=for_update)
    duplicate = store.get_patient(duplicate_id, for_update=for_update)
    if primary is None:
        raise PatientNotFound('primary patient not found')
    if duplicate is None:
        raise PatientNotFound('duplicate patient not found')
    if str(primary.tenant_id) != str(tenant_id) or str(duplicate.tenant_id) != str(tenant_id):
        raise TenantMismatch()
    return primary, duplicate


def _broadcast_merged(tenant_id, primary_id, duplicate_id) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    async_to_sync(channel_layer.group_send)("updates", {
        "type": "patient.merged",
        "tenantId": str(tenant_id),
        "primaryId": str(primary_id),
        "duplicateId": str(duplicate_id),
    })


def _announce_merged(tenant_id, primary_id, duplicate_id) -> None:
    # runs after COMMIT: the merge stands whether or not the event goes out
    try:
        _broadcast_merged(tenant_id, primary_id, duplicate_id)
    except Exception:
        logger.exception(
            'Patient merge broadcast failed',
            tenant_id=str(tenant_id),
            primary_id=str(primary_id),
            duplicate_id=str(duplicate_id),
        )


def merge_patients(
    primary_id,
    duplicate_id,
    tenant_id,
    *,
    store: Optional[PatientStore] = None,
    actor=None,
) -> MergeResult:
    """Fold ``duplicate_id`` into ``primary_id`` within ``tenant_id``.

    Raises :class:`InvalidOperation` for a self-merge,
    :class:`PatientNotFound` when either id is unknown (including a
    duplicate another merge already consumed), :class:`TenantMismatch`
    when either patient lives in another tenant, and :class:`MergeFailed`
    when the database aborts the transaction.  Nothing is retried.
    """
    if str(primary_id) == str(duplicate_id):
        raise InvalidOperation()
    store = store or default_store()

    # Fail fast before opening a write transaction.
    _resolve_pair(store, primary_id, duplicate_id, tenant_id, for_update=False)

    log = logger.bind(tenant_id=str(tenant_id), primary_id=str(primary_id), duplicate_id=str(duplicate_id))
    log.info('Patient merge started')
    try:
        with store.atomic():
            # Re-read under row locks; a concurrent merge may have won.
            primary, duplicate = _resolve_pair(store, primary_id, duplicate_id, tenant_id, for_update=True)

            counts = {}
            moved = 0
            for relation in PATIENT_RELATIONS:
                n = store.reassign(relation.model, duplicate.pk, primary.pk)
                moved += n
                if relation.counted:
                    counts[relation.key] = n

            backfilled = backfill_values(primary, duplicate)
            primary = store.update_patient(primary, backfilled)
            store.delete_patient(duplicate)

            log_action(
                user=actor,
                action='patient_merge',
                tenant_id=primary.tenant_id,
                object_type='patient',
                object_id=primary.pk,
                detail={
                    'duplicateId': str(duplicate_id),
                    'recordsTransferred': counts,
                    'recordsMoved': moved,
                    'backfilled': sorted(backfilled),
                },
            )
            store.on_commit(lambda: _announce_merged(tenant_id, primary_id, duplicate_id))
    except DatabaseError as exc:
        log.error('Patient merge rolled back', error=str(exc))
        raise MergeFailed() from exc

    log.info('Patient merge committed', records_transferred=counts, records_moved=moved, backfilled=sorted(backfilled))
    return MergeResult(primary_patient=primary, duplicate_id=str(duplicate_id), records_transferred=counts)
