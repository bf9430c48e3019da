"""
Duplicate finder and per-patient duplicate statistics.

``find_potential_duplicates`` is read-only: it retrieves candidates,
scores each one and returns those at or above :data:`MIN_MATCH_SCORE`,
best first.  A candidate may disappear (merged away) between this call
and an operator acting on it; callers handle that as a normal 404.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import List, Optional, Union

import structlog
from django.db import DatabaseError

from registry.exceptions import PatientNotFound, QueryFailed
from registry.models import Patient
from registry.services.candidates import find_candidates
from registry.services.scoring import calculate_match_score
from registry.services.store import CandidateScope, PatientStore, default_store

logger = structlog.get_logger(__name__)

MIN_MATCH_SCORE = 60
HIGH_CONFIDENCE = 85
MEDIUM_CONFIDENCE = 70


@dataclass
class PatientInput:
    """A prospective identity, e.g. from a registration form."""
    name: str
    dob: Union[datetime.date, str, None] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    gender: Optional[str] = None

    @classmethod
    def from_patient(cls, patient: Patient) -> 'PatientInput':
        return cls(
            name=patient.name,
            dob=patient.dob,
            contact=patient.contact,
            email=patient.email,
            address=patient.address,
            gender=patient.gender,
        )


@dataclass
class DuplicateMatch:
    patient: Patient
    score: int
    match_reasons: List[str] = field(default_factory=list)


@dataclass
class DuplicateStats:
    total_potential_duplicates: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0

    def as_dict(self) -> dict:
        return {
            'totalPotentialDuplicates': self.total_potential_duplicates,
            'highConfidence': self.high_confidence,
            'mediumConfidence': self.medium_confidence,
            'lowConfidence': self.low_confidence,
        }


def find_potential_duplicates(
    patient_input: PatientInput,
    tenant_id,
    branch_id=None,
    exclude_patient_id=None,
    *,
    store: Optional[PatientStore] = None,
) -> List[DuplicateMatch]:
    store = store or default_store()
    scope = CandidateScope(tenant_id=tenant_id, branch_id=branch_id, exclude_patient_id=exclude_patient_id)
    try:
        candidates = find_candidates(patient_input, scope, store=store)
    except DatabaseError as exc:
        logger.error('Candidate retrieval failed', tenant_id=str(tenant_id), error=str(exc))
        raise QueryFailed() from exc

    matches: List[DuplicateMatch] = []
    for candidate in candidates:
        score, reasons = calculate_match_score(patient_input, candidate)
        if score >= MIN_MATCH_SCORE:
            matches.append(DuplicateMatch(patient=candidate, score=score, match_reasons=reasons))

    # sort() is stable: equal scores keep retrieval order
    matches.sort(key=lambda m: m.score, reverse=True)
    logger.info(
        'Duplicate check completed',
        tenant_id=str(tenant_id),
        candidates=len(candidates),
        matches=len(matches),
    )
    return matches


def get_duplicate_stats(patient_id, tenant_id, *, store: Optional[PatientStore] = None) -> DuplicateStats:
    """Bucket the duplicates of an existing patient by confidence."""
    store = store or default_store()
    try:
        patient = store.get_patient(patient_id)
    except DatabaseError as exc:
        raise QueryFailed() from exc
    if patient is None or str(patient.tenant_id) != str(tenant_id):
        raise PatientNotFound()

    matches = find_potential_duplicates(
        PatientInput.from_patient(patient),
        tenant_id,
        patient.branch_id,
        patient.pk,
        store=store,
    )
    stats = DuplicateStats(total_potential_duplicates=len(matches))
    for match in matches:
        if match.score >= HIGH_CONFIDENCE:
            stats.high_confidence += 1
        elif match.score >= MEDIUM_CONFIDENCE:
            stats.medium_confidence += 1
        else:
            stats.low_confidence += 1
    return stats
