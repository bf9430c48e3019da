"""
Candidate retrieval: a cheap, recall-biased pre-filter that pulls stored
patients worth scoring against a prospective identity.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog

from registry.models import Patient
from registry.services.similarity import phone_suffix
from registry.services.store import CandidateScope, PatientStore

logger = structlog.get_logger(__name__)

MIN_TOKEN_LENGTH = 3
NAME_CANDIDATE_LIMIT = 100
CONTACT_CANDIDATE_LIMIT = 50
EMAIL_CANDIDATE_LIMIT = 20
# Below this many name hits, widen the net with contact and email lookups.
WIDEN_BELOW = 20


def name_tokens(name: Optional[str]) -> List[str]:
    return [t for t in (name or '').strip().split() if len(t) >= MIN_TOKEN_LENGTH]


def find_candidates(patient_input: Any, scope: CandidateScope, *, store: PatientStore) -> List[Patient]:
    """Return stored patients that might match ``patient_input``.

    Order is name hits, then contact hits, then email hits, each in
    registration order; a patient found by several lookups appears once.
    """
    found: Dict[Any, Patient] = {}

    def _merge(rows: List[Patient]) -> None:
        for row in rows:
            found.setdefault(row.pk, row)

    tokens = name_tokens(getattr(patient_input, 'name', ''))
    if tokens:
        _merge(store.search_by_name_tokens(tokens, scope, NAME_CANDIDATE_LIMIT))

    suffix = phone_suffix(getattr(patient_input, 'contact', None))
    if suffix and len(found) < WIDEN_BELOW:
        _merge(store.search_by_contact_suffix(suffix, scope, CONTACT_CANDIDATE_LIMIT))

    email = (getattr(patient_input, 'email', None) or '').strip()
    if email and len(found) < WIDEN_BELOW:
        _merge(store.search_by_email(email, scope, EMAIL_CANDIDATE_LIMIT))

    logger.debug(
        'Duplicate candidates retrieved',
        tenant_id=str(scope.tenant_id),
        branch_id=str(scope.branch_id) if scope.branch_id else None,
        name_tokens=len(tokens),
        candidates=len(found),
    )
    return list(found.values())
