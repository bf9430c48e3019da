"""
Weighted confidence that a prospective identity and a stored patient are
the same person.

Only fields present on both sides are weighed: a missing email on either
record neither helps nor hurts the score.  Name is always weighed.
"""
from __future__ import annotations

from typing import Any, List, Tuple

from registry.services.similarity import (
    ADDRESS_MATCH_THRESHOLD,
    address_similarity,
    dates_match,
    emails_match,
    name_score,
    phones_match,
    round_half_up,
)

NAME_WEIGHT = 40
DOB_WEIGHT = 25
CONTACT_WEIGHT = 20
EMAIL_WEIGHT = 10
ADDRESS_WEIGHT = 5

NAME_HIGHLY_SIMILAR = 90
NAME_SIMILAR = 70


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def calculate_match_score(candidate_input: Any, existing: Any) -> Tuple[int, List[str]]:
    """Return ``(score, reasons)`` for two identities.

    Both arguments only need ``name``, ``dob``, ``contact``, ``email`` and
    ``address`` attributes.  ``score`` is an integer in ``0..100``;
    ``reasons`` lists, in evaluation order, every field that counted as
    a match.
    """
    reasons: List[str] = []
    earned = 0.0
    evaluated = 0

    score = name_score(getattr(candidate_input, 'name', ''), getattr(existing, 'name', ''))
    earned += score / 100 * NAME_WEIGHT
    evaluated += NAME_WEIGHT
    if score >= NAME_HIGHLY_SIMILAR:
        reasons.append(f"Name highly similar ({score}%)")
    elif score >= NAME_SIMILAR:
        reasons.append(f"Name similar ({score}%)")

    dob_a, dob_b = getattr(candidate_input, 'dob', None), getattr(existing, 'dob', None)
    if _present(dob_a) and _present(dob_b):
        evaluated += DOB_WEIGHT
        if dates_match(dob_a, dob_b):
            earned += DOB_WEIGHT
            reasons.append("Date of birth matches")

    contact_a, contact_b = getattr(candidate_input, 'contact', None), getattr(existing, 'contact', None)
    if _present(contact_a) and _present(contact_b):
        evaluated += CONTACT_WEIGHT
        if phones_match(contact_a, contact_b):
            earned += CONTACT_WEIGHT
            reasons.append("Phone number matches")

    email_a, email_b = getattr(candidate_input, 'email', None), getattr(existing, 'email', None)
    if _present(email_a) and _present(email_b):
        evaluated += EMAIL_WEIGHT
        if emails_match(email_a, email_b):
            earned += EMAIL_WEIGHT
            reasons.append("Email matches")

    address_a, address_b = getattr(candidate_input, 'address', None), getattr(existing, 'address', None)
    if _present(address_a) and _present(address_b):
        evaluated += ADDRESS_WEIGHT
        similarity = address_similarity(address_a, address_b)
        if similarity >= ADDRESS_MATCH_THRESHOLD:
            earned += similarity / 100 * ADDRESS_WEIGHT
            reasons.append(f"Address similar ({similarity}%)")

    if not evaluated:
        return 0, reasons
    final = round_half_up(earned / evaluated * 100)
    return max(0, min(100, final)), reasons
