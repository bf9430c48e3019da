"""
Field comparators used to decide whether two patient records describe
the same person.

Everything here is pure: no database access, no Django models.  Values
may come from a :class:`~registry.models.Patient` or from an unsaved
:class:`~registry.services.dedupe.PatientInput`.
"""
from __future__ import annotations

import datetime
import math
import re
from typing import Optional, Union

from django.utils.dateparse import parse_date, parse_datetime

DateLike = Union[datetime.date, datetime.datetime, str, None]

# A token pair at or above this similarity counts as a partial name match.
PARTIAL_TOKEN_THRESHOLD = 80
FULL_NAME_WEIGHT = 0.7
PARTIAL_NAME_WEIGHT = 0.3
ADDRESS_MATCH_THRESHOLD = 80
PHONE_SUFFIX_LENGTH = 10

_NON_ALNUM = re.compile(r'[^\w\s]|_')
_WHITESPACE = re.compile(r'\s+')
_NON_DIGIT = re.compile(r'\D')


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores (``round`` would bank)."""
    return int(math.floor(value + 0.5))


def levenshtein(a: str, b: str) -> int:
    """Edit distance with a single rolling row of ``min(len(a), len(b)) + 1`` cells."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)
    row = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        diagonal, row[0] = row[0], i
        for j, cb in enumerate(b, start=1):
            above = row[j]
            row[j] = min(
                above + 1,                      # deletion
                row[j - 1] + 1,                 # insertion
                diagonal + (ca != cb),          # substitution
            )
            diagonal = above
    return row[-1]


def string_similarity(a: Optional[str], b: Optional[str]) -> int:
    """Normalised edit-distance similarity in ``0..100``.

    Both sides are trimmed and lower-cased first.  Equal strings
    (including two empty ones) score 100; one empty side scores 0.
    """
    s1 = (a or '').strip().lower()
    s2 = (b or '').strip().lower()
    if s1 == s2:
        return 100
    if not s1 or not s2:
        return 0
    longest = max(len(s1), len(s2))
    return round_half_up((longest - levenshtein(s1, s2)) / longest * 100)


def normalize_name(value: Optional[str]) -> str:
    """Lower-case, keep letters/digits/spaces only, collapse whitespace."""
    cleaned = _NON_ALNUM.sub('', (value or '').lower())
    return _WHITESPACE.sub(' ', cleaned).strip()


def name_score(a: Optional[str], b: Optional[str]) -> int:
    """Score two names, blending whole-name similarity with token matches.

    Token pairs (every token of ``a`` against every token of ``b``) that
    reach :data:`PARTIAL_TOKEN_THRESHOLD` are averaged and blended 30/70
    with the whole-name similarity.  Without any such pair the whole-name
    similarity stands alone, so a single shared surname cannot carry two
    otherwise different names.
    """
    n1 = normalize_name(a)
    n2 = normalize_name(b)
    if n1 == n2:
        return 100

    full = string_similarity(n1, n2)
    partials: list[int] = []
    for t1 in n1.split():
        for t2 in n2.split():
            sim = string_similarity(t1, t2)
            if sim >= PARTIAL_TOKEN_THRESHOLD:
                partials.append(sim)
    if not partials:
        return full
    average = sum(partials) / len(partials)
    return round_half_up(full * FULL_NAME_WEIGHT + average * PARTIAL_NAME_WEIGHT)


def _as_date(value: DateLike) -> Optional[datetime.date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    text = str(value).strip()
    try:
        parsed = parse_date(text)
        if parsed is None:
            moment = parse_datetime(text)
            parsed = moment.date() if moment else None
    except ValueError:
        return None
    return parsed


def dates_match(a: DateLike, b: DateLike) -> bool:
    """Exact calendar-day equality; unparseable or missing never matches."""
    d1 = _as_date(a)
    d2 = _as_date(b)
    return d1 is not None and d2 is not None and d1 == d2


def normalize_phone(value: Optional[str]) -> str:
    return _NON_DIGIT.sub('', value or '')


def phone_suffix(value: Optional[str]) -> str:
    """Last ten digits of a phone number, the part stable across country codes."""
    return normalize_phone(value)[-PHONE_SUFFIX_LENGTH:]


def phones_match(a: Optional[str], b: Optional[str]) -> bool:
    p1 = normalize_phone(a)
    p2 = normalize_phone(b)
    if not p1 or not p2:
        return False
    # containment absorbs a country-code prefix on either side
    if p1 in p2 or p2 in p1:
        return True
    return p1[-PHONE_SUFFIX_LENGTH:] == p2[-PHONE_SUFFIX_LENGTH:]


def emails_match(a: Optional[str], b: Optional[str]) -> bool:
    e1 = (a or '').strip().lower()
    e2 = (b or '').strip().lower()
    return bool(e1) and e1 == e2


def address_similarity(a: Optional[str], b: Optional[str]) -> int:
    n1 = normalize_name(a)
    n2 = normalize_name(b)
    # punctuation-only addresses carry no information
    if not n1 or not n2:
        return 0
    return string_similarity(n1, n2)
