import uuid
from types import SimpleNamespace

import pytest
from django.db import DatabaseError

from registry.exceptions import PatientNotFound, QueryFailed
from registry.models import Branch
from registry.services.dedupe import (
    MIN_MATCH_SCORE,
    PatientInput,
    find_potential_duplicates,
    get_duplicate_stats,
)
from registry.services.store import DjangoPatientStore, PatientStore


class BrokenStore(PatientStore):
    def search_by_name_tokens(self, tokens, scope, limit):
        raise DatabaseError("connection reset")


class FixedStore(PatientStore):
    def __init__(self, rows):
        self.rows = rows

    def search_by_name_tokens(self, tokens, scope, limit):
        return self.rows

    def search_by_contact_suffix(self, suffix, scope, limit):
        return []

    def search_by_email(self, email, scope, limit):
        return []


def stored(name, **fields):
    base = dict(pk=uuid.uuid4(), name=name, dob=None, contact='', email='', address='')
    base.update(fields)
    return SimpleNamespace(**base)


def test_storage_failure_is_reported_as_query_failed():
    with pytest.raises(QueryFailed) as excinfo:
        find_potential_duplicates(PatientInput(name='Rajesh Kumar'), uuid.uuid4(), store=BrokenStore())
    assert isinstance(excinfo.value.__cause__, DatabaseError)


def test_results_are_best_first_and_ties_keep_retrieval_order():
    first_tie = stored('Amit Patel', dob='1975-01-21')
    exact = stored('Amit Patel', dob='1975-01-20')
    second_tie = stored('Amit Patel', dob='1975-01-22')
    weak = stored('Amit Patil', dob='1990-01-01')
    store = FixedStore([first_tie, exact, second_tie, weak])

    matches = find_potential_duplicates(PatientInput(name='Amit Patel', dob='1975-01-20'), uuid.uuid4(), store=store)

    assert [m.patient for m in matches] == [exact, first_tie, second_tie]
    assert [m.score for m in matches] == [100, 62, 62]


@pytest.mark.django_db
def test_typo_variant_is_reported(tenant, make_patient):
    existing = make_patient('Rajesh Kumarr', dob='1980-05-15')

    matches = find_potential_duplicates(PatientInput(name='Rajesh Kumar', dob='1980-05-15'), tenant.id)

    assert len(matches) == 1
    assert matches[0].patient.id == existing.id
    assert matches[0].score == 95
    assert matches[0].match_reasons == ["Name highly similar (92%)", "Date of birth matches"]


@pytest.mark.django_db
def test_shared_surname_alone_is_not_a_duplicate(tenant, make_patient):
    make_patient('Kumar Venkataraman Subramaniam')
    assert find_potential_duplicates(PatientInput(name='Kumar'), tenant.id) == []


@pytest.mark.django_db
def test_nothing_below_threshold_is_returned(tenant, make_patient):
    make_patient('Rajesh Kumar', dob='1980-05-15', contact='9123456780')
    make_patient('Rajesh Kumar', dob='1991-02-02', contact='9000000000')
    make_patient('Rajesh Khanna')

    matches = find_potential_duplicates(
        PatientInput(name='Rajesh Kumar', dob='1980-05-15', contact='9876543210'), tenant.id
    )

    assert matches
    assert all(m.score >= MIN_MATCH_SCORE for m in matches)
    scores = [m.score for m in matches]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.django_db
def test_other_tenants_are_never_candidates(tenant, other_tenant, make_patient):
    foreign_branch = Branch.objects.create(tenant=other_tenant, name="Lakeside Main")
    make_patient('Amit Patel', tenant=other_tenant, branch=foreign_branch, contact='9876543212')

    assert find_potential_duplicates(PatientInput(name='Amit Patel', contact='9876543212'), tenant.id) == []


@pytest.mark.django_db
def test_duplicate_stats_buckets(tenant, make_patient):
    target = make_patient('Rajesh Kumar', dob='1980-05-15', contact='9876543210')
    make_patient('Rajesh Kumar', dob='1980-05-15', contact='9876543210')   # 100
    make_patient('Rajesh Kumar', dob='1980-05-15', contact='9123456780')   # 76
    make_patient('Rajesh Kumar', dob='1972-11-02')                         # 62
    make_patient('Rajesh Kumar', dob='1972-11-02', contact='9123456780')   # 47

    stats = get_duplicate_stats(target.id, tenant.id)

    assert stats.as_dict() == {
        'totalPotentialDuplicates': 3,
        'highConfidence': 1,
        'mediumConfidence': 1,
        'lowConfidence': 1,
    }


@pytest.mark.django_db
def test_duplicate_stats_ignore_other_branches(tenant, make_patient):
    target = make_patient('Rajesh Kumar', dob='1980-05-15')
    east = Branch.objects.create(tenant=tenant, name="East Clinic")
    make_patient('Rajesh Kumar', dob='1980-05-15', branch=east)

    assert get_duplicate_stats(target.id, tenant.id).total_potential_duplicates == 0


@pytest.mark.django_db
def test_duplicate_stats_for_patient_without_duplicates(tenant, make_patient):
    target = make_patient('Zainab Qureshi')
    assert get_duplicate_stats(target.id, tenant.id).as_dict() == {
        'totalPotentialDuplicates': 0,
        'highConfidence': 0,
        'mediumConfidence': 0,
        'lowConfidence': 0,
    }


@pytest.mark.django_db
def test_duplicate_stats_unknown_or_foreign_patient(tenant, other_tenant, make_patient):
    target = make_patient('Rajesh Kumar')

    with pytest.raises(PatientNotFound):
        get_duplicate_stats(uuid.uuid4(), tenant.id)
    with pytest.raises(PatientNotFound):
        get_duplicate_stats(target.id, other_tenant.id)
    with pytest.raises(PatientNotFound):
        get_duplicate_stats('not-a-uuid', tenant.id, store=DjangoPatientStore())
