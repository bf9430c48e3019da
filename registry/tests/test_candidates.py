import uuid
from types import SimpleNamespace

import pytest

from registry.models import Branch
from registry.services.candidates import (
    CONTACT_CANDIDATE_LIMIT,
    EMAIL_CANDIDATE_LIMIT,
    NAME_CANDIDATE_LIMIT,
    find_candidates,
    name_tokens,
)
from registry.services.dedupe import PatientInput
from registry.services.store import CandidateScope, DjangoPatientStore, PatientStore


def row(name='x'):
    return SimpleNamespace(pk=uuid.uuid4(), name=name)


class RecordingStore(PatientStore):
    """Answers each lookup from canned rows and remembers what was asked."""

    def __init__(self, by_name=(), by_contact=(), by_email=()):
        self.rows = {'name': list(by_name), 'contact': list(by_contact), 'email': list(by_email)}
        self.calls = []

    def search_by_name_tokens(self, tokens, scope, limit):
        self.calls.append(('name', list(tokens), limit))
        return self.rows['name']

    def search_by_contact_suffix(self, suffix, scope, limit):
        self.calls.append(('contact', suffix, limit))
        return self.rows['contact']

    def search_by_email(self, email, scope, limit):
        self.calls.append(('email', email, limit))
        return self.rows['email']


SCOPE = CandidateScope(tenant_id=uuid.uuid4())


def test_name_tokens_drop_short_words():
    assert name_tokens('  Li  Wu Anand ') == ['Anand']
    assert name_tokens(None) == []


def test_short_tokens_skip_the_name_lookup():
    store = RecordingStore()
    find_candidates(PatientInput(name='Li Wu', contact='+91 98765 43210'), SCOPE, store=store)
    assert store.calls == [('contact', '9876543210', CONTACT_CANDIDATE_LIMIT)]


def test_no_identifying_fields_returns_nothing():
    store = RecordingStore(by_name=[row()])
    assert find_candidates(PatientInput(name='Al'), SCOPE, store=store) == []
    assert store.calls == []


def test_contact_without_digits_is_not_searched():
    store = RecordingStore()
    find_candidates(PatientInput(name='Al', contact='unknown'), SCOPE, store=store)
    assert store.calls == []


def test_few_name_hits_widen_to_contact_and_email():
    store = RecordingStore(by_name=[row()])
    find_candidates(
        PatientInput(name='Rajesh Kumar', contact='9876543210', email=' raj@example.com '),
        SCOPE,
        store=store,
    )
    assert store.calls == [
        ('name', ['Rajesh', 'Kumar'], NAME_CANDIDATE_LIMIT),
        ('contact', '9876543210', CONTACT_CANDIDATE_LIMIT),
        ('email', 'raj@example.com', EMAIL_CANDIDATE_LIMIT),
    ]


def test_many_name_hits_do_not_widen():
    store = RecordingStore(by_name=[row() for _ in range(20)])
    found = find_candidates(
        PatientInput(name='Rajesh Kumar', contact='9876543210', email='raj@example.com'),
        SCOPE,
        store=store,
    )
    assert len(found) == 20
    assert [c[0] for c in store.calls] == ['name']


def test_patient_found_by_several_lookups_appears_once_in_first_position():
    shared = row('Rajesh Kumar')
    other = row('R. Kumar')
    store = RecordingStore(by_name=[shared], by_contact=[other, shared], by_email=[shared])
    found = find_candidates(
        PatientInput(name='Rajesh Kumar', contact='9876543210', email='raj@example.com'),
        SCOPE,
        store=store,
    )
    assert found == [shared, other]


@pytest.mark.django_db
def test_lookups_stay_inside_tenant_branch_and_exclusion(tenant, branch, other_tenant, make_patient):
    second_branch = Branch.objects.create(tenant=tenant, name="East Clinic")
    foreign_branch = Branch.objects.create(tenant=other_tenant, name="Lakeside Main")

    me = make_patient('Rajesh Kumar', contact='9876543210')
    same_branch = make_patient('Rajesh Kumar', email='raj@example.com')
    other_branch = make_patient('Rajesh Kumar', branch=second_branch)
    foreign = make_patient('Rajesh Kumar', tenant=other_tenant, branch=foreign_branch, contact='9876543210')

    store = DjangoPatientStore()
    patient_input = PatientInput(name='Rajesh Kumar', contact='9876543210', email='raj@example.com')

    tenant_wide = find_candidates(
        patient_input, CandidateScope(tenant_id=tenant.id, exclude_patient_id=me.id), store=store
    )
    assert {p.id for p in tenant_wide} == {same_branch.id, other_branch.id}

    branch_only = find_candidates(
        patient_input, CandidateScope(tenant_id=tenant.id, branch_id=branch.id), store=store
    )
    assert {p.id for p in branch_only} == {me.id, same_branch.id}
    assert foreign.id not in {p.id for p in tenant_wide + branch_only}


@pytest.mark.django_db
def test_contact_lookup_matches_on_trailing_digits(tenant, make_patient):
    stored = make_patient('Anand Rao', contact='+91-9876543210')
    make_patient('Someone Else', contact='9123456780')

    found = find_candidates(
        PatientInput(name='Xi', contact='09876543210'),
        CandidateScope(tenant_id=tenant.id),
        store=DjangoPatientStore(),
    )
    assert [p.id for p in found] == [stored.id]
