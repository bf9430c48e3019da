import datetime
import itertools

import pytest

from registry.models import Branch, Patient, Tenant

_mrn = itertools.count(1000)


@pytest.fixture
def tenant(db):
    return Tenant.objects.create(name="City Care")


@pytest.fixture
def branch(tenant):
    return Branch.objects.create(tenant=tenant, name="Main Hospital")


@pytest.fixture
def other_tenant(db):
    return Tenant.objects.create(name="Lakeside Health")


@pytest.fixture
def make_patient(tenant, branch):
    """Create a patient in the default tenant/branch unless told otherwise."""
    def _make(name, **fields):
        fields.setdefault('tenant', tenant)
        fields.setdefault('branch', branch)
        fields.setdefault('mrn', f"MRN{next(_mrn)}")
        dob = fields.get('dob')
        if isinstance(dob, str):
            fields['dob'] = datetime.date.fromisoformat(dob)
        return Patient.objects.create(name=name, **fields)
    return _make
