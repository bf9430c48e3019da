import uuid
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from registry.models import Branch


@pytest.mark.django_db
def test_find_duplicates_reports_each_pair_once(tenant, make_patient):
    a = make_patient('Rajesh Kumar', dob='1980-05-15')
    b = make_patient('Rajesh Kumarr', dob='1980-05-15')
    make_patient('Zainab Qureshi')

    out = StringIO()
    call_command('find_duplicates', '--tenant', str(tenant.id), stdout=out)
    lines = out.getvalue().strip().splitlines()

    assert len(lines) == 2
    assert lines[0].split()[0] == '95'
    assert {str(a.id), str(b.id)} == set(lines[0].split()[1:3])
    assert 'Found 1 candidate pair(s)' in lines[1]


@pytest.mark.django_db
def test_find_duplicates_min_score(tenant, make_patient):
    make_patient('Rajesh Kumar', dob='1980-05-15')
    make_patient('Rajesh Kumarr', dob='1980-05-15')

    out = StringIO()
    call_command('find_duplicates', '--tenant', str(tenant.id), '--min-score', '96', stdout=out)
    assert 'Found 0 candidate pair(s)' in out.getvalue()


@pytest.mark.django_db
def test_find_duplicates_unknown_tenant():
    with pytest.raises(CommandError):
        call_command('find_duplicates', '--tenant', str(uuid.uuid4()))


@pytest.mark.django_db
def test_find_duplicates_branch_filter(tenant, branch, make_patient):
    make_patient('Rajesh Kumar', dob='1980-05-15')
    make_patient('Rajesh Kumarr', dob='1980-05-15')

    out = StringIO()
    call_command('find_duplicates', '--tenant', str(tenant.id), '--branch', str(branch.id), stdout=out)
    assert 'Found 1 candidate pair(s)' in out.getvalue()


@pytest.mark.django_db
@pytest.mark.parametrize('branch_arg', ['not-a-uuid', None])
def test_find_duplicates_rejects_bad_branch(tenant, other_tenant, branch_arg):
    if branch_arg is None:
        # a real branch of another tenant
        branch_arg = str(Branch.objects.create(tenant=other_tenant, name="Lakeside Main").id)
    with pytest.raises(CommandError):
        call_command('find_duplicates', '--tenant', str(tenant.id), '--branch', branch_arg)


@pytest.mark.django_db
def test_find_duplicates_rejects_malformed_tenant():
    with pytest.raises(CommandError):
        call_command('find_duplicates', '--tenant', 'not-a-uuid')
