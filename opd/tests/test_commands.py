from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from opd.constants import DEFAULT_DEPARTMENTS
from opd.models import Department, Doctor, User
from opd.services.departments import default_department

pytestmark = pytest.mark.django_db


def seed(*args):
    out = StringIO()
    call_command('seed_opd', *args, stdout=out)
    return out.getvalue()


def test_seed_creates_departments_admin_and_doctors():
    seed()
    assert Department.objects.count() == len(DEFAULT_DEPARTMENTS)
    assert User.objects.get(username='admin').role == User.ROLE_ADMIN
    assert Doctor.objects.filter(status=Doctor.STATUS_APPROVED).count() == 3
    assert default_department().code == 'GEN'


def test_seed_is_idempotent():
    seed()
    seed()
    assert Department.objects.count() == len(DEFAULT_DEPARTMENTS)
    assert Doctor.objects.count() == 3
    assert User.objects.filter(username='admin').count() == 1


def test_nonstandard_default_department_needs_a_code(settings):
    settings.OPD_DEFAULT_DEPARTMENT = 'Emergency'
    with pytest.raises(CommandError):
        seed()
    assert Department.objects.count() == 0

    seed('--default-code', 'emr')
    dept = default_department()
    assert (dept.name, dept.code) == ('Emergency', 'EMR')


def test_default_code_already_taken_is_refused(settings):
    settings.OPD_DEFAULT_DEPARTMENT = 'Emergency'
    with pytest.raises(CommandError):
        seed('--default-code', 'GEN')
