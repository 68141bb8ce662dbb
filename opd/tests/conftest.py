import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from opd.models import Department, Doctor, User
from opd.services.tokens import register_patient


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the department list live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def general(db):
    return Department.objects.create(name='General Medicine', code='GEN')


@pytest.fixture
def cardiology(db):
    return Department.objects.create(name='Cardiology', code='CAR')


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(username='admin1', password='P@ssw0rd1', role=User.ROLE_ADMIN)


@pytest.fixture
def make_doctor(db):
    def _make(department, username=None, status=Doctor.STATUS_APPROVED, paused=False):
        username = username or f'dr_{department.code.lower()}_{Doctor.objects.count() + 1}'
        user = User.objects.create_user(username=username, password='P@ssw0rd1', role=User.ROLE_DOCTOR)
        return Doctor.objects.create(
            user=user,
            name=f'Dr. {username}',
            department=department,
            status=status,
            is_queue_paused=paused,
            reviewed_at=timezone.now() if status != Doctor.STATUS_PENDING else None,
        )
    return _make


@pytest.fixture
def doctor(general, make_doctor):
    return make_doctor(general, username='dr_gen')


@pytest.fixture
def register(general):
    """Register a patient in ``general`` unless another department is given."""
    def _register(name='Asha Rao', phone='9876543210', department=None, **extra):
        return register_patient(name=name, phone=phone, department=department or general, **extra)
    return _register


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture
def doctor_client(doctor):
    client = APIClient()
    client.force_authenticate(user=doctor.user)
    return client
