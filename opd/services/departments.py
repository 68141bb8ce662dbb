from typing import Optional, Union

from django.conf import settings
from django.core.cache import cache
from rest_framework.exceptions import ValidationError

from opd.constants import DEPARTMENTS_CACHE_KEY
from opd.exceptions import DepartmentNotConfigured
from opd.models import Department, Doctor


def default_department() -> Department:
    """Return the fallback department; ``seed_opd`` creates it."""
    dept = Department.objects.filter(name__iexact=settings.OPD_DEFAULT_DEPARTMENT).first()
    if dept is None:
        raise DepartmentNotConfigured(
            f'Default department "{settings.OPD_DEFAULT_DEPARTMENT}" does not exist. Run "manage.py seed_opd".'
        )
    return dept


def resolve_department(value: Optional[Union[int, str, Department]]) -> Department:
    """Map an id, code or name to a department; ``None`` means the default one."""
    if isinstance(value, Department):
        return value
    if value is None or value == '':
        return default_department()
    value = str(value).strip()
    qs = Department.objects.all()
    dept = None
    if value.isdigit():
        dept = qs.filter(pk=int(value)).first()
    if dept is None:
        dept = qs.filter(code__iexact=value).first() or qs.filter(name__iexact=value).first()
    if dept is None:
        raise ValidationError({'department': [f'Unknown department: {value}']})
    return dept


def department_to_dict(dept: Department) -> dict:
    return {
        'id': dept.id,
        'name': dept.name,
        'code': dept.code,
        'isOpen': dept.is_open,
        'avgConsultationMinutes': dept.avg_consultation_minutes,
    }


def list_departments_with_doctors() -> list[dict]:
    """Departments with their approved, unpaused doctors (cached)."""
    cached = cache.get(DEPARTMENTS_CACHE_KEY)
    if cached is not None:
        return cached
    active = Doctor.objects.filter(status=Doctor.STATUS_APPROVED, is_queue_paused=False).order_by('name')
    by_dept: dict[int, list[dict]] = {}
    for d in active:
        by_dept.setdefault(d.department_id, []).append({'id': d.id, 'name': d.name})
    data = [
        {**department_to_dict(dept), 'doctors': by_dept.get(dept.id, [])}
        for dept in Department.objects.all()
    ]
    cache.set(DEPARTMENTS_CACHE_KEY, data, settings.OPD_DEPARTMENTS_CACHE_SECONDS)
    return data


def invalidate_departments_cache() -> None:
    cache.delete(DEPARTMENTS_CACHE_KEY)
