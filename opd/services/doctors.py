import logging
from typing import Optional

from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError as DRFValidation

from opd.exceptions import InvalidTransition
from opd.models import Doctor, Token, User
from opd.services.audit import log_action
from opd.services.departments import invalidate_departments_cache, resolve_department
from opd.services.queue import token_to_dict, token_stats, waiting_tokens, current_token

logger = logging.getLogger(__name__)


def doctor_to_dict(doctor: Doctor) -> dict:
    return {
        'id': doctor.id,
        'userId': doctor.user_id,
        'username': doctor.user.username,
        'name': doctor.name,
        'departmentId': doctor.department_id,
        'department': doctor.department.name,
        'phone': doctor.phone,
        'licenseNo': doctor.license_no,
        'experience': doctor.experience_years,
        'status': doctor.status,
        'isQueuePaused': doctor.is_queue_paused,
        'reviewedAt': doctor.reviewed_at.isoformat() if doctor.reviewed_at else None,
    }


@transaction.atomic
def signup_doctor(*, username: str, password: str, name: str, department, email: str='',
                  phone: str='', license_no: str='', experience_years: int=0) -> Doctor:
    """Create a doctor account awaiting admin review."""
    dept = resolve_department(department)
    if User.objects.filter(username__iexact=username).exists():
        raise DRFValidation({'username': ['This username is already taken.']})
    try:
        validate_password(password)
    except ValidationError as e:
        raise DRFValidation({'password': e.messages})

    user = User.objects.create_user(
        username=username, password=password, email=email, first_name=name, role=User.ROLE_DOCTOR
    )
    doctor = Doctor.objects.create(
        user=user,
        name=name,
        department=dept,
        phone=phone,
        license_no=license_no,
        experience_years=experience_years,
        status=Doctor.STATUS_PENDING,
    )
    logger.info('Doctor signup %s for %s pending review', username, dept.code)
    return doctor


def get_doctor_or_404(doctor_id: int) -> Doctor:
    doctor = Doctor.objects.select_related('user', 'department').filter(pk=doctor_id).first()
    if doctor is None:
        raise NotFound('Doctor not found.')
    return doctor


def list_doctors(*, status: Optional[str]=None, department=None) -> list[dict]:
    qs = Doctor.objects.select_related('user', 'department').order_by('-created_at')
    if status:
        qs = qs.filter(status=status)
    if department is not None:
        qs = qs.filter(department=department)
    return [doctor_to_dict(d) for d in qs]


@transaction.atomic
def review_doctor(doctor_id: int, *, approve: bool, reviewer: User) -> Doctor:
    """``pending -> approved`` or ``pending -> rejected``; both are final."""
    doctor = Doctor.objects.select_for_update().filter(pk=doctor_id).first()
    if doctor is None:
        raise NotFound('Doctor not found.')
    if doctor.status != Doctor.STATUS_PENDING:
        raise InvalidTransition(f'Doctor is already {doctor.status}.')
    doctor.status = Doctor.STATUS_APPROVED if approve else Doctor.STATUS_REJECTED
    doctor.reviewed_by = reviewer
    doctor.reviewed_at = timezone.now()
    doctor.save(update_fields=['status', 'reviewed_by', 'reviewed_at'])
    log_action(user=reviewer, action=f'doctor_{doctor.status}', object_type='doctor', object_id=doctor.id,
               detail={'department': doctor.department_id})
    invalidate_departments_cache()
    logger.info('Doctor id=%s %s by %s', doctor.id, doctor.status, reviewer.username)
    return doctor


@transaction.atomic
def set_queue_paused(doctor_id: int, paused: Optional[bool], *, actor: User) -> Doctor:
    """Pause or resume a doctor's queue; ``None`` toggles."""
    doctor = Doctor.objects.select_for_update().filter(pk=doctor_id).first()
    if doctor is None:
        raise NotFound('Doctor not found.')
    if doctor.status != Doctor.STATUS_APPROVED:
        raise InvalidTransition('Only approved doctors can pause or resume a queue.')
    doctor.is_queue_paused = (not doctor.is_queue_paused) if paused is None else bool(paused)
    doctor.save(update_fields=['is_queue_paused'])
    log_action(user=actor, action='doctor_queue_paused' if doctor.is_queue_paused else 'doctor_queue_resumed',
               object_type='doctor', object_id=doctor.id)
    invalidate_departments_cache()
    return doctor


def doctor_dashboard(doctor: Doctor) -> dict:
    dept = doctor.department
    tokens = Token.objects.filter(department=dept)
    current = current_token(dept)
    return {
        'doctor': doctor_to_dict(doctor),
        'currentPatient': token_to_dict(current) if current else None,
        'queue': [token_to_dict(t) for t in waiting_tokens(dept)],
        'stats': token_stats(tokens),
    }
