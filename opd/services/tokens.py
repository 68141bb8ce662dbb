"""
Token allocation and patient registration.

Numbers are handed out per department: the department row is locked
with ``SELECT ... FOR UPDATE`` for the rest of the transaction, the
current maximum is read and the new row inserted before the lock is
released.  Two registrations for the same department therefore never
see the same maximum.  If anything fails the transaction rolls back and
nothing is persisted; the client retries.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.db.models import Max
from rest_framework.exceptions import ValidationError

from opd.models import Department, Doctor, Token, TokenTransition
from opd.realtime.broadcast import notify_queue_change
from opd.services.departments import resolve_department

logger = logging.getLogger(__name__)


def allocate_token_number(department: Department) -> int:
    """Return the next token number for ``department``.

    Must run inside ``transaction.atomic``; the department lock is held
    until the caller's transaction ends.
    """
    Department.objects.select_for_update().get(pk=department.pk)
    last = Token.objects.filter(department=department).aggregate(last=Max('number'))['last']
    return (last or 0) + 1


@transaction.atomic
def register_patient(*, name: str, phone: str, department=None, age: Optional[int]=None,
                     gender: str='', symptoms: str='', preferred_doctor_id: Optional[int]=None) -> Token:
    dept = resolve_department(department)
    if not dept.is_open:
        raise ValidationError({'department': [f'{dept.name} is not accepting registrations.']})

    preferred = None
    if preferred_doctor_id:
        preferred = Doctor.objects.filter(
            pk=preferred_doctor_id, department=dept, status=Doctor.STATUS_APPROVED
        ).first()
        if preferred is None:
            raise ValidationError({'preferredDoctorId': ['Doctor is not available in this department.']})

    number = allocate_token_number(dept)
    token = Token.objects.create(
        department=dept,
        number=number,
        name=name,
        phone=phone,
        age=age,
        gender=gender or '',
        symptoms=symptoms or '',
        preferred_doctor=preferred,
        status=Token.STATUS_WAITING,
    )
    TokenTransition.objects.create(
        token=token,
        from_status=None,
        to_status=Token.STATUS_WAITING,
        reason='registered',
    )
    logger.info('Registered token %s (id=%s)', token.label, token.id)
    notify_queue_change(token, 'registered')
    return token
