"""
Queue advancing, token status transitions and read-side queries.

All mutations run in ``transaction.atomic`` and lock what they read:
advancing locks the department row first, so two concurrent "call
next" requests for the same department are serialised and cannot both
promote the same waiting token.  Calling the next patient and
completing the current one are separate operations; a department may
only have one ``called`` token at a time.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction
from django.db.models import Count
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied

from opd.exceptions import InvalidTransition, QueueBusy, QueueGateClosed
from opd.models import Department, Doctor, Token, TokenTransition, User
from opd.realtime.broadcast import notify_queue_change

logger = logging.getLogger(__name__)

TRANSITIONS = {
    Token.STATUS_WAITING: {Token.STATUS_CALLED, Token.STATUS_MISSED},
    Token.STATUS_CALLED: {Token.STATUS_COMPLETED, Token.STATUS_MISSED},
    Token.STATUS_COMPLETED: set(),
    Token.STATUS_MISSED: set(),
}


def can_transition(current: str, new: str) -> bool:
    """Return True if a token may move from ``current`` to ``new``."""
    return new in TRANSITIONS.get(current, set())


@dataclass
class AdvanceResult:
    called: Optional[Token]
    next_number: Optional[int]

    @property
    def empty(self) -> bool:
        return self.called is None


def token_to_dict(token: Token) -> dict:
    return {
        'id': token.id,
        'token': token.number,
        'label': token.label,
        'name': token.name,
        'phone': token.phone,
        'age': token.age,
        'gender': token.gender,
        'symptoms': token.symptoms,
        'departmentId': token.department_id,
        'department': token.department.name,
        'preferredDoctorId': token.preferred_doctor_id,
        'status': token.status,
        'createdAt': token.created_at.isoformat() if token.created_at else None,
        'calledAt': token.called_at.isoformat() if token.called_at else None,
        'completedAt': token.completed_at.isoformat() if token.completed_at else None,
    }


# ---------------------------------------------------------------------------
# Operator checks
# ---------------------------------------------------------------------------

def _doctor_for(operator: User) -> Optional[Doctor]:
    """Fresh, locked copy of the operator's doctor row.

    The profile cached on the user may predate a pause or review, so
    the gate always reads the row inside the caller's transaction.
    """
    if operator.role != User.ROLE_DOCTOR:
        return None
    return Doctor.objects.select_for_update().filter(user_id=operator.pk).first()


def check_operator_scope(department: Department, operator: User) -> Optional[Doctor]:
    """Admins act on any department; doctors only on their own, once approved.

    Returns the operator's doctor row (``None`` for admins).
    """
    if operator.role == User.ROLE_ADMIN:
        return None
    doctor = _doctor_for(operator)
    if doctor is None or doctor.department_id != department.id:
        raise PermissionDenied('You can only manage the queue of your own department.')
    if doctor.status != Doctor.STATUS_APPROVED:
        raise QueueGateClosed('Doctor account is not approved.')
    return doctor


def check_advance_gate(department: Department, operator: User) -> None:
    """Only approved doctors with an unpaused queue let the department advance."""
    doctor = check_operator_scope(department, operator)
    if doctor is None:
        active = Doctor.objects.filter(
            department=department, status=Doctor.STATUS_APPROVED, is_queue_paused=False
        ).exists()
        if not active:
            raise QueueGateClosed(f'No active doctor in {department.name}.')
        return
    if doctor.is_queue_paused:
        raise QueueGateClosed('Your queue is paused.')


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def _apply_transition(token: Token, new_status: str, *, operator: Optional[User], reason: str) -> Token:
    old_status = token.status
    if not can_transition(old_status, new_status):
        raise InvalidTransition(f'Cannot move token {token.label} from {old_status} to {new_status}.')
    now = timezone.now()
    token.status = new_status
    if new_status == Token.STATUS_CALLED:
        token.called_at = now
    if new_status in (Token.STATUS_COMPLETED, Token.STATUS_MISSED):
        token.completed_at = now
    token.save(update_fields=['status', 'called_at', 'completed_at', 'updated_at'])
    TokenTransition.objects.create(
        token=token,
        from_status=old_status,
        to_status=new_status,
        operator=operator,
        reason=reason,
    )
    logger.info('Token %s: %s -> %s (operator=%s)', token.label, old_status, new_status,
                getattr(operator, 'username', None))
    notify_queue_change(token, new_status)
    return token


@transaction.atomic
def advance_queue(department: Department, *, operator: User) -> AdvanceResult:
    """Promote the lowest-numbered waiting token of ``department`` to ``called``.

    Returns an empty result (and changes nothing) when nobody is
    waiting.  Raises :class:`QueueBusy` while another token of the
    department is still ``called``.
    """
    department = Department.objects.select_for_update().get(pk=department.pk)
    check_advance_gate(department, operator)

    if Token.objects.filter(department=department, status=Token.STATUS_CALLED).exists():
        raise QueueBusy()

    token = (
        Token.objects.select_for_update()
        .filter(department=department, status=Token.STATUS_WAITING)
        .order_by('number')
        .first()
    )
    if token is None:
        logger.info('Queue empty for %s', department.code)
        return AdvanceResult(called=None, next_number=None)

    _apply_transition(token, Token.STATUS_CALLED, operator=operator, reason='called next')
    upcoming = (
        Token.objects.filter(department=department, status=Token.STATUS_WAITING)
        .order_by('number')
        .values_list('number', flat=True)
        .first()
    )
    return AdvanceResult(called=token, next_number=upcoming)


@transaction.atomic
def transition_token(token_id: int, new_status: str, *, operator: User, reason: str='') -> Token:
    token = Token.objects.select_for_update().filter(pk=token_id).first()
    if token is None:
        raise NotFound('Token not found.')
    check_operator_scope(token.department, operator)
    return _apply_transition(token, new_status, operator=operator, reason=reason or new_status)


def complete_token(token_id: int, *, operator: User) -> Token:
    """``called -> completed``."""
    return transition_token(token_id, Token.STATUS_COMPLETED, operator=operator, reason='consultation completed')


def miss_token(token_id: int, *, operator: User) -> Token:
    """``waiting|called -> missed``."""
    return transition_token(token_id, Token.STATUS_MISSED, operator=operator, reason='marked missed')


@transaction.atomic
def reset_queue(department: Optional[Department]=None, *, operator: User) -> int:
    """Put every ``completed`` token back to ``waiting``; returns how many moved.

    Administrative override outside the normal transition table.
    """
    if operator.role != User.ROLE_ADMIN:
        raise PermissionDenied('Only administrators may reset the queue.')
    qs = Token.objects.select_for_update().filter(status=Token.STATUS_COMPLETED)
    if department is not None:
        qs = qs.filter(department=department)
    tokens = list(qs)
    if not tokens:
        return 0

    count = Token.objects.filter(pk__in=[t.pk for t in tokens]).update(
        status=Token.STATUS_WAITING, completed_at=None, called_at=None, updated_at=timezone.now()
    )
    TokenTransition.objects.bulk_create([
        TokenTransition(
            token=t,
            from_status=Token.STATUS_COMPLETED,
            to_status=Token.STATUS_WAITING,
            operator=operator,
            reason='queue reset',
        )
        for t in tokens
    ])
    seen: set[int] = set()
    for t in tokens:
        if t.department_id not in seen:
            seen.add(t.department_id)
            t.status = Token.STATUS_WAITING
            notify_queue_change(t, 'reset')
    logger.warning('Queue reset by %s: %s tokens back to waiting (department=%s)',
                   operator.username, count, department.code if department else 'ALL')
    return count


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def current_token(department: Department) -> Optional[Token]:
    """The department's ``called`` token, if any."""
    return (
        Token.objects.select_related('department')
        .filter(department=department, status=Token.STATUS_CALLED)
        .first()
    )


def waiting_tokens(department: Department):
    return (
        Token.objects.select_related('department')
        .filter(department=department, status=Token.STATUS_WAITING)
        .order_by('number')
    )


def query_status(token_id: int) -> Optional[dict]:
    """Position, serving token and wait estimate for one token.

    Returns ``None`` when the token does not exist.
    """
    token = Token.objects.select_related('department').filter(pk=token_id).first()
    if token is None:
        return None
    dept = token.department
    serving = current_token(dept)
    avg = dept.avg_consultation_minutes

    if token.status == Token.STATUS_WAITING:
        position = Token.objects.filter(
            department=dept, status=Token.STATUS_WAITING, number__lt=token.number
        ).count()
        if position == 0:
            wait = avg // 2 if serving else 0
        else:
            wait = position * avg
    else:
        position = 0
        wait = 0

    return {
        'tokenId': token.id,
        'token': token.number,
        'label': token.label,
        'department': dept.name,
        'departmentId': dept.id,
        'status': token.status,
        'position': position,
        'currentlyServing': serving.number if serving else None,
        'currentlyServingLabel': serving.label if serving else None,
        'estimatedWaitMinutes': wait,
    }


def live_queue(department: Department, limit: int) -> dict:
    serving = current_token(department)
    waiting = waiting_tokens(department)
    return {
        'department': department.name,
        'departmentId': department.id,
        'currentServing': token_to_dict(serving) if serving else None,
        'waitingQueue': [token_to_dict(t) for t in waiting[:limit]],
        'totalWaiting': waiting.count(),
        'lastUpdated': timezone.now().isoformat(),
    }


def token_stats(qs) -> dict:
    """Count tokens of ``qs`` per status."""
    stats = {'total': 0, **{s: 0 for s, _ in Token.STATUS_CHOICES}}
    for row in qs.values('status').order_by().annotate(n=Count('id')):
        stats[row['status']] = row['n']
        stats['total'] += row['n']
    return stats
