import pytest
from rest_framework.exceptions import NotFound, PermissionDenied

from opd.exceptions import InvalidTransition, QueueBusy, QueueGateClosed
from opd.models import Doctor, Token, TokenTransition
from opd.services.queue import (
    advance_queue,
    can_transition,
    complete_token,
    miss_token,
    reset_queue,
    transition_token,
)

pytestmark = pytest.mark.django_db


def test_transition_table():
    assert can_transition('waiting', 'called')
    assert can_transition('waiting', 'missed')
    assert can_transition('called', 'completed')
    assert can_transition('called', 'missed')
    assert not can_transition('waiting', 'completed')
    assert not can_transition('completed', 'waiting')
    assert not can_transition('missed', 'called')


def test_advance_on_empty_queue_changes_nothing(general, doctor):
    result = advance_queue(general, operator=doctor.user)
    assert result.empty
    assert result.next_number is None
    assert not Token.objects.exists()


def test_advance_calls_lowest_waiting_token(register, general, doctor):
    a, b, c = register(name='Alpha'), register(name='Bravo'), register(name='Charlie')
    result = advance_queue(general, operator=doctor.user)
    assert result.called.pk == a.pk
    assert result.next_number == 2
    a.refresh_from_db()
    assert a.status == Token.STATUS_CALLED
    assert a.called_at is not None
    assert Token.objects.filter(department=general, status=Token.STATUS_CALLED).count() == 1


def test_second_advance_while_serving_is_busy(register, general, doctor):
    register()
    register()
    advance_queue(general, operator=doctor.user)
    with pytest.raises(QueueBusy):
        advance_queue(general, operator=doctor.user)
    assert Token.objects.filter(status=Token.STATUS_CALLED).count() == 1


def test_complete_then_advance_moves_to_next(register, general, doctor):
    a, b = register(), register()
    advance_queue(general, operator=doctor.user)
    complete_token(a.id, operator=doctor.user)
    result = advance_queue(general, operator=doctor.user)
    assert result.called.pk == b.pk
    assert result.next_number is None
    a.refresh_from_db()
    assert a.status == Token.STATUS_COMPLETED
    assert a.completed_at is not None


def test_last_token_advance_reports_no_next(register, general, doctor):
    register()
    result = advance_queue(general, operator=doctor.user)
    assert not result.empty
    assert result.next_number is None


def test_missed_waiting_token_is_skipped(register, general, doctor):
    a, b = register(), register()
    miss_token(a.id, operator=doctor.user)
    assert advance_queue(general, operator=doctor.user).called.pk == b.pk


def test_waiting_token_cannot_be_completed(register, doctor):
    token = register()
    with pytest.raises(InvalidTransition):
        complete_token(token.id, operator=doctor.user)


def test_terminal_states_reject_transitions(register, general, doctor):
    token = register()
    advance_queue(general, operator=doctor.user)
    complete_token(token.id, operator=doctor.user)
    with pytest.raises(InvalidTransition):
        miss_token(token.id, operator=doctor.user)
    with pytest.raises(InvalidTransition):
        transition_token(token.id, Token.STATUS_CALLED, operator=doctor.user)


def test_unknown_token_is_not_found(doctor):
    with pytest.raises(NotFound):
        complete_token(999, operator=doctor.user)


def test_transitions_are_recorded_with_operator(register, general, doctor):
    token = register()
    advance_queue(general, operator=doctor.user)
    complete_token(token.id, operator=doctor.user)
    rows = list(TokenTransition.objects.filter(token=token).order_by('id').values_list('from_status', 'to_status'))
    assert rows == [(None, 'waiting'), ('waiting', 'called'), ('called', 'completed')]
    assert TokenTransition.objects.filter(token=token, operator=doctor.user).count() == 2


def test_doctor_cannot_advance_other_department(register, cardiology, doctor):
    register(department=cardiology)
    with pytest.raises(PermissionDenied):
        advance_queue(cardiology, operator=doctor.user)


def test_pending_doctor_cannot_advance(register, general, make_doctor):
    pending = make_doctor(general, status=Doctor.STATUS_PENDING)
    register()
    with pytest.raises(QueueGateClosed):
        advance_queue(general, operator=pending.user)


def test_paused_doctor_cannot_advance(register, general, make_doctor):
    paused = make_doctor(general, paused=True)
    register()
    with pytest.raises(QueueGateClosed):
        advance_queue(general, operator=paused.user)
    assert Token.objects.get().status == Token.STATUS_WAITING


def test_admin_needs_an_active_doctor_in_department(register, general, admin_user, make_doctor):
    register()
    with pytest.raises(QueueGateClosed):
        advance_queue(general, operator=admin_user)
    make_doctor(general)
    assert not advance_queue(general, operator=admin_user).empty


def test_reset_moves_completed_back_to_waiting(register, general, doctor, admin_user):
    tokens = [register(name=f'P{i}') for i in range(7)]
    for t in tokens[:5]:
        advance_queue(general, operator=doctor.user)
        complete_token(t.id, operator=doctor.user)
    assert reset_queue(general, operator=admin_user) == 5
    assert Token.objects.filter(status=Token.STATUS_WAITING).count() == 7
    assert TokenTransition.objects.filter(reason='queue reset').count() == 5


def test_reset_without_department_covers_all(register, general, cardiology, admin_user, make_doctor):
    gen_doc, car_doc = make_doctor(general), make_doctor(cardiology)
    for dept, doc in ((general, gen_doc), (cardiology, car_doc)):
        token = register(department=dept)
        advance_queue(dept, operator=doc.user)
        complete_token(token.id, operator=doc.user)
    assert reset_queue(operator=admin_user) == 2


def test_reset_is_admin_only(doctor):
    with pytest.raises(PermissionDenied):
        reset_queue(operator=doctor.user)


def test_reset_leaves_missed_tokens_alone(register, general, doctor, admin_user):
    token = register()
    miss_token(token.id, operator=doctor.user)
    assert reset_queue(general, operator=admin_user) == 0
    token.refresh_from_db()
    assert token.status == Token.STATUS_MISSED


def test_gate_reads_pause_committed_after_user_was_loaded(register, general, doctor):
    register()
    user = doctor.user
    assert user.doctor_profile.is_queue_paused is False
    Doctor.objects.filter(pk=doctor.pk).update(is_queue_paused=True)
    with pytest.raises(QueueGateClosed):
        advance_queue(general, operator=user)
    assert Token.objects.get().status == Token.STATUS_WAITING


def test_gate_reads_status_changed_after_user_was_loaded(register, general, doctor):
    token = register()
    user = doctor.user
    Doctor.objects.filter(pk=doctor.pk).update(status=Doctor.STATUS_REJECTED)
    with pytest.raises(QueueGateClosed):
        advance_queue(general, operator=user)
    with pytest.raises(QueueGateClosed):
        miss_token(token.id, operator=user)
