"""
Administrator endpoints: doctor approvals and the patient overview.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Token
from ..permissions import IsAdminRole
from ..serializers.common import parse_id
from ..serializers.doctor import DoctorListQuerySerializer
from ..serializers.token import AdminPatientsQuerySerializer
from ..services.departments import resolve_department
from ..services.doctors import doctor_to_dict, list_doctors, review_doctor, set_queue_paused
from ..services.queue import token_stats, token_to_dict


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_doctors(request):
    """List doctors, optionally filtered by ``status`` and ``department``."""
    s = DoctorListQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    dept = s.validated_data.get('department')
    data = list_doctors(
        status=s.validated_data.get('status'),
        department=resolve_department(dept) if dept else None,
    )
    return Response({'success': True, 'doctors': data, 'count': len(data)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_doctor_approve(request, doctor_id: str):
    doctor = review_doctor(parse_id(doctor_id, 'doctorId'), approve=True, reviewer=request.user)
    return Response({'success': True, 'message': 'Doctor approved', 'doctor': doctor_to_dict(doctor)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_doctor_reject(request, doctor_id: str):
    doctor = review_doctor(parse_id(doctor_id, 'doctorId'), approve=False, reviewer=request.user)
    return Response({'success': True, 'message': 'Doctor rejected', 'doctor': doctor_to_dict(doctor)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_doctor_toggle_queue(request, doctor_id: str):
    """Flip an approved doctor's queue between paused and active."""
    doctor = set_queue_paused(parse_id(doctor_id, 'doctorId'), None, actor=request.user)
    return Response({'success': True, 'isQueuePaused': doctor.is_queue_paused, 'doctor': doctor_to_dict(doctor)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_patients(request):
    """All tokens, newest first, with per-status counts.

    ``stats`` is computed over the department filter only so the
    counters stay meaningful while a status tab is selected.
    """
    s = AdminPatientsQuerySerializer(data=request.query_params)
    s.is_valid(raise_exception=True)
    qs = Token.objects.select_related('department').order_by('-created_at', '-id')
    dept = s.validated_data.get('department')
    if dept:
        qs = qs.filter(department=resolve_department(dept))
    stats = token_stats(qs)
    status_filter = s.validated_data.get('status')
    if status_filter:
        qs = qs.filter(status=status_filter)
    patients = [token_to_dict(t) for t in qs]
    return Response({'success': True, 'patients': patients, 'stats': stats, 'count': len(patients)})
