"""
Doctor self-service: sign up, view the department queue, pause it.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from ..permissions import IsDoctorRole
from ..serializers.doctor import DoctorSignupSerializer, QueuePauseSerializer
from ..services.doctors import doctor_dashboard, doctor_to_dict, set_queue_paused, signup_doctor


@api_view(['POST'])
@permission_classes([AllowAny])
def doctor_signup(request):
    """Create a doctor account; an administrator must approve it."""
    s = DoctorSignupSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    doctor = signup_doctor(
        username=v['username'],
        password=v['password'],
        name=v['name'],
        department=v['department'],
        email=v.get('email', ''),
        phone=v.get('phone', ''),
        license_no=v.get('licenseNo', ''),
        experience_years=v.get('experience', 0),
    )
    return Response({
        'success': True,
        'message': 'Signup received. An administrator will review your account.',
        'doctor': doctor_to_dict(doctor),
    }, status=status.HTTP_201_CREATED)

doctor_signup.cls.throttle_scope = 'register'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_dashboard_view(request):
    return Response({'success': True, **doctor_dashboard(request.user.doctor_profile)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_queue_pause(request):
    s = QueuePauseSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = set_queue_paused(request.user.doctor_profile.id, s.validated_data['paused'], actor=request.user)
    return Response({
        'success': True,
        'isQueuePaused': doctor.is_queue_paused,
        'message': 'Queue paused' if doctor.is_queue_paused else 'Queue resumed',
    })
