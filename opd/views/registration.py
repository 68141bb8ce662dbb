"""
Public patient registration.

No login is required.  The body is validated and sanitised by
:class:`RegisterSerializer`; the token number is allocated under the
department lock in :mod:`opd.services.tokens`.
"""
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from ..serializers.token import RegisterSerializer
from ..services.queue import token_to_dict
from ..services.tokens import register_patient


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    v = s.validated_data
    token = register_patient(
        name=v['name'],
        phone=v['phone'],
        department=v.get('department') or None,
        age=v.get('age'),
        gender=v.get('gender', ''),
        symptoms=v.get('symptoms', ''),
        preferred_doctor_id=v.get('preferredDoctorId'),
    )
    return Response({
        'success': True,
        'message': 'Registration successful',
        'token': token.number,
        'label': token.label,
        'patient': token_to_dict(token),
    }, status=status.HTTP_201_CREATED)

register.cls.throttle_scope = 'register'
