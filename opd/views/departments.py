from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from ..services.departments import list_departments_with_doctors


@api_view(['GET'])
@permission_classes([AllowAny])
def departments(request):
    """Departments with the doctors currently taking patients."""
    return Response({'success': True, 'departments': list_departments_with_doctors()})
