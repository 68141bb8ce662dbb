import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Token
from ..permissions import IsAdminRole
from ..realtime.broadcast import notify_queue_change
from ..serializers.common import parse_id
from ..serializers.token import TokenUpdateSerializer
from ..services.audit import log_action
from ..services.queue import token_to_dict

logger = logging.getLogger(__name__)

_EDITABLE = ('name', 'phone', 'age', 'gender', 'symptoms')


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def patient_detail(request, token_id: str):
    """Read, edit the contact fields of, or delete one token row."""
    token = Token.objects.select_related('department').filter(pk=parse_id(token_id, 'tokenId')).first()
    if token is None:
        raise NotFound('Patient not found.')

    if request.method == 'GET':
        return Response({'success': True, 'patient': token_to_dict(token)})

    if request.method == 'PATCH':
        s = TokenUpdateSerializer(data=request.data, partial=True)
        s.is_valid(raise_exception=True)
        changed = []
        for field in _EDITABLE:
            if field in s.validated_data:
                setattr(token, field, s.validated_data[field])
                changed.append(field)
        if changed:
            token.save(update_fields=changed + ['updated_at'])
            log_action(user=request.user, action='patient_update', object_type='token', object_id=token.id,
                       detail={'fields': changed})
            notify_queue_change(token, 'updated')
        return Response({'success': True, 'patient': token_to_dict(token)})

    label = token.label
    token_pk = token.pk
    notify_queue_change(token, 'deleted')
    token.delete()
    log_action(user=request.user, action='patient_delete', object_type='token', object_id=token_pk,
               detail={'label': label})
    logger.info('Token %s (id=%s) deleted by %s', label, token_pk, request.user.username)
    return Response({'success': True, 'message': 'Patient deleted'})
