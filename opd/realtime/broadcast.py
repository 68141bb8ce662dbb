import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.utils import timezone

from .consumers import ALL_DEPARTMENTS_GROUP, department_group

logger = logging.getLogger(__name__)


def notify_queue_change(token, event: str) -> None:
    """Send a ``queue.update`` event once the surrounding transaction commits."""
    payload = {
        "type": "queue.update",
        "departmentId": token.department_id,
        "event": event,
        "tokenId": token.id,
        "token": token.number,
        "status": token.status,
        "ts": timezone.now().isoformat(),
    }

    def send():
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        try:
            for group in (department_group(token.department_id), ALL_DEPARTMENTS_GROUP):
                async_to_sync(channel_layer.group_send)(group, payload)
        except Exception:
            # queue state is already committed here; clients still poll
            logger.warning("Queue broadcast failed for token id=%s", token.id, exc_info=True)

    transaction.on_commit(send)
