import json
from channels.generic.websocket import AsyncWebsocketConsumer

ALL_DEPARTMENTS_GROUP = "queue.all"


def department_group(department_id: int) -> str:
    return f"queue.{department_id}"


class QueueUpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes queue changes to display boards and status pages.

    ``ws/queue/`` follows every department; ``ws/queue/<id>/`` a single one.
    """

    async def connect(self):
        department_id = self.scope["url_route"]["kwargs"].get("department_id")
        self.group = department_group(department_id) if department_id else ALL_DEPARTMENTS_GROUP
        await self.channel_layer.group_add(self.group, self.channel_name)
        await self.accept()
        await self.send(json.dumps({"type": "welcome", "group": self.group}))

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group, self.channel_name)

    async def queue_update(self, event):
        # event: {"type": "queue.update", "departmentId": int, "event": str, "tokenId": int, ...}
        await self.send(json.dumps(event))
