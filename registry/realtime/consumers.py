import json
from channels.generic.websocket import AsyncWebsocketConsumer

class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes registry change events (currently patient merges) to dashboards.

    Only authenticated users are accepted, and each connection only sees
    events for its own tenant.
    """
    GROUP = "updates"

    async def connect(self):
        user = self.scope.get("user")
        if not (user and user.is_authenticated and getattr(user, "tenant_id", None)):
            await self.close()
            return
        self.tenant_id = str(user.tenant_id)
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def patient_merged(self, event):
        # event: {"type": "patient.merged", "tenantId": ..., "primaryId": ..., "duplicateId": ...}
        if event.get("tenantId") != self.tenant_id:
            return
        await self.send(json.dumps(event))
