from __future__ import annotations

from channels.generic.websocket import AsyncJsonWebsocketConsumer


class OrdersEventsConsumer(AsyncJsonWebsocketConsumer):
    """
    Read-only kitchen / order feed.
    Clients receive JSON messages broadcast to group "orders" and re-fetch
    details via REST; no customer data is sent over the socket.
    """

    GROUP = "orders"

    async def connect(self):
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()

    async def disconnect(self, code):  # pragma: no cover - trivial
        await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def receive_json(self, content, **kwargs):
        # Only keepalives are accepted from clients
        if content.get("type") == "ping":
            await self.send_json({"type": "pong"})

    async def broadcast(self, event: dict):
        # event: {"type": "broadcast", "data": {...}}
        await self.send_json(event.get("data", {}))
