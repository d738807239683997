from __future__ import annotations

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
from django.dispatch import receiver

from orders.signals import order_status_changed

logger = logging.getLogger(__name__)

ORDERS_GROUP = "orders"


def broadcast_order_event(payload: dict) -> None:
    layer = get_channel_layer()
    if layer is None:
        return
    try:
        async_to_sync(layer.group_send)(ORDERS_GROUP, {"type": "broadcast", "data": payload})
    except (OSError, RuntimeError) as exc:
        # best-effort feed
        logger.warning(f"Order feed broadcast failed for {payload.get('event')}: {exc}")


@receiver(order_status_changed)
def on_order_status_changed(sender, order=None, old: str = "", new: str = "", by_user=None, **kwargs):
    if order is None or not new:
        return
    payload = {
        "event": "order_created" if not old else "order_status_changed",
        "order_id": order.id,
        "order_number": order.order_number,
        "table_number": order.table_number,
        "kind": order.kind,
        "old": old,
        "new": new,
    }
    transaction.on_commit(lambda: broadcast_order_event(payload))
