from django.urls import path

from .consumers import OrdersEventsConsumer

websocket_urlpatterns = [
    path("ws/orders/", OrdersEventsConsumer.as_asgi()),
]
