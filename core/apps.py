from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"

    def ready(self):
        # Wire order_status_changed -> websocket broadcast
        from . import receivers  # noqa: F401
