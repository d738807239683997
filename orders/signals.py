from django.dispatch import Signal

# Sent after an order is created (old="") or changes status.
# kwargs: order, old, new, by_user
order_status_changed = Signal()
