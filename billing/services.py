from __future__ import annotations

import logging
from decimal import Decimal

from .models import Payment

logger = logging.getLogger(__name__)


def record_payment(order, amount: Decimal, method: str, reference: str = "", notes: str = "",
                   by_user=None) -> Payment:
    """Write a completed payment for ``order``. Caller owns the transaction."""
    payment = Payment.objects.create(
        order=order,
        amount=amount,
        method=method,
        status=Payment.STATUS_COMPLETED,
        reference=reference,
        notes=notes,
        created_by=by_user,
    )
    logger.info(f"Payment {payment.pk}: {amount} {method} for order {order.order_number}")
    return payment


def refund_payments(order) -> int:
    count = order.payments.filter(status=Payment.STATUS_COMPLETED).update(status=Payment.STATUS_REFUNDED)
    if count:
        logger.info(f"Marked {count} payment(s) of order {order.order_number} refunded")
    return count
