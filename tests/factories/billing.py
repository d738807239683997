import factory
from decimal import Decimal

from billing import models as billing_models


class PaymentFactory(factory.django.DjangoModelFactory):
    """Needs an ``order``; build one with ``orders.services.engine.create_order``."""

    class Meta:
        model = billing_models.Payment

    amount = Decimal("9.99")
    currency = "NPR"
    method = billing_models.Payment.METHOD_CASH
    status = billing_models.Payment.STATUS_COMPLETED
    reference = ""
