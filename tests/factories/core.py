import factory

from core import models as core_models


class TableFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = core_models.Table

    table_number = factory.Sequence(lambda n: f"T{n}")
    capacity = 4
    location = ""
    status = core_models.Table.STATUS_AVAILABLE
    is_active = True
