from .accounts import UserFactory
from .core import TableFactory
from .catalog import CategoryFactory, ProductFactory
from .customers import CustomerFactory
from .billing import PaymentFactory

__all__ = [
    "UserFactory",
    "TableFactory",
    "CategoryFactory",
    "ProductFactory",
    "CustomerFactory",
    "PaymentFactory",
]
