import os
import pytest
from rest_framework.test import APIClient

from accounts.models import UserCapability
from core.permissions import Capability
from tests.factories import UserFactory


# Ensure development-like environment during tests if not provided externally
os.environ.setdefault("ENVIRONMENT", "development")


@pytest.fixture
def api_client() -> APIClient:
    """Unauthenticated DRF APIClient.

    Use with endpoints that allow anonymous access, or combine with
    force_login/force_authenticate for authenticated flows.
    """
    return APIClient(enforce_csrf_checks=False)


@pytest.fixture
def admin_user(db):
    return UserFactory(username="admin", role="admin")


@pytest.fixture
def manager_user(db):
    return UserFactory(username="manager", role="manager")


@pytest.fixture
def cashier_user(db):
    """Cashier allowed to run the till but not to discount, void or refund."""
    user = UserFactory(username="cashier", role="cashier")
    for cap in (
        Capability.POS_ACCESS,
        Capability.ORDERS_VIEW,
        Capability.ORDERS_CREATE,
        Capability.TABLES_VIEW,
        Capability.PAYMENTS_PROCESS,
    ):
        UserCapability.objects.create(user=user, capability=cap)
    return user


@pytest.fixture
def user(admin_user):
    return admin_user


def _client_for(user) -> APIClient:
    client = APIClient(enforce_csrf_checks=False)
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def auth_api_client(admin_user) -> APIClient:
    """APIClient authenticated as an admin via force_authenticate."""
    return _client_for(admin_user)


@pytest.fixture
def manager_client(manager_user) -> APIClient:
    return _client_for(manager_user)


@pytest.fixture
def cashier_client(cashier_user) -> APIClient:
    return _client_for(cashier_user)
