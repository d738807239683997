import pytest
from django.contrib.auth.models import AnonymousUser

from accounts.models import UserCapability
from core.permissions import (
    ADMIN_ONLY_CAPABILITIES,
    Capability,
    effective_capabilities,
    has_capability,
    user_role,
)
from tests.factories import UserFactory


@pytest.mark.django_db
def test_admin_holds_every_capability(admin_user):
    assert all(has_capability(admin_user, cap) for cap in Capability)
    assert len(effective_capabilities(admin_user)) == len(Capability)


@pytest.mark.django_db
def test_manager_lacks_only_admin_only_capabilities(manager_user):
    for cap in Capability:
        assert has_capability(manager_user, cap) is (cap not in ADMIN_ONLY_CAPABILITIES)
    assert not has_capability(manager_user, Capability.REPORTS_DELETE)
    assert has_capability(manager_user, Capability.POS_REFUND)


@pytest.mark.django_db
def test_cashier_only_has_explicit_grants(cashier_user):
    assert has_capability(cashier_user, Capability.ORDERS_CREATE)
    assert not has_capability(cashier_user, Capability.POS_DISCOUNT)
    assert not has_capability(cashier_user, Capability.REPORTS_VIEW)

    UserCapability.objects.create(user=cashier_user, capability=Capability.POS_DISCOUNT, granted=False)
    assert not has_capability(cashier_user, Capability.POS_DISCOUNT)

    UserCapability.objects.filter(user=cashier_user, capability=Capability.POS_DISCOUNT).update(granted=True)
    assert has_capability(cashier_user, Capability.POS_DISCOUNT)


@pytest.mark.django_db
def test_superuser_is_treated_as_admin():
    boss = UserFactory(username="owner", role="cashier", is_superuser=True)
    assert user_role(boss) == "admin"
    assert has_capability(boss, Capability.SETTINGS_EDIT)


def test_anonymous_user_has_nothing():
    anonymous = AnonymousUser()
    assert user_role(anonymous) is None
    assert not has_capability(anonymous, Capability.POS_ACCESS)


@pytest.mark.django_db
def test_cashier_is_blocked_from_reports_and_admin_endpoints(cashier_client):
    assert cashier_client.get("/api/reports/sales/today/").status_code == 403
    assert cashier_client.get("/api/accounts/users/").status_code == 403
    assert cashier_client.get("/api/orders/").status_code == 200


@pytest.mark.django_db
def test_manager_cannot_delete_all_reports(manager_client):
    resp = manager_client.delete(
        "/api/reports/sales/delete-all/", {"confirmation": "DELETE ALL REPORTS"}, format="json"
    )
    assert resp.status_code == 403


@pytest.mark.django_db
def test_unauthenticated_requests_are_rejected(api_client):
    assert api_client.get("/api/orders/").status_code == 401
