from decimal import Decimal

import pytest
import requests

from ecfresh.clerk_api import clerk_api
from ecfresh.errors import AccountDirectoryError
from ecfresh.services.accounts import ClerkAccountDirectory


# ---- SQL -------------------------------------------------------------------

def test_create_if_not_exists_is_idempotent(accounts):
    first = accounts.create_if_not_exists("meena@example.com", name="Meena", pin_code="600001")
    again = accounts.create_if_not_exists("Meena@Example.com", name="Someone else")

    assert again.id == first.id
    assert again.name == "Meena"
    assert first.is_first_order is True
    assert first.loyalty_points == 0


def test_name_defaults_to_email_user(accounts):
    assert accounts.create_if_not_exists("karthik@example.com").name == "karthik"


def test_update_profile_and_balances(accounts, customer):
    updated = accounts.update(customer.id, phone="9000000000", loyalty_points=Decimal("120"))
    assert updated.phone == "9000000000"
    assert updated.loyalty_points == Decimal("120")
    assert updated.name == "Priya"


def test_update_rejects_unknown_fields(accounts, customer):
    with pytest.raises(AccountDirectoryError):
        accounts.update(customer.id, is_admin=True)


def test_update_missing_account(accounts):
    with pytest.raises(AccountDirectoryError):
        accounts.update("999", name="Ghost")
    assert accounts.get("999") is None
    assert accounts.get("not-a-number") is None


def test_default_address_is_replaced_not_duplicated(accounts, customer, details):
    accounts.save_default_address(customer.id, details)
    accounts.save_default_address(customer.id, {**details, "address": "4 Beach Road"})

    account = accounts.get(customer.id)
    assert len(account.addresses) == 1
    assert account.default_address["address"] == "4 Beach Road"
    assert account.default_address["is_default"] is True


# ---- Clerk -----------------------------------------------------------------

def clerk_user(user_id="user_1", email="priya@example.com", **meta):
    return {
        "id": user_id,
        "first_name": "Priya",
        "primary_email_address_id": "idn_2",
        "email_addresses": [
            {"id": "idn_1", "email_address": "old@example.com"},
            {"id": "idn_2", "email_address": email},
        ],
        "public_metadata": meta,
    }


@pytest.fixture
def clerk(monkeypatch):
    calls = []
    users = {}

    def find_user_by_email(api_key, email, api_url=clerk_api.DEFAULT_API_URL):
        calls.append(("find", email))
        return next((u for u in users.values() if clerk_api.primary_email(u) == email), None)

    def get_user(api_key, user_id, api_url=clerk_api.DEFAULT_API_URL):
        if user_id not in users:
            raise clerk_api.ClerkError("404 Not Found")
        return users[user_id]

    def create_user(api_key, email, first_name=None, public_metadata=None, api_url=clerk_api.DEFAULT_API_URL):
        calls.append(("create", email, public_metadata))
        user = clerk_user(f"user_{len(users) + 1}", email, **(public_metadata or {}))
        users[user["id"]] = user
        return user

    def update_user(api_key, user_id, first_name=None, api_url=clerk_api.DEFAULT_API_URL):
        users[user_id]["first_name"] = first_name
        return users[user_id]

    def merge_public_metadata(api_key, user_id, public_metadata, api_url=clerk_api.DEFAULT_API_URL):
        calls.append(("merge", user_id, public_metadata))
        users[user_id]["public_metadata"].update(public_metadata)
        return users[user_id]

    for fn in (find_user_by_email, get_user, create_user, update_user, merge_public_metadata):
        monkeypatch.setattr(clerk_api, fn.__name__, fn)

    directory = ClerkAccountDirectory("sk_test_123")
    directory.calls = calls
    directory.users = users
    return directory


def test_clerk_requires_secret_key():
    with pytest.raises(AccountDirectoryError):
        ClerkAccountDirectory("")


def test_clerk_creates_user_with_storefront_metadata(clerk):
    account = clerk.create_if_not_exists("meena@example.com", name="Meena", phone="98", pin_code="600001")

    assert account.id == "user_1"
    assert account.email == "meena@example.com"
    assert account.pin_code == "600001"
    assert account.loyalty_points == 0
    assert account.is_first_order is True
    _, _, meta = clerk.calls[-1]
    assert meta["loyalty_points"] == 0
    assert meta["addresses"] == []

    assert clerk.create_if_not_exists("meena@example.com").id == "user_1"
    assert len([c for c in clerk.calls if c[0] == "create"]) == 1


def test_clerk_update_writes_numbers_to_metadata(clerk):
    account = clerk.create_if_not_exists("meena@example.com")
    updated = clerk.update(account.id, name="Meena K", loyalty_points=Decimal("140.5"), total_purchases=Decimal("405"))

    _, _, meta = clerk.calls[-1]
    assert meta == {"loyalty_points": 140.5, "total_purchases": 405.0}
    assert updated.name == "Meena K"
    assert updated.loyalty_points == Decimal("140.5")
    assert updated.is_first_order is False


def test_clerk_default_address(clerk, details):
    account = clerk.create_if_not_exists("meena@example.com")
    clerk.save_default_address(account.id, details)
    clerk.save_default_address(account.id, {**details, "address": "4 Beach Road"})

    saved = clerk.get(account.id)
    assert len(saved.addresses) == 1
    assert saved.default_address["address"] == "4 Beach Road"


def test_clerk_unknown_user(clerk):
    assert clerk.get("user_404") is None
    with pytest.raises(AccountDirectoryError):
        clerk.save_default_address("user_404", {})


def test_clerk_http_errors_become_clerk_errors(monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(clerk_api.requests, "request", boom)
    with pytest.raises(clerk_api.ClerkError):
        clerk_api.get_user("sk_test_123", "user_1")

    with pytest.raises(AccountDirectoryError):
        ClerkAccountDirectory("sk_test_123").get_by_email("priya@example.com")


def test_clerk_request_shape(monkeypatch):
    seen = {}

    class Response:
        def raise_for_status(self):
            pass

        def json(self):
            return [clerk_user()]

    def fake_request(method, url, headers=None, timeout=None, **kwargs):
        seen.update(method=method, url=url, headers=headers, params=kwargs.get("params"))
        return Response()

    monkeypatch.setattr(clerk_api.requests, "request", fake_request)
    user = clerk_api.find_user_by_email("sk_test_123", "priya@example.com")

    assert seen["method"] == "GET"
    assert seen["url"] == "https://api.clerk.com/v1/users"
    assert seen["headers"] == {"Authorization": "Bearer sk_test_123"}
    assert seen["params"] == {"email_address": "priya@example.com"}
    assert clerk_api.primary_email(user) == "priya@example.com"
