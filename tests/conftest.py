"""
Shared fixtures: an app on in-memory SQLite, a seeded catalog and
logged-in clients. The identity provider is swapped for a recording fake
so no magic links leave the test run.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from models import Base
from ecfresh import create_app
import ecfresh.extensions as ext
from ecfresh.auth.providers import IdentityProvider
from ecfresh.errors import IdentityError
from ecfresh.services.accounts import SqlAccountDirectory
from ecfresh.services.store import SqlStore

IST = ZoneInfo("Asia/Kolkata")


class FakeIdentityProvider(IdentityProvider):
    name = "fake"

    def __init__(self):
        self.sent = []

    def start_login(self, email, redirect_to):
        self.sent.append((email, redirect_to))

    def verify(self, payload):
        # the token hash doubles as the email in tests
        token = (payload or {}).get("token_hash")
        if not token:
            raise IdentityError("Missing token.")
        return token.lower()


@pytest.fixture
def app():
    app = create_app("ecfresh.config.TestConfig")
    Base.metadata.create_all(ext.engine)
    app.extensions.setdefault("ecfresh", {})["identity"] = FakeIdentityProvider()
    yield app
    ext.db_session.remove()
    Base.metadata.drop_all(ext.engine)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def identity(app):
    return app.extensions["ecfresh"]["identity"]


@pytest.fixture
def store(app):
    return SqlStore(ext.db_session)


@pytest.fixture
def accounts(app):
    return SqlAccountDirectory(ext.db_session)


@pytest.fixture
def catalog(store):
    veg = store.add_category({"name": "Vegetables", "image": "", "order": 1, "is_active": True})
    fruit = store.add_category({"name": "Fruits", "image": "", "order": 2, "is_active": True})
    onion = store.add_product({
        "name": "Onion - Curry Cut",
        "category_id": veg["id"],
        "image": "onion.jpg",
        "description": "Cut for curry",
        "variants": [
            {"weight": "300g", "price": 45, "originalPrice": 55},
            {"weight": "500g", "price": 70},
            {"weight": "1kg", "price": 130},
        ],
        "is_available": True,
    })
    tomato = store.add_product({
        "name": "Tomato - Diced",
        "category_id": veg["id"],
        "image": "tomato.jpg",
        "description": "",
        "variants": [{"weight": "500g", "price": 95}, {"weight": "1kg", "price": 180}],
        "is_available": True,
    })
    mango = store.add_product({
        "name": "Mango Slices",
        "category_id": fruit["id"],
        "image": "mango.jpg",
        "description": "",
        "variants": [{"weight": "300g", "price": 120}],
        "is_available": False,
    })
    return {"vegetables": veg, "fruits": fruit, "onion": onion, "tomato": tomato, "mango": mango}


@pytest.fixture
def customer(accounts):
    return accounts.create_if_not_exists("priya@example.com", name="Priya", phone="9876543210", pin_code="600017")


@pytest.fixture
def customer_client(client, customer):
    with client.session_transaction() as s:
        s["user_id"] = customer.id
        s["email"] = customer.email
        s["role"] = "customer"
    return client


@pytest.fixture
def admin_client(client):
    with client.session_transaction() as s:
        s["role"] = "admin"
    return client


@pytest.fixture
def tomorrow():
    return (datetime.now(IST) + timedelta(days=1)).date()


@pytest.fixture
def details():
    return {
        "name": "Priya",
        "phone": "9876543210",
        "email": "priya@example.com",
        "address": "12 Usman Road",
        "pin_code": "600017",
        "landmark": "Near Panagal Park",
        "optional_phone": "",
    }
