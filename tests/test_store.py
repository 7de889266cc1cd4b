from datetime import date
from decimal import Decimal

import pytest
from postgrest.exceptions import APIError

from ecfresh.errors import StoreError
from ecfresh.services.store import SupabaseStore


# ---- SQL -------------------------------------------------------------------

def test_category_names_are_unique(store, catalog):
    with pytest.raises(StoreError):
        store.add_category({"name": "vegetables"})


def test_find_category_by_id_or_name(store, catalog):
    veg = catalog["vegetables"]
    assert store.find_category(veg["id"]) == veg
    assert store.find_category("  FRUITS ")["id"] == catalog["fruits"]["id"]
    assert store.find_category("Dairy") is None
    assert store.get_category(veg["id"])["name"] == "Vegetables"


def test_list_products_filters(store, catalog):
    veg_id = catalog["vegetables"]["id"]

    assert len(store.list_products()) == 3
    assert [p["name"] for p in store.list_products(category_id=veg_id)] == ["Onion - Curry Cut", "Tomato - Diced"]
    assert [p["name"] for p in store.list_products(available_only=True, query="tomato")] == ["Tomato - Diced"]
    assert store.list_products(category_id="abc") == []


def test_product_round_trip_keeps_variants(store, catalog):
    product = store.get_product(catalog["onion"]["id"])
    assert product["variants"][0] == {"weight": "300g", "price": 45, "originalPrice": 55}
    assert product["category_id"] == catalog["vegetables"]["id"]
    assert store.get_product("999") is None


def test_update_and_delete_product(store, catalog):
    onion_id = catalog["onion"]["id"]
    updated = store.update_product(onion_id, {"is_available": False, "id": "hijack"})
    assert updated["is_available"] is False
    assert updated["id"] == onion_id

    assert store.delete_product(onion_id) is True
    assert store.delete_product(onion_id) is False
    assert store.update_product(onion_id, {"name": "x"}) is None


def test_bulk_add_products(store, catalog):
    added = store.bulk_add_products([
        {"name": "Okra", "category_id": catalog["vegetables"]["id"], "variants": [{"weight": "500g", "price": 50}],
         "is_available": True, "description": "", "image": ""},
        {"name": "Guava", "category_id": catalog["fruits"]["id"], "variants": [{"weight": "1kg", "price": 90}],
         "is_available": True, "description": "", "image": ""},
    ])
    assert [p["name"] for p in added] == ["Okra", "Guava"]
    assert len(store.list_products()) == 5


def test_banners_ordered_and_filtered(store):
    store.add_banner({"title": "Second", "image": "b.jpg", "order": 2, "is_active": True})
    store.add_banner({"title": "First", "image": "a.jpg", "order": 1, "is_active": True})
    hidden = store.add_banner({"title": "Hidden", "image": "c.jpg", "order": 0, "is_active": False})

    assert [b["title"] for b in store.list_banners()] == ["Hidden", "First", "Second"]
    assert [b["title"] for b in store.list_banners(active_only=True)] == ["First", "Second"]
    assert store.update_banner(hidden["id"], {"is_active": True})["is_active"] is True
    assert store.delete_banner(hidden["id"]) is True


def test_orders(store, customer):
    order = store.add_order({
        "user_id": customer.id,
        "items": [{"product_name": "Onion", "weight": "300g", "quantity": 1}],
        "address": {"name": "Priya"},
        "subtotal": Decimal("45"),
        "delivery_fee": Decimal("40"),
        "loyalty_used": Decimal("0"),
        "loyalty_earned": Decimal("4"),
        "total": Decimal("85"),
        "delivery_date": "2025-07-25",
        "time_slot": "morning",
    })
    assert order["status"] == "confirmed"
    assert order["user_id"] == customer.id
    assert order["total"] == Decimal("85")

    assert store.list_orders(status="packed") == []
    packed = store.update_order_status(order["id"], "packed")
    assert packed["status"] == "packed"
    assert [o["id"] for o in store.list_orders(status="packed")] == [order["id"]]
    assert store.list_orders(user_id="abc") == []

    with pytest.raises(StoreError):
        store.update_order_status(order["id"], "lost")
    assert store.update_order_status("999", "packed") is None


def test_orders_need_a_sql_account_id(store):
    with pytest.raises(StoreError, match="user_2abcXYZ"):
        store.add_order({"user_id": "user_2abcXYZ", "total": Decimal("85"), "time_slot": "morning"})


# ---- Supabase --------------------------------------------------------------

class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, table, rows, error=None):
        self.table = table
        self.rows = rows
        self.error = error
        self.calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self
        return record

    def execute(self):
        if self.error:
            raise self.error
        return FakeResult(self.rows)


class FakeClient:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.queries = []

    def table(self, name):
        query = FakeQuery(name, self.rows, self.error)
        self.queries.append(query)
        return query


def test_supabase_rows_normalised():
    client = FakeClient([{"id": 7, "user_id": 3, "subtotal": 405, "total": 202.5, "status": "confirmed"}])
    order = SupabaseStore(client).get_order("7")

    assert order["id"] == "7"
    assert order["user_id"] == "3"
    assert order["total"] == Decimal("202.5")
    assert client.queries[0].table == "orders"
    assert ("eq", ("id", "7"), {}) in client.queries[0].calls


def test_supabase_list_products_filters():
    client = FakeClient([])
    SupabaseStore(client).list_products(category_id="2", available_only=True, query="tom")

    names = [c[0] for c in client.queries[0].calls]
    assert names == ["select", "eq", "eq", "ilike", "order"]
    assert client.queries[0].calls[3][1] == ("name", "%tom%")


def test_supabase_add_order_serialises_values():
    client = FakeClient([{"id": 1, "user_id": "u1", "total": 85, "status": "confirmed"}])
    SupabaseStore(client).add_order({
        "user_id": "u1",
        "total": Decimal("85"),
        "delivery_date": date(2025, 7, 25),
        "unexpected": "dropped",
    })

    name, args, _ = client.queries[0].calls[0]
    assert name == "insert"
    assert args[0] == {"user_id": "u1", "total": 85.0, "delivery_date": "2025-07-25", "status": "confirmed"}


def test_supabase_errors_become_store_errors():
    client = FakeClient(error=APIError({"message": "permission denied", "code": "42501", "hint": None, "details": None}))
    with pytest.raises(StoreError, match="permission denied"):
        SupabaseStore(client).list_banners()


def test_supabase_rejects_unknown_status():
    with pytest.raises(StoreError):
        SupabaseStore(FakeClient()).update_order_status("1", "lost")
