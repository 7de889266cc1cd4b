"""
Catalog and order storage.

SqlStore talks to the database through the scoped SQLAlchemy session;
SupabaseStore goes through the Supabase table client. Both hand back plain
dicts with string ids so callers never see which one is wired up.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
import logging

from postgrest.exceptions import APIError
from sqlalchemy import func

from models import Banners, Categories, Products, Orders, ORDER_STATUSES
from ecfresh.errors import StoreError

log = logging.getLogger(__name__)

BANNER_FIELDS = ("title", "image", "order", "is_active")
CATEGORY_FIELDS = ("name", "image", "order", "is_active")
PRODUCT_FIELDS = (
    "name", "category_id", "image", "description", "nutritional_info",
    "recipe_idea", "variants", "is_available",
)
ORDER_FIELDS = (
    "user_id", "items", "address", "subtotal", "delivery_fee", "loyalty_used",
    "loyalty_earned", "total", "delivery_date", "time_slot", "status",
)
MONEY_FIELDS = ("subtotal", "delivery_fee", "loyalty_used", "loyalty_earned", "total")


def _pick(data, allowed):
    return {k: v for k, v in data.items() if k in allowed}


def _iso(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class Store(ABC):
    # Banners
    @abstractmethod
    def list_banners(self, active_only: bool = False) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    def add_banner(self, data: dict) -> dict:
        raise NotImplementedError

    @abstractmethod
    def update_banner(self, banner_id: str, data: dict) -> dict | None:
        raise NotImplementedError

    @abstractmethod
    def delete_banner(self, banner_id: str) -> bool:
        raise NotImplementedError

    # Categories
    @abstractmethod
    def list_categories(self, active_only: bool = False) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    def add_category(self, data: dict) -> dict:
        raise NotImplementedError

    @abstractmethod
    def update_category(self, category_id: str, data: dict) -> dict | None:
        raise NotImplementedError

    @abstractmethod
    def delete_category(self, category_id: str) -> bool:
        raise NotImplementedError

    # Products
    @abstractmethod
    def list_products(self, category_id: str | None = None, available_only: bool = False,
                      query: str | None = None) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    def get_product(self, product_id: str) -> dict | None:
        raise NotImplementedError

    @abstractmethod
    def add_product(self, data: dict) -> dict:
        raise NotImplementedError

    @abstractmethod
    def update_product(self, product_id: str, data: dict) -> dict | None:
        raise NotImplementedError

    @abstractmethod
    def delete_product(self, product_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def bulk_add_products(self, products: list[dict]) -> list[dict]:
        raise NotImplementedError

    # Orders
    @abstractmethod
    def add_order(self, data: dict) -> dict:
        raise NotImplementedError

    @abstractmethod
    def get_order(self, order_id: str) -> dict | None:
        raise NotImplementedError

    @abstractmethod
    def list_orders(self, user_id: str | None = None, status: str | None = None) -> list[dict]:
        raise NotImplementedError

    @abstractmethod
    def update_order_status(self, order_id: str, status: str) -> dict | None:
        raise NotImplementedError

    # Shared helpers
    def get_category(self, category_id: str) -> dict | None:
        return next((c for c in self.list_categories() if c["id"] == str(category_id)), None)

    def find_category(self, ref: str) -> dict | None:
        """Match a category by id or, failing that, by name (case-insensitive)."""
        ref = (ref or "").strip()
        categories = self.list_categories()
        for c in categories:
            if c["id"] == ref:
                return c
        for c in categories:
            if c["name"].lower() == ref.lower():
                return c
        return None


def _check_status(status):
    if status not in ORDER_STATUSES:
        raise StoreError(f"Unknown order status '{status}'.")


class SqlStore(Store):
    def __init__(self, db_session) -> None:
        self._db = db_session

    # ---- row -> dict ---------------------------------------------------------

    @staticmethod
    def _banner(b):
        return {"id": str(b.id), "title": b.title, "image": b.image, "order": b.order, "is_active": b.is_active}

    @staticmethod
    def _category(c):
        return {"id": str(c.id), "name": c.name, "image": c.image, "order": c.order, "is_active": c.is_active}

    @staticmethod
    def _product(p):
        return {
            "id": str(p.id),
            "name": p.name,
            "category_id": str(p.category_id),
            "image": p.image,
            "description": p.description,
            "nutritional_info": p.nutritional_info,
            "recipe_idea": p.recipe_idea,
            "variants": list(p.variants or []),
            "is_available": p.is_available,
            "created_at": _iso(p.created_at),
        }

    @staticmethod
    def _order(o):
        return {
            "id": str(o.id),
            "user_id": str(o.user_id),
            "items": o.items,
            "address": o.address,
            "subtotal": Decimal(o.subtotal),
            "delivery_fee": Decimal(o.delivery_fee),
            "loyalty_used": Decimal(o.loyalty_used),
            "loyalty_earned": Decimal(o.loyalty_earned),
            "total": Decimal(o.total),
            "delivery_date": _iso(o.delivery_date),
            "time_slot": o.time_slot,
            "status": o.status,
            "created_at": _iso(o.created_at),
        }

    def _get(self, model, row_id):
        try:
            return self._db.query(model).filter_by(id=int(row_id)).first()
        except (TypeError, ValueError):
            return None

    def _add(self, model, data, allowed):
        row = model(**_pick(data, allowed))
        self._db.add(row)
        self._db.commit()
        return row

    def _update(self, model, row_id, data, allowed):
        row = self._get(model, row_id)
        if not row:
            return None
        for key, value in _pick(data, allowed).items():
            setattr(row, key, value)
        self._db.commit()
        return row

    def _delete(self, model, row_id):
        row = self._get(model, row_id)
        if not row:
            return False
        self._db.delete(row)
        self._db.commit()
        return True

    # ---- banners -------------------------------------------------------------

    def list_banners(self, active_only=False):
        q = self._db.query(Banners)
        if active_only:
            q = q.filter(Banners.is_active.is_(True))
        return [self._banner(b) for b in q.order_by(Banners.order.asc(), Banners.id.asc()).all()]

    def add_banner(self, data):
        return self._banner(self._add(Banners, data, BANNER_FIELDS))

    def update_banner(self, banner_id, data):
        row = self._update(Banners, banner_id, data, BANNER_FIELDS)
        return self._banner(row) if row else None

    def delete_banner(self, banner_id):
        return self._delete(Banners, banner_id)

    # ---- categories ----------------------------------------------------------

    def list_categories(self, active_only=False):
        q = self._db.query(Categories)
        if active_only:
            q = q.filter(Categories.is_active.is_(True))
        return [self._category(c) for c in q.order_by(Categories.order.asc(), Categories.id.asc()).all()]

    def add_category(self, data):
        existing = self._db.query(Categories).filter(
            func.lower(Categories.name) == (data.get("name") or "").lower()
        ).first()
        if existing:
            raise StoreError("A category with this name already exists.")
        return self._category(self._add(Categories, data, CATEGORY_FIELDS))

    def update_category(self, category_id, data):
        row = self._update(Categories, category_id, data, CATEGORY_FIELDS)
        return self._category(row) if row else None

    def delete_category(self, category_id):
        return self._delete(Categories, category_id)

    # ---- products ------------------------------------------------------------

    def list_products(self, category_id=None, available_only=False, query=None):
        q = self._db.query(Products)
        if category_id:
            try:
                q = q.filter(Products.category_id == int(category_id))
            except (TypeError, ValueError):
                return []
        if available_only:
            q = q.filter(Products.is_available.is_(True))
        if query:
            q = q.filter(func.lower(Products.name).contains(query.lower()))
        return [self._product(p) for p in q.order_by(Products.id.asc()).all()]

    def get_product(self, product_id):
        row = self._get(Products, product_id)
        return self._product(row) if row else None

    def _product_data(self, data):
        data = _pick(data, PRODUCT_FIELDS)
        if "category_id" in data:
            try:
                data["category_id"] = int(data["category_id"])
            except (TypeError, ValueError):
                raise StoreError(f"Invalid category id '{data['category_id']}'.")
        return data

    def add_product(self, data):
        return self._product(self._add(Products, self._product_data(data), PRODUCT_FIELDS))

    def update_product(self, product_id, data):
        row = self._update(Products, product_id, self._product_data(data), PRODUCT_FIELDS)
        return self._product(row) if row else None

    def delete_product(self, product_id):
        return self._delete(Products, product_id)

    def bulk_add_products(self, products):
        rows = [Products(**self._product_data(p)) for p in products]
        self._db.add_all(rows)
        self._db.commit()
        return [self._product(r) for r in rows]

    # ---- orders --------------------------------------------------------------

    def add_order(self, data):
        data = _pick(data, ORDER_FIELDS)
        data.setdefault("status", "confirmed")
        _check_status(data["status"])
        try:
            data["user_id"] = int(data.get("user_id"))
        except (TypeError, ValueError):
            raise StoreError(f"Orders need a SQL account id, got {data.get('user_id')!r}.")
        if isinstance(data.get("delivery_date"), str):
            data["delivery_date"] = date.fromisoformat(data["delivery_date"])
        order = Orders(**data)
        self._db.add(order)
        self._db.commit()
        return self._order(order)

    def get_order(self, order_id):
        row = self._get(Orders, order_id)
        return self._order(row) if row else None

    def list_orders(self, user_id=None, status=None):
        q = self._db.query(Orders)
        if user_id is not None:
            try:
                q = q.filter(Orders.user_id == int(user_id))
            except (TypeError, ValueError):
                return []
        if status:
            q = q.filter(Orders.status == status)
        return [self._order(o) for o in q.order_by(Orders.created_at.desc(), Orders.id.desc()).all()]

    def update_order_status(self, order_id, status):
        _check_status(status)
        row = self._get(Orders, order_id)
        if not row:
            return None
        row.status = status
        row.updated_at = func.now()
        self._db.commit()
        self._db.refresh(row)
        return self._order(row)


class SupabaseStore(Store):
    """Same contract over the Supabase (PostgREST) table client."""

    def __init__(self, client) -> None:
        self._client = client

    def _table(self, name):
        return self._client.table(name)

    @staticmethod
    def _run(query):
        try:
            return query.execute().data or []
        except APIError as e:
            log.error("Supabase query failed: %s", e)
            raise StoreError(f"Supabase request failed: {e.message}")

    @staticmethod
    def _row(row):
        row = dict(row)
        row["id"] = str(row["id"])
        for key in ("category_id", "user_id"):
            if row.get(key) is not None:
                row[key] = str(row[key])
        for key in MONEY_FIELDS:
            if key in row and row[key] is not None:
                row[key] = Decimal(str(row[key]))
        return row

    @staticmethod
    def _payload(data, allowed):
        payload = {}
        for key, value in _pick(data, allowed).items():
            if isinstance(value, Decimal):
                value = float(value)
            payload[key] = _iso(value)
        return payload

    def _list(self, name, filters=(), order_by="order"):
        query = self._table(name).select("*")
        for column, value in filters:
            query = query.eq(column, value)
        return [self._row(r) for r in self._run(query.order(order_by))]

    def _get(self, name, row_id):
        rows = self._run(self._table(name).select("*").eq("id", row_id).limit(1))
        return self._row(rows[0]) if rows else None

    def _insert(self, name, data, allowed):
        rows = self._run(self._table(name).insert(self._payload(data, allowed)))
        if not rows:
            raise StoreError(f"Insert into {name} returned no row.")
        return self._row(rows[0])

    def _update(self, name, row_id, data, allowed):
        rows = self._run(self._table(name).update(self._payload(data, allowed)).eq("id", row_id))
        return self._row(rows[0]) if rows else None

    def _delete(self, name, row_id):
        return bool(self._run(self._table(name).delete().eq("id", row_id)))

    def list_banners(self, active_only=False):
        return self._list("banners", [("is_active", True)] if active_only else [])

    def add_banner(self, data):
        return self._insert("banners", data, BANNER_FIELDS)

    def update_banner(self, banner_id, data):
        return self._update("banners", banner_id, data, BANNER_FIELDS)

    def delete_banner(self, banner_id):
        return self._delete("banners", banner_id)

    def list_categories(self, active_only=False):
        return self._list("categories", [("is_active", True)] if active_only else [])

    def add_category(self, data):
        name = (data.get("name") or "").lower()
        if any(c["name"].lower() == name for c in self.list_categories()):
            raise StoreError("A category with this name already exists.")
        return self._insert("categories", data, CATEGORY_FIELDS)

    def update_category(self, category_id, data):
        return self._update("categories", category_id, data, CATEGORY_FIELDS)

    def delete_category(self, category_id):
        return self._delete("categories", category_id)

    def list_products(self, category_id=None, available_only=False, query=None):
        q = self._table("products").select("*")
        if category_id:
            q = q.eq("category_id", category_id)
        if available_only:
            q = q.eq("is_available", True)
        if query:
            q = q.ilike("name", f"%{query}%")
        return [self._row(r) for r in self._run(q.order("created_at"))]

    def get_product(self, product_id):
        return self._get("products", product_id)

    def add_product(self, data):
        return self._insert("products", data, PRODUCT_FIELDS)

    def update_product(self, product_id, data):
        return self._update("products", product_id, data, PRODUCT_FIELDS)

    def delete_product(self, product_id):
        return self._delete("products", product_id)

    def bulk_add_products(self, products):
        payload = [self._payload(p, PRODUCT_FIELDS) for p in products]
        return [self._row(r) for r in self._run(self._table("products").insert(payload))]

    def add_order(self, data):
        data = dict(data)
        data.setdefault("status", "confirmed")
        _check_status(data["status"])
        return self._insert("orders", data, ORDER_FIELDS)

    def get_order(self, order_id):
        return self._get("orders", order_id)

    def list_orders(self, user_id=None, status=None):
        q = self._table("orders").select("*")
        if user_id is not None:
            q = q.eq("user_id", user_id)
        if status:
            q = q.eq("status", status)
        return [self._row(r) for r in self._run(q.order("created_at", desc=True))]

    def update_order_status(self, order_id, status):
        _check_status(status)
        return self._update("orders", order_id, {"status": status}, ("status",))
