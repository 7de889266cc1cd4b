# admin.py
from collections import Counter
from decimal import Decimal

from flask import Blueprint, request, jsonify

from ecfresh.services.backends import get_store
from ecfresh.consumer.pages import order_payload
from ecfresh.jinjafilters.filters import format_price
from ecfresh.wrappers.wrappers import admin_required


bp_admin_pages = Blueprint("admin_pages", __name__, url_prefix="/dashboard")


@bp_admin_pages.route("/")
@admin_required
def overview():
    store = get_store()
    orders = store.list_orders()
    live = [o for o in orders if o["status"] != "cancelled"]
    revenue = sum((o["total"] for o in live), Decimal("0"))

    return jsonify({
        "products": len(store.list_products()),
        "categories": len(store.list_categories()),
        "banners": len(store.list_banners()),
        "orders": len(orders),
        "orders_by_status": dict(Counter(o["status"] for o in orders)),
        "revenue": float(revenue),
        "revenue_display": format_price(revenue),
        "recent_orders": [order_payload(o) for o in orders[:5]],
    })

@bp_admin_pages.route("/banners")
@admin_required
def banners():
    return jsonify(get_store().list_banners())

@bp_admin_pages.route("/categories")
@admin_required
def categories():
    return jsonify(get_store().list_categories())

@bp_admin_pages.route("/products")
@admin_required
def products():
    store = get_store()
    names = {c["id"]: c["name"] for c in store.list_categories()}
    return jsonify([
        {**p, "category_name": names.get(p["category_id"], "")}
        for p in store.list_products(category_id=request.args.get("category") or None)
    ])

