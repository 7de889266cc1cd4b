from flask import Blueprint, session, current_app, request, jsonify, abort

from ecfresh.services.backends import (
    get_store, get_cart, get_wishlist, get_checkout, current_account, store_timezone,
)
from ecfresh.utils.time import compute_available_slots, available_dates, slots_for_date
from ecfresh.utils.validation import parse_service_pincodes
from ecfresh.jinjafilters.filters import format_price, format_delivery_date, window_label
from ecfresh.wrappers.wrappers import login_required

bp_consumer_pages = Blueprint("consumer_pages", __name__)


def order_payload(order):
    return {
        **order,
        **{k: float(order[k]) for k in ("subtotal", "delivery_fee", "loyalty_used", "loyalty_earned", "total")},
        "total_display": format_price(order["total"]),
        "delivery_date_display": format_delivery_date(order["delivery_date"]),
        "time_slot_label": window_label(order["time_slot"]),
    }


@bp_consumer_pages.route('/')
def home():
    store = get_store()
    return jsonify({
        "banners": store.list_banners(active_only=True),
        "categories": store.list_categories(active_only=True),
        "delivery_area": session.get("delivery_area"),
        "cart_count": get_cart().count(),
    })

@bp_consumer_pages.route('/shop')
def shop():
    store = get_store()
    category = (request.args.get("category") or "").strip() or None
    query = (request.args.get("q") or "").strip() or None

    category_id = None
    if category:
        match = store.find_category(category)
        if not match:
            abort(404, "Category not found.")
        category_id = match["id"]

    return jsonify({
        "categories": store.list_categories(active_only=True),
        "products": store.list_products(category_id=category_id, available_only=True, query=query),
    })

@bp_consumer_pages.route('/product/<product_id>')
def product_detail(product_id):
    product = get_store().get_product(product_id)
    if not product:
        abort(404, "Product not found.")
    wished = str(product["id"]) in session.get("wishlist", [])
    return jsonify({"product": product, "wishlisted": wished})

@bp_consumer_pages.route('/cart')
def view_cart():
    cart = get_cart()
    lines = cart.lines()
    quote = get_checkout().quote(current_account(), lines)
    return jsonify({
        "items": [line.to_dict() for line in lines],
        "count": cart.count(),
        "summary": quote,
    })

@bp_consumer_pages.route('/checkout')
def checkout():
    lines = get_cart().lines()
    if not lines:
        abort(400, "Your cart is empty.")
    if not session.get("delivery_area"):
        abort(400, "Please select your delivery area first")

    account = current_account()
    use_loyalty = request.args.get("use_loyalty") == "true"

    slots = compute_available_slots(
        horizon_days=current_app.config.get("DELIVERY_HORIZON_DAYS", 3),
        tz=store_timezone(),
    )
    dates = []
    for day in available_dates(slots):
        day_slots = slots_for_date(slots, day)
        dates.append({
            "date": day.isoformat(),
            "label": format_delivery_date(day),
            "slots": [s.to_dict() for s in day_slots],
            # every window gone: the client should ask for another date
            "fully_booked": not any(s.available for s in day_slots),
        })

    prefill = {}
    if account:
        address = account.default_address or {}
        prefill = {
            "name": account.name,
            "phone": account.phone,
            "email": account.email,
            "pin_code": account.pin_code or address.get("pin_code", ""),
            "address": address.get("address", ""),
            "landmark": address.get("landmark", ""),
            "optional_phone": address.get("optional_phone", ""),
        }

    return jsonify({
        "items": [line.to_dict() for line in lines],
        "dates": dates,
        "summary": get_checkout().quote(account, lines, use_loyalty),
        "delivery_area": session.get("delivery_area"),
        "details": prefill,
    })

@bp_consumer_pages.route('/delivery_areas')
def delivery_areas():
    areas = parse_service_pincodes(current_app.config.get("SERVICE_PINCODES"))
    return jsonify([{"pin": pin, "region": region} for pin, region in sorted(areas.items())])

@bp_consumer_pages.route('/wishlist')
def wishlist():
    return jsonify({"products": get_wishlist().items()})

@bp_consumer_pages.route('/account/orders')
@login_required
def order_history():
    orders = get_store().list_orders(user_id=session["user_id"])
    return jsonify([order_payload(o) for o in orders])
