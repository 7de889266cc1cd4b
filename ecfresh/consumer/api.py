from flask import Blueprint, request, session, current_app, jsonify, abort, url_for

from ecfresh.errors import CartError, CheckoutError, IdentityError, AccountDirectoryError, StoreError
from ecfresh.extensions import socketio
from ecfresh.services.backends import (
    get_cart, get_wishlist, get_checkout, get_accounts, get_identity_provider, current_account,
)
from ecfresh.utils.time import parse_delivery_date
from ecfresh.utils.validation import parse_service_pincodes, clean_delivery_details, validate_delivery_details
from ecfresh.consumer.pages import order_payload
from ecfresh.wrappers.wrappers import login_required

bp_consumer_api = Blueprint("consumer_api", __name__)


def _payload():
    return request.get_json(silent=True) or request.form.to_dict()

def _quantity(value, default=1):
    try:
        return int(value if value is not None else default)
    except (TypeError, ValueError):
        abort(400, "Quantity must be a number.")

def _cart_response(message):
    cart = get_cart()
    return jsonify({
        "ok": True,
        "message": message,
        "items": [line.to_dict() for line in cart.lines()],
        "count": cart.count(),
    })


@bp_consumer_api.route("/delivery_area", methods=["POST"])
def set_delivery_area():
    pin = str(_payload().get("pin") or "").strip()
    areas = parse_service_pincodes(current_app.config.get("SERVICE_PINCODES"))
    if pin not in areas:
        abort(400, "Sorry, we don't deliver to this PIN code yet.")
    session["delivery_area"] = {"pin": pin, "region": areas[pin]}
    return jsonify({"ok": True, "delivery_area": session["delivery_area"]})

@bp_consumer_api.route("/add_to_cart", methods=["POST"])
def add_to_cart():
    data = _payload()
    product_id = data.get("product_id")
    weight = (data.get("weight") or "").strip()
    if not product_id or not weight:
        abort(400, "Product and weight are required.")

    try:
        get_cart().add(product_id, weight, _quantity(data.get("quantity")))
    except CartError as e:
        abort(400, str(e))
    return _cart_response("Item added to cart.")

@bp_consumer_api.route("/update_cart", methods=["POST"])
def update_cart():
    data = _payload()
    try:
        get_cart().update_quantity(data.get("product_id"), data.get("weight"), _quantity(data.get("quantity"), 0))
    except CartError as e:
        abort(404, str(e))
    return _cart_response("Cart updated.")

@bp_consumer_api.route('/remove_from_cart', methods=['POST'])
def remove_from_cart():
    data = _payload()
    if not get_cart().remove(data.get("product_id"), data.get("weight")):
        abort(404, "Item not found in your cart.")
    return _cart_response("Removed from your cart.")

@bp_consumer_api.route('/clear_cart', methods=['POST'])
def clear_cart():
    get_cart().clear()
    return _cart_response("Your cart has been cleared.")

@bp_consumer_api.route('/wishlist/toggle', methods=['POST'])
def toggle_wishlist():
    try:
        wished = get_wishlist().toggle(_payload().get("product_id"))
    except CartError as e:
        abort(404, str(e))
    return jsonify({"ok": True, "wishlisted": wished})

@bp_consumer_api.route('/place_order', methods=['POST'])
def place_order():
    data = _payload()
    if not session.get("delivery_area"):
        abort(400, "Please select your delivery area first")

    cart = get_cart()
    lines = cart.lines()
    if not lines:
        abort(400, "Your cart is empty.")

    delivery_date = parse_delivery_date(data.get("delivery_date"))
    window = data.get("time_slot")
    if not delivery_date or not window:
        abort(400, "Please select delivery date and time slot")

    details = clean_delivery_details(data.get("details") or data)
    errors = validate_delivery_details(details)
    if errors:
        return jsonify({"ok": False, "error": errors[0], "errors": errors}), 400

    account = current_account()
    signed_in = account is not None
    try:
        if not signed_in:
            account = _guest_account(details)
        # only a session account may spend its own loyalty credit
        order = get_checkout().place_order(
            account, lines, details, delivery_date, window,
            use_loyalty=signed_in and bool(data.get("use_loyalty")),
            signed_in=signed_in,
        )
    except CheckoutError as e:
        return jsonify({"ok": False, "error": str(e), "errors": e.errors}), 400
    except (StoreError, AccountDirectoryError):
        current_app.logger.exception("Failed to place order")
        abort(502, "Failed to place order. Please try again.")

    cart.clear()
    socketio.emit(
        "order_update",
        {"type": "new_order", "order_id": order["id"]},
        namespace="/admin",
        to="admin_updates",
    )
    return jsonify({"ok": True, "message": "Order placed successfully!", "order": order_payload(order)}), 201

def _guest_account(details):
    """Guests get an account keyed by email, plus a magic link for next time."""
    account = get_accounts().create_if_not_exists(
        details["email"], name=details["name"], phone=details["phone"], pin_code=details["pin_code"]
    )
    try:
        get_identity_provider().start_login(account.email, url_for("auth.callback", _external=True))
    except IdentityError:
        current_app.logger.warning("Could not send magic link to %s", account.email)
    return account

@bp_consumer_api.route('/account/orders/<order_id>/cancel', methods=['POST'])
@login_required
def cancel_order(order_id):
    account = current_account()
    if not account:
        abort(401, "You must be logged in to do that.")
    try:
        order = get_checkout().cancel_order(account, order_id)
    except CheckoutError as e:
        abort(400, str(e))
    return jsonify({"ok": True, "order": order_payload(order)})
