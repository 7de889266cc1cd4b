from flask import Blueprint, request, jsonify, abort, current_app, Response

from models import ORDER_STATUSES
from ecfresh.errors import StoreError
from ecfresh.services.backends import get_store
from ecfresh.consumer.pages import order_payload
from ecfresh.jinjafilters.filters import format_local
from ecfresh.utils.csv_io import import_products_csv, export_products_csv, export_orders_csv, template_csv
from ecfresh.utils.validation import validate_banner_data, validate_category_data, validate_product_data
from ecfresh.wrappers.wrappers import admin_required

bp_admin_api = Blueprint('admin_api', __name__, url_prefix="/dashboard")

MAX_IMPORT_BYTES = 2 * 1024 * 1024


def _payload():
    return request.get_json(silent=True) or request.form.to_dict()

def _invalid(errors):
    return jsonify({"ok": False, "error": errors[0], "errors": errors}), 400

def _csv(body, filename):
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )

def _save(action, *args):
    try:
        return action(*args)
    except StoreError as e:
        abort(400, str(e))


# ---- banners -------------------------------------------------------------

@bp_admin_api.route('/banners', methods=['POST'])
@admin_required
def add_banner():
    banner, errors = validate_banner_data(_payload())
    if errors:
        return _invalid(errors)
    return jsonify(_save(get_store().add_banner, banner)), 201

@bp_admin_api.route('/banners/<banner_id>', methods=['PATCH', 'PUT'])
@admin_required
def update_banner(banner_id):
    banner, errors = validate_banner_data(_payload(), partial=True)
    if errors:
        return _invalid(errors)
    updated = _save(get_store().update_banner, banner_id, banner)
    if not updated:
        abort(404, "Banner not found.")
    return jsonify(updated)

@bp_admin_api.route('/banners/<banner_id>', methods=['DELETE'])
@admin_required
def delete_banner(banner_id):
    if not _save(get_store().delete_banner, banner_id):
        abort(404, "Banner not found.")
    return jsonify({"ok": True})


# ---- categories ----------------------------------------------------------

@bp_admin_api.route('/categories', methods=['POST'])
@admin_required
def add_category():
    category, errors = validate_category_data(_payload())
    if errors:
        return _invalid(errors)
    return jsonify(_save(get_store().add_category, category)), 201

@bp_admin_api.route('/categories/<category_id>', methods=['PATCH', 'PUT'])
@admin_required
def update_category(category_id):
    category, errors = validate_category_data(_payload(), partial=True)
    if errors:
        return _invalid(errors)
    updated = _save(get_store().update_category, category_id, category)
    if not updated:
        abort(404, "Category not found.")
    return jsonify(updated)

@bp_admin_api.route('/categories/<category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    store = get_store()
    if store.list_products(category_id=category_id):
        abort(409, "Category still has products. Move or delete them first.")
    if not _save(store.delete_category, category_id):
        abort(404, "Category not found.")
    return jsonify({"ok": True})


# ---- products ------------------------------------------------------------

@bp_admin_api.route('/products', methods=['POST'])
@admin_required
def add_product():
    store = get_store()
    product, errors = validate_product_data(_payload(), store)
    if errors:
        return _invalid(errors)
    return jsonify(_save(store.add_product, product)), 201

@bp_admin_api.route('/products/<product_id>', methods=['PATCH', 'PUT'])
@admin_required
def update_product(product_id):
    store = get_store()
    product, errors = validate_product_data(_payload(), store, partial=True)
    if errors:
        return _invalid(errors)
    updated = _save(store.update_product, product_id, product)
    if not updated:
        abort(404, "Product not found.")
    return jsonify(updated)

@bp_admin_api.route('/products/<product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    if not _save(get_store().delete_product, product_id):
        abort(404, "Product not found.")
    return jsonify({"ok": True})


# ---- bulk import / export ------------------------------------------------

@bp_admin_api.route('/bulk_import', methods=['POST'])
@admin_required
def bulk_import():
    upload = request.files.get("file")
    if upload is not None:
        raw = upload.read(MAX_IMPORT_BYTES + 1)
    else:
        raw = request.get_data()
    if not raw:
        abort(400, "Please choose a CSV file.")
    if len(raw) > MAX_IMPORT_BYTES:
        abort(413, "CSV file is too large.")

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        abort(400, "Failed to parse CSV file")

    store = get_store()
    report = import_products_csv(text, store.list_categories())
    imported = []
    if report.products:
        imported = _save(store.bulk_add_products, report.products)

    current_app.logger.info("Bulk import: %s imported, %s rejected", len(imported), len(report.errors))
    return jsonify({"success": len(imported), "errors": report.errors})

@bp_admin_api.route('/export_products')
@admin_required
def export_products():
    return _csv(export_products_csv(get_store().list_products()), "products_export.csv")

@bp_admin_api.route('/import_template')
@admin_required
def import_template():
    return _csv(template_csv(), "product_template.csv")

@bp_admin_api.route('/export_orders')
@admin_required
def export_orders():
    status = request.args.get("status") or None
    return _csv(export_orders_csv(get_store().list_orders(status=status)), "orders_export.csv")


# ---- orders --------------------------------------------------------------

@bp_admin_api.route('/update_order', methods=['POST'])
@admin_required
def update_order():
    data = _payload()
    order_id = data.get('order_id')
    new_status = data.get('status')

    if not order_id or not new_status:
        abort(400, 'Invalid order update request.')
    if new_status not in ORDER_STATUSES:
        abort(400, 'Unknown order status.')

    order = _save(get_store().update_order_status, str(order_id), new_status)
    if not order:
        abort(404, 'Order not found.')
    return jsonify({"ok": True, "order": order_payload(order)})

@bp_admin_api.route("/orders_json", methods=["POST", "GET"])
@admin_required
def orders_json():
    payload = request.get_json(silent=True) or {}
    status = payload.get("status") or request.args.get("status") or None
    if status == "all":
        status = None
    if status and status not in ORDER_STATUSES:
        abort(400, 'Unknown order status.')

    orders_list = [
        {**order_payload(o), "placed_at": format_local(o["created_at"])}
        for o in get_store().list_orders(status=status)
    ]

    # POST returns wrapper with count; GET can return just the list
    if request.method == "POST":
        return jsonify({"orders": orders_list, "count": len(orders_list)})

    return jsonify(orders_list)
