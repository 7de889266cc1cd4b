import re

from pydantic import ValidationError

from ecfresh.utils.csv_io import Variant, parse_variants

PIN_CODE_RE = re.compile(r"^\d{6}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
DETAIL_FIELDS = ("name", "phone", "email", "address", "pin_code", "landmark", "optional_phone")


def clean_delivery_details(data):
    data = data or {}
    return {f: str(data.get(f) or "").strip() for f in DETAIL_FIELDS}


def validate_delivery_details(details):
    """
    Validate the checkout form:
      - name, phone, email, address and landmark are required
      - email looks like an address
      - PIN code is exactly six digits
    Returns a list of error messages (empty when valid).
    """
    errors = []
    if not details.get("name"):
        errors.append("Name is required")
    if not details.get("phone"):
        errors.append("Phone number is required")
    if not details.get("email"):
        errors.append("Email is required")
    elif not EMAIL_RE.match(details["email"]):
        errors.append("Email is not valid")
    if not details.get("address"):
        errors.append("Address is required")
    if not details.get("landmark"):
        errors.append("Landmark is required")
    if not PIN_CODE_RE.match(details.get("pin_code") or ""):
        errors.append("Valid PIN code is required")
    return errors


def parse_service_pincodes(raw):
    """'600001:Chennai Central,600017:T. Nagar' -> {'600001': 'Chennai Central', ...}"""
    areas = {}
    for chunk in (raw or "").split(","):
        pin, _, region = chunk.strip().partition(":")
        if PIN_CODE_RE.match(pin):
            areas[pin] = region.strip() or pin
    return areas


def _to_bool(value, default=True):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def _to_int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def validate_product_data(data, store, partial=False):
    """
    Admin product form -> (clean product dict, errors).
    `variants` may be a list of {weight, price, originalPrice} or the CSV string form.
    With partial=True only the supplied fields are checked (updates).
    """
    data = data or {}
    errors = []
    product = {}

    if not partial or "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            errors.append("Product name is required.")
        product["name"] = name

    if not partial or "category_id" in data:
        category = store.find_category(str(data.get("category_id") or ""))
        if not category:
            errors.append("Valid category is required.")
        else:
            product["category_id"] = category["id"]

    if not partial or "variants" in data:
        raw = data.get("variants")
        try:
            if isinstance(raw, list):
                variants = [Variant(**v) for v in raw]
            else:
                variants = parse_variants(raw) if str(raw or "").strip() else []
        except (ValidationError, ValueError, TypeError):
            variants = []
        if not variants:
            errors.append("At least one valid variant (300g, 500g or 1kg with a price) is required.")
        elif len({v.weight for v in variants}) != len(variants):
            errors.append("Each variant weight can only appear once.")
        product["variants"] = [v.to_dict() for v in variants]

    for key in ("image", "description", "nutritional_info", "recipe_idea"):
        if not partial or key in data:
            product[key] = str(data.get(key) or "").strip()

    if not partial or "is_available" in data:
        product["is_available"] = _to_bool(data.get("is_available"))

    return product, errors


def validate_banner_data(data, partial=False):
    data = data or {}
    errors = []
    banner = {}
    if not partial or "title" in data:
        banner["title"] = str(data.get("title") or "").strip()
        if not banner["title"]:
            errors.append("Banner title is required.")
    if not partial or "image" in data:
        banner["image"] = str(data.get("image") or "").strip()
        if not banner["image"]:
            errors.append("Banner image is required.")
    if not partial or "order" in data:
        banner["order"] = _to_int(data.get("order"))
    if not partial or "is_active" in data:
        banner["is_active"] = _to_bool(data.get("is_active"))
    return banner, errors


def validate_category_data(data, partial=False):
    data = data or {}
    errors = []
    category = {}
    if not partial or "name" in data:
        category["name"] = str(data.get("name") or "").strip()
        if not category["name"]:
            errors.append("Category name is required.")
    if not partial or "image" in data:
        category["image"] = str(data.get("image") or "").strip()
    if not partial or "order" in data:
        category["order"] = _to_int(data.get("order"))
    if not partial or "is_active" in data:
        category["is_active"] = _to_bool(data.get("is_active"))
    return category, errors
