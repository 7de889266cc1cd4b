import csv
import io
from decimal import Decimal

from ecfresh.utils.csv_io import (
    import_products_csv, export_products_csv, export_orders_csv, template_csv,
    parse_variants, format_variants, PRODUCT_COLUMNS, DEFAULT_IMAGE,
)

CATEGORIES = [{"id": "1", "name": "Vegetables"}, {"id": "2", "name": "Fruits"}]
HEADER = "name,category,description,image,variants,isAvailable\n"


def test_valid_rows_become_products():
    text = HEADER + (
        'Onion - Curry Cut,1,Cut for curry,onion.jpg,300g:45:55;500g:70;1kg:130,true\n'
        'Mango Slices,fruits,,,300g:120,false\n'
    )
    report = import_products_csv(text, CATEGORIES)

    assert report.errors == []
    onion, mango = report.products
    assert onion == {
        "name": "Onion - Curry Cut",
        "category_id": "1",
        "description": "Cut for curry",
        "image": "onion.jpg",
        "variants": [
            {"weight": "300g", "price": 45.0, "originalPrice": 55.0},
            {"weight": "500g", "price": 70.0},
            {"weight": "1kg", "price": 130.0},
        ],
        "is_available": True,
    }
    # category matched by name, blank image falls back to the default
    assert mango["category_id"] == "2"
    assert mango["image"] == DEFAULT_IMAGE
    assert mango["is_available"] is False


def test_bad_rows_are_reported_by_line_and_good_rows_kept():
    text = HEADER + (
        ',1,,,300g:10,true\n'
        'Beans,Dairy,,,300g:10,true\n'
        'Carrot,1,,,2kg:10,true\n'
        'Peas,1,,,300g:10;300g:12,true\n'
        'Beetroot,1,,,500g:40,TRUE\n'
    )
    report = import_products_csv(text, CATEGORIES)

    assert [p["name"] for p in report.products] == ["Beetroot"]
    assert report.products[0]["is_available"] is True
    assert report.errors[0] == "Row 2: Name and category are required"
    assert report.errors[1] == 'Row 3: Category "Dairy" not found'
    assert report.errors[2].startswith("Row 4: Invalid data format")
    assert report.errors[3].startswith("Row 5: Invalid data format")
    assert len(report.errors) == 4


def test_byte_order_mark_and_padded_headers():
    text = "\ufeffname, category ,description,image,variants,isAvailable\nOkra,1,,,500g:50,true\n"
    report = import_products_csv(text, CATEGORIES)
    assert [p["name"] for p in report.products] == ["Okra"]


def test_blank_lines_are_skipped():
    text = HEADER + "Okra,1,,,500g:50,true\n,,,,,\n"
    report = import_products_csv(text, CATEGORIES)
    assert len(report.products) == 1
    assert report.errors == []


def test_parse_variants():
    variants = parse_variants("300g:45:55; 1kg:130")
    assert [(v.weight, v.price, v.originalPrice) for v in variants] == [("300g", 45, 55), ("1kg", 130, None)]

    default = parse_variants("  ")
    assert [(v.weight, v.price) for v in default] == [("300g", 0)]


def test_format_variants():
    assert format_variants([
        {"weight": "300g", "price": 45.0, "originalPrice": 55},
        {"weight": "500g", "price": 70.5},
    ]) == "300g:45:55;500g:70.5"


def test_export_products_reads_back():
    products = [{
        "id": "9",
        "name": "Onion, Red",
        "category_id": "1",
        "description": "Sliced",
        "image": "onion.jpg",
        "variants": [{"weight": "500g", "price": 70}],
        "is_available": True,
    }]
    text = export_products_csv(products)
    rows = list(csv.DictReader(io.StringIO(text)))

    assert text.splitlines()[0] == ",".join(PRODUCT_COLUMNS)
    assert rows == [{
        "name": "Onion, Red",
        "category": "1",
        "description": "Sliced",
        "image": "onion.jpg",
        "variants": "500g:70",
        "isAvailable": "true",
    }]
    assert import_products_csv(text, CATEGORIES).products[0]["name"] == "Onion, Red"


def test_template_is_importable():
    report = import_products_csv(template_csv(), CATEGORIES)
    assert report.errors == []
    assert len(report.products) == 2


def test_export_orders():
    orders = [{
        "id": "7",
        "created_at": "2025-07-24T09:00:00",
        "address": {"name": "Priya", "phone": "9876543210", "pin_code": "600017"},
        "items": [{"product_name": "Onion", "weight": "300g", "quantity": 2}],
        "delivery_date": "2025-07-25",
        "time_slot": "evening",
        "subtotal": Decimal("90"),
        "delivery_fee": Decimal("40"),
        "loyalty_used": Decimal("0"),
        "total": Decimal("130"),
        "status": "confirmed",
    }]
    rows = list(csv.DictReader(io.StringIO(export_orders_csv(orders))))

    assert rows[0]["customer"] == "Priya"
    assert rows[0]["items"] == "Onion (300g) x 2"
    assert rows[0]["total"] == "130"
    assert rows[0]["status"] == "confirmed"
