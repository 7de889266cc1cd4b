"""
Product bulk import/export and the order report.

Import is a schema-validated parse: every data row yields a RowResult that
holds either a validated ImportedProduct or an error message naming the
row's line number in the file (the header is line 1).

Variants are written as ``weight:price[:originalPrice]`` joined by ``;``,
e.g. ``300g:45:55;500g:70:85;1kg:130``.
"""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

PRODUCT_COLUMNS = ["name", "category", "description", "image", "variants", "isAvailable"]
ORDER_COLUMNS = [
    "id", "created_at", "customer", "phone", "pin_code", "delivery_date", "time_slot",
    "items", "subtotal", "delivery_fee", "loyalty_used", "total", "status",
]
DEFAULT_IMAGE = "https://images.pexels.com/photos/1640777/pexels-photo-1640777.jpeg"
DEFAULT_WEIGHT = "300g"

Weight = Literal["300g", "500g", "1kg"]


class Variant(BaseModel):
    weight: Weight
    price: float = Field(ge=0)
    originalPrice: Optional[float] = Field(default=None, ge=0)

    def to_dict(self):
        data = {"weight": self.weight, "price": self.price}
        if self.originalPrice is not None:
            data["originalPrice"] = self.originalPrice
        return data


class ImportedProduct(BaseModel):
    name: str = Field(min_length=1)
    category_id: str = Field(min_length=1)
    description: str = ""
    image: str = DEFAULT_IMAGE
    variants: list[Variant] = Field(min_length=1)
    is_available: bool = False

    @field_validator("name", "category_id", "description", "image", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("image")
    @classmethod
    def _default_image(cls, value):
        return value or DEFAULT_IMAGE

    @model_validator(mode="after")
    def _unique_weights(self):
        weights = [v.weight for v in self.variants]
        if len(weights) != len(set(weights)):
            raise ValueError("duplicate variant weight")
        return self

    def to_product(self):
        return {
            "name": self.name,
            "category_id": self.category_id,
            "description": self.description,
            "image": self.image,
            "variants": [v.to_dict() for v in self.variants],
            "is_available": self.is_available,
        }


@dataclass
class RowResult:
    line: int
    product: ImportedProduct | None = None
    error: str | None = None

    @property
    def ok(self):
        return self.error is None


@dataclass
class ImportReport:
    results: list[RowResult] = field(default_factory=list)

    @property
    def products(self):
        return [r.product.to_product() for r in self.results if r.ok]

    @property
    def errors(self):
        return [r.error for r in self.results if not r.ok]


def parse_variants(text):
    """'300g:45:55;500g:70' -> [Variant, ...]. Blank input gives one 300g variant at 0."""
    text = (text or "").strip()
    if not text:
        return [Variant(weight=DEFAULT_WEIGHT, price=0)]

    variants = []
    for chunk in text.split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        parts = [p.strip() for p in chunk.split(":")]
        if len(parts) not in (2, 3):
            raise ValueError(f"bad variant '{chunk}'")
        variants.append(Variant(
            weight=parts[0],
            price=parts[1],
            originalPrice=parts[2] if len(parts) == 3 and parts[2] else None,
        ))
    return variants


def format_variants(variants):
    return ";".join(
        f"{v['weight']}:{_num(v['price'])}"
        + (f":{_num(v['originalPrice'])}" if v.get("originalPrice") is not None else "")
        for v in variants
    )


def _num(value):
    value = float(value)
    return str(int(value)) if value.is_integer() else f"{value:g}"


def _describe(err):
    if isinstance(err, ValidationError):
        first = err.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ()))
        return f"{where}: {first.get('msg')}" if where else first.get("msg")
    return str(err)


def read_rows(text):
    """Yield (line_number, row dict) for each non-blank data row."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")), skipinitialspace=True)
    if reader.fieldnames:
        reader.fieldnames = [(h or "").strip().strip('"') for h in reader.fieldnames]
    for row in reader:
        values = [v for v in row.values() if isinstance(v, str)]
        if not any(v.strip() for v in values):
            continue
        yield reader.line_num, {k: (v or "") for k, v in row.items() if k is not None}


def import_products_csv(text, categories):
    """
    categories: the catalog's category dicts; a row's `category` may hold a
    category id or name.
    """
    by_id = {c["id"]: c for c in categories}
    by_name = {c["name"].lower(): c for c in categories}

    report = ImportReport()
    for line, row in read_rows(text):
        name = row.get("name", "").strip()
        category_ref = row.get("category", "").strip()
        if not name or not category_ref:
            report.results.append(RowResult(line, error=f"Row {line}: Name and category are required"))
            continue

        category = by_id.get(category_ref) or by_name.get(category_ref.lower())
        if not category:
            report.results.append(RowResult(line, error=f'Row {line}: Category "{category_ref}" not found'))
            continue

        try:
            product = ImportedProduct(
                name=name,
                category_id=category["id"],
                description=row.get("description", ""),
                image=row.get("image", ""),
                variants=parse_variants(row.get("variants")),
                is_available=row.get("isAvailable", "").strip().lower() == "true",
            )
        except (ValidationError, ValueError) as e:
            report.results.append(RowResult(line, error=f"Row {line}: Invalid data format ({_describe(e)})"))
            continue
        report.results.append(RowResult(line, product=product))
    return report


def export_products_csv(products):
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(PRODUCT_COLUMNS)
    for p in products:
        writer.writerow([
            p["name"],
            p["category_id"],
            p.get("description") or "",
            p.get("image") or "",
            format_variants(p.get("variants") or []),
            "true" if p.get("is_available") else "false",
        ])
    return buf.getvalue()


def template_csv():
    return export_products_csv([
        {
            "name": "Onion - Curry Cut",
            "category_id": "1",
            "description": "Fresh onions cut perfectly for curry preparations",
            "image": DEFAULT_IMAGE,
            "variants": [
                {"weight": "300g", "price": 45, "originalPrice": 55},
                {"weight": "500g", "price": 70, "originalPrice": 85},
                {"weight": "1kg", "price": 130, "originalPrice": 150},
            ],
            "is_available": True,
        },
        {
            "name": "Tomato - Curry Cut",
            "category_id": "1",
            "description": "Ripe tomatoes cut for instant cooking",
            "image": DEFAULT_IMAGE,
            "variants": [
                {"weight": "300g", "price": 60},
                {"weight": "500g", "price": 95},
                {"weight": "1kg", "price": 180},
            ],
            "is_available": True,
        },
    ])


def export_orders_csv(orders):
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(ORDER_COLUMNS)
    for o in orders:
        address = o.get("address") or {}
        items = "; ".join(
            f"{i.get('product_name')} ({i.get('weight')}) x {i.get('quantity')}" for i in o.get("items") or []
        )
        writer.writerow([
            o["id"],
            o.get("created_at") or "",
            address.get("name", ""),
            address.get("phone", ""),
            address.get("pin_code", ""),
            o.get("delivery_date") or "",
            o.get("time_slot") or "",
            items,
            _num(o["subtotal"]),
            _num(o["delivery_fee"]),
            _num(o["loyalty_used"]),
            _num(o["total"]),
            o.get("status") or "",
        ])
    return buf.getvalue()
