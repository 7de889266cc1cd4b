from dataclasses import dataclass
from decimal import Decimal

from ecfresh.errors import CartError
from ecfresh.utils.calculation import cart_subtotal

CART_KEY = "cart"
WISHLIST_KEY = "wishlist"
MAX_QUANTITY = 20


@dataclass(frozen=True)
class CartLine:
    product_id: str
    product_name: str
    weight: str
    price: Decimal
    original_price: Decimal | None
    quantity: int

    @property
    def line_total(self):
        return self.price * self.quantity

    def to_dict(self):
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "weight": self.weight,
            "price": float(self.price),
            "original_price": float(self.original_price) if self.original_price is not None else None,
            "quantity": self.quantity,
            "line_total": float(self.line_total),
        }


def find_variant(product, weight):
    return next((v for v in product.get("variants") or [] if v.get("weight") == weight), None)


class CartService:
    """
    Cart kept in the (server-side) session as [{product_id, weight, quantity}].
    Prices are always read back from the catalog, never from the session.
    """

    def __init__(self, session, store):
        self._session = session
        self._store = store

    def _raw(self):
        return [dict(entry) for entry in self._session.get(CART_KEY, [])]

    def _save(self, entries):
        self._session[CART_KEY] = entries

    def _check(self, product_id, weight):
        product = self._store.get_product(product_id)
        if not product or not product.get("is_available"):
            raise CartError("Product is not available.")
        if not find_variant(product, weight):
            raise CartError(f"Product has no '{weight}' option.")
        return product

    def add(self, product_id, weight, quantity=1):
        if quantity < 1:
            raise CartError("Quantity must be at least 1.")
        product_id = str(product_id)
        self._check(product_id, weight)

        entries = self._raw()
        for entry in entries:
            if entry["product_id"] == product_id and entry["weight"] == weight:
                entry["quantity"] = min(entry["quantity"] + quantity, MAX_QUANTITY)
                break
        else:
            entries.append({"product_id": product_id, "weight": weight, "quantity": min(quantity, MAX_QUANTITY)})
        self._save(entries)

    def update_quantity(self, product_id, weight, quantity):
        product_id = str(product_id)
        if quantity <= 0:
            return self.remove(product_id, weight)

        entries = self._raw()
        for entry in entries:
            if entry["product_id"] == product_id and entry["weight"] == weight:
                entry["quantity"] = min(quantity, MAX_QUANTITY)
                self._save(entries)
                return True
        raise CartError("Item not found in your cart.")

    def remove(self, product_id, weight):
        product_id = str(product_id)
        entries = self._raw()
        kept = [e for e in entries if not (e["product_id"] == product_id and e["weight"] == weight)]
        self._save(kept)
        return len(kept) != len(entries)

    def clear(self):
        self._save([])

    def lines(self):
        """Cart lines priced from the catalog; vanished or unavailable products drop out."""
        lines = []
        for entry in self._raw():
            product = self._store.get_product(entry["product_id"])
            if not product or not product.get("is_available"):
                continue
            variant = find_variant(product, entry["weight"])
            if not variant:
                continue
            original = variant.get("originalPrice")
            lines.append(CartLine(
                product_id=product["id"],
                product_name=product["name"],
                weight=variant["weight"],
                price=Decimal(str(variant["price"])),
                original_price=Decimal(str(original)) if original is not None else None,
                quantity=int(entry["quantity"]),
            ))
        return lines

    def subtotal(self):
        return cart_subtotal(self.lines())

    def count(self):
        return sum(line.quantity for line in self.lines())


class WishlistService:
    def __init__(self, session, store):
        self._session = session
        self._store = store

    def toggle(self, product_id):
        """Adds or removes the product; returns True when it is now wished for."""
        product_id = str(product_id)
        ids = list(self._session.get(WISHLIST_KEY, []))
        if product_id in ids:
            ids.remove(product_id)
            wished = False
        else:
            if not self._store.get_product(product_id):
                raise CartError("Product not found.")
            ids.append(product_id)
            wished = True
        self._session[WISHLIST_KEY] = ids
        return wished

    def items(self):
        products = (self._store.get_product(pid) for pid in self._session.get(WISHLIST_KEY, []))
        return [p for p in products if p]
