from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR

FREE_DELIVERY_THRESHOLD = Decimal("300")
DELIVERY_FEE = Decimal("40")
LOYALTY_MIN_BALANCE = Decimal("300")
LOYALTY_MAX_FRACTION = Decimal("0.5")
FIRST_ORDER_BONUS = Decimal("100")
LOYALTY_ACCRUAL_RATE = Decimal("0.10")


@dataclass(frozen=True)
class PricingResult:
    subtotal: Decimal
    delivery_fee: Decimal
    loyalty_discount_applied: Decimal
    total: Decimal
    loyalty_points_earned: Decimal

    def to_dict(self):
        return {
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "loyalty_discount_applied": float(self.loyalty_discount_applied),
            "total": float(self.total),
            "loyalty_points_earned": float(self.loyalty_points_earned),
        }


def _money(value):
    return value if isinstance(value, Decimal) else Decimal(str(value))


def delivery_fee_for(subtotal):
    return DELIVERY_FEE if _money(subtotal) < FREE_DELIVERY_THRESHOLD else Decimal("0")


def amount_for_free_delivery(subtotal):
    """How much more the cart needs before delivery becomes free."""
    return max(FREE_DELIVERY_THRESHOLD - _money(subtotal), Decimal("0"))


def max_loyalty_redeemable(loyalty_balance, subtotal):
    """
    Credit usable on one order: nothing below the eligibility minimum,
    otherwise the balance capped at half the subtotal.
    """
    balance = _money(loyalty_balance)
    if balance < LOYALTY_MIN_BALANCE:
        return Decimal("0")
    return min(balance, _money(subtotal) * LOYALTY_MAX_FRACTION)


def loyalty_points_for(subtotal, is_first_order):
    subtotal = _money(subtotal)
    if is_first_order and subtotal >= FREE_DELIVERY_THRESHOLD:
        return FIRST_ORDER_BONUS
    return (subtotal * LOYALTY_ACCRUAL_RATE).to_integral_value(rounding=ROUND_FLOOR)


def compute_order_pricing(subtotal, loyalty_balance, use_loyalty, is_first_order):
    subtotal = _money(subtotal)
    fee = delivery_fee_for(subtotal)
    discount = max_loyalty_redeemable(loyalty_balance, subtotal) if use_loyalty else Decimal("0")
    return PricingResult(
        subtotal=subtotal,
        delivery_fee=fee,
        loyalty_discount_applied=discount,
        total=subtotal + fee - discount,
        loyalty_points_earned=loyalty_points_for(subtotal, is_first_order),
    )


def cart_subtotal(lines):
    return sum((_money(line.price) * line.quantity for line in lines), Decimal("0"))


def apply_order_to_account(loyalty_balance, total_purchases, pricing):
    """Returns (new loyalty balance, new total purchases) after an order."""
    new_balance = _money(loyalty_balance) + pricing.loyalty_points_earned - pricing.loyalty_discount_applied
    return new_balance, _money(total_purchases) + pricing.subtotal
