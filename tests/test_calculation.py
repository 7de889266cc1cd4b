from decimal import Decimal

from ecfresh.services.cart import CartLine
from ecfresh.utils.calculation import (
    compute_order_pricing, delivery_fee_for, amount_for_free_delivery, max_loyalty_redeemable,
    loyalty_points_for, cart_subtotal, apply_order_to_account, FIRST_ORDER_BONUS,
)


def test_small_order_pays_delivery():
    result = compute_order_pricing(250, 0, False, True)
    assert result.delivery_fee == 40
    assert result.total == 290


def test_free_delivery_from_threshold():
    result = compute_order_pricing(350, 0, False, False)
    assert result.delivery_fee == 0
    assert result.total == 350
    assert delivery_fee_for(300) == 0
    assert delivery_fee_for(Decimal("299.99")) == 40


def test_loyalty_capped_at_half_subtotal():
    result = compute_order_pricing(400, 500, True, False)
    assert result.loyalty_discount_applied == 200
    assert result.total == 200


def test_loyalty_below_minimum_is_not_redeemable():
    assert compute_order_pricing(400, 100, True, False).loyalty_discount_applied == 0


def test_loyalty_ignored_without_opt_in():
    result = compute_order_pricing(400, 500, False, False)
    assert result.loyalty_discount_applied == 0
    assert result.total == 400


def test_loyalty_uses_whole_balance_when_under_cap():
    result = compute_order_pricing(1000, 300, True, False)
    assert result.loyalty_discount_applied == 300
    assert result.total == 700


def test_first_order_bonus_versus_percentage():
    assert compute_order_pricing(300, 0, False, True).loyalty_points_earned == FIRST_ORDER_BONUS
    assert compute_order_pricing(300, 0, False, False).loyalty_points_earned == 30


def test_first_order_below_threshold_earns_percentage():
    assert loyalty_points_for(250, True) == 25


def test_accrual_is_floored():
    assert loyalty_points_for(Decimal("259.90"), False) == 25
    assert loyalty_points_for(9, False) == 0


def test_same_inputs_same_result():
    assert compute_order_pricing(400, 500, True, False) == compute_order_pricing(400, 500, True, False)


def test_amount_for_free_delivery():
    assert amount_for_free_delivery(90) == 210
    assert amount_for_free_delivery(300) == 0
    assert amount_for_free_delivery(450) == 0


def test_max_loyalty_redeemable():
    assert max_loyalty_redeemable(299, 1000) == 0
    assert max_loyalty_redeemable(500, 400) == 200
    assert max_loyalty_redeemable(350, 1000) == 350


def test_cart_subtotal():
    lines = [
        CartLine("1", "Onion", "300g", Decimal("45"), Decimal("55"), 2),
        CartLine("2", "Tomato", "1kg", Decimal("180"), None, 1),
    ]
    assert cart_subtotal(lines) == Decimal("270")
    assert cart_subtotal([]) == 0


def test_apply_order_to_account():
    pricing = compute_order_pricing(400, 500, True, False)
    balance, purchases = apply_order_to_account(Decimal("500"), Decimal("1200"), pricing)
    # 500 + 40 earned - 200 redeemed
    assert balance == Decimal("340")
    assert purchases == Decimal("1600")


def test_pricing_to_dict():
    assert compute_order_pricing(250, 0, False, True).to_dict() == {
        "subtotal": 250.0,
        "delivery_fee": 40.0,
        "loyalty_discount_applied": 0.0,
        "total": 290.0,
        "loyalty_points_earned": 25.0,
    }
