from datetime import date
import logging

from ecfresh.errors import CheckoutError, StoreError
from ecfresh.utils.calculation import (
    compute_order_pricing, cart_subtotal, amount_for_free_delivery,
    max_loyalty_redeemable, apply_order_to_account, LOYALTY_MIN_BALANCE,
)
from ecfresh.utils.time import TimeWindow, is_slot_available, format_window_label, STORE_TZ, DEFAULT_HORIZON_DAYS
from ecfresh.utils.validation import clean_delivery_details, validate_delivery_details

log = logging.getLogger(__name__)

CANCELLABLE_STATUSES = {"confirmed", "packed", "out_for_delivery"}


class CheckoutService:
    """Prices, validates and records an order for one account."""

    def __init__(self, store, accounts, tz=STORE_TZ, horizon_days=DEFAULT_HORIZON_DAYS):
        self._store = store
        self._accounts = accounts
        self._tz = tz
        self._horizon_days = horizon_days

    def quote(self, account, lines, use_loyalty=False):
        subtotal = cart_subtotal(lines)
        balance = account.loyalty_points if account else 0
        first = account.is_first_order if account else True
        pricing = compute_order_pricing(subtotal, balance, use_loyalty, first)
        return {
            **pricing.to_dict(),
            "amount_for_free_delivery": float(amount_for_free_delivery(subtotal)),
            "loyalty_eligible": bool(account) and account.loyalty_points >= LOYALTY_MIN_BALANCE,
            "max_loyalty_redeemable": float(max_loyalty_redeemable(balance, subtotal)),
        }

    def place_order(self, account, lines, details, delivery_date, window, use_loyalty=False, now=None,
                    signed_in=True):
        """
        signed_in=False is a guest order placed against an account looked up
        by email: it never redeems that account's credit and leaves its
        profile and saved address alone.
        """
        if not lines:
            raise CheckoutError("Your cart is empty.")

        details = clean_delivery_details(details)
        errors = validate_delivery_details(details)
        if errors:
            raise CheckoutError("Please fix your delivery details.", errors)

        if not isinstance(delivery_date, date):
            raise CheckoutError("Please select delivery date and time slot")
        try:
            window = TimeWindow(window)
        except ValueError:
            raise CheckoutError("Please select delivery date and time slot")
        if not is_slot_available(delivery_date, window, now, self._horizon_days, self._tz):
            raise CheckoutError("The selected delivery slot is no longer available.")

        pricing = compute_order_pricing(
            cart_subtotal(lines), account.loyalty_points, use_loyalty and signed_in, account.is_first_order
        )

        address = {k: details[k] for k in ("name", "phone", "address", "pin_code", "landmark", "optional_phone")}
        order = self._store.add_order({
            "user_id": account.id,
            "items": [line.to_dict() for line in lines],
            "address": address,
            "subtotal": pricing.subtotal,
            "delivery_fee": pricing.delivery_fee,
            "loyalty_used": pricing.loyalty_discount_applied,
            "loyalty_earned": pricing.loyalty_points_earned,
            "total": pricing.total,
            "delivery_date": delivery_date,
            "time_slot": window.value,
            "status": "confirmed",
        })

        new_balance, new_purchases = apply_order_to_account(
            account.loyalty_points, account.total_purchases, pricing
        )
        if signed_in:
            self._accounts.update(
                account.id,
                loyalty_points=new_balance,
                total_purchases=new_purchases,
                name=details["name"],
                phone=details["phone"],
                pin_code=details["pin_code"],
            )
            self._accounts.save_default_address(account.id, address)
        else:
            self._accounts.update(account.id, loyalty_points=new_balance, total_purchases=new_purchases)

        log.info("Order %s placed by %s for %s %s, total %s",
                 order["id"], account.id, delivery_date, format_window_label(window), pricing.total)
        return order

    def cancel_order(self, account, order_id):
        order = self._store.get_order(order_id)
        if not order or order["user_id"] != str(account.id):
            raise CheckoutError("Order not found.")
        if order["status"] not in CANCELLABLE_STATUSES:
            raise CheckoutError(f"Order cannot be cancelled once {order['status']}.")
        try:
            return self._store.update_order_status(order_id, "cancelled")
        except StoreError as e:
            raise CheckoutError(str(e))
