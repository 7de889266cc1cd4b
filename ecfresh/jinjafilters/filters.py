from datetime import date, datetime
from zoneinfo import ZoneInfo

from ecfresh.utils.time import format_window_label


def format_local(dt, tz="Asia/Kolkata"):
    """Convert a datetime (or ISO string) to store time as 'YYYY-MM-DD HH:MM AM/PM'."""
    if not dt:
        return ""
    if isinstance(dt, str):
        try:
            dt = datetime.fromisoformat(dt)
        except ValueError:
            return dt
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(ZoneInfo(tz)).strftime("%Y-%m-%d %I:%M %p")

def format_price(amount):
    """Rupee amount as '₹45', or '₹45.50' when there are paise."""
    try:
        value = float(amount)
        if value.is_integer():
            return f"₹{int(value):,}"
        return f"₹{value:,.2f}"
    except (TypeError, ValueError):
        return ""

def format_delivery_date(value):
    """'2025-07-24' or a date -> 'Thu, Jul 24'."""
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    if not value:
        return ""
    return f"{value.strftime('%a, %b')} {value.day}"

def window_label(value):
    try:
        return format_window_label(value)
    except ValueError:
        return value or ""

def register_filters(app):
    app.jinja_env.filters["format_local"] = format_local
    app.jinja_env.filters["format_price"] = format_price
    app.jinja_env.filters["format_delivery_date"] = format_delivery_date
    app.jinja_env.filters["window_label"] = window_label
