from dataclasses import dataclass
from datetime import date, datetime, time as dtime, timedelta
from enum import Enum
from zoneinfo import ZoneInfo

STORE_TZ = ZoneInfo("Asia/Kolkata")
DEFAULT_HORIZON_DAYS = 3


class TimeWindow(str, Enum):
    """Delivery windows, declared in the order they occur during the day."""
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @property
    def start(self):
        return WINDOW_TIMES[self][0]

    @property
    def end(self):
        return WINDOW_TIMES[self][1]

    @property
    def cutoff(self):
        return WINDOW_TIMES[self][2]


# window -> (start, end, order cutoff on the same day)
WINDOW_TIMES = {
    TimeWindow.MORNING: (dtime(7, 0), dtime(10, 0), dtime(5, 0)),
    TimeWindow.AFTERNOON: (dtime(12, 0), dtime(15, 0), dtime(10, 0)),
    TimeWindow.EVENING: (dtime(17, 0), dtime(20, 0), dtime(15, 0)),
}

WINDOW_LABELS = {
    TimeWindow.MORNING: "7:00 AM - 10:00 AM",
    TimeWindow.AFTERNOON: "12:00 PM - 3:00 PM",
    TimeWindow.EVENING: "5:00 PM - 8:00 PM",
}


@dataclass(frozen=True)
class SlotOption:
    date: date
    window: TimeWindow
    available: bool

    def to_dict(self):
        return {
            "date": self.date.isoformat(),
            "window": self.window.value,
            "label": format_window_label(self.window),
            "available": self.available,
        }


def store_now(tz=STORE_TZ):
    return datetime.now(tz)


def to_store_time(ts, tz=STORE_TZ):
    """Naive datetimes are read as store-local; aware ones are converted."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=tz)
    return ts.astimezone(tz)


def compute_available_slots(reference_time=None, horizon_days=DEFAULT_HORIZON_DAYS, tz=STORE_TZ):
    """
    Every (date, window) pair from the reference date forward `horizon_days`
    calendar days, ordered by date then window.

    Windows on the reference date are available only while the reference
    time is strictly before their cutoff. Later dates have no cutoff.
    """
    now = to_store_time(reference_time, tz) if reference_time is not None else store_now(tz)
    today = now.date()
    current = now.time().replace(tzinfo=None)

    slots = []
    for offset in range(horizon_days):
        day = today + timedelta(days=offset)
        for window in TimeWindow:
            available = offset > 0 or current < window.cutoff
            slots.append(SlotOption(date=day, window=window, available=available))
    return slots


def format_window_label(window):
    return WINDOW_LABELS[TimeWindow(window)]


def available_dates(slots):
    seen = []
    for slot in slots:
        if slot.date not in seen:
            seen.append(slot.date)
    return seen


def slots_for_date(slots, day):
    return [slot for slot in slots if slot.date == day]


def is_slot_available(day, window, reference_time=None, horizon_days=DEFAULT_HORIZON_DAYS, tz=STORE_TZ):
    """True when (day, window) is offered and open at the reference time."""
    try:
        window = TimeWindow(window)
    except ValueError:
        return False
    for slot in compute_available_slots(reference_time, horizon_days, tz):
        if slot.date == day and slot.window == window:
            return slot.available
    return False


def parse_delivery_date(value):
    """ISO date string -> date, or None when malformed."""
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        return None
