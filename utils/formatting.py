# utils/formatting.py
from datetime import datetime
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo


def local_time_str(tz: str, now: Optional[datetime] = None) -> str:
    """
    Wall-clock time for message footers, e.g. "03:45 PM".
    """
    moment = now.astimezone(ZoneInfo(tz)) if now else datetime.now(ZoneInfo(tz))
    return moment.strftime("%I:%M %p")


def get_decimals(value: float) -> int:
    exponent = Decimal(repr(float(value))).normalize().as_tuple().exponent
    return max(0, -exponent)


def format_price(value: Optional[float]) -> str:
    """
    Price with exactly the decimals the exchange quoted, no float noise.
    """
    if value is None:
        return "0"
    return f"{float(value):.{get_decimals(value)}f}"
