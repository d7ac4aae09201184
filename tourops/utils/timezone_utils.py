"""
Timezone utility functions for the billing engine.
Timestamps are stored in UTC; business dates (invoice numbers, "today")
follow the configured display timezone (default Africa/Cairo).
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

import pytz
from flask import current_app, has_app_context

DEFAULT_DISPLAY_TIMEZONE = "Africa/Cairo"


def get_display_timezone() -> str:
    """
    Get the configured display timezone.
    Reads DISPLAY_TIMEZONE from the app config when an app context is active.
    """
    if has_app_context():
        return current_app.config.get("DISPLAY_TIMEZONE", DEFAULT_DISPLAY_TIMEZONE)
    return DEFAULT_DISPLAY_TIMEZONE


def utc_now() -> datetime:
    """
    Get current time in UTC.

    Returns:
        Current datetime in UTC
    """
    return datetime.now(timezone.utc)


def convert_utc_to_display(utc_dt: Union[datetime, str]) -> datetime:
    """
    Convert a UTC datetime to the configured display timezone.

    Args:
        utc_dt: UTC datetime object or ISO string. Naive values are taken as UTC.

    Returns:
        Datetime object in the display timezone
    """
    if isinstance(utc_dt, str):
        if utc_dt.endswith('Z'):
            utc_dt = utc_dt[:-1]
        utc_dt = datetime.fromisoformat(utc_dt)

    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)
    elif utc_dt.tzinfo != timezone.utc:
        utc_dt = utc_dt.astimezone(timezone.utc)

    display_tz = pytz.timezone(get_display_timezone())
    return utc_dt.astimezone(display_tz)


def today_in_display_timezone(now: Optional[datetime] = None) -> date:
    """Business date in the display timezone, for `now` or the current instant."""
    return convert_utc_to_display(now or utc_now()).date()
