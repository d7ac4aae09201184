"""
Tests for timezone utility functions
"""
from datetime import date, datetime, timezone

from tourops.utils.timezone_utils import (
    convert_utc_to_display,
    get_display_timezone,
    today_in_display_timezone,
    utc_now,
)


class TestTimezoneUtils:

    def test_get_display_timezone_default(self):
        """Without an app context the Cairo default applies"""
        assert get_display_timezone() == "Africa/Cairo"

    def test_get_display_timezone_from_config(self, app):
        """Test that DISPLAY_TIMEZONE overrides the default"""
        app.config["DISPLAY_TIMEZONE"] = "Asia/Dubai"
        assert get_display_timezone() == "Asia/Dubai"

    def test_convert_utc_to_display(self):
        """Test UTC to display timezone conversion"""
        utc_dt = datetime(2023, 1, 15, 10, 30, 0, tzinfo=timezone.utc)

        display_dt = convert_utc_to_display(utc_dt)

        # Cairo is UTC+2 in winter
        assert display_dt.hour == 12
        assert display_dt.minute == 30
        assert display_dt.tzinfo.zone == "Africa/Cairo"

    def test_naive_datetime_is_treated_as_utc(self):
        """Test that a naive datetime is read as UTC"""
        display_dt = convert_utc_to_display(datetime(2023, 1, 15, 10, 30, 0))
        assert display_dt.hour == 12

    def test_iso_string_input(self):
        """Test that an ISO string with Z is converted"""
        display_dt = convert_utc_to_display("2023-01-15T10:30:00Z")
        assert display_dt.hour == 12

    def test_utc_now(self):
        """Test utc_now returns timezone-aware UTC datetime"""
        now = utc_now()
        assert now.tzinfo == timezone.utc
        assert isinstance(now, datetime)

    def test_business_date_rolls_over_before_utc(self):
        """23:30 UTC is already the next day in Cairo"""
        late_evening = datetime(2024, 3, 14, 23, 30, tzinfo=timezone.utc)
        assert today_in_display_timezone(late_evening) == date(2024, 3, 15)
