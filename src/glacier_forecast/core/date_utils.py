"""
Date and timezone utilities.

Centralizes all date/time operations. Upstream providers report in UTC and
the model buckets observations by UTC calendar date.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple

import pytz


class DateUtils:
    """Utilities for timestamp parsing and request windows."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        """
        Initialize date utilities.

        Args:
            logger: Logger instance
        """
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def now_utc() -> datetime:
        """Current time as an aware UTC datetime."""
        return datetime.now(pytz.UTC)

    @staticmethod
    def to_utc(dt: datetime) -> datetime:
        """
        Convert datetime to UTC.

        Args:
            dt: Datetime object (can be naive or aware)

        Returns:
            Datetime in UTC (timezone-aware)
        """
        if dt.tzinfo is None:
            # Naive timestamps from upstream are UTC
            return pytz.UTC.localize(dt)
        return dt.astimezone(pytz.UTC)

    @classmethod
    def parse_timestamp(cls, value: Any) -> Optional[datetime]:
        """
        Parse an upstream timestamp into an aware UTC datetime.

        Accepts ISO 8601 strings (with or without offset, ``Z`` suffix,
        fractional seconds), plain dates and datetime/date objects.

        Args:
            value: Timestamp value

        Returns:
            UTC datetime, or None when the value cannot be parsed
        """
        if isinstance(value, datetime):
            return cls.to_utc(value)
        if isinstance(value, date):
            return pytz.UTC.localize(datetime.combine(value, datetime.min.time()))
        if not isinstance(value, str) or not value.strip():
            return None

        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

        return cls.to_utc(parsed)

    def get_window(
        self,
        days: int = 0,
        hours: int = 0,
        end: Optional[datetime] = None
    ) -> Tuple[datetime, datetime]:
        """
        Get a window ending at ``end`` (default now) reaching back the given span.

        Args:
            days: Days to reach back
            hours: Hours to reach back
            end: Window end (naive values are taken as UTC)

        Returns:
            Tuple of (start_datetime, end_datetime), both aware UTC
        """
        end_utc = self.to_utc(end) if end is not None else self.now_utc()
        start_utc = end_utc - timedelta(days=days, hours=hours)

        self.logger.debug(
            f"Window of {days}d {hours}h: {start_utc.isoformat()} to {end_utc.isoformat()}"
        )
        return start_utc, end_utc

    def get_day_window(
        self,
        days: int,
        end: Optional[datetime] = None
    ) -> Tuple[datetime, datetime]:
        """
        Get a window of whole UTC days ending with the day of ``end``.

        The end bound is the following midnight so that daily aggregates
        for the current day are included.

        Args:
            days: Number of calendar days in the window
            end: Reference time (defaults to now)

        Returns:
            Tuple of (start_datetime, end_datetime), both aware UTC
        """
        end_utc = self.to_utc(end) if end is not None else self.now_utc()
        end_midnight = pytz.UTC.localize(
            datetime.combine(end_utc.date() + timedelta(days=1), datetime.min.time())
        )
        start = end_midnight - timedelta(days=days)
        return start, end_midnight

    @staticmethod
    def format_frost_time(dt: datetime) -> str:
        """Format an aware datetime the way Frost expects (``YYYY-MM-DDTHH:MM:SSZ``)."""
        if dt.tzinfo is None:
            raise ValueError("Datetime must be timezone-aware")
        return dt.astimezone(pytz.UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
