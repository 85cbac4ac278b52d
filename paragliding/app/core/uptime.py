"""
Service uptime reporting.

Durations are rendered in ISO-8601 form, P{Y}Y{M}M{D}DT{H}H{M}M{S}S.
"""

from datetime import datetime, timedelta, timezone

# Calendar approximations used for the duration decomposition
SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 60 * SECONDS_PER_MINUTE
SECONDS_PER_DAY = 24 * SECONDS_PER_HOUR
SECONDS_PER_MONTH = 30 * SECONDS_PER_DAY
SECONDS_PER_YEAR = 365 * SECONDS_PER_DAY


def format_duration_iso8601(duration: timedelta) -> str:
    """
    Format a duration as an ISO-8601 duration string.
    
    Each unit is taken from what remains after the larger units, so
    400 days renders as one year, one month and five days.
    
    Args:
        duration: Elapsed time (negative values are clamped to zero)
    
    Returns:
        Duration string, e.g. "P0Y1M5DT2H3M4S"
    """
    remaining = max(int(duration.total_seconds()), 0)
    
    years, remaining = divmod(remaining, SECONDS_PER_YEAR)
    months, remaining = divmod(remaining, SECONDS_PER_MONTH)
    days, remaining = divmod(remaining, SECONDS_PER_DAY)
    hours, remaining = divmod(remaining, SECONDS_PER_HOUR)
    minutes, seconds = divmod(remaining, SECONDS_PER_MINUTE)
    
    return f"P{years}Y{months}M{days}DT{hours}H{minutes}M{seconds}S"


def get_uptime(started_at: datetime, now: datetime = None) -> str:
    """Uptime since started_at as an ISO-8601 duration."""
    now = now or datetime.now(timezone.utc)
    return format_duration_iso8601(now - started_at)
