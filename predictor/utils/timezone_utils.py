"""
Timezone utility functions for Matchday Predictor

Fixtures are entered as a local match day and kickoff time in the
configured TIMEZONE; everything the engine compares is an aware UTC instant.
"""

from datetime import datetime, time, timezone

import pytz
from flask import current_app, has_app_context


def get_app_timezone():
    """Get the application's configured timezone"""
    timezone_name = "UTC"
    if has_app_context():
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
    try:
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(timezone.utc)


def as_utc(dt):
    """Return ``dt`` as an aware UTC datetime; naive values are taken as UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_kickoff_time(value):
    """Parse 'HH:MM' into a time, passing time objects through"""
    if value is None or isinstance(value, time):
        return value
    return datetime.strptime(value.strip(), "%H:%M").time()


def default_kickoff_time():
    value = "15:00"
    if has_app_context():
        value = current_app.config.get("DEFAULT_KICKOFF_TIME", value)
    return parse_kickoff_time(value)


def combine_kickoff(match_day, kickoff_time=None):
    """Combine a local match day and kickoff time into a UTC instant"""
    if kickoff_time is None:
        kickoff_time = default_kickoff_time()

    app_tz = get_app_timezone()
    local_kickoff = app_tz.localize(datetime.combine(match_day, kickoff_time))
    return local_kickoff.astimezone(timezone.utc)


def get_app_today():
    """Today's date in the application timezone"""
    return datetime.now(get_app_timezone()).date()


def format_kickoff(dt, format_str="%a %d %b at %H:%M"):
    """Format a kickoff instant in the application's timezone"""
    if dt is None:
        return "TBD"

    return as_utc(dt).astimezone(get_app_timezone()).strftime(format_str)
