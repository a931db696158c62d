"""Field extraction helpers for GitLab webhook and API values.

Each helper returns None (or an empty string for paths) instead of raising,
so a malformed optional field degrades the event rather than discarding it.
"""

import math
from datetime import UTC, datetime, timezone, tzinfo
from urllib.parse import urlsplit
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ci_events.core.logging import get_logger

logger = get_logger(__name__)

# Webhook timestamps look like "2016-08-12 15:23:28 UTC"
WEBHOOK_LOCAL_FORMAT = "%Y-%m-%d %H:%M:%S"
UTC_ZONE_NAMES = frozenset({"UTC", "GMT", "Z"})


def to_epoch_millis(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds, treating naive values as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return int(value.timestamp() * 1000)


def parse_webhook_time(value: str | None) -> int | None:
    """Parse a webhook timestamp into epoch milliseconds.

    The zone suffix may be UTC/GMT, a numeric offset, or an IANA zone name
    such as "Europe/Berlin". Abbreviations like "CEST" are ambiguous and
    yield None; GitLab sends UTC.

    Args:
        value: Timestamp such as "2016-08-12 15:23:28 UTC"

    Returns:
        Epoch milliseconds, or None if absent or unparseable
    """
    if not value:
        return None
    local, _, zone = value.strip().rpartition(" ")
    try:
        naive = datetime.strptime(local, WEBHOOK_LOCAL_FORMAT)
        return to_epoch_millis(naive.replace(tzinfo=_parse_zone(zone)))
    except (ValueError, ZoneInfoNotFoundError):
        logger.debug("payload.time.unparseable", value=value)
        return None


def _parse_zone(zone: str) -> tzinfo:
    if zone.upper() in UTC_ZONE_NAMES:
        return UTC
    if zone[:1] in ("+", "-"):
        offset = datetime.strptime(zone, "%z").utcoffset()
        if offset is None:
            raise ValueError(zone)
        return timezone(offset)
    return ZoneInfo(zone)


def parse_api_time(value: str | None) -> int | None:
    """Parse an ISO 8601 API timestamp into epoch milliseconds.

    Args:
        value: Timestamp such as "2016-08-12T15:23:28.000+02:00"

    Returns:
        Epoch milliseconds, or None if absent or unparseable
    """
    if not value:
        return None
    try:
        return to_epoch_millis(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        logger.debug("api.time.unparseable", value=value)
        return None


def round_duration(value: float | None) -> int | None:
    """Round a duration in seconds half-up to a whole number."""
    if value is None or math.isnan(value) or math.isinf(value):
        return None
    return math.floor(value + 0.5)


def homepage_path(url: str | None) -> str:
    """Extract the project path from a repository homepage URL.

    Args:
        url: Homepage such as "https://gitlab.example.com/group/project"

    Returns:
        Path without the leading slash ("group/project"), or "" if unparseable

    Example:
        >>> homepage_path("https://x/ns/proj")
        'ns/proj'
    """
    if not url:
        logger.debug("payload.homepage.missing")
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        logger.debug("payload.homepage.unparseable", url=url)
        return ""
    if not parts.scheme or not parts.netloc:
        logger.debug("payload.homepage.unparseable", url=url)
        return ""
    return parts.path.removeprefix("/")
