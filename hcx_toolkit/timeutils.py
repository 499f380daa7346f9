from __future__ import annotations

from datetime import datetime, timedelta, timezone

IST = timezone(timedelta(hours=5, minutes=30))


def get_ist_timestamp(now: datetime | None = None) -> str:
    """Current time in India Standard Time as ``YYYY-MM-DDTHH:MM:SS+05:30``."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(IST).strftime("%Y-%m-%dT%H:%M:%S") + "+05:30"


def format_hcx_timestamp(now: datetime | None = None) -> str:
    now = now or datetime.now().astimezone()
    if now.tzinfo is None:
        now = now.astimezone()
    return now.replace(microsecond=0).isoformat()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def unix_timestamp() -> str:
    return str(int(utcnow().timestamp()))


def format_date(value) -> str:
    if not value:
        return "N/A"
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return "N/A"
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    local = parsed.astimezone(IST)
    return local.strftime("%d %b %Y, %I:%M ") + local.strftime("%p").lower()
