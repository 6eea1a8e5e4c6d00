# shopdesk/utils/dates.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now; every DateTime column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso8601(s):
    if not s:
        return None
    if isinstance(s, datetime):
        dt = s
    else:
        s = str(s).strip()
        # support trailing 'Z' (UTC)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)  # store naive UTC
    return dt


def iso(dt):
    return dt.isoformat() if dt else None


def month_bounds(now: datetime):
    """(start of this month, start of last month) for growth-rate queries."""
    current = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if current.month == 1:
        previous = current.replace(year=current.year - 1, month=12)
    else:
        previous = current.replace(month=current.month - 1)
    return current, previous


def growth_rate(current, previous) -> float:
    if not previous:
        return 100.0
    return round((float(current) - float(previous)) / float(previous) * 100, 1)
