from datetime import datetime, date, time, timezone
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

def now_utc() -> datetime:
    return datetime.now(timezone.utc)

def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def parse_datetime(val) -> datetime | None:
    """Lenient date parser for collaborator records. Returns None when unparsable."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return as_utc(val)
    if isinstance(val, date):
        return datetime.combine(val, time.min, tzinfo=timezone.utc)
    text = str(val).strip()
    if not text:
        return None
    try:
        return as_utc(date_parser.parse(text))
    except (ValueError, OverflowError):
        return None

def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)

def end_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=23, minute=59, second=59, microsecond=999999)

def start_of_month(dt: datetime) -> datetime:
    return start_of_day(dt).replace(day=1)

def add_months(dt: datetime, months: int) -> datetime:
    return dt + relativedelta(months=months)

def iso_utc(dt: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix."""
    return as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")

def day_key(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d")

def coerce_float(val, default: float | None = None):
    if val is None:
        return default
    try:
        return float(val)
    except (TypeError, ValueError):
        return default

def safe_divide(a, b) -> float:
    """Empty totals yield 0 rather than an exception."""
    if a is None or b in (None, 0, 0.0):
        return 0.0
    return float(a) / float(b)

def split_csv(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip().lower() for part in raw.split(",") if part.strip()]

def fmt_gbp(x) -> str:
    return f"£{round(float(x)):,}"

