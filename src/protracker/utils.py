from datetime import UTC, date, datetime
from uuid import uuid4


def now() -> datetime:
    return datetime.now(UTC)


def today() -> date:
    return now().date()


def new_id() -> str:
    """Collision-resistant opaque identifier for projects and notes."""
    return uuid4().hex


def mask_code(code: str) -> str:
    """Shorten an access code for log output."""
    return f"{code[:2]}***" if len(code) > 2 else "***"


def as_utc(value: datetime) -> datetime:
    """Read a naive datetime as UTC; aware values are returned unchanged."""
    # Old clients wrote local timestamps without an offset
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value
