# orderflow/utils/dates.py
from datetime import date, datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BeforeValidator

from orderflow.utils.logger import get_logger

logger = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Best-effort conversion of a stored timestamp.

    Accepts datetimes, dates, ISO-8601 strings (with or without a trailing
    ``Z``) and the ``yyyy-MM-dd HH:mm:ss`` form written by older clients.
    Anything else yields ``None``. Naive values are taken as UTC.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _lenient(value: Any) -> Optional[datetime]:
    parsed = parse_datetime(value)
    if parsed is None and value not in (None, ""):
        logger.warning("Dropping malformed timestamp", extra={"value": repr(value)})
    return parsed


# Stored documents may carry garbage timestamps; keep the record, drop the date.
LenientDatetime = Annotated[Optional[datetime], BeforeValidator(_lenient)]
