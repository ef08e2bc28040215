"""DB utilities: stable JSON for TEXT columns, IntegrityError -> ConflictError."""
import functools
import json
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy.exc import IntegrityError

from cvextract.db.exceptions import ConflictError


def json_serialize(obj: Any) -> str:
    """Stable JSON: sort_keys, no extra whitespace, UTC datetimes."""
    return json.dumps(
        obj,
        ensure_ascii=False,
        separators=(",", ":"),
        sort_keys=True,
        default=_json_default,
    )


def json_deserialize(text: str | None) -> Any:
    if text is None or text == "":
        return None
    return json.loads(text)


def _json_default(o: Any) -> Any:
    if isinstance(o, datetime):
        o = o.replace(tzinfo=timezone.utc) if o.tzinfo is None else o.astimezone(timezone.utc)
        return o.isoformat()
    if isinstance(o, date):
        return o.isoformat()
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


def wrap_integrity_error(fn):
    """Decorator for async repo methods: IntegrityError becomes ConflictError."""

    @functools.wraps(fn)
    async def wrapper(*args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except IntegrityError as e:
            raise ConflictError(f"Constraint violation: {e.orig}") from e

    return wrapper
