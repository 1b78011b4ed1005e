from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

PHOTO_SIDES = ("front", "back", "left", "right")
PHOTO_FIELDS = tuple(f"photo_{side}" for side in PHOTO_SIDES)
DIMENSION_FIELDS = ("height", "width", "length")

# Columns a caller may write; id and timestamps belong to the store.
WRITABLE_FIELDS = ("code", "material", "classification") + DIMENSION_FIELDS + PHOTO_FIELDS


@dataclass
class BlockRecord:
    """In-memory representation of a row in the blocks table.

    Attributes:
        id: Primary key (None for new records).
        code: Unique inventory code, e.g. "B-001".
        material: Material name, e.g. "Granite".
        height: Height in meters.
        width: Width in meters.
        length: Length in meters.
        classification: Optional commercial classification.
        photo_front: Blob reference of the front photo, if any.
        photo_back: Blob reference of the back photo, if any.
        photo_left: Blob reference of the left photo, if any.
        photo_right: Blob reference of the right photo, if any.
        created_at: ISO-8601 UTC timestamp set when the row was inserted.
        updated_at: ISO-8601 UTC timestamp refreshed on every update.
    """

    id: Optional[int]
    code: str
    material: str
    height: float
    width: float
    length: float
    classification: Optional[str] = None
    photo_front: Optional[str] = None
    photo_back: Optional[str] = None
    photo_left: Optional[str] = None
    photo_right: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def photos(self) -> Dict[str, str]:
        """Return the photo references that are set, keyed by field name."""
        return {name: getattr(self, name) for name in PHOTO_FIELDS if getattr(self, name)}

    def writable_values(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in WRITABLE_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "BlockRecord":
        """Build a record from a row mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {key: value for key, value in data.items() if key in known}
        for name in DIMENSION_FIELDS:
            if values.get(name) is not None:
                values[name] = float(values[name])
        return cls(**values)


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string with microsecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def next_timestamp(previous: Optional[str]) -> str:
    """Return a timestamp strictly later than `previous`.

    Two updates may land within the clock's resolution; bump by one
    microsecond so `updated_at` always increases.
    """
    now = utc_timestamp()
    if not previous:
        return now
    try:
        prev_dt = datetime.fromisoformat(previous)
    except ValueError:
        return now
    if prev_dt.tzinfo is None:
        prev_dt = prev_dt.replace(tzinfo=timezone.utc)
    now_dt = datetime.fromisoformat(now)
    if now_dt <= prev_dt:
        now_dt = prev_dt + timedelta(microseconds=1)
    return now_dt.astimezone(timezone.utc).isoformat(timespec="microseconds")
