"""Time helpers."""

from datetime import datetime
from typing import Optional

import pytz


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(pytz.utc)


def parse_cursor(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 cursor; naive values are taken as UTC."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed
