"""
Id and clock providers.

Everything that mints an id or reads the clock takes one of these so tests
can pin both.
"""

import itertools
import re
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IdProvider(ABC):
    """Mints opaque ids for correlations, sections and briefs."""

    @abstractmethod
    def new_id(self, prefix: str = "") -> str:
        pass


class UuidIdProvider(IdProvider):
    def new_id(self, prefix: str = "") -> str:
        value = uuid.uuid4().hex[:12]
        return f"{prefix}-{value}" if prefix else value


class SequentialIdProvider(IdProvider):
    """Deterministic ids: corr-1, corr-2, section-1, ..."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def new_id(self, prefix: str = "") -> str:
        value = next(self._counter)
        return f"{prefix}-{value}" if prefix else str(value)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse ISO-8601 or RFC 2822 timestamps into aware UTC datetimes.

    Naive values are assumed to be UTC. Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, (int, float)):
        # epoch seconds, or milliseconds for large values
        seconds = value / 1000 if value > 1e11 else value
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # Jira style "+0000" offsets
        text = re.sub(r"([+-]\d{2})(\d{2})$", r"\1:\2", text)
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            try:
                dt = parsedate_to_datetime(str(value))
            except (TypeError, ValueError):
                return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
