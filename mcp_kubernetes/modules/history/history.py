#!/usr/bin/env python3
"""
Recent command history.

Keeps the last N command attempts in memory, most recent first.
Nothing is persisted; history is lost on restart.
"""

import logging
import threading
from collections import deque
from datetime import UTC, datetime
from typing import Any, Deque, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100
DEFAULT_LIMIT = 10


class CommandRecord(BaseModel):
    """One executed (or rejected) command."""

    command: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    success: bool
    error: Optional[str] = Field(None, description="Error message if the command failed")


def parse_limit(value: Any, default: int = DEFAULT_LIMIT) -> int:
    """
    Coerce a caller supplied limit.

    Non-positive, missing or unparsable values fall back to ``default``.
    """
    if isinstance(value, bool):
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        return default
    return limit if limit > 0 else default


class CommandHistory:
    """Bounded, thread-safe, most-recent-first command log."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        """
        Initialize history.

        Args:
            capacity: Maximum records kept; oldest are evicted first
        """
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._records: Deque[CommandRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(self, command: str, success: bool, error: Optional[str] = None) -> CommandRecord:
        """Prepend a record, evicting the oldest beyond capacity."""
        entry = CommandRecord(command=command, success=success, error=error or None)
        with self._lock:
            self._records.appendleft(entry)
        return entry

    def list(self, limit: Any = None) -> List[CommandRecord]:
        """
        Snapshot of the most recent records.

        Args:
            limit: Maximum number of records; see ``parse_limit``

        Returns:
            New list, most recent first, at most ``limit`` long
        """
        count = parse_limit(limit)
        with self._lock:
            return [entry for _, entry in zip(range(count), self._records)]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
