#!/usr/bin/env python3
"""
Command allow-list.

Decides whether a kubectl command may run based on its verb (the first
whitespace-delimited token). Either every verb is permitted or only the
configured set. Instances are immutable.
"""

import logging
from pathlib import Path
from typing import Any, FrozenSet, Iterable, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

WILDCARD = "*"


class AllowList:
    """Immutable set of permitted kubectl verbs, or the wildcard."""

    __slots__ = ("_verbs",)

    def __init__(self, verbs: Optional[Iterable[str]] = None):
        """
        Initialize allow-list.

        Args:
            verbs: Permitted verbs; None (or a collection containing ``*``) allows everything
        """
        if verbs is None:
            self._verbs: Optional[FrozenSet[str]] = None
            return

        cleaned = [v.strip() for v in verbs if v and v.strip()]
        if WILDCARD in cleaned:
            self._verbs = None
        else:
            self._verbs = frozenset(cleaned)

    @classmethod
    def allow_all(cls) -> "AllowList":
        return cls(None)

    @classmethod
    def from_string(cls, value: Optional[str]) -> "AllowList":
        """
        Parse a comma separated verb list such as ``"get, describe"``.

        ``"*"`` or an empty value allows everything.
        """
        if value is None or value.strip() in ("", WILDCARD):
            return cls.allow_all()
        return cls(value.split(","))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "AllowList":
        """
        Load verbs from a YAML file.

        Expected layout (``allowedVerbs`` may also be ``"*"``)::

            commands:
              allowedVerbs: [get, describe, logs]

        A top-level ``allowedVerbs`` key is accepted as well.

        Raises:
            FileNotFoundError: File does not exist
            ValueError: File content is not a valid allow-list
        """
        path = Path(path)
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Invalid allow-list file {path}: expected a mapping")

        commands = data.get("commands", data)
        verbs: Any = commands.get("allowedVerbs") if isinstance(commands, dict) else None

        if verbs is None:
            raise ValueError(f"Invalid allow-list file {path}: missing allowedVerbs")
        if verbs == WILDCARD:
            allow_list = cls.allow_all()
        elif isinstance(verbs, list) and all(isinstance(v, str) for v in verbs):
            allow_list = cls(verbs)
        else:
            raise ValueError(f"Invalid allow-list file {path}: allowedVerbs must be a list or '*'")

        logger.info(f"Allow-list loaded from {path}: {allow_list.describe()}")
        return allow_list

    @property
    def allows_all(self) -> bool:
        return self._verbs is None

    def is_allowed(self, command: str) -> bool:
        """
        Check whether a command's verb is permitted.

        A leading ``kubectl`` token is skipped before taking the verb.
        Empty or whitespace-only commands are never allowed.
        """
        parts = command.split()
        if parts and parts[0] == "kubectl":
            parts = parts[1:]
        if not parts:
            return False
        if self._verbs is None:
            return True
        return parts[0] in self._verbs

    def describe(self) -> Union[str, List[str]]:
        """Return ``"*"`` or the sorted list of permitted verbs."""
        if self._verbs is None:
            return WILDCARD
        return sorted(self._verbs)

    def __repr__(self) -> str:
        return f"AllowList({self.describe()!r})"
