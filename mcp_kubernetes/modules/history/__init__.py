"""
History Module - Black Box Interface

Purpose: Remember recently executed commands and their outcome
Interface: record(), list()
Hidden: Ring buffer, locking, eviction

Can be replaced with persistent stores (SQLite, Redis lists).
"""

from .history import DEFAULT_CAPACITY, DEFAULT_LIMIT, CommandHistory, CommandRecord, parse_limit

__all__ = ["CommandHistory", "CommandRecord", "parse_limit", "DEFAULT_CAPACITY", "DEFAULT_LIMIT"]
