"""
Allow-List Module - Black Box Interface

Purpose: Decide which kubectl verbs may run
Interface: AllowList.from_string(), AllowList.from_yaml(), is_allowed(), describe()
Hidden: Verb extraction, wildcard handling, file format

Can be replaced with richer policy engines (flag filters, resource restrictions).
"""

from .allowlist import WILDCARD, AllowList

__all__ = ["AllowList", "WILDCARD"]
