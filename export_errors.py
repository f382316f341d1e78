"""Exceptions raised while reading and normalising an AI-assistant export.

Every failure the parsing pipeline reports derives from ``ParseError`` so
callers can catch the whole family at once, while ``AmbiguousProvider`` stays
distinguishable from genuine corruption.
"""

from __future__ import annotations


class ParseError(Exception):
    """Base class for export parsing failures.  ``str(exc)`` is user-facing."""


class MissingConversationsFile(ParseError):
    """The archive does not contain a ``conversations.json`` file."""


class CorruptArchive(ParseError):
    """The archive cannot be opened or decompressed."""


class InvalidJson(ParseError):
    """The located conversations file is not valid JSON."""


class InvalidSessionStructure(ParseError):
    """The JSON parsed, but does not match the shape either schema requires."""


class AmbiguousProvider(ParseError):
    """The export schema could not be determined and no override was given."""
