"""Locate and load ``conversations.json`` from an export ZIP archive."""

from __future__ import annotations

import io
import json
import logging
import os
import zipfile
import zlib
from typing import IO, Any

from export_errors import CorruptArchive, InvalidJson, MissingConversationsFile

logger = logging.getLogger(__name__)

CONVERSATIONS_FILENAME = "conversations.json"
MACOS_METADATA_DIR = "__MACOSX"

ArchiveSource = str | os.PathLike | bytes | IO[bytes]


def find_conversations_member(names: list[str]) -> str | None:
    """Pick the conversations log out of an archive's member names.

    An exact root-level ``conversations.json`` wins.  Otherwise the first
    member whose name ends with ``conversations.json`` is used, skipping
    directories and macOS resource-fork metadata.

    Args:
        names: Member names in archive order.

    Returns:
        The chosen member name, or None if nothing matches.
    """
    if CONVERSATIONS_FILENAME in names:
        return CONVERSATIONS_FILENAME

    for name in names:
        if name.endswith("/") or MACOS_METADATA_DIR in name:
            continue
        if name.endswith(CONVERSATIONS_FILENAME):
            return name
    return None


def _open_zip(source: ArchiveSource) -> zipfile.ZipFile:
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    try:
        return zipfile.ZipFile(source)
    except FileNotFoundError:
        raise
    except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as exc:
        raise CorruptArchive(
            "The upload is not a readable ZIP archive. "
            "Please try re-downloading your export."
        ) from exc


def read_conversations_json(source: ArchiveSource) -> tuple[str, Any]:
    """Read and parse the conversations log inside an export archive.

    Args:
        source: Filesystem path, raw archive bytes, or a binary file object.

    Returns:
        A tuple of (member_name, parsed_json).  The member name is useful as
        a provider hint (e.g. ``claude_data_2024/conversations.json``).

    Raises:
        FileNotFoundError: If *source* is a path that does not exist.
        CorruptArchive: If the archive cannot be opened or decompressed, or
            the log is password-protected.
        MissingConversationsFile: If no conversations log is present.
        InvalidJson: If the log is not valid UTF-8 JSON, or nests too deeply
            to decode.
    """
    with _open_zip(source) as zf:
        member = find_conversations_member(zf.namelist())
        if member is None:
            raise MissingConversationsFile(
                "Could not find conversations.json in the ZIP file. "
                "Please upload a valid export."
            )

        try:
            payload = zf.read(member)
        except NotImplementedError as exc:
            raise CorruptArchive(
                "The ZIP file uses an unsupported compression method. "
                "Please try re-downloading your export."
            ) from exc
        except RuntimeError as exc:
            # zipfile raises RuntimeError for encrypted members read without a password
            raise CorruptArchive(
                "The ZIP file is password-protected. "
                "Please upload an unencrypted export."
            ) from exc
        except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as exc:
            raise CorruptArchive(
                "The ZIP file is truncated or damaged. "
                "Please try re-downloading your export."
            ) from exc

    logger.debug("Read %s (%d bytes) from archive", member, len(payload))

    try:
        return member, json.loads(payload.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError, RecursionError) as exc:
        raise InvalidJson(
            "Failed to parse conversations.json. The file may be corrupted."
        ) from exc
