"""Helpers for naming stored objects and stamping records."""
import posixpath
import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote, urlsplit


def generate_object_key(original_name: Optional[str]) -> str:
    """
    Build a fresh storage key for an uploaded file, keeping its extension.

    ``photo.PNG`` becomes ``<uuid4>.PNG``; names without an extension (or
    dotfiles such as ``.bashrc``) get a bare uuid.
    """
    basename = posixpath.basename((original_name or "").replace("\\", "/"))
    _, ext = posixpath.splitext(basename)
    return f"{uuid.uuid4()}{ext}"


def key_from_location(location: Optional[str]) -> Optional[str]:
    """
    Recover the object key from a stored location URL.

    Only used for records that predate the ``storageKeys`` field. The key is
    the last path segment; query strings, fragments and trailing slashes are
    ignored.
    """
    if not location:
        return None
    path = urlsplit(location).path.rstrip("/")
    segment = path.rsplit("/", 1)[-1]
    return unquote(segment) or None


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 with millisecond precision, e.g. 2024-01-01T00:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
