"""Text normalization, content hashing and deterministic point ids.

Normalization always runs before hashing, so two extractions that differ
only in whitespace produce the same fingerprint.
"""

from __future__ import annotations

import hashlib
import re
import uuid

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Collapse whitespace runs (including NBSP and NUL) to single spaces and trim."""
    if not text:
        return ""
    text = text.replace("\u00a0", " ").replace("\u0000", " ")
    return _WHITESPACE_RE.sub(" ", text).strip()


def content_hash(text: str) -> str:
    """SHA-256 hex digest of the normalized text."""
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


def deterministic_id(*parts: object) -> str:
    """Name-based UUID (version 3) over ``"|".join(parts)``.

    Same bytes in, same id out, across processes and hosts. Equivalent to a
    version-3 UUID built from the raw MD5 of the name without a namespace.
    """
    name = "|".join(str(part) for part in parts)
    digest = hashlib.md5(name.encode("utf-8")).digest()
    return str(uuid.UUID(bytes=digest, version=3))


def chunk_id(source: str, url: str, index: int) -> str:
    return deterministic_id(source, url, "chunk", index)
