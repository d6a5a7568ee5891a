from __future__ import annotations

import re
import uuid
from pathlib import Path

from .config import ALLOWED_FONT_EXTS, UNSAFE_CHAR_SUBSTITUTE


_SESSION_ID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$")

_UNSAFE_TOKEN_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")


def normalize_session_id(session_id: str) -> str:
    """Validate and normalize a session id.

    Session ids double as directory names under the uploads root and as the
    key of the result page, so only canonical UUID strings are accepted.
    """
    if not isinstance(session_id, str):
        raise ValueError("Invalid session id")
    session_id = session_id.strip()
    if not _SESSION_ID_RE.match(session_id):
        raise ValueError("Invalid session id")
    return str(uuid.UUID(session_id))


def is_safe_basename(name: str) -> bool:
    """Allow only simple filenames (no directories)."""
    if not isinstance(name, str) or not name:
        return False
    if name in (".", ".."):
        return False
    if name != Path(name).name:
        return False
    if "/" in name or "\\" in name:
        return False
    return True


def safe_join(base_dir: Path, *parts: str) -> Path:
    """Join paths and ensure the result stays within base_dir."""
    base_dir = base_dir.resolve()
    candidate = base_dir
    for part in parts:
        candidate = candidate / part
    resolved = candidate.resolve()
    if resolved == base_dir:
        return resolved
    if base_dir not in resolved.parents:
        raise ValueError("Path traversal attempt")
    return resolved


def upload_basename(filename: str | None) -> str:
    """Reduce a client-supplied filename to a bare basename.

    Browsers on Windows may send full paths; keep only the last component.
    """
    raw = (filename or "").replace("\\", "/").strip()
    name = raw.rsplit("/", 1)[-1].strip()
    if _CONTROL_CHARS_RE.search(name) or not is_safe_basename(name):
        raise ValueError("Invalid filename")
    return name


def font_extension(filename: str) -> str:
    """Text from the last dot on, so ".ttf" alone counts as a .ttf file."""
    _, dot, ext = filename.rpartition(".")
    return f".{ext.lower()}" if dot else ""


def is_allowed_font(filename: str) -> bool:
    return font_extension(filename) in ALLOWED_FONT_EXTS


def sanitize_token(text: str) -> str:
    """Turn glyph text into something usable as a file name stem."""
    cleaned = _UNSAFE_TOKEN_CHARS_RE.sub(UNSAFE_CHAR_SUBSTITUTE, text or "")
    if cleaned in ("", ".", ".."):
        return cleaned.replace(".", UNSAFE_CHAR_SUBSTITUTE) or UNSAFE_CHAR_SUBSTITUTE
    return cleaned
