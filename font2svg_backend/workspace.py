from __future__ import annotations

import logging
import shutil
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .config import SWEEP_MAX_AGE_SECONDS, UPLOADS_ROOT
from .security import normalize_session_id, safe_join, upload_basename


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadSession:
    session_id: str
    root: Path


@dataclass(frozen=True)
class Artifact:
    name: str
    path: Path


def _uploads_root(root: Path | None) -> Path:
    return (root if root is not None else UPLOADS_ROOT).resolve()


def get_session_workspace(session_id: str, root: Path | None = None) -> UploadSession:
    sid = normalize_session_id(session_id)
    return UploadSession(session_id=sid, root=(_uploads_root(root) / sid).resolve())


def create_new_session(root: Path | None = None) -> UploadSession:
    base = _uploads_root(root)
    base.mkdir(parents=True, exist_ok=True)
    ws = get_session_workspace(str(uuid.uuid4()), root=base)
    ws.root.mkdir()
    logger.debug("Created session %s", ws.session_id)
    return ws


def save_font(ws: UploadSession, filename: str, data: bytes) -> Path:
    """Persist the uploaded payload inside the session directory."""
    dest = safe_join(ws.root, upload_basename(filename))
    dest.write_bytes(data)
    return dest


def list_artifacts(ws: UploadSession) -> list[Artifact]:
    """Return the regular files currently in the session directory."""
    if not ws.root.is_dir():
        raise FileNotFoundError("Session not found")
    return [
        Artifact(name=child.name, path=child)
        for child in sorted(ws.root.iterdir(), key=lambda p: p.name)
        if child.is_file()
    ]


def remove_files_except(ws: UploadSession, keep: Iterable[Path]) -> int:
    """Delete every file in the session directory not listed in keep."""
    keep_resolved = {Path(p).resolve() for p in keep}
    removed = 0
    for child in ws.root.iterdir():
        if not child.is_file() or child.resolve() in keep_resolved:
            continue
        child.unlink()
        removed += 1
    return removed


def delete_session_dir(path: Path) -> bool:
    if not path.exists():
        return False
    shutil.rmtree(path)
    logger.info("Deleted session directory %s", path.name)
    return True


def _is_session_dir(path: Path) -> bool:
    if not path.is_dir():
        return False
    try:
        normalize_session_id(path.name)
    except ValueError:
        return False
    return True


def sweep_stale_sessions(
    root: Path | None = None,
    max_age_seconds: float = SWEEP_MAX_AGE_SECONDS,
    now: float | None = None,
) -> int:
    """Delete session directories whose last modification is older than max_age_seconds.

    Only directories named like a session id are considered. Failures are
    logged and skipped; the sweep never raises for a single bad entry.
    Returns the number of deleted directories.
    """
    base = _uploads_root(root)
    if not base.exists():
        return 0
    now = time.time() if now is None else now

    try:
        children = list(base.iterdir())
    except OSError:
        logger.exception("Could not read uploads root %s", base)
        return 0

    deleted = 0
    for child in children:
        if not _is_session_dir(child):
            continue
        try:
            age = now - child.stat().st_mtime
            if age > max_age_seconds and delete_session_dir(child):
                deleted += 1
        except OSError:
            logger.exception("Could not sweep session directory %s", child.name)
    if deleted:
        logger.info("Sweep removed %d stale session(s)", deleted)
    return deleted
