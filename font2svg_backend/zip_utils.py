from __future__ import annotations

import logging
import zipfile
from typing import Iterable

from .workspace import Artifact, UploadSession, remove_files_except


logger = logging.getLogger(__name__)


def archive_name_for(original_filename: str) -> str:
    """foo.ttf -> foo.zip"""
    head, dot, _ = original_filename.rpartition(".")
    stem = (head if dot else original_filename) or "glyphs"
    return f"{stem}.zip"


def build_archive(ws: UploadSession, original_filename: str, artifacts: Iterable[Artifact]) -> Artifact:
    """Write a ZIP of the artifacts into the session directory.

    The archive is assembled under a temporary name and only renamed into
    place once every member has been written.
    """
    name = archive_name_for(original_filename)
    dest = ws.root / name
    partial = ws.root / f".{name}.part"
    try:
        with zipfile.ZipFile(partial, mode="w", compression=zipfile.ZIP_DEFLATED) as zf:
            for artifact in artifacts:
                zf.write(artifact.path, arcname=artifact.name)
        partial.replace(dest)
    except Exception:
        partial.unlink(missing_ok=True)
        raise
    return Artifact(name=name, path=dest)


def package_results(ws: UploadSession, original_filename: str, artifacts: list[Artifact]) -> Artifact:
    """Bundle artifacts into one archive and leave only the archive on disk."""
    archive = build_archive(ws, original_filename, artifacts)
    removed = remove_files_except(ws, [archive.path])
    logger.info("Packaged %d file(s) into %s (%d removed)", len(artifacts), archive.name, removed)
    return archive
