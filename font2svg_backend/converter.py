"""Glyph rendering through the external rasterizer and tracer.

Each token goes through two processes: ImageMagick draws the text on a fixed
white canvas and writes a bitmap, then potrace turns that bitmap into an SVG.
Both run synchronously with no timeout.
"""
from __future__ import annotations

import logging
import subprocess
import uuid
from pathlib import Path
from typing import Iterable

from .config import (
    CANVAS_BACKGROUND,
    CANVAS_SIZE,
    FILL_COLOR,
    OUTPUT_NAMING,
    POINT_SIZE,
    RASTERIZER_BIN,
    TEXT_ORIGIN,
    TRACER_BIN,
)
from .security import sanitize_token
from .workspace import Artifact


logger = logging.getLogger(__name__)

RASTERIZE = "rasterize"
TRACE = "trace"


class ConversionError(RuntimeError):
    def __init__(self, step: str, token: str, detail: str = "") -> None:
        self.step = step
        self.token = token
        self.detail = detail
        message = f"error running {step} step for {token!r}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


def output_basename(token: str, naming: str = OUTPUT_NAMING) -> str:
    if naming == "uuid":
        return uuid.uuid4().hex
    return sanitize_token(token)


def _draw_text_arg(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("'", "\\'")
    return f"text {TEXT_ORIGIN} '{escaped}'"


def rasterize_command(font_path: Path, text: str, bitmap_path: Path) -> list[str]:
    return [
        RASTERIZER_BIN,
        "-size", CANVAS_SIZE, CANVAS_BACKGROUND,
        "-font", str(font_path),
        "-pointsize", str(POINT_SIZE),
        "-fill", FILL_COLOR,
        "-draw", _draw_text_arg(text),
        str(bitmap_path),
    ]


def trace_command(bitmap_path: Path, svg_path: Path) -> list[str]:
    return [TRACER_BIN, str(bitmap_path), "-s", "-o", str(svg_path)]


def _run(step: str, token: str, args: list[str]) -> None:
    try:
        subprocess.run(args, check=True, capture_output=True)
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
        detail = f"exit status {e.returncode}"
        if stderr:
            detail = f"{detail}: {stderr}"
        logger.warning("%s failed for %r: %s", step, token, detail)
        raise ConversionError(step, token, detail) from e
    except OSError as e:
        # Missing or non-executable binary.
        logger.warning("%s could not start for %r: %s", step, token, e)
        raise ConversionError(step, token, str(e)) from e


def convert_token(font_path: Path, out_dir: Path, token: str, naming: str = OUTPUT_NAMING,
                  basename: str | None = None) -> Path:
    """Render one token to SVG and return the SVG path."""
    stem = basename or output_basename(token, naming)
    bitmap_path = out_dir / f"{stem}.bmp"
    svg_path = out_dir / f"{stem}.svg"

    _run(RASTERIZE, token, rasterize_command(font_path, token, bitmap_path))
    _run(TRACE, token, trace_command(bitmap_path, svg_path))
    if not svg_path.is_file():
        raise ConversionError(TRACE, token, "no output file produced")
    return svg_path


def convert_tokens(font_path: Path, out_dir: Path, tokens: Iterable[str],
                   naming: str = OUTPUT_NAMING) -> list[Artifact]:
    """Render every token, stopping at the first failure."""
    artifacts: list[Artifact] = []
    used: set[str] = set()
    for token in tokens:
        stem = output_basename(token, naming)
        candidate, n = stem, 2
        while candidate in used:
            candidate = f"{stem}-{n}"
            n += 1
        used.add(candidate)

        svg_path = convert_token(font_path, out_dir, token, naming=naming, basename=candidate)
        artifacts.append(Artifact(name=svg_path.name, path=svg_path))
    logger.info("Converted %d glyph(s) from %s", len(artifacts), font_path.name)
    return artifacts
