from __future__ import annotations

import os
from pathlib import Path


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# Root directory holding one subdirectory per upload session.
# Default: project-local ./uploads. Override with env var FONT2SVG_UPLOADS_ROOT.
_root_raw = os.environ.get("FONT2SVG_UPLOADS_ROOT")
if _root_raw and _root_raw.strip():
    UPLOADS_ROOT = Path(_root_raw)
else:
    # font2svg_backend/ -> project root
    UPLOADS_ROOT = Path(__file__).resolve().parent.parent / "uploads"
UPLOADS_ROOT = UPLOADS_ROOT.resolve()
UPLOADS_ROOT.mkdir(parents=True, exist_ok=True)

# URL prefix the uploads root is served under.
UPLOADS_URL_PREFIX = "/uploads"

MAX_FONT_UPLOAD_BYTES = int(os.environ.get("FONT2SVG_MAX_FONT_UPLOAD_BYTES", str(10 * 1024 * 1024)))  # 10MB

ALLOWED_FONT_EXTS = {".ttf", ".otf"}

# When off, any uploaded file is handed to the rasterizer as-is.
VALIDATE_FONT_EXTENSION = _env_bool("FONT2SVG_VALIDATE_FONT_EXTENSION", True)

# Every session directory is removed this long after its request completed.
DELETE_AFTER_SECONDS = float(os.environ.get("FONT2SVG_DELETE_AFTER_SECONDS", "3600"))

# Recurring sweep of the uploads root for directories older than SWEEP_MAX_AGE_SECONDS.
PERIODIC_SWEEP = _env_bool("FONT2SVG_PERIODIC_SWEEP", True)
SWEEP_INTERVAL_SECONDS = float(os.environ.get("FONT2SVG_SWEEP_INTERVAL_SECONDS", "3600"))
SWEEP_MAX_AGE_SECONDS = float(os.environ.get("FONT2SVG_SWEEP_MAX_AGE_SECONDS", "3600"))

# External tools.
RASTERIZER_BIN = os.environ.get("FONT2SVG_RASTERIZER_BIN", "convert")
TRACER_BIN = os.environ.get("FONT2SVG_TRACER_BIN", "potrace")

# Fixed rasterizer canvas.
CANVAS_SIZE = "100x100"
CANVAS_BACKGROUND = "xc:white"
POINT_SIZE = 72
FILL_COLOR = "black"
TEXT_ORIGIN = "10,70"

# "token": output files are named after the sanitized glyph text.
# "uuid": output files get a fresh random name.
OUTPUT_NAMING = os.environ.get("FONT2SVG_OUTPUT_NAMING", "token").strip().lower()
UNSAFE_CHAR_SUBSTITUTE = "_"

MAX_TEXT_LENGTH = int(os.environ.get("FONT2SVG_MAX_TEXT_LENGTH", "32"))

# Glyphs rendered by the multi-glyph upload.
GLYPH_TOKENS = (
    [str(n) for n in range(0, 21)]
    + [str(n) for n in range(30, 101, 10)]
    + ["00", "6.", "6_", "9.", "9_"]
)

LOG_LEVEL = os.environ.get("FONT2SVG_LOG_LEVEL", "INFO").upper()
