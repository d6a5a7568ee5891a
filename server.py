from __future__ import annotations

import asyncio
import logging
import os
import zipfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from font2svg_backend.cleanup import DelayedCleanup, run_periodic_sweep
from font2svg_backend.config import (
    DELETE_AFTER_SECONDS,
    GLYPH_TOKENS,
    LOG_LEVEL,
    MAX_FONT_UPLOAD_BYTES,
    MAX_TEXT_LENGTH,
    PERIODIC_SWEEP,
    SWEEP_INTERVAL_SECONDS,
    SWEEP_MAX_AGE_SECONDS,
    UPLOADS_ROOT,
    UPLOADS_URL_PREFIX,
    VALIDATE_FONT_EXTENSION,
)
from font2svg_backend.converter import ConversionError, convert_token, convert_tokens
from font2svg_backend.pages import archive_success_page, result_page, single_success_page
from font2svg_backend.security import is_allowed_font, upload_basename
from font2svg_backend.workspace import (
    UploadSession,
    create_new_session,
    delete_session_dir,
    get_session_workspace,
    list_artifacts,
    remove_files_except,
    save_font,
    sweep_stale_sessions,
)
from font2svg_backend.zip_utils import package_results


logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger("font2svg")

BASE_DIR = Path(__file__).resolve().parent

RESPONSE_MODES = {"page", "redirect", "inline", "json"}

cleanup_scheduler = DelayedCleanup(DELETE_AFTER_SECONDS)


class ArtifactOut(BaseModel):
    name: str
    url: Optional[str] = None


class ConversionResult(BaseModel):
    session_id: str
    result_url: str
    artifacts: list[ArtifactOut]
    archive: Optional[ArtifactOut] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = None
    if PERIODIC_SWEEP:
        # Directories left over from a previous run have no timer anymore.
        try:
            await asyncio.to_thread(sweep_stale_sessions, UPLOADS_ROOT, SWEEP_MAX_AGE_SECONDS)
        except Exception:
            logger.exception("Startup sweep failed")
        task = asyncio.create_task(
            run_periodic_sweep(UPLOADS_ROOT, SWEEP_INTERVAL_SECONDS, SWEEP_MAX_AGE_SECONDS)
        )
    app.state.sweep_task = task
    logger.info("Serving uploads from %s", UPLOADS_ROOT)
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        cancelled = cleanup_scheduler.cancel_all()
        if cancelled:
            logger.info("Dropped %d pending deletion timer(s)", cancelled)


app = FastAPI(title="font2svg", lifespan=lifespan)


@app.middleware("http")
async def _no_cache_results(request: Request, call_next):
    response = await call_next(request)
    path = request.url.path or ""
    # Session contents change until they are deleted; never let browsers cache them.
    if path.startswith((f"{UPLOADS_URL_PREFIX}/", "/result/")):
        response.headers["Cache-Control"] = "no-store"
    return response


def _upload_url(session_id: str, name: str) -> str:
    return f"{UPLOADS_URL_PREFIX}/{session_id}/{quote(name)}"


def _result_url(session_id: str) -> str:
    return f"/result/{session_id}"


def _response_mode(respond: Optional[str]) -> str:
    mode = (respond or "page").strip().lower()
    if mode not in RESPONSE_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown response mode: {respond}")
    return mode


async def _read_font(font: Optional[UploadFile]) -> tuple[str, bytes]:
    """Validate the uploaded font before anything touches the disk."""
    if font is None or not font.filename:
        raise HTTPException(status_code=400, detail="Error retrieving the file")
    try:
        filename = upload_basename(font.filename)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid filename")

    if VALIDATE_FONT_EXTENSION and not is_allowed_font(filename):
        raise HTTPException(status_code=400, detail="Invalid file format. Only .ttf and .otf are allowed.")

    data = await font.read(MAX_FONT_UPLOAD_BYTES + 1)
    if len(data) > MAX_FONT_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Font file too large")
    return filename, data


def _discard(ws: UploadSession) -> None:
    try:
        delete_session_dir(ws.root)
    except OSError:
        logger.exception("Could not remove failed session %s", ws.session_id)


def _store_upload(filename: str, data: bytes) -> tuple[UploadSession, Path]:
    try:
        ws = create_new_session(UPLOADS_ROOT)
    except OSError:
        logger.exception("Could not create session directory")
        raise HTTPException(status_code=500, detail="Error creating a temporary directory")
    try:
        font_path = save_font(ws, filename, data)
    except (OSError, ValueError):
        logger.exception("Could not save upload for session %s", ws.session_id)
        _discard(ws)
        raise HTTPException(status_code=500, detail="Error saving the file")
    logger.info("Session %s: stored %s (%d bytes)", ws.session_id, filename, len(data))
    return ws, font_path


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/upload")
async def upload_glyphs(
    font: Optional[UploadFile] = File(None),
    respond: Optional[str] = Form(None),
) -> Response:
    """Render every configured glyph from the uploaded font and bundle them into a ZIP."""
    mode = _response_mode(respond)
    filename, data = await _read_font(font)
    ws, font_path = _store_upload(filename, data)

    try:
        artifacts = await run_in_threadpool(convert_tokens, font_path, ws.root, GLYPH_TOKENS)
    except ConversionError as e:
        _discard(ws)
        raise HTTPException(status_code=500, detail=f"Error generating SVG: {e}")

    try:
        archive = await run_in_threadpool(package_results, ws, filename, artifacts)
    except (OSError, zipfile.BadZipFile):
        logger.exception("Packaging failed for session %s", ws.session_id)
        _discard(ws)
        raise HTTPException(status_code=500, detail="Error creating ZIP file")

    cleanup_scheduler.schedule(ws.root)

    archive_url = _upload_url(ws.session_id, archive.name)
    if mode == "redirect":
        return RedirectResponse(url=_result_url(ws.session_id), status_code=303)
    if mode == "inline":
        return FileResponse(archive.path, media_type="application/zip", filename=archive.name)
    if mode == "json":
        result = ConversionResult(
            session_id=ws.session_id,
            result_url=_result_url(ws.session_id),
            artifacts=[ArtifactOut(name=a.name) for a in artifacts],
            archive=ArtifactOut(name=archive.name, url=archive_url),
        )
        return JSONResponse(result.model_dump())
    html = archive_success_page([a.name for a in artifacts], archive_url, archive.name)
    return HTMLResponse(html)


@app.post("/render")
async def render_glyph(
    font: Optional[UploadFile] = File(None),
    text: Optional[str] = Form(None),
    respond: Optional[str] = Form(None),
) -> Response:
    """Render a single user-supplied string to one SVG."""
    mode = _response_mode(respond)
    if not text or not text.strip():
        raise HTTPException(status_code=400, detail="Missing text")
    if len(text) > MAX_TEXT_LENGTH:
        raise HTTPException(status_code=400, detail=f"Text longer than {MAX_TEXT_LENGTH} characters")
    if text.lstrip().startswith("@"):
        # ImageMagick reads "@name" as "contents of file name".
        raise HTTPException(status_code=400, detail="Text may not start with @")
    filename, data = await _read_font(font)
    ws, font_path = _store_upload(filename, data)

    try:
        svg_path = await run_in_threadpool(convert_token, font_path, ws.root, text)
        await run_in_threadpool(remove_files_except, ws, [svg_path])
    except ConversionError as e:
        _discard(ws)
        raise HTTPException(status_code=500, detail=f"Error converting glyph: {e}")
    except OSError:
        logger.exception("Could not tidy session %s", ws.session_id)
        _discard(ws)
        raise HTTPException(status_code=500, detail="Error cleaning up intermediate files")

    cleanup_scheduler.schedule(ws.root)

    svg_url = _upload_url(ws.session_id, svg_path.name)
    if mode == "redirect":
        return RedirectResponse(url=_result_url(ws.session_id), status_code=303)
    if mode == "inline":
        return FileResponse(svg_path, media_type="image/svg+xml")
    if mode == "json":
        result = ConversionResult(
            session_id=ws.session_id,
            result_url=_result_url(ws.session_id),
            artifacts=[ArtifactOut(name=svg_path.name, url=svg_url)],
        )
        return JSONResponse(result.model_dump())
    return HTMLResponse(single_success_page(svg_url, svg_path.name))


@app.get("/result/{session_id}")
async def show_result(session_id: str) -> HTMLResponse:
    """List whatever the session directory currently holds."""
    try:
        ws = get_session_workspace(session_id, UPLOADS_ROOT)
        artifacts = list_artifacts(ws)
    except (ValueError, FileNotFoundError):
        raise HTTPException(status_code=404, detail="Not found")
    entries = [(a.name, _upload_url(ws.session_id, a.name)) for a in artifacts]
    return HTMLResponse(result_page(ws.session_id, entries))


@app.api_route("/upload", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
@app.api_route("/render", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE"], include_in_schema=False)
async def _post_only() -> Response:
    # Without this the "/" static mount would answer these with 404.
    raise HTTPException(status_code=405, detail="Method not allowed", headers={"Allow": "POST"})


# Define API routes above, then mount static directories; "/" must come last.
app.mount(UPLOADS_URL_PREFIX, StaticFiles(directory=str(UPLOADS_ROOT)), name="uploads")
app.mount("/", StaticFiles(directory=str(BASE_DIR / "static"), html=True), name="static")


if __name__ == "__main__":
    # Convenience: python server.py
    import uvicorn

    port = int(os.environ.get("PORT", "8080"))
    uvicorn.run("server:app", host=os.environ.get("HOST", "127.0.0.1"), port=port, reload=False)
