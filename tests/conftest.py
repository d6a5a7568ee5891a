"""Shared pytest fixtures for the font2svg test suite.

The uploads root is pointed at a throwaway directory before any project
module is imported, since config reads it once at import time.

Fixtures:
    uploads_root: the (emptied) uploads root used by the app
    fake_tools: replaces the rasterizer/tracer processes with file writers
    client: FastAPI TestClient for server.app
    font_bytes: stand-in payload for an uploaded font
    session_dirs: lists the session directories currently on disk
"""

import os
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest

_UPLOADS_ROOT = Path(tempfile.mkdtemp(prefix="font2svg-tests-"))
os.environ["FONT2SVG_UPLOADS_ROOT"] = str(_UPLOADS_ROOT)
os.environ.setdefault("FONT2SVG_PERIODIC_SWEEP", "false")

# Project root holds server.py and the backend package.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


class FakeTools:
    """Stand-in for subprocess.run that mimics convert and potrace.

    fail_on: (step, token) pairs that should exit non-zero, where step is
    "rasterize" or "trace" and token is the drawn text (None matches any).
    """

    def __init__(self):
        self.calls = []
        self.fail_on = set()

    def _fails(self, step, token):
        return (step, token) in self.fail_on or (step, None) in self.fail_on

    def __call__(self, args, check=False, capture_output=False, **kwargs):
        from font2svg_backend import config

        self.calls.append(list(args))
        if args[0] == config.RASTERIZER_BIN:
            token = args[args.index("-draw") + 1].split(" ", 2)[2][1:-1]
            if self._fails("rasterize", token):
                raise subprocess.CalledProcessError(1, args, output=b"", stderr=b"convert: unable to read font")
            Path(args[-1]).write_bytes(b"BM" + token.encode("utf-8"))
        elif args[0] == config.TRACER_BIN:
            bitmap = Path(args[1])
            token = bitmap.read_bytes()[2:].decode("utf-8")
            if self._fails("trace", token):
                raise subprocess.CalledProcessError(2, args, output=b"", stderr=b"potrace: bad bitmap")
            svg = Path(args[args.index("-o") + 1])
            svg.write_text(f"<svg xmlns=\"http://www.w3.org/2000/svg\"><!-- {token} --></svg>", encoding="utf-8")
        else:
            raise FileNotFoundError(args[0])
        return subprocess.CompletedProcess(args, 0, b"", b"")

    def steps(self):
        from font2svg_backend import config

        return ["rasterize" if c[0] == config.RASTERIZER_BIN else "trace" for c in self.calls]


@pytest.fixture
def uploads_root():
    for child in _UPLOADS_ROOT.iterdir():
        if child.is_dir():
            shutil.rmtree(child)
        else:
            child.unlink()
    yield _UPLOADS_ROOT


@pytest.fixture
def fake_tools(monkeypatch):
    from font2svg_backend import converter

    tools = FakeTools()
    monkeypatch.setattr(converter.subprocess, "run", tools)
    return tools


@pytest.fixture
def client(uploads_root, fake_tools):
    from fastapi.testclient import TestClient

    import server

    yield TestClient(server.app)
    server.cleanup_scheduler.cancel_all()


@pytest.fixture
def font_bytes():
    return b"\x00\x01\x00\x00" + b"\x00" * 64


@pytest.fixture
def session_dirs(uploads_root):
    def _list():
        return sorted(p for p in uploads_root.iterdir() if p.is_dir())
    return _list
