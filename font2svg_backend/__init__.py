"""Backend utilities for the font2svg service.

Route handlers in server.py stay thin; this package holds:
- upload session directories and the stale-directory sweep
- rasterizer/tracer invocation
- ZIP packaging of rendered glyphs
- delayed deletion timers

Session IDs are random UUID4 strings. Anyone who knows one can read that
session's files until it is deleted.
"""
