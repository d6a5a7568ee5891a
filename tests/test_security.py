"""Tests for session id, filename and glyph token handling."""

import uuid

import pytest

from font2svg_backend.security import (
    is_allowed_font,
    is_safe_basename,
    normalize_session_id,
    safe_join,
    sanitize_token,
    upload_basename,
)


class TestNormalizeSessionId:

    def test_accepts_uuid4(self):
        sid = str(uuid.uuid4())
        assert normalize_session_id(sid) == sid

    def test_lowercases_and_strips(self):
        sid = str(uuid.uuid4())
        assert normalize_session_id(f"  {sid.upper()} ") == sid

    @pytest.mark.parametrize("bad", ["", "abc", "../etc", "12345678-1234-1234-1234-1234567890123"])
    def test_rejects_non_uuid(self, bad):
        with pytest.raises(ValueError):
            normalize_session_id(bad)


def test_safe_join_rejects_traversal(tmp_path):
    with pytest.raises(ValueError):
        safe_join(tmp_path, "..", "outside.txt")
    assert safe_join(tmp_path, "inside.txt") == (tmp_path / "inside.txt").resolve()


def test_is_safe_basename():
    assert is_safe_basename("font.ttf")
    assert not is_safe_basename("dir/font.ttf")
    assert not is_safe_basename("..")
    assert not is_safe_basename("")


class TestUploadBasename:

    def test_keeps_plain_names(self):
        assert upload_basename("Roboto-Regular.ttf") == "Roboto-Regular.ttf"

    def test_strips_client_paths(self):
        assert upload_basename("C:\\Users\\me\\fonts\\A.otf") == "A.otf"
        assert upload_basename("../../etc/passwd.ttf") == "passwd.ttf"

    @pytest.mark.parametrize("bad", [None, "", "   ", "fonts/", "..", "De\x00mo.ttf", "a\nb.ttf", "tab\there.otf"])
    def test_rejects_unusable_names(self, bad):
        with pytest.raises(ValueError):
            upload_basename(bad)


@pytest.mark.parametrize("name,allowed", [
    ("a.ttf", True),
    ("a.otf", True),
    (".ttf", True),
    ("font.ttf.png", False),
    ("A.TTF", True),
    ("a.png", False),
    ("a.woff", False),
    ("ttf", False),
])
def test_is_allowed_font(name, allowed):
    assert is_allowed_font(name) is allowed


@pytest.mark.parametrize("text,expected", [
    ("12", "12"),
    ("6.", "6."),
    ("6_", "6_"),
    ("a/b", "a_b"),
    ("a b?c", "a_b_c"),
    ("..", "__"),
    ("", "_"),
    ("é", "_"),
])
def test_sanitize_token(text, expected):
    assert sanitize_token(text) == expected
