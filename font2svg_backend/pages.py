"""Bare HTML pages returned by the upload and result routes."""
from __future__ import annotations

from html import escape
from typing import Iterable


def _page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        "<html lang=\"en\">\n"
        "<head>\n"
        "    <meta charset=\"UTF-8\">\n"
        "    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\">\n"
        f"    <title>{escape(title)}</title>\n"
        "</head>\n"
        f"<body>\n{body}\n</body>\n"
        "</html>\n"
    )


def _link(href: str, text: str) -> str:
    return f"<a href=\"{escape(href, quote=True)}\">{escape(text)}</a>"


def archive_success_page(file_names: Iterable[str], zip_url: str, zip_name: str) -> str:
    items = "\n".join(f"        <li class=\"artifact\">{escape(n)}</li>" for n in file_names)
    body = (
        "    <h2>Upload Successful</h2>\n"
        "    <p>Your SVG files have been created and compressed.</p>\n"
        f"    <ul id=\"artifacts\">\n{items}\n    </ul>\n"
        f"    <p id=\"archive\">Download: {_link(zip_url, zip_name)}</p>"
    )
    return _page("Upload Successful", body)


def single_success_page(file_url: str, file_name: str) -> str:
    body = (
        "    <h2>File Conversion Successful!</h2>\n"
        "    <p>Your file has been successfully converted. You can download it from the link below:</p>\n"
        f"    <ul id=\"artifacts\">\n        <li class=\"artifact\">{_link(file_url, file_name)}</li>\n    </ul>"
    )
    return _page("File Conversion Success", body)


def result_page(session_id: str, entries: Iterable[tuple[str, str]]) -> str:
    """entries: (name, url) pairs."""
    rows = [f"        <li class=\"artifact\">{_link(url, name)}</li>" for name, url in entries]
    listing = "\n".join(rows) if rows else "        <li>No files.</li>"
    body = (
        f"    <h2>Results for {escape(session_id)}</h2>\n"
        f"    <ul id=\"artifacts\">\n{listing}\n    </ul>"
    )
    return _page("Conversion Results", body)
