"""Transport glue — sharing URL to export URL to CSV text.

Kept apart from the parsing code: nothing in :mod:`sheet_records.reader`
depends on the network beyond calling :func:`fetch_csv`.
"""

from __future__ import annotations

from urllib.parse import quote, urlsplit

import requests

from sheet_records import DEFAULT_TIMEOUT, EXPORT_URL_TEMPLATE
from sheet_records.models import SheetRecordsError

_DOCS_HOST = "docs.google.com"


class DocumentUrlError(SheetRecordsError, ValueError):
    """A sharing URL does not point at a spreadsheet document."""


class FetchError(SheetRecordsError):
    """The CSV export could not be downloaded."""

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def document_id_from_url(url: str) -> str:
    """Return the ``XXXX`` of ``https://docs.google.com/spreadsheets/d/XXXX/edit?gid=0``."""
    parts = urlsplit(url.strip())
    if parts.scheme not in ("http", "https") or parts.netloc.lower() != _DOCS_HOST:
        raise DocumentUrlError(f"Spreadsheet url is incorrect: {url!r}")
    segments = [s for s in parts.path.split("/") if s]
    if len(segments) < 3 or segments[0] != "spreadsheets" or segments[1] != "d":
        raise DocumentUrlError(f"Spreadsheet url is incorrect: {url!r}")
    return segments[2]


def export_url(document_id: str, sheet_name: str) -> str:
    """CSV export URL for one sheet of a document."""
    if not document_id:
        raise DocumentUrlError("Document id must not be empty")
    return EXPORT_URL_TEMPLATE.format(
        document_id=quote(document_id, safe=""), sheet=quote(sheet_name, safe="")
    )


def resolve_export_url(document: str, sheet_name: str) -> str:
    """Accept either a sharing URL or a bare document id."""
    if "://" in document:
        return export_url(document_id_from_url(document), sheet_name)
    return export_url(document.strip(), sheet_name)


def fetch_csv(
    document: str,
    sheet_name: str,
    *,
    session: requests.Session | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> str:
    """Download one sheet as CSV text.

    Raises
    ------
    DocumentUrlError
        If *document* is a URL that does not name a spreadsheet.
    FetchError
        On connection errors or a non-2xx response.
    """
    url = resolve_export_url(document, sheet_name)
    http = session if session is not None else requests.Session()
    try:
        response = http.get(url, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        raise FetchError(f"Failed to read spreadsheet at url: {url} ({exc})", url) from exc
    finally:
        if session is None:
            http.close()

    if not 200 <= response.status_code < 300:
        raise FetchError(
            f"Failed to read spreadsheet at url: {url} (HTTP {response.status_code})",
            url,
            status_code=response.status_code,
        )
    if not response.encoding:
        response.encoding = "utf-8"
    return response.text
