"""sheet-records — Turn published spreadsheet sheets into typed records."""

__version__ = "0.1.0"

EXPORT_URL_TEMPLATE = (
    "https://docs.google.com/spreadsheets/d/{document_id}/gviz/tq?tqx=out:csv&sheet={sheet}"
)
DEFAULT_TIMEOUT: float = 30.0
