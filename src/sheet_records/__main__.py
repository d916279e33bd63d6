"""Allow ``python -m sheet_records``."""

from sheet_records.cli import app

if __name__ == "__main__":
    app()
