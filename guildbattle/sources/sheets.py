"""
Grid sources: published Google Sheets and local spreadsheet files.

Both return a grid (list of rows of cell values) ready for segmentation.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Optional

import openpyxl
import requests

logger = logging.getLogger(__name__)

EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/gviz/tq"
DEFAULT_TIMEOUT = 20


class SheetFetchError(Exception):
    """The spreadsheet could not be fetched."""


def split_range(cell_range: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """Split "Sheet1!A1:Z100" into ("Sheet1", "A1:Z100").

    >>> split_range("Guild Battle!A1:AD60")
    ('Guild Battle', 'A1:AD60')
    >>> split_range("A1:Z100")
    (None, 'A1:Z100')
    """
    if not cell_range:
        return None, None
    if "!" in cell_range:
        sheet, cells = cell_range.rsplit("!", 1)
        return sheet.strip("'") or None, cells or None
    return None, cell_range


def parse_csv_grid(text: str) -> list[list[str]]:
    return [row for row in csv.reader(io.StringIO(text))]


class SheetsClient:
    """Fetches a spreadsheet range through the Google Sheets CSV export.

    The sheet must be shared as "anyone with the link can view".
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT):
        self.session = session or requests.Session()
        self.timeout = timeout

    def fetch_grid(self, spreadsheet_id: str, cell_range: Optional[str] = None) -> list[list[str]]:
        """
        Fetch a range as a grid of strings.

        Raises:
            SheetFetchError: On network failure or a non-success response
        """
        if not spreadsheet_id:
            raise SheetFetchError("Spreadsheet ID is required")

        sheet, cells = split_range(cell_range)
        params = {"tqx": "out:csv"}
        if sheet:
            params["sheet"] = sheet
        if cells:
            params["range"] = cells

        url = EXPORT_URL.format(spreadsheet_id=spreadsheet_id)
        logger.info("Fetching spreadsheet %s range %s", spreadsheet_id, cell_range or "<all>")
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise SheetFetchError(
                f"Spreadsheet request failed with HTTP {status}; "
                "check the spreadsheet ID and that the sheet is shared"
            ) from e
        except requests.exceptions.RequestException as e:
            raise SheetFetchError(f"Could not reach Google Sheets: {e}") from e

        grid = parse_csv_grid(resp.text)
        logger.info("Fetched %d rows", len(grid))
        return grid


def load_grid_file(path: str | Path, sheet: Optional[str] = None) -> list[list]:
    """Read a .csv or .xlsx file into a grid.

    Raises:
        ValueError: For unsupported file types
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".csv":
        return parse_csv_grid(path.read_text(encoding="utf-8-sig"))

    if suffix in (".xlsx", ".xlsm"):
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
        try:
            ws = wb[sheet] if sheet else wb.active
            grid = [
                ["" if value is None else value for value in row]
                for row in ws.iter_rows(values_only=True)
            ]
        finally:
            wb.close()
        logger.info("Loaded %d rows from %s", len(grid), path.name)
        return grid

    raise ValueError(f"Unsupported grid file type: {path.suffix or path.name}")
