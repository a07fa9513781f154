"""
Spreadsheet I/O for bulk import and export.

CSV goes through the csv module; XLSX through openpyxl (first worksheet,
header row first).
"""

import csv
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

CSV_SUFFIXES = {".csv"}
XLSX_SUFFIXES = {".xlsx", ".xlsm"}


class UnsupportedFormatError(ValueError):
    pass


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in CSV_SUFFIXES | XLSX_SUFFIXES:
        raise UnsupportedFormatError(
            f"Unsupported spreadsheet format '{suffix or path.name}'. Use .csv or .xlsx."
        )
    return suffix


def read_rows(path: Path) -> list[dict[str, Any]]:
    """Read a sheet into one dict per data row, keyed by the header row."""
    path = Path(path)
    if _check_suffix(path) in CSV_SUFFIXES:
        with path.open(newline="", encoding="utf-8-sig") as f:
            return list(csv.DictReader(f))

    try:
        wb = load_workbook(path, read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError) as e:
        raise UnsupportedFormatError(f"{path.name} is not a readable .xlsx workbook: {e}") from e
    try:
        rows = wb.worksheets[0].iter_rows(values_only=True)
        header = next(rows, None)
        if header is None:
            return []
        keys = [str(h).strip() if h is not None else None for h in header]
        result = []
        for values in rows:
            if values is None or all(v is None for v in values):
                continue
            result.append({k: v for k, v in zip(keys, values) if k})
        logger.debug(f"[sheet] read {len(result)} rows from {path}")
        return result
    finally:
        wb.close()


def write_rows(
    path: Path,
    rows: Sequence[dict[str, Any]],
    columns: Sequence[str],
    sheet_title: str = "Sheet1",
) -> Path:
    path = Path(path)
    suffix = _check_suffix(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix in CSV_SUFFIXES:
        with path.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=list(columns))
            writer.writeheader()
            writer.writerows(rows)
        return path

    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    ws.append(list(columns))
    for row in rows:
        ws.append([row.get(c) for c in columns])
    wb.save(path)
    logger.debug(f"[sheet] wrote {len(rows)} rows to {path}")
    return path
