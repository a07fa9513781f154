import pytest
from openpyxl import Workbook

from memocurve.infrastructure.spreadsheet import UnsupportedFormatError, read_rows, write_rows


def test_read_xlsx_first_sheet(tmp_path):
    path = tmp_path / "words.xlsx"
    wb = Workbook()
    ws = wb.active
    ws.append(["Content", "Meaning", None])
    ws.append(["apple", "fruit", "ignored"])
    ws.append([None, None, None])
    ws.append(["pear", None, None])
    wb.create_sheet("Other").append(["Content"])
    wb.save(path)

    rows = read_rows(path)
    assert rows == [
        {"Content": "apple", "Meaning": "fruit"},
        {"Content": "pear", "Meaning": None},
    ]


def test_read_csv_with_bom(tmp_path):
    path = tmp_path / "words.csv"
    path.write_text("\ufeffContent,Meaning\napple,fruit\n", encoding="utf-8")
    assert read_rows(path) == [{"Content": "apple", "Meaning": "fruit"}]


def test_write_then_read_xlsx(tmp_path):
    path = tmp_path / "nested" / "out.xlsx"
    write_rows(path, [{"A": 1, "B": "x"}], ["A", "B"], sheet_title="Review Data")
    assert read_rows(path) == [{"A": 1, "B": "x"}]


def test_unsupported_format(tmp_path):
    with pytest.raises(UnsupportedFormatError):
        read_rows(tmp_path / "words.txt")
    with pytest.raises(UnsupportedFormatError):
        write_rows(tmp_path / "words.ods", [], ["A"])


def test_garbage_xlsx_is_reported(tmp_path):
    path = tmp_path / "words.xlsx"
    path.write_bytes(b"this is not a workbook")
    with pytest.raises(UnsupportedFormatError, match="words.xlsx"):
        read_rows(path)
