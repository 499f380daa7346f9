from __future__ import annotations

import io
import json
from typing import Any

import pandas as pd
from pypdf import PdfReader
from pypdf.errors import PyPdfError

PDF = "pdf"
EXCEL = "excel"


def detect_file_kind(filename: str | None, content_type: str | None) -> str | None:
    name = (filename or "").lower()
    mimetype = (content_type or "").lower()
    if name.endswith(".pdf") or "pdf" in mimetype:
        return PDF
    if name.endswith((".xlsx", ".xls")) or "excel" in mimetype or "spreadsheetml" in mimetype:
        return EXCEL
    return None


def extract_pdf_text(content: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise ValueError(f"Failed to parse PDF: {exc}") from exc
    return "\n".join(pages)


def read_excel_sheets(content: bytes, filename: str | None = None) -> list[dict[str, Any]]:
    """Read every sheet of a workbook into ``{"sheet_name", "rows"}`` dicts.

    Empty cells come back as ``None``.
    """
    engine = "xlrd" if (filename or "").lower().endswith(".xls") else "openpyxl"
    frames = pd.read_excel(io.BytesIO(content), sheet_name=None, engine=engine)
    sheets = []
    for sheet_name, df in frames.items():
        df = df.astype(object).where(pd.notna(df), None)
        sheets.append({"sheet_name": str(sheet_name), "rows": df.to_dict(orient="records")})
    return sheets


def _row_json(row: dict[str, Any]) -> str:
    compact = {str(key): value for key, value in row.items() if value is not None}
    return json.dumps(compact, separators=(",", ":"), ensure_ascii=False, default=str)


def describe_excel_sheets(sheets: list[dict[str, Any]], sample_rows: int = 5) -> str:
    blocks = []
    for sheet in sheets:
        rows = sheet["rows"]
        headers = [str(key) for key in rows[0].keys()] if rows else []
        sample = "\n".join(
            f"Row {index}: {_row_json(row)}" for index, row in enumerate(rows[:sample_rows], start=1)
        )
        blocks.append(
            f'Sheet: "{sheet["sheet_name"]}" ({len(rows)} rows)\n'
            f"Headers: {', '.join(headers)}\n"
            "Sample data:\n" + sample
        )
    return f"Excel file with {len(sheets)} sheet(s):\n" + "\n\n".join(blocks)
