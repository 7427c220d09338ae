"""Spreadsheet and delimited-text extraction with pandas.

Tables are linearized into "key: value" lines so each row keeps its column
names once it has been split into chunks:

    --- Sheet: Q3 ---
    Headers: region, revenue
    Row 1: region: EMEA, revenue: 1200
    Row 2: region: APAC, revenue: 950

Delimited files have no sheets, so they get a single ``Headers:`` line
followed by one line of pairs per row.
"""

from __future__ import annotations

import asyncio
import io

import pandas as pd
import structlog

from src.models.extraction import ExtractedText, ExtractionMetadata

logger = structlog.get_logger(logger_name=__name__)


def _row_pairs(columns: list[str], values: tuple) -> list[str]:
    pairs: list[str] = []
    for column, value in zip(columns, values, strict=True):
        if pd.isna(value):
            continue
        text = str(value).strip()
        if text:
            pairs.append(f"{column}: {text}")
    return pairs


class SpreadsheetProcessor:
    """Reads every sheet of an ``.xlsx`` (openpyxl) or ``.xls`` (xlrd) workbook."""

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        sheets = await asyncio.to_thread(pd.read_excel, io.BytesIO(data), sheet_name=None)

        sections: list[str] = []
        for sheet_name, frame in sheets.items():
            columns = [str(c).strip() for c in frame.columns]
            lines = [f"--- Sheet: {sheet_name} ---", f"Headers: {', '.join(columns)}"]
            row_number = 0
            for values in frame.itertuples(index=False, name=None):
                pairs = _row_pairs(columns, values)
                if pairs:
                    row_number += 1
                    lines.append(f"Row {row_number}: {', '.join(pairs)}")
            sections.append("\n".join(lines))

        logger.info("spreadsheet_processed", sheets=len(sheets))
        return ExtractedText(
            content="\n\n".join(sections),
            metadata=ExtractionMetadata(method="spreadsheet", page_count=len(sheets)),
        )


class DelimitedTextProcessor:
    """Reads CSV and TSV uploads."""

    async def extract(self, data: bytes, media_type: str) -> ExtractedText:
        separator = "\t" if media_type == "text/tab-separated-values" else ","
        frame = await asyncio.to_thread(
            pd.read_csv,
            io.BytesIO(data),
            sep=separator,
            dtype=str,
            keep_default_na=False,
            encoding_errors="replace",
        )

        columns = [str(c).strip() for c in frame.columns]
        lines = [f"Headers: {', '.join(columns)}"]
        for values in frame.itertuples(index=False, name=None):
            pairs = _row_pairs(columns, values)
            if pairs:
                lines.append(", ".join(pairs))

        logger.info("delimited_text_processed", rows=len(frame), columns=len(columns))
        return ExtractedText(
            content="\n".join(lines),
            metadata=ExtractionMetadata(method="delimited-text"),
        )
