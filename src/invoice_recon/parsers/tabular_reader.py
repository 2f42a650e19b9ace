"""
Tabular source reader for CSV and spreadsheet files.
Produces a header list and rows of plain strings for the matching engine.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from io import StringIO
from pathlib import Path
from typing import Any, Optional
import logging

import pandas as pd

from ..config import ReconConfig
from ..utils.exceptions import SourceReadError

logger = logging.getLogger(__name__)

CSV_SUFFIXES = {".csv", ".txt"}
EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}


@dataclass
class TabularData:
    """Headers and string rows read from one source file."""

    headers: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    source_name: str = ""

    def __len__(self) -> int:
        return len(self.rows)


class TabularReader:
    """
    Reader for delimited text and spreadsheet files.

    Every cell comes back as a trimmed string; missing trailing cells are
    empty strings and blank header cells are named ``Column_<n>``.
    """

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the reader with configuration.

        Args:
            config: Application configuration object
        """
        self.config = config or ReconConfig()

    def read(self, file_path: Path) -> TabularData:
        """
        Read a CSV or spreadsheet file.

        Args:
            file_path: Path to the source file

        Returns:
            Parsed table

        Raises:
            SourceReadError: If the file type is unsupported or reading fails
        """
        suffix = file_path.suffix.lower()
        logger.info(f"Reading source file: {file_path}")

        if suffix in CSV_SUFFIXES:
            table = self.read_csv(file_path)
        elif suffix in EXCEL_SUFFIXES:
            table = self.read_excel(file_path)
        else:
            raise SourceReadError(f"Unsupported file type: {file_path.name}")

        table.source_name = file_path.name
        logger.info(
            f"Read {len(table.rows)} rows with {len(table.headers)} columns from {file_path.name}"
        )
        return table

    def read_csv(self, file_path: Path) -> TabularData:
        """Read a delimited text file, detecting the delimiter from the header line."""
        try:
            text = file_path.read_text(encoding=self.config.input.encoding)
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Failed to read CSV file: {e}")
            raise SourceReadError(f"Failed to read CSV file: {e}") from e

        return self.parse_csv_text(text)

    def parse_csv_text(self, text: str) -> TabularData:
        """Parse delimited text already held in memory."""
        # Strip a UTF-8 byte order mark left by spreadsheet exports
        text = text.lstrip("\ufeff").replace("\r\n", "\n")
        records = [record for record in self._split_records(text) if record.strip()]
        if not records:
            return TabularData()

        delimiter = self.detect_delimiter(records[0])
        # Upper bound: quoted delimiters only add fields, trimmed later
        width = max(len(record.split(delimiter)) for record in records)

        try:
            df = pd.read_csv(
                StringIO(text),
                sep=delimiter,
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
            )
        except (pd.errors.ParserError, ValueError) as e:
            logger.error(f"Failed to parse CSV content: {e}")
            raise SourceReadError(f"Failed to parse CSV content: {e}") from e

        return self._to_table(df.values.tolist())

    @staticmethod
    def _split_records(text: str) -> list[str]:
        """
        Split on newlines only, keeping quoted multi-line fields in one record.

        A line with an odd number of quote characters opens or closes a
        quoted field.
        """
        records: list[str] = []
        pending: list[str] = []
        in_quotes = False
        for line in text.split("\n"):
            pending.append(line)
            if line.count('"') % 2:
                in_quotes = not in_quotes
            if not in_quotes:
                records.append("\n".join(pending))
                pending = []
        if pending:
            records.append("\n".join(pending))
        return records

    def detect_delimiter(self, header_line: str) -> str:
        """Pick the configured delimiter that splits the header into the most fields."""
        best, best_count = ",", 0
        for delimiter in self.config.input.csv_delimiters:
            count = len(header_line.split(delimiter))
            if count > best_count:
                best, best_count = delimiter, count
        return best

    def read_excel(self, file_path: Path) -> TabularData:
        """Read the first (or configured) worksheet of a spreadsheet."""
        sheet = self.config.input.sheet if self.config.input.sheet is not None else 0
        try:
            df = pd.read_excel(file_path, sheet_name=sheet, header=None, dtype=object)
        except Exception as e:
            logger.error(f"Failed to read spreadsheet: {e}")
            raise SourceReadError(f"Failed to read spreadsheet {file_path.name}: {e}") from e

        return self._to_table(df.values.tolist())

    def _to_table(self, matrix: list[list[Any]]) -> TabularData:
        """Split a cell matrix into headers and row dictionaries."""
        cells = [[self._cell_to_string(value) for value in row] for row in matrix]
        cells = [row for row in cells if any(row)]
        if not cells:
            return TabularData()

        header_row, data_rows = cells[0], cells[1:]
        headers = [value or f"Column_{i + 1}" for i, value in enumerate(header_row)]

        # Trailing generated columns that hold no data at all are padding
        while (
            headers
            and headers[-1] == f"Column_{len(headers)}"
            and all(len(row) < len(headers) or not row[len(headers) - 1] for row in data_rows)
        ):
            headers.pop()

        headers = self._dedupe_headers(headers)

        rows = []
        for row in data_rows:
            record = {
                header: row[i] if i < len(row) else "" for i, header in enumerate(headers)
            }
            rows.append(record)

        return TabularData(headers=headers, rows=rows)

    @staticmethod
    def _dedupe_headers(headers: list[str]) -> list[str]:
        """Suffix repeated header names with ``_2``, ``_3``... so no column is lost."""
        seen: dict[str, int] = {}
        unique = []
        for header in headers:
            count = seen.get(header, 0) + 1
            seen[header] = count
            unique.append(header if count == 1 else f"{header}_{count}")
        return unique

    @staticmethod
    def _cell_to_string(value: Any) -> str:
        """Render one cell as the string the engine compares."""
        if value is None:
            return ""
        if isinstance(value, float) and pd.isna(value):
            return ""
        if value is pd.NaT:
            return ""
        if isinstance(value, (datetime, date)):
            return value.strftime("%Y-%m-%d")
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value).strip()
