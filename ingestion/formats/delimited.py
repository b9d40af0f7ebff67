"""
Delimited text (CSV-like) parsing with pandas.
"""

import io
from typing import Any, Iterable, List, Union

import pandas as pd

from core.exceptions import ParseError
from ingestion.formats.base import SourceFormat, ParseResult, ParseFailure
import logging

logger = logging.getLogger(__name__)

# Placeholder cell for rows with more fields than the header
LONG_ROW = "\x00long-row"


class DelimitedTextFormat(SourceFormat):
    """
    Parse a header-first delimited file into one record per data row.

    Features:
    - Byte-order mark and surrounding whitespace stripped from headers
    - Every cell kept as text (leading zeros of codes survive)
    - Day-first dates in `date_columns` converted to ISO strings, unparseable ones to None
    - Rows with a field count different from the header reported as failures,
      positioned by their line number in the payload
    """

    name = "csv"

    def __init__(
        self,
        delimiter: str = ";",
        date_columns: Iterable[str] = (),
        date_format: str = "%d/%m/%Y",
        encoding: str = "utf-8-sig"
    ):
        self.delimiter = delimiter
        self.date_columns = tuple(date_columns)
        self.date_format = date_format
        self.encoding = encoding

    def parse(self, raw: Union[bytes, str]) -> ParseResult:
        if self.is_empty(raw):
            logger.warning("Empty delimited payload")
            return ParseResult()

        text = raw.decode(self.encoding, errors="replace") if isinstance(raw, bytes) else raw.lstrip("\ufeff")
        long_rows: List[int] = []

        try:
            width = len(self._read(text, nrows=0).columns)

            def on_bad_line(fields: List[str]) -> List[str]:
                # Kept as a placeholder row so row order matches line order
                long_rows.append(len(fields))
                return [LONG_ROW] * width

            df = self._read(text, on_bad_lines=on_bad_line)
        except pd.errors.EmptyDataError:
            logger.warning("Delimited payload has no header")
            return ParseResult()
        except (pd.errors.ParserError, ValueError) as e:
            raise ParseError(
                "Unreadable delimited payload",
                context={"format": self.name, "delimiter": self.delimiter},
                original_exception=e
            )

        # Normalize column names (strip whitespace and stray BOM)
        df.columns = [str(c).strip().lstrip("\ufeff") for c in df.columns]
        line_numbers = data_line_numbers(text)

        def line_of(index: int) -> int:
            return line_numbers[index] if index < len(line_numbers) else index + 2

        result = ParseResult()
        long = df.iloc[:, 0].eq(LONG_ROW)
        for index, field_count in zip(df.index[long], long_rows):
            result.failures.append(ParseFailure(
                line_of(index), f"Expected {width} fields, got {field_count}"
            ))

        # Short rows are padded with NaN by the parser
        short = df.isna().any(axis=1) & ~long
        for index in df.index[short]:
            result.failures.append(ParseFailure(line_of(index), "Row has fewer fields than the header"))
        result.failures.sort(key=lambda failure: failure.position)
        df = df[~(long | short)].copy()

        for column in self.date_columns:
            if column in df.columns:
                parsed = pd.to_datetime(df[column], format=self.date_format, errors="coerce")
                df[column] = parsed.dt.strftime("%Y-%m-%d")

        df = df.astype(object).where(pd.notna(df), None)
        result.records = df.to_dict(orient="records")

        logger.info(
            f"Parsed {len(result.records)} delimited rows "
            f"({len(result.failures)} malformed)"
        )
        return result

    def _read(self, text: str, **options: Any) -> pd.DataFrame:
        return pd.read_csv(
            io.StringIO(text),
            sep=self.delimiter,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            **options
        )


def data_line_numbers(text: str) -> List[int]:
    """1-based line numbers of the non-blank lines after the header"""
    numbers = [number for number, line in enumerate(text.splitlines(), start=1) if line.strip()]
    return numbers[1:]
