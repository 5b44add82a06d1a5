"""Delimited-text ingestion.

Turns the raw bytes of the facility table into an ordered list of
``header -> value`` mappings. Decoding is always explicit: the source files
are UTF-16 and silently assuming UTF-8 yields garbage headers.
"""

from __future__ import annotations

import csv
import io
import logging

from caremap._constants import DEFAULT_ENCODING
from caremap._transport import Fetcher
from caremap.exceptions import FetchError, ParseError

_logger = logging.getLogger(__name__)

_BOM = "\ufeff"


def sniff_delimiter(header_line: str) -> str:
    """Pick tab or comma from the header line (tab wins when present)."""
    return "\t" if "\t" in header_line else ","


def decode(raw: bytes, encoding: str, *, source: str = "") -> str:
    try:
        text = raw.decode(encoding)
    except (UnicodeDecodeError, LookupError) as exc:
        raise ParseError(f"Cannot decode {source or 'input'} as {encoding}: {exc}", source=source) from exc
    return text.lstrip(_BOM)


def parse_table(
    raw: bytes,
    *,
    encoding: str = DEFAULT_ENCODING,
    delimiter: str | None = "\t",
    source: str = "",
) -> list[dict[str, str]]:
    """Decode *raw* and split it into row mappings keyed by the header row.

    - Header names and values are trimmed.
    - Missing trailing values become ``""``; surplus values are ignored.
    - Blank lines and rows whose every value is empty are dropped.

    Tab-separated input is split positionally with no quote handling;
    comma-separated input honours double-quoted fields.

    Raises
    ------
    ParseError
        If the bytes cannot be decoded or the text is not well-formed.
    """
    text = decode(raw, encoding, source=source)
    if not text.strip():
        return []

    if delimiter is None:
        delimiter = sniff_delimiter(text.split("\n", 1)[0])

    quoting = csv.QUOTE_NONE if delimiter == "\t" else csv.QUOTE_MINIMAL
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, quoting=quoting)

    try:
        header_cells = next(reader, [])
        headers = [cell.strip() for cell in header_cells]
        rows: list[dict[str, str]] = []
        for values in reader:
            row: dict[str, str] = {}
            for position, header in enumerate(headers):
                if not header:
                    continue
                row[header] = values[position].strip() if position < len(values) else ""
            if not any(row.values()):
                continue
            rows.append(row)
    except csv.Error as exc:
        raise ParseError(f"Malformed delimited text in {source or 'input'}: {exc}", source=source) from exc

    _logger.debug("Parsed %d rows with %d columns from %s", len(rows), len(headers), source or "input")
    return rows


class TabularIngestor:
    """Fetch + parse a delimited table, degrading to no rows on failure."""

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        encoding: str = DEFAULT_ENCODING,
        delimiter: str | None = "\t",
    ) -> None:
        self._fetcher = fetcher
        self._encoding = encoding
        self._delimiter = delimiter

    def parse(self, raw: bytes, *, source: str = "") -> list[dict[str, str]]:
        return parse_table(raw, encoding=self._encoding, delimiter=self._delimiter, source=source)

    async def load(self, source: str) -> list[dict[str, str]]:
        """Fetch and parse *source*.

        Fetch and parse failures are logged and yield an empty list so the
        view keeps working with no facilities.
        """
        try:
            raw = await self._fetcher.fetch(source)
            return self.parse(raw, source=source)
        except FetchError:
            _logger.error("Error fetching facility table %s", source, exc_info=True)
        except ParseError:
            _logger.error("Error parsing facility table %s", source, exc_info=True)
        return []
