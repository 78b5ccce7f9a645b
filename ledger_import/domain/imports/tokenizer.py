"""
CSV tokenizer for bulk import uploads.

Turns raw upload text into a grid of string cells. Handles quoted fields
with embedded commas and newlines and ``""`` escapes. Malformed quoting never
raises: an unterminated quote swallows the rest of the text into the open cell.
"""
import logging
from typing import Iterable, List, Sequence

logger = logging.getLogger(__name__)

BOM = "\ufeff"
DELIMITER = ","
QUOTE = '"'


def _finish_cell(chars: List[str], quoted: List[bool]) -> str:
    """Join a cell, trimming whitespace that was not inside quotes."""
    start = 0
    end = len(chars)
    while start < end and not quoted[start] and chars[start].isspace():
        start += 1
    while end > start and not quoted[end - 1] and chars[end - 1].isspace():
        end -= 1
    return "".join(chars[start:end])


def tokenize(text: str) -> List[List[str]]:
    """
    Split CSV text into rows of trimmed string cells.

    Args:
        text: Raw CSV content; a leading UTF-8 BOM is ignored

    Returns:
        List of rows (first row is the header row). Trailing rows whose cells
        are all empty are dropped.
    """
    if not text:
        return []
    if text.startswith(BOM):
        text = text[1:]

    rows: List[List[str]] = []
    row: List[str] = []
    chars: List[str] = []
    quoted: List[bool] = []
    in_quotes = False

    i = 0
    length = len(text)
    while i < length:
        ch = text[i]
        if in_quotes:
            if ch == QUOTE:
                if i + 1 < length and text[i + 1] == QUOTE:
                    chars.append(QUOTE)
                    quoted.append(True)
                    i += 2
                    continue
                in_quotes = False
            else:
                chars.append(ch)
                quoted.append(True)
        elif ch == QUOTE:
            in_quotes = True
        elif ch == DELIMITER:
            row.append(_finish_cell(chars, quoted))
            chars, quoted = [], []
        elif ch == "\n" or ch == "\r":
            row.append(_finish_cell(chars, quoted))
            rows.append(row)
            row, chars, quoted = [], [], []
            if ch == "\r" and i + 1 < length and text[i + 1] == "\n":
                i += 1
        else:
            chars.append(ch)
            quoted.append(False)
        i += 1

    if in_quotes:
        logger.debug("Unterminated quoted field at end of input; keeping remaining text in the open cell")

    if row or chars:
        row.append(_finish_cell(chars, quoted))
        rows.append(row)

    while rows and all(cell == "" for cell in rows[-1]):
        rows.pop()

    return rows


def _needs_quoting(cell: str) -> bool:
    if cell == "":
        return False
    if any(ch in cell for ch in (DELIMITER, QUOTE, "\n", "\r")):
        return True
    return cell[0].isspace() or cell[-1].isspace()


def serialize_cell(cell: str) -> str:
    if _needs_quoting(cell):
        return QUOTE + cell.replace(QUOTE, QUOTE * 2) + QUOTE
    return cell


def serialize_rows(rows: Iterable[Sequence[str]]) -> str:
    """Write a grid back to CSV text using the quoting rules ``tokenize`` understands."""
    return "\n".join(DELIMITER.join(serialize_cell(str(cell)) for cell in row) for row in rows)


def is_blank_row(cells: Sequence[str]) -> bool:
    return all(not cell.strip() for cell in cells)
