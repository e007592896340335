from typing import Dict, List, Tuple
import logging

logger = logging.getLogger(__name__)


def decode_upload(file_content: bytes) -> str:
    """
    Decode an uploaded spreadsheet export to text.

    Spreadsheet tools commonly prepend a UTF-8 byte order mark, which would
    otherwise end up glued to the first header name.

    Raises:
        UnicodeDecodeError: If the file is not valid UTF-8
    """
    return file_content.decode("utf-8-sig")


def _clean_cell(value: str) -> str:
    return value.strip().replace('"', "")


def split_csv_line(line: str) -> List[str]:
    """
    Split a single data line on commas, honouring double-quoted sections.

    A ``"`` toggles the in-quotes flag and a ``,`` only splits outside quotes.
    Doubled quotes inside a quoted value are not treated as escapes; every
    quote character is stripped from the resulting cell.
    """
    values: List[str] = []
    current: List[str] = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append(_clean_cell("".join(current)))
            current = []
        else:
            current.append(char)
    values.append(_clean_cell("".join(current)))

    return values


def parse_csv(content: str) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Parse delimited text into a header list and string-keyed rows.

    The first non-empty line is the header row. Rows with fewer values than
    headers are back-filled with empty strings; values beyond the last header
    are dropped. Blank lines are skipped. Quoted fields may contain commas but
    not line breaks.

    Args:
        content: Raw CSV text

    Returns:
        Tuple of (headers, rows)
    """
    lines = content.strip().splitlines()
    if not lines:
        logger.info("CSV content is empty; no headers or rows parsed")
        return [], []

    headers = [_clean_cell(h) for h in lines[0].split(",")]

    rows: List[Dict[str, str]] = []
    truncated_rows = 0
    for line in lines[1:]:
        if not line.strip():
            continue
        values = split_csv_line(line)
        if len(values) > len(headers):
            truncated_rows += 1
        rows.append({
            header: values[i] if i < len(values) else ""
            for i, header in enumerate(headers)
        })

    if truncated_rows:
        logger.warning(f"{truncated_rows} CSV row(s) had more values than headers; extra values were dropped")

    logger.info(f"Parsed CSV with {len(rows)} rows and {len(headers)} columns")
    return headers, rows
