"""
Lenient value coercion for spreadsheet cells.

Every helper here returns a documented fallback instead of raising, so a
malformed cell never aborts the row it belongs to.
"""
import logging
import re
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

_NUMERIC_NOISE = re.compile(r"[^0-9.\-]")
_LEADING_FLOAT = re.compile(r"-?(?:\d+(?:\.\d*)?|\.\d+)")
_LEADING_INT = re.compile(r"-?\d+")
_COMBINED_SIG_STR = re.compile(r"(\d+)\s*of\s*(\d+)\s*-?\s*(\d+)%?", re.IGNORECASE)
_LEADING_PERCENT = re.compile(r"(\d+)%?")

TRUTHY_VALUES = frozenset({"true", "yes", "1", "y"})
NULL_MARKER = "NULL"


def is_blank(value: Optional[str]) -> bool:
    """True for None, empty/whitespace-only strings and the literal ``NULL`` marker."""
    return value is None or not value.strip() or value.strip() == NULL_MARKER


def parse_number(value: Optional[str], default: float = 0.0) -> float:
    """
    Parse a float from a cell such as ``"52.3%"`` or ``"$1,200"``.

    Everything except digits, ``.`` and ``-`` is stripped first; the longest
    numeric prefix of what remains is parsed.
    """
    if not value:
        return default
    match = _LEADING_FLOAT.match(_NUMERIC_NOISE.sub("", value))
    if not match:
        return default
    return float(match.group(0))


def parse_int(value: Optional[str], default: int = 0) -> int:
    """Parse an integer with the same cleaning as ``parse_number``; decimals are truncated."""
    if not value:
        return default
    cleaned = _NUMERIC_NOISE.sub("", value)
    if not _LEADING_INT.match(cleaned):
        return default
    return int(parse_number(cleaned, default))


def parse_optional_int(value: Optional[str]) -> Optional[int]:
    """
    Parse an integer, returning None when the cell is empty, ``NULL`` or unparseable.

    Used where "not recorded" must stay distinguishable from a recorded 0.
    """
    if is_blank(value):
        return None
    match = _LEADING_INT.match(_NUMERIC_NOISE.sub("", value))
    if not match:
        return None
    return int(match.group(0))


def parse_boolean(value: Optional[str]) -> bool:
    if not value:
        return False
    return value.strip().lower() in TRUTHY_VALUES


def parse_time(value: Optional[str]) -> str:
    """
    Normalize a finish time to ``M:SS``.

    Values that already contain ``:`` pass through unchanged; anything else is
    read as a raw second count.
    """
    if not value or not value.strip():
        return "0:00"
    if ":" in value:
        return value.strip()
    seconds = parse_int(value, 0)
    minutes, secs = divmod(seconds, 60)
    return f"{minutes}:{secs:02d}"


def parse_control_time(value: Optional[str]) -> int:
    """Convert ``M:SS`` or a raw second count to total seconds."""
    if not value:
        return 0
    if ":" in value:
        minutes, _, seconds = value.partition(":")
        return parse_int(minutes, 0) * 60 + parse_int(seconds, 0)
    return parse_int(value, 0)


class CombinedStrikes(NamedTuple):
    landed: int
    attempted: int
    pct: int


def parse_combined_sig_str(value: Optional[str]) -> Optional[CombinedStrikes]:
    """Decompose ``"<landed> of <attempted> - <pct>%"`` into its three parts."""
    if is_blank(value):
        return None
    match = _COMBINED_SIG_STR.search(value)
    if not match:
        logger.debug(f"Combined strike value '{value}' does not match '<landed> of <attempted> - <pct>%'")
        return None
    landed, attempted, pct = (int(g) for g in match.groups())
    return CombinedStrikes(landed, attempted, pct)


def parse_percent(value: Optional[str]) -> Optional[int]:
    """Read the first integer in a cell as a percentage (``"45%"`` -> 45)."""
    if is_blank(value):
        return None
    match = _LEADING_PERCENT.search(value)
    return int(match.group(1)) if match else None
