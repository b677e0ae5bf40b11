# ABOUTME: Small text helpers for turning user input into metadata fields.
# ABOUTME: Splits author lists, parses "scheme:value" identifiers, and normalizes titles for comparison.

import re
import string

_PUNCTUATION_RE = re.compile(f"[{re.escape(string.punctuation)}]+")
_WHITESPACE_RE = re.compile(r"\s+")


def blank_to_null(text: str | None) -> str | None:
    """Return the stripped text, or None if it is empty or whitespace."""
    if text is None or not text.strip():
        return None
    return text.strip()


def default_if_blank(text: str | None, default: str) -> str:
    """Return the stripped text, or the default if it is empty or whitespace."""
    return blank_to_null(text) or default


def parse_list(text: str | None, separator: str) -> list[str]:
    """Split a delimited string into a clean list.

    Example: "Author One; Author Two ;" with separator ";" yields
    ["Author One", "Author Two"].
    """
    if text is None or not text.strip():
        return []
    return [part.strip() for part in text.split(separator) if part.strip()]


def parse_key_value(text: str | None) -> dict[str, str]:
    """Parse comma-separated "key:value" pairs into an ordered dict.

    Pairs whose colon is missing, leading, or trailing are ignored. Only the
    first colon separates key from value, so "uri:http://x" keeps its scheme.
    """
    result: dict[str, str] = {}
    if text is None or not text.strip():
        return result
    for part in re.split(r"\s*,\s*", text.strip()):
        idx = part.find(":")
        if 0 < idx < len(part) - 1:
            key = part[:idx].strip()
            value = part[idx + 1 :].strip()
            if key and value:
                result[key] = value
    return result


def parse_float(text: str | None) -> float | None:
    """Parse a float that may use a decimal comma. Returns None on bad input."""
    if text is None or not text.strip():
        return None
    try:
        return float(text.strip().replace(",", "."))
    except ValueError:
        return None


def normalize_for_comparison(text: str | None) -> str:
    """Lower-case, replace punctuation with spaces, and collapse whitespace."""
    if text is None:
        return ""
    lowered = text.lower()
    lowered = _PUNCTUATION_RE.sub(" ", lowered)
    return _WHITESPACE_RE.sub(" ", lowered).strip()
