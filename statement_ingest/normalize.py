"""
Label Normalizer - canonical forms of free-text transaction descriptions.

Three strengths are used and they are not interchangeable:

- ``normalize_label``: fingerprint/dedupe strength. Keeps digits, so two
  distinct invoices never collapse into one fingerprint.
- ``normalize_id_label``: the light form hashed into transaction ids.
- ``normalize_recurring_label``: recurrence grouping strength. Drops dates and
  standalone numbers so monthly invoices with changing references group.
"""
import re
import unicodedata

_WHITESPACE = re.compile(r'\s+')
_SLASH_DATE_FULL = re.compile(r'\d{2}/\d{2}/\d{4}')
_SLASH_DATE_SHORT = re.compile(r'\d{2}/\d{2}')
_STANDALONE_NUMBER = re.compile(r'\b\d+\b')
_NON_ALPHA = re.compile(r'[^a-z\s]')


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _is_kept(ch: str) -> bool:
    if ch in "-_" or ch.isspace():
        return True
    return unicodedata.category(ch)[0] in ("L", "N")


def normalize_label(label: str) -> str:
    """Diacritics off, keep letters/digits/space/-/_, collapse, trim, lowercase."""
    if not label:
        return ""
    text = strip_diacritics(label)
    text = "".join(ch for ch in text if _is_kept(ch))
    return _WHITESPACE.sub(" ", text).strip().lower()


def normalize_id_label(label: str, max_length: int = 50) -> str:
    """Lowercased, whitespace-collapsed, cut to ``max_length`` UTF-16 code units."""
    text = _WHITESPACE.sub(" ", (label or "").strip().lower())
    units = text.encode("utf-16-le", "surrogatepass")[:2 * max_length]
    return units.decode("utf-16-le", "surrogatepass")


def normalize_recurring_label(label: str) -> str:
    """Grouping key for recurrence detection: letters only, no dates or numbers."""
    text = strip_diacritics((label or "").lower())
    text = _SLASH_DATE_FULL.sub("", text)
    text = _SLASH_DATE_SHORT.sub("", text)
    text = _STANDALONE_NUMBER.sub("", text)
    text = _NON_ALPHA.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()
