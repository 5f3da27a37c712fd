"""
Monetary Parser - locale-aware amount strings to integer minor units.

French statements write ``1 234,56`` (space or NBSP thousands, decimal comma)
while other exports use ``1,234.56``. Every amount in the package goes through
``parse_amount`` so there is exactly one reading of a number.
"""
import math
import re
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from .errors import InvalidAmountError

CURRENCY_SYMBOLS = "€$£¥"
CURRENCY_CODES = ("EUR", "USD", "GBP", "CHF")

_NUMERIC_CHARS = re.compile(r'[\d.,]+')
_PLAIN_DECIMAL = re.compile(r'\d+(\.\d*)?|\.\d+')


def _strip_markers(s: str):
    """Peel sign, currency and parentheses off both ends until stable."""
    negative = False
    while True:
        before = s
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1].strip()
        if s.startswith("+"):
            s = s[1:].lstrip()
        elif s.startswith("-"):
            negative = True
            s = s[1:].lstrip()
        if s.endswith("-"):
            # Some banks print debits as "45,30-"
            negative = True
            s = s[:-1].rstrip()
        if s and s[0] in CURRENCY_SYMBOLS:
            s = s[1:].lstrip()
        if s and s[-1] in CURRENCY_SYMBOLS:
            s = s[:-1].rstrip()
        upper = s.upper()
        for code in CURRENCY_CODES:
            if upper.startswith(code):
                s = s[len(code):].lstrip()
                break
            if upper.endswith(code):
                s = s[:-len(code)].rstrip()
                break
        if s == before:
            return s, negative


def parse_amount(text) -> int:
    """
    Parse a formatted amount into signed integer cents.

    Args:
        text: e.g. ``"1 234,56"``, ``"-45,30 €"``, ``"1,234.56"``, ``"(12.00)"``

    Returns:
        Signed amount in minor units.

    Raises:
        InvalidAmountError: empty input, stray characters, or more than one
            decimal separator. A failed parse is never reported as zero.
    """
    raw = "" if text is None else str(text)
    s = raw.replace("\u2212", "-").strip()
    if not s:
        raise InvalidAmountError(raw, "amount is empty")

    s, negative = _strip_markers(s)
    # Thousands separators: regular space, NBSP, narrow NBSP, apostrophes
    s = re.sub(r"\s+", "", s).replace("'", "").replace("\u2019", "")
    if not s or not _NUMERIC_CHARS.fullmatch(s):
        raise InvalidAmountError(raw)

    comma, dot = s.rfind(","), s.rfind(".")
    if comma > dot and len(s) - comma - 1 == 2:
        decimal_sep, thousands_sep = ",", "."
    else:
        decimal_sep, thousands_sep = ".", ","
    s = s.replace(thousands_sep, "")
    if s.count(decimal_sep) > 1:
        raise InvalidAmountError(raw, "multiple decimal separators")
    s = s.replace(decimal_sep, ".")
    if not _PLAIN_DECIMAL.fullmatch(s):
        raise InvalidAmountError(raw)

    try:
        cents = (Decimal(s) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise InvalidAmountError(raw) from exc
    value = int(cents)
    return -value if negative else value


def format_amount(amount_minor: int, symbol: bool = False) -> str:
    """French display format: ``-1 234,56`` (optionally suffixed with `` €``)."""
    sign = "-" if amount_minor < 0 else ""
    units, cents = divmod(abs(int(amount_minor)), 100)
    grouped = f"{units:,}".replace(",", " ")
    text = f"{sign}{grouped},{cents:02d}"
    return f"{text} €" if symbol else text


def to_minor_units(amount: float) -> int:
    if amount is None or not math.isfinite(amount):
        return 0
    return int(Decimal(str(amount)).scaleb(2).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor: int) -> float:
    return amount_minor / 100
