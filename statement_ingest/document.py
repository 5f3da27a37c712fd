"""
Document Ingestion - paginated statements (PDF) to transaction candidates.

Primary pass:
1. Cluster positioned tokens into lines by vertical proximity, order by x
2. Per line: first matching date pattern, amounts, debit/credit direction,
   label = remainder minus amounts and currency tokens
3. Reject short labels, statement noise and absurd amounts
4. Deduplicate within the document

Fallback, only when the primary pass finds nothing:
a. One global regex over the reconstructed text (date, label, amount)
b. The primary per-line pass again, over the decoder's flat newline text

Position clustering and flat text scans fail on different layouts, so the
order of the tiers is a heuristic, not a completeness guarantee.
"""
import asyncio
import logging
import re
from datetime import date
from typing import Dict, List, Optional, Tuple, Iterable

from .categorize import CategoryMapper
from .config import Config
from .errors import InvalidAmountError
from .extract import PDFParser
from .filter import LineFilter
from .identity import make_transaction
from .models import Transaction
from .money import parse_amount
from .normalize import strip_diacritics
from .schema import ExtractionPayload, Token


# ─────────────────────────────────────────────────────────────
# Patterns
# ─────────────────────────────────────────────────────────────

MONTHS: Dict[str, int] = {
    "janvier": 1, "janv": 1, "jan": 1, "january": 1,
    "fevrier": 2, "fevr": 2, "fev": 2, "feb": 2, "february": 2,
    "mars": 3, "mar": 3, "march": 3,
    "avril": 4, "avr": 4, "apr": 4, "april": 4,
    "mai": 5, "may": 5,
    "juin": 6, "jun": 6, "june": 6,
    "juillet": 7, "juil": 7, "jul": 7, "july": 7,
    "aout": 8, "aou": 8, "aug": 8, "august": 8,
    "septembre": 9, "sept": 9, "sep": 9, "september": 9,
    "octobre": 10, "oct": 10, "october": 10,
    "novembre": 11, "nov": 11, "november": 11,
    "decembre": 12, "dec": 12, "december": 12,
}

# Ordered: the first pattern with a valid calendar date wins
DATE_PATTERNS = [
    ("numeric", re.compile(r'(?<![\d,.])(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})(?![\d])')),
    ("numeric_short", re.compile(r'(?<![\d,.])(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{2})(?![\d,])')),
    ("textual", re.compile(r'(?<!\d)(\d{1,2})(?:er)?\s+([^\W\d_]{3,10})\.?\s+(\d{4})(?!\d)')),
]

_CUR_BEFORE = r'(?:[€$£]\s?)?'
_CUR_AFTER = r'(?:\s?(?:€|EUR\b))?'

# Families are tried in order; the first family with any match is used
AMOUNT_PATTERN_FAMILIES = [
    re.compile(
        r'(?<![\w.,])[-+\u2212]?\s?' + _CUR_BEFORE +
        r'(?:\d{1,3}(?:[ \u00a0\u202f.]\d{3})+,\d{2}'   # 1 234,56 / 1.234,56
        r'|\d{1,3}(?:,\d{3})+\.\d{2}'                   # 1,234.56
        r'|\d+[.,]\d{2})'                               # 1234,56 / 12.50
        r'(?![\d])' + _CUR_AFTER
    ),
    re.compile(r'-?\d+[\s\u00a0]?\d*[,.]\d{2}'),
]

_CURRENCY_TOKEN = re.compile(r'€|\bEUR\b|\bEUROS?\b', re.IGNORECASE)
_WHITESPACE = re.compile(r'\s+')

GLOBAL_PATTERN = re.compile(
    r'(\d{2}[/.]\d{2}[/.]\d{2,4})\s+(.+?)\s+(-?\d+[\s\u00a0]?\d*[,.]\d{2})'
)


def _make_date(day: int, month: int, year: int) -> Optional[date]:
    if year < 100:
        year += 2000
    elif year < 1000:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _match_to_date(name: str, match) -> Optional[date]:
    if name == "textual":
        month = MONTHS.get(strip_diacritics(match.group(2).lower()))
        if month is None:
            return None
        return _make_date(int(match.group(1)), month, int(match.group(3)))
    return _make_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


class DocumentTransformer:
    """
    Deterministic line-pattern transformer for decoded documents.
    No layout model - position clustering plus regex, reproducible run to run.
    """

    def __init__(self, mapper: Optional[CategoryMapper] = None,
                 y_tolerance: float = Config.LINE_Y_TOLERANCE,
                 sanity_ceiling_minor: int = Config.AMOUNT_SANITY_CEILING_MINOR):
        self.mapper = mapper
        self.y_tolerance = y_tolerance
        self.sanity_ceiling_minor = sanity_ceiling_minor
        self.line_filter = LineFilter(Config.LABEL_MIN_LENGTH)

    def transform(self, payload: ExtractionPayload) -> List[Transaction]:
        """
        Main entry point: positioned tokens -> transactions.

        Args:
            payload: ExtractionPayload from the extract layer

        Returns:
            Deduplicated candidates sorted by date, source 'pdf'
        """
        lines: List[str] = []
        for page_tokens in payload.get("pages", []):
            lines.extend(self.reconstruct_lines(page_tokens))

        results = self.parse_lines(lines)
        if not results:
            logging.info("Primary pass found nothing; trying global pattern over document text")
            results = self.parse_text_globally(" ".join(lines))
        if not results:
            logging.info("Global pattern found nothing; re-parsing flat page text line by line")
            flat_lines = []
            for text in payload.get("page_texts", []):
                flat_lines.extend(text.split("\n"))
            results = self.parse_lines(flat_lines)

        results.sort(key=lambda tx: tx.date)
        if self.mapper:
            self.mapper.apply(results)
        logging.info(f"Document parse: {len(results)} transaction(s) from {len(lines)} line(s)")
        return results

    # ─────────────────────────────────────────────────────────────
    # Line Reconstruction
    # ─────────────────────────────────────────────────────────────

    def reconstruct_lines(self, tokens: Iterable[Token]) -> List[str]:
        """Tokens within ``y_tolerance`` of a line's first token join that line."""
        lines: List[dict] = []
        for token in tokens:
            text = token["text"].strip()
            if not text:
                continue
            line = next((l for l in lines if abs(l["y"] - token["y"]) < self.y_tolerance), None)
            if line is None:
                line = {"y": token["y"], "items": []}
                lines.append(line)
            line["items"].append((token["x"], text))

        lines.sort(key=lambda l: l["y"])
        return [
            " ".join(text for _, text in sorted(line["items"], key=lambda item: item[0]))
            for line in lines
        ]

    # ─────────────────────────────────────────────────────────────
    # Line Parsing
    # ─────────────────────────────────────────────────────────────

    def parse_lines(self, lines: Iterable[str]) -> List[Transaction]:
        results: List[Transaction] = []
        seen_ids = set()
        seen_keys = set()
        for line in lines:
            tx = self.parse_line(line)
            if tx is None:
                continue
            key = (tx.date, tx.label, tx.amount_minor)
            if tx.id in seen_ids or key in seen_keys:
                continue
            seen_ids.add(tx.id)
            seen_keys.add(key)
            results.append(tx)
        return results

    def parse_line(self, line: str) -> Optional[Transaction]:
        """Extract one transaction from a reconstructed line, or None."""
        line_clean = _WHITESPACE.sub(" ", line or "").strip()
        if not line_clean:
            return None

        found = self._find_date(line_clean)
        if found is None:
            return None
        tx_date, start, end = found
        remainder = f"{line_clean[:start]} {line_clean[end:]}".strip()
        remainder = self._strip_dates(remainder)

        amounts, spans = self._find_amounts(remainder)
        amount_minor = self._pick_amount(amounts)
        if not amount_minor:
            return None

        label = self._clean_label(remainder, spans)
        if self.line_filter.is_noise(label):
            logging.debug(f"Rejected line as noise: {line_clean!r}")
            return None

        return make_transaction(tx_date, label, amount_minor, "pdf")

    def _find_date(self, line: str) -> Optional[Tuple[date, int, int]]:
        for name, pattern in DATE_PATTERNS:
            for match in pattern.finditer(line):
                parsed = _match_to_date(name, match)
                if parsed is not None:
                    return parsed, match.start(), match.end()
        return None

    def _strip_dates(self, text: str) -> str:
        """Blank out remaining valid dates (value dates) so they are not read as amounts."""
        for name, pattern in DATE_PATTERNS:
            for match in reversed(list(pattern.finditer(text))):
                if _match_to_date(name, match) is not None:
                    text = f"{text[:match.start()]} {text[match.end():]}"
        return _WHITESPACE.sub(" ", text).strip()

    def _find_amounts(self, text: str) -> Tuple[List[int], List[Tuple[int, int]]]:
        """Parsed amounts and the spans they came from, first productive family only."""
        for pattern in AMOUNT_PATTERN_FAMILIES:
            matches = list(pattern.finditer(text))
            if not matches:
                continue
            amounts, spans = [], []
            for match in matches:
                try:
                    value = parse_amount(match.group(0))
                except InvalidAmountError:
                    continue
                spans.append(match.span())
                if abs(value) > self.sanity_ceiling_minor:
                    logging.debug(f"Amount above sanity ceiling ignored: {match.group(0)!r}")
                    continue
                amounts.append(value)
            return amounts, spans
        return [], []

    def _pick_amount(self, amounts: List[int]) -> Optional[int]:
        """
        Two or more amounts are a debit/credit pair. A negative first amount is
        the debit. Otherwise the first non-zero amount gives the magnitude and
        the second amount's sign gives the direction.
        """
        if not amounts:
            return None
        if len(amounts) == 1:
            return amounts[0]
        first, second = amounts[0], amounts[1]
        if first < 0:
            return first
        if first == 0:
            return second
        return -first if second < 0 else first

    def _clean_label(self, remainder: str, spans: List[Tuple[int, int]]) -> str:
        parts, cursor = [], 0
        for start, end in sorted(spans):
            parts.append(remainder[cursor:start])
            cursor = end
        parts.append(remainder[cursor:])
        label = _CURRENCY_TOKEN.sub(" ", " ".join(parts))
        return _WHITESPACE.sub(" ", label).strip()

    # ─────────────────────────────────────────────────────────────
    # Global Fallback
    # ─────────────────────────────────────────────────────────────

    def parse_text_globally(self, text: str) -> List[Transaction]:
        """Capture (date, label, amount) triples straight across the joined text."""
        results: List[Transaction] = []
        seen = set()
        for match in GLOBAL_PATTERN.finditer(text):
            date_str, label, amount_str = match.groups()
            parts = re.split(r'[/.]', date_str)
            tx_date = _make_date(int(parts[0]), int(parts[1]), int(parts[2]))
            if tx_date is None:
                continue
            try:
                amount_minor = parse_amount(amount_str)
            except InvalidAmountError:
                continue
            if not amount_minor or abs(amount_minor) > self.sanity_ceiling_minor:
                continue
            label = _WHITESPACE.sub(" ", _CURRENCY_TOKEN.sub(" ", label)).strip()
            if self.line_filter.is_noise(label):
                continue
            tx = make_transaction(tx_date, label, amount_minor, "pdf")
            key = (tx.date, tx.label, tx.amount_minor)
            if tx.id in seen or key in seen:
                continue
            seen.update([tx.id, key])
            results.append(tx)
        return results


def parse_document_sync(file_bytes: bytes, mapper: Optional[CategoryMapper] = None) -> List[Transaction]:
    payload = PDFParser().parse(file_bytes)
    return DocumentTransformer(mapper).transform(payload)


async def parse_document(file_bytes: bytes, mapper: Optional[CategoryMapper] = None) -> List[Transaction]:
    """
    Decode and parse a statement document off the event loop.

    Raises:
        DocumentDecodeError: the bytes are not a readable document.
    """
    return await asyncio.to_thread(parse_document_sync, file_bytes, mapper)
