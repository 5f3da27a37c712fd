"""
Statement Noise Filter - rejects lines that look like transactions but are not.

Bank statements interleave real operations with:
- column headers repeated on every page
- totals, sub-totals and running balances
- bank metadata (IBAN/BIC, holder, page numbers, statement period)

Matching runs on the normalized label so accents and case never matter.
"""
import re
from typing import List

from .normalize import normalize_label


# ─────────────────────────────────────────────────────────────
# Non-transaction patterns
# ─────────────────────────────────────────────────────────────
# Anchored at the start of the label
PREFIX_KEYWORDS = [
    "total",
    "sous-total",
    "sous total",
    "solde",
    "report",
    "ancien solde",
    "nouveau solde",
    "a reporter",
    "previous balance",
    "opening balance",
    "closing balance",
    "ending balance",
    "beginning balance",
    "balance forward",
]

# Anywhere in the label, as whole words
WORD_PATTERNS = [
    r"\biban\b",
    r"\bbic\b",
    r"\bdate (de )?valeur\b",
    r"\bdate libelle\b",
    r"\bdebit credit\b",
    r"\breleve de compte\b",
    r"\bstatement period\b",
    r"\bpage \d+( sur \d+)?\b",
    r"\btitulaire\b",
]


class LineFilter:
    """
    Decides whether an extracted label is statement noise.

    Usage:
        line_filter = LineFilter()
        line_filter.is_noise("SOLDE CREDITEUR AU 31/01/2025")
        # Returns: True
    """

    def __init__(self, min_label_length: int = 3):
        self.min_label_length = min_label_length
        self.prefixes = [normalize_label(kw) for kw in PREFIX_KEYWORDS]
        self.patterns = [re.compile(p) for p in WORD_PATTERNS]

    def is_noise(self, label: str) -> bool:
        if len(label.strip()) < self.min_label_length:
            return True
        normalized = normalize_label(label)
        for prefix in self.prefixes:
            if normalized == prefix or normalized.startswith(prefix + " "):
                return True
        return any(p.search(normalized) for p in self.patterns)

    def get_patterns(self) -> List[str]:
        """Return the active patterns for transparency."""
        return PREFIX_KEYWORDS + WORD_PATTERNS
