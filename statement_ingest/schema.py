"""
Ingestion Schema - TypedDict shapes passed between ingestion layers.

Persistent records live in ``models``; everything here is ephemeral and
discarded once an import completes.
"""
from typing import TypedDict, List, Optional
from .models import Transaction


class ColumnMapping(TypedDict, total=False):
    """Per-file column layout, inferred once from the header row or defaulted"""
    date: int
    label: int
    amount: int                   # single signed amount column
    debit: int                    # expense column (unsigned)
    credit: int                   # income column (unsigned)
    reference: int                # bank reference, hashed into fingerprints
    currency: int                 # ISO code per row


class Token(TypedDict):
    """Positioned text token from a decoded document page"""
    x: float                      # left edge
    y: float                      # distance from page top
    text: str


class ExtractionPayload(TypedDict):
    """Output from the document extract layer"""
    document_hash: str            # SHA256 of the raw bytes
    pages: List[List[Token]]      # tokens per page, in stream order
    page_texts: List[str]         # decoder's own flat text per page
    page_count: int


class StatementInfo(TypedDict, total=False):
    """Balances the user copied from the statement header, in minor units"""
    opening_minor: int
    closing_minor: int
    start_date: str               # ISO day; defaults to the batch's first date
    end_date: str


class Reconciliation(TypedDict):
    opening_minor: int
    closing_minor: int
    expected_closing_minor: int
    delta_minor: int
    is_balanced: bool


class ImportResult(TypedDict):
    """What the orchestrator hands back after merging a batch"""
    account_id: str
    source: str
    new: List[Transaction]
    duplicates: List[Transaction]
    income_minor: int
    expense_minor: int
    net_minor: int
    reconciliation: Optional[Reconciliation]
