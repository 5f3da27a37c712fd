"""
Statement Ingest - Deterministic bank statement ingestion for a personal ledger

Modules:
- extract: PDF tokens (pdfplumber) and delimited rows (pandas)
- tabular: CSV/TXT exports to transaction candidates
- document: PDF statements to transaction candidates, with fallbacks
- money / normalize / identity: amounts, labels, ids and fingerprints
- categorize: keyword rules to categories
- recurring: periodic charge detection
- reconcile: statement balance checks
- store: persistence contract (in-memory, JSON file)
- pipeline: Main orchestrator
- export: CSV / XLSX / JSON backup
"""
from .errors import DocumentDecodeError, InvalidAmountError
from .models import CategoryRule, RecurringGroup, Statement, Transaction
from .pipeline import ImportPipeline
from .store import InMemoryStore, JsonFileStore, LedgerStore
from .tabular import parse_delimited
from .document import parse_document
from .recurring import detect_recurring
from .money import parse_amount

__all__ = [
    'ImportPipeline', 'Transaction', 'RecurringGroup', 'CategoryRule', 'Statement',
    'LedgerStore', 'InMemoryStore', 'JsonFileStore',
    'parse_delimited', 'parse_document', 'detect_recurring', 'parse_amount',
    'InvalidAmountError', 'DocumentDecodeError',
]
