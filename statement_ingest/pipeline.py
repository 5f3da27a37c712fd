"""
Import Orchestrator - Coordinates Extract, Transform, Categorize, Dedupe and Load.

Flow: Extract → Transform → Categorize → Assign account → Dedupe → Reconcile → Store

Parsers stay pure; everything that touches the store happens here. The
ledger is re-read on every import, never cached between calls.
"""
import asyncio
import logging
from datetime import date, datetime
from typing import List, Optional, Union

from .categorize import CategoryMapper
from .config import Config
from .document import DocumentTransformer, parse_document
from .extract import ParserFactory, PDFParser
from .identity import fingerprint_of, make_transaction
from .models import RecurringGroup, Transaction
from .reconcile import batch_totals, build_statement, reconcile
from .recurring import detect_recurring
from .schema import ImportResult, StatementInfo
from .store import LedgerStore
from .tabular import DelimitedTransformer, parse_delimited


class ImportPipeline:
    """
    Statement import pipeline bound to one store.

    Usage:
        pipeline = ImportPipeline(JsonFileStore("ledger.json"), account_id="checking")
        result = pipeline.import_delimited(open("export.csv").read())
        # result["new"], result["duplicates"], result["net_minor"]
    """

    def __init__(self, store: LedgerStore, account_id: Optional[str] = None):
        self.store = store
        self.account_id = account_id or Config.DEFAULT_ACCOUNT_ID

    def _mapper(self) -> CategoryMapper:
        # Rules are read per call so edits made elsewhere take effect
        return CategoryMapper(self.store.get_category_rules())

    # ─────────────────────────────────────────────────────────────
    # Entry points (parse only, nothing stored)
    # ─────────────────────────────────────────────────────────────

    def ingest_delimited(self, raw_text: str) -> List[Transaction]:
        return parse_delimited(raw_text, self._mapper())

    async def ingest_document(self, raw_bytes: bytes) -> List[Transaction]:
        """
        Raises:
            DocumentDecodeError: unreadable document, propagated unchanged
        """
        return await parse_document(raw_bytes, self._mapper())

    def detect_recurring(self, ledger: Optional[List[Transaction]] = None, now=None) -> List[RecurringGroup]:
        if ledger is None:
            ledger = self.store.get_ledger()
        return detect_recurring(ledger, self.store.get_ignored_group_ids(), now=now)

    # ─────────────────────────────────────────────────────────────
    # Imports (parse + merge into the ledger)
    # ─────────────────────────────────────────────────────────────

    def import_delimited(self, raw_text: str, account_id: Optional[str] = None,
                         statement: Optional[StatementInfo] = None) -> ImportResult:
        candidates = self.ingest_delimited(raw_text)
        return self.merge(candidates, "csv", account_id, statement)

    async def import_document(self, raw_bytes: bytes, account_id: Optional[str] = None,
                              statement: Optional[StatementInfo] = None) -> ImportResult:
        candidates = await self.ingest_document(raw_bytes)
        return self.merge(candidates, "pdf", account_id, statement)

    async def import_file(self, data: Union[bytes, str], file_type: str,
                          account_id: Optional[str] = None,
                          statement: Optional[StatementInfo] = None) -> ImportResult:
        """
        Import an uploaded statement, dispatching on its file type.

        Args:
            data: raw file content; delimited bytes are read as UTF-8
            file_type: extension such as 'pdf', 'csv' or '.txt'

        Raises:
            ValueError: unsupported file type
            DocumentDecodeError: unreadable document
        """
        parser = ParserFactory.get_parser(file_type)
        mapper = self._mapper()
        if isinstance(parser, PDFParser):
            payload = await asyncio.to_thread(parser.parse, data)
            candidates = DocumentTransformer(mapper).transform(payload)
            return self.merge(candidates, "pdf", account_id, statement)

        text = data.decode("utf-8-sig", errors="replace") if isinstance(data, bytes) else data
        candidates = DelimitedTransformer(mapper).transform(parser.parse(text))
        return self.merge(candidates, "csv", account_id, statement)

    def merge(self, candidates: List[Transaction], source: str,
              account_id: Optional[str] = None,
              statement: Optional[StatementInfo] = None) -> ImportResult:
        """
        Split candidates into new and duplicate, append the new ones.

        A candidate is a duplicate when its id or fingerprint is already in
        the ledger, or was already seen earlier in the same batch.

        Args:
            candidates: parser output (account empty, parse-time fingerprints)
            source: 'csv' | 'pdf' | 'manual', reported back only
            account_id: overrides the pipeline's account for this batch
            statement: optional balances for reconciliation

        Returns:
            ImportResult with totals computed over the new transactions
        """
        account = account_id or self.account_id
        ledger = self.store.get_ledger()
        known_ids = {tx.id for tx in ledger}
        known_fingerprints = {tx.dedupe_hash or fingerprint_of(tx) for tx in ledger}

        new: List[Transaction] = []
        duplicates: List[Transaction] = []
        for tx in candidates:
            tx.account_id = account
            fingerprint = fingerprint_of(tx)
            tx.dedupe_hash = fingerprint
            tx.raw_fingerprint = fingerprint

            if tx.id in known_ids or fingerprint in known_fingerprints:
                duplicates.append(tx)
                continue
            known_ids.add(tx.id)
            known_fingerprints.add(fingerprint)
            new.append(tx)

        if new:
            self.store.put_ledger(ledger + new)

        totals = batch_totals(new)
        reconciliation = None
        if statement and "opening_minor" in statement and "closing_minor" in statement:
            reconciliation = reconcile(new, statement["opening_minor"], statement["closing_minor"])
            if new:
                record = build_statement(
                    account, new,
                    statement["opening_minor"], statement["closing_minor"],
                    statement.get("start_date"), statement.get("end_date"),
                    new[0].currency,
                )
                self.store.put_statements(self.store.get_statements() + [record])

        logging.info(
            f"Import ({source}, account {account}): {len(new)} new, "
            f"{len(duplicates)} duplicate(s), net {totals['net_minor']} minor units"
        )
        return {
            "account_id": account,
            "source": source,
            "new": new,
            "duplicates": duplicates,
            "income_minor": totals["income_minor"],
            "expense_minor": totals["expense_minor"],
            "net_minor": totals["net_minor"],
            "reconciliation": reconciliation,
        }

    def add_manual_transaction(self, tx_date: date, label: str, amount_minor: int,
                               category: Optional[str] = None,
                               account_id: Optional[str] = None,
                               created_at: Optional[datetime] = None) -> Transaction:
        """Record a hand-entered transaction. Zero amounts and empty or over-long labels are rejected."""
        if not amount_minor:
            raise ValueError("amount_minor must be non-zero")
        if not label or not label.strip():
            raise ValueError("label must not be empty")
        if len(label.strip()) > Config.LABEL_MAX_LENGTH:
            raise ValueError(f"label must not exceed {Config.LABEL_MAX_LENGTH} characters")
        tx = make_transaction(
            tx_date,
            label.strip(),
            amount_minor,
            "manual",
            account_id=account_id or self.account_id,
            category=category or self._mapper().categorize(label),
            created_at=created_at,
        )
        self.store.put_ledger(self.store.get_ledger() + [tx])
        logging.info(f"Manual transaction added: {tx.id}")
        return tx
