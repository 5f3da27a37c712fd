"""
Ledger Store - the persistence collaborator the ingestion core depends on.

Every accessor has full-replace semantics: callers read the whole collection,
change it, and write the whole collection back. Nothing here is cached, so a
re-read always sees appends made by another writer.
"""
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .config import Config
from .models import CategoryRule, Statement, Transaction

# Storage keys shared with the browser application's local storage
TRANSACTIONS_KEY = "finance_transactions"
RULES_KEY = "finance_rules"
IGNORED_RECURRING_KEY = "ignoredRecurring"
STATEMENTS_KEY = "statements"


class LedgerStore(ABC):
    """Key-value persistence contract; subclasses only provide raw get/put."""

    @abstractmethod
    def _read(self, key: str) -> Any:
        """Raw value stored under ``key``, or None."""
        pass

    @abstractmethod
    def _write(self, key: str, value: Any) -> None:
        pass

    def get_ledger(self) -> List[Transaction]:
        return [Transaction.from_dict(d) for d in self._read(TRANSACTIONS_KEY) or []]

    def put_ledger(self, transactions: List[Transaction]) -> None:
        self._write(TRANSACTIONS_KEY, [tx.to_dict() for tx in transactions])

    def get_ignored_group_ids(self) -> List[str]:
        return list(self._read(IGNORED_RECURRING_KEY) or [])

    def put_ignored_group_ids(self, ids: List[str]) -> None:
        self._write(IGNORED_RECURRING_KEY, list(ids))

    def get_category_rules(self) -> List[CategoryRule]:
        """User rules, or an empty list when none were saved (caller falls back to defaults)."""
        return [CategoryRule.from_dict(d) for d in self._read(RULES_KEY) or []]

    def put_category_rules(self, rules: List[CategoryRule]) -> None:
        self._write(RULES_KEY, [rule.to_dict() for rule in rules])

    def get_statements(self) -> List[Statement]:
        return [Statement.from_dict(d) for d in self._read(STATEMENTS_KEY) or []]

    def put_statements(self, statements: List[Statement]) -> None:
        self._write(STATEMENTS_KEY, [s.to_dict() for s in statements])


class InMemoryStore(LedgerStore):
    """Dict-backed store. Values are JSON round-tripped so callers never share references."""

    def __init__(self, data: Dict[str, Any] = None):
        self.data: Dict[str, str] = {}
        for key, value in (data or {}).items():
            self._write(key, value)

    def _read(self, key: str) -> Any:
        raw = self.data.get(key)
        return json.loads(raw) if raw is not None else None

    def _write(self, key: str, value: Any) -> None:
        self.data[key] = json.dumps(value)


class JsonFileStore(LedgerStore):
    """
    All keys in a single JSON document on disk.

    A missing file reads as empty. A corrupt file raises ``json.JSONDecodeError``
    rather than being silently replaced. Without a path the file is
    ``Config.LEDGER_PATH``.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or Config.LEDGER_PATH

    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _read(self, key: str) -> Any:
        return self._load().get(key)

    def _write(self, key: str, value: Any) -> None:
        document = self._load()
        document[key] = value
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(document, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)
        logging.debug(f"Store write: {key} -> {self.path}")
