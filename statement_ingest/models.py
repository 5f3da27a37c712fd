from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, List, Set, Dict, Any

SOURCES = ("manual", "csv", "pdf")
FREQUENCIES = ("monthly", "quarterly", "annual")


@dataclass
class Transaction:
    """Canonical transaction candidate.

    ``amount_minor`` is signed (positive = income); ``amount`` and
    ``is_income`` are derived from it and never stored separately.
    """
    id: str
    date: date
    label: str
    normalized_label: str
    amount_minor: int
    source: str
    account_id: str = ""
    category: str = "other"
    dedupe_hash: str = ""
    raw_fingerprint: str = ""
    status: str = "posted"
    currency: str = "EUR"
    tags: Set[str] = field(default_factory=set)
    bank_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: str = ""

    @property
    def amount(self) -> float:
        return abs(self.amount_minor) / 100

    @property
    def is_income(self) -> bool:
        return self.amount_minor > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "accountId": self.account_id,
            "date": self.date.isoformat(),
            "label": self.label,
            "normalizedLabel": self.normalized_label,
            "amount": self.amount,
            "amountMinor": self.amount_minor,
            "isIncome": self.is_income,
            "category": self.category,
            "source": self.source,
            "dedupeHash": self.dedupe_hash,
            "rawFingerprint": self.raw_fingerprint,
            "status": self.status,
            "currency": self.currency,
            "tags": sorted(self.tags),
            "bankReference": self.bank_reference,
            "notes": self.notes,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        raw_date = str(data["date"])[:10]
        amount_minor = data.get("amountMinor")
        if amount_minor is None:
            # Older records only carry an unsigned amount and an income flag
            base = round(abs(float(data.get("amount", 0))) * 100)
            amount_minor = base if data.get("isIncome") else -base
        return cls(
            id=data["id"],
            date=date.fromisoformat(raw_date),
            label=data.get("label", ""),
            normalized_label=data.get("normalizedLabel", ""),
            amount_minor=int(amount_minor),
            source=data.get("source", "manual"),
            account_id=data.get("accountId", ""),
            category=data.get("category", "other"),
            dedupe_hash=data.get("dedupeHash", ""),
            raw_fingerprint=data.get("rawFingerprint", ""),
            status=data.get("status", "posted"),
            currency=data.get("currency", "EUR"),
            tags=set(data.get("tags") or []),
            bank_reference=data.get("bankReference"),
            notes=data.get("notes"),
            created_at=data.get("createdAt", ""),
        )


@dataclass
class RecurringGroup:
    id: str
    label: str
    normalized_label: str
    transactions: List[Transaction]
    frequency: str
    average_amount_minor: int
    category: str
    last_date: date
    next_expected_date: date
    is_active: bool
    is_ignored: bool = False

    @property
    def occurrences(self) -> int:
        return len(self.transactions)

    @property
    def average_amount(self) -> float:
        return self.average_amount_minor / 100


@dataclass
class CategoryRule:
    category: str
    keywords: List[str]
    is_incompressible: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "keywords": list(self.keywords),
            "isIncompressible": self.is_incompressible,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryRule":
        return cls(
            category=data["category"],
            keywords=list(data.get("keywords") or []),
            is_incompressible=bool(data.get("isIncompressible", False)),
        )


@dataclass
class Statement:
    """A reconciled statement period recorded alongside an import."""
    id: str
    account_id: str
    start_date: str
    end_date: str
    opening_balance_minor: int
    closing_balance_minor: int
    transaction_ids: List[str]
    currency: str = "EUR"
    imported_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "accountId": self.account_id,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "openingBalanceMinor": self.opening_balance_minor,
            "closingBalanceMinor": self.closing_balance_minor,
            "transactionIds": list(self.transaction_ids),
            "currency": self.currency,
            "importedAt": self.imported_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Statement":
        return cls(
            id=data["id"],
            account_id=data.get("accountId", ""),
            start_date=data.get("startDate", ""),
            end_date=data.get("endDate", ""),
            opening_balance_minor=int(data.get("openingBalanceMinor", 0)),
            closing_balance_minor=int(data.get("closingBalanceMinor", 0)),
            transaction_ids=list(data.get("transactionIds") or []),
            currency=data.get("currency", "EUR"),
            imported_at=data.get("importedAt", ""),
        )
