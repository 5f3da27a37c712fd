"""
Identity & Fingerprint Engine - deterministic transaction ids and dedupe fingerprints.

Both strings come from the same 32-bit rolling hash:

    h = 0
    for each UTF-16 code unit c of the joined input:
        h = (h * 31 + c) wrapped to a signed 32-bit integer
    hex(abs(h)) zero-padded to 8 characters

The exact bit pattern is part of the ledger format: ids and fingerprints
already stored must keep matching freshly computed ones, so this routine must
not be swapped for a general-purpose hash. Every producer (CSV, PDF, manual)
builds its records through ``make_transaction`` so field order never drifts.
"""
import time
from datetime import date, datetime
from typing import Optional

from .config import Config
from .models import Transaction
from .normalize import normalize_label, normalize_id_label

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def rolling_hash(text: str) -> str:
    """Multiply-by-31 accumulation over UTF-16 code units, as 8 hex chars."""
    h = 0
    data = text.encode("utf-16-le", "surrogatepass")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return format(abs(h), "x").zfill(8)


def _day(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)[:10]


def _fixed2(amount_minor: int) -> str:
    units, cents = divmod(abs(int(amount_minor)), 100)
    return f"{units}.{cents:02d}"


def compute_transaction_id(tx_date, label: str, amount_minor: int, source: str) -> str:
    """
    Deterministic primary key for a transaction.

    Args:
        tx_date: date (or ISO string); only the day is used
        label: raw label; lowercased, whitespace-collapsed, cut to 50 UTF-16 units
        amount_minor: signed cents; only the magnitude is hashed
        source: 'manual' | 'csv' | 'pdf'
    """
    base = "|".join([
        _day(tx_date),
        normalize_id_label(label, Config.ID_LABEL_LENGTH),
        _fixed2(amount_minor),
        source,
    ])
    return f"tx_{source}_{rolling_hash(base)}"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_manual_transaction_id(tx_date, label: str, amount_minor: int,
                                   created_at_ms: Optional[int] = None) -> str:
    """Manual entries have no natural dedupe key, so a timestamp suffix keeps
    two identical coffees on the same day apart."""
    if created_at_ms is None:
        created_at_ms = int(time.time() * 1000)
    suffix = _base36(created_at_ms)[-4:]
    return f"{compute_transaction_id(tx_date, label, amount_minor, 'manual')}_{suffix}"


def build_fingerprint(account_id: str, tx_date, amount_minor: int, normalized_label: str,
                      bank_reference: Optional[str] = None, source: Optional[str] = None) -> str:
    parts = [
        account_id or "unknown",
        _day(tx_date),
        str(int(amount_minor)),
        normalized_label or "unknown",
        bank_reference or "",
        source or "import",
    ]
    return f"fp_{rolling_hash('|'.join(parts))}"


def fingerprint_of(tx: Transaction) -> str:
    return build_fingerprint(tx.account_id, tx.date, tx.amount_minor, tx.normalized_label,
                             tx.bank_reference, tx.source)


def make_transaction(tx_date: date, label: str, amount_minor: int, source: str,
                     account_id: str = "", category: str = "other",
                     currency: Optional[str] = None, bank_reference: Optional[str] = None,
                     created_at: Optional[datetime] = None) -> Transaction:
    """Single constructor for every producer so ids and fingerprints agree."""
    created_at = created_at or datetime.now()
    normalized = normalize_label(label)
    if source == "manual":
        tx_id = generate_manual_transaction_id(
            tx_date, label, amount_minor, int(round(created_at.timestamp() * 1000)))
    else:
        tx_id = compute_transaction_id(tx_date, label, amount_minor, source)
    fingerprint = build_fingerprint(account_id, tx_date, amount_minor, normalized,
                                    bank_reference, source)
    return Transaction(
        id=tx_id,
        date=tx_date,
        label=label,
        normalized_label=normalized,
        amount_minor=amount_minor,
        source=source,
        account_id=account_id,
        category=category,
        dedupe_hash=fingerprint,
        raw_fingerprint=fingerprint,
        currency=currency or Config.DEFAULT_CURRENCY,
        bank_reference=bank_reference,
        created_at=created_at.isoformat(),
    )
