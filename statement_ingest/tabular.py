"""
Tabular Ingestion - delimited bank exports to transaction candidates.

This module implements:
1. Row normalization (a row that arrived as one ';'-joined cell is re-split)
2. Header detection and keyword-based column mapping
3. Single-amount vs. debit/credit column handling
4. Row-local skipping: a bad row is dropped, never fatal
"""
import logging
import re
from datetime import date
from typing import List, Optional

from .categorize import CategoryMapper
from .errors import InvalidAmountError
from .extract import DelimitedParser
from .identity import make_transaction
from .models import Transaction
from .money import parse_amount
from .normalize import normalize_label
from .schema import ColumnMapping

DEFAULT_MAPPING: ColumnMapping = {"date": 0, "label": 1, "amount": 2}

HEADER_TOKENS = ['date', 'libelle', 'label', 'description', 'operation', 'intitule']

_NUMERIC_DATE = re.compile(r'^(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4}|\d{2})(?!\d)')
_ISO_DATE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})(?!\d)')


def parse_date(value: str) -> Optional[date]:
    """
    Read ``DD/MM/YYYY``, ``DD.MM.YYYY`` or ``DD-MM-YYYY`` (two-digit years are
    20xx) and ISO ``YYYY-MM-DD``. Returns None for anything else, including
    impossible calendar dates.
    """
    s = (value or "").strip()
    match = _NUMERIC_DATE.match(s)
    try:
        if match:
            day, month, year = (int(g) for g in match.groups())
            if year < 100:
                year += 2000
            return date(year, month, day)
        match = _ISO_DATE.match(s)
        if match:
            year, month, day = (int(g) for g in match.groups())
            return date(year, month, day)
    except ValueError:
        return None
    return None


def canonical_row(row: List[str]) -> List[str]:
    """A single physical cell holding a ';'-joined record becomes real cells."""
    cells = [str(c).strip() for c in row]
    if len(cells) == 1 and ';' in cells[0]:
        cells = [part.strip() for part in cells[0].split(';')]
    return cells


class DelimitedTransformer:
    """
    Maps delimited rows to Transaction candidates.

    The column mapping is inferred once per file and discarded afterwards.
    """

    def __init__(self, mapper: Optional[CategoryMapper] = None):
        self.mapper = mapper
        self.column_map: ColumnMapping = {}

    def transform(self, rows: List[List[str]]) -> List[Transaction]:
        """
        Args:
            rows: raw rows from the extract layer

        Returns:
            One candidate per valid data row, ``account_id`` empty, source 'csv'
        """
        results: List[Transaction] = []
        rows = [canonical_row(r) for r in rows]
        if not rows:
            return results

        if self._is_header_row(rows[0]):
            self.column_map = self._build_column_map(rows[0])
            rows = rows[1:]
        else:
            self.column_map = dict(DEFAULT_MAPPING)
        logging.debug(f"Column mapping: {self.column_map}")

        skipped = 0
        for row in rows:
            tx = self._map_row(row)
            if tx is None:
                skipped += 1
                continue
            if self.mapper:
                tx.category = self.mapper.categorize(tx.label)
            results.append(tx)

        logging.info(f"Delimited parse: {len(results)} transaction(s), {skipped} row(s) skipped")
        return results

    # ─────────────────────────────────────────────────────────────
    # Column Mapping
    # ─────────────────────────────────────────────────────────────

    def _is_header_row(self, row: List[str]) -> bool:
        first = normalize_label(row[0]) if row else ""
        return any(token in first for token in HEADER_TOKENS)

    def _build_column_map(self, header_row: List[str]) -> ColumnMapping:
        """Build column index mapping from header names"""
        column_map: ColumnMapping = {}
        date_is_value_date = False
        for i, cell in enumerate(header_row):
            name = normalize_label(cell)
            if not name:
                continue

            # Value dates lose to booking/operation dates
            if 'date' in name:
                is_value_date = 'valeur' in name or 'value' in name
                if 'date' not in column_map or (date_is_value_date and not is_value_date):
                    column_map['date'] = i
                    date_is_value_date = is_value_date
            elif any(k in name for k in ['debit', 'withdrawal', 'sortie', 'depense']):
                column_map.setdefault('debit', i)
            elif any(k in name for k in ['credit', 'deposit', 'entree', 'recette']):
                column_map.setdefault('credit', i)
            elif any(k in name for k in ['montant', 'amount', 'somme']):
                column_map.setdefault('amount', i)
            elif any(k in name for k in ['libelle', 'label', 'description', 'intitule',
                                         'operation', 'details', 'beneficiaire', 'payee']):
                column_map.setdefault('label', i)
            elif 'reference' in name:
                column_map.setdefault('reference', i)
            elif 'devise' in name or 'currency' in name:
                column_map.setdefault('currency', i)

        column_map.setdefault('date', DEFAULT_MAPPING['date'])
        column_map.setdefault('label', DEFAULT_MAPPING['label'])
        if not any(k in column_map for k in ('amount', 'debit', 'credit')):
            column_map['amount'] = DEFAULT_MAPPING['amount']
        return column_map

    # ─────────────────────────────────────────────────────────────
    # Row Mapping
    # ─────────────────────────────────────────────────────────────

    def _map_row(self, row: List[str]) -> Optional[Transaction]:
        if len(row) < 2:
            return None

        tx_date = parse_date(self._safe_get(row, self.column_map.get('date')))
        if tx_date is None:
            logging.debug(f"Skipping row, unparseable date: {row}")
            return None

        label = self._safe_get(row, self.column_map.get('label'))
        if not label:
            return None

        amount_minor = self._row_amount(row)
        # Zero is a deliberate "nothing to import", not a parse failure
        if not amount_minor:
            return None

        currency = self._safe_get(row, self.column_map.get('currency')).upper() or None
        return make_transaction(
            tx_date,
            label,
            amount_minor,
            "csv",
            currency=currency,
            bank_reference=self._safe_get(row, self.column_map.get('reference')) or None,
        )

    def _row_amount(self, row: List[str]) -> Optional[int]:
        """Credit (income) wins over debit (expense); else the signed amount column."""
        if 'debit' in self.column_map or 'credit' in self.column_map:
            credit = self._parse_cell(self._safe_get(row, self.column_map.get('credit')))
            if credit:
                return abs(credit)
            debit = self._parse_cell(self._safe_get(row, self.column_map.get('debit')))
            if debit:
                return -abs(debit)
            if 'amount' not in self.column_map:
                return None
        return self._parse_cell(self._safe_get(row, self.column_map.get('amount')))

    def _parse_cell(self, cell: str) -> Optional[int]:
        if not cell:
            return None
        try:
            return parse_amount(cell)
        except InvalidAmountError as exc:
            logging.debug(f"Skipping amount cell: {exc}")
            return None

    def _safe_get(self, row: List[str], idx: Optional[int]) -> str:
        if idx is None or idx >= len(row):
            return ""
        return str(row[idx]).strip() if row[idx] else ""


def parse_delimited(file_text: str, mapper: Optional[CategoryMapper] = None) -> List[Transaction]:
    """Parse a delimited statement export. Malformed rows are dropped, never fatal."""
    rows = DelimitedParser().parse(file_text)
    return DelimitedTransformer(mapper).transform(rows)
