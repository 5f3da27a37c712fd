"""
Export Layer - ledger to CSV, styled Excel workbook, and JSON backup.

The CSV uses the same ';' / decimal-comma layout the tabular importer reads,
so an export can be imported back without a column mapping.
"""
import json
import logging
from datetime import date, datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .models import CategoryRule, Statement, Transaction
from .store import LedgerStore

BACKUP_VERSION = "1.0"

TYPE_LABELS = {True: "Revenu", False: "Dépense"}


def filter_by_date(transactions: List[Transaction], start: Optional[date] = None,
                   end: Optional[date] = None) -> List[Transaction]:
    """Inclusive date range; either bound may be omitted."""
    return [
        tx for tx in transactions
        if (start is None or tx.date >= start) and (end is None or tx.date <= end)
    ]


def _decimal_comma(amount_minor: int) -> str:
    return f"{amount_minor / 100:.2f}".replace(".", ",")


class LedgerExporter:
    """
    Exporter for the stored ledger.
    Supported: 'csv', 'xlsx', 'json'
    """

    def __init__(self):
        self.currency_format = '#,##0.00 [$€-40C];-#,##0.00 [$€-40C]'
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="2D5016", end_color="2D5016", fill_type="solid")
        self.income_fill = PatternFill(start_color="DCFCE7", end_color="DCFCE7", fill_type="solid")
        self.border = Border(bottom=Side(style='thin', color='DDDDDD'))

    def generate(self, transactions: List[Transaction], target_format: str = "xlsx",
                 start: Optional[date] = None, end: Optional[date] = None,
                 include_categories: bool = True) -> BytesIO:
        selected = sorted(filter_by_date(transactions, start, end), key=lambda tx: tx.date)
        logging.info(f"Exporting {len(selected)} transaction(s) as {target_format}")
        if target_format == "csv":
            return self._generate_csv(selected, include_categories)
        elif target_format == "json":
            return self._generate_json(selected)
        elif target_format == "xlsx":
            return self._generate_excel(selected, include_categories)
        raise ValueError(f"Unsupported export format: {target_format}")

    def _rows(self, transactions: List[Transaction], include_categories: bool) -> List[Dict[str, Any]]:
        rows = []
        for tx in transactions:
            row = {
                "Date": tx.date.strftime("%d/%m/%Y"),
                "Libellé": tx.label,
                "Montant": tx.amount_minor,
                "Type": TYPE_LABELS[tx.is_income],
            }
            if include_categories:
                row["Catégorie"] = tx.category
            row["Tags"] = ", ".join(sorted(tx.tags))
            row["Source"] = tx.source
            rows.append(row)
        return rows

    def _generate_csv(self, transactions: List[Transaction], include_categories: bool) -> BytesIO:
        """Semicolon CSV with decimal-comma amounts"""
        rows = self._rows(transactions, include_categories)
        for row in rows:
            row["Montant"] = _decimal_comma(row["Montant"])
        df = pd.DataFrame(rows, columns=self._columns(include_categories))
        output = BytesIO()
        output.write(df.to_csv(index=False, sep=";").encode("utf-8"))
        output.seek(0)
        return output

    def _generate_json(self, transactions: List[Transaction]) -> BytesIO:
        output = BytesIO()
        payload = [tx.to_dict() for tx in transactions]
        output.write(json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8"))
        output.seek(0)
        return output

    def _generate_excel(self, transactions: List[Transaction], include_categories: bool) -> BytesIO:
        output = BytesIO()
        wb = Workbook()
        ws = wb.active
        ws.title = "Transactions"

        headers = self._columns(include_categories)
        amount_col = headers.index("Montant") + 1
        for col_idx, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = Alignment(horizontal='center')

        for row_idx, (tx, row) in enumerate(zip(transactions, self._rows(transactions, include_categories)), 2):
            for col_idx, header in enumerate(headers, 1):
                value = row[header]
                if col_idx == amount_col:
                    value = value / 100
                cell = ws.cell(row=row_idx, column=col_idx, value=value)
                if col_idx == amount_col:
                    cell.number_format = self.currency_format
                    if tx.is_income:
                        cell.fill = self.income_fill
                cell.border = self.border

        self._auto_width(ws)
        ws.freeze_panes = "A2"

        wb.save(output)
        output.seek(0)
        return output

    def _columns(self, include_categories: bool) -> List[str]:
        columns = ["Date", "Libellé", "Montant", "Type"]
        if include_categories:
            columns.append("Catégorie")
        return columns + ["Tags", "Source"]

    def _auto_width(self, ws) -> None:
        """Auto-adjust column widths"""
        for col_idx, column in enumerate(ws.columns, 1):
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 4, 60)


# ─────────────────────────────────────────────────────────────
# Backup / Restore
# ─────────────────────────────────────────────────────────────

def export_backup(store: LedgerStore, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Full store snapshot: ledger, rules, ignored recurring ids and statements."""
    return {
        "version": BACKUP_VERSION,
        "exportedAt": (now or datetime.now()).isoformat(),
        "data": {
            "transactions": [tx.to_dict() for tx in store.get_ledger()],
            "rules": [rule.to_dict() for rule in store.get_category_rules()],
            "ignoredRecurring": store.get_ignored_group_ids(),
            "statements": [s.to_dict() for s in store.get_statements()],
        },
    }


def restore_backup(store: LedgerStore, backup: Dict[str, Any], merge: bool = True) -> int:
    """
    Load a backup into ``store``.

    Args:
        backup: dict produced by export_backup
        merge: keep existing records and add unknown ids; False replaces everything

    Returns:
        Number of transactions added (merge) or written (replace)

    Raises:
        ValueError: ``version`` or ``data`` missing
    """
    if not isinstance(backup, dict) or not backup.get("version") or not isinstance(backup.get("data"), dict):
        raise ValueError("Invalid backup format")
    data = backup["data"]

    incoming = [Transaction.from_dict(d) for d in data.get("transactions") or []]
    rules = [CategoryRule.from_dict(d) for d in data.get("rules") or []]
    ignored = list(data.get("ignoredRecurring") or [])
    statements = [Statement.from_dict(d) for d in data.get("statements") or []]

    if merge:
        ledger = store.get_ledger()
        known = {tx.id for tx in ledger}
        added = [tx for tx in incoming if tx.id not in known]
        store.put_ledger(ledger + added)
        current_ignored = store.get_ignored_group_ids()
        store.put_ignored_group_ids(current_ignored + [i for i in ignored if i not in current_ignored])
        current_statements = store.get_statements()
        known_statements = {s.id for s in current_statements}
        store.put_statements(current_statements + [s for s in statements if s.id not in known_statements])
        if rules and not store.get_category_rules():
            store.put_category_rules(rules)
        count = len(added)
    else:
        store.put_ledger(incoming)
        store.put_category_rules(rules)
        store.put_ignored_group_ids(ignored)
        store.put_statements(statements)
        count = len(incoming)

    logging.info(f"Backup restored ({'merge' if merge else 'replace'}): {count} transaction(s)")
    return count
