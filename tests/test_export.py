import json
from datetime import date, datetime

import pytest
from openpyxl import load_workbook

from statement_ingest.export import LedgerExporter, export_backup, restore_backup
from statement_ingest.identity import make_transaction
from statement_ingest.models import CategoryRule, Statement
from statement_ingest.store import InMemoryStore
from statement_ingest.tabular import parse_delimited


@pytest.fixture
def ledger():
    return [
        make_transaction(date(2025, 1, 2), "Loyer Habitat", -95000, "csv", category="rent"),
        make_transaction(date(2025, 1, 1), "Virement salaire", 320000, "csv"),
    ]


def _text(buffer):
    return buffer.getvalue().decode("utf-8")


def test_csv_export(ledger):
    lines = _text(LedgerExporter().generate(ledger, "csv")).splitlines()
    assert lines[0] == "Date;Libellé;Montant;Type;Catégorie;Tags;Source"
    assert lines[1] == "01/01/2025;Virement salaire;3200,00;Revenu;other;;csv"
    assert lines[2] == "02/01/2025;Loyer Habitat;-950,00;Dépense;rent;;csv"


def test_csv_export_reimports_with_same_ids(ledger):
    text = _text(LedgerExporter().generate(ledger, "csv"))
    reimported = parse_delimited(text)
    assert sorted(tx.id for tx in reimported) == sorted(tx.id for tx in ledger)
    assert sorted(tx.amount_minor for tx in reimported) == [-95000, 320000]


def test_csv_export_without_categories(ledger):
    header = _text(LedgerExporter().generate(ledger, "csv", include_categories=False)).splitlines()[0]
    assert header == "Date;Libellé;Montant;Type;Tags;Source"


def test_date_range(ledger):
    lines = _text(LedgerExporter().generate(ledger, "csv", start=date(2025, 1, 2))).splitlines()
    assert len(lines) == 2
    assert "Loyer Habitat" in lines[1]
    lines = _text(LedgerExporter().generate(ledger, "csv", end=date(2025, 1, 1))).splitlines()
    assert len(lines) == 2
    assert "Virement salaire" in lines[1]


def test_xlsx_export(ledger):
    exporter = LedgerExporter()
    wb = load_workbook(exporter.generate(ledger, "xlsx"))
    ws = wb["Transactions"]
    assert [c.value for c in ws[1]] == ["Date", "Libellé", "Montant", "Type", "Catégorie", "Tags", "Source"]
    assert ws["A2"].value == "01/01/2025"
    assert ws["C2"].value == 3200.0
    assert ws["C3"].value == -950.0
    assert ws["C3"].number_format == exporter.currency_format
    assert ws["A1"].font.bold is True
    assert ws.freeze_panes == "A2"


def test_json_export(ledger):
    records = json.loads(_text(LedgerExporter().generate(ledger, "json")))
    assert [r["amountMinor"] for r in records] == [320000, -95000]
    assert records[0]["isIncome"] is True


def test_unsupported_format(ledger):
    with pytest.raises(ValueError):
        LedgerExporter().generate(ledger, "docx")


# ─────────────────────────────────────────────────────────────
# Backup / Restore
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def filled_store(ledger):
    store = InMemoryStore()
    store.put_ledger(ledger)
    store.put_category_rules([CategoryRule("rent", ["loyer"], True)])
    store.put_ignored_group_ids(["recurring_loyer_habitat"])
    store.put_statements([Statement("stmt_1", "checking", "2025-01-01", "2025-01-31", 0, 225000, [])])
    return store


def test_backup_layout(filled_store):
    backup = export_backup(filled_store, now=datetime(2025, 2, 1, 12, 0))
    assert backup["version"] == "1.0"
    assert backup["exportedAt"] == "2025-02-01T12:00:00"
    assert set(backup["data"]) == {"transactions", "rules", "ignoredRecurring", "statements"}
    assert len(backup["data"]["transactions"]) == 2
    # JSON-serializable as is
    json.dumps(backup)


def test_restore_replace(filled_store):
    backup = export_backup(filled_store)
    target = InMemoryStore()
    target.put_ledger([make_transaction(date(2024, 12, 1), "Old", -100, "csv")])
    assert restore_backup(target, backup, merge=False) == 2
    assert target.get_ledger() == filled_store.get_ledger()
    assert target.get_category_rules() == filled_store.get_category_rules()
    assert target.get_ignored_group_ids() == ["recurring_loyer_habitat"]
    assert target.get_statements() == filled_store.get_statements()


def test_restore_merge_skips_known_ids(filled_store):
    backup = export_backup(filled_store)
    assert restore_backup(filled_store, backup) == 0
    assert len(filled_store.get_ledger()) == 2
    assert filled_store.get_ignored_group_ids() == ["recurring_loyer_habitat"]
    assert len(filled_store.get_statements()) == 1


def test_restore_merge_adds_new(filled_store):
    backup = export_backup(filled_store)
    target = InMemoryStore()
    target.put_ledger([make_transaction(date(2024, 12, 1), "Old entry", -100, "csv")])
    assert restore_backup(target, backup) == 2
    assert len(target.get_ledger()) == 3
    assert target.get_category_rules() == filled_store.get_category_rules()


@pytest.mark.parametrize("backup", [{}, {"version": "1.0"}, {"data": {}}, None])
def test_restore_rejects_invalid(backup):
    with pytest.raises(ValueError):
        restore_backup(InMemoryStore(), backup)
