import asyncio
from datetime import date

import pytest

from conftest import token_line
from statement_ingest.categorize import CategoryMapper
from statement_ingest.document import DocumentTransformer, parse_document
from statement_ingest.errors import DocumentDecodeError
from statement_ingest.extract import PDFParser


def _payload(pages, page_texts=None):
    return {
        "document_hash": "0" * 64,
        "pages": pages,
        "page_texts": page_texts or [],
        "page_count": len(pages),
    }


def _statement_page():
    tokens = (
        token_line(60, "Date", "Libellé", "Débit", "Crédit")
        + token_line(100, "05/01/2025", "CB", "CARREFOUR", "MARKET", "-45,30")
        + token_line(120, "06/01/2025", "VIREMENT", "SALAIRE", "3", "200,00")
        + token_line(140, "SOLDE", "AU", "31/01/2025", "1", "234,56")
        + token_line(160, "Page", "1", "sur", "2")
    )
    # Stream order from decoders is not reading order
    return list(reversed(tokens))


# ─────────────────────────────────────────────────────────────
# Line reconstruction
# ─────────────────────────────────────────────────────────────

def test_reconstruct_lines_clusters_by_y_and_orders_by_x():
    tokens = [
        {"x": 300, "y": 101, "text": "-45,30"},
        {"x": 50, "y": 100, "text": "05/01/2025"},
        {"x": 50, "y": 130, "text": "06/01/2025"},
        {"x": 120, "y": 103.5, "text": "CB CARREFOUR"},
        {"x": 120, "y": 131, "text": " "},
    ]
    lines = DocumentTransformer().reconstruct_lines(tokens)
    assert lines == ["05/01/2025 CB CARREFOUR -45,30", "06/01/2025"]


def test_reconstruct_lines_tolerance_is_strict():
    tokens = [{"x": 0, "y": 100, "text": "a"}, {"x": 10, "y": 105, "text": "b"}]
    assert DocumentTransformer().reconstruct_lines(tokens) == ["a", "b"]
    assert DocumentTransformer(y_tolerance=6).reconstruct_lines(tokens) == ["a b"]


# ─────────────────────────────────────────────────────────────
# Primary pass
# ─────────────────────────────────────────────────────────────

def test_transform_statement_page():
    txs = DocumentTransformer().transform(_payload([_statement_page()]))
    assert [(tx.date, tx.label, tx.amount_minor) for tx in txs] == [
        (date(2025, 1, 5), "CB CARREFOUR MARKET", -4530),
        (date(2025, 1, 6), "VIREMENT SALAIRE", 320000),
    ]
    assert all(tx.source == "pdf" and tx.id.startswith("tx_pdf_") for tx in txs)


def test_transform_across_pages_dedupes():
    page = token_line(100, "05/01/2025", "CB", "CARREFOUR", "-45,30")
    txs = DocumentTransformer().transform(_payload([page, list(page)]))
    assert len(txs) == 1


def test_mapper_applied():
    mapper = CategoryMapper()
    txs = DocumentTransformer(mapper).transform(_payload([_statement_page()]))
    assert txs[0].category == "groceries"


@pytest.mark.parametrize("line, expected", [
    ("05/01/2025 CB CARREFOUR -45,30", (date(2025, 1, 5), "CB CARREFOUR", -4530)),
    ("05.01.2025 PRLV EDF 60,00 €", (date(2025, 1, 5), "PRLV EDF", 6000)),
    ("05/01/25 RETRAIT DAB -40,00", (date(2025, 1, 5), "RETRAIT DAB", -4000)),
    ("5 janv. 2025 ACHAT FNAC -1 299,00", (date(2025, 1, 5), "ACHAT FNAC", -129900)),
    ("1er février 2025 VIR LOYER -950,00", (date(2025, 2, 1), "VIR LOYER", -95000)),
    ("CB AMAZON 05/01/2025 -12.99 EUR", (date(2025, 1, 5), "CB AMAZON", -1299)),
    ("05/01/2025 PAYPAL 1,234.56", (date(2025, 1, 5), "PAYPAL", 123456)),
    ("05/01/2025 PRLV EDF 60,00 1 174,56", (date(2025, 1, 5), "PRLV EDF", 6000)),
    ("05/01/2025 CB FNAC 25,00 -1 174,56", (date(2025, 1, 5), "CB FNAC", -2500)),
    ("05.01.2025 06.01.2025 CB CARREFOUR 45,30", (date(2025, 1, 5), "CB CARREFOUR", 4530)),
    ("05/01/2025 06/01/2025 CB CARREFOUR -45,30", (date(2025, 1, 5), "CB CARREFOUR", -4530)),
])
def test_parse_line(line, expected):
    tx = DocumentTransformer().parse_line(line)
    assert (tx.date, tx.label, tx.amount_minor) == expected


@pytest.mark.parametrize("line", [
    "",
    "Date Libellé Débit Crédit",
    "CB CARREFOUR -45,30",
    "05/01/2025 CB CARREFOUR",
    "05/01/2025 AB -45,30",
    "31/01/2025 SOLDE CREDITEUR 1 234,56",
    "05/01/2025 TOTAL DES OPERATIONS 500,00",
    "32/01/2025 CB CARREFOUR -45,30",
    "05/01/2025 CB CARREFOUR 0,00",
])
def test_parse_line_rejects(line):
    assert DocumentTransformer().parse_line(line) is None


def test_amount_over_sanity_ceiling_is_rejected():
    transformer = DocumentTransformer()
    assert transformer.parse_line("08/01/2025 REF DOSSIER 12345678901,00") is None
    assert DocumentTransformer(sanity_ceiling_minor=10 ** 15).parse_line(
        "08/01/2025 REF DOSSIER 12345678901,00").amount_minor == 1234567890100


@pytest.mark.parametrize("amounts, expected", [
    ([-6000, 150000], -6000),
    ([6000, -2000], -6000),
    ([6000, 117456], 6000),
    ([0, 2500], 2500),
    ([4500, 0], 4500),
    ([4500], 4500),
    ([], None),
])
def test_pick_amount(amounts, expected):
    assert DocumentTransformer()._pick_amount(amounts) == expected


# ─────────────────────────────────────────────────────────────
# Fallback tiers
# ─────────────────────────────────────────────────────────────

def test_global_pattern_when_lines_are_split():
    tokens = [
        {"x": 50, "y": 100, "text": "12/01/2025"},
        {"x": 50, "y": 120, "text": "ABONNEMENT"},
        {"x": 50, "y": 140, "text": "NETFLIX"},
        {"x": 50, "y": 160, "text": "-15,99"},
    ]
    txs = DocumentTransformer().transform(_payload([tokens]))
    assert [(tx.date, tx.label, tx.amount_minor) for tx in txs] == [
        (date(2025, 1, 12), "ABONNEMENT NETFLIX", -1599),
    ]


def test_global_pattern_drops_currency_tokens():
    tokens = [
        {"x": 50, "y": 100, "text": "12/01/2025"},
        {"x": 50, "y": 120, "text": "ABONNEMENT NETFLIX"},
        {"x": 50, "y": 140, "text": "EUR"},
        {"x": 50, "y": 160, "text": "-15,99"},
    ]
    transformer = DocumentTransformer()
    txs = transformer.transform(_payload([tokens]))
    assert [tx.label for tx in txs] == ["ABONNEMENT NETFLIX"]
    same_line = transformer.parse_line("12/01/2025 ABONNEMENT NETFLIX EUR -15,99")
    assert txs[0].id == same_line.id


def test_global_pattern_rejects_three_digit_year():
    assert DocumentTransformer().parse_text_globally("05/01/202 CB CARREFOUR -45,30") == []
    assert len(DocumentTransformer().parse_text_globally("05/01/25 CB CARREFOUR -45,30")) == 1


def test_flat_page_text_is_last_resort():
    payload = _payload(
        [[]],
        page_texts=["Relevé de compte\n15/01/2025 CB PHARMACIE -12,40\nPage 1 sur 1"],
    )
    txs = DocumentTransformer().transform(payload)
    assert [(tx.date, tx.label, tx.amount_minor) for tx in txs] == [
        (date(2025, 1, 15), "CB PHARMACIE", -1240),
    ]


def test_fallback_not_used_when_primary_succeeds():
    payload = _payload(
        [token_line(100, "05/01/2025", "CB", "CARREFOUR", "-45,30")],
        page_texts=["15/01/2025 CB PHARMACIE -12,40"],
    )
    txs = DocumentTransformer().transform(payload)
    assert [tx.label for tx in txs] == ["CB CARREFOUR"]


def test_nothing_found_returns_empty():
    payload = _payload([token_line(100, "Aucune", "opération")], page_texts=["Aucune opération"])
    assert DocumentTransformer().transform(payload) == []


# ─────────────────────────────────────────────────────────────
# Async entry point
# ─────────────────────────────────────────────────────────────

def test_parse_document_async(monkeypatch):
    payload = _payload([_statement_page()])
    monkeypatch.setattr(PDFParser, "parse", lambda self, data: payload)
    txs = asyncio.run(parse_document(b"%PDF-1.4 stub"))
    assert len(txs) == 2


def test_parse_document_corrupt_bytes():
    with pytest.raises(DocumentDecodeError):
        asyncio.run(parse_document(b"definitely not a pdf"))


def test_parse_document_empty_bytes():
    with pytest.raises(DocumentDecodeError):
        asyncio.run(parse_document(b""))
