import pytest

from statement_ingest.errors import DocumentDecodeError
from statement_ingest.extract import DelimitedParser, ParserFactory, PDFParser


@pytest.mark.parametrize("line, expected", [
    ("a;b;c", ";"),
    ("a,b,c", ","),
    ("a\tb\tc", "\t"),
    ("a|b|c", "|"),
    ('"a;b",c', ","),
    ("a;b,c", ";"),
    ("abc", ";"),
])
def test_detect_delimiter(line, expected):
    assert DelimitedParser.detect_delimiter(line) == expected


def test_delimited_parse_skips_blank_lines_and_bom():
    rows = DelimitedParser().parse("\ufeffa;b\n\nc;d;e\n")
    assert rows == [["a", "b"], ["c", "d", "e"]]


def test_delimited_parse_respects_quotes():
    rows = DelimitedParser().parse('"01/02/2025","Coffee, large","-3.50"\n')
    assert rows == [["01/02/2025", "Coffee, large", "-3.50"]]


def test_delimited_parse_trims_trailing_empty_cells():
    rows = DelimitedParser().parse("03/01/2025;CB Boulangerie;85,50;;\n")
    assert rows == [["03/01/2025", "CB Boulangerie", "85,50"]]


def test_delimited_parse_empty():
    assert DelimitedParser().parse("") == []
    assert DelimitedParser().parse("\n \n") == []


def test_parser_factory():
    assert isinstance(ParserFactory.get_parser("PDF"), PDFParser)
    assert isinstance(ParserFactory.get_parser("csv"), DelimitedParser)
    assert isinstance(ParserFactory.get_parser("txt"), DelimitedParser)
    assert isinstance(ParserFactory.get_parser(".pdf"), PDFParser)
    with pytest.raises(ValueError):
        ParserFactory.get_parser("docx")


def test_pdf_parser_rejects_empty_bytes():
    with pytest.raises(DocumentDecodeError):
        PDFParser().parse(b"")


def test_pdf_parser_wraps_decoder_failure():
    with pytest.raises(DocumentDecodeError) as excinfo:
        PDFParser().parse(b"this is not a pdf at all")
    assert excinfo.value.__cause__ is not None


def test_get_hash_is_sha256():
    assert PDFParser().get_hash(b"abc") == \
        "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
