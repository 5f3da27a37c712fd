from statement_ingest.normalize import (
    normalize_id_label,
    normalize_label,
    normalize_recurring_label,
    strip_diacritics,
)


def test_normalize_label_basic():
    assert normalize_label("Loyer Habitat") == "loyer habitat"


def test_normalize_label_strips_accents_and_punctuation():
    assert normalize_label("  Café   Crème!! ") == "cafe creme"
    assert normalize_label("PRÉLÈVEMENT: E.D.F.") == "prelevement edf"


def test_normalize_label_keeps_digits_hyphen_underscore():
    assert normalize_label("PRLV SEPA-EDF_01 REF 4455") == "prlv sepa-edf_01 ref 4455"


def test_normalize_label_is_total():
    assert normalize_label("") == ""
    assert normalize_label(None) == ""
    assert normalize_label("€€€") == ""


def test_strip_diacritics():
    assert strip_diacritics("éèêëàçôü") == "eeeeacou"


def test_normalize_id_label_is_light_and_truncated():
    assert normalize_id_label("  Foo   BAR! ") == "foo bar!"
    assert len(normalize_id_label("x" * 80)) == 50
    assert normalize_id_label("abcdef", max_length=3) == "abc"


def test_recurring_label_drops_dates_and_numbers():
    assert normalize_recurring_label("NETFLIX 12/03/2025 REF 4455") == "netflix ref"
    assert normalize_recurring_label("Prélèvement EDF 03/25") == "prelevement edf"
    assert normalize_recurring_label("FREE MOBILE FACT.0325") == "free mobile fact"


def test_recurring_label_differs_from_fingerprint_label():
    label = "ASSURANCE AUTO 2025 CONTRAT 881"
    assert normalize_label(label) == "assurance auto 2025 contrat 881"
    assert normalize_recurring_label(label) == "assurance auto contrat"


def test_normalize_id_label_counts_utf16_units():
    # The pizza emoji is two UTF-16 units, so 47 letters are left after it and the space
    assert normalize_id_label("\U0001F355 " + "a" * 60) == "\U0001F355 " + "a" * 47


def test_normalize_id_label_can_split_a_surrogate_pair():
    assert normalize_id_label("a" * 49 + "\U0001F355") == "a" * 49 + "\ud83c"
