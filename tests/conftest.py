"""Shared fixtures: an in-memory store, a pipeline bound to it, sample exports."""
from datetime import date

import pytest

from statement_ingest.identity import make_transaction
from statement_ingest.pipeline import ImportPipeline
from statement_ingest.store import InMemoryStore

SAMPLE_CSV = (
    "Date;Libellé;Montant\n"
    "01/01/2025;Virement salaire;3200,00\n"
    "02/01/2025;Loyer Habitat;-950,00\n"
)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def pipeline(store):
    return ImportPipeline(store, account_id="checking")


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV


@pytest.fixture
def monthly_netflix():
    """Four monthly 15.99 charges, 5th of January to April 2025."""
    return [
        make_transaction(date(2025, month, 5), "PRLV NETFLIX ABONNEMENT", -1599, "csv")
        for month in (1, 2, 3, 4)
    ]


def token_line(y, *texts, x0=50.0, step=60.0):
    """Positioned tokens for one visual line, left to right."""
    return [{"x": x0 + i * step, "y": y, "text": t} for i, t in enumerate(texts)]
