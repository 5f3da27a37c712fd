"""Determinism check: same export twice, same ids, nothing new the second time"""
from statement_ingest.config import configure_logging
from statement_ingest.pipeline import ImportPipeline
from statement_ingest.store import InMemoryStore

# Sample CSV structure to simulate a French bank export
CSV_CONTENT = """Date;Libellé;Montant
01/01/2026;Virement salaire;3200,00
02/01/2026;Loyer Habitat;-950,00
05/01/2026;CB CARREFOUR MARKET;-45,30"""


def verify_determinism():
    store = InMemoryStore()
    pipeline = ImportPipeline(store, account_id="checking")

    # Run 1
    res1 = pipeline.import_delimited(CSV_CONTENT)
    # Run 2
    res2 = pipeline.import_delimited(CSV_CONTENT)

    ids1 = [tx.id for tx in res1["new"]]
    ids2 = [tx.id for tx in res2["duplicates"]]
    fps1 = [tx.dedupe_hash for tx in res1["new"]]
    fps2 = [tx.dedupe_hash for tx in res2["duplicates"]]

    print("=== DETERMINISM RESULTS ===")
    print(f"First pass new: {len(res1['new'])}")
    print(f"Second pass new: {len(res2['new'])}, duplicates: {len(res2['duplicates'])}")
    print(f"Id Match: {ids1 == ids2}")
    print(f"Fingerprint Match: {fps1 == fps2}")
    print(f"Ledger size: {len(store.get_ledger())}")

    if ids1 == ids2 and fps1 == fps2 and not res2["new"]:
        print("\nOK: ids and fingerprints stable, second import added nothing.")
    else:
        print("\nFAIL: import is not idempotent.")


if __name__ == "__main__":
    configure_logging()
    verify_determinism()
