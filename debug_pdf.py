"""
Debug script to show what the document parser sees in a statement PDF.

Usage: python debug_pdf.py statement.pdf
"""
import sys

from statement_ingest.config import configure_logging
from statement_ingest.document import DocumentTransformer
from statement_ingest.extract import PDFParser
from statement_ingest.money import format_amount

if len(sys.argv) != 2:
    print("Usage: python debug_pdf.py <statement.pdf>")
    sys.exit(1)

configure_logging("DEBUG")

with open(sys.argv[1], "rb") as f:
    payload = PDFParser().parse(f.read())

transformer = DocumentTransformer()
print(f"Total pages: {payload['page_count']}  hash: {payload['document_hash'][:12]}")

for page_num, tokens in enumerate(payload["pages"][:2], 1):  # First 2 pages
    print(f"\n{'='*60}")
    print(f"PAGE {page_num} ({len(tokens)} tokens)")
    print(f"{'='*60}")
    for i, line in enumerate(transformer.reconstruct_lines(tokens)[:40]):
        print(f"[{i}] {line}")

print(f"\n--- Parsed transactions ---")
for tx in transformer.transform(payload):
    print(f"{tx.date.isoformat()}  {tx.label[:40]:<40} {format_amount(tx.amount_minor):>12}  {tx.id}")
