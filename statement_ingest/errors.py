"""
Error taxonomy for statement ingestion.

Row- and line-level problems are never raised to callers; they are skipped
where they happen. Only the two errors below cross the package boundary.
"""


class InvalidAmountError(ValueError):
    """Raised when a non-empty string cannot be read as a monetary amount."""

    def __init__(self, raw: str, reason: str = "unparseable amount"):
        self.raw = raw
        self.reason = reason
        super().__init__(f"{reason}: {raw!r}")


class DocumentDecodeError(Exception):
    """Raised when document bytes are unreadable or corrupt. No partial results."""
