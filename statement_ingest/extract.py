import hashlib
import io
import logging
from abc import ABC, abstractmethod
from typing import List, Any

import pandas as pd
import pdfplumber

from .config import Config
from .errors import DocumentDecodeError
from .schema import ExtractionPayload, Token

DELIMITERS = [';', ',', '\t', '|']


class BaseParser(ABC):
    @abstractmethod
    def parse(self, data: Any) -> Any:
        pass

    def get_hash(self, data: bytes) -> str:
        sha256_hash = hashlib.sha256()
        for offset in range(0, len(data), 4096):
            sha256_hash.update(data[offset:offset + 4096])
        return sha256_hash.hexdigest()


class PDFParser(BaseParser):
    def parse(self, data: bytes) -> ExtractionPayload:
        """
        Decode a PDF into positioned tokens, page by page:
        {
            "document_hash": "...",
            "pages": [[{"x": 56.7, "y": 112.0, "text": "05/01/2025"}, ...], ...],
            "page_texts": ["flat text of page 1", ...],
            "page_count": 2
        }

        Raises:
            DocumentDecodeError: empty, unreadable or corrupt bytes.
        """
        if not data:
            raise DocumentDecodeError("Empty document")

        pages: List[List[Token]] = []
        page_texts: List[str] = []
        document_hash = self.get_hash(data)

        logging.info(f"Extracting PDF tokens: {document_hash[:12]} ({len(data)} bytes)")
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                for page in pdf.pages:
                    words = page.extract_words()
                    pages.append([
                        {"x": float(w["x0"]), "y": float(w["top"]), "text": w["text"]}
                        for w in words
                        if w.get("text", "").strip()
                    ])
                    page_texts.append(page.extract_text() or "")
        except Exception as exc:
            raise DocumentDecodeError(f"Could not decode document: {exc}") from exc

        logging.info(f"Decoded {len(pages)} page(s), {sum(len(p) for p in pages)} token(s)")
        return {
            "document_hash": document_hash,
            "pages": pages,
            "page_texts": page_texts,
            "page_count": len(pages),
        }


class DelimitedParser(BaseParser):
    def parse(self, data: str) -> List[List[str]]:
        """
        Split delimited text into rows of stripped cells (quote-aware).

        Ragged rows are kept at their real width; trailing empty cells are
        dropped so callers can reason about the true cell count.
        """
        text = (data or "").lstrip("\ufeff")
        lines = [line for line in text.splitlines() if line.strip()]
        if not lines:
            return []

        delimiter = self.detect_delimiter(lines[0])
        width = max(line.count(delimiter) for line in lines) + 1
        try:
            df = pd.read_csv(
                io.StringIO(text),
                sep=delimiter,
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
                quotechar='"',
            )
            raw_rows = df.fillna("").values.tolist()
        except pd.errors.ParserError as exc:
            logging.warning(f"Quote-aware read failed ({exc}); splitting lines naively")
            raw_rows = [line.split(delimiter) for line in lines]

        rows = []
        for raw in raw_rows:
            cells = [str(cell).strip() for cell in raw]
            while cells and cells[-1] == "":
                cells.pop()
            if cells:
                rows.append(cells)
        return rows

    @staticmethod
    def detect_delimiter(line: str) -> str:
        """Most frequent candidate outside quotes; ';' wins ties."""
        counts = {d: 0 for d in DELIMITERS}
        in_quotes = False
        for ch in line:
            if ch == '"':
                in_quotes = not in_quotes
            elif not in_quotes and ch in counts:
                counts[ch] += 1
        best = max(DELIMITERS, key=lambda d: counts[d])
        return best if counts[best] else ';'


class ParserFactory:
    @staticmethod
    def get_parser(file_type: str) -> BaseParser:
        ft = file_type.lower().lstrip('.')
        if ft not in Config.ALLOWED_EXTENSIONS:
            raise ValueError(f"Unsupported file type: {file_type}")
        if ft == 'pdf':
            return PDFParser()
        return DelimitedParser()
