from __future__ import annotations

import asyncio
import hashlib
from io import BytesIO
from typing import Dict, List, Optional

import pdfplumber
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError

from pdf import config
from pdf.json_logger import get_json_logger
from pdf.pdf_pipeline.tokenization import row_texts, words_to_rows
from pdf.statement_parsers import ParserRegistry, RawRow, default_registry
from trading.errors import DocumentUnreadable


class PdfTradingStatementExtractor:
    """
    Extracts raw transaction rows from a broker trading statement PDF.

    Stages: input checks -> optional decryption -> pdfplumber text/table/word
    extraction -> parser registry (tables first, positioned words as fallback).
    Values are left as text; typing happens in the normalizer.
    """

    def __init__(
        self,
        registry: Optional[ParserRegistry] = None,
        *,
        max_pages: int = config.MAX_PAGES,
        max_size_mb: int = config.MAX_PDF_SIZE_MB,
        row_y_tolerance: float = config.ROW_Y_TOLERANCE,
    ) -> None:
        self.registry = registry or default_registry()
        self.max_pages = max_pages
        self.max_bytes = max_size_mb * 1024 * 1024
        self.row_y_tolerance = row_y_tolerance
        self.logger = get_json_logger("trading_statement.pdf")

    async def extract_rows(
        self,
        content: bytes,
        filename: Optional[str] = None,
        password: Optional[str] = None,
    ) -> List[RawRow]:
        # pdfplumber is synchronous and CPU bound
        return await asyncio.to_thread(self.extract_rows_sync, content, filename, password)

    def extract_rows_sync(
        self,
        content: bytes,
        filename: Optional[str] = None,
        password: Optional[str] = None,
    ) -> List[RawRow]:
        self._check_input(content, filename)
        content = self._decrypt_if_needed(content, password, filename)
        extracted = self.extract(content, filename)

        if not any(text.strip() for text in extracted["page_texts"]):
            raise DocumentUnreadable("no text layer found (scanned document?)", filename=filename)

        parser, rows = self.registry.parse(extracted)
        source = parser.name.lower() if parser else "none"
        raw_rows = [
            RawRow(
                index=index,
                page_index=int(row.pop("page_index", 0)),
                source=source,
                fields={key: str(value) for key, value in row.items()},
            )
            for index, row in enumerate(rows)
        ]
        self.logger.info(
            "statement_rows_parsed",
            extra={"extra": {"document_id": extracted["document_id"], "parser": source, "rows": len(raw_rows)}},
        )
        return raw_rows

    def extract(self, content: bytes, filename: Optional[str] = None) -> Dict[str, object]:
        """
        Extract page texts, tables and word rows using pdfplumber. Does not parse values.
        """
        document_id = hashlib.sha256(content).hexdigest()
        page_texts: List[str] = []
        page_tables: List[List[List[List[str]]]] = []
        page_rows: List[List[List[str]]] = []

        try:
            with pdfplumber.open(BytesIO(content)) as pdf:
                pages_count = len(pdf.pages)
                if pages_count > self.max_pages:
                    self.logger.warning(
                        "pdf_pages_exceed_limit",
                        extra={"extra": {"document_id": document_id, "pages": pages_count, "max_pages": self.max_pages}},
                    )
                for page in pdf.pages[: self.max_pages]:
                    page_texts.append(page.extract_text() or "")

                    tables_norm: List[List[List[str]]] = []
                    for table in page.extract_tables() or []:
                        # Normalize cell values to stripped strings
                        tables_norm.append(
                            [[str(cell if cell is not None else "").strip() for cell in row] for row in table]
                        )
                    page_tables.append(tables_norm)

                    words = page.extract_words(x_tolerance=2, y_tolerance=2) or []
                    rows = words_to_rows(words, y_tolerance=self.row_y_tolerance)
                    page_rows.append([row_texts(row) for row in rows])
        except DocumentUnreadable:
            raise
        except Exception as exc:
            raise DocumentUnreadable(f"PDF could not be parsed: {exc}", filename=filename) from exc

        self.logger.info(
            "pdf_extracted",
            extra={"extra": {"document_id": document_id, "filename": filename, "pages": pages_count}},
        )
        return {
            "document_id": document_id,
            "pages_count": pages_count,
            "page_texts": page_texts,
            "page_tables": page_tables,
            "page_rows": page_rows,
        }

    def _check_input(self, content: bytes, filename: Optional[str]) -> None:
        if not content:
            raise DocumentUnreadable("document is empty", filename=filename)
        if len(content) > self.max_bytes:
            raise DocumentUnreadable(
                f"document is {len(content)} bytes, limit is {self.max_bytes}", filename=filename
            )
        if b"%PDF-" not in content[:1024]:
            raise DocumentUnreadable("not a PDF document", filename=filename)

    def _decrypt_if_needed(self, content: bytes, password: Optional[str], filename: Optional[str]) -> bytes:
        """Return plain PDF bytes; encrypted documents need the right password."""
        try:
            reader = PdfReader(BytesIO(content))
            if not reader.is_encrypted:
                return content
        except (PdfReadError, ValueError, KeyError, IndexError) as exc:
            raise DocumentUnreadable(f"PDF could not be loaded: {exc}", filename=filename) from exc

        if not password:
            raise DocumentUnreadable("document is encrypted", filename=filename)
        # pypdf returns 0 on failure
        if reader.decrypt(password) == 0:
            raise DocumentUnreadable("incorrect document password", filename=filename)

        writer = PdfWriter()
        for page in reader.pages:
            writer.add_page(page)
        out = BytesIO()
        writer.write(out)
        return out.getvalue()


__all__ = ["PdfTradingStatementExtractor"]
