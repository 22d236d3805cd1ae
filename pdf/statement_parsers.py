from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from trading.currencies import KNOWN_CODES

# Canonical field names produced by every parser
FIELDS = (
    "execution_time",
    "instrument",
    "isin",
    "order_currency",
    "direction",
    "quantity",
    "price",
    "transaction_value",
    "transaction_currency",
    "exchange_rate",
    "profit_loss",
    "total",
)

TIMESTAMP_PREFIX_RE = re.compile(
    r"^(\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}(?::\d{2})?|\d{2}\.\d{2}\.\d{4} \d{2}:\d{2}(?::\d{2})?)(?=\s|$)"
)
ISIN_RE = re.compile(r"^[A-Z]{2}[A-Z0-9]{9}\d$")
NUMBER_TOKEN_RE = re.compile(r"^[+\-\u2212]?\d[\d.,']*$")
TICKER_RE = re.compile(r"^[A-Z][A-Z0-9.\-]{0,11}$")
DIRECTION_TOKENS = {"купи", "продай", "buy", "sell"}
NON_TICKER_TOKENS = {"OTC"}


def canonical_row(cells: Mapping[str, str]) -> Dict[str, object]:
    """Every field in ``FIELDS`` order; columns the layout lacks are blank."""
    return {name: cells.get(name, "") for name in FIELDS}


@dataclass(frozen=True)
class RawRow:
    """One statement row as extracted, before any parsing of its values."""

    index: int
    page_index: int
    source: str
    fields: Mapping[str, str] = field(default_factory=dict)


class StatementParser(ABC):
    """Base interface for broker statement layouts."""

    name: str = "BASE"
    version: str = "0.1.0"

    @abstractmethod
    def supports(self, extracted: Dict[str, object]) -> bool:
        """Return True if this parser can read the extracted pages."""
        raise NotImplementedError

    @abstractmethod
    def normalize_rows(self, extracted: Dict[str, object]) -> List[Dict[str, object]]:
        """Return canonical rows (field name -> cell text, plus page_index).
        An empty list lets the registry fall back to the next parser.
        """
        raise NotImplementedError


class ParserRegistry:
    def __init__(self, parsers: Optional[List[StatementParser]] = None) -> None:
        self.parsers = parsers or []

    def parse(self, extracted: Dict[str, object]) -> tuple[Optional[StatementParser], List[Dict[str, object]]]:
        """Run parsers in priority order; the first one producing rows wins."""
        for p in self.parsers:
            if not p.supports(extracted):
                continue
            rows = p.normalize_rows(extracted)
            if rows:
                return p, rows
        return None, []


class TableStatementParser(StatementParser):
    """Reads ruled statement tables whose first row carries column headers."""

    name = "TABLE"
    version = "0.1.0"

    header_synonyms = {
        "execution_time": {"време на изпълнение", "време", "дата", "execution time", "time", "date"},
        "instrument": {"инструмент", "instrument", "ticker", "symbol"},
        "isin": {"isin"},
        "order_currency": {"валута на поръчката", "order currency"},
        "direction": {"посока", "direction", "side", "type"},
        "quantity": {"количество", "quantity", "shares", "no. of shares"},
        "price": {"цена", "price", "price / share"},
        "transaction_value": {"стойност на транзакцията", "стойност", "transaction value", "value"},
        "transaction_currency": {"валута на транзакцията", "transaction currency", "currency"},
        "exchange_rate": {"обменен курс", "валутен курс", "курс", "exchange rate", "fx rate"},
        "profit_loss": {"реализирана печалба/загуба", "печалба/загуба", "realized p/l", "realised p/l", "result", "p/l"},
        "total": {"общо", "total"},
    }

    # Substring fallbacks, checked in order; longer phrases first
    header_fragments = (
        ("isin", "isin"),
        ("поръчка", "order_currency"),
        ("order curr", "order_currency"),
        ("валута на транзакц", "transaction_currency"),
        ("transaction curr", "transaction_currency"),
        ("печалба", "profit_loss"),
        ("загуба", "profit_loss"),
        ("p/l", "profit_loss"),
        ("стойност", "transaction_value"),
        ("value", "transaction_value"),
        ("курс", "exchange_rate"),
        ("exchange", "exchange_rate"),
        ("време", "execution_time"),
        ("time", "execution_time"),
        ("посока", "direction"),
        ("direction", "direction"),
        ("количество", "quantity"),
        ("quantity", "quantity"),
        ("цена", "price"),
        ("price", "price"),
        ("инструмент", "instrument"),
        ("instrument", "instrument"),
        ("общо", "total"),
        ("total", "total"),
    )

    required = {"execution_time", "direction", "profit_loss"}

    def canon(self, cell: Optional[str]) -> Optional[str]:
        if cell is None:
            return None
        t = " ".join(str(cell).split()).lower()
        if not t:
            return None
        for key, values in self.header_synonyms.items():
            if t in values:
                return key
        for fragment, key in self.header_fragments:
            if fragment in t:
                return key
        return None

    def header_mapping(self, header: Sequence[str]) -> Dict[int, str]:
        mapping: Dict[int, str] = {}
        for idx, cell in enumerate(header):
            key = self.canon(cell)
            if key and key not in mapping.values():
                mapping[idx] = key
        return mapping

    def supports(self, extracted: Dict[str, object]) -> bool:
        return any(tables for tables in extracted.get("page_tables") or [])

    def normalize_rows(self, extracted: Dict[str, object]) -> List[Dict[str, object]]:
        page_tables = extracted.get("page_tables") or []
        result: List[Dict[str, object]] = []
        # Tables continued on a following page usually repeat no header
        last_mapping: Optional[Dict[int, str]] = None
        last_width = 0
        for page_index, tables in enumerate(page_tables):
            for table in tables:
                if not table:
                    continue
                mapping = self.header_mapping(table[0])
                if self.required.issubset(mapping.values()):
                    body = table[1:]
                    last_mapping, last_width = mapping, len(table[0])
                elif last_mapping is not None and len(table[0]) == last_width:
                    mapping, body = last_mapping, table
                else:
                    continue
                for raw_row in body:
                    row = self._map_row(raw_row, mapping)
                    # Sub-headers, totals and wrapped text lines carry no timestamp
                    if not TIMESTAMP_PREFIX_RE.match(str(row.get("execution_time") or "")):
                        continue
                    row["page_index"] = page_index
                    result.append(row)
        return result

    @staticmethod
    def _map_row(raw_row: Sequence[str], mapping: Dict[int, str]) -> Dict[str, object]:
        cells: Dict[str, str] = {}
        for idx, key in mapping.items():
            if idx >= len(raw_row):
                continue
            cells[key] = " ".join(str(raw_row[idx] or "").split())
        return canonical_row(cells)


class TokenStatementParser(StatementParser):
    """Reads rows reconstructed from positioned words when no table is detected.

    A row is a transaction when its text starts with an execution timestamp and it
    carries a buy/sell marker. Numbers are taken in column order: quantity, price, transaction value, [exchange rate], P/L, total.
    """

    name = "TOKENS"
    version = "0.1.0"

    def supports(self, extracted: Dict[str, object]) -> bool:
        return any(rows for rows in extracted.get("page_rows") or [])

    def normalize_rows(self, extracted: Dict[str, object]) -> List[Dict[str, object]]:
        result: List[Dict[str, object]] = []
        for page_index, rows in enumerate(extracted.get("page_rows") or []):
            for tokens in rows:
                row = self.parse_tokens(tokens)
                if row is None:
                    continue
                row["page_index"] = page_index
                result.append(row)
        return result

    def parse_tokens(self, tokens: Sequence[str]) -> Optional[Dict[str, object]]:
        text = " ".join(tokens)
        match = TIMESTAMP_PREFIX_RE.match(text)
        if not match:
            return None
        rest = text[match.end():].split()

        # Deposits, dividends and interest lines carry no buy/sell marker
        direction = next((t for t in rest if t.lower() in DIRECTION_TOKENS), "")
        if not direction:
            return None
        currencies = [t for t in rest if t in KNOWN_CODES]

        isin = next((t for t in rest if ISIN_RE.match(t)), "")
        instrument = next(
            (
                t
                for t in rest
                if TICKER_RE.match(t)
                and t not in KNOWN_CODES
                and t not in NON_TICKER_TOKENS
                and t != isin
                and t.lower() not in DIRECTION_TOKENS
            ),
            "",
        )
        numbers = [t for t in rest if NUMBER_TOKEN_RE.match(t)]

        cells: Dict[str, str] = {
            "execution_time": match.group(1),
            "instrument": instrument,
            "isin": isin,
            "order_currency": currencies[0] if currencies else "",
            "direction": direction,
            "transaction_currency": currencies[-1] if currencies else "",
        }
        cells.update(self._assign_numbers(numbers))
        return canonical_row(cells)

    @staticmethod
    def _assign_numbers(numbers: List[str]) -> Dict[str, str]:
        assigned: Dict[str, str] = {}
        if len(numbers) >= 2:
            assigned["profit_loss"] = numbers[-2]
            assigned["total"] = numbers[-1]
        head = numbers[:-2]
        for name, value in zip(("quantity", "price", "transaction_value", "exchange_rate"), head):
            assigned[name] = value
        return assigned


def default_registry() -> ParserRegistry:
    return ParserRegistry(parsers=[TableStatementParser(), TokenStatementParser()])


__all__ = [
    "FIELDS",
    "ParserRegistry",
    "RawRow",
    "StatementParser",
    "TableStatementParser",
    "TokenStatementParser",
    "canonical_row",
    "default_registry",
]
