"""Turns raw extracted statement rows into typed :class:`Transaction` records."""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from schemas.trading_statement import Direction, Transaction

from .currencies import canonical_code, major_unit
from .errors import MalformedRow

DIRECTION_MARKERS: Dict[str, Direction] = {
    "купи": Direction.BUY,
    "buy": Direction.BUY,
    "b": Direction.BUY,
    "продай": Direction.SELL,
    "sell": Direction.SELL,
    "s": Direction.SELL,
}

TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
)

REQUIRED_NUMBERS = ("quantity", "price", "profit_loss", "total")
MONETARY_FIELDS = ("price", "transaction_value", "profit_loss", "total")

_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_SPACES = str.maketrans("", "", " \t\u00a0\u202f\u2009'")


def parse_number(value: Any) -> Optional[float]:
    """Parse a locale-formatted number. Blank input gives ``None``.

    Accepts space/apostrophe thousands separators and either comma or dot as the
    decimal separator. When both appear the rightmost one is the decimal mark; a
    lone comma is a decimal mark.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().translate(_SPACES).replace("\u2212", "-")
    if not text:
        return None
    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif text.count(",") > 1:
        text = text.replace(",", "")
    elif "," in text:
        text = text.replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")
    if not _NUMBER_RE.match(text):
        raise ValueError(f"not a number: {value!r}")
    return float(text)


def parse_execution_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    text = " ".join(str(value or "").split())
    if not text:
        raise ValueError("missing execution time")
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"unrecognised execution time {text!r}")


def parse_direction(value: Any) -> Direction:
    if isinstance(value, Direction):
        return value
    key = str(value or "").strip().lower()
    try:
        return DIRECTION_MARKERS[key]
    except KeyError:
        raise ValueError(f"unrecognised direction {value!r}") from None


class TransactionNormalizer:
    """Maps raw rows (a ``RawRow`` or any field mapping) to transactions."""

    def normalize(self, raw_row: Any, index: Optional[int] = None) -> Transaction:
        fields = self._fields_of(raw_row)
        if index is None:
            index = getattr(raw_row, "index", None)

        def fail(field: str, exc: Exception) -> MalformedRow:
            return MalformedRow(index, field, str(exc))

        try:
            execution_time = parse_execution_time(fields.get("execution_time"))
        except ValueError as exc:
            raise fail("execution_time", exc) from exc
        try:
            direction = parse_direction(fields.get("direction"))
        except ValueError as exc:
            raise fail("direction", exc) from exc

        numbers: Dict[str, Optional[float]] = {}
        for name in ("quantity", "price", "transaction_value", "exchange_rate", "profit_loss", "total"):
            try:
                numbers[name] = parse_number(fields.get(name))
            except ValueError as exc:
                raise fail(name, exc) from exc
        for name in REQUIRED_NUMBERS:
            if numbers[name] is None:
                raise MalformedRow(index, name, "missing value")
        if numbers["transaction_value"] is None:
            numbers["transaction_value"] = numbers["quantity"] * numbers["price"]

        transaction_currency = canonical_code(_text(fields.get("transaction_currency")))
        if not transaction_currency:
            raise MalformedRow(index, "transaction_currency", "missing value")
        order_currency = canonical_code(_text(fields.get("order_currency"))) or transaction_currency

        # Minor-unit quotes (e.g. GBX pence) become major units before any conversion
        major, divisor = major_unit(transaction_currency)
        if divisor != 1:
            for name in MONETARY_FIELDS:
                numbers[name] = numbers[name] / divisor
            transaction_currency = major

        return Transaction(
            execution_time=execution_time,
            instrument=_text(fields.get("instrument")),
            isin=_text(fields.get("isin")) or None,
            order_currency=order_currency,
            direction=direction,
            quantity=numbers["quantity"],
            price=numbers["price"],
            transaction_value=numbers["transaction_value"],
            transaction_currency=transaction_currency,
            exchange_rate=numbers["exchange_rate"],
            profit_loss=numbers["profit_loss"],
            total=numbers["total"],
        )

    @staticmethod
    def _fields_of(raw_row: Any) -> Mapping[str, Any]:
        fields = getattr(raw_row, "fields", raw_row)
        if not isinstance(fields, Mapping):
            raise MalformedRow(getattr(raw_row, "index", None), None, f"unsupported row type {type(raw_row).__name__}")
        return fields


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


__all__ = [
    "DIRECTION_MARKERS",
    "TransactionNormalizer",
    "parse_direction",
    "parse_execution_time",
    "parse_number",
]
