"""Currency code tables shared by the normalizer, converter and rate providers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet

from settings.config import MINOR_UNIT_RATIO


@dataclass(frozen=True)
class MinorUnit:
    major: str
    ratio: int = MINOR_UNIT_RATIO


# Exchange quote codes for instruments priced in a subdivision of the currency.
# Add an entry here to support a new one.
MINOR_UNITS: Dict[str, MinorUnit] = {
    "GBX": MinorUnit("GBP"),
    "GBp": MinorUnit("GBP"),
    "ZAc": MinorUnit("ZAR"),
    "ILA": MinorUnit("ILS"),
}

MINOR_UNIT_CODES: FrozenSet[str] = frozenset(MINOR_UNITS)

SUPPORTED_CURRENCIES: FrozenSet[str] = frozenset(
    {
        "USD", "EUR", "BGN", "GBP", "CHF", "JPY", "CAD", "AUD", "SEK", "NOK",
        "DKK", "PLN", "CZK", "HUF", "RON", "TRY", "CNY", "BRL", "MXN", "NZD",
        "SGD", "HKD", "KRW", "ZAR", "INR", "ILS",
    }
)

# Codes recognised in statement rows, including minor-unit quotes
KNOWN_CODES: FrozenSet[str] = SUPPORTED_CURRENCIES | MINOR_UNIT_CODES


def major_unit(code: str) -> tuple[str, int]:
    """Return ``(major_code, divisor)``; divisor is 1 for codes already in major units."""
    unit = MINOR_UNITS.get(code)
    if unit is None:
        return code, 1
    return unit.major, unit.ratio


def canonical_code(code: str) -> str:
    """Upper-case a currency code; exact minor-unit keys such as ``GBp`` are kept."""
    code = code.strip()
    if code in MINOR_UNITS:
        return code
    return code.upper()
