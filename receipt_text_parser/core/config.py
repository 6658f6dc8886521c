"""
Parser configuration: the overridable knobs of the extraction heuristics.
"""

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, Tuple

from .utils import (CURRENCY_SYMBOLS, DEFAULT_CURRENCY, ITEM_REJECT_KEYWORDS,
                    MIN_ITEM_NAME_LENGTH, ADDRESS_WINDOW, ADDRESS_MIN_LENGTH,
                    STREET_KEYWORDS)


@dataclass(frozen=True)
class ParserConfig:
    """Settings for parse_receipt(). Defaults reproduce the standard behavior."""
    currency_symbols: Dict[str, str] = field(default_factory=lambda: dict(CURRENCY_SYMBOLS))
    default_currency: str = DEFAULT_CURRENCY
    reject_keywords: Tuple[str, ...] = ITEM_REJECT_KEYWORDS
    min_item_name_length: int = MIN_ITEM_NAME_LENGTH
    address_window: Tuple[int, int] = ADDRESS_WINDOW
    address_min_length: int = ADDRESS_MIN_LENGTH
    street_keywords: Tuple[str, ...] = STREET_KEYWORDS

    def __post_init__(self):
        if len(self.address_window) != 2:
            raise ValueError(f"Invalid address window: {self.address_window}")
        start, end = self.address_window
        if start < 0 or end < start:
            raise ValueError(f"Invalid address window: {self.address_window}")
        if any(len(sym) != 1 for sym in self.currency_symbols):
            raise ValueError("Currency symbols must be single characters")


DEFAULT_CONFIG = ParserConfig()

# JSON type each config key must have in a config file
_JSON_TYPES = {
    "currency_symbols": dict,
    "default_currency": str,
    "reject_keywords": list,
    "min_item_name_length": int,
    "address_window": list,
    "address_min_length": int,
    "street_keywords": list,
}


def load_parser_config(path: Path) -> ParserConfig:
    """
    Load parser overrides from a JSON file.

    Example file:
        {
          "currency_symbols": {"£": "GBP", "$": "USD", "€": "EUR", "¥": "JPY"},
          "default_currency": "EUR",
          "address_window": [1, 5]
        }

    A missing file yields the defaults.
    """
    if not path.exists():
        return DEFAULT_CONFIG
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Parser config in {path} must be a JSON object")

    known = {f.name for f in fields(ParserConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown parser config key(s) in {path}: {', '.join(unknown)}")

    for key, value in data.items():
        expected = _JSON_TYPES[key]
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ValueError(f"Invalid value for {key!r} in {path}: expected {expected.__name__}, "
                             f"got {type(value).__name__}")
        if key.endswith("_keywords") and not all(isinstance(kw, str) for kw in value):
            raise ValueError(f"Invalid value for {key!r} in {path}: keywords must be strings")
        # JSON has no tuples
        if expected is list:
            data[key] = tuple(value)

    try:
        return ParserConfig(**data)
    except TypeError as e:
        raise ValueError(f"Invalid parser config in {path}: {e}") from e
