"""
Parsers for extracting structured fields from raw receipt OCR text.

Each extractor is an independent function over either the whole text or the
normalized line list; parse_receipt() composes them into a ParsedReceipt.
Nothing here performs I/O or keeps state between calls.
"""

import re
from functools import lru_cache
from typing import Optional, List, Iterable

from .config import ParserConfig, DEFAULT_CONFIG
from .models import LineItem, ParsedReceipt
from .utils import (CURRENCY_SYMBOLS, DEFAULT_CURRENCY, DATE_PATTERN, TIME_PATTERN,
                    AMOUNT_PATTERN, LINE_BREAK_PATTERN, normalize_amount)

DATE_RE = re.compile(DATE_PATTERN)
TIME_RE = re.compile(TIME_PATTERN)
LINE_BREAK_RE = re.compile(LINE_BREAK_PATTERN)
NUMERIC_NOISE_RE = re.compile(r"^[\d\s]+$")

# Keyword prefixes for the labeled amounts. A "total" match that carries a
# "sub" prefix (any run of spaces/dashes in between) belongs to the subtotal.
TOTAL_KEYWORD = r"(?P<sub>sub[\s-]*)?(?<![a-z])total"
SUBTOTAL_KEYWORD = r"sub[\s-]*total"
TAX_KEYWORD = r"(?:tax|vat)"


@lru_cache(maxsize=32)
def _symbol_class(symbols: str) -> str:
    """Regex character class for the given currency symbols."""
    if not symbols:
        return ""
    return "[" + "".join(re.escape(s) for s in symbols) + "]"


@lru_cache(maxsize=32)
def _labeled_amount_re(keyword: str, symbols: str):
    sym = _symbol_class(symbols)
    optional_symbol = rf"(?:{sym}\s*)?" if sym else ""
    return re.compile(rf"{keyword}[:\s]*{optional_symbol}(?P<amount>{AMOUNT_PATTERN})", re.IGNORECASE)


@lru_cache(maxsize=32)
def _item_re(symbols: str):
    sym = _symbol_class(symbols)
    optional_symbol = rf"(?:{sym}\s*)?" if sym else ""
    # name, optional symbol, price, optional one-letter VAT code, end of line
    return re.compile(
        rf"^(?P<name>.+?)\s*{optional_symbol}(?P<price>{AMOUNT_PATTERN})(?:\s+[A-Za-z])?\s*$"
    )


@lru_cache(maxsize=32)
def _street_re(keywords: tuple):
    if not keywords:
        return None
    alternation = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"(?:{alternation})\b", re.IGNORECASE)


def split_lines(text: str) -> List[str]:
    """Split raw text into trimmed, non-empty lines, preserving order and repeats."""
    if not text:
        return []
    lines = (ln.strip() for ln in LINE_BREAK_RE.split(text))
    return [ln for ln in lines if ln]


def detect_currency(text: str, symbols: Optional[dict] = None,
                    default: str = DEFAULT_CURRENCY) -> str:
    """
    Infer the receipt currency from the first currency symbol in the text.

    The leftmost symbol in raw character order decides, regardless of how
    often other symbols appear. Mixed symbols (often OCR noise) therefore
    resolve to whichever comes first.
    """
    symbols = CURRENCY_SYMBOLS if symbols is None else symbols
    sym = _symbol_class("".join(symbols))
    if not sym or not text:
        return default
    m = re.search(sym, text)
    return symbols[m.group(0)] if m else default


def parse_date(text: str) -> str:
    """
    Return the first date-like substring verbatim.

    Day/month order is neither validated nor normalized; "09-09-2025",
    "9/9/25" and "09.09.2025" are all returned as written.
    """
    m = DATE_RE.search(text or "")
    return m.group(0) if m else ""


def parse_time(text: str) -> str:
    """Return the first HH:MM substring verbatim."""
    m = TIME_RE.search(text or "")
    return m.group(0) if m else ""


def _parse_labeled_amount(keyword: str, text: str, symbols: Iterable[str]) -> str:
    m = _labeled_amount_re(keyword, "".join(symbols)).search(text or "")
    return normalize_amount(m.group("amount")) if m else ""


def parse_total(text: str, symbols: Iterable[str] = CURRENCY_SYMBOLS) -> str:
    """First amount labeled "total" (never a subtotal line)."""
    for m in _labeled_amount_re(TOTAL_KEYWORD, "".join(symbols)).finditer(text or ""):
        if m.group("sub") is None:
            return normalize_amount(m.group("amount"))
    return ""


def parse_subtotal(text: str, symbols: Iterable[str] = CURRENCY_SYMBOLS) -> str:
    """First amount labeled "subtotal"."""
    return _parse_labeled_amount(SUBTOTAL_KEYWORD, text, symbols)


def parse_tax(text: str, symbols: Iterable[str] = CURRENCY_SYMBOLS) -> str:
    """First amount labeled "tax" or "vat"."""
    return _parse_labeled_amount(TAX_KEYWORD, text, symbols)


def is_item_rejected(line: str, keywords: Iterable[str]) -> bool:
    """True if the line mentions a totals/payment keyword and cannot be an item."""
    lowered = line.lower()
    return any(kw.lower() in lowered for kw in keywords)


def parse_item_line(line: str, config: ParserConfig = DEFAULT_CONFIG) -> Optional[LineItem]:
    """
    Parse a single line as "<name> [symbol]<price>".

    Does not apply the keyword rejection; see parse_items().
    """
    m = _item_re("".join(config.currency_symbols)).match(line)
    if not m:
        return None
    name = m.group("name").strip()
    if len(name) < config.min_item_name_length:
        return None
    # Stray numeric OCR noise such as "12 3.50"
    if NUMERIC_NOISE_RE.match(name):
        return None
    return LineItem(name=name, price=normalize_amount(m.group("price")))


def parse_items(lines: List[str], config: ParserConfig = DEFAULT_CONFIG) -> List[LineItem]:
    """
    Extract line items in line order.

    Keyword rejection runs before price matching so that "TOTAL £12.10" is
    never read as an item named "TOTAL".
    """
    items = []
    for ln in lines:
        if is_item_rejected(ln, config.reject_keywords):
            continue
        item = parse_item_line(ln, config)
        if item is not None:
            items.append(item)
    return items


def parse_merchant(lines: List[str]) -> str:
    """The merchant is assumed to be the first line."""
    return lines[0] if lines else ""


def parse_address(lines: List[str], config: ParserConfig = DEFAULT_CONFIG) -> str:
    """
    Join address-looking lines from the early part of the receipt.

    A candidate must contain a digit and either be longer than
    config.address_min_length or mention a street keyword.
    """
    start, end = config.address_window
    street_re = _street_re(tuple(config.street_keywords))
    picked = []
    for ln in lines[start:end]:
        if not re.search(r"\d", ln):
            continue
        if len(ln) > config.address_min_length or (street_re and street_re.search(ln)):
            picked.append(ln)
    return ", ".join(picked)


def parse_receipt(raw_text: Optional[str], config: Optional[ParserConfig] = None) -> ParsedReceipt:
    """
    Parse raw OCR text into a ParsedReceipt.

    Args:
        raw_text: Recognized text. None or blank text yields an all-empty record.
        config: Optional overrides; defaults are used when omitted.

    Returns:
        ParsedReceipt with every field filled best-effort.

    Raises:
        TypeError: raw_text is not a string.
    """
    if raw_text is None:
        raw_text = ""
    if not isinstance(raw_text, str):
        raise TypeError(f"raw_text must be a string, got {type(raw_text).__name__}")
    config = config or DEFAULT_CONFIG

    lines = split_lines(raw_text)
    if not lines:
        return ParsedReceipt(raw_text=raw_text)

    symbols = config.currency_symbols
    return ParsedReceipt(
        merchant_name=parse_merchant(lines),
        address=parse_address(lines, config),
        date=parse_date(raw_text),
        time=parse_time(raw_text),
        currency=detect_currency(raw_text, symbols, config.default_currency),
        subtotal=parse_subtotal(raw_text, symbols),
        tax_amount=parse_tax(raw_text, symbols),
        total=parse_total(raw_text, symbols),
        items=parse_items(lines, config),
        raw_text=raw_text,
    )
