"""
Utility functions and constants for receipt text parsing.
"""

import hashlib
import datetime as dt
from pathlib import Path
from typing import Optional

# File type constants
IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".webp"}
PDF_EXTS = {".pdf"}

# Currency detection
CURRENCY_SYMBOLS = {"£": "GBP", "$": "USD", "€": "EUR"}
DEFAULT_CURRENCY = "USD"

# Lines containing any of these never become line items
ITEM_REJECT_KEYWORDS = ("total", "subtotal", "tax", "vat", "change", "paid")

# Item names must be longer than this after trimming
MIN_ITEM_NAME_LENGTH = 3

# Address candidates are taken from lines[1:4] (the merchant line is skipped)
ADDRESS_WINDOW = (1, 4)
ADDRESS_MIN_LENGTH = 10
STREET_KEYWORDS = ("street", "road", "lane", "avenue", "st", "rd", "ave", "ln")

# Pattern constants for parsing
DATE_PATTERN = r"\d{1,2}[-/.]\d{1,2}[-/.]\d{2,4}"
TIME_PATTERN = r"\d{1,2}:\d{2}"
AMOUNT_PATTERN = r"\d+[.,]\d{2}"

LINE_BREAK_PATTERN = r"\r\n|\r|\n"


def normalize_amount(s: Optional[str]) -> str:
    """Normalize an amount string to use '.' as the decimal separator."""
    if not s:
        return ""
    return s.strip().replace(",", ".")


def amount_to_float(s: Optional[str]) -> Optional[float]:
    """Convert a normalized amount string to float, or None if it is empty."""
    if not s:
        return None
    try:
        return float(normalize_amount(s))
    except ValueError:
        return None


def sha1_file(path: Path) -> str:
    """Calculate SHA1 hash of file."""
    h = hashlib.sha1()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def sha1_text(text: str) -> str:
    """Calculate SHA1 hash of a text payload (used when no source file exists)."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def compute_receipt_fingerprint(date: Optional[str], merchant: Optional[str], total: Optional[str]) -> str:
    """Create a fingerprint for duplicate detection based on date, merchant, and total."""
    amount = amount_to_float(total)
    parts = [
        date or "",
        (merchant or "").strip().lower(),
        f"{amount:.2f}" if amount is not None else ""
    ]
    fingerprint_str = "|".join(parts)
    return hashlib.sha256(fingerprint_str.encode()).hexdigest()


def now_iso() -> str:
    """Current UTC timestamp in ISO format (seconds precision)."""
    return dt.datetime.now(dt.timezone.utc).replace(microsecond=0).isoformat()
