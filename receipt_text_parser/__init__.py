"""
Receipt Text Parser

Turns noisy receipt OCR text into a structured record (merchant, address,
date, time, currency, subtotal, tax, total and line items).
"""

__version__ = "1.0.0"
__author__ = "Receipt Text Parser Contributors"

from receipt_text_parser.core.models import LineItem, ParsedReceipt
from receipt_text_parser.core.parsers import parse_receipt

__all__ = ["LineItem", "ParsedReceipt", "parse_receipt"]
