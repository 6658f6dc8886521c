"""
Data models for parsed receipts.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any


@dataclass
class LineItem:
    """A product/service line detected on a receipt."""
    name: str
    price: str

    def to_dict(self):
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class ParsedReceipt:
    """
    Structured record extracted from raw OCR text.

    Every field is best-effort: a value that could not be found is an empty
    string (or an empty item list), never None.
    """
    merchant_name: str = ""
    address: str = ""
    date: str = ""
    time: str = ""
    currency: str = ""
    subtotal: str = ""
    tax_amount: str = ""
    total: str = ""
    items: List[LineItem] = field(default_factory=list)
    raw_text: str = ""

    @property
    def company_name(self) -> str:
        return self.merchant_name

    def to_dict(self, include_aliases: bool = False) -> Dict[str, Any]:
        """
        Convert to the upload API record shape.

        Args:
            include_aliases: Also emit the legacy list/alias keys (dates, times,
                currencies, subtotal_amount, total_amount, amount_paid, tax_vat,
                change, plus the empty payment/phone placeholders) that older
                clients of the upload endpoint read.
        """
        data = {
            "company_name": self.merchant_name,
            "merchant_name": self.merchant_name,
            "address": self.address,
            "date": self.date,
            "time": self.time,
            "currency": self.currency,
            "subtotal": self.subtotal,
            "tax_amount": self.tax_amount,
            "total": self.total,
            "items": [item.to_dict() for item in self.items],
            "raw_text": self.raw_text,
        }
        if include_aliases:
            data.update({
                "dates": [self.date] if self.date else [],
                "times": [self.time] if self.time else [],
                "currencies": [self.currency],
                "subtotal_amount": self.subtotal,
                "total_amount": self.total,
                "amount_paid": self.total,
                "tax_vat": [{"amount": self.tax_amount}] if self.tax_amount else [],
                "change": "0.00",
                # Not extracted; kept so older clients find every key
                "phone": "",
                "transaction_id": "",
                "payment_method": "",
                "card_number": "",
                "transaction_status": "Completed",
            })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ParsedReceipt":
        """Rebuild a record from a dict produced by to_dict() or read from storage."""
        items = [
            LineItem(name=str(it.get("name", "")), price=str(it.get("price", "")))
            for it in data.get("items") or []
        ]
        # company_name is only a fallback; an explicit merchant_name wins even when empty
        merchant = data["merchant_name"] if "merchant_name" in data else data.get("company_name")
        return cls(
            merchant_name=merchant or "",
            address=data.get("address") or "",
            date=data.get("date") or "",
            time=data.get("time") or "",
            currency=data.get("currency") or "",
            subtotal=data.get("subtotal") or "",
            tax_amount=data.get("tax_amount") or "",
            total=data.get("total") or "",
            items=items,
            raw_text=data.get("raw_text") or "",
        )


@dataclass
class StoredReceipt:
    """A parsed receipt as persisted in the receipt store."""
    id: int
    user_id: Optional[int]
    processed_at: str
    source_file: str
    file_hash: str
    receipt: ParsedReceipt

    def to_dict(self) -> Dict[str, Any]:
        data = self.receipt.to_dict()
        data.update({
            "id": self.id,
            "user_id": self.user_id,
            "processed_at": self.processed_at,
            "source_file": self.source_file,
            "file_hash": self.file_hash,
        })
        return data


SORT_KEYS = ("id", "processed_at", "merchant_name", "total", "date")


@dataclass
class ReceiptFilter:
    """Query options for listing stored receipts."""
    user_id: Optional[int] = None
    search: str = ""
    processed_from: Optional[str] = None
    processed_to: Optional[str] = None
    sort_key: str = "processed_at"
    descending: bool = True
    limit: int = 100
    offset: int = 0
    include_deleted: bool = False

    def __post_init__(self):
        if self.sort_key not in SORT_KEYS:
            raise ValueError(f"Unsupported sort key: {self.sort_key} (choose from {', '.join(SORT_KEYS)})")
        if self.limit < 0 or self.offset < 0:
            raise ValueError("limit and offset must be non-negative")
