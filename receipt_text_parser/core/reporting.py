"""
CSV export of stored receipts.
"""

import csv
from pathlib import Path
from typing import List

from .models import StoredReceipt

CSV_FIELDS = ["id", "processed_at", "merchant_name", "address", "date", "time",
              "currency", "subtotal", "tax_amount", "total", "items", "source_file"]


def format_items(receipt: StoredReceipt) -> str:
    """Items as a single cell, e.g. "Milk=2.50; Bread=1.20"."""
    return "; ".join(f"{it.name}={it.price}" for it in receipt.receipt.items)


def write_csv(receipts: List[StoredReceipt], out_csv: Path):
    """Write receipts to CSV file."""
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        w.writeheader()
        for r in receipts:
            row = r.to_dict()
            row["items"] = format_items(r)
            w.writerow({k: row.get(k) for k in CSV_FIELDS})
