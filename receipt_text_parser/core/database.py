"""
SQLite-backed receipt store: save, patch, list and soft-delete parsed receipts.
"""

import sqlite3
from pathlib import Path
from typing import List, Dict, Optional, Iterable, Any

from .models import LineItem, ParsedReceipt, StoredReceipt, ReceiptFilter
from .utils import compute_receipt_fingerprint, now_iso

RECEIPT_COLUMNS = ["merchant_name", "address", "date", "time", "currency",
                   "subtotal", "tax_amount", "total", "raw_text"]

COLUMN_LIST = ", ".join(RECEIPT_COLUMNS)
COLUMN_PLACEHOLDERS = ", ".join("?" * len(RECEIPT_COLUMNS))

# Fields a PATCH may touch
EDITABLE_FIELDS = set(RECEIPT_COLUMNS) | {"items"}

# Whitelisted ORDER BY expressions
SORT_EXPRESSIONS = {
    "id": "r.id",
    "processed_at": "r.processed_at",
    "merchant_name": "lower(r.merchant_name)",
    "total": "CAST(r.total AS REAL)",
    "date": "r.date",
}


def init_receipts_db(db_path: Path):
    """Initialize SQLite database for parsed receipts."""
    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS receipts (
            id INTEGER PRIMARY KEY,
            user_id INTEGER,
            processed_at TEXT NOT NULL,
            deleted_at TEXT,
            source_file TEXT,
            file_hash TEXT,
            fingerprint TEXT,
            merchant_name TEXT,
            address TEXT,
            date TEXT,
            time TEXT,
            currency TEXT,
            subtotal TEXT,
            tax_amount TEXT,
            total TEXT,
            raw_text TEXT
        )
        """)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS receipt_items (
            receipt_id INTEGER NOT NULL,
            position INTEGER NOT NULL,
            name TEXT,
            price TEXT,
            PRIMARY KEY (receipt_id, position)
        )
        """)
        # Add indexes for owner listing and duplicate lookups
        cur.execute("CREATE INDEX IF NOT EXISTS idx_receipts_user ON receipts(user_id)")
        cur.execute("CREATE INDEX IF NOT EXISTS idx_receipts_fingerprint ON receipts(fingerprint)")
        conn.commit()


def _write_items(cur, receipt_id: int, items: Iterable[LineItem]):
    cur.execute("DELETE FROM receipt_items WHERE receipt_id = ?", (receipt_id,))
    cur.executemany("""
        INSERT INTO receipt_items (receipt_id, position, name, price)
        VALUES (?, ?, ?, ?)
    """, [(receipt_id, pos, it.name, it.price) for pos, it in enumerate(items)])


def save_receipt(db_path: Path, receipt: ParsedReceipt, user_id: Optional[int] = None,
                 source_file: str = "", file_hash: str = "") -> int:
    """
    Persist a parsed receipt.

    Returns:
        The new receipt id.
    """
    fingerprint = compute_receipt_fingerprint(receipt.date, receipt.merchant_name, receipt.total)
    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        cur.execute(f"""
            INSERT INTO receipts
            (user_id, processed_at, source_file, file_hash, fingerprint, {COLUMN_LIST})
            VALUES (?, ?, ?, ?, ?, {COLUMN_PLACEHOLDERS})
        """, (user_id, now_iso(), source_file, file_hash, fingerprint,
              *[getattr(receipt, col) for col in RECEIPT_COLUMNS]))
        receipt_id = cur.lastrowid
        _write_items(cur, receipt_id, receipt.items)
        conn.commit()
    return receipt_id


def update_receipt(db_path: Path, receipt_id: int, fields: Dict[str, Any]) -> bool:
    """
    Patch selected fields of a stored receipt (e.g. after manual correction).

    Args:
        db_path: Path to receipts database
        receipt_id: Receipt to update
        fields: Mapping of field name -> new value. "items" takes a list of
            LineItem or {"name", "price"} dicts and replaces all items.

    Returns:
        False if no such receipt exists.

    Raises:
        ValueError: a field is not editable.
    """
    unknown = sorted(set(fields) - EDITABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(unknown)}")

    current = get_receipt(db_path, receipt_id)
    if current is None:
        return False

    data = current.receipt.to_dict()
    data.update({k: "" if v is None else str(v) for k, v in fields.items() if k != "items"})
    if "items" in fields:
        data["items"] = [it.to_dict() if isinstance(it, LineItem) else it for it in fields["items"]]
    updated = ParsedReceipt.from_dict(data)
    fingerprint = compute_receipt_fingerprint(updated.date, updated.merchant_name, updated.total)

    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        assignments = ", ".join(f"{col} = ?" for col in RECEIPT_COLUMNS)
        cur.execute(f"""
            UPDATE receipts SET {assignments}, fingerprint = ?
            WHERE id = ?
        """, (*[getattr(updated, col) for col in RECEIPT_COLUMNS], fingerprint, receipt_id))
        if "items" in fields:
            _write_items(cur, receipt_id, updated.items)
        conn.commit()
    return True


def _load_items(cur, receipt_ids: List[int]) -> Dict[int, List[LineItem]]:
    """Batch-load items for the given receipts, in line order."""
    if not receipt_ids:
        return {}
    placeholders = ",".join("?" * len(receipt_ids))
    cur.execute(f"""
        SELECT receipt_id, name, price FROM receipt_items
        WHERE receipt_id IN ({placeholders})
        ORDER BY receipt_id, position
    """, receipt_ids)
    items = {rid: [] for rid in receipt_ids}
    for rid, name, price in cur.fetchall():
        items[rid].append(LineItem(name=name, price=price))
    return items


_SELECT = (
    "SELECT r.id, r.user_id, r.processed_at, r.source_file, r.file_hash, "
    + ", ".join("r." + col for col in RECEIPT_COLUMNS)
    + " FROM receipts r"
)


def _rows_to_receipts(cur, rows) -> List[StoredReceipt]:
    items = _load_items(cur, [row[0] for row in rows])
    results = []
    for row in rows:
        values = dict(zip(RECEIPT_COLUMNS, row[5:]))
        receipt = ParsedReceipt(items=items.get(row[0], []),
                                **{k: v or "" for k, v in values.items()})
        results.append(StoredReceipt(
            id=row[0],
            user_id=row[1],
            processed_at=row[2],
            source_file=row[3] or "",
            file_hash=row[4] or "",
            receipt=receipt,
        ))
    return results


def get_receipt(db_path: Path, receipt_id: int) -> Optional[StoredReceipt]:
    """Fetch a single receipt by id (deleted ones included)."""
    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        cur.execute(_SELECT + " WHERE r.id = ?", (receipt_id,))
        rows = cur.fetchall()
        found = _rows_to_receipts(cur, rows)
    return found[0] if found else None


def list_receipts(db_path: Path, receipt_filter: Optional[ReceiptFilter] = None) -> List[StoredReceipt]:
    """
    List stored receipts.

    The search term matches (case-insensitively) the merchant name, date,
    currency or any item name. processed_from/processed_to accept an ISO date
    or timestamp prefix and are inclusive.
    """
    f = receipt_filter or ReceiptFilter()
    clauses = []
    params: List[Any] = []

    if not f.include_deleted:
        clauses.append("r.deleted_at IS NULL")
    if f.user_id is not None:
        clauses.append("r.user_id = ?")
        params.append(f.user_id)
    if f.search.strip():
        term = f"%{f.search.strip().lower()}%"
        clauses.append("""(
            lower(r.merchant_name) LIKE ? OR lower(r.date) LIKE ? OR lower(r.currency) LIKE ?
            OR EXISTS (SELECT 1 FROM receipt_items i
                       WHERE i.receipt_id = r.id AND lower(i.name) LIKE ?)
        )""")
        params.extend([term] * 4)
    if f.processed_from:
        clauses.append("r.processed_at >= ?")
        params.append(f.processed_from)
    if f.processed_to:
        clauses.append("substr(r.processed_at, 1, length(?)) <= ?")
        params.extend([f.processed_to, f.processed_to])

    query = _SELECT
    if clauses:
        query += " WHERE " + " AND ".join(clauses)
    direction = "DESC" if f.descending else "ASC"
    query += f" ORDER BY {SORT_EXPRESSIONS[f.sort_key]} {direction}, r.id {direction}"
    query += " LIMIT ? OFFSET ?"
    params.extend([f.limit, f.offset])

    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        cur.execute(query, params)
        return _rows_to_receipts(cur, cur.fetchall())


def delete_receipts(db_path: Path, receipt_ids: List[int], user_id: int) -> int:
    """
    Soft-delete receipts owned by user_id by detaching them from the owner.

    Returns:
        Number of receipts deleted
    """
    if not receipt_ids:
        return 0
    placeholders = ",".join("?" * len(receipt_ids))
    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        cur.execute(f"""
            UPDATE receipts SET user_id = NULL, deleted_at = ?
            WHERE user_id = ? AND deleted_at IS NULL AND id IN ({placeholders})
        """, (now_iso(), user_id, *receipt_ids))
        count = cur.rowcount
        conn.commit()
    return count


def find_duplicates(db_path: Path, receipt: ParsedReceipt, file_hash: str = "") -> List[StoredReceipt]:
    """
    Find stored receipts with the same date, merchant and total.

    Rows from the same source file (same hash) are not reported, so
    re-processing a file is idempotent.
    """
    fingerprint = compute_receipt_fingerprint(receipt.date, receipt.merchant_name, receipt.total)
    with sqlite3.connect(db_path.as_posix()) as conn:
        cur = conn.cursor()
        cur.execute(_SELECT + """
            WHERE r.fingerprint = ? AND r.deleted_at IS NULL
              AND (? = '' OR COALESCE(r.file_hash, '') != ?)
            ORDER BY r.id
        """, (fingerprint, file_hash, file_hash))
        return _rows_to_receipts(cur, cur.fetchall())
