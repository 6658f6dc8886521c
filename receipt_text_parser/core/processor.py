"""
Receipt processing orchestration: OCR -> parse -> duplicate check -> save.
"""

from pathlib import Path
from typing import List, Optional, Tuple

from .config import ParserConfig, DEFAULT_CONFIG
from .database import init_receipts_db, save_receipt, find_duplicates
from .models import ParsedReceipt
from .ocr import extract_text
from .parsers import parse_receipt
from .utils import sha1_file, sha1_text


class ReceiptProcessor:
    """Runs uploaded receipts through OCR and the text parser and stores the results."""

    def __init__(self, db_path: Path,
                 user_id: Optional[int] = None,
                 config: Optional[ParserConfig] = None,
                 lang: str = "eng",
                 verbose: bool = False):
        """
        Initialize receipt processor.

        Args:
            db_path: SQLite receipts database (created if missing)
            user_id: Owner recorded on every saved receipt
            config: Parser overrides (defaults if omitted)
            lang: Tesseract language code
            verbose: Whether to show verbose debugging output
        """
        self.db_path = db_path
        self.user_id = user_id
        self.config = config or DEFAULT_CONFIG
        self.lang = lang
        self.verbose = verbose

        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        init_receipts_db(self.db_path)

    def process_text(self, text: str, source_file: str = "",
                     file_hash: str = "") -> Tuple[int, ParsedReceipt]:
        """
        Parse already-recognized text and save the result.

        Returns:
            Tuple of (receipt_id, parsed receipt)
        """
        receipt = parse_receipt(text, self.config)
        file_hash = file_hash or sha1_text(text)

        if self.verbose:
            self._print_debug(receipt)

        self._warn_duplicates(receipt, file_hash)

        receipt_id = save_receipt(self.db_path, receipt, user_id=self.user_id,
                                  source_file=source_file, file_hash=file_hash)
        return receipt_id, receipt

    def process_file(self, path: Path) -> Tuple[int, ParsedReceipt]:
        """OCR a single receipt file, parse it and save it."""
        print(f"[INFO] Processing {path.name}")
        text = extract_text(path, self.lang)
        return self.process_text(text, source_file=path.name, file_hash=sha1_file(path))

    def process_all(self, paths: List[Path]) -> List[Tuple[int, ParsedReceipt]]:
        """
        Process a batch of receipt files.

        A file that fails (unsupported type, OCR error, ...) is reported and
        skipped; the rest of the batch still runs.
        """
        results = []
        for path in paths:
            try:
                receipt_id, receipt = self.process_file(path)
            except Exception as e:
                print(f"[ERROR] Failed {path.name}: {e}")
                continue
            print(f"[OK] Saved receipt #{receipt_id}: {receipt.merchant_name or '(unknown merchant)'} "
                  f"{receipt.total or '-'} {receipt.currency}")
            results.append((receipt_id, receipt))
        return results

    def _warn_duplicates(self, receipt: ParsedReceipt, file_hash: str):
        # An all-empty fingerprint would match every unreadable receipt
        if not (receipt.date or receipt.merchant_name or receipt.total):
            return
        duplicates = find_duplicates(self.db_path, receipt, file_hash)
        if duplicates:
            ids = ", ".join(f"#{d.id}" for d in duplicates)
            print(f"[WARN] Possible duplicate of {ids}: {receipt.date} | "
                  f"{receipt.merchant_name} | {receipt.total}")

    def _print_debug(self, receipt: ParsedReceipt):
        print(f"  [DEBUG] Merchant: '{receipt.merchant_name or '(none)'}'")
        print(f"  [DEBUG] Address: {receipt.address or '(none)'}")
        print(f"  [DEBUG] Date: {receipt.date or '(none)'} Time: {receipt.time or '(none)'}")
        print(f"  [DEBUG] Currency: {receipt.currency or '(none)'}")
        print(f"  [DEBUG] Subtotal: {receipt.subtotal or '(none)'} Tax: {receipt.tax_amount or '(none)'} "
              f"Total: {receipt.total or '(none)'}")
        print(f"  [DEBUG] Items: {len(receipt.items)}")
        for item in receipt.items:
            print(f"    - {item.name}: {item.price}")
        if not receipt.total:
            print(f"  [WARN] Could not extract total. Check OCR quality.")
            for i, line in enumerate(receipt.raw_text.splitlines()[:5], 1):
                print(f"    {i}: {line[:80]}")
