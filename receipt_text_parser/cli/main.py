#!/usr/bin/env python3
"""
Main CLI entrypoint for the receipt text parser.
"""

import argparse
import json
import os
import sys
from pathlib import Path

from receipt_text_parser.core.config import load_parser_config
from receipt_text_parser.core.database import init_receipts_db, list_receipts, delete_receipts
from receipt_text_parser.core.models import ReceiptFilter, SORT_KEYS
from receipt_text_parser.core.parsers import parse_receipt
from receipt_text_parser.core.processor import ReceiptProcessor
from receipt_text_parser.core.reporting import write_csv

DEFAULT_DB = "./receipts.sqlite"


def _add_db_args(p):
    p.add_argument("--db",
                   help=f"SQLite receipts database (default: RECEIPT_DB env var or {DEFAULT_DB})")
    p.add_argument("--user-id",
                   help="Owner id for stored receipts (default: RECEIPT_USER_ID env var)")


def _add_filter_args(p):
    p.add_argument("--search", default="",
                   help="Match merchant, date, currency or item names")
    p.add_argument("--from", dest="processed_from",
                   help="Only receipts processed on/after this ISO date")
    p.add_argument("--to", dest="processed_to",
                   help="Only receipts processed on/before this ISO date")
    p.add_argument("--sort", default="processed_at", choices=SORT_KEYS,
                   help="Sort key (default: processed_at)")
    p.add_argument("--asc", action="store_true",
                   help="Sort ascending (default: newest/largest first)")
    p.add_argument("--limit", type=int, default=100,
                   help="Maximum number of receipts (default: 100)")
    p.add_argument("--offset", type=int, default=0,
                   help="Skip this many receipts (for paging)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="receipt-parser",
        description="Turn receipt OCR text into structured records (merchant, date, totals, items)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse recognized text from a file (or stdin with '-')
  receipt-parser parse receipt.txt

  # OCR receipt images, parse them and store the results
  receipt-parser scan ./incoming/*.jpg --user-id 1

  # List stored receipts matching a search term
  receipt-parser list --user-id 1 --search plus --sort total

  # Export to CSV
  receipt-parser export receipts.csv --user-id 1
        """
    )
    parser.add_argument("--config",
                        help="Parser overrides JSON (default: RECEIPT_PARSER_CONFIG env var)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Parse recognized text and print the record as JSON")
    p_parse.add_argument("input", nargs="?", default="-",
                         help="Text file with OCR output, or '-' for stdin (default)")
    p_parse.add_argument("--aliases", action="store_true",
                         help="Also emit legacy keys (dates, currencies, total_amount, ...)")

    p_scan = sub.add_parser("scan", help="OCR receipt images/PDFs, parse and store them")
    p_scan.add_argument("files", nargs="+", help="Receipt images or PDFs")
    _add_db_args(p_scan)
    p_scan.add_argument("--lang",
                        help="Tesseract language (default: TESSERACT_LANG env var or eng)")
    p_scan.add_argument("--verbose", "-v", action="store_true",
                        help="Show detailed parsing information for debugging")

    p_list = sub.add_parser("list", help="List stored receipts")
    _add_db_args(p_list)
    _add_filter_args(p_list)
    p_list.add_argument("--json", action="store_true", help="Print records as JSON")

    p_delete = sub.add_parser("delete", help="Delete receipts owned by a user")
    p_delete.add_argument("ids", nargs="+", type=int, help="Receipt ids")
    _add_db_args(p_delete)

    p_export = sub.add_parser("export", help="Export stored receipts to CSV")
    p_export.add_argument("output", help="CSV file to write")
    _add_db_args(p_export)
    _add_filter_args(p_export)

    return parser


def _resolve_db(args) -> Path:
    return Path(args.db or os.getenv("RECEIPT_DB", DEFAULT_DB))


def _resolve_user_id(args):
    """User id from --user-id or RECEIPT_USER_ID; raises ValueError if not an integer."""
    raw = args.user_id or os.getenv("RECEIPT_USER_ID")
    if raw in (None, ""):
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Invalid user id: {raw}")


def _build_filter(args, user_id) -> ReceiptFilter:
    return ReceiptFilter(
        user_id=user_id,
        search=args.search,
        processed_from=args.processed_from,
        processed_to=args.processed_to,
        sort_key=args.sort,
        descending=not args.asc,
        limit=args.limit,
        offset=args.offset,
    )


def cmd_parse(args, config) -> int:
    if args.input == "-":
        text = sys.stdin.read()
    else:
        path = Path(args.input)
        if not path.exists():
            print(f"[ERROR] Input file not found: {path}")
            return 1
        text = path.read_text(encoding="utf-8")
    receipt = parse_receipt(text, config)
    print(json.dumps(receipt.to_dict(include_aliases=args.aliases), indent=2, ensure_ascii=False))
    return 0


def cmd_scan(args, config) -> int:
    paths = [Path(f) for f in args.files]
    missing = [p for p in paths if not p.exists()]
    for p in missing:
        print(f"[WARN] Skipping missing file: {p}")
    paths = [p for p in paths if p.exists()]
    if not paths:
        print("[ERROR] No receipt files to process.")
        return 1

    lang = args.lang or os.getenv("TESSERACT_LANG", "eng")
    processor = ReceiptProcessor(
        db_path=_resolve_db(args),
        user_id=_resolve_user_id(args),
        config=config,
        lang=lang,
        verbose=args.verbose,
    )
    results = processor.process_all(paths)
    print(f"[OK] Stored {len(results)} of {len(paths)} receipt(s) in {processor.db_path}")
    return 0 if results else 1


def cmd_list(args, config) -> int:
    db_path = _resolve_db(args)
    init_receipts_db(db_path)
    receipts = list_receipts(db_path, _build_filter(args, _resolve_user_id(args)))
    if args.json:
        print(json.dumps([r.to_dict() for r in receipts], indent=2, ensure_ascii=False))
        return 0
    if not receipts:
        print("No receipts found.")
        return 0
    for r in receipts:
        rec = r.receipt
        print(f"#{r.id:<5} {r.processed_at:<25} {(rec.merchant_name or 'Unknown')[:30]:<30} "
              f"{rec.date or '-':<10} {rec.total or '-':>9} {rec.currency:<3} "
              f"({len(rec.items)} item(s))")
    return 0


def cmd_delete(args, config) -> int:
    user_id = _resolve_user_id(args)
    if user_id is None:
        print("[ERROR] --user-id (or RECEIPT_USER_ID) is required to delete receipts")
        return 1
    db_path = _resolve_db(args)
    init_receipts_db(db_path)
    count = delete_receipts(db_path, args.ids, user_id)
    if count == 0:
        print("[WARN] No receipts matched the given ids for this user")
    else:
        print(f"[OK] Deleted {count} receipt(s)")
    return 0


def cmd_export(args, config) -> int:
    db_path = _resolve_db(args)
    init_receipts_db(db_path)
    receipts = list_receipts(db_path, _build_filter(args, _resolve_user_id(args)))
    out_csv = Path(args.output)
    write_csv(receipts, out_csv)
    print(f"[OK] Wrote {len(receipts)} receipt(s) to {out_csv}")
    return 0


COMMANDS = {
    "parse": cmd_parse,
    "scan": cmd_scan,
    "list": cmd_list,
    "delete": cmd_delete,
    "export": cmd_export,
}


def main(argv=None):
    """Main CLI entrypoint."""
    args = build_parser().parse_args(argv)

    try:
        config_path = args.config or os.getenv("RECEIPT_PARSER_CONFIG")
        config = load_parser_config(Path(config_path)) if config_path else None
        return COMMANDS[args.command](args, config)
    except ValueError as e:
        print(f"[ERROR] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
