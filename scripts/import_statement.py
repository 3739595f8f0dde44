#!/usr/bin/env python3
"""
Import a bank statement file from the command line.

Run from project root:
    python3 scripts/import_statement.py statement.xlsx
    python3 scripts/import_statement.py statement.xlsx --sheet Marzo
    python3 scripts/import_statement.py movimientos.xls --account-id <uuid>

Without --account-id the file is only parsed and summarised. With it, bank
categories are mapped through the same cascade the web UI uses (saved
mappings → keyword rules → name matching) and the transactions are committed,
skipping duplicates.
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root on path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")

from household_finance.database import SessionLocal, init_db
from household_finance.models import Account
from household_finance.services.category_tree import get_category_tree
from household_finance.services.importer import (
    WorkbookError,
    commit_import,
    get_saved_mappings,
    load_workbook,
    parse_statement,
    propose_mapping_details,
    validate_upload,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[logging.StreamHandler()],
)
logger = logging.getLogger(__name__)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Import a bank statement file")
    parser.add_argument("path", type=Path, help=".xls, .xlsx or .csv export")
    parser.add_argument("--sheet", help="Sheet to import (monthly ledgers)")
    parser.add_argument("--account-id", help="Commit into this account")
    args = parser.parse_args(argv)

    if not args.path.exists():
        logger.error(f"Not found: {args.path}")
        return 1

    content = args.path.read_bytes()
    try:
        validate_upload(args.path.name, content)
        workbook = load_workbook(content, args.path.name)
    except WorkbookError as e:
        logger.error(f"Cannot read {args.path.name}: {e}")
        return 1

    result = parse_statement(workbook, args.sheet)
    if not result["success"]:
        for error in result["errors"]:
            logger.error(error)
        if result["available_sheets"]:
            logger.info(f"Available sheets: {', '.join(result['available_sheets'])}")
        return 1

    logger.info(
        f"{result['file_type']} / {result['sheet_name']}: "
        f"{len(result['transactions'])} transactions, {len(result['categories'])} bank categories"
    )
    for error in result["errors"]:
        logger.warning(f"  {error}")

    if not args.account_id:
        for cat in result["categories"]:
            logger.info(f"  {cat['category']} / {cat['subcategory']}")
        return 0

    init_db()
    db = SessionLocal()
    try:
        if db.get(Account, args.account_id) is None:
            logger.error(f"Account not found: {args.account_id}")
            return 1

        proposals = propose_mapping_details(
            result["categories"],
            get_saved_mappings(db, args.account_id),
            get_category_tree(db, args.account_id),
        )
        for p in proposals:
            target = p["subcategory_id"] or "(unassigned)"
            logger.info(f"  {p['bank_category']} / {p['bank_subcategory']} → {target} [{p['source']}]")

        summary = commit_import(db, args.account_id, result["transactions"], proposals)
        logger.info(
            f"Imported {summary['inserted']} of {summary['total']} "
            f"({summary['skipped']} skipped)"
        )
        for error in summary["errors"]:
            logger.error(f"  {error}")
        return 0 if not summary["errors"] else 2
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
