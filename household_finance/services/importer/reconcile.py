"""
Import reconciliation and commit.

Takes the transactions the user confirmed in the import preview, drops the
ones already stored for the account (or repeated earlier in the same file),
inserts the rest in batches, then remembers the confirmed category mappings
for the next import.

Dedup key: (YYYY-MM-DD, normalized description, amount at 2 decimals).
"""

import logging
import re
import unicodedata
from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ... import config
from ...models import CategoryMapping, Transaction, new_id
from .mapping import observation_key

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize_description(description: Optional[str]) -> str:
    """Lower-case, accent-free, punctuation-free, single-spaced description."""
    if not description:
        return ""
    text = unicodedata.normalize("NFD", description.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = _NON_ALNUM.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def normalize_amount(amount) -> str:
    # + 0.0 folds -0.0 into 0.0
    return f"{round(float(amount), 2) + 0.0:.2f}"


def normalize_date(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip().split("T")[0].split(" ")[0]


def dedup_key(txn_date, description, amount) -> tuple[str, str, str]:
    return (normalize_date(txn_date), normalize_description(description), normalize_amount(amount))


def load_existing_keys(db: Session, account_id: str) -> set[tuple[str, str, str]]:
    """Dedup keys of every transaction already stored for the account."""
    rows = (
        db.query(Transaction.date, Transaction.description, Transaction.amount)
        .filter(Transaction.account_id == account_id)
        .all()
    )
    return {dedup_key(r.date, r.description, r.amount) for r in rows}


def commit_import(
    db: Session,
    account_id: str,
    transactions: list[dict],
    category_mappings: Iterable[dict] = (),
    batch_size: Optional[int] = None,
) -> dict:
    """
    Insert non-duplicate transactions and persist confirmed mappings.

    Batches run strictly in order: later batches consult the keys inserted
    by earlier ones. A failed batch is reported once in `errors` and all of
    its rows count as skipped.

    Returns {"total", "inserted", "skipped", "errors"}.
    """
    batch_size = batch_size or config.IMPORT_BATCH_SIZE
    category_mappings = list(category_mappings)

    mapping_lookup = {
        observation_key(m.get("bank_category"), m.get("bank_subcategory")): m.get("subcategory_id")
        for m in category_mappings
    }

    existing_keys = load_existing_keys(db, account_id)
    inserted_keys = set()
    inserted = 0
    skipped = 0
    errors = []

    for batch_number, start in enumerate(range(0, len(transactions), batch_size), start=1):
        batch = transactions[start:start + batch_size]

        pending = []
        batch_keys = set()
        for txn in batch:
            key = dedup_key(txn["date"], txn["description"], txn["amount"])
            if key in existing_keys or key in inserted_keys or key in batch_keys:
                skipped += 1
                continue
            batch_keys.add(key)
            pending.append(txn)

        if not pending:
            continue

        try:
            rows = [_build_row(account_id, txn, mapping_lookup) for txn in pending]
            db.execute(insert(Transaction.__table__).values(rows))
            db.commit()
        except (SQLAlchemyError, ValueError) as e:
            db.rollback()
            errors.append(f"Error inserting batch {batch_number}: {e}")
            skipped += len(pending)
            logger.warning(f"Import batch {batch_number} for account {account_id} failed: {e}")
            continue

        inserted += len(pending)
        inserted_keys.update(batch_keys)

    save_category_mappings(db, account_id, category_mappings)

    logger.info(
        f"Import into account {account_id}: {inserted} inserted, "
        f"{skipped} skipped of {len(transactions)} ({len(errors)} batch errors)"
    )
    return {
        "total": len(transactions),
        "inserted": inserted,
        "skipped": skipped,
        "errors": errors,
    }


def save_category_mappings(db: Session, account_id: str, category_mappings: Iterable[dict]) -> int:
    """
    Upsert every mapping with a target subcategory. Never raises: a failed
    save is logged and rolled back, leaving committed transactions alone.
    """
    confirmed = {}
    for m in category_mappings:
        if m.get("subcategory_id"):
            pair = (m.get("bank_category") or "", m.get("bank_subcategory") or "")
            confirmed[pair] = m["subcategory_id"]

    if not confirmed:
        return 0

    try:
        existing = {
            (row.bank_category, row.bank_subcategory): row
            for row in db.query(CategoryMapping).filter(CategoryMapping.account_id == account_id).all()
        }
        for (bank_category, bank_subcategory), subcategory_id in confirmed.items():
            row = existing.get((bank_category, bank_subcategory))
            if row:
                row.subcategory_id = subcategory_id
                row.updated_at = datetime.utcnow()
            else:
                db.add(CategoryMapping(
                    account_id=account_id,
                    bank_category=bank_category,
                    bank_subcategory=bank_subcategory,
                    subcategory_id=subcategory_id,
                ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Saving category mappings for account {account_id} failed: {e}")
        return 0

    return len(confirmed)


def get_saved_mappings(db: Session, account_id: str) -> list[dict]:
    rows = (
        db.query(CategoryMapping)
        .filter(CategoryMapping.account_id == account_id)
        .order_by(CategoryMapping.bank_category, CategoryMapping.bank_subcategory)
        .all()
    )
    return [
        {
            "bank_category": row.bank_category,
            "bank_subcategory": row.bank_subcategory,
            "subcategory_id": row.subcategory_id,
        }
        for row in rows
    ]


def _build_row(account_id: str, txn: dict, mapping_lookup: dict) -> dict:
    bank_category = txn.get("bank_category") or ""
    bank_subcategory = txn.get("bank_subcategory") or ""
    return {
        "id": new_id(),
        "account_id": account_id,
        "subcategory_id": mapping_lookup.get(observation_key(bank_category, bank_subcategory)),
        "date": date.fromisoformat(normalize_date(txn["date"])),
        "description": txn["description"],
        "amount": float(txn["amount"]),
        "bank_category": bank_category,
        "bank_subcategory": bank_subcategory,
        "created_at": datetime.utcnow(),
    }
