"""
Bank statement import endpoints.

Two-step flow:
  POST /parse   — upload a spreadsheet/CSV, get back a preview of the
                  transactions and the bank categories found in it
  POST /confirm — send the (possibly edited) transactions with the chosen
                  category mappings; duplicates are skipped, the rest stored

Plus helpers for the mapping screen: saved mappings, the account's category
tree, a server-side mapping proposal and the shared keyword rule table.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..access import get_current_user_id, require_access
from ..database import get_db
from ..services.category_tree import get_category_tree
from ..services.importer import (
    WorkbookError,
    commit_import,
    get_saved_mappings,
    load_workbook,
    parse_statement,
    propose_mapping_details,
    sanitize,
    validate_upload,
)
from ..services.importer.mapping import load_keyword_rules_asset
from ..services.importer.parser import NO_DESCRIPTION

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Pydantic Schemas ---

class ParsedTransactionSchema(BaseModel):
    date: str
    description: str
    amount: float
    bank_category: Optional[str] = ""
    bank_subcategory: Optional[str] = ""


class CategoryObservationSchema(BaseModel):
    category: str
    subcategory: Optional[str] = ""


class ParseResponse(BaseModel):
    success: bool
    file_type: str
    sheet_name: Optional[str] = None
    available_sheets: list[str] = []
    transactions: list[ParsedTransactionSchema] = []
    categories: list[CategoryObservationSchema] = []
    errors: list[str] = []


class CategoryMappingSchema(BaseModel):
    bank_category: str
    bank_subcategory: Optional[str] = ""
    subcategory_id: Optional[str] = None


class ConfirmImportRequest(BaseModel):
    account_id: Optional[str] = None
    transactions: list[ParsedTransactionSchema] = []
    category_mappings: list[CategoryMappingSchema] = []


class ImportSummary(BaseModel):
    total: int
    inserted: int
    skipped: int
    errors: list[str]


class ConfirmImportResponse(BaseModel):
    success: bool
    data: ImportSummary


class ProposeMappingsRequest(BaseModel):
    account_id: Optional[str] = None
    categories: list[CategoryObservationSchema] = []


class ProposedMapping(CategoryMappingSchema):
    source: Optional[str] = None  # "saved" | "keyword" | "fuzzy" | None


# --- Endpoints ---

@router.post("/parse", response_model=ParseResponse)
async def parse_file(
    file: UploadFile = File(...),
    sheet_name: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
):
    """Parse an uploaded bank export and return a preview."""
    content = await file.read()

    try:
        validate_upload(file.filename, content)
        workbook = load_workbook(content, file.filename)
    except WorkbookError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        result = parse_statement(workbook, sheet_name or None)
    except Exception:
        logger.exception(f"Unexpected error parsing {file.filename}")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(
        f"User {user_id} parsed {file.filename}: success={result['success']} "
        f"rows={len(result['transactions'])}"
    )
    return result


@router.post("/confirm", response_model=ConfirmImportResponse)
def confirm_import(
    body: ConfirmImportRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Store confirmed transactions, skipping duplicates, and save mappings."""
    account_id = _require_account_id(body.account_id)
    require_access(db, account_id, user_id)

    if not body.transactions:
        raise HTTPException(status_code=400, detail="No transactions to import")

    transactions = [
        {
            "date": txn.date,
            "description": sanitize(txn.description) or NO_DESCRIPTION,
            "amount": txn.amount,
            "bank_category": sanitize(txn.bank_category),
            "bank_subcategory": sanitize(txn.bank_subcategory),
        }
        for txn in body.transactions
    ]
    mappings = [
        {
            "bank_category": sanitize(m.bank_category),
            "bank_subcategory": sanitize(m.bank_subcategory),
            "subcategory_id": m.subcategory_id,
        }
        for m in body.category_mappings
    ]

    summary = commit_import(db, account_id, transactions, mappings)
    return {"success": True, "data": summary}


@router.get("/mappings")
def saved_mappings(
    account_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Previously confirmed bank category → subcategory mappings."""
    account_id = _require_account_id(account_id)
    require_access(db, account_id, user_id)
    return {"success": True, "mappings": get_saved_mappings(db, account_id)}


@router.get("/categories")
def account_categories(
    account_id: Optional[str] = Query(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """The account's category tree, for the mapping dropdowns."""
    account_id = _require_account_id(account_id)
    require_access(db, account_id, user_id)
    return {"success": True, "categories": get_category_tree(db, account_id)}


@router.post("/propose")
def propose(
    body: ProposeMappingsRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Best-guess subcategory for each bank category pair."""
    account_id = _require_account_id(body.account_id)
    require_access(db, account_id, user_id)

    details = propose_mapping_details(
        [c.model_dump() for c in body.categories],
        get_saved_mappings(db, account_id),
        get_category_tree(db, account_id),
    )
    return {"success": True, "mappings": [ProposedMapping(**d) for d in details]}


@router.get("/keyword-rules")
def keyword_rules():
    """Versioned keyword → category table shared with the front end."""
    return load_keyword_rules_asset()


def _require_account_id(account_id: Optional[str]) -> str:
    if not account_id or not account_id.strip():
        raise HTTPException(status_code=400, detail="account_id is required")
    return account_id.strip()
