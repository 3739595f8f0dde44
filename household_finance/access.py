"""
Access control for account-scoped endpoints.

Authentication happens upstream (the web front end's auth proxy); it forwards
the authenticated user's id in the X-User-Id header.
"""

from typing import Optional

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from .models import Account, AccountMember


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """FastAPI dependency returning the caller's user id."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id.strip()


def has_access(db: Session, account_id: str, user_id: str) -> bool:
    """True when the user owns the account or is one of its members."""
    account = db.get(Account, account_id)
    if account is None:
        return False
    if account.owner_id == user_id:
        return True
    member = db.get(AccountMember, (account_id, user_id))
    return member is not None


def require_access(db: Session, account_id: str, user_id: str) -> None:
    if not has_access(db, account_id, user_id):
        raise HTTPException(status_code=403, detail="You do not have access to this account")
