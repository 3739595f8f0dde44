"""
Category tree reader.
Supplies an account's categories with their subcategories, in creation
order, for the mapping UI and the mapping engine's fallbacks.
"""

from sqlalchemy.orm import Session

from ..models import Category, Subcategory


def get_category_tree(db: Session, account_id: str) -> list[dict]:
    """[{"id", "name", "subcategories": [{"id", "name"}]}] for one account."""
    categories = (
        db.query(Category)
        .filter(Category.account_id == account_id)
        .order_by(Category.created_at, Category.name)
        .all()
    )
    if not categories:
        return []

    subcategories = (
        db.query(Subcategory)
        .filter(Subcategory.category_id.in_([c.id for c in categories]))
        .order_by(Subcategory.created_at, Subcategory.name)
        .all()
    )
    by_category = {}
    for sub in subcategories:
        by_category.setdefault(sub.category_id, []).append({"id": sub.id, "name": sub.name})

    return [
        {
            "id": cat.id,
            "name": cat.name,
            "subcategories": by_category.get(cat.id, []),
        }
        for cat in categories
    ]
