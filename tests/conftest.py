"""Shared pytest fixtures for the import pipeline tests."""

import os
from datetime import datetime, timedelta

# Keep the app's module-level engine off the user's home directory
os.environ.setdefault("HOUSEHOLD_FINANCE_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from household_finance.database import Base, get_db, set_sqlite_pragma
from household_finance.main import app
from household_finance.models import Account, AccountMember, Category, Subcategory

from helpers import MEMBER_ID, OWNER_ID

# Category → subcategories, in creation order
CATEGORY_TREE = {
    "Supermercado": ["Ropa", "Alimentación", "Limpieza"],
    "Ocio": ["Restaurantes", "Bares"],
    "Seguros": ["Coche", "Vida"],
    "Mascotas": ["Veterinario", "Pienso"],
}


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across sessions of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    event.listen(engine, "connect", set_sqlite_pragma)
    from household_finance import models  # noqa: F401 — register models
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def account(db):
    """An account owned by OWNER_ID, shared with MEMBER_ID, with a category tree."""
    account = Account(name="Casa", owner_id=OWNER_ID)
    account.members.append(AccountMember(user_id=MEMBER_ID))
    db.add(account)
    db.flush()

    created = datetime(2024, 1, 1)
    for cat_name, sub_names in CATEGORY_TREE.items():
        category = Category(account_id=account.id, name=cat_name, created_at=created)
        db.add(category)
        db.flush()
        created += timedelta(seconds=1)
        for sub_name in sub_names:
            db.add(Subcategory(category_id=category.id, name=sub_name, created_at=created))
            created += timedelta(seconds=1)

    db.commit()
    return account


@pytest.fixture
def subcategory_ids(db, account):
    """{"Category/Subcategory": id} for the seeded tree."""
    rows = (
        db.query(Subcategory, Category)
        .join(Category, Subcategory.category_id == Category.id)
        .filter(Category.account_id == account.id)
        .all()
    )
    return {f"{cat.name}/{sub.name}": sub.id for sub, cat in rows}


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

