"""
SQLAlchemy models for the household finance backend.

Tables:
- accounts: Shared households that own transactions and a category taxonomy
- account_members: Users (besides the owner) allowed into an account
- categories: Top-level budget categories, per account
- subcategories: Budget subcategories — the target of every category mapping
- transactions: All financial transactions (negative = expense, positive = income)
- category_mappings: Learned bank category/subcategory → subcategory pairs
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Float, Date, DateTime,
    ForeignKey, Text, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship
from .database import Base


def new_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    owner_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    members = relationship("AccountMember", back_populates="account", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="account", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="account")

    def __repr__(self):
        return f"<Account {self.name} (owner={self.owner_id})>"


class AccountMember(Base):
    __tablename__ = "account_members"

    account_id = Column(String(36), ForeignKey("accounts.id"), primary_key=True)
    user_id = Column(String(36), primary_key=True)

    account = relationship("Account", back_populates="members")

    def __repr__(self):
        return f"<AccountMember {self.user_id} in {self.account_id}>"


class Category(Base):
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Relationships
    account = relationship("Account", back_populates="categories")
    subcategories = relationship(
        "Subcategory",
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="Subcategory.created_at",
    )

    def __repr__(self):
        return f"<Category {self.name}>"


class Subcategory(Base):
    __tablename__ = "subcategories"

    id = Column(String(36), primary_key=True, default=new_id)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    category = relationship("Category", back_populates="subcategories")

    def __repr__(self):
        return f"<Subcategory {self.name}>"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    subcategory_id = Column(String(36), ForeignKey("subcategories.id"), nullable=True)
    date = Column(Date, nullable=False)
    description = Column(Text, nullable=False)
    amount = Column(Float, nullable=False)  # Negative = expense, positive = income
    bank_category = Column(String(200), nullable=True)  # Raw from the bank export
    bank_subcategory = Column(String(200), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Indexes
    __table_args__ = (
        Index("idx_transactions_date", "date"),
        Index("idx_transactions_account_date", "account_id", "date"),
    )

    # Relationships
    account = relationship("Account", back_populates="transactions")
    subcategory = relationship("Subcategory")

    def __repr__(self):
        return f"<Transaction {self.date} {self.description[:30]} {self.amount}>"


class CategoryMapping(Base):
    __tablename__ = "category_mappings"

    id = Column(String(36), primary_key=True, default=new_id)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False)
    bank_category = Column(String(200), nullable=False)
    bank_subcategory = Column(String(200), nullable=False, default="")
    subcategory_id = Column(String(36), ForeignKey("subcategories.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint(
            "account_id", "bank_category", "bank_subcategory",
            name="uq_category_mapping_bank_pair",
        ),
    )

    subcategory = relationship("Subcategory")

    def __repr__(self):
        return f"<CategoryMapping {self.bank_category}|{self.bank_subcategory} → {self.subcategory_id}>"
