"""SQLAlchemy models for kakeibo database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Account(Base):
    """Bank, card or wallet account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    bank_name = Column(String, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    transactions = relationship(
        "Transaction", back_populates="account", foreign_keys="Transaction.account_id"
    )


class Category(Base):
    """Category model with hierarchical structure."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    kind = Column(String, default="expense", nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    parent = relationship("Category", remote_side=[id], backref="children")
    transactions = relationship("Transaction", back_populates="category")


class Transaction(Base):
    """Ledger transaction model."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    occurred_on = Column(Date, nullable=False)
    kind = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    description = Column(String, nullable=False, default="")
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    to_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    source = Column(String, nullable=True)
    source_id = Column(String, nullable=True)
    import_id = Column(String, nullable=True)
    import_fingerprint = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (
        Index("ix_transactions_import_id", "import_id"),
        Index("ix_transactions_source_id", "source_id"),
        Index("ix_transactions_import_fingerprint", "import_fingerprint"),
    )

    # Relationships
    account = relationship("Account", back_populates="transactions", foreign_keys=[account_id])
    category = relationship("Category", back_populates="transactions")


class ClassificationRule(Base):
    """Keyword classification rule model.

    Creation order is the primary key order; it breaks priority ties.
    """

    __tablename__ = "classification_rules"

    id = Column(Integer, primary_key=True)
    keyword = Column(String, nullable=False)
    match_type = Column(String, default="contains", nullable=False)
    target_category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    kind = Column(String, default="expense", nullable=False)
    priority = Column(Integer, default=0, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)
    origin = Column(String, default="user", nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class SavedMapping(Base):
    """Named manual column mapping."""

    __tablename__ = "saved_mappings"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    format_hint = Column(String, nullable=True)
    date_index = Column(Integer, nullable=True)
    amount_index = Column(Integer, nullable=True)
    debit_index = Column(Integer, nullable=True)
    credit_index = Column(Integer, nullable=True)
    type_index = Column(Integer, nullable=True)
    description_index = Column(Integer, nullable=True)
    category_index = Column(Integer, nullable=True)
    partner_index = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class ImportHistory(Base):
    """One row per committed import batch."""

    __tablename__ = "import_history"

    id = Column(Integer, primary_key=True)
    import_id = Column(String, unique=True, nullable=False)
    file_fingerprint = Column(String, nullable=False, index=True)
    file_name = Column(String, nullable=False)
    source = Column(String, nullable=True)
    imported_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    total_row_count = Column(Integer, default=0, nullable=False)
    committed_count = Column(Integer, default=0, nullable=False)
    skipped_duplicate_count = Column(Integer, default=0, nullable=False)
    invalid_count = Column(Integer, default=0, nullable=False)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
