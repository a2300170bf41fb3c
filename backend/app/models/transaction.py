"""Transaction and category models."""

import enum
import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.db_types import UUID
from app.utils.datetime_utils import utc_now_lambda


class TransactionType(str, enum.Enum):
    """Direction of money flow."""

    INCOME = "income"
    EXPENSE = "expense"


class Transaction(Base):
    """A single income or expense entry, one-off or produced by a recurring template."""

    __tablename__ = "transactions"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = Column(
        UUID(), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Transaction details
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    amount = Column(Numeric(15, 2), nullable=False)
    type = Column(String(10), nullable=False)
    date = Column(Date, nullable=False, index=True)

    # Set when the generator (or a recurring create) produced this row
    recurring_template_id = Column(
        UUID(),
        ForeignKey("recurring_transaction_templates.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Timestamps
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    # Relationships
    category = relationship("Category", back_populates="transactions")
    recurring_template = relationship("RecurringTemplate", back_populates="transactions")

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "date"),
        Index("ix_transactions_template_date", "recurring_template_id", "date"),
        CheckConstraint("type IN ('income', 'expense')", name="ck_transactions_type"),
    )

    @property
    def is_recurring(self) -> bool:
        return self.recurring_template_id is not None


class Category(Base):
    """User-defined category shown with an emoji."""

    __tablename__ = "categories"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name = Column(String(100), nullable=False)
    emoji = Column(String(16), nullable=False)
    description = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    # Relationships
    user = relationship("User", back_populates="categories")
    transactions = relationship("Transaction", back_populates="category")

    __table_args__ = (Index("ix_categories_user_name", "user_id", "name"),)
