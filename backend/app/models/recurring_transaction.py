"""Recurring transaction template model."""

import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.core.database import Base
from app.core.db_types import UUID
from app.utils.datetime_utils import utc_now_lambda


class RecurringTemplate(Base):
    """
    Rule describing a recurring transaction's shape and cadence.

    ``last_generated_date`` is the watermark: the date of the newest
    transaction produced from this template, or ``start_date`` before the
    first generation. Only the generator moves it, and only forward.
    """

    __tablename__ = "recurring_transaction_templates"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id = Column(
        UUID(), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )

    # Copied onto every generated transaction
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    amount = Column(Numeric(15, 2), nullable=False)
    type = Column(String(10), nullable=False)

    # Cadence. Plain string so unknown values load and fail per template.
    recurrence_pattern = Column(String(20), nullable=False)
    start_date = Column(Date, nullable=False)
    last_generated_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    # Status
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    # Relationships
    category = relationship("Category")
    transactions = relationship("Transaction", back_populates="recurring_template")

    __table_args__ = (
        Index("ix_recurring_templates_due", "is_active", "recurrence_pattern", "last_generated_date"),
        Index("ix_recurring_templates_user_active", "user_id", "is_active"),
        CheckConstraint("type IN ('income', 'expense')", name="ck_recurring_templates_type"),
    )
