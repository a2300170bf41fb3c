"""Transaction and category schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.transaction import TransactionType
from app.utils.recurrence import RecurrencePattern


def _clean_name(v: str, entity: str, max_length: int) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{entity} name cannot be empty")
    if len(v) > max_length:
        raise ValueError(f"{entity} name must be {max_length} characters or less")
    if "<" in v or ">" in v:
        raise ValueError(f"{entity} name cannot contain < or > characters")
    return v


class TransactionBase(BaseModel):
    """Base transaction schema."""

    name: str
    description: str = ""
    amount: Decimal = Field(max_digits=15, decimal_places=2)
    type: TransactionType
    date: date
    category_id: Optional[UUID] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v, "Transaction", 255)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v):
        return v or ""


class TransactionCreate(TransactionBase):
    """
    Transaction creation schema.

    With ``is_recurring`` the transaction also becomes the first occurrence of
    a new template repeating every ``recurrence_pattern`` until
    ``recurrence_end_date`` (exclusive of nothing; open-ended when null).
    """

    is_recurring: bool = False
    recurrence_pattern: Optional[RecurrencePattern] = None
    recurrence_end_date: Optional[date] = None

    @model_validator(mode="after")
    def validate_recurrence(self) -> "TransactionCreate":
        if not self.is_recurring:
            return self
        if self.recurrence_pattern is None:
            raise ValueError("recurrence_pattern is required for recurring transactions")
        if self.recurrence_end_date is not None and self.recurrence_end_date < self.date:
            raise ValueError("recurrence_end_date cannot be before the transaction date")
        return self


class TransactionUpdate(TransactionBase):
    """Full replacement of a transaction's editable fields."""

    # Also rewrite the template the transaction was generated from
    update_future: bool = False


class TransactionResponse(TransactionBase):
    """Transaction with joined category and recurrence details."""

    id: UUID
    user_id: UUID
    recurring_template_id: Optional[UUID] = None
    category_name: Optional[str] = None
    category_emoji: Optional[str] = None
    recurrence_pattern: Optional[str] = None
    recurrence_end_date: Optional[date] = None
    is_recurring: bool = False
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TransactionCreateResponse(BaseModel):
    """Identifiers of the rows created by POST /transactions."""

    id: UUID
    template_id: Optional[UUID] = None


class TransactionListResponse(BaseModel):
    """Transaction list response."""

    transactions: List[TransactionResponse]
    total: int


class CategoryBase(BaseModel):
    """Base category schema."""

    name: str
    emoji: str = Field(..., min_length=1, max_length=16)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate category name."""
        return _clean_name(v, "Category", 100)

    @field_validator("emoji")
    @classmethod
    def validate_emoji(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category emoji cannot be empty")
        return v


class CategoryCreate(CategoryBase):
    """Category creation schema."""

    pass


class CategoryUpdate(CategoryBase):
    """Category update schema (full replacement)."""

    pass


class CategoryResponse(CategoryBase):
    """Category response schema."""

    id: UUID
    user_id: UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
