"""Recurring transaction template schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.transaction import TransactionType


class RecurringTemplateUpdate(BaseModel):
    """
    Schema for updating a recurring template.

    The recurrence pattern, the watermark and the active flag are not
    editable; a template is stopped through DELETE and never restarted.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, max_digits=15, decimal_places=2)
    type: Optional[TransactionType] = None
    category_id: Optional[UUID] = None
    end_date: Optional[date] = None


class RecurringTemplateResponse(BaseModel):
    """Schema for recurring template response."""

    id: UUID
    user_id: UUID
    category_id: Optional[UUID] = None
    name: str
    description: str
    amount: Decimal
    type: str
    recurrence_pattern: str
    start_date: date
    last_generated_date: date
    end_date: Optional[date] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class GenerationResponse(BaseModel):
    """Outcome of an explicit generation sweep."""

    success: bool = True
    generated: int
    skipped: int = 0
    failed: int = 0
