"""Recurring transactions API endpoints."""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.dependencies import get_current_user
from app.models.recurring_transaction import RecurringTemplate
from app.models.transaction import Category
from app.models.user import User
from app.schemas.recurring_transaction import (
    GenerationResponse,
    RecurringTemplateResponse,
    RecurringTemplateUpdate,
)
from app.services.recurring_generation_service import generate_recurring_transactions
from app.services.recurring_template_service import recurring_template_service

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_owned_template(db: AsyncSession, template_id: UUID, user_id: UUID) -> RecurringTemplate:
    template = await recurring_template_service.get_owned(db, template_id, user_id)
    if not template:
        raise HTTPException(status_code=404, detail="Recurring transaction not found")
    return template


@router.get("/", response_model=List[RecurringTemplateResponse])
async def list_recurring_transactions(
    is_active: Optional[bool] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the current user's recurring templates."""
    query = select(RecurringTemplate).where(RecurringTemplate.user_id == current_user.id)

    if is_active is not None:
        query = query.where(RecurringTemplate.is_active == is_active)

    query = query.order_by(RecurringTemplate.start_date.desc(), RecurringTemplate.name)

    result = await db.execute(query)
    return result.scalars().all()


@router.post("/generate", response_model=GenerationResponse)
async def generate_now(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Run a sweep over the current user's templates.

    Per-template failures are reported in ``failed``; the request itself
    only fails when the templates cannot be read at all.
    """
    result = await generate_recurring_transactions(db, user_id=current_user.id)
    return GenerationResponse(
        success=result.succeeded,
        generated=result.generated,
        skipped=result.skipped,
        failed=result.failed,
    )


@router.get("/{template_id}", response_model=RecurringTemplateResponse)
async def get_recurring_transaction(
    template_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single recurring template."""
    return await _get_owned_template(db, template_id, current_user.id)


@router.patch("/{template_id}", response_model=RecurringTemplateResponse)
async def update_recurring_transaction(
    template_id: UUID,
    update_data: RecurringTemplateUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a recurring template.

    Changes apply to occurrences generated from now on. The recurrence
    pattern and the watermark cannot be changed.
    """
    user_id = current_user.id
    template = await _get_owned_template(db, template_id, user_id)

    update_dict = update_data.model_dump(exclude_unset=True)

    if update_dict.get("category_id") is not None:
        owned = await db.execute(
            select(Category.id).where(
                Category.id == update_dict["category_id"],
                Category.user_id == user_id,
            )
        )
        if owned.scalar_one_or_none() is None:
            raise HTTPException(status_code=404, detail="Category not found")

    end_date = update_dict.get("end_date")
    if end_date is not None and end_date < template.start_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_date cannot be before start_date",
        )

    for field, value in update_dict.items():
        if field == "type" and value is not None:
            value = value.value
        if field in ("name", "amount", "type") and value is None:
            continue
        if field == "description" and value is None:
            value = ""
        setattr(template, field, value)

    await db.commit()
    await db.refresh(template)
    return template


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recurring_transaction(
    template_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Stop a recurring template.

    The template is deactivated, not removed, so transactions already
    generated from it keep their link.
    """
    template = await _get_owned_template(db, template_id, current_user.id)
    recurring_template_service.deactivate(template)
    await db.commit()
    logger.info("Recurring template %s deactivated", template_id)
    return None
