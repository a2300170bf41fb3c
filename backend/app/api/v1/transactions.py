"""Transaction API endpoints."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.database import get_db
from app.dependencies import get_current_user
from app.models.recurring_transaction import RecurringTemplate
from app.models.transaction import Category, Transaction
from app.models.user import User
from app.schemas.transaction import (
    TransactionCreate,
    TransactionCreateResponse,
    TransactionListResponse,
    TransactionResponse,
    TransactionUpdate,
)
from app.services.recurring_generation_service import generate_for_user_best_effort
from app.services.recurring_template_service import recurring_template_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_response(
    txn: Transaction,
    category: Optional[Category],
    template: Optional[RecurringTemplate],
) -> TransactionResponse:
    return TransactionResponse(
        id=txn.id,
        user_id=txn.user_id,
        category_id=txn.category_id,
        name=txn.name,
        description=txn.description,
        amount=txn.amount,
        type=txn.type,
        date=txn.date,
        recurring_template_id=txn.recurring_template_id,
        category_name=category.name if category else None,
        category_emoji=category.emoji if category else None,
        recurrence_pattern=template.recurrence_pattern if template else None,
        recurrence_end_date=template.end_date if template else None,
        is_recurring=txn.recurring_template_id is not None,
        created_at=txn.created_at,
        updated_at=txn.updated_at,
    )


async def _get_owned_transaction(db: AsyncSession, transaction_id: UUID, user_id: UUID) -> Transaction:
    result = await db.execute(
        select(Transaction).where(
            Transaction.id == transaction_id,
            Transaction.user_id == user_id,
        )
    )
    txn = result.scalar_one_or_none()
    if not txn:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return txn


async def _ensure_category_owned(db: AsyncSession, category_id: Optional[UUID], user_id: UUID) -> None:
    if category_id is None:
        return
    result = await db.execute(
        select(Category.id).where(Category.id == category_id, Category.user_id == user_id)
    )
    if result.scalar_one_or_none() is None:
        raise HTTPException(status_code=404, detail="Category not found")


@router.get("/", response_model=TransactionListResponse)
async def list_transactions(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List the current user's transactions, newest first.

    Due recurring occurrences are materialized before the list is read.
    """
    user_id = current_user.id
    await generate_for_user_best_effort(db, user_id)

    total = await db.scalar(
        select(func.count(Transaction.id)).where(Transaction.user_id == user_id)
    )

    result = await db.execute(
        select(Transaction, Category, RecurringTemplate)
        .outerjoin(Category, Transaction.category_id == Category.id)
        .outerjoin(RecurringTemplate, Transaction.recurring_template_id == RecurringTemplate.id)
        .where(Transaction.user_id == user_id)
        .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        .offset(skip)
        .limit(limit)
    )

    return TransactionListResponse(
        transactions=[_to_response(txn, category, template) for txn, category, template in result.all()],
        total=total or 0,
    )


@router.post("/", response_model=TransactionCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    data: TransactionCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a transaction.

    With ``is_recurring`` a template is created as well and the transaction
    becomes its first occurrence.
    """
    user_id = current_user.id
    await generate_for_user_best_effort(db, user_id)
    await _ensure_category_owned(db, data.category_id, user_id)

    if data.is_recurring:
        template, txn = await recurring_template_service.create_with_initial_transaction(
            db, user_id, data
        )
        return TransactionCreateResponse(id=txn.id, template_id=template.id)

    txn = Transaction(
        user_id=user_id,
        category_id=data.category_id,
        name=data.name,
        description=data.description,
        amount=data.amount,
        type=data.type.value,
        date=data.date,
    )
    db.add(txn)
    await db.commit()
    await db.refresh(txn)
    return TransactionCreateResponse(id=txn.id)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single transaction."""
    result = await db.execute(
        select(Transaction, Category, RecurringTemplate)
        .outerjoin(Category, Transaction.category_id == Category.id)
        .outerjoin(RecurringTemplate, Transaction.recurring_template_id == RecurringTemplate.id)
        .where(Transaction.id == transaction_id, Transaction.user_id == current_user.id)
    )
    row = result.one_or_none()
    if row is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return _to_response(*row)


@router.put("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: UUID,
    data: TransactionUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update a transaction.

    With ``update_future`` the template it was generated from is rewritten
    too, so later occurrences carry the new values. Already generated
    transactions other than this one are left as they are.
    """
    user_id = current_user.id
    txn = await _get_owned_transaction(db, transaction_id, user_id)
    await _ensure_category_owned(db, data.category_id, user_id)

    txn.name = data.name
    txn.description = data.description
    txn.amount = data.amount
    txn.type = data.type.value
    txn.date = data.date
    txn.category_id = data.category_id

    template = None
    if txn.recurring_template_id is not None:
        template = await recurring_template_service.get_owned(db, txn.recurring_template_id, user_id)
        if template is not None and data.update_future:
            recurring_template_service.apply_update_future(template, data)
            logger.info("Template %s updated from transaction %s", template.id, txn.id)

    await db.commit()
    await db.refresh(txn)

    category = await db.get(Category, txn.category_id) if txn.category_id else None
    return _to_response(txn, category, template)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_transaction(
    transaction_id: UUID,
    delete_future: bool = Query(False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a transaction.

    With ``delete_future`` the linked template is deactivated so nothing
    further is generated from it.
    """
    user_id = current_user.id
    txn = await _get_owned_transaction(db, transaction_id, user_id)

    if delete_future and txn.recurring_template_id is not None:
        template = await recurring_template_service.get_owned(db, txn.recurring_template_id, user_id)
        if template is not None:
            recurring_template_service.deactivate(template)
            logger.info("Template %s deactivated from transaction %s", template.id, txn.id)

    await db.delete(txn)
    await db.commit()
    return None
