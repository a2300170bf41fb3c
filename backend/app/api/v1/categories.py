"""Category API endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.dependencies import get_current_user
from app.models.transaction import Category
from app.models.user import User
from app.schemas.transaction import CategoryCreate, CategoryResponse, CategoryUpdate

router = APIRouter()


async def get_owned_category(db: AsyncSession, category_id: UUID, user_id: UUID) -> Category:
    """Load a category owned by ``user_id`` or raise 404."""
    result = await db.execute(
        select(Category).where(
            Category.id == category_id,
            Category.user_id == user_id,
        )
    )
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.get("/", response_model=List[CategoryResponse])
async def list_categories(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List all categories for the current user."""
    result = await db.execute(
        select(Category)
        .where(Category.user_id == current_user.id)
        .order_by(Category.name)
    )
    return result.scalars().all()


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    category_data: CategoryCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a category. Name and emoji are required."""
    category = Category(
        user_id=current_user.id,
        name=category_data.name,
        emoji=category_data.emoji,
        description=category_data.description,
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    category_data: CategoryUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace a category's name, emoji and description."""
    category = await get_owned_category(db, category_id, current_user.id)

    category.name = category_data.name
    category.emoji = category_data.emoji
    category.description = category_data.description

    await db.commit()
    await db.refresh(category)
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete a category.

    Transactions and templates that used it keep existing with no category.
    """
    category = await get_owned_category(db, category_id, current_user.id)
    await db.delete(category)
    await db.commit()
    return None
