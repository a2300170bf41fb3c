"""Template lifecycle operations driven by the transaction handlers."""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.recurring_transaction import RecurringTemplate
from app.models.transaction import Transaction
from app.schemas.transaction import TransactionCreate, TransactionUpdate

logger = logging.getLogger(__name__)


class RecurringTemplateService:
    """Create, rewrite and retire recurring templates."""

    @staticmethod
    async def get_owned(
        db: AsyncSession, template_id: UUID, user_id: UUID
    ) -> Optional[RecurringTemplate]:
        result = await db.execute(
            select(RecurringTemplate).where(
                RecurringTemplate.id == template_id,
                RecurringTemplate.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_with_initial_transaction(
        db: AsyncSession, user_id: UUID, data: TransactionCreate
    ) -> tuple[RecurringTemplate, Transaction]:
        """
        Create a template and its first occurrence in one commit.

        The watermark starts at the transaction's own date, so the generator's
        first occurrence is one period later.
        """
        template = RecurringTemplate(
            user_id=user_id,
            category_id=data.category_id,
            name=data.name,
            description=data.description,
            amount=data.amount,
            type=data.type.value,
            recurrence_pattern=data.recurrence_pattern.value,
            start_date=data.date,
            last_generated_date=data.date,
            end_date=data.recurrence_end_date,
            is_active=True,
        )
        db.add(template)
        await db.flush()

        txn = Transaction(
            user_id=user_id,
            category_id=data.category_id,
            name=data.name,
            description=data.description,
            amount=data.amount,
            type=data.type.value,
            date=data.date,
            recurring_template_id=template.id,
        )
        db.add(txn)
        await db.commit()
        await db.refresh(template)
        await db.refresh(txn)

        logger.info(
            "Created recurring template %s (%s) with initial transaction %s",
            template.id,
            template.recurrence_pattern,
            txn.id,
        )
        return template, txn

    @staticmethod
    def apply_update_future(template: RecurringTemplate, data: TransactionUpdate) -> None:
        """Copy descriptive fields onto the template so future occurrences use them."""
        template.name = data.name
        template.description = data.description
        template.amount = data.amount
        template.type = data.type.value
        template.category_id = data.category_id

    @staticmethod
    def deactivate(template: RecurringTemplate) -> None:
        """Soft-disable; the generator stops selecting it, history is kept."""
        template.is_active = False


recurring_template_service = RecurringTemplateService()
