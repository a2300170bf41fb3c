"""Materialize recurring transactions from templates.

A sweep selects active templates whose elapsed-time gate has passed, computes
each one's next occurrence from its watermark and, when that date has
arrived, appends exactly one transaction and advances the watermark. At most
one occurrence is produced per template per sweep; a template that has
missed several periods catches up one period per sweep.

The watermark advance is a compare-and-swap keyed on the previous watermark
and is committed in the same database transaction as the new row, so
overlapping sweeps (the beat schedule racing a request-triggered sweep)
cannot both generate the same occurrence.
"""

import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.logging_config import get_logger
from app.models.recurring_transaction import RecurringTemplate
from app.models.transaction import Transaction
from app.utils.datetime_utils import Clock, utc_now
from app.utils.recurrence import RecurrencePattern, RolloverPolicy, advance, gate_cutoff

logger = get_logger(__name__)


class RecurringGenerationError(Exception):
    """A sweep did not complete cleanly; raised for triggers that need a failure signal."""

    def __init__(self, message: str, result: Optional["GenerationResult"] = None):
        super().__init__(message)
        self.result = result


class TemplateStoreUnavailableError(RecurringGenerationError):
    """Due templates could not be read; nothing was generated, so the sweep may be retried."""


@dataclass(frozen=True)
class DueTemplate:
    """Detached snapshot of a template row, safe to use across commits and rollbacks."""

    id: UUID
    user_id: UUID
    category_id: Optional[UUID]
    name: str
    description: str
    amount: Decimal
    type: str
    recurrence_pattern: str
    last_generated_date: date
    end_date: Optional[date]

    @classmethod
    def from_model(cls, template: RecurringTemplate) -> "DueTemplate":
        return cls(
            id=template.id,
            user_id=template.user_id,
            category_id=template.category_id,
            name=template.name,
            description=template.description or "",
            amount=template.amount,
            type=template.type,
            recurrence_pattern=template.recurrence_pattern,
            last_generated_date=template.last_generated_date,
            end_date=template.end_date,
        )


@dataclass
class TemplateFailure:
    template_id: UUID
    error: str


@dataclass
class GenerationResult:
    """Counters for one sweep."""

    execution_id: str
    as_of: date
    considered: int = 0
    generated: int = 0
    skipped: int = 0
    failed: int = 0
    transaction_ids: List[UUID] = field(default_factory=list)
    failures: List[TemplateFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.failed == 0


class TemplateStore(Protocol):
    """Persistence operations the generator needs."""

    async def list_due_templates(
        self, as_of: date, user_id: Optional[UUID] = None
    ) -> List[DueTemplate]:
        ...

    async def append_and_advance(self, template: DueTemplate, next_date: date) -> Optional[UUID]:
        """
        Insert the occurrence and move the watermark as one atomic unit.

        Returns the new transaction id, or None when the watermark no longer
        matches ``template.last_generated_date`` (another sweep got there first).
        """
        ...

    async def rollback(self) -> None:
        ...


class SQLAlchemyTemplateStore:
    """TemplateStore over an AsyncSession. Each append is its own committed transaction."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_due_templates(
        self, as_of: date, user_id: Optional[UUID] = None
    ) -> List[DueTemplate]:
        known = [pattern.value for pattern in RecurrencePattern]
        gate = or_(
            *[
                and_(
                    RecurringTemplate.recurrence_pattern == pattern.value,
                    RecurringTemplate.last_generated_date <= gate_cutoff(as_of, pattern),
                )
                for pattern in RecurrencePattern
            ],
            # Unrecognized patterns are selected so they surface as per-template failures
            RecurringTemplate.recurrence_pattern.notin_(known),
        )
        query = select(RecurringTemplate).where(
            RecurringTemplate.is_active.is_(True),
            or_(RecurringTemplate.end_date.is_(None), RecurringTemplate.end_date >= as_of),
            gate,
        )
        if user_id is not None:
            query = query.where(RecurringTemplate.user_id == user_id)

        # The watermark CAS does not synchronize the session, so rows already in
        # the identity map must be refreshed from the database
        query = query.order_by(
            RecurringTemplate.last_generated_date, RecurringTemplate.id
        ).execution_options(populate_existing=True)

        result = await self.db.execute(query)
        templates = [DueTemplate.from_model(t) for t in result.scalars().all()]
        # Release the read transaction before the per-template write units
        await self.db.commit()
        return templates

    async def append_and_advance(self, template: DueTemplate, next_date: date) -> Optional[UUID]:
        swap = await self.db.execute(
            update(RecurringTemplate)
            .where(
                RecurringTemplate.id == template.id,
                RecurringTemplate.last_generated_date == template.last_generated_date,
                RecurringTemplate.is_active.is_(True),
            )
            .values(last_generated_date=next_date, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if swap.rowcount != 1:
            await self.db.rollback()
            return None

        txn = Transaction(
            user_id=template.user_id,
            category_id=template.category_id,
            name=template.name,
            description=template.description,
            amount=template.amount,
            type=template.type,
            date=next_date,
            recurring_template_id=template.id,
        )
        self.db.add(txn)
        await self.db.flush()
        await self.db.commit()
        return txn.id

    async def rollback(self) -> None:
        await self.db.rollback()


class RecurringTransactionGenerator:
    """
    Runs sweeps over a TemplateStore.

    Args:
        store: Where templates are read and occurrences written
        clock: Source of "now"; inject a fixed clock in tests
        rollover: Month/leap-day rollover policy (defaults to settings)
    """

    def __init__(
        self,
        store: TemplateStore,
        clock: Clock = utc_now,
        rollover: Optional[RolloverPolicy] = None,
    ):
        self.store = store
        self.clock = clock
        self.rollover = RolloverPolicy(rollover or settings.MONTH_ROLLOVER_POLICY)

    async def run(self, user_id: Optional[UUID] = None) -> GenerationResult:
        """
        Execute one sweep.

        Args:
            user_id: Restrict the sweep to one owner's templates (interactive triggers)

        Returns:
            GenerationResult; ``generated`` counts successful occurrences

        Raises:
            Exception: Whatever the store raised while listing due templates
        """
        result = GenerationResult(execution_id=uuid.uuid4().hex, as_of=self.clock().date())
        log = logger.bind(
            execution_id=result.execution_id,
            scope=str(user_id) if user_id else "all",
        )
        started = time.perf_counter()
        log.info("recurring_sweep_started", as_of=result.as_of.isoformat())

        try:
            templates = await self.store.list_due_templates(result.as_of, user_id=user_id)
        except Exception:
            log.error("recurring_sweep_store_unavailable", exc_info=True)
            raise

        result.considered = len(templates)
        log.info("recurring_sweep_templates_found", count=result.considered)

        for template in templates:
            await self._process(template, result, log)

        log.info(
            "recurring_sweep_completed",
            generated=result.generated,
            skipped=result.skipped,
            failed=result.failed,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return result

    async def _process(self, template: DueTemplate, result: GenerationResult, log) -> None:
        log = log.bind(template_id=str(template.id))
        try:
            next_date = advance(template.last_generated_date, template.recurrence_pattern, self.rollover)

            if next_date > result.as_of:
                result.skipped += 1
                log.debug("recurring_template_not_due", next_date=next_date.isoformat())
                return

            if template.end_date is not None and next_date > template.end_date:
                result.skipped += 1
                log.debug("recurring_template_past_end", next_date=next_date.isoformat())
                return

            txn_id = await self.store.append_and_advance(template, next_date)
            if txn_id is None:
                result.skipped += 1
                log.warning("recurring_template_watermark_moved", next_date=next_date.isoformat())
                return

            result.generated += 1
            result.transaction_ids.append(txn_id)
            log.info(
                "recurring_transaction_generated",
                transaction_id=str(txn_id),
                next_date=next_date.isoformat(),
            )
        except Exception as exc:
            result.failed += 1
            result.failures.append(TemplateFailure(template_id=template.id, error=str(exc)))
            log.error("recurring_template_failed", error=str(exc), exc_info=True)
            await self.store.rollback()


async def generate_recurring_transactions(
    db: AsyncSession,
    user_id: Optional[UUID] = None,
    clock: Clock = utc_now,
) -> GenerationResult:
    """Run one sweep against ``db`` with the configured rollover policy."""
    generator = RecurringTransactionGenerator(SQLAlchemyTemplateStore(db), clock=clock)
    return await generator.run(user_id=user_id)


async def generate_for_user_best_effort(
    db: AsyncSession,
    user_id: UUID,
    clock: Clock = utc_now,
) -> Optional[GenerationResult]:
    """
    Interactive trigger used by request handlers.

    Failures are logged and never reach the caller; the request proceeds
    with whatever state the database is in.
    """
    if not settings.INTERACTIVE_GENERATION_ENABLED:
        return None
    try:
        return await generate_recurring_transactions(db, user_id=user_id, clock=clock)
    except Exception:
        logger.warning("interactive_recurring_generation_failed", user_id=str(user_id), exc_info=True)
        await db.rollback()
        return None
