"""Tests for the SQLAlchemy template store and full sweeps against SQLite."""

from datetime import date, datetime

import pytest
from sqlalchemy import func, select

from app.models.transaction import Transaction
from app.services.recurring_generation_service import (
    SQLAlchemyTemplateStore,
    generate_recurring_transactions,
)
from app.utils.datetime_utils import fixed_clock


async def count_transactions(db, template_id=None) -> int:
    query = select(func.count(Transaction.id))
    if template_id is not None:
        query = query.where(Transaction.recurring_template_id == template_id)
    return await db.scalar(query)


@pytest.mark.unit
class TestSQLAlchemyTemplateStore:
    """Test selection and the compare-and-swap append."""

    @pytest.mark.asyncio
    async def test_list_due_applies_gate(self, db, test_user, make_template):
        due = await make_template(test_user, "monthly", date(2024, 1, 15))
        await make_template(test_user, "monthly", date(2024, 2, 1))
        await make_template(test_user, "yearly", date(2023, 6, 1))

        templates = await SQLAlchemyTemplateStore(db).list_due_templates(date(2024, 2, 20))

        assert [t.id for t in templates] == [due.id]

    @pytest.mark.asyncio
    async def test_list_due_excludes_inactive_and_ended(self, db, test_user, make_template):
        await make_template(test_user, "weekly", date(2024, 3, 1), is_active=False)
        await make_template(test_user, "weekly", date(2024, 3, 1), end_date=date(2024, 3, 4))
        open_ended = await make_template(test_user, "weekly", date(2024, 3, 1))
        ends_today = await make_template(test_user, "weekly", date(2024, 3, 1), end_date=date(2024, 3, 8))

        templates = await SQLAlchemyTemplateStore(db).list_due_templates(date(2024, 3, 8))

        assert {t.id for t in templates} == {open_ended.id, ends_today.id}

    @pytest.mark.asyncio
    async def test_list_due_scoped_to_user(self, db, test_user, second_user, make_template):
        mine = await make_template(test_user, "weekly", date(2024, 3, 1))
        await make_template(second_user, "weekly", date(2024, 3, 1))

        templates = await SQLAlchemyTemplateStore(db).list_due_templates(
            date(2024, 3, 8), user_id=test_user.id
        )

        assert [t.id for t in templates] == [mine.id]

    @pytest.mark.asyncio
    async def test_list_due_includes_unknown_pattern(self, db, test_user, make_template):
        bad = await make_template(test_user, "fortnightly", date(2024, 3, 1))

        templates = await SQLAlchemyTemplateStore(db).list_due_templates(date(2024, 3, 2))

        assert [t.id for t in templates] == [bad.id]

    @pytest.mark.asyncio
    async def test_append_and_advance(self, db, test_user, test_category, make_template):
        template = await make_template(test_user, "monthly", date(2024, 1, 15), category=test_category)
        store = SQLAlchemyTemplateStore(db)
        [snapshot] = await store.list_due_templates(date(2024, 2, 20))

        txn_id = await store.append_and_advance(snapshot, date(2024, 2, 15))

        txn = await db.get(Transaction, txn_id)
        assert txn.date == date(2024, 2, 15)
        assert txn.recurring_template_id == template.id
        assert txn.category_id == test_category.id
        assert txn.name == "Rent"
        assert txn.user_id == test_user.id

        await db.refresh(template)
        assert template.last_generated_date == date(2024, 2, 15)

    @pytest.mark.asyncio
    async def test_stale_snapshot_does_not_duplicate(self, db, test_user, make_template):
        template = await make_template(test_user, "monthly", date(2024, 1, 15))
        template_id = template.id
        store = SQLAlchemyTemplateStore(db)
        [snapshot] = await store.list_due_templates(date(2024, 2, 20))

        first = await store.append_and_advance(snapshot, date(2024, 2, 15))
        second = await store.append_and_advance(snapshot, date(2024, 2, 15))

        assert first is not None
        assert second is None
        assert await count_transactions(db, template_id) == 1

    @pytest.mark.asyncio
    async def test_deactivated_after_listing_is_not_generated(self, db, test_user, make_template):
        template = await make_template(test_user, "monthly", date(2024, 1, 15))
        store = SQLAlchemyTemplateStore(db)
        [snapshot] = await store.list_due_templates(date(2024, 2, 20))

        template.is_active = False
        await db.commit()

        assert await store.append_and_advance(snapshot, date(2024, 2, 15)) is None
        assert await count_transactions(db) == 0


@pytest.mark.unit
class TestSweepAgainstDatabase:
    """End-to-end sweeps through generate_recurring_transactions."""

    @pytest.mark.asyncio
    async def test_sweep_generates_and_is_idempotent(self, db, test_user, make_template):
        template = await make_template(test_user, "monthly", date(2024, 1, 15))
        clock = fixed_clock(datetime(2024, 2, 20, 0, 15))

        first = await generate_recurring_transactions(db, clock=clock)
        second = await generate_recurring_transactions(db, clock=clock)

        assert first.generated == 1
        assert second.generated == 0
        assert await count_transactions(db, template.id) == 1

    @pytest.mark.asyncio
    async def test_sweep_isolates_unknown_pattern(self, db, test_user, make_template):
        await make_template(test_user, "fortnightly", date(2024, 1, 1))
        good = await make_template(test_user, "weekly", date(2024, 2, 10))
        good_id = good.id

        result = await generate_recurring_transactions(
            db, clock=fixed_clock(datetime(2024, 2, 20, 0, 15))
        )

        assert result.generated == 1
        assert result.failed == 1
        assert await count_transactions(db, good_id) == 1

    @pytest.mark.asyncio
    async def test_sweep_nothing_due(self, db, test_user, make_template):
        await make_template(test_user, "monthly", date(2024, 1, 15))

        result = await generate_recurring_transactions(
            db, clock=fixed_clock(datetime(2024, 2, 10, 0, 15))
        )

        assert result.considered == 0
        assert result.generated == 0
        assert await count_transactions(db) == 0

    @pytest.mark.asyncio
    async def test_second_sweep_on_same_session_sees_new_watermark(
        self, db, test_user, make_template
    ):
        template = await make_template(test_user, "weekly", date(2024, 1, 1))
        template_id = template.id
        clock = fixed_clock(datetime(2024, 2, 20, 0, 15))

        first = await generate_recurring_transactions(db, clock=clock)
        second = await generate_recurring_transactions(db, clock=clock)

        assert first.generated == 1
        assert second.generated == 1
        assert second.skipped == 0
        dates = (
            await db.execute(
                select(Transaction.date)
                .where(Transaction.recurring_template_id == template_id)
                .order_by(Transaction.date)
            )
        ).scalars().all()
        assert dates == [date(2024, 1, 8), date(2024, 1, 15)]

    @pytest.mark.asyncio
    async def test_sweep_treats_pattern_case_exactly(self, db, test_user, make_template):
        capitalized = await make_template(test_user, "Weekly", date(2024, 2, 19))
        capitalized_id = capitalized.id

        result = await generate_recurring_transactions(
            db, clock=fixed_clock(datetime(2024, 2, 20, 0, 15))
        )

        assert result.generated == 0
        assert result.failed == 1
        assert result.failures[0].template_id == capitalized_id
        assert await count_transactions(db) == 0
