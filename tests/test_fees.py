"""Tests for the fee ledger and batch occupancy services."""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConsistencyFailureError, PreconditionFailedError
from app.models import Batch, Fee, FeeStatus, Payment, PaymentStatus, Student
from app.services import batch as batch_service
from app.services import fee as fee_service


class TestFeeArithmetic:
    """Tests for total paid, remaining amount and settlement."""

    async def test_total_paid_ignores_void_payments(
        self, db: AsyncSession, fee: Fee, payments: list[Payment]
    ):
        """Cancelled payments do not count towards what was paid."""
        assert await fee_service.total_paid(db, fee.id) == Decimal("500")

    async def test_total_paid_without_payments_is_zero(self, db: AsyncSession, fee: Fee):
        assert await fee_service.total_paid(db, fee.id) == Decimal("0")

    @pytest.mark.parametrize(
        "base_fee,paid,expected",
        [
            ("800", "500", "300"),
            ("800", "800", "0"),
            ("800", "900", "0"),
        ],
    )
    def test_remaining_after_paid_never_negative(self, base_fee, paid, expected):
        assert fee_service.remaining_after_paid(Decimal(base_fee), Decimal(paid)) == Decimal(expected)

    def test_is_settled(self):
        """A fee is settled when nothing is owed or the paid amount covers it."""
        owing = Fee(final_fee=Decimal("1000"), balance_amount=Decimal("500"))
        cleared = Fee(final_fee=Decimal("1000"), balance_amount=Decimal("0"))

        assert fee_service.is_settled(owing, Decimal("500")) is False
        assert fee_service.is_settled(owing, Decimal("1000")) is True
        assert fee_service.is_settled(cleared, Decimal("0")) is True


class TestFeeLookup:
    """Tests for finding a student's open fee."""

    async def test_pending_fee_found(self, db: AsyncSession, student: Student, fee: Fee):
        found = await fee_service.get_pending_fee(db, student.id)
        assert found is not None
        assert found.id == fee.id

    async def test_active_fee_is_open_but_not_pending(
        self, db: AsyncSession, student: Student, fee: Fee
    ):
        fee.status = FeeStatus.ACTIVE
        await db.commit()

        assert await fee_service.get_pending_fee(db, student.id) is None
        open_fee = await fee_service.get_open_fee(db, student.id)
        assert open_fee is not None
        assert open_fee.id == fee.id

    async def test_closed_fee_is_not_open(self, db: AsyncSession, student: Student, fee: Fee):
        fee.status = FeeStatus.PAID
        await db.commit()

        assert await fee_service.get_open_fee(db, student.id) is None


class TestReassignPayments:
    """Tests for moving payments between fees."""

    async def test_live_payments_move_void_stay(
        self,
        db: AsyncSession,
        student: Student,
        batch_2: Batch,
        fee: Fee,
        payments: list[Payment],
    ):
        new_fee = await fee_service.create_fee(
            db,
            student_id=student.id,
            batch_id=batch_2.id,
            total_course_fee=Decimal("800"),
            final_fee=Decimal("800"),
            balance_amount=Decimal("300"),
        )
        await fee_service.reassign_payments(db, fee.id, new_fee.id)
        await db.commit()

        rows = (
            await db.execute(
                select(Payment.id, Payment.fee_id, Payment.amount, Payment.status).order_by(
                    Payment.amount
                )
            )
        ).all()
        by_id = {row.id: row for row in rows}
        live_ids = [p.id for p in payments if p.status == PaymentStatus.ACTIVE]
        cancelled = next(p for p in payments if p.status == PaymentStatus.CANCELLED)

        assert all(by_id[pid].fee_id == new_fee.id for pid in live_ids)
        assert by_id[cancelled.id].fee_id == fee.id
        assert by_id[cancelled.id].status == PaymentStatus.CANCELLED
        assert sum(row.amount for row in rows) == Decimal("650")
        assert await fee_service.total_paid(db, new_fee.id) == Decimal("500")

    async def test_include_void_moves_everything(
        self,
        db: AsyncSession,
        student: Student,
        batch_2: Batch,
        fee: Fee,
        payments: list[Payment],
    ):
        new_fee = await fee_service.create_fee(
            db,
            student_id=student.id,
            batch_id=batch_2.id,
            total_course_fee=Decimal("800"),
            final_fee=Decimal("800"),
            balance_amount=Decimal("800"),
        )
        await fee_service.reassign_payments(db, fee.id, new_fee.id, include_void=True)
        await db.commit()

        fee_ids = (await db.execute(select(Payment.fee_id))).scalars().all()
        assert set(fee_ids) == {new_fee.id}


class TestBatchOccupancy:
    """Tests for batch locking and seat counters."""

    async def test_move_occupancy(self, db: AsyncSession, batch_1: Batch, batch_2: Batch):
        await batch_service.move_occupancy(db, batch_1, batch_2)
        await db.commit()

        counts = dict((await db.execute(select(Batch.id, Batch.current_count))).all())
        assert counts[batch_1.id] == 0
        assert counts[batch_2.id] == 4

    async def test_move_into_full_batch_rejected(
        self, db: AsyncSession, batch_1: Batch, full_batch: Batch
    ):
        with pytest.raises(PreconditionFailedError) as exc_info:
            await batch_service.move_occupancy(db, batch_1, full_batch)

        assert exc_info.value.message == "Target batch is full"
        assert batch_1.current_count == 1
        assert full_batch.current_count == 2

    async def test_move_within_full_batch_is_noop(self, db: AsyncSession, full_batch: Batch):
        await batch_service.move_occupancy(db, full_batch, full_batch)

        assert full_batch.current_count == 2

    async def test_move_out_of_empty_batch_is_inconsistent(
        self, db: AsyncSession, batch_3: Batch, batch_2: Batch
    ):
        with pytest.raises(ConsistencyFailureError):
            await batch_service.move_occupancy(db, batch_3, batch_2)

    async def test_lock_batches_skips_missing_ids(
        self, db: AsyncSession, batch_1: Batch, batch_2: Batch
    ):
        batches = await batch_service.lock_batches(db, batch_1.id, batch_2.id, uuid4())

        assert set(batches) == {batch_1.id, batch_2.id}
        assert batches[batch_2.id].course.base_fee == Decimal("800")
