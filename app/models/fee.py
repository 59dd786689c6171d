"""Fee and Payment models."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel, utcnow


class FeeStatus(str, Enum):
    """Fee lifecycle status."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    PAID = "PAID"
    INACTIVE = "INACTIVE"
    CANCELLED = "CANCELLED"


OPEN_FEE_STATUSES = (FeeStatus.PENDING, FeeStatus.ACTIVE)


class PaymentStatus(str, Enum):
    """Payment status."""

    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    CANCELLED = "CANCELLED"
    INACTIVE = "INACTIVE"


# Payments in these statuses carry no value and never follow a fee across a switch
VOID_PAYMENT_STATUSES = (PaymentStatus.CANCELLED, PaymentStatus.INACTIVE)


class Fee(BaseModel):
    """The amount a student owes for one batch."""

    __tablename__ = "fees"

    student_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    batch_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("batches.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Amounts
    total_course_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )  # Course price at the time the fee was raised
    final_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )  # Amount actually charged
    balance_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    advance_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    status: Mapped[FeeStatus] = mapped_column(
        String(20),
        default=FeeStatus.PENDING,
        server_default=FeeStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    # Switch that raised this fee, if any
    transfer_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True, index=True)

    note: Mapped[str | None] = mapped_column(Text)

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="fees")
    batch: Mapped["Batch"] = relationship("Batch")
    payments: Mapped[list["Payment"]] = relationship("Payment", back_populates="fee")

    def __repr__(self) -> str:
        return f"<Fee(id={self.id}, student={self.student_id}, status={self.status})>"


class Payment(BaseModel):
    """Money received from a student, attributed to one fee."""

    __tablename__ = "payments"

    student_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("fees.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    status: Mapped[PaymentStatus] = mapped_column(
        String(20),
        default=PaymentStatus.ACTIVE,
        server_default=PaymentStatus.ACTIVE.value,
        nullable=False,
    )
    paid_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    note: Mapped[str | None] = mapped_column(Text)

    # Relationships
    fee: Mapped["Fee"] = relationship("Fee", back_populates="payments")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, status={self.status})>"
