"""BatchHistory model."""

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel
from app.models.fee import FeeStatus


class FeeManageMode(str, Enum):
    """How the student's fee is handled when they change batch."""

    TRANSFER = "TRANSFER"  # Keep the existing fee, revenue stays with the old batch
    NEW_FEE = "NEW_FEE"  # Cancel the old fee, move payments to a new one
    SPLIT = "SPLIT"  # Close the old fee with its payments, raise a reduced new one


class BatchHistory(BaseModel):
    """One batch switch. Only the latest row per student may be edited."""

    __tablename__ = "batch_history"

    student_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    from_batch_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("batches.id", ondelete="RESTRICT"),
        nullable=False,
    )
    to_batch_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("batches.id", ondelete="RESTRICT"),
        nullable=False,
    )
    change_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text)

    transfer_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        unique=True,
        nullable=False,
    )
    fee_id_from: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    fee_id_to: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    fee_manage_mode: Mapped[FeeManageMode] = mapped_column(String(20), nullable=False)
    # Status of fee_id_from before the switch, restored when the switch is reversed
    fee_from_status: Mapped[FeeStatus | None] = mapped_column(String(20), nullable=True)

    # Relationships
    student: Mapped["Student"] = relationship("Student", back_populates="batch_history")
    from_batch: Mapped["Batch"] = relationship("Batch", foreign_keys=[from_batch_id])
    to_batch: Mapped["Batch"] = relationship("Batch", foreign_keys=[to_batch_id])

    @property
    def changed_fee(self) -> bool:
        """True when the switch raised a new fee (NEW_FEE or SPLIT)."""
        return self.fee_id_from != self.fee_id_to

    def __repr__(self) -> str:
        return (
            f"<BatchHistory(id={self.id}, student={self.student_id}, "
            f"{self.from_batch_id}->{self.to_batch_id}, mode={self.fee_manage_mode})>"
        )
