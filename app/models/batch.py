"""Course and Batch models."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class Course(BaseModel):
    """Course - supplies the base fee charged for each of its batches."""

    __tablename__ = "courses"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    batches: Mapped[list["Batch"]] = relationship("Batch", back_populates="course")

    def __repr__(self) -> str:
        return f"<Course(id={self.id}, name={self.name}, base_fee={self.base_fee})>"


class Batch(BaseModel):
    """A scheduled intake of a course with a fixed number of seats."""

    __tablename__ = "batches"
    __table_args__ = (
        CheckConstraint("current_count >= 0", name="ck_batch_count_non_negative"),
        CheckConstraint("current_count <= slot_limit", name="ck_batch_count_within_limit"),
    )

    course_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    location_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slot_limit: Mapped[int] = mapped_column(Integer, nullable=False)
    current_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    course: Mapped["Course"] = relationship("Course", back_populates="batches")
    location: Mapped["Location | None"] = relationship("Location", back_populates="batches")
    students: Mapped[list["Student"]] = relationship("Student", back_populates="current_batch")

    @property
    def has_free_slot(self) -> bool:
        return self.current_count < self.slot_limit

    def __repr__(self) -> str:
        return f"<Batch(id={self.id}, name={self.name}, count={self.current_count}/{self.slot_limit})>"
