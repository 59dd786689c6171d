"""Location model."""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import BaseModel


class Location(BaseModel):
    """Location (branch) - the tenant users, batches and students belong to."""

    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500))
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        server_default="true",
    )

    # Relationships
    users: Mapped[list["User"]] = relationship("User", back_populates="location")
    batches: Mapped[list["Batch"]] = relationship("Batch", back_populates="location")
    students: Mapped[list["Student"]] = relationship("Student", back_populates="location")

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, name={self.name})>"
