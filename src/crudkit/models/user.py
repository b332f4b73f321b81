from sqlalchemy import String, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from datetime import datetime

from crudkit.database.base import Base
from crudkit.query.policy import ColumnPolicy


class User(Base):
    """
    Example entity managed through the generic repository.

    Only the column policy below gives its fields meaning to list requests.
    """
    __tablename__ = "users"

    # Integer identity assigned by the database on insert, never reassigned
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Unique; the engine enforces it and duplicates surface as ConflictError
    email: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id!r}, name={self.name!r}, email={self.email!r})>"


# Search on name and email; sort on these columns (the primary key is always sortable).
USER_COLUMN_POLICY = ColumnPolicy(
    searchable_columns=("name", "email"),
    sortable_columns=("id", "name", "email", "created_at"),
)
