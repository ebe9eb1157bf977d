from __future__ import annotations

from typing import TYPE_CHECKING

import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, GUID, TimestampMixin

if TYPE_CHECKING:
    from .user import User
    from .version import Version


class Crate(TimestampMixin, Base):
    __tablename__ = "crates"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        sa.ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    downloads: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)

    owner: Mapped["User"] = relationship(back_populates="crates")
    versions: Mapped[list["Version"]] = relationship(back_populates="crate")
