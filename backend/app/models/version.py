from __future__ import annotations

from typing import TYPE_CHECKING

import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, GUID, TimestampMixin

if TYPE_CHECKING:
    from .krate import Crate


class Version(TimestampMixin, Base):
    __tablename__ = "versions"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)
    crate_id: Mapped[uuid.UUID] = mapped_column(
        GUID(),
        sa.ForeignKey("crates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    num: Mapped[str] = mapped_column(sa.Text, nullable=False)
    yanked: Mapped[bool] = mapped_column(
        sa.Boolean,
        nullable=False,
        default=False,
        server_default=sa.text("FALSE"),
    )
    downloads: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=0)
    license: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    crate: Mapped["Crate"] = relationship(back_populates="versions")

    __table_args__ = (sa.UniqueConstraint("crate_id", "num"),)
