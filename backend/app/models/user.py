from __future__ import annotations

from typing import TYPE_CHECKING

import datetime as dt
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, GUID, utcnow

if TYPE_CHECKING:
    from .api_token import ApiToken
    from .krate import Crate


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(GUID(), primary_key=True, default=uuid.uuid4)

    # Accounts are created through GitHub OAuth; the login is the stable handle.
    gh_login: Mapped[str] = mapped_column(sa.Text, nullable=False, unique=True)
    name: Mapped[str | None] = mapped_column(sa.Text, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True), nullable=False, default=utcnow
    )

    api_tokens: Mapped[list["ApiToken"]] = relationship(back_populates="user")
    crates: Mapped[list["Crate"]] = relationship(back_populates="owner")
