from __future__ import annotations

import sqlalchemy as sa
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.schemas import EncodableVersion
from app.db.session import get_read_only_db
from app.models.krate import Crate
from app.models.user import User
from app.models.version import Version


router = APIRouter(prefix="/api/v1/me", tags=["me"])


class UpdatesMeta(BaseModel):
    more: bool


class UpdatesResponse(BaseModel):
    versions: list[EncodableVersion]
    meta: UpdatesMeta


@router.get("/updates", response_model=UpdatesResponse)
async def updates(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_read_only_db),
) -> UpdatesResponse:
    """Versions published to crates owned by the current user, newest first."""

    # Fetch one extra row to learn whether another page exists.
    rows = (
        await db.execute(
            sa.select(Version, Crate.name)
            .join(Crate, Crate.id == Version.crate_id)
            .where(Crate.owner_id == user.id)
            .order_by(Version.created_at.desc(), Version.id)
            .offset((page - 1) * per_page)
            .limit(per_page + 1)
        )
    ).all()
    more = len(rows) > per_page
    return UpdatesResponse(
        versions=[
            EncodableVersion.from_model(v, crate_name=name)
            for v, name in rows[:per_page]
        ],
        meta=UpdatesMeta(more=more),
    )
