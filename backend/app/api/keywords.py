from __future__ import annotations

from typing import Literal

import sqlalchemy as sa
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.schemas import EncodableKeyword
from app.db.session import get_read_only_db
from app.models.keyword import Keyword


router = APIRouter(prefix="/api/v1/keywords", tags=["keywords"])


class KeywordsMeta(BaseModel):
    total: int


class KeywordsResponse(BaseModel):
    keywords: list[EncodableKeyword]
    meta: KeywordsMeta


class KeywordResponse(BaseModel):
    keyword: EncodableKeyword


@router.get("", response_model=KeywordsResponse)
async def index(
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    sort: Literal["alpha", "crates"] = Query(default="alpha"),
    db: AsyncSession = Depends(get_read_only_db),
) -> KeywordsResponse:
    order_by = (
        Keyword.crates_cnt.desc() if sort == "crates" else Keyword.keyword.asc()
    )
    total = (await db.execute(sa.select(sa.func.count(Keyword.id)))).scalar_one()
    rows = (
        await db.execute(
            sa.select(Keyword)
            .order_by(order_by)
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
    ).scalars()
    return KeywordsResponse(
        keywords=[EncodableKeyword.from_model(kw) for kw in rows],
        meta=KeywordsMeta(total=total),
    )


@router.get("/{keyword_id}", response_model=KeywordResponse)
async def show(
    keyword_id: str, db: AsyncSession = Depends(get_read_only_db)
) -> KeywordResponse:
    # An unknown keyword surfaces as 404 from the boundary.
    kw = (
        await db.execute(sa.select(Keyword).where(Keyword.keyword == keyword_id))
    ).scalar_one()
    return KeywordResponse(keyword=EncodableKeyword.from_model(kw))
