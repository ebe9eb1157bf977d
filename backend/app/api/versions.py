from __future__ import annotations

import datetime as dt
import logging

import sqlalchemy as sa
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.api.schemas import EncodableVersion, EncodableVersionDownload
from app.core.errors import Fault, chain_internal_cause, present_or_fallback
from app.core.responses import CargoLegacy
from app.db.base import utcnow
from app.db.session import get_db, get_read_only_db
from app.models.krate import Crate
from app.models.user import User
from app.models.version import Version
from app.models.version_download import VersionDownload
from app.utils import semver


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/crates", tags=["versions"])

# Versions listed individually by the downloads endpoint; older ones are
# summed per day.
DOWNLOADS_LATEST_VERSIONS = 5
DOWNLOADS_WINDOW_DAYS = 90


class VersionResponse(BaseModel):
    version: EncodableVersion


class OkResponse(BaseModel):
    ok: bool


class ExtraDownload(BaseModel):
    date: str
    downloads: int


class DownloadsMeta(BaseModel):
    extra_downloads: list[ExtraDownload]


class DownloadsResponse(BaseModel):
    version_downloads: list[EncodableVersionDownload]
    meta: DownloadsMeta


async def version_and_crate(
    db: AsyncSession, crate_name: str, num: str
) -> tuple[Version, Crate]:
    if not semver.is_valid(num):
        raise Fault.bad_request(f"invalid semver: {num}")

    # A missing crate is left as the root cause; the boundary maps it to 404.
    krate = (
        await db.execute(sa.select(Crate).where(Crate.name == crate_name))
    ).scalar_one()

    version = (
        await db.execute(
            sa.select(Version).where(Version.crate_id == krate.id, Version.num == num)
        )
    ).scalar_one_or_none()
    version = present_or_fallback(
        version,
        lambda: CargoLegacy(f"crate `{crate_name}` does not have a version `{num}`"),
    )
    return version, krate


@router.get("/{crate_id}/downloads", response_model=DownloadsResponse)
async def downloads(
    crate_id: str, db: AsyncSession = Depends(get_read_only_db)
) -> DownloadsResponse:
    """Daily downloads over the last 90 days.

    The five highest versions are reported one row per version and day. All
    other versions are folded into ``meta.extra_downloads``.
    """

    krate = (
        await db.execute(sa.select(Crate).where(Crate.name == crate_id))
    ).scalar_one()

    versions = (
        await db.execute(sa.select(Version).where(Version.crate_id == krate.id))
    ).scalars().all()
    versions = sorted(versions, key=lambda v: semver.sort_key(v.num), reverse=True)
    latest = [v.id for v in versions[:DOWNLOADS_LATEST_VERSIONS]]
    rest = [v.id for v in versions[DOWNLOADS_LATEST_VERSIONS:]]

    since = utcnow().date() - dt.timedelta(days=DOWNLOADS_WINDOW_DAYS)

    rows = (
        await db.execute(
            sa.select(VersionDownload)
            .where(VersionDownload.version_id.in_(latest), VersionDownload.date > since)
            .order_by(VersionDownload.date.asc(), VersionDownload.version_id)
        )
    ).scalars()

    extra: list[ExtraDownload] = []
    if rest:
        sums = (
            await db.execute(
                sa.select(VersionDownload.date, sa.func.sum(VersionDownload.downloads))
                .where(VersionDownload.version_id.in_(rest), VersionDownload.date > since)
                .group_by(VersionDownload.date)
                .order_by(VersionDownload.date.asc())
            )
        ).all()
        extra = [
            ExtraDownload(date=day.isoformat(), downloads=total) for day, total in sums
        ]

    return DownloadsResponse(
        version_downloads=[EncodableVersionDownload.from_model(r) for r in rows],
        meta=DownloadsMeta(extra_downloads=extra),
    )


@router.get("/{crate_id}/{version}", response_model=VersionResponse)
async def show(
    crate_id: str, version: str, db: AsyncSession = Depends(get_read_only_db)
) -> VersionResponse:
    v, krate = await version_and_crate(db, crate_id, version)
    return VersionResponse(version=EncodableVersion.from_model(v, crate_name=krate.name))


async def _modify_yank(
    db: AsyncSession, user: User, crate_name: str, num: str, *, yanked: bool
) -> OkResponse:
    v, krate = await version_and_crate(db, crate_name, num)
    if krate.owner_id != user.id:
        raise Fault.cargo_err_legacy("must already be an owner to yank or unyank")

    if v.yanked != yanked:
        v.yanked = yanked
        with chain_internal_cause(f"failed to update yanked flag of {crate_name}@{num}"):
            await db.commit()
        logger.info(
            "%s %s@%s (user=%s)",
            "Yanked" if yanked else "Unyanked",
            crate_name,
            num,
            user.gh_login,
        )
    return OkResponse(ok=True)


@router.delete("/{crate_id}/{version}/yank", response_model=OkResponse)
async def yank(
    crate_id: str,
    version: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    return await _modify_yank(db, user, crate_id, version, yanked=True)


@router.put("/{crate_id}/{version}/unyank", response_model=OkResponse)
async def unyank(
    crate_id: str,
    version: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OkResponse:
    return await _modify_yank(db, user, crate_id, version, yanked=False)
