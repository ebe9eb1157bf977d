from __future__ import annotations

import datetime as dt

from pydantic import BaseModel

from app.models.keyword import Keyword
from app.models.version import Version
from app.models.version_download import VersionDownload


def _iso(ts: dt.datetime) -> str:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=dt.timezone.utc)
    out = ts.astimezone(dt.timezone.utc).isoformat()
    if out.endswith("+00:00"):
        out = out.removesuffix("+00:00") + "Z"
    return out


class EncodableKeyword(BaseModel):
    id: str
    keyword: str
    crates_cnt: int
    created_at: str

    @classmethod
    def from_model(cls, kw: Keyword) -> EncodableKeyword:
        return cls(
            id=kw.keyword,
            keyword=kw.keyword,
            crates_cnt=kw.crates_cnt,
            created_at=_iso(kw.created_at),
        )


class VersionLinks(BaseModel):
    dependencies: str
    version_downloads: str
    authors: str


class EncodableVersion(BaseModel):
    id: str
    crate: str
    num: str
    dl_path: str
    readme_path: str
    created_at: str
    updated_at: str
    downloads: int
    yanked: bool
    license: str | None
    links: VersionLinks

    @classmethod
    def from_model(cls, version: Version, *, crate_name: str) -> EncodableVersion:
        base = f"/api/v1/crates/{crate_name}/{version.num}"
        return cls(
            id=str(version.id),
            crate=crate_name,
            num=version.num,
            dl_path=f"{base}/download",
            readme_path=f"{base}/readme",
            created_at=_iso(version.created_at),
            updated_at=_iso(version.updated_at),
            downloads=version.downloads,
            yanked=version.yanked,
            license=version.license,
            links=VersionLinks(
                dependencies=f"{base}/dependencies",
                version_downloads=f"{base}/downloads",
                authors=f"{base}/authors",
            ),
        )


class EncodableVersionDownload(BaseModel):
    version: str
    downloads: int
    date: str

    @classmethod
    def from_model(cls, row: VersionDownload) -> EncodableVersionDownload:
        return cls(
            version=str(row.version_id),
            downloads=row.downloads,
            date=row.date.isoformat(),
        )
