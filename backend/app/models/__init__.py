"""SQLAlchemy ORM models.

Importing this module should register all tables on Base.metadata.
"""

from __future__ import annotations

from app.models.api_token import ApiToken
from app.models.keyword import Keyword
from app.models.krate import Crate
from app.models.user import User
from app.models.version import Version
from app.models.version_download import VersionDownload

__all__ = [
    "ApiToken",
    "Crate",
    "Keyword",
    "User",
    "Version",
    "VersionDownload",
]
