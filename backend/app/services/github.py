"""Talking to the GitHub API.

Only the error mapping lives here; callers decide what to do with the
payloads.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.errors import Fault, classify
from app.core.responses import NotFound
from app.core.settings import Settings, get_settings


logger = logging.getLogger(__name__)


class GhNotFound(Exception):
    def __str__(self) -> str:
        return "not found returned by GitHub API"


def team_url(login: str) -> str:
    """``github:org:team`` -> ``https://github.com/org``."""

    pieces = login.split(":")
    if len(pieces) < 2 or not pieces[1]:
        raise ValueError(f"malformed team login: {login!r}")
    return f"https://github.com/{pieces[1]}"


class GitHubClient:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_s: float,
        domain_name: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s
        self._domain_name = domain_name
        self._client = http_client

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, **kwargs: Any
    ) -> GitHubClient:
        settings = settings or get_settings()
        return cls(
            base_url=settings.github_base_url,
            timeout_s=settings.github_timeout_s,
            domain_name=settings.domain_name,
            **kwargs,
        )

    def error_for_response(self, resp: httpx.Response) -> Fault:
        if resp.status_code in (401, 403):
            return Fault.cargo_err_legacy(
                "It looks like you don't have permission "
                "to query a necessary property from Github "
                "to complete this request. "
                "You may need to re-authenticate on "
                f"{self._domain_name} to grant permission to read "
                "github org memberships. Just go to "
                f"https://{self._domain_name}/login"
            )
        if resp.status_code == 404:
            return classify(GhNotFound()).propose_response(NotFound)
        return Fault.internal(
            f"didn't get a 200 result from github: {resp.status_code}"
        )

    async def get_json(self, path: str, *, token: str) -> Any:
        """GET ``path`` and decode the JSON body.

        Transport failures are not wrapped; they reach the request boundary
        as-is and are classified there.
        """

        url = f"{self._base_url}{path}"
        logger.info("GITHUB HTTP: %s", url)
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "Authorization": f"token {token}",
            "User-Agent": f"{self._domain_name} (https://{self._domain_name})",
        }

        close_client = False
        client = self._client
        if client is None:
            close_client = True
            client = httpx.AsyncClient()

        try:
            resp = await client.get(url, headers=headers, timeout=self._timeout)
        finally:
            if close_client:
                await client.aclose()

        if resp.is_error:
            raise self.error_for_response(resp)
        return resp.json()

    async def team_membership(
        self, *, org_id: int, team_id: int, username: str, token: str
    ) -> bool:
        """Whether ``username`` is an active member of the team."""

        try:
            data = await self.get_json(
                f"/organizations/{org_id}/team/{team_id}/memberships/{username}",
                token=token,
            )
        except Fault as fault:
            if fault.root_cause_is(GhNotFound):
                return False
            raise
        return isinstance(data, dict) and data.get("state") == "active"
