from __future__ import annotations

import asyncio

import httpx
import pytest

from app.core.errors import Fault, Responded, Unhandled, finalize
from app.core.responses import NotFound
from app.services.github import GhNotFound, GitHubClient, team_url


def _client(handler) -> GitHubClient:
    return GitHubClient(
        base_url="https://api.github.test/",
        timeout_s=5.0,
        domain_name="crates.io",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _status(code: int):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(code, json={"message": "nope"}, request=request)

    return handler


def test_get_json_sends_token_and_decodes() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"login": "octocat"}, request=request)

    data = asyncio.run(_client(handler).get_json("/user", token="gho_abc"))

    assert data == {"login": "octocat"}
    assert str(seen[0].url) == "https://api.github.test/user"
    assert seen[0].headers["Authorization"] == "token gho_abc"
    assert seen[0].headers["Accept"] == "application/vnd.github.v3+json"


@pytest.mark.parametrize("code", [401, 403])
def test_permission_errors_use_legacy_message(code: int) -> None:
    with pytest.raises(Fault) as excinfo:
        asyncio.run(_client(_status(code)).get_json("/user", token="t"))

    outcome = finalize(excinfo.value)
    assert isinstance(outcome, Responded)
    assert outcome.response.status_code == 200
    detail = outcome.response.body.decode()
    assert "re-authenticate on crates.io" in detail
    assert "https://crates.io/login" in detail
    assert outcome.cause is None


def test_not_found_is_rooted_at_gh_not_found() -> None:
    with pytest.raises(Fault) as excinfo:
        asyncio.run(_client(_status(404)).get_json("/orgs/x", token="t"))

    fault = excinfo.value
    assert fault.root_cause_is(GhNotFound)
    assert isinstance(fault.response, NotFound)

    outcome = finalize(fault)
    assert isinstance(outcome, Responded)
    assert outcome.response.status_code == 404
    assert outcome.cause == "not found returned by GitHub API"


def test_other_statuses_are_internal() -> None:
    with pytest.raises(Fault) as excinfo:
        asyncio.run(_client(_status(502)).get_json("/user", token="t"))

    outcome = finalize(excinfo.value.append_context("checking team membership"))
    assert isinstance(outcome, Unhandled)
    assert str(outcome.error) == (
        "checking team membership caused by didn't get a 200 result from github: 502"
    )


def test_team_membership() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/memberships/octocat"):
            return httpx.Response(200, json={"state": "active"}, request=request)
        if request.url.path.endswith("/memberships/pending"):
            return httpx.Response(200, json={"state": "pending"}, request=request)
        return httpx.Response(404, request=request)

    client = _client(handler)

    async def _check(username: str) -> bool:
        return await client.team_membership(
            org_id=1, team_id=2, username=username, token="t"
        )

    assert asyncio.run(_check("octocat")) is True
    assert asyncio.run(_check("pending")) is False
    assert asyncio.run(_check("stranger")) is False


def test_team_membership_propagates_other_failures() -> None:
    with pytest.raises(Fault) as excinfo:
        asyncio.run(
            _client(_status(403)).team_membership(
                org_id=1, team_id=2, username="octocat", token="t"
            )
        )
    assert not excinfo.value.root_cause_is(GhNotFound)


def test_team_url() -> None:
    assert team_url("github:rust-lang:core") == "https://github.com/rust-lang"
    with pytest.raises(ValueError):
        team_url("github")
