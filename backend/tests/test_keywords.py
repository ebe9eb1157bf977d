from __future__ import annotations

from fastapi.testclient import TestClient

from app.models import Keyword


def _seed_keywords(run_db) -> None:
    async def _seed(session) -> None:
        session.add_all(
            [
                Keyword(keyword="async", crates_cnt=3),
                Keyword(keyword="cli", crates_cnt=10),
                Keyword(keyword="web", crates_cnt=1),
            ]
        )

    run_db(_seed)


def test_show_keyword(client: TestClient, run_db) -> None:
    _seed_keywords(run_db)

    r = client.get("/api/v1/keywords/cli")

    assert r.status_code == 200, r.text
    body = r.json()["keyword"]
    assert body["id"] == "cli"
    assert body["keyword"] == "cli"
    assert body["crates_cnt"] == 10
    assert body["created_at"].endswith("Z")


def test_unknown_keyword_is_not_found(client: TestClient) -> None:
    r = client.get("/api/v1/keywords/missing")

    assert r.status_code == 404
    assert r.content == b'{"errors":[{"detail":"Not Found"}]}'


def test_index_sorts_and_paginates(client: TestClient, run_db) -> None:
    _seed_keywords(run_db)

    r = client.get("/api/v1/keywords")
    assert r.status_code == 200, r.text
    body = r.json()
    assert [k["keyword"] for k in body["keywords"]] == ["async", "cli", "web"]
    assert body["meta"] == {"total": 3}

    r = client.get("/api/v1/keywords", params={"sort": "crates", "per_page": 2})
    assert [k["keyword"] for k in r.json()["keywords"]] == ["cli", "async"]

    r = client.get(
        "/api/v1/keywords", params={"sort": "crates", "per_page": 2, "page": 2}
    )
    assert [k["keyword"] for k in r.json()["keywords"]] == ["web"]
    assert r.json()["meta"] == {"total": 3}


def test_invalid_query_is_a_bad_request(client: TestClient) -> None:
    r = client.get("/api/v1/keywords", params={"per_page": 0})

    assert r.status_code == 400
    detail = r.json()["errors"][0]["detail"]
    assert detail.startswith("query.per_page:")
