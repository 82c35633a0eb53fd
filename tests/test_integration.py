"""Интеграционные тесты E2E."""

import asyncio

import pytest

from pr_reviewer.core.config import settings
from pr_reviewer.db.repositories.team_repository import TeamRepository


async def _add_team(client, team_name, *user_ids):
    response = await client.post(
        "/team/add",
        json={
            "team_name": team_name,
            "members": [
                {"user_id": uid, "username": f"Dev {uid}", "is_active": True} for uid in user_ids
            ],
        },
    )
    assert response.status_code == 201
    return response.json()["team"]


@pytest.mark.asyncio
async def test_e2e_pr_workflow(client):
    """E2E тест полного цикла работы с PR."""
    await _add_team(client, "backend", "u1", "u2", "u3", "u4")

    pr_response = await client.post(
        "/pullRequest/create",
        json={
            "pull_request_id": "pr-1",
            "pull_request_name": "Add feature",
            "author_id": "u1",
        },
    )
    assert pr_response.status_code == 201
    pr_data = pr_response.json()["pr"]
    assert pr_data["status"] == "OPEN"
    assert len(pr_data["assigned_reviewers"]) == 2
    assert "u1" not in pr_data["assigned_reviewers"]
    assert pr_data["need_more_reviewers"] is False

    old_reviewer = pr_data["assigned_reviewers"][0]
    reviews_response = await client.get("/users/getReview", params={"user_id": old_reviewer})
    assert reviews_response.status_code == 200
    assert [p["pull_request_id"] for p in reviews_response.json()["pull_requests"]] == ["pr-1"]

    reassign_response = await client.post(
        "/pullRequest/reassign",
        json={"pull_request_id": "pr-1", "old_user_id": old_reviewer},
    )
    assert reassign_response.status_code == 200
    reassign_data = reassign_response.json()
    assert reassign_data["replaced_by"] not in ("u1", old_reviewer)
    assert reassign_data["replaced_by"] in reassign_data["pr"]["assigned_reviewers"]
    assert old_reviewer not in reassign_data["pr"]["assigned_reviewers"]

    # старый ревьювер больше не видит PR
    reviews_response = await client.get("/users/getReview", params={"user_id": old_reviewer})
    assert reviews_response.json()["pull_requests"] == []

    merge_response = await client.post("/pullRequest/merge", json={"pull_request_id": "pr-1"})
    assert merge_response.status_code == 200
    merge_data = merge_response.json()["pr"]
    assert merge_data["status"] == "MERGED"
    assert merge_data["mergedAt"] is not None

    reassign_after_merge = await client.post(
        "/pullRequest/reassign",
        json={"pull_request_id": "pr-1", "old_user_id": reassign_data["replaced_by"]},
    )
    assert reassign_after_merge.status_code == 409
    assert reassign_after_merge.json()["error"]["code"] == "PR_MERGED"

    stats_response = await client.get("/stats")
    assert stats_response.status_code == 200
    stats = stats_response.json()
    assert stats["pull_requests"]["total_prs"] == 1
    assert stats["pull_requests"]["merged_prs"] == 1
    assert [u["user_id"] for u in stats["users"]] == ["u1", "u2", "u3", "u4"]


@pytest.mark.asyncio
async def test_get_pr_by_id(client):
    await _add_team(client, "backend", "u1", "u2")
    await client.post(
        "/pullRequest/create",
        json={"pull_request_id": "pr-1", "pull_request_name": "Fix login", "author_id": "u1"},
    )

    response = await client.get("/pullRequest", params={"pr_id": "pr-1"})
    assert response.status_code == 200
    assert response.json()["pr"]["assigned_reviewers"] == ["u2"]
    assert response.json()["pr"]["need_more_reviewers"] is True

    missing = await client.get("/pullRequest", params={"pr_id": "missing"})
    assert missing.status_code == 404
    assert missing.json() == {"error": {"code": "NOT_FOUND", "message": "PR not found"}}


@pytest.mark.asyncio
async def test_duplicate_team_and_pr(client):
    await _add_team(client, "backend", "u1", "u2")

    response = await client.post("/team/add", json={"team_name": "backend", "members": []})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "TEAM_EXISTS"

    payload = {"pull_request_id": "pr-1", "pull_request_name": "Fix login", "author_id": "u1"}
    assert (await client.post("/pullRequest/create", json=payload)).status_code == 201
    response = await client.post("/pullRequest/create", json=payload)
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "PR_EXISTS"


@pytest.mark.asyncio
async def test_set_is_active_endpoint(client):
    await _add_team(client, "backend", "u1", "u2")

    response = await client.post("/users/setIsActive", json={"user_id": "u2", "is_active": False})
    assert response.status_code == 200
    assert response.json()["user"] == {
        "user_id": "u2",
        "username": "Dev u2",
        "team_name": "backend",
        "is_active": False,
    }

    team = (await client.get("/team/get", params={"team_name": "backend"})).json()["team"]
    assert next(m for m in team["members"] if m["user_id"] == "u2")["is_active"] is False

    missing = await client.post("/users/setIsActive", json={"user_id": "ghost", "is_active": True})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_e2e_team_deactivate(client):
    """Деактивация команды снимает ревьюверов, для которых нет замены."""
    await _add_team(client, "backend", "be1", "be2", "be3")
    await _add_team(client, "frontend", "fe1", "fe2", "fe3")

    # в frontend все заняты, замен для fe2 и fe3 нет
    create_res = await client.post(
        "/pullRequest/create",
        json={"pull_request_id": "pr-fe-1", "pull_request_name": "FE Task 1", "author_id": "fe1"},
    )
    assert sorted(create_res.json()["pr"]["assigned_reviewers"]) == ["fe2", "fe3"]
    await client.post(
        "/pullRequest/create",
        json={"pull_request_id": "pr-be-1", "pull_request_name": "BE Task 1", "author_id": "be1"},
    )

    response = await client.post("/team/deactivate", json={"team_name": "frontend"})
    assert response.status_code == 200
    assert response.json() == {"deactivated_users_count": 3, "reassigned_prs_count": 1}

    pr = (await client.get("/pullRequest", params={"pr_id": "pr-fe-1"})).json()["pr"]
    assert pr["assigned_reviewers"] == []
    assert pr["status"] == "OPEN"

    be_pr = (await client.get("/pullRequest", params={"pr_id": "pr-be-1"})).json()["pr"]
    assert sorted(be_pr["assigned_reviewers"]) == ["be2", "be3"]

    team = (await client.get("/team/get", params={"team_name": "frontend"})).json()["team"]
    assert all(m["is_active"] is False for m in team["members"])

    missing = await client.post("/team/deactivate", json={"team_name": "nobody"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_validation_error_shape(client):
    response = await client.post("/team/add", json={"team_name": "ab", "members": []})
    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert [d["field"] for d in error["details"]] == ["team_name"]

    response = await client.post(
        "/pullRequest/create",
        json={"pull_request_id": "bad id!", "pull_request_name": "Fix", "author_id": "u1"},
    )
    assert response.status_code == 422
    fields = {d["field"] for d in response.json()["error"]["details"]}
    assert fields == {"pull_request_id", "pull_request_name"}


@pytest.mark.asyncio
async def test_request_id_header(client):
    response = await client.get(
        "/team/get", params={"team_name": "ghost"}, headers={"X-Request-ID": "req-42"}
    )
    assert response.status_code == 404
    assert response.headers["X-Request-ID"] == "req-42"

    response = await client.get("/health")
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_request_timeout_rolls_back(client, session, mock_cache, monkeypatch):
    """По таймауту клиент получает 504, а транзакция откатывается."""
    monkeypatch.setattr(settings, "REQUEST_TIMEOUT", 0.05)
    original_upsert = TeamRepository.upsert_members

    async def slow_upsert(self, team_id, members):
        await asyncio.sleep(0.3)
        return await original_upsert(self, team_id, members)

    monkeypatch.setattr(TeamRepository, "upsert_members", slow_upsert)

    response = await client.post(
        "/team/add",
        json={
            "team_name": "backend",
            "members": [{"user_id": "u1", "username": "Alice", "is_active": True}],
        },
        headers={"X-Request-ID": "req-slow"},
    )
    assert response.status_code == 504
    assert response.json()["error"]["code"] == "TIMEOUT"
    assert response.headers["X-Request-ID"] == "req-slow"

    # отменённый обработчик не должен дописать работу после ответа
    await asyncio.sleep(0.4)
    assert await TeamRepository(session).exists("backend") is False
    assert "teams:get_team:backend" not in mock_cache.data
