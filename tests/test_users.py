"""Тесты для сервиса пользователей и статистики."""

import pytest

from pr_reviewer.core.exceptions import NotFoundException
from pr_reviewer.db.repositories.team_repository import TeamRepository
from pr_reviewer.domain.pull_requests.service import PullRequestService
from pr_reviewer.domain.stats.service import StatsService
from pr_reviewer.domain.teams.service import TeamService
from pr_reviewer.domain.users.service import UserService


def _members(*user_ids, active=True):
    return [{"user_id": uid, "username": f"User {uid}", "is_active": active} for uid in user_ids]


@pytest.mark.asyncio
async def test_set_user_active(session, sample_team):
    """Тест установки флага активности пользователя."""
    service = UserService(session)
    result = await service.set_is_active("u1", False)
    assert result["user"] == {
        "user_id": "u1",
        "username": "Alice",
        "team_name": "backend",
        "is_active": False,
    }

    result = await service.set_is_active("u1", True)
    assert result["user"]["is_active"] is True


@pytest.mark.asyncio
async def test_inactive_user_is_not_assigned(session, sample_team):
    await UserService(session).set_is_active("u2", False)
    await UserService(session).set_is_active("u3", False)

    result = await PullRequestService(session).create_pr("pr-1", "Test PR", "u1")
    assert result["pr"]["assigned_reviewers"] == ["u4"]


@pytest.mark.asyncio
async def test_set_nonexistent_user_active(session):
    """Тест установки флага активности несуществующего пользователя."""
    service = UserService(session)
    with pytest.raises(NotFoundException):
        await service.set_is_active("nonexistent", False)


@pytest.mark.asyncio
async def test_get_reviews(session, sample_team):
    """Тест получения PR'ов пользователя."""
    pr_service = PullRequestService(session)
    created = await pr_service.create_pr("pr-1", "Test PR", "u1")
    reviewer = created["pr"]["assigned_reviewers"][0]

    user_service = UserService(session)
    result = await user_service.get_reviews(reviewer)
    assert result == {
        "user_id": reviewer,
        "pull_requests": [
            {
                "pull_request_id": "pr-1",
                "pull_request_name": "Test PR",
                "author_id": "u1",
                "status": "OPEN",
            }
        ],
    }

    # автор не ревьюит свой PR
    assert (await user_service.get_reviews("u1"))["pull_requests"] == []


@pytest.mark.asyncio
async def test_get_reviews_reflects_merge(session, sample_team):
    """Кеш ревью сбрасывается после merge."""
    pr_service = PullRequestService(session)
    created = await pr_service.create_pr("pr-1", "Test PR", "u1")
    reviewer = created["pr"]["assigned_reviewers"][0]

    user_service = UserService(session)
    await user_service.get_reviews(reviewer)
    await pr_service.merge_pr("pr-1")

    result = await user_service.get_reviews(reviewer)
    assert result["pull_requests"][0]["status"] == "MERGED"


@pytest.mark.asyncio
async def test_get_reviews_unknown_user(session):
    result = await UserService(session).get_reviews("ghost")
    assert result == {"user_id": "ghost", "pull_requests": []}


@pytest.mark.asyncio
async def test_user_stats(session):
    """Три PR с одним ревьювером: два открыты, один смержен."""
    await TeamService(session).create_team("backend", _members("u1", "u2"))
    pr_service = PullRequestService(session)
    for pr_id in ("pr-1", "pr-2", "pr-3"):
        await pr_service.create_pr(pr_id, f"Feature {pr_id}", "u1")
    await pr_service.merge_pr("pr-3")

    stats = await StatsService(session).get_stats()
    by_user = {s["user_id"]: s for s in stats["users"]}

    assert by_user["u2"]["open_reviews"] == 2
    assert by_user["u2"]["merged_reviews"] == 1
    assert by_user["u2"]["total_reviews"] == 3
    assert by_user["u1"]["open_reviews"] == 0
    assert by_user["u1"]["merged_reviews"] == 0

    assert stats["pull_requests"]["total_prs"] == 3
    assert stats["pull_requests"]["open_prs"] == 2
    assert stats["pull_requests"]["merged_prs"] == 1
    assert stats["pull_requests"]["need_more_reviewers"] == 2
    assert stats["pull_requests"]["prs_with_1_reviewer"] == 3


@pytest.mark.asyncio
async def test_deactivate_team_without_candidates(session):
    """Оба ревьювера деактивированы, замены нет: слоты освобождаются."""
    team_service = TeamService(session)
    await team_service.create_team("backend", _members("u1", "u2", "u3"))
    pr_service = PullRequestService(session)
    created = await pr_service.create_pr("pr-1", "Shared PR", "u1")
    assert sorted(created["pr"]["assigned_reviewers"]) == ["u2", "u3"]

    # автор уходит в другую команду, в backend остаются только ревьюверы
    await team_service.create_team("frontend", _members("u1"))

    result = await UserService(session).deactivate_team("backend")
    assert result == {"deactivated_users_count": 2, "reassigned_prs_count": 1}

    pr = await pr_service.get_pr("pr-1")
    assert pr["pr"]["assigned_reviewers"] == []
    assert pr["pr"]["status"] == "OPEN"

    team = await team_service.get_team("backend")
    assert all(m["is_active"] is False for m in team["team"]["members"])


@pytest.mark.asyncio
async def test_deactivate_team_ignores_merged_prs(session):
    team_service = TeamService(session)
    await team_service.create_team("backend", _members("u1", "u2", "u3"))
    pr_service = PullRequestService(session)
    await pr_service.create_pr("pr-1", "Merged PR", "u1")
    await pr_service.merge_pr("pr-1")
    await pr_service.create_pr("pr-2", "Open PR", "u1")

    result = await UserService(session).deactivate_team("backend")
    assert result == {"deactivated_users_count": 3, "reassigned_prs_count": 1}

    merged = await pr_service.get_pr("pr-1")
    assert sorted(merged["pr"]["assigned_reviewers"]) == ["u2", "u3"]


@pytest.mark.asyncio
async def test_deactivate_team_without_active_users(session):
    team_service = TeamService(session)
    await team_service.create_team("idle", _members("u1", "u2", active=False))

    result = await UserService(session).deactivate_team("idle")
    assert result == {"deactivated_users_count": 0, "reassigned_prs_count": 0}


@pytest.mark.asyncio
async def test_deactivate_unknown_team(session):
    with pytest.raises(NotFoundException):
        await UserService(session).deactivate_team("nonexistent")


@pytest.mark.asyncio
async def test_replace_inactive_reviewers_updates_slots(session):
    """Замена учитывает уже выполненные замены в этом же PR."""
    team_service = TeamService(session)
    await team_service.create_team("backend", _members("u1", "u2", "u3"))
    await PullRequestService(session).create_pr("pr-1", "Test PR", "u1")
    await team_service.create_team("pool", _members("p1", "p2"))
    pool = await TeamRepository(session).get_by_name("pool", load_members=False)

    service = UserService(session)
    [(pr, reviewer_ids)] = await service.pr_query.get_open_prs_by_reviewers(["u2", "u3"])
    await service._replace_inactive_reviewers(pr, reviewer_ids, {"u2", "u3"}, pool.id)
    await session.commit()

    assert sorted(reviewer_ids) == ["p1", "p2"]
    stored = await PullRequestService(session).get_pr("pr-1")
    assert sorted(stored["pr"]["assigned_reviewers"]) == ["p1", "p2"]


@pytest.mark.asyncio
async def test_open_prs_by_reviewers_lists_each_pr_once(session):
    """PR с двумя затронутыми ревьюверами возвращается один раз, смерженные пропускаются."""
    await TeamService(session).create_team("backend", _members("u1", "u2", "u3"))
    pr_service = PullRequestService(session)
    await pr_service.create_pr("pr-1", "Open PR", "u1")
    await pr_service.create_pr("pr-2", "Merged PR", "u1")
    await pr_service.merge_pr("pr-2")
    await pr_service.create_pr("pr-3", "Second open PR", "u2")

    repo = UserService(session).pr_query
    result = await repo.get_open_prs_by_reviewers(["u2", "u3"])
    await session.commit()

    assert [(pr.id, ids) for pr, ids in result] == [
        ("pr-1", ["u2", "u3"]),
        ("pr-3", ["u1", "u3"]),
    ]
    assert await repo.get_open_prs_by_reviewers(["nobody"]) == []
    assert await repo.get_open_prs_by_reviewers([]) == []
