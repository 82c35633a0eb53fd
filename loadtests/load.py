"""Нагрузочный прогон сервиса назначения ревьюверов.

Запускается против поднятого сервиса:

    BASE_URL=http://localhost:8080 python loadtests/load.py
"""

import asyncio
import os
import random
import statistics
import time
import uuid

import httpx
from faker import Faker

fake = Faker()
BASE_URL = os.getenv("BASE_URL", "http://localhost:8080")


def random_id(prefix: str) -> str:
    """Сгенерировать уникальный ID с префиксом."""
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


async def create_team(client: httpx.AsyncClient, num_users: int) -> tuple[str, list[str]]:
    """Создать команду с уникальными пользователями."""
    team_name = random_id("team")
    members = [
        {"user_id": random_id("u"), "username": fake.name(), "is_active": True}
        for _ in range(num_users)
    ]
    response = await client.post(
        f"{BASE_URL}/team/add", json={"team_name": team_name, "members": members}
    )
    response.raise_for_status()
    return team_name, [m["user_id"] for m in members]


async def create_pr(client: httpx.AsyncClient, author_id: str) -> dict:
    """Создать PR и вернуть его вместе с назначенными ревьюверами."""
    response = await client.post(
        f"{BASE_URL}/pullRequest/create",
        json={
            "pull_request_id": random_id("pr"),
            "pull_request_name": fake.sentence(nb_words=4)[:255],
            "author_id": author_id,
        },
    )
    response.raise_for_status()
    return response.json()["pr"]


async def get_pr(client: httpx.AsyncClient, pr_id: str) -> dict:
    response = await client.get(f"{BASE_URL}/pullRequest", params={"pr_id": pr_id})
    response.raise_for_status()
    return response.json()["pr"]


class RequestStats:
    """Счётчики и времена ответов для одной группы запросов."""

    def __init__(self, label: str):
        self.label = label
        self.count = 0
        self.server_errors = 0
        self.response_times: list[float] = []
        self.error_details: dict[str, int] = {}

    def record_success(self, duration_ms: float):
        self.count += 1
        self.response_times.append(duration_ms)

    def record_error(self, error_type: str, http_status_code: int | None = None):
        self.count += 1
        self.error_details[error_type] = self.error_details.get(error_type, 0) + 1
        if http_status_code and http_status_code >= 500:
            self.server_errors += 1

    def print_results(self, test_duration: int):
        print(f"\nРезультаты {self.label}:")
        print(f"  Всего запросов: {self.count}")
        print(f"  Ошибок (5xx): {self.server_errors}")
        if self.count:
            success_rate = (self.count - self.server_errors) / self.count * 100
            print(f"  Успешность (без 5xx): {success_rate:.2f}%")
            print(f"  RPS: {self.count / test_duration:.2f}")
        for code, count in sorted(self.error_details.items()):
            print(f"  {code}: {count}")

        if self.response_times:
            sorted_times = sorted(self.response_times)
            p95 = sorted_times[int(len(sorted_times) * 0.95)]
            p99 = sorted_times[int(len(sorted_times) * 0.99)]
            print(
                f"  Время ответа (мс): среднее={statistics.mean(sorted_times):.2f}, "
                f"P50={statistics.median(sorted_times):.2f}, P95={p95:.2f}, P99={p99:.2f}, "
                f"макс={sorted_times[-1]:.2f}"
            )


class SharedData:
    """Общее состояние воркеров: команды, пользователи, открытые PR."""

    def __init__(self):
        self.teams: dict[str, list[str]] = {}
        self.user_ids: list[str] = []
        self.open_pr_ids: set[str] = set()
        self._lock = asyncio.Lock()

    async def add_team(self, team_name: str, user_ids: list[str]):
        async with self._lock:
            self.teams[team_name] = user_ids
            self.user_ids.extend(user_ids)

    async def add_open_pr(self, pr_id: str):
        async with self._lock:
            self.open_pr_ids.add(pr_id)

    async def close_pr(self, pr_id: str):
        async with self._lock:
            self.open_pr_ids.discard(pr_id)

    async def random_open_pr(self) -> str | None:
        async with self._lock:
            return random.choice(list(self.open_pr_ids)) if self.open_pr_ids else None

    async def random_user(self) -> str | None:
        async with self._lock:
            return random.choice(self.user_ids) if self.user_ids else None

    async def random_team(self) -> str | None:
        async with self._lock:
            return random.choice(list(self.teams)) if self.teams else None


async def _setup_initial_data(
    client: httpx.AsyncClient,
    shared: SharedData,
    num_teams: int,
    users_per_team: int,
    prs_per_team: int,
):
    """Создать команды и PR, половина PR сразу мержится."""
    print("Создание предварительных данных...")
    start = time.time()

    for _ in range(num_teams):
        team_name, user_ids = await create_team(client, users_per_team)
        await shared.add_team(team_name, user_ids)
        for pr_num in range(prs_per_team):
            pr = await create_pr(client, random.choice(user_ids))
            if pr_num % 2 == 0:
                response = await client.post(
                    f"{BASE_URL}/pullRequest/merge", json={"pull_request_id": pr["pull_request_id"]}
                )
                response.raise_for_status()
            else:
                await shared.add_open_pr(pr["pull_request_id"])

    print(f"  Предварительные данные созданы за {time.time() - start:.2f}с\n")


async def _read(client: httpx.AsyncClient, shared: SharedData):
    request_type = random.randint(0, 2)
    if request_type == 0:
        user_id = await shared.random_user()
        response = await client.get(f"{BASE_URL}/users/getReview", params={"user_id": user_id})
    elif request_type == 1:
        response = await client.get(f"{BASE_URL}/stats")
    else:
        team_name = await shared.random_team()
        response = await client.get(f"{BASE_URL}/team/get", params={"team_name": team_name})
    response.raise_for_status()


async def _write(client: httpx.AsyncClient, shared: SharedData):
    operation = random.randint(0, 3)
    if operation == 0:
        pr_id = await shared.random_open_pr()
        if not pr_id:
            raise ValueError("NO_OPEN_PR")
        response = await client.post(
            f"{BASE_URL}/pullRequest/merge", json={"pull_request_id": pr_id}
        )
        response.raise_for_status()
        await shared.close_pr(pr_id)

    elif operation == 1:
        pr_id = await shared.random_open_pr()
        if not pr_id:
            raise ValueError("NO_OPEN_PR")
        pr = await get_pr(client, pr_id)
        if not pr["assigned_reviewers"]:
            raise ValueError("NO_REVIEWERS")
        response = await client.post(
            f"{BASE_URL}/pullRequest/reassign",
            json={"pull_request_id": pr_id, "old_user_id": random.choice(pr["assigned_reviewers"])},
        )
        response.raise_for_status()

    elif operation == 2:
        user_id = await shared.random_user()
        response = await client.post(
            f"{BASE_URL}/users/setIsActive",
            json={"user_id": user_id, "is_active": random.random() < 0.8},
        )
        response.raise_for_status()

    else:
        pr = await create_pr(client, await shared.random_user())
        await shared.add_open_pr(pr["pull_request_id"])


async def _execute(worker, client: httpx.AsyncClient, shared: SharedData, stats: RequestStats):
    """Выполнить один запрос воркера и записать результат."""
    started = time.time()
    try:
        await worker(client, shared)
        stats.record_success((time.time() - started) * 1000)
    except httpx.HTTPStatusError as e:
        try:
            code = e.response.json().get("error", {}).get("code")
        except ValueError:
            code = None
        stats.record_error(code or f"HTTP_ERROR_{e.response.status_code}", e.response.status_code)
    except ValueError as e:
        stats.record_error(f"CLIENT_{e}")
    except httpx.HTTPError as e:
        stats.record_error(type(e).__name__)


async def run_load_test(
    num_teams: int = 5,
    users_per_team: int = 20,
    prs_per_team: int = 10,
    concurrent_reads: int = 30,
    concurrent_writes: int = 30,
    test_duration: int = 60,
):
    print("Нагрузочное тестирование:")
    print(f"  Команд: {num_teams}, пользователей на команду: {users_per_team}")
    print(f"  PR на команду: {prs_per_team}")
    print(f"  Воркеров чтения/записи: {concurrent_reads}/{concurrent_writes}")
    print(f"  Длительность теста: {test_duration}с\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        shared = SharedData()
        await _setup_initial_data(client, shared, num_teams, users_per_team, prs_per_team)

        read_stats = RequestStats("тестирования чтения")
        write_stats = RequestStats("тестирования записи")
        end_time = time.time() + test_duration

        async def loop(worker, stats):
            while time.time() < end_time:
                await _execute(worker, client, shared, stats)
                await asyncio.sleep(0.01)

        print("Запуск нагрузочного тестирования...")
        await asyncio.gather(
            *[loop(_read, read_stats) for _ in range(concurrent_reads)],
            *[loop(_write, write_stats) for _ in range(concurrent_writes)],
        )

        read_stats.print_results(test_duration)
        write_stats.print_results(test_duration)

        # в конце гасим одну команду целиком, чтобы прогнать каскад под данными
        team_name = await shared.random_team()
        started = time.time()
        response = await client.post(f"{BASE_URL}/team/deactivate", json={"team_name": team_name})
        response.raise_for_status()
        print(
            f"\nДеактивация {team_name}: {response.json()} за "
            f"{(time.time() - started) * 1000:.2f}мс"
        )


if __name__ == "__main__":
    asyncio.run(run_load_test())
