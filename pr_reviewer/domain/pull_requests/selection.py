"""Выбор ревьюверов.

Чистые функции без доступа к БД: случайная выборка кандидатов
и вычисление множества исключённых пользователей.
"""

import random
from typing import Iterable, Protocol, Sequence

REVIEWERS_PER_PR = 2


class HasAuthor(Protocol):
    author_id: str


def sample_reviewers(
    candidate_ids: Sequence[str], count: int, rng: random.Random | None = None
) -> list[str]:
    """
    Выбрать до count различных кандидатов равновероятно, без повторов.
    Если кандидатов не больше count, возвращаются все. Пустой пул даёт
    пустой список. Выборка делается частичным тасованием Фишера-Йетса
    первых count позиций копии списка.
    """
    if count <= 0:
        return []

    pool = list(candidate_ids)
    if len(pool) <= count:
        return pool

    rng = rng or random
    for i in range(count):
        j = rng.randrange(i, len(pool))
        pool[i], pool[j] = pool[j], pool[i]
    return pool[:count]


def exclusion_set(pr: HasAuthor, reviewer_ids: Iterable[str]) -> set[str]:
    """Пользователи, которых нельзя назначать на PR: автор и текущие ревьюверы."""
    excluded = set(reviewer_ids)
    excluded.add(pr.author_id)
    return excluded
