"""
题目查询构造：把 QueryCriteria 转成带 `?` 占位符的 SQL 与按顺序排列的参数。

Each filter is a small predicate object that renders its own fragment and
parameters; predicates are combined with `And` / `Or`. Column names come from
the whitelist below, values only ever travel as parameters.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .models import MatchMode, QueryCriteria

# 可过滤的列（白名单）
QUESTION_COLUMNS = {
    "id": "q.id",
    "language": "q.language",
    "type": "q.type",
    "task": "q.task",
}

_SELECT_QUESTIONS = (
    "SELECT q.id, q.language, q.type, q.task, GROUP_CONCAT(DISTINCT t.name) AS tags "
    "FROM questions q "
    "LEFT JOIN question_tags qt ON qt.question_id = q.id "
    "LEFT JOIN tags t ON t.id = qt.tag_id"
)

# 标签过滤放在子查询里，外层 join 不受影响，返回题目的完整标签集合
_TAGGED_QUESTION_IDS = (
    "SELECT mqt.question_id FROM question_tags mqt "
    "JOIN tags mt ON mt.id = mqt.tag_id "
    "WHERE mt.name IN ({placeholders})"
)


@dataclass(frozen=True)
class BuiltQuery:
    sql: str
    params: list


def _placeholders(n: int) -> str:
    return ",".join(["?"] * n)


def normalize_tags(tags: Iterable[str] | None) -> tuple[str, ...]:
    """Strip names, drop blanks and collapse duplicates (first one wins)."""
    seen: dict[str, None] = {}
    for name in tags or ():
        if name is None:
            continue
        name = str(name).strip()
        if name and name not in seen:
            seen[name] = None
    return tuple(seen)


class Predicate:
    def render(self) -> tuple[str, list]:
        raise NotImplementedError


@dataclass(frozen=True)
class Eq(Predicate):
    column: str
    value: object

    def render(self) -> tuple[str, list]:
        try:
            col = QUESTION_COLUMNS[self.column]
        except KeyError:
            raise ValueError(f"unknown column: {self.column}") from None
        return f"{col} = ?", [self.value]


@dataclass(frozen=True)
class TagsAny(Predicate):
    """Question is linked to at least one of `names`."""
    names: tuple[str, ...]

    def render(self) -> tuple[str, list]:
        if not self.names:
            raise ValueError("TagsAny needs at least one tag name")
        sub = _TAGGED_QUESTION_IDS.format(placeholders=_placeholders(len(self.names)))
        return f"q.id IN ({sub})", list(self.names)


@dataclass(frozen=True)
class TagsAll(Predicate):
    """Question is linked to every one of `names` (and possibly more)."""
    names: tuple[str, ...]

    def render(self) -> tuple[str, list]:
        if not self.names:
            raise ValueError("TagsAll needs at least one tag name")
        sub = _TAGGED_QUESTION_IDS.format(placeholders=_placeholders(len(self.names)))
        sub += " GROUP BY mqt.question_id HAVING COUNT(DISTINCT mt.name) = ?"
        return f"q.id IN ({sub})", [*self.names, len(self.names)]


@dataclass(frozen=True)
class And(Predicate):
    parts: tuple[Predicate, ...] = ()

    def render(self) -> tuple[str, list]:
        return _join(self.parts, " AND ", "1=1")


@dataclass(frozen=True)
class Or(Predicate):
    parts: tuple[Predicate, ...] = ()

    def render(self) -> tuple[str, list]:
        return _join(self.parts, " OR ", "1=0")


def _join(parts: Sequence[Predicate], sep: str, empty: str) -> tuple[str, list]:
    if not parts:
        return empty, []
    if len(parts) == 1:
        return parts[0].render()
    fragments: list[str] = []
    params: list = []
    for p in parts:
        sql, args = p.render()
        fragments.append(f"({sql})")
        params.extend(args)
    return sep.join(fragments), params


def tag_predicate(tags: Iterable[str] | None, match: MatchMode) -> Predicate | None:
    names = normalize_tags(tags)
    if not names:
        return None
    if match == MatchMode.ALL:
        return TagsAll(names)
    return TagsAny(names)


def criteria_predicate(criteria: QueryCriteria) -> And:
    parts: list[Predicate] = []
    if criteria.language:
        parts.append(Eq("language", criteria.language))
    if criteria.type:
        parts.append(Eq("type", criteria.type))
    tag_pred = tag_predicate(criteria.tags, criteria.match)
    if tag_pred is not None:
        parts.append(tag_pred)
    return And(tuple(parts))


def build_question_query(criteria: QueryCriteria) -> BuiltQuery:
    pred = criteria_predicate(criteria)
    sql = _SELECT_QUESTIONS
    params: list = []
    if pred.parts:
        where, params = pred.render()
        sql += " WHERE " + where
    sql += " GROUP BY q.id ORDER BY q.id"
    return BuiltQuery(sql, params)
