from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class QuestionType(str, Enum):
    TRUTH = "truth"
    DARE = "dare"


class MatchMode(str, Enum):
    """How a tag filter combines: ANY tag (OR) or ALL tags (AND)."""
    ANY = "any"
    ALL = "all"


@dataclass
class Question:
    id: int
    language: str
    type: str
    task: str
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "language": self.language,
            "type": self.type,
            "task": self.task,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class QueryCriteria:
    """Filters for a question lookup. Empty values mean "no constraint"."""
    language: str | None = None
    type: str | None = None
    tags: tuple[str, ...] = ()
    match: MatchMode = MatchMode.ANY

    @classmethod
    def of(cls, language: str | None = None, qtype: str | None = None,
           tags=None, match_all_tags: bool = False) -> "QueryCriteria":
        return cls(
            language=language or None,
            type=qtype or None,
            tags=tuple(tags or ()),
            match=MatchMode.ALL if match_all_tags else MatchMode.ANY,
        )
