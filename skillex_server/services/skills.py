from dataclasses import dataclass, field
from typing import Iterable

from skillex_server.models.user import SkillKind, SkillLevel, SkillRecord


def norm(tag: str) -> str:
    return (tag or "").strip().lower()


@dataclass
class SkillIndex:
    """Normalized teach/learn tag sets for one user.

    Tags are normalized once here; ``labels`` keeps the first spelling seen
    for display, ``levels`` every level a tag was registered at.
    """
    teach: set[str] = field(default_factory=set)
    learn: set[str] = field(default_factory=set)
    labels: dict[str, str] = field(default_factory=dict)
    levels: dict[str, set[SkillLevel]] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[SkillRecord]) -> "SkillIndex":
        index = cls()
        for record in records:
            target = index.teach if record.kind == SkillKind.teach else index.learn
            for raw in record.tags:
                tag = norm(raw)
                if not tag:
                    continue
                target.add(tag)
                index.labels.setdefault(tag, raw.strip())
                if record.level is not None:
                    index.levels.setdefault(tag, set()).add(record.level)
        return index

    @property
    def size(self) -> int:
        return len(self.teach) + len(self.learn)

    def is_empty(self) -> bool:
        return self.size == 0

    def label(self, tag: str) -> str:
        return self.labels.get(tag, tag)

    def labelled(self, tags: Iterable[str]) -> list[str]:
        return [self.label(t) for t in sorted(tags)]

    def all_tags(self) -> set[str]:
        return self.teach | self.learn

    def has_level(self, level: SkillLevel) -> bool:
        return any(level in levels for levels in self.levels.values())

    def has_any(self, tags: Iterable[str]) -> bool:
        return not self.all_tags().isdisjoint(tags)


@dataclass(frozen=True)
class SkillMatch:
    teach_to_learn: frozenset[str]   # requester can teach the candidate
    learn_to_teach: frozenset[str]   # candidate can teach the requester

    @property
    def bidirectional(self) -> bool:
        return bool(self.teach_to_learn) and bool(self.learn_to_teach)

    @property
    def count(self) -> int:
        return len(self.teach_to_learn) + len(self.learn_to_teach)

    def is_empty(self) -> bool:
        return self.count == 0

    def overlap(self) -> list[str]:
        return sorted(self.teach_to_learn | self.learn_to_teach)


def match_skills(requester: SkillIndex, candidate: SkillIndex) -> SkillMatch:
    return SkillMatch(
        teach_to_learn=frozenset(requester.teach & candidate.learn),
        learn_to_teach=frozenset(requester.learn & candidate.teach),
    )


def normalize_filter_tags(tags: Iterable[str] | None) -> set[str] | None:
    if not tags:
        return None
    normalized = {norm(t) for t in tags if norm(t)}
    return normalized or None
