"""Structural change detection between a stored document and a candidate."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, cast

from gipfelsync.domain.reconciliation.documents import EXCLUDED_FIELDS

if TYPE_CHECKING:
    from gipfelsync.domain.reconciliation.documents import Document


def deep_equal(left: object, right: object) -> bool:
    """Recursive structural equality.

    Mappings compare by key set and values, sequences element-wise and
    order-sensitively, everything else by value. Booleans never equal numbers.
    """

    if left is right:
        return True
    if left is None or right is None:
        return False
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    if isinstance(left, Mapping) or isinstance(right, Mapping):
        if not (isinstance(left, Mapping) and isinstance(right, Mapping)):
            return False
        left_map = cast(Mapping[object, object], left)
        right_map = cast(Mapping[object, object], right)
        if left_map.keys() != right_map.keys():
            return False
        return all(deep_equal(value, right_map[key]) for key, value in left_map.items())
    if _is_sequence(left) or _is_sequence(right):
        if not (_is_sequence(left) and _is_sequence(right)):
            return False
        left_seq = cast(Sequence[object], left)
        right_seq = cast(Sequence[object], right)
        if len(left_seq) != len(right_seq):
            return False
        return all(deep_equal(a, b) for a, b in zip(left_seq, right_seq, strict=True))
    return left == right


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes)


@dataclass(frozen=True, slots=True)
class FieldChange:
    before: Any
    after: Any


@dataclass(slots=True)
class ChangeSet:
    changes: dict[str, FieldChange] = field(default_factory=dict[str, FieldChange])

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self.changes)

    def add(self, name: str, before: object, after: object) -> None:
        self.changes[name] = FieldChange(before=before, after=after)

    def updates(self) -> Document:
        return {name: change.after for name, change in self.changes.items()}

    def describe(self) -> str:
        return ", ".join(
            f"{name}: {change.before!r} -> {change.after!r}"
            for name, change in self.changes.items()
        )


@dataclass(frozen=True, slots=True)
class ChangeDetector:
    """Compare only the fields a candidate carries, ignoring bookkeeping fields."""

    excluded: frozenset[str] = EXCLUDED_FIELDS

    def diff(
        self,
        existing: Mapping[str, object],
        candidate: Mapping[str, object],
        *,
        skip: Iterable[str] = (),
    ) -> ChangeSet:
        ignored = self.excluded.union(skip)
        change_set = ChangeSet()
        for name, value in candidate.items():
            if name in ignored:
                continue
            before = existing.get(name)
            if not deep_equal(before, value):
                change_set.add(name, before, value)
        return change_set

    def has_changes(
        self,
        existing: Mapping[str, object],
        candidate: Mapping[str, object],
    ) -> bool:
        return self.diff(existing, candidate).has_changes
