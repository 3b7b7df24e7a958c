"""
Merge resolution between two branch heads.

List fields are unioned; differing scalars are reported as conflicts and
the target's value is kept. Resolution is pure: committing the result is
the store's job.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from gccmem.memory.fields import FieldValue, ListField, ScalarField, Snapshot, classify


@dataclass
class MergeConflict:
    """A field whose values could not be reconciled automatically."""

    field: str
    source_values: list[Any]
    target_values: list[Any]


@dataclass
class MergeResult:
    """
    Outcome of a merge.

    Conflicts are reported data: a merge with conflicts still succeeds.
    `success` is False only when the source branch has no commits.
    """

    success: bool
    commit_hash: str | None = None
    conflicts: list[MergeConflict] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "commit_hash": self.commit_hash,
            "conflicts": [
                {
                    "field": c.field,
                    "source_values": list(c.source_values),
                    "target_values": list(c.target_values),
                }
                for c in self.conflicts
            ],
        }


def _dedup_key(item: str) -> str:
    return item.strip().casefold()


def union_items(target_items: Iterable[str], source_items: Iterable[str]) -> list[str]:
    """
    Union two string lists, target first.

    Items are deduplicated on their trimmed, case-folded form; the first
    spelling seen wins and blank items are dropped.
    """
    seen: set[str] = set()
    result: list[str] = []
    for item in [*target_items, *source_items]:
        key = _dedup_key(item)
        if key and key not in seen:
            seen.add(key)
            result.append(item)
    return result


def _as_values(value: FieldValue) -> list[Any]:
    if isinstance(value, ListField):
        return list(value.items)
    if value.value is None:
        return []
    return [value.value]


def _same_scalar(source: FieldValue, target: FieldValue) -> bool:
    """Scalars match only with equal type and value (True and 1 differ)."""
    if not isinstance(source, ScalarField) or not isinstance(target, ScalarField):
        return False
    return type(source.value) is type(target.value) and source.value == target.value


def _resolve_field(
    key: str,
    source: FieldValue,
    target: FieldValue,
) -> tuple[Any, MergeConflict | None]:
    if isinstance(source, ListField) and isinstance(target, ListField):
        return union_items(target.items, source.items), None

    if _same_scalar(source, target):
        return _as_raw(target), None

    return _as_raw(target), MergeConflict(
        field=key,
        source_values=_as_values(source),
        target_values=_as_values(target),
    )


def _as_raw(value: FieldValue) -> Any:
    if isinstance(value, ListField):
        return list(value.items)
    return value.value


def resolve_snapshots(
    source: Snapshot,
    target: Snapshot,
    volatile_fields: Iterable[str] = (),
    now: datetime | None = None,
) -> tuple[Snapshot, list[MergeConflict]]:
    """
    Reconcile a source snapshot into a target snapshot.

    Args:
        source: Head snapshot of the branch being merged.
        target: Head snapshot of the branch receiving the merge (may be empty).
        volatile_fields: Timestamp fields that are restamped instead of merged.
        now: Time used for volatile fields (defaults to now).

    Returns:
        Tuple of (merged snapshot, conflicts). Target field order is kept,
        fields only present in the source are appended.
    """
    volatile = set(volatile_fields)
    stamp = (now or datetime.now()).isoformat()

    merged: Snapshot = {}
    conflicts: list[MergeConflict] = []

    keys = list(target)
    keys.extend(k for k in source if k not in target)

    for key in keys:
        if key in volatile:
            merged[key] = stamp
            continue

        if key not in source:
            merged[key] = _as_raw(classify(target[key]))
            continue
        if key not in target:
            merged[key] = _as_raw(classify(source[key]))
            continue

        value, conflict = _resolve_field(key, classify(source[key]), classify(target[key]))
        merged[key] = value
        if conflict:
            conflicts.append(conflict)

    return merged, conflicts
