"""Field-level deltas between snapshots."""

from typing import Iterable

from gccmem.memory.commit import GccDelta
from gccmem.memory.fields import ListField, Snapshot, classify


def compute_delta(
    old_snapshot: Snapshot,
    new_snapshot: Snapshot,
    ignore: Iterable[str] = (),
) -> GccDelta:
    """
    Compute list items added and removed between two snapshots.

    Only list-valued fields take part; scalars never appear in a delta.
    Items are compared as exact, case-sensitive strings. A field that is a
    list on one side only counts as entirely added or removed.

    Args:
        old_snapshot: Parent snapshot (empty dict for a first commit).
        new_snapshot: Snapshot being committed.
        ignore: Field names to skip (volatile timestamps).

    Returns:
        The delta, with fields that did not change omitted.
    """
    skipped = set(ignore)
    delta = GccDelta()

    keys = list(old_snapshot)
    keys.extend(k for k in new_snapshot if k not in old_snapshot)

    for key in keys:
        if key in skipped:
            continue

        old_field = classify(old_snapshot.get(key))
        new_field = classify(new_snapshot.get(key))
        old_items = old_field.items if isinstance(old_field, ListField) else ()
        new_items = new_field.items if isinstance(new_field, ListField) else ()

        if not old_items and not new_items:
            continue

        old_set = set(old_items)
        new_set = set(new_items)
        added = [item for item in new_items if item not in old_set]
        removed = [item for item in old_items if item not in new_set]

        if added:
            delta.added[key] = added
        if removed:
            delta.removed[key] = removed

    return delta
