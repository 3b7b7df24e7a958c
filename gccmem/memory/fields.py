"""Snapshot field values, categories and confidence levels."""

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from gccmem.memory.errors import InvalidSnapshotError


DEFAULT_BRANCH = "main"

# How sure the extractor was about the snapshot it produced
Confidence = Literal["HIGH", "MEDIUM", "LOW"]
CONFIDENCE_LEVELS: tuple[str, ...] = ("HIGH", "MEDIUM", "LOW")

Scalar = str | int | float | bool | None
Snapshot = dict[str, Any]


class MemoryCategory(str, Enum):
    """Knowledge categories tracked by the assistant runtime."""

    PROGRAMMING_SKILLS = "programming_skills"
    PROGRAMMING_PLANNING = "programming_planning"
    EVENT_PLANNING = "event_planning"
    WORKFLOW = "workflow"
    TASKS = "tasks"


@dataclass(frozen=True)
class ListField:
    """A list-of-strings field. Deltas and unions apply to these."""

    items: tuple[str, ...]


@dataclass(frozen=True)
class ScalarField:
    """Any non-list field. Differences between scalars are merge conflicts."""

    value: Scalar


FieldValue = ListField | ScalarField


def classify(value: Any) -> FieldValue:
    """Tag a raw snapshot value as a list or scalar field."""
    if isinstance(value, (list, tuple)):
        return ListField(tuple(value))
    return ScalarField(value)


def normalize_category(category: str | MemoryCategory) -> str:
    """Return the plain string key for a category, rejecting blanks."""
    if isinstance(category, MemoryCategory):
        return category.value
    if not isinstance(category, str) or not category.strip():
        raise ValueError(f"Invalid category: {category!r}")
    return category


def validate_confidence(confidence: str) -> Confidence:
    """Check that a confidence level is one of HIGH, MEDIUM or LOW."""
    if confidence not in CONFIDENCE_LEVELS:
        raise ValueError(
            f"Invalid confidence {confidence!r}, expected one of {', '.join(CONFIDENCE_LEVELS)}"
        )
    return confidence  # type: ignore[return-value]


def validate_snapshot(snapshot: Any) -> Snapshot:
    """
    Check that a snapshot is a flat mapping of lists of strings and scalars.

    Args:
        snapshot: Candidate snapshot.

    Returns:
        The same snapshot.

    Raises:
        InvalidSnapshotError: If the shape is not supported.
    """
    if not isinstance(snapshot, dict):
        raise InvalidSnapshotError(f"Snapshot must be a dict, got {type(snapshot).__name__}")

    for key, value in snapshot.items():
        if not isinstance(key, str):
            raise InvalidSnapshotError(f"Field names must be strings, got {key!r}")
        if isinstance(value, (list, tuple)):
            for item in value:
                if not isinstance(item, str):
                    raise InvalidSnapshotError(
                        f"Field '{key}' must only contain strings, got {item!r}"
                    )
        elif value is not None and not isinstance(value, (str, int, float, bool)):
            raise InvalidSnapshotError(
                f"Field '{key}' has unsupported type {type(value).__name__}"
            )
    return snapshot


def copy_snapshot(snapshot: Snapshot) -> Snapshot:
    """Deep copy a snapshot, normalizing tuples to lists."""
    return {
        key: list(value) if isinstance(value, tuple) else copy.deepcopy(value)
        for key, value in snapshot.items()
    }
