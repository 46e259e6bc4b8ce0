"""Name conflict detection and resolution for move, copy and upload."""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from filebrowser_client.models import (
    ConflictAction,
    ConflictResolution,
    ConflictResult,
    ResolutionPolicy,
)

# <base>( (<n>))?<ext>?  e.g. "report (2).pdf" -> ("report", "2", ".pdf")
_NAME_PATTERN = re.compile(r"^(.+?)(?:\s*\((\d+)\))?(\.[^.]+)?$")


def _name_of(item: Any) -> str:
    return item if isinstance(item, str) else str(getattr(item, "name", ""))


def check_conflict(proposed: Iterable[Any], existing: Iterable[Any]) -> ConflictResult:
    """Compare proposed entry names against the names already at the destination.

    Args:
        proposed: Items being written (anything with a ``name``, or plain names)
        existing: Entries currently in the destination listing

    Returns:
        ConflictResult; suggested_name is only filled for a single duplicate
    """
    existing_names = frozenset(_name_of(entry) for entry in existing)
    duplicates = tuple(
        name for name in (_name_of(item) for item in proposed) if name in existing_names
    )

    suggested = None
    if len(duplicates) == 1:
        suggested = generate_name(duplicates[0], existing_names)

    return ConflictResult(
        has_conflict=bool(duplicates),
        duplicate_names=duplicates,
        existing_names=existing_names,
        suggested_name=suggested,
    )


def resolve_conflict(
    result: ConflictResult,
    policy: ResolutionPolicy | None = None,
) -> ConflictResolution:
    """Apply a resolution policy to a conflict; overwrite beats rename."""
    policy = policy or ResolutionPolicy()

    if policy.overwrite:
        return ConflictResolution(
            resolved_names=result.duplicate_names,
            action=ConflictAction.OVERWRITE,
        )

    if policy.rename:
        taken = set(result.existing_names)
        names = []
        for name in result.duplicate_names:
            new_name = policy.custom_name or generate_name(name, taken)
            taken.add(new_name)
            names.append(new_name)
        return ConflictResolution(resolved_names=tuple(names), action=ConflictAction.RENAME)

    return ConflictResolution(resolved_names=(), action=ConflictAction.SKIP)


def generate_name(original: str, existing_names: Iterable[str]) -> str:
    """Generate a name like ``report (1).pdf`` that is not in existing_names."""
    taken = existing_names if isinstance(existing_names, (set, frozenset)) else set(existing_names)

    match = _NAME_PATTERN.match(original)
    if not match:
        version = 1
        while f"{original} ({version})" in taken:
            version += 1
        return f"{original} ({version})"

    base, version_str, extension = match.groups()
    version = int(version_str) if version_str else 0
    while True:
        version += 1
        candidate = f"{base} ({version}){extension or ''}"
        if candidate not in taken:
            return candidate
