"""Document-time rules emitted by schema translation.

Rules are plain records. The host document layer calls them while it saves or
validates a document; nothing here runs during translation.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

# Sentinel window for stored dates. Values outside it are almost always a
# timestamp in the wrong unit (seconds read as milliseconds or vice versa).
MIN_DATE = datetime(1971, 1, 1, tzinfo=timezone.utc)
MAX_DATE = datetime(3000, 1, 1, tzinfo=timezone.utc)


class SchemaValidationError(ValueError):
    """A document broke a rule emitted by schema translation."""


class OneOfConflictError(SchemaValidationError):
    def __init__(self, group_path: str, set_paths: List[str]):
        self.group_path = group_path
        self.set_paths = set_paths
        super().__init__(
            f"Can only set one of the {group_path} paths. "
            f"The following are set: {', '.join(set_paths)}."
        )


class DateRangeError(SchemaValidationError):
    def __init__(self, path: str, value: Any):
        self.path = path
        self.value = value
        super().__init__(
            f"Path `{path}` ({value}) is outside the allowed date range "
            f"{MIN_DATE.isoformat()} to {MAX_DATE.isoformat()}."
        )


def _child(value: Any, name: str) -> Any:
    if value is None:
        return None
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


def _elements(path: str, value: Any) -> List[Tuple[str, Any]]:
    """Split an array into indexed elements; anything else is one element."""
    if isinstance(value, (list, tuple)):
        return [(f"{path}.{i}", item) for i, item in enumerate(value)]
    return [(path, value)]


def resolve_path(document: Any, path: str) -> List[Tuple[str, Any]]:
    """Find every subdocument at a dotted path.

    Arrays met along the way (or at the end) are expanded, so
    ``contacts`` over two contacts yields ``contacts.0`` and ``contacts.1``.
    Missing segments yield nothing.
    """
    found: List[Tuple[str, Any]] = [("", document)]
    for part in path.split("."):
        step = []
        for concrete, value in found:
            for key, item in _elements(concrete, value):
                child = _child(item, part)
                if child is not None:
                    step.append((f"{key}.{part}" if key else part, child))
        found = step
    return [e for concrete, value in found for e in _elements(concrete, value)]


def is_empty(value: Any) -> bool:
    """Absent, None, empty string and empty containers count as unset."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, Mapping, list, tuple, set, frozenset)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class OneOfRule:
    """At most one of ``member_paths`` may hold a value.

    ``group_path`` is also where the discriminator is projected: reading it
    yields the last segment of whichever member is set.

    A group inside a repeated message is checked once per array element;
    reported paths then carry the element index (``contacts.0.email``).
    """

    group_path: str
    member_paths: Tuple[str, ...]

    def _scopes(self) -> Tuple[str, List[str]]:
        scope = self.group_path.rpartition(".")[0]
        skip = len(scope) + 1 if scope else 0
        return scope, [p[skip:] for p in self.member_paths]

    def _subdocuments(self, document: Any) -> List[Tuple[str, Any]]:
        scope, _ = self._scopes()
        if not scope:
            return [("", document)]
        return [(f"{path}.", sub) for path, sub in resolve_path(document, scope)]

    def set_paths(self, document: Any) -> List[List[str]]:
        """Populated member paths, one list per occurrence of the group."""
        _, names = self._scopes()
        return [
            [f"{prefix}{n}" for n in names if not is_empty(_child(sub, n))]
            for prefix, sub in self._subdocuments(document)
        ]

    def validate(self, document: Any) -> None:
        group = self.group_path.rpartition(".")[2]
        for set_paths in self.set_paths(document):
            if len(set_paths) > 1:
                prefix = set_paths[0].rpartition(".")[0]
                group_path = f"{prefix}.{group}" if prefix else group
                raise OneOfConflictError(group_path, set_paths)

    __call__ = validate

    def discriminator(self, document: Any) -> Optional[str]:
        """The set member of the first occurrence that has one."""
        for set_paths in self.set_paths(document):
            if set_paths:
                return set_paths[0].rsplit(".", 1)[-1]
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {"group": self.group_path, "paths": list(self.member_paths)}


def _as_utc(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Document stores keep dates as epoch milliseconds.
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            extreme = datetime.max if value > 0 else datetime.min
            return extreme.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        # ISO-8601; fromisoformat only accepts a trailing Z from 3.11 on
        text = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            # Not a date string; casting it is the host's job.
            return None
    return None


@dataclass(frozen=True)
class DateRangeValidator:
    """Rejects dates outside [MIN_DATE, MAX_DATE]."""

    def validate(self, value: Any, path: str) -> None:
        when = _as_utc(value)
        if when is None:
            return
        if when < MIN_DATE or when > MAX_DATE:
            raise DateRangeError(path, value)

    __call__ = validate

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": "dateRange", "min": MIN_DATE.isoformat(), "max": MAX_DATE.isoformat()}
