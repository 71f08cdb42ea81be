"""
Task note data models.

A task note is a Markdown file whose YAML frontmatter carries ``type: task``.
TaskFrontmatter is the typed view over that flat mapping. Keys it does not
know about are kept in ``extra`` and written back untouched, in their
original position, so mutating a task never disturbs unrelated metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

TASK_TYPE = "task"
RECURRING_TAG = "recurring"

# Index matches date.weekday() (Monday == 0)
WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass
class RecurrenceRule:
    """Days-of-month, weekdays and time-of-day slots a task recurs on."""

    days_of_month: List[int] = field(default_factory=list)
    days_of_week: List[str] = field(default_factory=list)
    scheduled_times: List[str] = field(default_factory=list)

    @property
    def has_date_constraints(self) -> bool:
        return bool(self.days_of_month or self.days_of_week)

    @property
    def has_time_constraints(self) -> bool:
        return bool(self.scheduled_times)

    @property
    def is_empty(self) -> bool:
        """True when no recurrence is configured at all."""
        return not (self.has_date_constraints or self.has_time_constraints)


@dataclass(frozen=True)
class NextOccurrence:
    """
    Result of a recurrence calculation.

    Both fields are None when no rule is configured or the search horizon
    was exhausted.
    """

    due_date: Optional[str] = None
    scheduled_time: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.due_date is None and self.scheduled_time is None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"due_date": self.due_date, "scheduled_time": self.scheduled_time}


def _as_date_string(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v is not None]


def _as_int_list(value: Any) -> List[int]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple, set)):
        value = [value]
    result = []
    for v in value:
        if isinstance(v, bool):
            continue
        try:
            result.append(int(v))
        except (TypeError, ValueError):
            continue
    return result


@dataclass
class TaskFrontmatter:
    """
    Typed view over a task note's frontmatter mapping.

    Use from_mapping() / to_mapping() to convert. ``key_order`` remembers the
    original key order so to_mapping() can reproduce it.
    """

    type: Optional[str] = None
    done: bool = False
    done_at: Optional[str] = None
    due_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    priority: Optional[Any] = None
    attributes: List[str] = field(default_factory=list)
    recurring_days_of_month: List[int] = field(default_factory=list)
    recurring_days_of_week: List[str] = field(default_factory=list)
    recurring_scheduled_times: List[str] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list, repr=False)

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> TaskFrontmatter:
        """Build from a raw frontmatter mapping (None is treated as empty)."""
        extra = dict(data or {})
        key_order = list(extra.keys())
        return cls(
            type=extra.pop("type", None),
            done=extra.pop("done", None) is True,
            done_at=_as_optional_str(extra.pop("done_at", None)),
            due_date=_as_date_string(extra.pop("due_date", None)),
            scheduled_time=_as_optional_str(extra.pop("scheduled_time", None)),
            priority=extra.pop("priority", None),
            attributes=_as_str_list(extra.pop("attributes", None)),
            recurring_days_of_month=_as_int_list(extra.pop("recurring_days_of_month", None)),
            recurring_days_of_week=_as_str_list(extra.pop("recurring_days_of_week", None)),
            recurring_scheduled_times=_as_str_list(extra.pop("recurring_scheduled_times", None)),
            extra=extra,
            key_order=key_order,
        )

    def to_mapping(self) -> Dict[str, Any]:
        """
        Render back to a flat mapping.

        Known keys are emitted when they hold a value or were present in the
        source mapping; ``done`` is always emitted and a cleared ``done_at``
        is removed. Unknown keys are emitted unchanged.
        """
        present = set(self.key_order)
        candidates = {
            "type": self.type,
            "done": self.done,
            "done_at": self.done_at,
            "due_date": self.due_date,
            "scheduled_time": self.scheduled_time,
            "priority": self.priority,
            "attributes": list(self.attributes),
            "recurring_days_of_month": list(self.recurring_days_of_month),
            "recurring_days_of_week": list(self.recurring_days_of_week),
            "recurring_scheduled_times": list(self.recurring_scheduled_times),
        }
        known: Dict[str, Any] = {}
        for key, value in candidates.items():
            if key == "done":
                known[key] = value
            elif key == "done_at":
                if value is not None:
                    known[key] = value
            elif value not in (None, []) or key in present:
                known[key] = value

        result: Dict[str, Any] = {}
        for key in self.key_order:
            if key in known:
                result[key] = known.pop(key)
            elif key in self.extra:
                result[key] = self.extra[key]
        result.update(known)
        for key, value in self.extra.items():
            result.setdefault(key, value)
        return result

    @property
    def is_task(self) -> bool:
        return isinstance(self.type, str) and self.type == TASK_TYPE

    @property
    def is_recurring(self) -> bool:
        return RECURRING_TAG in self.attributes

    @property
    def rule(self) -> RecurrenceRule:
        return RecurrenceRule(
            days_of_month=list(self.recurring_days_of_month),
            days_of_week=list(self.recurring_days_of_week),
            scheduled_times=list(self.recurring_scheduled_times),
        )
