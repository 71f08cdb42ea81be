from .task import (
    RECURRING_TAG,
    TASK_TYPE,
    WEEKDAYS,
    NextOccurrence,
    RecurrenceRule,
    TaskFrontmatter,
)
from .errors import (
    FrontmatterError,
    InvalidRuleError,
    NotATaskError,
    NoteNotFoundError,
    NotRecurringError,
    StoreError,
    TaskNoteError,
)

__all__ = [
    "RECURRING_TAG",
    "TASK_TYPE",
    "WEEKDAYS",
    "NextOccurrence",
    "RecurrenceRule",
    "TaskFrontmatter",
    "FrontmatterError",
    "InvalidRuleError",
    "NotATaskError",
    "NoteNotFoundError",
    "NotRecurringError",
    "StoreError",
    "TaskNoteError",
]
