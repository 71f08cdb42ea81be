"""
Exception hierarchy for task note operations.

Only malformed invocations and store failures are exceptions. A recurrence
that cannot be resolved is reported as an empty NextOccurrence instead.
"""


class TaskNoteError(Exception):
    """Base class for errors surfaced at the command/event boundary."""

    kind = "error"


class NotATaskError(TaskNoteError):
    """The note's frontmatter does not carry ``type: task``."""

    kind = "not_a_task"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"'{task_id}' is not a task note")
        self.task_id = task_id


class NotRecurringError(TaskNoteError):
    """A recurrence setter was called on a task without the recurring tag."""

    kind = "not_recurring"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task '{task_id}' is not a recurring task")
        self.task_id = task_id


class InvalidRuleError(TaskNoteError, ValueError):
    """A recurrence setter received values outside the allowed range."""

    kind = "invalid"


class StoreError(TaskNoteError):
    """Reading or writing a note failed."""

    kind = "store"


class NoteNotFoundError(StoreError):
    kind = "not_found"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Note '{task_id}' not found")
        self.task_id = task_id


class FrontmatterError(StoreError):
    """The note's frontmatter block is not valid YAML or not a mapping."""
