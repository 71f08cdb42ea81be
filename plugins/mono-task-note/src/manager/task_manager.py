"""
Task completion state machine.

TaskManager applies complete / uncomplete / toggle to a task note's
frontmatter. Recurring tasks (``attributes`` contains ``recurring``) are
not closed on completion: their due date and scheduled time advance to
the next occurrence and the task stays open. handle_external_change()
keeps the ``done`` / ``done_at`` pair consistent however ``done`` was
flipped.

Every entry point first checks that the note is a task (``type: task``).
Completion operations on anything else are silent no-ops; the recurrence
setters raise NotATaskError / NotRecurringError instead.
"""

import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Tuple

from config import Settings
from manager.notifier import Notifier
from models.errors import InvalidRuleError, NotATaskError, NotRecurringError, StoreError
from models.task import WEEKDAYS, NextOccurrence, TaskFrontmatter
from recurrence.calculator import compute_next
from utils.dates import canonical_time, format_moment, is_valid_time

log = logging.getLogger(__name__)

_FULL_DAY_NAMES = {
    "monday": "Mon",
    "tuesday": "Tue",
    "wednesday": "Wed",
    "thursday": "Thu",
    "friday": "Fri",
    "saturday": "Sat",
    "sunday": "Sun",
}

# Transitions, and how a completion ended
_COMPLETE = "complete"
_UNCOMPLETE = "uncomplete"
_ADVANCED = "advanced"
_UNRESOLVED = "unresolved"


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _heal_action(fm: TaskFrontmatter) -> Optional[str]:
    """Transition that makes ``done`` and ``done_at`` agree, if any."""
    if fm.done and not fm.done_at:
        return _COMPLETE
    if not fm.done and fm.done_at:
        return _UNCOMPLETE
    return None


class TaskManager:
    """
    Completion operations over a record store.

    Args:
        store: NoteStore-like object (get_attributes / mutate_attributes)
        notifier: Notification sink for user-visible warnings
        settings: Service settings (done_at format)
        clock: Returns "now" for done_at timestamps
        today: Returns the fallback base date for tasks without a due date
    """

    def __init__(
        self,
        store,
        notifier: Notifier,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._settings = settings or Settings()
        self._clock = clock or _local_now
        self._today = today or date.today

    @property
    def store(self):
        return self._store

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def settings(self) -> Settings:
        return self._settings

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read(self, task_id: str) -> TaskFrontmatter:
        """Typed frontmatter of a note (empty when it has none)."""
        return TaskFrontmatter.from_mapping(self._store.get_attributes(task_id))

    def get_task(self, task_id: str) -> Optional[TaskFrontmatter]:
        """Typed frontmatter, or None if the note is not a task."""
        fm = self.read(task_id)
        return fm if fm.is_task else None

    def list_tasks(self) -> List[Tuple[str, TaskFrontmatter]]:
        """All task notes in the store; unreadable notes are skipped."""
        result = []
        for task_id in self._store.iter_notes():
            try:
                fm = self.read(task_id)
            except StoreError as e:
                log.warning("Skipping %s: %s", task_id, e)
                continue
            if fm.is_task:
                result.append((task_id, fm))
        return result

    def preview_next(self, task_id: str) -> NextOccurrence:
        """Next occurrence of a recurring task, without writing anything."""
        fm = self._require_recurring(task_id)
        return compute_next(fm.rule, fm.due_date, fm.scheduled_time, today=self._today())

    # ------------------------------------------------------------------
    # Completion state machine
    # ------------------------------------------------------------------

    def complete_task(self, task_id: str) -> Optional[TaskFrontmatter]:
        """
        Complete a task.

        Non-recurring: done = true, done_at stamped unless already set.
        Recurring: due_date / scheduled_time advance, done stays false and
        done_at is cleared. If no next occurrence can be determined a
        warning is issued and the task is completed like a non-recurring one.

        Returns the resulting frontmatter, or None if the note is not a task.
        """
        if not self.read(task_id).is_task:
            log.debug("complete: %s is not a task, ignoring", task_id)
            return None
        return self._transition(task_id, lambda fm: _COMPLETE)

    def uncomplete_task(self, task_id: str) -> Optional[TaskFrontmatter]:
        """Reopen a task: done = false and done_at removed."""
        if not self.read(task_id).is_task:
            log.debug("uncomplete: %s is not a task, ignoring", task_id)
            return None
        return self._transition(task_id, lambda fm: _UNCOMPLETE)

    def toggle_task(self, task_id: str) -> Optional[TaskFrontmatter]:
        if not self.read(task_id).is_task:
            log.debug("toggle: %s is not a task, ignoring", task_id)
            return None
        return self._transition(task_id, lambda fm: _UNCOMPLETE if fm.done else _COMPLETE)

    def handle_external_change(self, task_id: str) -> Optional[TaskFrontmatter]:
        """
        Heal ``done`` / ``done_at`` after the note changed underneath us.

        - done without done_at: run the completion path (stamps the
          timestamp, or advances a recurring task)
        - not done with done_at: drop the timestamp
        - otherwise nothing is written and None is returned

        The state is checked again under the store lock, so a completion
        that lands in between is not applied twice.
        """
        fm = self.read(task_id)
        if not fm.is_task or _heal_action(fm) is None:
            return None
        return self._transition(task_id, _heal_action)

    # ------------------------------------------------------------------
    # Recurrence rule setters
    # ------------------------------------------------------------------

    def set_days_of_month(self, task_id: str, days: Iterable[int]) -> TaskFrontmatter:
        values = set()
        for day in days:
            if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 31:
                raise InvalidRuleError(f"Invalid day of month: {day!r} (expected 1-31)")
            values.add(day)
        return self._set_rule_field(task_id, "recurring_days_of_month", sorted(values))

    def set_days_of_week(self, task_id: str, days: Iterable[str]) -> TaskFrontmatter:
        by_lower = {d.lower(): d for d in WEEKDAYS}
        values = set()
        for day in days:
            key = str(day).strip().lower()
            token = by_lower.get(key) or _FULL_DAY_NAMES.get(key)
            if token is None:
                raise InvalidRuleError(f"Invalid day of week: {day!r} (expected Mon-Sun)")
            values.add(token)
        ordered = [d for d in WEEKDAYS if d in values]
        return self._set_rule_field(task_id, "recurring_days_of_week", ordered)

    def set_scheduled_times(self, task_id: str, times: Iterable[str]) -> TaskFrontmatter:
        values = set()
        for value in times:
            if not is_valid_time(value):
                raise InvalidRuleError(f"Invalid time: {value!r} (expected HH:mm)")
            values.add(canonical_time(value))
        return self._set_rule_field(task_id, "recurring_scheduled_times", sorted(values))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _done_timestamp(self) -> str:
        return format_moment(self._clock(), self._settings.effective_done_at_format)

    def _require_recurring(self, task_id: str) -> TaskFrontmatter:
        fm = self.read(task_id)
        if not fm.is_task:
            raise NotATaskError(task_id)
        if not fm.is_recurring:
            raise NotRecurringError(task_id)
        return fm

    def _set_rule_field(self, task_id: str, key: str, values: list) -> TaskFrontmatter:
        self._require_recurring(task_id)

        def _apply(fm: TaskFrontmatter) -> None:
            if not fm.is_recurring:
                raise NotRecurringError(task_id)
            setattr(fm, key, list(values))

        result = self._write(task_id, _apply)
        if result is None:
            raise NotATaskError(task_id)
        log.info("Set %s of %s to %s", key, task_id, values)
        return result

    def _write(
        self, task_id: str, apply: Callable[[TaskFrontmatter], Optional[bool]]
    ) -> Optional[TaskFrontmatter]:
        """
        Read-modify-write the typed frontmatter inside one store mutation.

        ``apply`` sees the note as it is under the store lock and returns
        False to leave it unwritten. Returns None when nothing was written
        (not a task, or ``apply`` declined).
        """
        written = []

        def _mutate(data: dict) -> bool:
            fm = TaskFrontmatter.from_mapping(data)
            if not fm.is_task or apply(fm) is False:
                return False
            data.clear()
            data.update(fm.to_mapping())
            written.append(True)
            return True

        result = self._store.mutate_attributes(task_id, _mutate)
        return TaskFrontmatter.from_mapping(result) if written else None

    def _transition(
        self, task_id: str, choose: Callable[[TaskFrontmatter], Optional[str]]
    ) -> Optional[TaskFrontmatter]:
        """
        Apply the transition ``choose`` picks from the note's current state.

        ``choose`` returns _COMPLETE, _UNCOMPLETE or None (leave the note
        alone) and runs under the store lock.
        """
        taken = []

        def _apply(fm: TaskFrontmatter) -> bool:
            action = choose(fm)
            if action == _COMPLETE:
                taken.append(self._apply_complete(fm))
            elif action == _UNCOMPLETE:
                self._apply_uncomplete(fm)
                taken.append(_UNCOMPLETE)
            return bool(taken)

        result = self._write(task_id, _apply)
        outcome = taken[0] if taken else None
        if outcome == _UNRESOLVED:
            self._notifier.warn(
                f"Could not determine the next occurrence of recurring task "
                f"'{task_id}'; marked it as done"
            )
        elif outcome == _ADVANCED:
            log.info(
                "Recurring task %s advanced to %s %s",
                task_id,
                result.due_date,
                result.scheduled_time or "",
            )
        return result

    def _apply_complete(self, fm: TaskFrontmatter) -> str:
        if fm.is_recurring:
            nxt = compute_next(fm.rule, fm.due_date, fm.scheduled_time, today=self._today())
            if not nxt.is_empty:
                fm.done = False
                fm.done_at = None
                fm.due_date = nxt.due_date
                fm.scheduled_time = nxt.scheduled_time
                return _ADVANCED
        fm.done = True
        if not fm.done_at:
            fm.done_at = self._done_timestamp()
        return _UNRESOLVED if fm.is_recurring else _COMPLETE

    def _apply_uncomplete(self, fm: TaskFrontmatter) -> None:
        fm.done = False
        fm.done_at = None
