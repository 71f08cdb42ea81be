"""
Tests for manager/task_manager.py.

Uses a real NoteStore over a temporary vault, a fixed clock and a fixed
"today" so timestamps and fallback dates are deterministic.

Calendar reference: 2024-03-10 is a Sunday.
"""

import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from config import Settings
from manager.notifier import Notifier
from manager.task_manager import TaskManager
from models.errors import InvalidRuleError, NotATaskError, NotRecurringError, StoreError
from models.task import NextOccurrence
from parsers.frontmatter import render_note
from store.note_store import NoteStore


NOW = datetime(2024, 3, 10, 18, 0, 0, tzinfo=timezone.utc)
NOW_STAMP = "2024-03-10T18:00:00+00:00"
TODAY = date(2024, 3, 10)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class _InterleavingStore(NoteStore):
    """NoteStore that runs ``before_mutate`` once, just before the next mutation."""

    before_mutate = None

    def mutate_attributes(self, task_id, mutator):
        hook, self.before_mutate = self.before_mutate, None
        if hook is not None:
            hook()
        return super().mutate_attributes(task_id, mutator)


def _write(vault: Path, name: str, frontmatter, body: str = "Body\n") -> str:
    path = vault / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_note(frontmatter, body), encoding="utf-8")
    return name


def _task(**fields) -> dict:
    data = {"type": "task", "done": False, "due_date": None, "priority": 4, "scheduled_time": None}
    data.update(fields)
    return data


def _recurring(**fields) -> dict:
    return _task(attributes=["recurring"], **fields)


@pytest.fixture
def vault(tmp_path) -> Path:
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def clock():
    return _Clock(NOW)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def manager(vault, clock, notifier):
    store = NoteStore(vault, set())
    return TaskManager(store, notifier, Settings(vault_root=vault), clock=clock, today=lambda: TODAY)


def _attrs(manager, task_id):
    return manager.store.get_attributes(task_id)


# ---------------------------------------------------------------------------
# Non-recurring completion
# ---------------------------------------------------------------------------

class TestComplete:
    def test_marks_done_with_timestamp(self, manager, vault):
        tid = _write(vault, "a.md", _task(project="home"))
        result = manager.complete_task(tid)

        assert result.done is True
        assert result.done_at == NOW_STAMP
        attrs = _attrs(manager, tid)
        assert attrs["done"] is True
        assert attrs["done_at"] == NOW_STAMP
        assert attrs["project"] == "home"
        assert attrs["priority"] == 4
        assert (vault / "a.md").read_text(encoding="utf-8").endswith("---\nBody\n")

    def test_second_completion_keeps_timestamp(self, manager, vault, clock):
        tid = _write(vault, "a.md", _task())
        manager.complete_task(tid)
        clock.now = datetime(2024, 3, 11, 7, 0, tzinfo=timezone.utc)
        manager.complete_task(tid)
        assert _attrs(manager, tid)["done_at"] == NOW_STAMP

    def test_existing_timestamp_kept(self, manager, vault):
        tid = _write(vault, "a.md", _task(done_at="2024-01-01T00:00:00+00:00"))
        manager.complete_task(tid)
        assert _attrs(manager, tid)["done_at"] == "2024-01-01T00:00:00+00:00"

    def test_custom_timestamp_format(self, vault, clock, notifier):
        settings = Settings(vault_root=vault, done_at_format="YYYY-MM-DD HH:mm")
        manager = TaskManager(NoteStore(vault), notifier, settings, clock=clock)
        tid = _write(vault, "a.md", _task())
        manager.complete_task(tid)
        assert _attrs(manager, tid)["done_at"] == "2024-03-10 18:00"


class TestUncomplete:
    def test_reopens_and_removes_timestamp(self, manager, vault):
        tid = _write(vault, "a.md", _task(done=True, done_at=NOW_STAMP))
        result = manager.uncomplete_task(tid)
        assert result.done is False
        attrs = _attrs(manager, tid)
        assert attrs["done"] is False
        assert "done_at" not in attrs

    def test_open_task_stays_open(self, manager, vault):
        tid = _write(vault, "a.md", _task())
        manager.uncomplete_task(tid)
        assert _attrs(manager, tid)["done"] is False

    def test_recurring_task_not_advanced(self, manager, vault):
        tid = _write(vault, "a.md", _recurring(done=True, done_at=NOW_STAMP, due_date="2024-03-10",
                                               recurring_days_of_week=["Mon"]))
        manager.uncomplete_task(tid)
        assert _attrs(manager, tid)["due_date"] == "2024-03-10"


class TestToggle:
    def test_open_task_matches_complete(self, manager, vault):
        toggled = _write(vault, "a.md", _task())
        completed = _write(vault, "b.md", _task())
        manager.toggle_task(toggled)
        manager.complete_task(completed)
        assert _attrs(manager, toggled) == _attrs(manager, completed)

    def test_done_task_matches_uncomplete(self, manager, vault):
        toggled = _write(vault, "a.md", _task(done=True, done_at=NOW_STAMP))
        reopened = _write(vault, "b.md", _task(done=True, done_at=NOW_STAMP))
        manager.toggle_task(toggled)
        manager.uncomplete_task(reopened)
        assert _attrs(manager, toggled) == _attrs(manager, reopened)

    def test_open_recurring_task_advances(self, manager, vault):
        tid = _write(vault, "a.md", _recurring(due_date="2024-03-10", recurring_days_of_week=["Mon"]))
        manager.toggle_task(tid)
        attrs = _attrs(manager, tid)
        assert attrs["done"] is False
        assert attrs["due_date"] == "2024-03-11"


# ---------------------------------------------------------------------------
# Guard clause
# ---------------------------------------------------------------------------

class TestNonTaskNotes:
    @pytest.mark.parametrize("op", ["complete_task", "uncomplete_task", "toggle_task", "handle_external_change"])
    def test_other_type_is_untouched(self, manager, vault, op):
        tid = _write(vault, "n.md", {"type": "note", "done": True})
        before = (vault / tid).read_text(encoding="utf-8")
        assert getattr(manager, op)(tid) is None
        assert (vault / tid).read_text(encoding="utf-8") == before

    @pytest.mark.parametrize("op", ["complete_task", "uncomplete_task", "toggle_task", "handle_external_change"])
    def test_plain_note_is_untouched(self, manager, vault, op):
        (vault / "plain.md").write_text("# Plain\n", encoding="utf-8")
        assert getattr(manager, op)("plain.md") is None
        assert (vault / "plain.md").read_text(encoding="utf-8") == "# Plain\n"

    def test_get_task(self, manager, vault):
        _write(vault, "n.md", {"type": "note"})
        tid = _write(vault, "a.md", _task())
        assert manager.get_task("n.md") is None
        assert manager.get_task(tid).is_task


# ---------------------------------------------------------------------------
# Recurring completion
# ---------------------------------------------------------------------------

class TestRecurringComplete:
    def test_same_day_slot(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(
            due_date="2024-03-10",
            scheduled_time="09:00",
            recurring_scheduled_times=["09:00", "14:30"],
        ))
        result = manager.complete_task(tid)
        assert result.done is False
        assert (result.due_date, result.scheduled_time) == ("2024-03-10", "14:30")

    def test_rollover_to_next_weekday(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(
            due_date="2024-03-10",
            scheduled_time="14:30",
            recurring_days_of_week=["Mon"],
            recurring_scheduled_times=["09:00", "14:30"],
        ))
        manager.complete_task(tid)
        attrs = _attrs(manager, tid)
        assert attrs["done"] is False
        assert attrs["due_date"] == "2024-03-11"
        assert attrs["scheduled_time"] == "09:00"

    def test_clears_stale_timestamp(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(
            due_date="2024-03-01",
            done_at="2024-02-15T10:00:00+00:00",
            recurring_days_of_month=[1, 15],
        ))
        manager.complete_task(tid)
        attrs = _attrs(manager, tid)
        assert "done_at" not in attrs
        assert attrs["due_date"] == "2024-03-15"
        assert attrs["scheduled_time"] is None

    def test_no_due_date_uses_today(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(recurring_days_of_week=["Wed"]))
        manager.complete_task(tid)
        assert _attrs(manager, tid)["due_date"] == "2024-03-13"

    def test_unrelated_keys_preserved(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(
            due_date="2024-03-10",
            recurring_days_of_week=["Mon"],
            context="@garden",
        ))
        manager.complete_task(tid)
        attrs = _attrs(manager, tid)
        assert attrs["context"] == "@garden"
        assert attrs["attributes"] == ["recurring"]
        assert attrs["recurring_days_of_week"] == ["Mon"]

    def test_no_warning_when_resolved(self, manager, vault, notifier):
        tid = _write(vault, "r.md", _recurring(due_date="2024-03-10", recurring_days_of_week=["Mon"]))
        manager.complete_task(tid)
        assert notifier.recent() == []


class TestRecurringFallback:
    def test_exhausted_search_marks_done(self, manager, vault, notifier):
        tid = _write(vault, "r.md", _recurring(
            due_date="2024-03-10",
            scheduled_time="09:00",
            recurring_days_of_month=[32],
            recurring_scheduled_times=["09:00"],
        ))
        result = manager.complete_task(tid)

        assert result.done is True
        attrs = _attrs(manager, tid)
        assert attrs["done"] is True
        assert attrs["done_at"] == NOW_STAMP
        assert attrs["due_date"] == "2024-03-10"
        assert attrs["scheduled_time"] == "09:00"

        notices = notifier.recent()
        assert len(notices) == 1
        assert notices[0].level == logging.WARNING
        assert "r.md" in notices[0].message

    def test_unconfigured_rule_marks_done(self, manager, vault, notifier):
        tid = _write(vault, "r.md", _recurring(due_date="2024-03-10"))
        manager.complete_task(tid)
        attrs = _attrs(manager, tid)
        assert attrs["done"] is True
        assert attrs["due_date"] == "2024-03-10"
        assert len(notifier.recent()) == 1


# ---------------------------------------------------------------------------
# External change hook
# ---------------------------------------------------------------------------

class TestExternalChange:
    def test_done_without_timestamp_is_stamped(self, manager, vault):
        tid = _write(vault, "a.md", _task(done=True))
        result = manager.handle_external_change(tid)
        assert result.done_at == NOW_STAMP
        assert _attrs(manager, tid)["done_at"] == NOW_STAMP

    def test_empty_timestamp_is_stamped(self, manager, vault):
        tid = _write(vault, "a.md", _task(done=True, done_at=""))
        manager.handle_external_change(tid)
        assert _attrs(manager, tid)["done_at"] == NOW_STAMP

    def test_open_with_timestamp_is_cleared(self, manager, vault):
        tid = _write(vault, "a.md", _task(done_at=NOW_STAMP))
        manager.handle_external_change(tid)
        assert "done_at" not in _attrs(manager, tid)

    def test_recurring_checked_off_advances(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(
            done=True,
            due_date="2024-03-10",
            scheduled_time="14:30",
            recurring_days_of_week=["Mon"],
            recurring_scheduled_times=["09:00", "14:30"],
        ))
        manager.handle_external_change(tid)
        attrs = _attrs(manager, tid)
        assert attrs["done"] is False
        assert (attrs["due_date"], attrs["scheduled_time"]) == ("2024-03-11", "09:00")
        assert "done_at" not in attrs

    def test_recurring_checked_off_without_next_occurrence(self, manager, vault, notifier):
        tid = _write(vault, "r.md", _recurring(
            done=True,
            due_date="2024-03-10",
            scheduled_time="09:00",
            recurring_days_of_month=[32],
        ))
        result = manager.handle_external_change(tid)

        assert result.done is True
        attrs = _attrs(manager, tid)
        assert attrs["done_at"] == NOW_STAMP
        assert (attrs["due_date"], attrs["scheduled_time"]) == ("2024-03-10", "09:00")
        notices = notifier.recent()
        assert len(notices) == 1
        assert notices[0].level == logging.WARNING

    @pytest.mark.parametrize(
        "fields",
        [dict(), dict(done=True, done_at=NOW_STAMP)],
    )
    def test_consistent_note_not_written(self, manager, vault, fields):
        tid = _write(vault, "a.md", _task(**fields))
        before = (vault / tid).read_text(encoding="utf-8")
        assert manager.handle_external_change(tid) is None
        assert (vault / tid).read_text(encoding="utf-8") == before


# ---------------------------------------------------------------------------
# Rule setters and preview
# ---------------------------------------------------------------------------

class TestRuleSetters:
    def test_days_of_month_sorted_and_deduplicated(self, manager, vault):
        tid = _write(vault, "r.md", _recurring())
        result = manager.set_days_of_month(tid, [15, 1, 15])
        assert result.recurring_days_of_month == [1, 15]
        assert _attrs(manager, tid)["recurring_days_of_month"] == [1, 15]

    @pytest.mark.parametrize("days", [[0], [32], ["1"], [True]])
    def test_days_of_month_invalid(self, manager, vault, days):
        tid = _write(vault, "r.md", _recurring())
        with pytest.raises(InvalidRuleError):
            manager.set_days_of_month(tid, days)

    def test_days_of_week_normalised(self, manager, vault):
        tid = _write(vault, "r.md", _recurring())
        result = manager.set_days_of_week(tid, ["fri", "Monday", "Mon"])
        assert result.recurring_days_of_week == ["Mon", "Fri"]

    def test_days_of_week_invalid(self, manager, vault):
        tid = _write(vault, "r.md", _recurring())
        with pytest.raises(InvalidRuleError):
            manager.set_days_of_week(tid, ["Funday"])

    def test_scheduled_times_sorted_and_padded(self, manager, vault):
        tid = _write(vault, "r.md", _recurring())
        result = manager.set_scheduled_times(tid, ["14:30", "9:00", "09:00"])
        assert result.recurring_scheduled_times == ["09:00", "14:30"]
        assert _attrs(manager, tid)["recurring_scheduled_times"] == ["09:00", "14:30"]

    @pytest.mark.parametrize("value", ["25:00", "9", "noon"])
    def test_scheduled_times_invalid(self, manager, vault, value):
        tid = _write(vault, "r.md", _recurring())
        with pytest.raises(InvalidRuleError):
            manager.set_scheduled_times(tid, [value])

    def test_empty_list_clears(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(recurring_days_of_week=["Mon"]))
        manager.set_days_of_week(tid, [])
        assert _attrs(manager, tid)["recurring_days_of_week"] == []

    @pytest.mark.parametrize("setter,arg", [
        ("set_days_of_month", [1]),
        ("set_days_of_week", ["Mon"]),
        ("set_scheduled_times", ["09:00"]),
    ])
    def test_not_a_task(self, manager, vault, setter, arg):
        _write(vault, "n.md", {"type": "note"})
        with pytest.raises(NotATaskError):
            getattr(manager, setter)("n.md", arg)

    @pytest.mark.parametrize("setter,arg", [
        ("set_days_of_month", [1]),
        ("set_days_of_week", ["Mon"]),
        ("set_scheduled_times", ["09:00"]),
    ])
    def test_not_recurring(self, manager, vault, setter, arg):
        tid = _write(vault, "a.md", _task())
        with pytest.raises(NotRecurringError):
            getattr(manager, setter)(tid, arg)
        assert "recurring_days_of_month" not in _attrs(manager, tid)


class TestPreview:
    def test_preview_does_not_write(self, manager, vault):
        tid = _write(vault, "r.md", _recurring(due_date="2024-03-10", recurring_days_of_week=["Mon"]))
        before = (vault / tid).read_text(encoding="utf-8")
        assert manager.preview_next(tid) == NextOccurrence("2024-03-11", None)
        assert (vault / tid).read_text(encoding="utf-8") == before

    def test_preview_requires_recurring(self, manager, vault):
        tid = _write(vault, "a.md", _task())
        with pytest.raises(NotRecurringError):
            manager.preview_next(tid)


class TestListTasks:
    def test_only_readable_task_notes(self, manager, vault):
        _write(vault, "a.md", _task())
        _write(vault, "sub/b.md", _recurring())
        _write(vault, "n.md", {"type": "note"})
        (vault / "broken.md").write_text("---\ntype: [task\n---\n", encoding="utf-8")
        assert [tid for tid, _ in manager.list_tasks()] == ["a.md", "sub/b.md"]


# ---------------------------------------------------------------------------
# Concurrent writers
# ---------------------------------------------------------------------------

class TestInterleavedWrites:
    @pytest.fixture
    def store(self, vault):
        return _InterleavingStore(vault, set())

    @pytest.fixture
    def racing(self, store, clock, notifier):
        return TaskManager(store, notifier, Settings(vault_root=store.vault_root),
                           clock=clock, today=lambda: TODAY)

    def test_external_change_after_completion_does_not_advance_twice(self, racing, store, vault):
        tid = _write(vault, "r.md", _recurring(
            done=True,
            due_date="2024-03-10",
            recurring_days_of_week=["Mon"],
        ))
        store.before_mutate = lambda: racing.complete_task(tid)

        assert racing.handle_external_change(tid) is None
        attrs = store.get_attributes(tid)
        assert attrs["done"] is False
        assert attrs["due_date"] == "2024-03-11"

    def test_external_change_after_uncomplete_keeps_note_open(self, racing, store, vault):
        tid = _write(vault, "a.md", _task(done=True))
        store.before_mutate = lambda: racing.uncomplete_task(tid)

        racing.handle_external_change(tid)
        attrs = store.get_attributes(tid)
        assert attrs["done"] is False
        assert "done_at" not in attrs

    def test_toggle_uses_state_at_write_time(self, racing, store, vault):
        tid = _write(vault, "a.md", _task())
        store.before_mutate = lambda: racing.complete_task(tid)

        result = racing.toggle_task(tid)
        assert result.done is False
        attrs = store.get_attributes(tid)
        assert attrs["done"] is False
        assert "done_at" not in attrs

    def test_note_retyped_before_write_is_left_alone(self, racing, store, vault):
        tid = _write(vault, "a.md", _task())

        def retype():
            (vault / tid).write_text(render_note({"type": "note"}, "Body\n"), encoding="utf-8")

        store.before_mutate = retype
        assert racing.complete_task(tid) is None
        assert store.get_attributes(tid) == {"type": "note"}


# ---------------------------------------------------------------------------
# Undecodable notes
# ---------------------------------------------------------------------------

class TestUndecodableNotes:
    def _latin1(self, vault: Path) -> str:
        (vault / "0bad.md").write_bytes(b"---\ntype: task\ndone: true\ntitle: caf\xe9\n---\n")
        return "0bad.md"

    def test_list_skips_note(self, manager, vault):
        self._latin1(vault)
        tid = _write(vault, "a.md", _task())
        assert [t for t, _ in manager.list_tasks()] == [tid]

    @pytest.mark.parametrize("op", ["complete_task", "uncomplete_task", "toggle_task", "handle_external_change"])
    def test_operations_raise_store_error(self, manager, vault, op):
        tid = self._latin1(vault)
        with pytest.raises(StoreError):
            getattr(manager, op)(tid)
