"""
Tests for store/note_store.py.

Covers:
- get_attributes: mapping, no frontmatter, missing note, paths outside the vault
- mutate_attributes: body and unknown keys preserved, atomic failure, new block
- iter_notes / snapshot: exclusions and non-Markdown files
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from models.errors import FrontmatterError, NoteNotFoundError, StoreError
from store.note_store import NoteStore


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "tasks").mkdir(parents=True)
    (vault / ".obsidian").mkdir()

    (vault / "tasks" / "water.md").write_text(
        "---\n"
        "type: task\n"
        "done: false\n"
        "priority: 4\n"
        "project: home\n"
        "---\n"
        "Water the plants.\n",
        encoding="utf-8",
    )
    (vault / "journal.md").write_text("# Monday\n\nNo frontmatter here.\n", encoding="utf-8")
    (vault / "broken.md").write_text("---\ntype: [task\n---\n", encoding="utf-8")
    (vault / ".obsidian" / "workspace.md").write_text("---\ntype: task\n---\n", encoding="utf-8")
    (vault / "tasks" / "readme.txt").write_text("not a note\n", encoding="utf-8")
    return vault


@pytest.fixture
def store(tmp_path):
    return NoteStore(_make_vault(tmp_path), {".obsidian"})


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestGetAttributes:
    def test_returns_mapping(self, store):
        assert store.get_attributes("tasks/water.md") == {
            "type": "task",
            "done": False,
            "priority": 4,
            "project": "home",
        }

    def test_no_frontmatter(self, store):
        assert store.get_attributes("journal.md") is None

    def test_missing_note(self, store):
        with pytest.raises(NoteNotFoundError):
            store.get_attributes("tasks/nope.md")

    def test_invalid_yaml(self, store):
        with pytest.raises(FrontmatterError):
            store.get_attributes("broken.md")

    @pytest.mark.parametrize("task_id", ["../outside.md", "tasks/readme.txt"])
    def test_rejected_paths(self, store, task_id):
        with pytest.raises(StoreError):
            store.get_attributes(task_id)

    def test_undecodable_note(self, store):
        (store.vault_root / "latin.md").write_bytes(b"---\ntype: task\ntitle: caf\xe9\n---\n")
        with pytest.raises(StoreError) as exc:
            store.get_attributes("latin.md")
        assert exc.value.kind == "store"

    def test_not_found_kind(self, store):
        with pytest.raises(NoteNotFoundError) as exc:
            store.get_attributes("tasks/nope.md")
        assert exc.value.kind == "not_found"


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

class TestMutateAttributes:
    def test_updates_and_preserves_body(self, store):
        written = store.mutate_attributes("tasks/water.md", lambda fm: fm.update(done=True))
        assert written["done"] is True

        path = store.vault_root / "tasks" / "water.md"
        text = path.read_text(encoding="utf-8")
        assert text.endswith("---\nWater the plants.\n")
        assert store.get_attributes("tasks/water.md") == {
            "type": "task",
            "done": True,
            "priority": 4,
            "project": "home",
        }

    def test_mutator_gets_a_copy(self, store):
        seen = {}

        def mutator(fm):
            seen.update(fm)
            fm["done"] = True

        store.mutate_attributes("tasks/water.md", mutator)
        assert seen["done"] is False

    def test_failed_mutator_leaves_note_untouched(self, store):
        path = store.vault_root / "tasks" / "water.md"
        before = path.read_text(encoding="utf-8")

        def mutator(fm):
            fm["done"] = True
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            store.mutate_attributes("tasks/water.md", mutator)
        assert path.read_text(encoding="utf-8") == before

    def test_adds_frontmatter_block(self, store):
        store.mutate_attributes("journal.md", lambda fm: fm.update(type="task"))
        text = (store.vault_root / "journal.md").read_text(encoding="utf-8")
        assert text.startswith("---\ntype: task\n---\n# Monday\n")

    def test_declining_mutator_writes_nothing(self, store):
        path = store.vault_root / "tasks" / "water.md"
        before = path.stat().st_mtime_ns

        def mutator(fm):
            fm["done"] = True
            return False

        result = store.mutate_attributes("tasks/water.md", mutator)
        assert result["done"] is False
        assert path.stat().st_mtime_ns == before
        assert store.get_attributes("tasks/water.md")["done"] is False

    def test_undecodable_note(self, store):
        (store.vault_root / "latin.md").write_bytes(b"---\ntype: task\ntitle: caf\xe9\n---\n")
        with pytest.raises(StoreError):
            store.mutate_attributes("latin.md", lambda fm: None)

    def test_missing_note(self, store):
        with pytest.raises(NoteNotFoundError):
            store.mutate_attributes("tasks/nope.md", lambda fm: None)


# ---------------------------------------------------------------------------
# Walking
# ---------------------------------------------------------------------------

class TestWalk:
    def test_iter_notes_respects_exclusions(self, store):
        assert list(store.iter_notes()) == ["broken.md", "journal.md", "tasks/water.md"]

    def test_snapshot(self, store):
        snap = store.snapshot()
        assert set(snap) == {"broken.md", "journal.md", "tasks/water.md"}
        assert all(isinstance(m, float) for m in snap.values())

    def test_task_id_round_trip(self, store):
        path = store.resolve("tasks/water.md")
        assert store.task_id_for(path) == "tasks/water.md"
