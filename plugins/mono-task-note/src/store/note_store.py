"""
File-backed record store for task notes.

Task ids are vault-relative POSIX paths of Markdown notes
(e.g. ``"tasks/1712345678.md"``). Each note's frontmatter is the task's
attribute record.

Design:
    Reads:  parse the note fresh from disk on every call
    Writes: read-modify-write under _lock, atomic temp-file replace
    Walks:  rglob("*.md") honouring excluded directory names

All mutations acquire _lock (threading.RLock) so two writers in this
process never interleave on the same note.
"""

import copy
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Set

from models.errors import NoteNotFoundError, StoreError
from parsers.frontmatter import read_note, write_note

log = logging.getLogger(__name__)

NOTE_SUFFIX = ".md"

Mutator = Callable[[Dict[str, Any]], Optional[bool]]


class NoteStore:
    """
    Read and mutate the frontmatter of notes under a vault root.

    Usage:
        store = NoteStore(vault_root, {".git", ".obsidian"})
        attrs = store.get_attributes("tasks/a.md")
        store.mutate_attributes("tasks/a.md", lambda fm: fm.update(done=True))
    """

    def __init__(self, vault_root: Path, exclude_dirs: Optional[Set[str]] = None) -> None:
        self._vault_root = Path(vault_root)
        self._exclude_dirs = set(exclude_dirs or ())
        self._lock = threading.RLock()

    @property
    def vault_root(self) -> Path:
        return self._vault_root

    @property
    def exclude_dirs(self) -> Set[str]:
        return set(self._exclude_dirs)

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def resolve(self, task_id: str) -> Path:
        """Map a task id to an absolute note path inside the vault."""
        root = self._vault_root.resolve()
        path = (root / task_id).resolve()
        try:
            path.relative_to(root)
        except ValueError:
            raise StoreError(f"'{task_id}' is outside the vault") from None
        if path.suffix != NOTE_SUFFIX:
            raise StoreError(f"'{task_id}' is not a Markdown note")
        return path

    def task_id_for(self, path: Path) -> str:
        """Inverse of resolve(): absolute note path → task id."""
        return path.resolve().relative_to(self._vault_root.resolve()).as_posix()

    def _is_excluded(self, path: Path) -> bool:
        try:
            rel = path.relative_to(self._vault_root)
        except ValueError:
            return True
        return any(part in self._exclude_dirs for part in rel.parts[:-1])

    # ------------------------------------------------------------------
    # Record store contract
    # ------------------------------------------------------------------

    def get_attributes(self, task_id: str) -> Optional[Dict[str, Any]]:
        """
        Return the note's frontmatter mapping, or None if it has none.

        Raises:
            NoteNotFoundError: the note does not exist
            StoreError: the note could not be read or parsed
        """
        path = self.resolve(task_id)
        if not path.is_file():
            raise NoteNotFoundError(task_id)
        try:
            frontmatter, _ = read_note(path)
        except (OSError, UnicodeDecodeError) as e:
            raise StoreError(f"Failed to read '{task_id}': {e}") from e
        return frontmatter

    def mutate_attributes(self, task_id: str, mutator: Mutator) -> Dict[str, Any]:
        """
        Apply ``mutator`` to the note's frontmatter and persist it.

        The mutator receives a private copy and edits it in place. Notes
        without frontmatter get an empty mapping and gain a block on write.
        If the mutator returns False the note is not written. Returns the
        mapping as written (or as read, when nothing was written).
        """
        path = self.resolve(task_id)
        with self._lock:
            if not path.is_file():
                raise NoteNotFoundError(task_id)
            try:
                frontmatter, body = read_note(path)
            except (OSError, UnicodeDecodeError) as e:
                raise StoreError(f"Failed to read '{task_id}': {e}") from e
            updated = copy.deepcopy(frontmatter) if frontmatter is not None else {}
            if mutator(updated) is False:
                return frontmatter if frontmatter is not None else {}
            try:
                write_note(path, updated, body)
            except OSError as e:
                raise StoreError(f"Failed to write '{task_id}': {e}") from e
            log.debug("Updated frontmatter of %s", task_id)
            return updated

    # ------------------------------------------------------------------
    # Vault walking
    # ------------------------------------------------------------------

    def iter_notes(self) -> Iterator[str]:
        """Yield task ids of all Markdown notes, respecting exclusions."""
        for path in sorted(self._vault_root.rglob(f"*{NOTE_SUFFIX}")):
            if not path.is_file() or self._is_excluded(path):
                continue
            yield path.relative_to(self._vault_root).as_posix()

    def snapshot(self) -> Dict[str, float]:
        """Return ``{task_id: mtime}`` for every note in the vault."""
        result: Dict[str, float] = {}
        try:
            for task_id in self.iter_notes():
                try:
                    result[task_id] = (self._vault_root / task_id).stat().st_mtime
                except OSError:
                    pass
        except OSError:
            log.exception("Error walking vault for notes")
        return result
