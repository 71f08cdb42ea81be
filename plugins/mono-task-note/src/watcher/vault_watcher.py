"""
Vault file system watcher (mtime polling).

Docker volume mounts from Windows do not forward filesystem events (inotify)
into the container, so we use periodic mtime polling instead of watchdog's
event-based Observer.

The watcher runs a daemon thread that:
1. Walks VAULT_ROOT every POLL_INTERVAL seconds
2. Compares note mtimes against the previous poll
3. Calls TaskManager.handle_external_change for every new or modified note

Our own writes also show up as modifications; handle_external_change is a
no-op for notes that are already consistent, so this settles after one
extra poll.
"""

import logging
import threading
from typing import Dict, List, Optional

from config import DEFAULT_POLL_INTERVAL
from models.errors import TaskNoteError

log = logging.getLogger(__name__)


class VaultWatcher:
    """
    Polling-based change-event source.

    Usage:
        watcher = VaultWatcher(store, manager, notifier)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        store,
        manager,
        notifier,
        poll_interval: Optional[float] = None,
    ) -> None:
        self._store = store
        self._manager = manager
        self._notifier = notifier
        self._poll_interval = poll_interval or DEFAULT_POLL_INTERVAL
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        # Known notes and their mtimes from the last poll cycle
        self._known_notes: Dict[str, float] = {}

    def start(self) -> None:
        """Seed the snapshot and start the polling thread (daemon)."""
        log.info("Starting vault watcher (polling every %.1fs)", self._poll_interval)
        self._known_notes = self._store.snapshot()

        self._thread = threading.Thread(
            target=self._poll_loop, daemon=True, name="vault-watcher"
        )
        self._thread.start()

    def stop(self) -> None:
        """Signal the poll thread to stop and wait for it."""
        log.info("Stopping vault watcher")
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=self._poll_interval + 2)

    def check_for_changes(self) -> List[str]:
        """
        Single poll cycle. Returns the task ids that were dispatched.

        Deleted notes are dropped from the snapshot silently.
        """
        current = self._store.snapshot()
        changed = [
            task_id
            for task_id, mtime in current.items()
            if task_id not in self._known_notes or mtime > self._known_notes[task_id]
        ]
        self._known_notes = current

        for task_id in changed:
            log.debug("Note changed: %s", task_id)
            self._dispatch(task_id)
        return changed

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _poll_loop(self) -> None:
        """Main polling loop. Runs until stop_event is set."""
        while not self._stop_event.is_set():
            self._stop_event.wait(self._poll_interval)
            if self._stop_event.is_set():
                break
            try:
                self.check_for_changes()
            except Exception:
                log.exception("Error during poll cycle")

    def _dispatch(self, task_id: str) -> None:
        try:
            self._manager.handle_external_change(task_id)
        except TaskNoteError as e:
            self._notifier.error(f"Failed to update done_at: {e}")
        except Exception as e:
            log.exception("Failed to handle change of %s", task_id)
            self._notifier.error(f"Failed to update done_at: {e}")
