"""
mono-task-note MCP server entry point.

Startup sequence:
1. Read settings from the environment (VAULT_ROOT, EXCLUDE_DIRS, ...)
2. Build the note store, notifier and TaskManager
3. Start VaultWatcher daemon thread (reacts to external edits)
4. Start REST API server in background thread (if API_ENABLED)
5. Register MCP tools and run the MCP server (stdio transport)
"""

import logging
import sys
import threading

from mcp.server.fastmcp import FastMCP

from api.tools import register_tools
from config import ConfigError, Settings
from manager.notifier import Notifier
from manager.task_manager import TaskManager
from store.note_store import NoteStore
from utils.dates import unsupported_tokens
from watcher.vault_watcher import VaultWatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger(__name__)


def _start_api_server(manager: TaskManager, port: int) -> None:
    """Run the FastAPI/uvicorn server in a daemon thread."""
    import uvicorn

    from api.app import create_app

    app = create_app(manager)
    log.info("Starting REST API on port %d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="warning")


def build_manager(settings: Settings) -> TaskManager:
    store = NoteStore(settings.vault_root, settings.exclude_dirs)
    return TaskManager(store, Notifier(), settings)


def main() -> None:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        log.error("%s", e)
        sys.exit(1)

    log.info("Vault root: %s", settings.vault_root)
    log.info("Excluded dirs: %s", settings.exclude_dirs)
    log.info("done_at format: %s", settings.effective_done_at_format)
    unsupported = unsupported_tokens(settings.effective_done_at_format)
    if unsupported:
        log.warning(
            "DONE_AT_FORMAT contains unsupported tokens, written as text: %s",
            ", ".join(unsupported),
        )

    manager = build_manager(settings)

    watcher = VaultWatcher(
        manager.store, manager, manager.notifier, poll_interval=settings.poll_interval
    )
    watcher.start()

    if settings.api_enabled:
        api_thread = threading.Thread(
            target=_start_api_server, args=(manager, settings.api_port), daemon=True
        )
        api_thread.start()

    mcp = FastMCP("mono-task-note")
    register_tools(mcp, manager)

    log.info("Starting mono-task-note server")
    try:
        mcp.run(transport="stdio")
    finally:
        watcher.stop()


if __name__ == "__main__":
    main()
