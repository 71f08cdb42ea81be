"""
Interactive harness for testing mono-task-note without MCP integration.

Usage:
    python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]

Runs a quick read-only smoke test over the vault's task notes, then drops
you into a REPL where you can call TaskManager methods directly. Commands
that change state write to the vault.
"""

import json
import sys
from pathlib import Path

# Add src/ to path so imports work
sys.path.insert(0, str(Path(__file__).parent / "src"))

from api.task_handlers import (
    handle_next_occurrence,
    handle_notices,
    handle_status,
    handle_task_complete,
    handle_task_get,
    handle_task_toggle,
    handle_task_uncomplete,
)
from config import Settings
from server import build_manager


def smoke_test(manager) -> None:
    """Quick automated checks after startup. Writes nothing."""
    st = handle_status(manager)
    print("\n=== Smoke Test ===")
    print(f"  Vault root:     {st['vault_root']}")
    print(f"  Notes:          {st['notes']}")
    print(f"  Task notes:     {st['tasks']}")
    print(f"  Exclude dirs:   {st['exclude_dirs']}")
    print(f"  done_at format: {st['done_at_format']}")

    tasks = manager.list_tasks()
    open_tasks = [(tid, fm) for tid, fm in tasks if not fm.done]
    print(f"\n  Open tasks: {len(open_tasks)}")
    for tid, fm in open_tasks[:5]:
        print(f"    {tid}  due={fm.due_date or '-'} at={fm.scheduled_time or '-'}")
    if len(open_tasks) > 5:
        print(f"    ... and {len(open_tasks) - 5} more")

    recurring = [(tid, fm) for tid, fm in tasks if fm.is_recurring]
    print(f"\n  Recurring tasks: {len(recurring)}")
    for tid, fm in recurring[:10]:
        nxt = handle_next_occurrence(manager, task_id=tid)
        if nxt.get("resolved"):
            print(f"    {tid}  next={nxt['due_date']} {nxt['scheduled_time'] or ''}")
        else:
            print(f"    {tid}  next=<unresolved>")

    inconsistent = [
        tid for tid, fm in tasks if bool(fm.done) != bool(fm.done_at)
    ]
    print(f"\n  done/done_at mismatches: {len(inconsistent)}")
    for tid in inconsistent[:5]:
        print(f"    {tid}")

    print("\n=== Smoke Test Complete ===\n")


def repl(manager) -> None:
    """Simple REPL for interactive exploration."""
    print("Interactive mode. Type 'help' for commands, 'quit' to exit.\n")

    commands = {
        "help":       "Show this help",
        "status":     "Show service status",
        "tasks":      "List task notes. Usage: tasks [done=true|false] [recurring=true|false]",
        "task":       "Show a task. Usage: task <path>",
        "next":       "Preview next occurrence. Usage: next <path>",
        "complete":   "Complete a task. Usage: complete <path>",
        "uncomplete": "Reopen a task. Usage: uncomplete <path>",
        "toggle":     "Toggle a task. Usage: toggle <path>",
        "heal":       "Run the external-change hook. Usage: heal <path>",
        "notices":    "Show recent notices",
        "quit":       "Exit",
    }
    handlers = {
        "task": handle_task_get,
        "next": handle_next_occurrence,
        "complete": handle_task_complete,
        "uncomplete": handle_task_uncomplete,
        "toggle": handle_task_toggle,
    }

    while True:
        try:
            line = input("mono-task-note> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue

        parts = line.split(maxsplit=1)
        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd in ("quit", "exit"):
            break

        elif cmd == "help":
            for k, v in commands.items():
                print(f"  {k:12s} {v}")

        elif cmd == "status":
            print(json.dumps(handle_status(manager), indent=2, default=str))

        elif cmd == "tasks":
            filters = {}
            for token in arg.split():
                if "=" in token:
                    k, v = token.split("=", 1)
                    filters[k] = v.lower() in ("true", "1", "yes")
            results = manager.list_tasks()
            for tid, fm in results:
                if "done" in filters and fm.done != filters["done"]:
                    continue
                if "recurring" in filters and fm.is_recurring != filters["recurring"]:
                    continue
                mark = "x" if fm.done else " "
                rec = " (recurring)" if fm.is_recurring else ""
                print(f"  [{mark}] {tid}  due={fm.due_date or '-'} at={fm.scheduled_time or '-'}{rec}")

        elif cmd in handlers:
            if not arg:
                print(f"Usage: {cmd} <path>")
                continue
            print(json.dumps(handlers[cmd](manager, task_id=arg), indent=2))

        elif cmd == "heal":
            if not arg:
                print("Usage: heal <path>")
                continue
            result = manager.handle_external_change(arg)
            print("  nothing to do" if result is None else f"  updated {arg}")

        elif cmd == "notices":
            for notice in handle_notices(manager, limit=20):
                print(f"  {notice['created']} {notice['level']:8s} {notice['message']}")

        else:
            print(f"Unknown command: {cmd}. Type 'help' for available commands.")


def main():
    if len(sys.argv) < 2:
        print("Usage: python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]")
        sys.exit(1)

    vault_root = Path(sys.argv[1]).resolve()
    if not vault_root.is_dir():
        print(f"Error: {vault_root} is not a directory")
        sys.exit(1)

    settings = Settings(vault_root=vault_root)
    args = sys.argv[2:]
    if "--exclude" in args:
        idx = args.index("--exclude")
        if idx + 1 < len(args):
            settings.exclude_dirs = set(args[idx + 1].split(","))

    print(f"Vault root: {vault_root}")
    print(f"Exclude dirs: {settings.exclude_dirs}")

    manager = build_manager(settings)

    smoke_test(manager)
    repl(manager)

    print("Done.")


if __name__ == "__main__":
    main()
