from .notifier import Notice, Notifier
from .task_manager import TaskManager

__all__ = ["Notice", "Notifier", "TaskManager"]
