"""Task utilities."""
from jobs.utils.database import (
    create_task_engine,
    create_task_session_maker,
    task_engine,
    task_session_maker,
)
from jobs.utils.exclusive import run_exclusive

__all__ = [
    "create_task_engine",
    "create_task_session_maker",
    "run_exclusive",
    "task_engine",
    "task_session_maker",
]
