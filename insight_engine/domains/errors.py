"""
Exceptions raised by the insight engine.
"""


class InsightEngineError(Exception):
    """Base class for engine errors."""


class StorageError(InsightEngineError):
    """The store could not persist or read insights."""


class TaskNotFoundError(InsightEngineError):
    """A queue task lookup found nothing."""

    def __init__(self, task_id: str):
        super().__init__(f"Queue task {task_id} not found")
        self.task_id = task_id
