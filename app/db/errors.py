"""Errors raised by the task persistence layer."""


class DatabaseError(RuntimeError):
    """A Supabase query failed or returned an unusable response."""


class TaskNotFoundError(LookupError):
    """No task exists with the requested ID."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Task with ID {task_id} not found")
