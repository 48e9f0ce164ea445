"""
services/errors.py

Domain errors raised by the grading core and the gradebook services.
The HTTP mapping lives in middlewares/error_handler.py.
"""

from typing import Optional


class GradebookError(Exception):
    """Base class. `code` becomes error.code in the JSON error body."""
    code = "GRADEBOOK_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTaskDefinition(GradebookError):
    """A task whose max_points is zero or negative."""
    code = "INVALID_TASK_DEFINITION"

    def __init__(self, task_id, max_points):
        super().__init__(f"Task {task_id!r} has invalid max_points={max_points!r} (must be > 0)")
        self.task_id = task_id
        self.max_points = max_points


class OrphanGradeReference(GradebookError):
    """A grade pointing at a task that does not exist."""
    code = "ORPHAN_GRADE_REFERENCE"

    def __init__(self, student_id, task_id):
        super().__init__(f"Grade for student {student_id!r} references unknown task {task_id!r}")
        self.student_id = student_id
        self.task_id = task_id


class InvalidScore(GradebookError):
    """A stored score that is not a finite number (inf, nan)."""
    code = "INVALID_SCORE"

    def __init__(self, student_id, task_id, score, period_id=None):
        where = f"task {task_id!r}" if period_id is None else f"period {period_id!r}"
        super().__init__(f"Score for student {student_id!r} on {where} is not a finite number: {score!r}")
        self.student_id = student_id
        self.task_id = task_id
        self.period_id = period_id
        self.score = score


class ResourceNotFound(GradebookError):
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Optional[object] = None):
        if resource_id is None:
            super().__init__(f"{resource} not found")
        else:
            super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id
