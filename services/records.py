"""
services/records.py

Plain in-memory shapes the grading services work on. The routers load ORM rows
and convert them with the from_orm() helpers, so the summary code never touches
a Session.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class StudentRecord:
    id: Any
    name: str = ""

    @classmethod
    def from_orm(cls, row) -> "StudentRecord":
        return cls(id=row.id, name=row.full_name)


@dataclass(frozen=True)
class PeriodRecord:
    id: Any
    name: str = ""
    weight: Optional[float] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @classmethod
    def from_orm(cls, row) -> "PeriodRecord":
        return cls(
            id=row.id,
            name=row.name,
            weight=row.weight,
            start_date=_as_date(row.start_date),
            end_date=_as_date(row.end_date),
        )

    def contains(self, day) -> bool:
        day = _as_date(day)
        if day is None or self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class CategoryRecord:
    id: Any
    name: str = ""
    weight: float = 0.0

    @classmethod
    def from_orm(cls, row) -> "CategoryRecord":
        return cls(id=row.id, name=row.name, weight=row.weight)


@dataclass(frozen=True)
class TaskRecord:
    id: Any
    max_points: float
    weight: float = 1.0
    period_id: Any = None
    category_id: Any = None
    title: str = ""
    due_date: Optional[date] = None

    @classmethod
    def from_orm(cls, row) -> "TaskRecord":
        return cls(
            id=row.id,
            max_points=row.max_points,
            weight=row.weight,
            period_id=row.period_id,
            category_id=row.category_id,
            title=row.title,
            due_date=_as_date(row.due_date),
        )


@dataclass(frozen=True)
class GradeRecord:
    student_id: Any
    task_id: Any
    score: Optional[float] = None

    @classmethod
    def from_orm(cls, row) -> "GradeRecord":
        return cls(student_id=row.student_id, task_id=row.task_id, score=row.score)
