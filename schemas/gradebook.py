"""
schemas/gradebook.py

Request bodies for categories, periods, tasks and grades.
Numeric bounds mirror the grading rules: max_points > 0, weights in [0, 100],
scores >= 0 (extra credit above max_points is allowed), score None = ungraded.
"""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


# =========================================================
# Categories
# =========================================================
class CategoryIn(BaseModel):
    id: Optional[int] = None                        # set = keep this category, update it in place
    name: str = Field(..., min_length=1)
    weight: float = Field(..., ge=0, le=100, allow_inf_nan=False)


class CategoriesIn(BaseModel):
    categories: List[CategoryIn]


# =========================================================
# Periods
# =========================================================
class PeriodIn(BaseModel):
    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    start_date: date
    end_date: date
    weight: Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)

    @model_validator(mode="after")
    def _check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be after or equal to start date")
        return self


class PeriodsIn(BaseModel):
    periods: List[PeriodIn]


# =========================================================
# Tasks
# =========================================================
class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    period_id: Optional[int] = None
    category_id: Optional[int] = None
    max_points: float = Field(..., gt=0, allow_inf_nan=False)
    weight: float = Field(1.0, ge=0, le=100, allow_inf_nan=False)
    due_date: Optional[date] = None
    description: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    period_id: Optional[int] = None
    category_id: Optional[int] = None
    max_points: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    weight: Optional[float] = Field(None, ge=0, le=100, allow_inf_nan=False)
    due_date: Optional[date] = None
    description: Optional[str] = None


# =========================================================
# Grades
# =========================================================
class GradeIn(BaseModel):
    student_id: int
    task_id: int
    score: Optional[float] = Field(None, ge=0, allow_inf_nan=False)   # None = not graded yet
    feedback: Optional[str] = None
    submission_date: Optional[date] = None


class GradesIn(BaseModel):
    grades: List[GradeIn] = Field(..., min_length=1)


class PeriodGradeIn(BaseModel):
    student_id: int
    period_id: int
    percentage: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class PeriodGradesIn(BaseModel):
    grades: List[PeriodGradeIn] = Field(..., min_length=1)
