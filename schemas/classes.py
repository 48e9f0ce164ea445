from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ✅ class schedule (validated as a whole)
class ClassSchedule(BaseModel):
    days: List[str] = Field(..., min_length=1, description="Select at least one day")
    start_time: str = Field(..., pattern=TIME_PATTERN, description='"HH:MM"')
    end_time: str = Field(..., pattern=TIME_PATTERN, description='"HH:MM"')
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_ranges(self):
        # zero-padded HH:MM compares correctly as text
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        if self.end_date < self.start_date:
            raise ValueError("End date must be after or equal to start date")
        return self


# ✅ input (POST)
class ClassCreate(BaseModel):
    name: str = Field(..., min_length=3, description="Class name must be at least 3 characters.")
    section: str = Field(..., min_length=1)
    term: str = Field(..., min_length=3)
    schedule: ClassSchedule
    capacity: int = Field(35, ge=1, le=100)


# ✅ partial update (PATCH)
class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3)
    section: Optional[str] = Field(None, min_length=1)
    term: Optional[str] = Field(None, min_length=3)
    schedule: Optional[ClassSchedule] = None
    capacity: Optional[int] = Field(None, ge=1, le=100)


class ClassSettingsIn(BaseModel):
    calculation_mode: Literal["weighted", "summary"] = "weighted"
    grade_scale: Literal["simple", "detailed"] = "simple"

    model_config = ConfigDict(extra="forbid")
