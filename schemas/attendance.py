from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

AttendanceStatus = Literal["present", "absent", "tardy", "excused"]


class AttendanceEntry(BaseModel):
    student_id: int
    status: AttendanceStatus
    notes: Optional[str] = Field(None, max_length=200)


# ✅ one class, one day
class AttendanceBatch(BaseModel):
    date: date
    records: List[AttendanceEntry] = Field(..., min_length=1)
