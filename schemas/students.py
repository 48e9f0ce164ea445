from pydantic import BaseModel, Field
from typing import Literal, Optional

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
StudentStatus = Literal["active", "inactive", "transferred"]


# ✅ input (POST)
class StudentCreate(BaseModel):
    student_number: str = Field(..., min_length=1)      # school-issued id
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    status: StudentStatus = "active"


# ✅ partial update (PATCH)
class StudentUpdate(BaseModel):
    student_number: Optional[str] = Field(None, min_length=1)
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    status: Optional[StudentStatus] = None
