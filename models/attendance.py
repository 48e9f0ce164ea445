from sqlalchemy import Column, Integer, String, Date, ForeignKey, UniqueConstraint
from database.db import Base


class Attendance(Base):
    __tablename__ = "attendance"  # daily attendance records
    __table_args__ = (UniqueConstraint("student_id", "date", name="uq_attendance_student_date"),)

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False)             # present / absent / tardy / excused
    notes = Column(String(200))
