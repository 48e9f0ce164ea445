from sqlalchemy import Column, Integer, Float, String, Date, ForeignKey, UniqueConstraint
from database.db import Base


class Grade(Base):
    __tablename__ = "grades"  # one score per (student, task)
    __table_args__ = (UniqueConstraint("student_id", "task_id", name="uq_grade_student_task"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, nullable=False, index=True)   # no FK: imported rows may name tasks that no longer exist
    score = Column(Float, nullable=True)                    # NULL = not graded yet (never 0)
    feedback = Column(String(1000))
    submission_date = Column(Date, nullable=True)
