from sqlalchemy import Column, Integer, Float, ForeignKey, UniqueConstraint
from database.db import Base


class PeriodGradeOverride(Base):
    """Period percentage entered directly by the teacher ("summary" calculation mode)."""
    __tablename__ = "period_grade_overrides"
    __table_args__ = (UniqueConstraint("student_id", "period_id", name="uq_override_student_period"),)

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    period_id = Column(Integer, ForeignKey("periods.id", ondelete="CASCADE"), nullable=False, index=True)
    percentage = Column(Float, nullable=True)               # NULL = ungraded
