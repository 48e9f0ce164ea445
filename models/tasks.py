from sqlalchemy import Column, Integer, String, Float, Date, ForeignKey
from database.db import Base


class Task(Base):
    __tablename__ = "tasks"  # gradable items (assignments, quizzes, exams)

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    period_id = Column(Integer, ForeignKey("periods.id", ondelete="SET NULL"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(200), nullable=False)
    description = Column(String(1000))
    max_points = Column(Float, nullable=False)              # > 0
    weight = Column(Float, nullable=False, default=1.0)     # 0~100, relative to siblings
    due_date = Column(Date, nullable=True)
