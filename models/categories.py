from sqlalchemy import Column, Integer, String, Float, ForeignKey
from database.db import Base


class Category(Base):
    __tablename__ = "categories"  # weighted task groups within a class

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)              # e.g. Homework, Exams
    weight = Column(Float, nullable=False, default=0.0)     # 0~100, relative to sibling categories
