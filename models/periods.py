from sqlalchemy import Column, Integer, String, Float, Date, ForeignKey
from database.db import Base


class Period(Base):
    __tablename__ = "periods"  # grading terms (Prelims, Midterms, ...)

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)               # only used to bucket undated tasks
    end_date = Column(Date, nullable=False)
    weight = Column(Float, nullable=True)                   # 0~100 toward the final grade, NULL = undeclared
