from sqlalchemy import Column, Integer, String, Date
from sqlalchemy.orm import relationship
from database.db import Base


class SchoolClass(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)      # class id (PK)
    name = Column(String(100), nullable=False)              # e.g. Mathematics 101
    section = Column(String(50), nullable=False)            # e.g. Section A
    term = Column(String(100), nullable=False)              # e.g. First Semester 2023-2024
    teacher_id = Column(String(64), index=True)             # auth-provider subject of the owner
    capacity = Column(Integer, nullable=False, default=35)

    # ==========================================================
    # [schedule]
    # ==========================================================
    schedule_days = Column(String(50), nullable=False)      # "Mon,Wed,Fri"
    start_time = Column(String(5), nullable=False)          # "09:00"
    end_time = Column(String(5), nullable=False)            # "10:30"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # ✅ roster (1:N), removed together with the class
    students = relationship("Student", back_populates="school_class", cascade="all, delete-orphan")
    settings = relationship(
        "ClassSettings", back_populates="school_class", uselist=False, cascade="all, delete-orphan"
    )
