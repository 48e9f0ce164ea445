from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base


class Student(Base):
    __tablename__ = "students"  # class roster

    id = Column(Integer, primary_key=True, index=True)                  # student id (PK)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    student_number = Column(String(50), nullable=False)                # school-issued id, e.g. 2023-001
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default="active")      # active / inactive / transferred

    school_class = relationship("SchoolClass", back_populates="students")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
