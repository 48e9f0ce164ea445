from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base


class ClassSettings(Base):
    __tablename__ = "class_settings"

    id = Column(Integer, primary_key=True, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, unique=True)
    calculation_mode = Column(String(20), nullable=False, default="weighted")   # weighted / summary
    grade_scale = Column(String(20), nullable=False, default="simple")          # simple / detailed

    school_class = relationship("SchoolClass", back_populates="settings")
