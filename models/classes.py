from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base

class Class(Base):
    __tablename__ = "classes"

    id = Column(Integer, primary_key=True, index=True)      # class ID (PK)
    name = Column(String(100), nullable=False)              # class name (e.g. JSS 1A, Primary 4)
    teacher_id = Column(Integer, index=True)                # class teacher (user ID), the only teacher who enters its results

    # ==========================================================
    # [relationships]
    # ==========================================================

    # ✅ owning school (FK)
    #    - every read is scoped by this column
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False, index=True)

    # ✅ School ↔ Class (N:1)
    school = relationship("School", back_populates="classes")

    # ✅ Class ↔ Student (1:N)
    students = relationship("Student", back_populates="class_")
