from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from database.db import Base

class Student(Base):
    __tablename__ = "students"  # student master data

    id = Column(Integer, primary_key=True, index=True)                           # student ID (PK)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False)         # current class
    name = Column(String(100), nullable=False)                                   # full name
    reg_no = Column(String(50))                                                  # registration number
    parent_name = Column(String(100))                                            # parent/guardian name
    parent_phone = Column(String(20))                                            # number results are texted to
    parent_id = Column(Integer, index=True)                                      # parent user ID (gateway identity)

    class_ = relationship("Class", back_populates="students")
