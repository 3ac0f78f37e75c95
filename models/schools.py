from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship
from database.db import Base

class School(Base):
    __tablename__ = "schools"  # schools using the platform

    id = Column(Integer, primary_key=True, index=True)   # school ID (PK)
    name = Column(String(200), nullable=False)           # school name printed on result sheets
    address = Column(String(300))                        # postal address
    phone = Column(String(30))                           # contact line quoted in parent SMS
    motto = Column(String(200))                          # motto shown in the sheet header

    # ✅ School ↔ Class (1:N)
    classes = relationship("Class", back_populates="school")
