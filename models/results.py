from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from database.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Result(Base):
    __tablename__ = "results"  # one student's result for one term

    id = Column(Integer, primary_key=True, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    class_id = Column(Integer, ForeignKey("classes.id"), nullable=False, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False, index=True)
    teacher_id = Column(Integer, nullable=False, index=True)          # authoring teacher (user ID)
    template_id = Column(Integer, ForeignKey("result_templates.id", ondelete="SET NULL"), nullable=True)
    term = Column(String(20), nullable=False)
    session = Column(String(9), nullable=False)

    # ==========================================================
    # [content]
    # ==========================================================
    score_columns = Column(JSON, nullable=False, default=list)   # template columns at creation time
    subjects = Column(JSON, nullable=False, default=list)        # [{name, scores, total, grade, remark}]
    affective_traits = Column(JSON, nullable=False, default=dict)
    fees = Column(JSON, nullable=False, default=dict)
    attendance = Column(JSON, nullable=False, default=dict)      # {opened, present, absent}
    comments = Column(JSON, nullable=False, default=dict)        # {teacher, principal}

    # ==========================================================
    # [derived]
    # ==========================================================
    overall_total = Column(Float)
    overall_average = Column(Integer)
    overall_grade = Column(String(2))
    overall_position = Column(Integer)

    # ==========================================================
    # [lifecycle / audit]
    # ==========================================================
    status = Column(String(20), nullable=False, default="draft", index=True)
    submitted_at = Column(DateTime(timezone=True))
    reviewed_at = Column(DateTime(timezone=True))
    reviewed_by = Column(Integer)
    rejection_reason = Column(String(500))
    sent_to_parent_at = Column(DateTime(timezone=True))
    pdf_base64 = Column(Text)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # ✅ Result ↔ Student / Class (N:1), used for the sheet and the parent SMS
    student = relationship("Student")
    class_ = relationship("Class")
