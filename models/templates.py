from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, UniqueConstraint
from database.db import Base


def _utcnow():
    return datetime.now(timezone.utc)


class ResultTemplate(Base):
    __tablename__ = "result_templates"  # per-term result sheet definitions

    # ✅ one active template per (school, term, session):
    #    active_slot is 1 while active and NULL once deactivated, and NULLs never collide
    __table_args__ = (
        UniqueConstraint("school_id", "term", "session", "active_slot", name="uq_active_template"),
    )

    id = Column(Integer, primary_key=True, index=True)
    school_id = Column(Integer, ForeignKey("schools.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)               # display name
    term = Column(String(20), nullable=False)                # First Term / Second Term / Third Term
    session = Column(String(9), nullable=False)              # e.g. 2024/2025
    components = Column(JSON, nullable=False, default=dict)  # section toggles, columns, traits, fee types

    is_active = Column(Boolean, nullable=False, default=True)
    active_slot = Column(Integer, nullable=True)              # set only through set_active()

    created_by = Column(Integer, nullable=False)             # admin user ID
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def set_active(self, active: bool):
        self.is_active = active
        self.active_slot = 1 if active else None
