from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, FiniteFloat

from schemas.common import Session, Term

# ==========================================================
# [input schemas]
# ==========================================================
class SubjectEntry(BaseModel):
    name: str = ""                                         # subject name, blank rows are dropped
    scores: Dict[str, Optional[FiniteFloat]] = Field(default_factory=dict)   # column key → raw score


class Attendance(BaseModel):
    opened: int = 0                                        # days school opened
    present: int = 0
    absent: int = 0


class Comments(BaseModel):
    teacher: str = ""
    principal: str = ""


class ResultContent(BaseModel):
    """Editable parts of a result; every field is optional so it doubles as a patch."""
    subjects: Optional[List[SubjectEntry]] = None
    affective_traits: Optional[Dict[str, int]] = None      # trait key → rating 1~5
    fees: Optional[Dict[str, FiniteFloat]] = None                # fee key → amount
    attendance: Optional[Attendance] = None
    comments: Optional[Comments] = None


class ResultCreate(ResultContent):
    student_id: int
    term: Term
    session: Session
    subjects: List[SubjectEntry]


class ReviewRequest(ResultContent):
    action: str                                            # approve | reject
    rejection_reason: Optional[str] = None


class ResultIds(BaseModel):
    result_ids: List[int] = Field(..., min_length=1)


# ==========================================================
# [output schemas]
# ==========================================================
class Result(BaseModel):
    id: int
    student_id: int
    class_id: int
    school_id: int
    teacher_id: int
    template_id: Optional[int] = None
    term: str
    session: str
    score_columns: List[Dict[str, Any]]
    subjects: List[Dict[str, Any]]
    affective_traits: Dict[str, Any]
    fees: Dict[str, Any]
    attendance: Dict[str, Any]
    comments: Dict[str, Any]
    overall_total: Optional[float] = None
    overall_average: Optional[int] = None
    overall_grade: Optional[str] = None
    overall_position: Optional[int] = None
    status: str
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    sent_to_parent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
