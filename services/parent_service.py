"""
services/parent_service.py

Read-only parent view: a parent sees their own children (students whose parent_id
is the caller) and only results that have already been sent home.
"""

import base64
import logging
from typing import List

from sqlalchemy.orm import Session

from models.results import Result as ResultModel
from models.students import Student as StudentModel
from schemas.common import Principal
from services.access import ensure_role
from services.exceptions import NotFoundError

logger = logging.getLogger(__name__)

VISIBLE_STATUSES = ("sent",)


def list_children(db: Session, principal: Principal) -> List[StudentModel]:
    ensure_role(principal, "parent")
    return (
        db.query(StudentModel)
        .filter(StudentModel.school_id == principal.school_id, StudentModel.parent_id == principal.user_id)
        .order_by(StudentModel.name)
        .all()
    )


def _visible_results(db: Session, principal: Principal):
    return (
        db.query(ResultModel)
        .join(StudentModel, StudentModel.id == ResultModel.student_id)
        .filter(
            ResultModel.school_id == principal.school_id,
            StudentModel.parent_id == principal.user_id,
            ResultModel.status.in_(VISIBLE_STATUSES),
        )
    )


def children_results(db: Session, principal: Principal) -> List[dict]:
    """[{student, results}] for every child, newest result first."""
    children = list_children(db, principal)
    results = (
        _visible_results(db, principal)
        .order_by(ResultModel.sent_to_parent_at.desc(), ResultModel.id.desc())
        .all()
    )
    by_student = {}
    for r in results:
        by_student.setdefault(r.student_id, []).append(r)
    return [{"student": child, "results": by_student.get(child.id, [])} for child in children]


def get_child_result(db: Session, principal: Principal, result_id: int) -> ResultModel:
    ensure_role(principal, "parent")
    result = _visible_results(db, principal).filter(ResultModel.id == result_id).first()
    if result is None:
        # drafts, other families and other schools all look the same from here
        raise NotFoundError("Result not found.")
    return result


def get_child_pdf(db: Session, principal: Principal, result_id: int) -> bytes:
    result = get_child_result(db, principal, result_id)
    if not result.pdf_base64:
        raise NotFoundError("No PDF has been generated for this result yet.")
    logger.info("parent %s downloaded result %s", principal.user_id, result_id)
    return base64.b64decode(result.pdf_base64)
