"""
services/review_service.py

Admin side of the result lifecycle: review queue, approve/reject with edits,
class positions, and delivery of approved results to parents (PDF sheet + SMS).

Batch delivery is sequential and per-item: one failing record is reported and
skipped, the others are still sent.
"""

import base64
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from models.results import Result as ResultModel
from models.schools import School as SchoolModel
from models.templates import ResultTemplate as ResultTemplateModel
from schemas.common import Principal
from services import result_service, template_service
from services.access import ensure_role
from services.exceptions import DependentServiceError, NotFoundError, ResultServiceError, ValidationError
from services.score_service import ScoreWarning, rank_positions
from services.sms_service import SendOutcome, build_result_message

logger = logging.getLogger(__name__)

REVIEW_ACTIONS = ("approve", "reject")
RANKED_STATUSES = ("approved", "sent")
DEFAULT_REJECTION_REASON = "Rejected by admin"


# ==========================================================
# [queries]
# ==========================================================

def _filtered(db: Session, principal: Principal, term=None, session=None, class_id=None, status=None):
    query = db.query(ResultModel).filter(ResultModel.school_id == principal.school_id)
    if term:
        query = query.filter(ResultModel.term == term)
    if session:
        query = query.filter(ResultModel.session == session)
    if class_id:
        query = query.filter(ResultModel.class_id == class_id)
    if status:
        query = query.filter(ResultModel.status == status)
    return query


def list_submitted(db: Session, principal: Principal, term: Optional[str] = None,
                   session: Optional[str] = None, class_id: Optional[int] = None) -> List[ResultModel]:
    ensure_role(principal, "admin")
    return (
        _filtered(db, principal, term, session, class_id, status="submitted")
        .order_by(ResultModel.submitted_at.desc(), ResultModel.id.desc())
        .all()
    )


def list_all(db: Session, principal: Principal, term: Optional[str] = None, session: Optional[str] = None,
             class_id: Optional[int] = None, status: Optional[str] = None,
             page: int = 1, size: int = 50) -> Tuple[int, List[ResultModel]]:
    ensure_role(principal, "admin")
    query = _filtered(db, principal, term, session, class_id, status)
    total = query.count()
    items = (
        query.order_by(ResultModel.created_at.desc(), ResultModel.id.desc())
        .offset((page - 1) * size)
        .limit(size)
        .all()
    )
    return total, items


# ==========================================================
# [positions]
# ==========================================================

def recalculate_positions(db: Session, school_id: int, class_id: int, term: str, session: str) -> int:
    """Rank approved/sent results of one class and term by overall total."""
    ranked = (
        db.query(ResultModel)
        .filter(
            ResultModel.school_id == school_id,
            ResultModel.class_id == class_id,
            ResultModel.term == term,
            ResultModel.session == session,
            ResultModel.status.in_(RANKED_STATUSES),
        )
        .all()
    )
    positions = rank_positions({r.id: r.overall_total for r in ranked})
    for r in ranked:
        r.overall_position = positions[r.id]
    db.commit()
    logger.info("positions recalculated for class %s (%s %s): %s result(s)", class_id, term, session, len(ranked))
    return len(ranked)


# ==========================================================
# [review]
# ==========================================================

def review_one(db: Session, principal: Principal, result_id: int, action: str,
               edits: Optional[dict] = None, rejection_reason: Optional[str] = None
               ) -> Tuple[ResultModel, List[ScoreWarning]]:
    ensure_role(principal, "admin")
    if action not in REVIEW_ACTIONS:
        raise ValidationError('Invalid action. Use "approve" or "reject".')

    result = result_service.get_in_school(db, principal, result_id)
    target = result_service.next_status(result.status, action)

    fields, warnings = result_service.prepare_content(
        edits or {}, result.score_columns, **result_service.keys_of(result)
    )
    result_service.ensure_subjects(fields.get("subjects", result.subjects))

    result_service.apply_fields(result, fields)
    result.status = target
    result.reviewed_at = result_service.now()
    result.reviewed_by = principal.user_id
    result.rejection_reason = (rejection_reason or DEFAULT_REJECTION_REASON) if action == "reject" else None
    db.commit()
    logger.info("result %s %s by admin %s", result.id, target, principal.user_id)

    if action == "approve":
        recalculate_positions(db, result.school_id, result.class_id, result.term, result.session)
    db.refresh(result)
    return result, warnings


# ==========================================================
# [delivery]
# ==========================================================

def _school(db: Session, principal: Principal) -> SchoolModel:
    school = db.get(SchoolModel, principal.school_id)
    if school is None:
        raise NotFoundError("School not found.")
    return school


def _components_for(db: Session, result: ResultModel) -> dict:
    template = db.get(ResultTemplateModel, result.template_id) if result.template_id else None
    if template is not None:
        return template.components
    return template_service.normalize_components(None)


def _undo_send(db: Session, result: ResultModel):
    result.status = "approved"
    result.pdf_base64 = None
    result.sent_to_parent_at = None
    db.commit()


def _deliver(db: Session, result: ResultModel, school: SchoolModel, renderer, sender) -> ResultModel:
    target = result_service.next_status(result.status, "send")

    student = result.student
    if not student.parent_phone:
        raise ValidationError("Parent phone number not available for this student.")
    class_name = result.class_.name if result.class_ is not None else ""

    rendered = renderer.render(result, school, student, class_name, _components_for(db, result))
    if not rendered.success:
        raise DependentServiceError(f"PDF generation failed: {rendered.error or 'unknown error'}")

    message = build_result_message(result, student, class_name, school)

    # sent state is committed before the parent is texted; a failed SMS reverts it to approved
    result.pdf_base64 = rendered.base64
    result.status = target
    result.sent_to_parent_at = result_service.now()
    db.commit()

    try:
        outcome = sender.send(student.parent_phone, message)
    except Exception as e:
        logger.exception("SMS sender crashed for result %s", result.id)
        outcome = SendOutcome(to=student.parent_phone, success=False, error=str(e) or type(e).__name__)
    if not outcome.success:
        _undo_send(db, result)
        raise DependentServiceError(f"SMS delivery failed: {outcome.error or 'unknown error'}")

    db.refresh(result)
    logger.info("result %s sent to parent (%s bytes PDF)", result.id, rendered.size)
    return result


def send_one(db: Session, principal: Principal, result_id: int, renderer, sender) -> ResultModel:
    ensure_role(principal, "admin")
    school = _school(db, principal)
    result = result_service.get_in_school(db, principal, result_id)
    return _deliver(db, result, school, renderer, sender)


def send_batch(db: Session, principal: Principal, result_ids: List[int], renderer, sender) -> dict:
    ensure_role(principal, "admin")
    school = _school(db, principal)

    items = []
    for result_id in dict.fromkeys(result_ids):
        try:
            result = result_service.get_in_school(db, principal, result_id)
            _deliver(db, result, school, renderer, sender)
        except ResultServiceError as e:
            db.rollback()
            logger.warning("result %s not sent: %s", result_id, e.message)
            items.append({"result_id": result_id, "status": "failed", "reason": e.message})
        except Exception as e:
            db.rollback()
            logger.exception("result %s not sent: unexpected error", result_id)
            items.append({"result_id": result_id, "status": "failed", "reason": str(e) or type(e).__name__})
        else:
            items.append({"result_id": result_id, "status": "sent", "reason": None})

    success_count = sum(1 for item in items if item["status"] == "sent")
    logger.info("batch send finished: %s sent, %s failed", success_count, len(items) - success_count)
    return {
        "items": items,
        "success_count": success_count,
        "failure_count": len(items) - success_count,
    }


def get_pdf(db: Session, principal: Principal, result_id: int) -> bytes:
    ensure_role(principal, "admin")
    result = result_service.get_in_school(db, principal, result_id)
    if not result.pdf_base64:
        raise NotFoundError("No PDF has been generated for this result yet.")
    return base64.b64decode(result.pdf_base64)
