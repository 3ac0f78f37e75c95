"""
services/result_service.py

Teacher-side result records and the status machine shared with the admin review flow.

    draft ──submit──▶ submitted ──approve──▶ approved ──send──▶ sent
      ▲                   │
      └──edit── rejected ◀┘ reject          (rejected ──submit──▶ submitted)

Derived fields (subject totals/grades, overall total/average/grade) are recomputed
from the record's score column snapshot on every content change.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from models.results import Result as ResultModel
from models.students import Student as StudentModel
from schemas.common import Principal
from services import template_service
from services.access import ensure_role
from services.exceptions import AccessDeniedError, InvalidTransitionError, NotFoundError, ValidationError
from services.score_service import ScoreWarning, clamp, compute_overall, compute_subject

logger = logging.getLogger(__name__)

STATUSES = ("draft", "submitted", "approved", "rejected", "sent")

# (current status, event) → next status
TRANSITIONS = {
    ("draft", "edit"): "draft",
    ("rejected", "edit"): "draft",
    ("draft", "submit"): "submitted",
    ("rejected", "submit"): "submitted",
    ("submitted", "approve"): "approved",
    ("submitted", "reject"): "rejected",
    ("approved", "send"): "sent",
}

DEFAULT_TRAIT_RATING = 3
# partial updates of these keep the keys they do not mention
MERGED_FIELDS = ("affective_traits", "fees", "attendance", "comments")


def now():
    return datetime.now(timezone.utc)


def next_status(current: str, event: str) -> str:
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidTransitionError(current, event)
    return target


# ==========================================================
# [content preparation]
# ==========================================================

def _ensure_finite(value, label: str):
    if value is not None and not math.isfinite(value):
        raise ValidationError(f"{label} must be a finite number.")


def _keyed_values(section: str, values: dict, allowed, low, high, kind: str, warnings: List[ScoreWarning]) -> dict:
    """Keep values whose key the template defines, clamped into [low, high]; report everything else."""
    kept = {}
    for key, value in values.items():
        if allowed is not None and key not in allowed:
            warnings.append(ScoreWarning(section, key, value, None, f"unknown {kind} ignored"))
            continue
        applied = clamp(value, low, high if high is not None else value)
        if applied != value:
            warnings.append(ScoreWarning(section, key, value, applied, "clamped to allowed range"))
        kept[key] = applied
    return kept


def prepare_content(content: dict, columns: List[dict], trait_keys: Optional[Iterable[str]] = None,
                    fee_keys: Optional[Iterable[str]] = None) -> Tuple[dict, List[ScoreWarning]]:
    """
    Turn a (partial) content payload into column values for a Result row.
    Nothing is written here, so a failed validation never leaves a half-applied record.
    trait_keys / fee_keys are the keys the record's template defines; other keys are dropped with a warning.
    """
    fields = {}
    warnings: List[ScoreWarning] = []
    trait_keys = set(trait_keys) if trait_keys is not None else None
    fee_keys = set(fee_keys) if fee_keys is not None else None

    if content.get("subjects") is not None:
        subjects = []
        for entry in content["subjects"]:
            if not (entry.get("name") or "").strip():
                continue
            for key, value in (entry.get("scores") or {}).items():
                _ensure_finite(value, f"Score '{key}' for {entry['name']}")
            subject, subject_warnings = compute_subject(entry, columns)
            subjects.append(subject)
            warnings.extend(subject_warnings)
        fields["subjects"] = subjects

    if content.get("affective_traits") is not None:
        traits = {k: int(v) for k, v in content["affective_traits"].items()}
        fields["affective_traits"] = _keyed_values("affective_traits", traits, trait_keys, 1, 5, "trait", warnings)

    if content.get("fees") is not None:
        for key, value in content["fees"].items():
            _ensure_finite(value, f"Fee '{key}'")
        fields["fees"] = _keyed_values("fees", content["fees"], fee_keys, 0, None, "fee type", warnings)

    if content.get("attendance") is not None:
        fields["attendance"] = {k: max(0, int(v)) for k, v in content["attendance"].items()}

    if content.get("comments") is not None:
        fields["comments"] = {k: (v or "").strip() for k, v in content["comments"].items()}

    return fields, warnings


def ensure_subjects(subjects: Iterable[dict]):
    if not any((s.get("name") or "").strip() for s in subjects or []):
        raise ValidationError("At least one subject with a name is required.")


def keys_of(result: ResultModel) -> dict:
    """Trait and fee keys a record accepts: the ones it was created with."""
    return {"trait_keys": result.affective_traits or {}, "fee_keys": result.fees or {}}


def apply_fields(result: ResultModel, fields: dict):
    for key, value in fields.items():
        if key in MERGED_FIELDS:
            value = {**(getattr(result, key) or {}), **value}
        setattr(result, key, value)
    for key, value in compute_overall(result.subjects, result.score_columns).items():
        setattr(result, key, value)


# ==========================================================
# [lookups]
# ==========================================================

def get_in_school(db: Session, principal: Principal, result_id: int) -> ResultModel:
    result = (
        db.query(ResultModel)
        .filter(ResultModel.id == result_id, ResultModel.school_id == principal.school_id)
        .first()
    )
    if result is None:
        raise NotFoundError("Result not found.")
    return result


def _get_authored(db: Session, principal: Principal, result_id: int) -> ResultModel:
    ensure_role(principal, "teacher")
    result = get_in_school(db, principal, result_id)
    if result.teacher_id != principal.user_id:
        raise AccessDeniedError("Access denied. Only the authoring teacher can change this result.")
    return result


def get_result(db: Session, principal: Principal, result_id: int) -> ResultModel:
    ensure_role(principal, "teacher", "admin")
    if principal.role == "teacher":
        return _get_authored(db, principal, result_id)
    return get_in_school(db, principal, result_id)


def list_my_results(db: Session, principal: Principal, term: Optional[str] = None,
                    session: Optional[str] = None, status: Optional[str] = None) -> List[ResultModel]:
    ensure_role(principal, "teacher")
    query = db.query(ResultModel).filter(
        ResultModel.school_id == principal.school_id,
        ResultModel.teacher_id == principal.user_id,
    )
    if term:
        query = query.filter(ResultModel.term == term)
    if session:
        query = query.filter(ResultModel.session == session)
    if status:
        query = query.filter(ResultModel.status == status)
    return query.order_by(ResultModel.created_at.desc(), ResultModel.id.desc()).all()


# ==========================================================
# [teacher operations]
# ==========================================================

def create(db: Session, principal: Principal, data: dict) -> Tuple[ResultModel, List[ScoreWarning]]:
    ensure_role(principal, "teacher")

    student = (
        db.query(StudentModel)
        .filter(StudentModel.id == data["student_id"], StudentModel.school_id == principal.school_id)
        .first()
    )
    if student is None:
        raise NotFoundError("Student not found.")
    if student.class_ is None or student.class_.teacher_id != principal.user_id:
        raise AccessDeniedError("Access denied. Not class teacher for this student.")

    term, session = data["term"], data["session"]
    existing = (
        db.query(ResultModel.id)
        .filter(
            ResultModel.student_id == student.id,
            ResultModel.term == term,
            ResultModel.session == session,
        )
        .first()
    )
    if existing is not None:
        raise ValidationError("A result already exists for this student, term and session.")

    template = template_service.get_active_template(db, principal, term, session)
    components = template.components or {}
    columns = template_service.active_columns(components)

    traits = {
        t["key"]: DEFAULT_TRAIT_RATING
        for t in components.get("affectiveTraits", {}).get("traits", []) if t.get("enabled", True)
    }
    fees = {t["key"]: 0 for t in components.get("fees", {}).get("types", []) if t.get("enabled", True)}

    fields, warnings = prepare_content(data, columns, trait_keys=traits, fee_keys=fees)
    ensure_subjects(fields.get("subjects"))

    result = ResultModel(
        student_id=student.id,
        class_id=student.class_id,
        school_id=principal.school_id,
        teacher_id=principal.user_id,
        template_id=template.id,
        term=term,
        session=session,
        score_columns=columns,
        affective_traits=traits,
        fees=fees,
        attendance={"opened": 0, "present": 0, "absent": 0},
        comments={"teacher": "", "principal": ""},
        status="draft",
    )
    apply_fields(result, fields)
    db.add(result)
    db.commit()
    db.refresh(result)
    logger.info("result %s created by teacher %s for student %s", result.id, principal.user_id, student.id)
    return result, warnings


def update(db: Session, principal: Principal, result_id: int, content: dict) -> Tuple[ResultModel, List[ScoreWarning]]:
    result = _get_authored(db, principal, result_id)
    target = next_status(result.status, "edit")

    fields, warnings = prepare_content(content, result.score_columns, **keys_of(result))
    ensure_subjects(fields.get("subjects", result.subjects))

    apply_fields(result, fields)
    result.status = target
    db.commit()
    db.refresh(result)
    logger.info("result %s edited by teacher %s", result.id, principal.user_id)
    return result, warnings


def submit(db: Session, principal: Principal, result_id: int) -> ResultModel:
    result = _get_authored(db, principal, result_id)
    target = next_status(result.status, "submit")
    ensure_subjects(result.subjects)

    result.status = target
    result.submitted_at = now()
    db.commit()
    db.refresh(result)
    logger.info("result %s submitted for review", result.id)
    return result


def submit_many(db: Session, principal: Principal, result_ids: List[int]) -> int:
    """Submit every listed draft/rejected result the caller authored; returns how many moved."""
    ensure_role(principal, "teacher")
    candidates = (
        db.query(ResultModel)
        .filter(
            ResultModel.id.in_(result_ids),
            ResultModel.school_id == principal.school_id,
            ResultModel.teacher_id == principal.user_id,
            ResultModel.status.in_(("draft", "rejected")),
        )
        .all()
    )
    submitted_at = now()
    count = 0
    for result in candidates:
        if not any((s.get("name") or "").strip() for s in result.subjects or []):
            continue
        result.status = next_status(result.status, "submit")
        result.submitted_at = submitted_at
        count += 1
    db.commit()
    logger.info("%s of %s result(s) submitted by teacher %s", count, len(result_ids), principal.user_id)
    return count


def delete(db: Session, principal: Principal, result_id: int):
    result = _get_authored(db, principal, result_id)
    if result.status != "draft":
        raise InvalidTransitionError(result.status, "delete")
    db.delete(result)
    db.commit()
    logger.info("draft result %s deleted", result_id)
