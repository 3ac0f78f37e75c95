"""
services/template_service.py

Result template definitions: which sheet sections are active for a term/session
and which score columns, affective traits and fee lines they carry.

Rules
- at most one active template per (school, term, session)
- deleting is two-step: the first call deactivates, the second removes the row
- only admins mutate templates; everything is scoped to the caller's school
"""

import logging
import secrets
from copy import deepcopy
from typing import List, Optional

from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.templates import ResultTemplate as ResultTemplateModel
from schemas.common import Principal
from schemas.templates import TemplateComponents
from services.access import ensure_role
from services.exceptions import DuplicateTemplateError, NotFoundError, ValidationError
from services.score_service import is_scored

logger = logging.getLogger(__name__)

SECTION_NAMES = tuple(TemplateComponents.model_fields)

DEFAULT_SCORE_COLUMNS = [
    {"key": "ca1", "name": "CA1", "maxScore": 20, "enabled": True, "editable": True, "calculated": False},
    {"key": "ca2", "name": "CA2", "maxScore": 20, "enabled": True, "editable": True, "calculated": False},
    {"key": "exam", "name": "Exam", "maxScore": 60, "enabled": True, "editable": True, "calculated": False},
    {"key": "total", "name": "Total", "maxScore": 100, "enabled": True, "editable": False, "calculated": True},
    {"key": "grade", "name": "Grade", "maxScore": 0, "enabled": True, "editable": False, "calculated": True},
]

DEFAULT_AFFECTIVE_TRAITS = [
    {"key": key, "name": key.capitalize(), "enabled": True}
    for key in ("punctuality", "behaviour", "neatness", "relationship", "attentiveness", "initiative")
]

DEFAULT_FEE_TYPES = [
    {"key": key, "name": key.capitalize(), "enabled": True}
    for key in ("tuition", "uniform", "books", "lesson", "other")
]


# ==========================================================
# [component normalisation]
# ==========================================================

def _with_keys(items: List[dict], label: str) -> List[dict]:
    seen = set()
    keyed = []
    for item in items:
        item = dict(item)
        key = item.get("key")
        if not key:
            key = secrets.token_hex(4)
            while key in seen:
                key = secrets.token_hex(4)
        elif key in seen:
            raise ValidationError(f"Duplicate {label} key '{key}'.")
        seen.add(key)
        item["key"] = key
        keyed.append(item)
    return keyed


def normalize_components(components: Optional[dict]) -> dict:
    """Validate the component tree, fill defaults and give every list entry a stable key."""
    try:
        data = TemplateComponents.model_validate(components or {}).model_dump()
    except SchemaError as exc:
        raise ValidationError(f"Invalid template components: {exc.errors(include_url=False)}")

    table = data["scoresTable"]
    columns = table["columns"] if table["columns"] is not None else deepcopy(DEFAULT_SCORE_COLUMNS)
    for column in columns:
        if column.get("calculated"):
            column["editable"] = False
    table["columns"] = _with_keys(columns, "column")
    if table["enabled"] and not any(is_scored(c) for c in table["columns"] if c["enabled"]):
        raise ValidationError("The scores table needs at least one editable column.")

    traits = data["affectiveTraits"]
    traits["traits"] = _with_keys(
        traits["traits"] if traits["traits"] is not None else deepcopy(DEFAULT_AFFECTIVE_TRAITS), "trait"
    )

    fees = data["fees"]
    fees["types"] = _with_keys(
        fees["types"] if fees["types"] is not None else deepcopy(DEFAULT_FEE_TYPES), "fee type"
    )
    return data


def active_columns(components: dict) -> List[dict]:
    return [c for c in components.get("scoresTable", {}).get("columns", []) if c.get("enabled", True)]


# ==========================================================
# [lookups]
# ==========================================================

def _get_owned(db: Session, principal: Principal, template_id: int) -> ResultTemplateModel:
    template = (
        db.query(ResultTemplateModel)
        .filter(ResultTemplateModel.id == template_id, ResultTemplateModel.school_id == principal.school_id)
        .first()
    )
    if template is None:
        raise NotFoundError("Result template not found.")
    return template


def _find_active(db: Session, school_id: int, term: str, session: str) -> Optional[ResultTemplateModel]:
    return (
        db.query(ResultTemplateModel)
        .filter(
            ResultTemplateModel.school_id == school_id,
            ResultTemplateModel.term == term,
            ResultTemplateModel.session == session,
            ResultTemplateModel.is_active.is_(True),
        )
        .first()
    )


def _ensure_slot_free(db: Session, school_id: int, term: str, session: str):
    if _find_active(db, school_id, term, session) is not None:
        raise DuplicateTemplateError(f"An active template already exists for {term} {session}.")


def _insert(db: Session, template: ResultTemplateModel) -> ResultTemplateModel:
    db.add(template)
    try:
        db.commit()
    except IntegrityError:
        # another request took the active slot between our check and the insert
        db.rollback()
        raise DuplicateTemplateError(
            f"An active template already exists for {template.term} {template.session}."
        )
    db.refresh(template)
    return template


def list_templates(db: Session, principal: Principal) -> List[ResultTemplateModel]:
    ensure_role(principal, "admin")
    return (
        db.query(ResultTemplateModel)
        .filter(ResultTemplateModel.school_id == principal.school_id)
        .order_by(ResultTemplateModel.created_at.desc(), ResultTemplateModel.id.desc())
        .all()
    )


def get_template(db: Session, principal: Principal, template_id: int) -> ResultTemplateModel:
    ensure_role(principal, "admin", "teacher")
    return _get_owned(db, principal, template_id)


def get_active_template(db: Session, principal: Principal, term: str, session: str) -> ResultTemplateModel:
    ensure_role(principal, "admin", "teacher")
    template = _find_active(db, principal.school_id, term, session)
    if template is None:
        raise NotFoundError("No result template found for this term/session. Please contact admin.")
    return template


# ==========================================================
# [mutations]
# ==========================================================

def create(db: Session, principal: Principal, term: str, session: str,
           components: Optional[dict] = None, name: Optional[str] = None) -> ResultTemplateModel:
    ensure_role(principal, "admin")
    normalized = normalize_components(components)
    _ensure_slot_free(db, principal.school_id, term, session)

    template = ResultTemplateModel(
        school_id=principal.school_id,
        name=name or f"{term} {session} Result Template",
        term=term,
        session=session,
        components=normalized,
        created_by=principal.user_id,
    )
    template.set_active(True)
    template = _insert(db, template)
    logger.info("template %s created for school %s (%s %s)", template.id, principal.school_id, term, session)
    return template


def update(db: Session, principal: Principal, template_id: int, patch: dict) -> ResultTemplateModel:
    ensure_role(principal, "admin")
    template = _get_owned(db, principal, template_id)

    merged = deepcopy(template.components or {})
    for section, fields in (patch.get("components") or {}).items():
        if section not in SECTION_NAMES:
            raise ValidationError(f"Unknown template component '{section}'.")
        merged.setdefault(section, {}).update(fields)

    template.components = normalize_components(merged)
    if patch.get("name"):
        template.name = patch["name"]

    db.commit()
    db.refresh(template)
    logger.info("template %s updated", template.id)
    return template


def duplicate(db: Session, principal: Principal, template_id: int, new_term: str,
              new_session: str, new_name: Optional[str] = None) -> ResultTemplateModel:
    ensure_role(principal, "admin")
    source = _get_owned(db, principal, template_id)
    _ensure_slot_free(db, principal.school_id, new_term, new_session)

    copy = ResultTemplateModel(
        school_id=principal.school_id,
        name=new_name or f"{source.name} (Copy)",
        term=new_term,
        session=new_session,
        components=deepcopy(source.components),
        created_by=principal.user_id,
    )
    copy.set_active(True)
    copy = _insert(db, copy)
    logger.info("template %s duplicated into %s (%s %s)", source.id, copy.id, new_term, new_session)
    return copy


def deactivate(db: Session, principal: Principal, template_id: int) -> dict:
    ensure_role(principal, "admin")
    template = _get_owned(db, principal, template_id)

    if template.is_active:
        template.set_active(False)
        db.commit()
        logger.info("template %s deactivated", template_id)
        return {"deactivated": True}

    db.delete(template)
    db.commit()
    logger.info("template %s deleted", template_id)
    return {"deleted": True}
