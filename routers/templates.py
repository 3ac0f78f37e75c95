from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentPrincipal
from schemas.common import SESSION_PATTERN, Term
from schemas.templates import Template as TemplateSchema, TemplateCreate, TemplateDuplicate, TemplateUpdate
from services import template_service

router = APIRouter(prefix="/templates", tags=["result templates"])


def _template_data(template) -> dict:
    return TemplateSchema.model_validate(template).model_dump(mode="json")


# ==========================================================
# [1] CRUD
# ==========================================================

# ✅ [CREATE] new template for a term/session
@router.post("/", status_code=201)
def create_template(body: TemplateCreate, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    template = template_service.create(
        db, principal, body.term, body.session, body.components.model_dump(), name=body.name
    )
    return {"success": True, "data": _template_data(template), "message": "Template created successfully"}


# ✅ [READ] all templates of the school
@router.get("/")
def read_templates(principal: CurrentPrincipal, db: Session = Depends(get_db)):
    templates = template_service.list_templates(db, principal)
    return {"success": True, "data": [_template_data(t) for t in templates]}


# ==========================================================
# [2] static routes
# ==========================================================

# ✅ [ACTIVE] template teachers enter results against
@router.get("/active")
def read_active_template(principal: CurrentPrincipal, term: Term,
                         session: str = Query(..., pattern=SESSION_PATTERN),
                         db: Session = Depends(get_db)):
    template = template_service.get_active_template(db, principal, term, session)
    return {"success": True, "data": _template_data(template)}


# ==========================================================
# [3] dynamic routes
# ==========================================================

# ✅ [READ] single template
@router.get("/{template_id}")
def read_template(template_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    template = template_service.get_template(db, principal, template_id)
    return {"success": True, "data": _template_data(template)}


# ✅ [UPDATE] merge name/component changes
@router.put("/{template_id}")
def update_template(template_id: int, body: TemplateUpdate, principal: CurrentPrincipal,
                    db: Session = Depends(get_db)):
    template = template_service.update(db, principal, template_id, body.model_dump(exclude_none=True))
    return {"success": True, "data": _template_data(template), "message": "Template updated successfully"}


# ✅ [DUPLICATE] copy components into another term/session
@router.post("/{template_id}/duplicate", status_code=201)
def duplicate_template(template_id: int, body: TemplateDuplicate, principal: CurrentPrincipal,
                       db: Session = Depends(get_db)):
    template = template_service.duplicate(db, principal, template_id, body.term, body.session, body.name)
    return {"success": True, "data": _template_data(template), "message": "Template duplicated successfully"}


# ✅ [DELETE] first call deactivates, second call deletes
@router.delete("/{template_id}")
def delete_template(template_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    outcome = template_service.deactivate(db, principal, template_id)
    message = "Template deactivated" if outcome.get("deactivated") else "Template deleted permanently"
    return {"success": True, "data": {"template_id": template_id, **outcome}, "message": message}
