from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentPrincipal
from schemas.results import Result as ResultSchema, ResultContent, ResultCreate, ResultIds
from services import result_service

router = APIRouter(prefix="/results", tags=["results (teacher)"])


def result_data(result) -> dict:
    return ResultSchema.model_validate(result).model_dump(mode="json")


# ==========================================================
# [1] CRUD
# ==========================================================

# ✅ [CREATE] draft result for one student
@router.post("/", status_code=201)
def create_result(body: ResultCreate, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    result, warnings = result_service.create(db, principal, body.model_dump())
    return {
        "success": True,
        "data": result_data(result),
        "warnings": [w.to_dict() for w in warnings],
        "message": "Result saved as draft.",
    }


# ✅ [READ] the teacher's own results
@router.get("/")
def read_my_results(principal: CurrentPrincipal, term: Optional[str] = None, session: Optional[str] = None,
                    status: Optional[str] = None, db: Session = Depends(get_db)):
    results = result_service.list_my_results(db, principal, term, session, status)
    return {"success": True, "data": [result_data(r) for r in results]}


# ==========================================================
# [2] static routes
# ==========================================================

# ✅ [SUBMIT] several drafts at once
@router.post("/submit-many")
def submit_many_results(body: ResultIds, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    count = result_service.submit_many(db, principal, body.result_ids)
    return {
        "success": True,
        "data": {"count": count},
        "message": f"{count} result(s) submitted to admin for review.",
    }


# ==========================================================
# [3] dynamic routes
# ==========================================================

# ✅ [READ] single result
@router.get("/{result_id}")
def read_result(result_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    return {"success": True, "data": result_data(result_service.get_result(db, principal, result_id))}


# ✅ [UPDATE] edit a draft or rejected result
@router.put("/{result_id}")
def update_result(result_id: int, body: ResultContent, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    result, warnings = result_service.update(db, principal, result_id, body.model_dump(exclude_none=True))
    return {
        "success": True,
        "data": result_data(result),
        "warnings": [w.to_dict() for w in warnings],
        "message": "Result saved as draft.",
    }


# ✅ [SUBMIT] send to admin for review
@router.post("/{result_id}/submit")
def submit_result(result_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    result = result_service.submit(db, principal, result_id)
    return {"success": True, "data": result_data(result), "message": "Result submitted to admin for review."}


# ✅ [DELETE] drafts only
@router.delete("/{result_id}")
def delete_result(result_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    result_service.delete(db, principal, result_id)
    return {"success": True, "data": {"result_id": result_id}, "message": "Result deleted successfully."}
