from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentPrincipal
from routers.results import result_data
from schemas.common import Pagination, make_meta
from schemas.results import ResultIds, ReviewRequest
from services import review_service
from services.pdf_service import PDFService, get_pdf_service
from services.sms_service import SMSService, get_sms_service

router = APIRouter(prefix="/admin/results", tags=["results (admin review)"])


# ==========================================================
# [1] overview
# ==========================================================

# ✅ [READ] every result of the school, filterable and paged
@router.get("/")
def read_all_results(principal: CurrentPrincipal, term: Optional[str] = None, session: Optional[str] = None,
                     class_id: Optional[int] = None, status: Optional[str] = None,
                     paging: Pagination = Depends(), db: Session = Depends(get_db)):
    total, results = review_service.list_all(
        db, principal, term, session, class_id, status, page=paging.page, size=paging.size
    )
    return {
        "success": True,
        "data": [result_data(r) for r in results],
        "meta": make_meta(total, paging.page, paging.size).model_dump(),
    }


# ✅ [QUEUE] results waiting for review
@router.get("/submitted")
def read_submitted_results(principal: CurrentPrincipal, term: Optional[str] = None, session: Optional[str] = None,
                           class_id: Optional[int] = None, db: Session = Depends(get_db)):
    results = review_service.list_submitted(db, principal, term, session, class_id)
    return {"success": True, "data": [result_data(r) for r in results]}


# ==========================================================
# [2] delivery
# ==========================================================

# ✅ [SEND] several approved results; failures are reported per item
@router.post("/send-batch")
def send_results_batch(body: ResultIds, principal: CurrentPrincipal, db: Session = Depends(get_db),
                       renderer: PDFService = Depends(get_pdf_service),
                       sender: SMSService = Depends(get_sms_service)):
    report = review_service.send_batch(db, principal, body.result_ids, renderer, sender)
    return {
        "success": True,
        "data": report,
        "message": f"Sent {report['success_count']}/{len(report['items'])} results successfully.",
    }


# ==========================================================
# [3] single result
# ==========================================================

# ✅ [REVIEW] optional edits, then approve or reject
@router.post("/{result_id}/review")
def review_result(result_id: int, body: ReviewRequest, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    edits = body.model_dump(exclude_none=True, exclude={"action", "rejection_reason"})
    result, warnings = review_service.review_one(
        db, principal, result_id, body.action, edits, rejection_reason=body.rejection_reason
    )
    message = ("Result approved successfully." if body.action == "approve"
               else "Result rejected and sent back to teacher.")
    return {
        "success": True,
        "data": result_data(result),
        "warnings": [w.to_dict() for w in warnings],
        "message": message,
    }


# ✅ [SEND] one approved result to the parent
@router.post("/{result_id}/send")
def send_result(result_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db),
                renderer: PDFService = Depends(get_pdf_service),
                sender: SMSService = Depends(get_sms_service)):
    result = review_service.send_one(db, principal, result_id, renderer, sender)
    return {"success": True, "data": result_data(result), "message": "Result sent to parent successfully."}


# ✅ [PDF] download the sheet stored when the result was sent
@router.get("/{result_id}/pdf")
def download_result_pdf(result_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    content = review_service.get_pdf(db, principal, result_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=result_{result_id}.pdf"},
    )
