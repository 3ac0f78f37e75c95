from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentPrincipal
from routers.results import result_data
from services import parent_service

router = APIRouter(prefix="/parent", tags=["parent portal"])


# ✅ [READ] the caller's children with their delivered results
@router.get("/children")
def read_children_results(principal: CurrentPrincipal, db: Session = Depends(get_db)):
    entries = parent_service.children_results(db, principal)
    return {
        "success": True,
        "data": [
            {
                "id": e["student"].id,
                "name": e["student"].name,
                "reg_no": e["student"].reg_no,
                "class_id": e["student"].class_id,
                "class_name": e["student"].class_.name if e["student"].class_ is not None else None,
                "results": [result_data(r) for r in e["results"]],
            }
            for e in entries
        ],
    }


# ✅ [READ] one delivered result
@router.get("/results/{result_id}")
def read_child_result(result_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    return {"success": True, "data": result_data(parent_service.get_child_result(db, principal, result_id))}


# ✅ [PDF] the sheet that was sent home
@router.get("/results/{result_id}/pdf")
def download_child_result_pdf(result_id: int, principal: CurrentPrincipal, db: Session = Depends(get_db)):
    content = parent_service.get_child_pdf(db, principal, result_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=result_{result_id}.pdf"},
    )
