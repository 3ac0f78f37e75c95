from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentPrincipal
from models.classes import Class as ClassModel
from models.schools import School as SchoolModel
from models.students import Student as StudentModel
from services.access import ensure_role
from services.exceptions import NotFoundError

router = APIRouter(prefix="/schools", tags=["school reference data"])


# ✅ [READ] caller's school
@router.get("/me")
def read_my_school(principal: CurrentPrincipal, db: Session = Depends(get_db)):
    school = db.get(SchoolModel, principal.school_id)
    if school is None:
        raise NotFoundError("School not found.")
    return {
        "success": True,
        "data": {
            "id": school.id,
            "name": school.name,
            "address": school.address,
            "phone": school.phone,
            "motto": school.motto,
        },
    }


# ✅ [READ] classes of the caller's school
@router.get("/me/classes")
def read_my_classes(principal: CurrentPrincipal, db: Session = Depends(get_db)):
    ensure_role(principal, "admin", "teacher")
    records = (
        db.query(ClassModel)
        .filter(ClassModel.school_id == principal.school_id)
        .order_by(ClassModel.name)
        .all()
    )
    return {"success": True, "data": [{"id": c.id, "name": c.name, "teacher_id": c.teacher_id} for c in records]}


# ✅ [READ] students of the caller's school, optionally one class
@router.get("/me/students")
def read_my_students(principal: CurrentPrincipal, class_id: Optional[int] = None, db: Session = Depends(get_db)):
    ensure_role(principal, "admin", "teacher")
    query = db.query(StudentModel).filter(StudentModel.school_id == principal.school_id)
    if class_id:
        query = query.filter(StudentModel.class_id == class_id)
    return {
        "success": True,
        "data": [
            {
                "id": s.id,
                "name": s.name,
                "reg_no": s.reg_no,
                "class_id": s.class_id,
                "parent_name": s.parent_name,
                "parent_phone": s.parent_phone,
            }
            for s in query.order_by(StudentModel.name).all()
        ],
    }
