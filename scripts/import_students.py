import csv
import sys
from sqlalchemy.orm import Session
from database.db import Base, SessionLocal, engine
from models.classes import Class as ClassModel
from models.schools import School as SchoolModel
from models.students import Student as StudentModel

CSV_PATH = "data/students.csv"  # ✅ columns: school_name,class_name,class_teacher_id,name,reg_no,parent_name,parent_phone,parent_id


def _school(db: Session, cache: dict, name: str) -> SchoolModel:
    if name not in cache:
        school = db.query(SchoolModel).filter(SchoolModel.name == name).first()
        if school is None:
            school = SchoolModel(name=name)
            db.add(school)
            db.flush()
        cache[name] = school
    return cache[name]


def _optional_int(value):
    value = (value or "").strip()
    return int(value) if value else None


def _class(db: Session, cache: dict, school: SchoolModel, name: str, teacher_id=None) -> ClassModel:
    key = (school.id, name)
    if key not in cache:
        klass = (
            db.query(ClassModel)
            .filter(ClassModel.school_id == school.id, ClassModel.name == name)
            .first()
        )
        if klass is None:
            klass = ClassModel(school_id=school.id, name=name)
            db.add(klass)
            db.flush()
        cache[key] = klass
    if teacher_id is not None:
        cache[key].teacher_id = teacher_id  # latest row wins
    return cache[key]


def import_students(csv_path: str = CSV_PATH) -> int:
    Base.metadata.create_all(bind=engine)
    db: Session = SessionLocal()
    schools, classes, count = {}, {}, 0

    try:
        with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
            reader = csv.DictReader(csvfile)
            for row in reader:
                school = _school(db, schools, row["school_name"].strip())
                klass = _class(db, classes, school, row["class_name"].strip(), _optional_int(row.get("class_teacher_id")))
                db.add(StudentModel(
                    school_id=school.id,
                    class_id=klass.id,
                    name=row["name"].strip(),                       # full name
                    reg_no=(row.get("reg_no") or "").strip() or None,
                    parent_name=(row.get("parent_name") or "").strip() or None,
                    parent_phone=(row.get("parent_phone") or "").strip() or None,
                    parent_id=_optional_int(row.get("parent_id")),
                ))
                count += 1
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print(f"✅ students CSV → DB import done ({count} rows)")
    return count


if __name__ == "__main__":
    import_students(sys.argv[1] if len(sys.argv) > 1 else CSV_PATH)
