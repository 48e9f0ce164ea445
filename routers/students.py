from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.classes import get_owned_class
from models.attendance import Attendance as AttendanceModel
from models.classes import SchoolClass
from models.grades import Grade as GradeModel
from models.period_grades import PeriodGradeOverride
from models.students import Student as StudentModel
from schemas.common import ok
from schemas.students import StudentCreate, StudentUpdate
from services.gradebook_service import get_student_or_404

router = APIRouter(prefix="/classes/{class_id}/students", tags=["students"])


def _student_to_dict(s: StudentModel) -> dict:
    return {
        "id": s.id,
        "class_id": s.class_id,
        "student_number": s.student_number,
        "first_name": s.first_name,
        "last_name": s.last_name,
        "full_name": s.full_name,
        "email": s.email,
        "status": s.status,
    }


# ==========================================================
# [1] Roster
# ==========================================================

# ✅ [READ] class roster
@router.get("/")
def read_students(
    status: str = None,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    query = db.query(StudentModel).filter(StudentModel.class_id == school_class.id)
    if status:
        query = query.filter(StudentModel.status == status)
    records = query.order_by(StudentModel.last_name, StudentModel.first_name, StudentModel.id).all()
    return ok([_student_to_dict(s) for s in records])


# ✅ [CREATE] add a student to the class
@router.post("/", status_code=201)
def create_student(
    student: StudentCreate,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    db_student = StudentModel(class_id=school_class.id, **student.model_dump())
    db.add(db_student)
    db.commit()
    db.refresh(db_student)
    return ok(_student_to_dict(db_student), "Student added successfully")


# ==========================================================
# [2] Single student
# ==========================================================

# ✅ [UPDATE] partial update
@router.patch("/{student_id}")
def update_student(
    student_id: int,
    updated: StudentUpdate,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    student = get_student_or_404(db, school_class.id, student_id)
    for key, value in updated.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(student, key, value)
    db.commit()
    db.refresh(student)
    return ok(_student_to_dict(student), "Student updated successfully")


# ✅ [DELETE] remove a student together with their grades and attendance
@router.delete("/{student_id}")
def delete_student(
    student_id: int,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    student = get_student_or_404(db, school_class.id, student_id)
    for model in (GradeModel, PeriodGradeOverride, AttendanceModel):
        db.query(model).filter(model.student_id == student_id).delete(synchronize_session=False)
    db.delete(student)
    db.commit()
    return ok({"student_id": student_id}, "Student deleted successfully")
