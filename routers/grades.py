import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.classes import get_owned_class
from models.classes import SchoolClass
from models.grades import Grade as GradeModel
from models.period_grades import PeriodGradeOverride
from models.students import Student as StudentModel
from models.tasks import Task as TaskModel
from schemas.common import ok
from schemas.gradebook import GradesIn, PeriodGradesIn
from services.csv_io import export_grades_csv, import_grades_csv
from services.errors import ResourceNotFound
from services.gradebook_service import get_student_or_404, save_grades, save_period_overrides

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/classes/{class_id}", tags=["grades"])


def _grade_to_dict(g: GradeModel, period_id=None) -> dict:
    return {
        "id": g.id,
        "student_id": g.student_id,
        "task_id": g.task_id,
        "period_id": period_id,
        "score": g.score,                   # null = not graded yet
        "feedback": g.feedback,
        "submission_date": str(g.submission_date) if g.submission_date else None,
    }


# ==========================================================
# [1] Task grades
# ==========================================================

# ✅ [READ] grades of the class, filterable by period and student
@router.get("/grades")
def read_grades(
    period_id: Optional[int] = None,
    student_id: Optional[int] = None,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    query = (
        db.query(GradeModel, TaskModel.period_id)
        .join(TaskModel, TaskModel.id == GradeModel.task_id)
        .join(StudentModel, StudentModel.id == GradeModel.student_id)
        .filter(StudentModel.class_id == school_class.id, TaskModel.class_id == school_class.id)
    )
    if period_id is not None:
        query = query.filter(TaskModel.period_id == period_id)
    if student_id is not None:
        query = query.filter(GradeModel.student_id == student_id)
    records = query.order_by(GradeModel.student_id, GradeModel.task_id).all()
    return ok([_grade_to_dict(g, pid) for g, pid in records])


# ✅ [UPSERT] save many grades at once, keyed on (student, task)
@router.post("/grades")
def save_class_grades(
    payload: GradesIn,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    result = save_grades(db, school_class.id, payload.grades)
    return ok(result, "Grades saved successfully")


# ✅ [EXPORT] CSV download
@router.get("/grades/export")
def export_grades(school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    content = export_grades_csv(db, school_class.id)
    filename = f"gradebook-class-{school_class.id}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ✅ [IMPORT] CSV body (text/csv); bad rows are reported, not fatal
@router.post("/grades/import")
async def import_grades(
    request: Request,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    raw = await request.body()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV must be UTF-8 encoded")
    try:
        result = import_grades_csv(db, school_class.id, text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ok(result, f"Imported {result['imported']} grade(s)")


# ✅ [CLEAR] "delete" a grade by setting it back to ungraded
@router.delete("/grades/{student_id}/{task_id}")
def clear_grade(
    student_id: int,
    task_id: int,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    get_student_or_404(db, school_class.id, student_id)
    grade = (
        db.query(GradeModel)
        .filter(GradeModel.student_id == student_id, GradeModel.task_id == task_id)
        .first()
    )
    if grade is None:
        raise ResourceNotFound("Grade", f"{student_id}/{task_id}")
    grade.score = None
    db.commit()
    return ok(_grade_to_dict(grade), "Grade cleared")


# ==========================================================
# [2] Period grades entered directly ("summary" calculation mode)
# ==========================================================

# ✅ [READ]
@router.get("/period-grades")
def read_period_grades(school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    records = (
        db.query(PeriodGradeOverride)
        .join(StudentModel, StudentModel.id == PeriodGradeOverride.student_id)
        .filter(StudentModel.class_id == school_class.id)
        .order_by(PeriodGradeOverride.student_id, PeriodGradeOverride.period_id)
        .all()
    )
    return ok([
        {"student_id": r.student_id, "period_id": r.period_id, "percentage": r.percentage}
        for r in records
    ])


# ✅ [UPSERT]
@router.put("/period-grades")
def save_period_grades(
    payload: PeriodGradesIn,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    count = save_period_overrides(db, school_class.id, payload.grades)
    return ok({"count": count}, "Period grades saved successfully")
