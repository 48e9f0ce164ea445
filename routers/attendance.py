from collections import Counter
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.classes import get_owned_class
from models.attendance import Attendance as AttendanceModel
from models.classes import SchoolClass
from models.students import Student as StudentModel
from schemas.attendance import AttendanceBatch
from schemas.common import ok
from services.errors import ResourceNotFound
from services.grading import round_percentage

router = APIRouter(prefix="/classes/{class_id}/attendance", tags=["attendance"])

ATTENDED = ("present", "tardy")


def _attendance_to_dict(r: AttendanceModel) -> dict:
    return {
        "id": r.id,
        "student_id": r.student_id,
        "date": str(r.date),
        "status": r.status,
        "notes": r.notes,
    }


# ==========================================================
# [1] Records
# ==========================================================

# ✅ [RECORD] one day for the class, upsert on (student, date)
@router.post("/")
def record_attendance(
    batch: AttendanceBatch,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    student_ids = {
        sid for (sid,) in db.query(StudentModel.id).filter(StudentModel.class_id == school_class.id).all()
    }
    for entry in batch.records:
        if entry.student_id not in student_ids:
            raise ResourceNotFound("Student", entry.student_id)

    existing = {
        r.student_id: r
        for r in db.query(AttendanceModel)
        .filter(AttendanceModel.class_id == school_class.id, AttendanceModel.date == batch.date)
        .all()
    }
    saved = {}
    for entry in batch.records:
        row = existing.get(entry.student_id) or saved.get(entry.student_id)
        if row is None:
            row = AttendanceModel(class_id=school_class.id, student_id=entry.student_id, date=batch.date)
            db.add(row)
        row.status = entry.status
        row.notes = entry.notes
        saved[entry.student_id] = row
    db.commit()

    return ok(
        {"date": str(batch.date), "count": len(saved)},
        "Attendance recorded successfully",
    )


# ✅ [READ] records of the class, optional date range
@router.get("/")
def read_attendance(
    start: Optional[date] = None,
    end: Optional[date] = None,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    query = db.query(AttendanceModel).filter(AttendanceModel.class_id == school_class.id)
    if start is not None:
        query = query.filter(AttendanceModel.date >= start)
    if end is not None:
        query = query.filter(AttendanceModel.date <= end)
    records = query.order_by(AttendanceModel.date, AttendanceModel.student_id).all()
    return ok([_attendance_to_dict(r) for r in records])


# ==========================================================
# [2] Summary
# ==========================================================

# ✅ [SUMMARY] per-student status counts and attendance rate
@router.get("/summary")
def attendance_summary(
    start: Optional[date] = None,
    end: Optional[date] = None,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    query = db.query(AttendanceModel).filter(AttendanceModel.class_id == school_class.id)
    if start is not None:
        query = query.filter(AttendanceModel.date >= start)
    if end is not None:
        query = query.filter(AttendanceModel.date <= end)

    by_student = {}
    for r in query.all():
        by_student.setdefault(r.student_id, Counter())[r.status] += 1

    students = (
        db.query(StudentModel)
        .filter(StudentModel.class_id == school_class.id)
        .order_by(StudentModel.last_name, StudentModel.first_name, StudentModel.id)
        .all()
    )

    data = []
    for s in students:
        counter = by_student.get(s.id, Counter())
        total = sum(counter.values())
        attended = sum(counter.get(status, 0) for status in ATTENDED)
        data.append({
            "student_id": s.id,
            "student_name": s.full_name,
            "present": counter.get("present", 0),
            "absent": counter.get("absent", 0),
            "tardy": counter.get("tardy", 0),
            "excused": counter.get("excused", 0),
            "total": total,
            # no records yet -> null, not 0%
            "attendance_rate": round_percentage(attended / total * 100) if total else None,
        })
    return ok(data)
