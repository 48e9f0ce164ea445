from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.classes import get_owned_class
from dependencies.security import CurrentUser, require_staff
from models.class_settings import ClassSettings as ClassSettingsModel
from models.classes import SchoolClass
from schemas.classes import ClassCreate, ClassSettingsIn, ClassUpdate
from schemas.common import ok
from services.gradebook_service import delete_class, get_settings

router = APIRouter(prefix="/classes", tags=["classes"])


def _class_to_dict(c: SchoolClass) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "section": c.section,
        "term": c.term,
        "capacity": c.capacity,
        "teacher_id": c.teacher_id,
        "schedule": {
            "days": [d for d in (c.schedule_days or "").split(",") if d],
            "start_time": c.start_time,
            "end_time": c.end_time,
            "start_date": str(c.start_date),
            "end_date": str(c.end_date),
        },
        "students": len(c.students),
    }


def _apply_schedule(c: SchoolClass, schedule) -> None:
    c.schedule_days = ",".join(schedule.days)
    c.start_time = schedule.start_time
    c.end_time = schedule.end_time
    c.start_date = schedule.start_date
    c.end_date = schedule.end_date


# ==========================================================
# [1] CRUD
# ==========================================================

# ✅ [READ] classes of the caller (admins see every class), optional term filter
@router.get("/")
def read_classes(
    term: Optional[str] = None,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    query = db.query(SchoolClass)
    if not user.is_admin:
        query = query.filter(SchoolClass.teacher_id == user.sub)
    if term and term != "All Terms":
        query = query.filter(SchoolClass.term == term)
    records = query.order_by(SchoolClass.id).all()
    return ok([_class_to_dict(c) for c in records])


# ✅ [CREATE] new class owned by the caller
@router.post("/", status_code=201)
def create_class(
    payload: ClassCreate,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
):
    db_class = SchoolClass(
        name=payload.name,
        section=payload.section,
        term=payload.term,
        capacity=payload.capacity,
        teacher_id=user.sub,
    )
    _apply_schedule(db_class, payload.schedule)
    db.add(db_class)
    db.commit()
    db.refresh(db_class)
    return ok(_class_to_dict(db_class), "Class created successfully")


# ✅ [READ] one class
@router.get("/{class_id}")
def read_class(school_class: SchoolClass = Depends(get_owned_class)):
    return ok(_class_to_dict(school_class))


# ✅ [UPDATE] partial update
@router.patch("/{class_id}")
def update_class(
    payload: ClassUpdate,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(exclude_unset=True, exclude={"schedule"})
    for key, value in changes.items():
        if value is not None:
            setattr(school_class, key, value)
    if payload.schedule is not None:
        _apply_schedule(school_class, payload.schedule)
    db.commit()
    db.refresh(school_class)
    return ok(_class_to_dict(school_class), "Class updated successfully")


# ✅ [DELETE] class and everything under it
@router.delete("/{class_id}")
def remove_class(school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    class_id = school_class.id
    delete_class(db, class_id)
    return ok({"class_id": class_id}, "Class deleted successfully")


# ==========================================================
# [2] Grade calculation settings
# ==========================================================

# ✅ [READ] calculation mode + grade scale (defaults when never saved)
@router.get("/{class_id}/settings")
def read_class_settings(school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    row = get_settings(db, school_class.id)
    return ok({"calculation_mode": row.calculation_mode, "grade_scale": row.grade_scale})


# ✅ [UPDATE] upsert settings
@router.patch("/{class_id}/settings")
def update_class_settings(
    payload: ClassSettingsIn,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    row = db.query(ClassSettingsModel).filter(ClassSettingsModel.class_id == school_class.id).first()
    if row is None:
        row = ClassSettingsModel(class_id=school_class.id)
        db.add(row)
    row.calculation_mode = payload.calculation_mode
    row.grade_scale = payload.grade_scale
    db.commit()
    return ok(
        {"calculation_mode": row.calculation_mode, "grade_scale": row.grade_scale},
        "Settings updated successfully",
    )
