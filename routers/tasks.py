from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.classes import get_owned_class
from models.classes import SchoolClass
from models.grades import Grade as GradeModel
from models.tasks import Task as TaskModel
from schemas.common import ok
from schemas.gradebook import TaskCreate, TaskUpdate
from services.gradebook_service import check_references, get_task_or_404

router = APIRouter(prefix="/classes/{class_id}/tasks", tags=["tasks"])


def _task_to_dict(t: TaskModel) -> dict:
    return {
        "id": t.id,
        "class_id": t.class_id,
        "title": t.title,
        "description": t.description,
        "period_id": t.period_id,
        "category_id": t.category_id,
        "max_points": t.max_points,
        "weight": t.weight,
        "due_date": str(t.due_date) if t.due_date else None,
    }


# ==========================================================
# [1] Collection
# ==========================================================

# ✅ [READ] tasks of a class, optionally one period only
@router.get("/")
def read_tasks(
    period_id: Optional[int] = None,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    query = db.query(TaskModel).filter(TaskModel.class_id == school_class.id)
    if period_id is not None:
        query = query.filter(TaskModel.period_id == period_id)
    records = query.order_by(TaskModel.due_date, TaskModel.id).all()
    return ok([_task_to_dict(t) for t in records])


# ✅ [CREATE] new task
@router.post("/", status_code=201)
def create_task(
    task: TaskCreate,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    check_references(db, school_class.id, task.period_id, task.category_id)
    db_task = TaskModel(class_id=school_class.id, **task.model_dump())
    db.add(db_task)
    db.commit()
    db.refresh(db_task)
    return ok(_task_to_dict(db_task), "Task created successfully")


# ==========================================================
# [2] Single task
# ==========================================================

# ✅ [READ] one task
@router.get("/{task_id}")
def read_task(task_id: int, school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    return ok(_task_to_dict(get_task_or_404(db, school_class.id, task_id)))


# ✅ [UPDATE] partial update; explicit nulls clear period/category/due date
@router.patch("/{task_id}")
def update_task(
    task_id: int,
    updated: TaskUpdate,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    task = get_task_or_404(db, school_class.id, task_id)
    changes = updated.model_dump(exclude_unset=True)
    nullable = {"period_id", "category_id", "due_date", "description"}
    check_references(db, school_class.id, changes.get("period_id"), changes.get("category_id"))
    for key, value in changes.items():
        if value is None and key not in nullable:
            continue
        setattr(task, key, value)
    db.commit()
    db.refresh(task)
    return ok(_task_to_dict(task), "Task updated successfully")


# ✅ [DELETE] task and its grades
@router.delete("/{task_id}")
def delete_task(task_id: int, school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    task = get_task_or_404(db, school_class.id, task_id)
    db.query(GradeModel).filter(GradeModel.task_id == task_id).delete(synchronize_session=False)
    db.delete(task)
    db.commit()
    return ok({"task_id": task_id}, "Task deleted successfully")
