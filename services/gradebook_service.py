"""
services/gradebook_service.py

Session-level helpers shared by the routers: ownership lookups, loading a
class's records into services.records shapes, grade upserts and the summary
computation.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from config.settings import settings
from models.attendance import Attendance as AttendanceModel
from models.categories import Category as CategoryModel
from models.class_settings import ClassSettings as ClassSettingsModel
from models.classes import SchoolClass
from models.grades import Grade as GradeModel
from models.period_grades import PeriodGradeOverride
from models.periods import Period as PeriodModel
from models.students import Student as StudentModel
from models.tasks import Task as TaskModel
from schemas.gradebook import GradeIn, PeriodGradeIn
from services.errors import ResourceNotFound
from services.grading import GradeScale, get_scale
from services.records import CategoryRecord, GradeRecord, PeriodRecord, StudentRecord, TaskRecord
from services.summary import StudentPeriodSummary, bucket_tasks_by_period, build_summary

logger = logging.getLogger(__name__)


# ==========================================================
# [lookups]
# ==========================================================
def get_class_or_404(db: Session, class_id: int) -> SchoolClass:
    obj = db.get(SchoolClass, class_id)
    if obj is None:
        raise ResourceNotFound("Class", class_id)
    return obj


def get_student_or_404(db: Session, class_id: int, student_id: int) -> StudentModel:
    obj = db.get(StudentModel, student_id)
    if obj is None or obj.class_id != class_id:
        raise ResourceNotFound("Student", student_id)
    return obj


def get_task_or_404(db: Session, class_id: int, task_id: int) -> TaskModel:
    obj = db.get(TaskModel, task_id)
    if obj is None or obj.class_id != class_id:
        raise ResourceNotFound("Task", task_id)
    return obj


def get_settings(db: Session, class_id: int) -> ClassSettingsModel:
    """Stored settings, or an unsaved default row when none were saved yet."""
    row = db.query(ClassSettingsModel).filter(ClassSettingsModel.class_id == class_id).first()
    if row is None:
        row = ClassSettingsModel(
            class_id=class_id,
            calculation_mode="weighted",
            grade_scale=settings.DEFAULT_GRADE_SCALE,
        )
    return row


def check_references(db: Session, class_id: int, period_id: Optional[int], category_id: Optional[int]) -> None:
    if period_id is not None:
        period = db.get(PeriodModel, period_id)
        if period is None or period.class_id != class_id:
            raise ResourceNotFound("Period", period_id)
    if category_id is not None:
        category = db.get(CategoryModel, category_id)
        if category is None or category.class_id != class_id:
            raise ResourceNotFound("Category", category_id)


# ==========================================================
# [loading]
# ==========================================================
@dataclass
class ClassRecords:
    roster: List[StudentRecord]
    periods: List[PeriodRecord]
    tasks: List[TaskRecord]
    categories: List[CategoryRecord]
    grades: List[GradeRecord]


def load_class_records(db: Session, class_id: int) -> ClassRecords:
    students = (
        db.query(StudentModel)
        .filter(StudentModel.class_id == class_id)
        .order_by(StudentModel.last_name, StudentModel.first_name, StudentModel.id)
        .all()
    )
    periods = (
        db.query(PeriodModel)
        .filter(PeriodModel.class_id == class_id)
        .order_by(PeriodModel.start_date, PeriodModel.id)
        .all()
    )
    tasks = db.query(TaskModel).filter(TaskModel.class_id == class_id).all()
    categories = db.query(CategoryModel).filter(CategoryModel.class_id == class_id).all()

    student_ids = [s.id for s in students]
    grades = (
        db.query(GradeModel).filter(GradeModel.student_id.in_(student_ids)).all()
        if student_ids else []
    )

    return ClassRecords(
        roster=[StudentRecord.from_orm(s) for s in students],
        periods=[PeriodRecord.from_orm(p) for p in periods],
        tasks=[TaskRecord.from_orm(t) for t in tasks],
        categories=[CategoryRecord.from_orm(c) for c in categories],
        grades=[GradeRecord.from_orm(g) for g in grades],
    )


def load_period_overrides(db: Session, student_ids: Iterable[int]) -> dict:
    student_ids = list(student_ids)
    if not student_ids:
        return {}
    rows = db.query(PeriodGradeOverride).filter(PeriodGradeOverride.student_id.in_(student_ids)).all()
    return {(r.student_id, r.period_id): r.percentage for r in rows}


# ==========================================================
# [summary]
# ==========================================================
def compute_class_summary(
    db: Session,
    class_id: int,
    diagnostics: Optional[list] = None,
    scale: Optional[GradeScale] = None,
) -> Tuple[List[StudentPeriodSummary], List[PeriodRecord]]:
    get_class_or_404(db, class_id)
    class_settings = get_settings(db, class_id)
    records = load_class_records(db, class_id)

    overrides = None
    if class_settings.calculation_mode == "summary":
        overrides = load_period_overrides(db, (s.id for s in records.roster))

    summaries = build_summary(
        roster=records.roster,
        periods=records.periods,
        tasks_by_period=bucket_tasks_by_period(records.tasks, records.periods),
        grades=records.grades,
        categories=records.categories,
        scale=scale or get_scale(class_settings.grade_scale),
        period_overrides=overrides,
        diagnostics=diagnostics,
    )
    return summaries, records.periods


# ==========================================================
# [writes]
# ==========================================================
def upsert_grade(db: Session, grade: GradeIn) -> bool:
    """Insert or update by (student, task). Returns True when a row was created."""
    row = (
        db.query(GradeModel)
        .filter(GradeModel.student_id == grade.student_id, GradeModel.task_id == grade.task_id)
        .first()
    )
    created = row is None
    if created:
        row = GradeModel(student_id=grade.student_id, task_id=grade.task_id)
        db.add(row)
    row.score = grade.score
    # keep existing feedback/date unless the payload carries them
    if "feedback" in grade.model_fields_set:
        row.feedback = grade.feedback
    if "submission_date" in grade.model_fields_set:
        row.submission_date = grade.submission_date
    return created


def save_grades(db: Session, class_id: int, grades: List[GradeIn]) -> dict:
    """All-or-nothing: every student and task must belong to the class."""
    student_ids = {
        sid for (sid,) in db.query(StudentModel.id).filter(StudentModel.class_id == class_id).all()
    }
    task_ids = {tid for (tid,) in db.query(TaskModel.id).filter(TaskModel.class_id == class_id).all()}
    for g in grades:
        if g.student_id not in student_ids:
            raise ResourceNotFound("Student", g.student_id)
        if g.task_id not in task_ids:
            raise ResourceNotFound("Task", g.task_id)

    # same (student, task) twice in one batch: the later entry wins
    latest = {(g.student_id, g.task_id): g for g in grades}
    created = sum(1 for g in latest.values() if upsert_grade(db, g))
    db.commit()
    logger.info("class %s: saved %d grades (%d new)", class_id, len(latest), created)
    return {"count": len(latest), "created": created, "updated": len(latest) - created}


def save_period_overrides(db: Session, class_id: int, entries: List[PeriodGradeIn]) -> int:
    for e in entries:
        get_student_or_404(db, class_id, e.student_id)
        check_references(db, class_id, e.period_id, None)
        row = (
            db.query(PeriodGradeOverride)
            .filter(PeriodGradeOverride.student_id == e.student_id, PeriodGradeOverride.period_id == e.period_id)
            .first()
        )
        if row is None:
            row = PeriodGradeOverride(student_id=e.student_id, period_id=e.period_id)
            db.add(row)
        row.percentage = e.percentage
    db.commit()
    return len(entries)


def _replace_set(db: Session, model, class_id: int, items, task_column) -> list:
    """
    Make the class's rows match `items`: entries with an id update that row,
    entries without one are inserted, rows missing from the payload are deleted
    and their tasks detached.
    """
    existing = {row.id: row for row in db.query(model).filter(model.class_id == class_id).all()}
    kept = []
    for item in items:
        if item.id is not None:
            row = existing.pop(item.id, None)
            if row is None:
                raise ResourceNotFound(model.__name__, item.id)
        else:
            row = model(class_id=class_id)
            db.add(row)
        for key, value in item.model_dump(exclude={"id"}).items():
            setattr(row, key, value)
        kept.append(row)

    removed = list(existing)
    if removed:
        db.query(TaskModel).filter(task_column.in_(removed)).update(
            {task_column: None}, synchronize_session=False
        )
        if model is PeriodModel:
            db.query(PeriodGradeOverride).filter(
                PeriodGradeOverride.period_id.in_(removed)
            ).delete(synchronize_session=False)
        for row in existing.values():
            db.delete(row)

    db.commit()
    for row in kept:
        db.refresh(row)
    return kept


def _warn_weight_total(class_id: int, kind: str, weights: List[Optional[float]]) -> None:
    declared = [w for w in weights if w is not None]
    if declared and abs(sum(declared) - 100) > 1e-6:
        logger.warning("class %s: %s weights sum to %s, not 100", class_id, kind, sum(declared))


def replace_categories(db: Session, class_id: int, items) -> List[CategoryModel]:
    _warn_weight_total(class_id, "category", [i.weight for i in items])
    return _replace_set(db, CategoryModel, class_id, items, TaskModel.category_id)


def replace_periods(db: Session, class_id: int, items) -> List[PeriodModel]:
    _warn_weight_total(class_id, "period", [i.weight for i in items])
    return _replace_set(db, PeriodModel, class_id, items, TaskModel.period_id)


def delete_class(db: Session, class_id: int) -> None:
    """Removes the class and every row hanging off it."""
    obj = get_class_or_404(db, class_id)
    student_ids = [sid for (sid,) in db.query(StudentModel.id).filter(StudentModel.class_id == class_id).all()]
    if student_ids:
        db.query(GradeModel).filter(GradeModel.student_id.in_(student_ids)).delete(synchronize_session=False)
        db.query(PeriodGradeOverride).filter(
            PeriodGradeOverride.student_id.in_(student_ids)
        ).delete(synchronize_session=False)
    for model in (AttendanceModel, TaskModel, CategoryModel, PeriodModel):
        db.query(model).filter(model.class_id == class_id).delete(synchronize_session=False)
    db.delete(obj)
    db.commit()
