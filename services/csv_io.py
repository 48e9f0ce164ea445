"""
services/csv_io.py

Grade CSV export/import for a class.

Export columns: Student ID, Student, Task ID, Task, Score, Max Points
Import columns: Student ID, Task ID, Score   (header match is case-insensitive)

An empty Score cell means "not graded yet" in both directions; export writes
UNGRADED_DISPLAY there so a blank never reads as zero. Bad import rows are
reported per row and never abort the rest of the file.
"""

import csv
import io
import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError
from sqlalchemy.orm import Session

from config.settings import settings
from models.grades import Grade as GradeModel
from models.students import Student as StudentModel
from models.tasks import Task as TaskModel
from schemas.gradebook import GradeIn
from services.grading import UNGRADED_DISPLAY
from services.gradebook_service import get_class_or_404, upsert_grade

logger = logging.getLogger(__name__)

EXPORT_HEADER = ["Student ID", "Student", "Task ID", "Task", "Score", "Max Points"]
IMPORT_COLUMNS = {"student id": "student_id", "task id": "task_id", "score": "score"}


# ==========================================================
# [export]
# ==========================================================
def export_grades_csv(db: Session, class_id: int) -> str:
    get_class_or_404(db, class_id)
    students = (
        db.query(StudentModel)
        .filter(StudentModel.class_id == class_id)
        .order_by(StudentModel.last_name, StudentModel.first_name, StudentModel.id)
        .all()
    )
    tasks = db.query(TaskModel).filter(TaskModel.class_id == class_id).order_by(TaskModel.id).all()
    student_ids = [s.id for s in students]
    grades = (
        db.query(GradeModel).filter(GradeModel.student_id.in_(student_ids)).all() if student_ids else []
    )
    scores = {(g.student_id, g.task_id): g.score for g in grades}

    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(EXPORT_HEADER)
    for student in students:
        for task in tasks:
            score = scores.get((student.id, task.id))
            writer.writerow([
                student.id,
                student.full_name,
                task.id,
                task.title,
                UNGRADED_DISPLAY if score is None else _fmt_number(score),
                _fmt_number(task.max_points),
            ])
    return buf.getvalue()


def _fmt_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# ==========================================================
# [import]
# ==========================================================
def _cell(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return None if value in ("", UNGRADED_DISPLAY) else value


def parse_grades_csv(text: str) -> Tuple[List[Tuple[int, GradeIn]], List[dict]]:
    """
    Returns ([(line_no, GradeIn)], [row errors]). Raises ValueError only when the
    header itself is unusable.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise ValueError("CSV is empty")

    mapping = {}
    for name in reader.fieldnames:
        key = IMPORT_COLUMNS.get((name or "").strip().lower())
        if key:
            mapping[name] = key
    missing = set(IMPORT_COLUMNS.values()) - set(mapping.values())
    if missing:
        raise ValueError(f"CSV is missing column(s): {', '.join(sorted(missing))}")

    rows: List[Tuple[int, GradeIn]] = []
    errors: List[dict] = []
    for line_no, raw in enumerate(reader, start=2):
        if line_no - 1 > settings.MAX_IMPORT_ROWS:
            errors.append({"line": line_no, "error": f"row limit {settings.MAX_IMPORT_ROWS} exceeded"})
            break
        data = {field: _cell(raw.get(column)) for column, field in mapping.items()}
        try:
            rows.append((line_no, GradeIn(**data)))
        except ValidationError as e:
            errors.append({
                "line": line_no,
                "error": "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors()),
            })
    return rows, errors


def import_grades_csv(db: Session, class_id: int, text: str) -> dict:
    get_class_or_404(db, class_id)
    rows, errors = parse_grades_csv(text)

    student_ids = {
        sid for (sid,) in db.query(StudentModel.id).filter(StudentModel.class_id == class_id).all()
    }
    task_ids = {tid for (tid,) in db.query(TaskModel.id).filter(TaskModel.class_id == class_id).all()}

    accepted = {}
    for line_no, grade in rows:
        if grade.student_id not in student_ids:
            errors.append({"line": line_no, "error": f"unknown student {grade.student_id}"})
            continue
        if grade.task_id not in task_ids:
            errors.append({"line": line_no, "error": f"unknown task {grade.task_id}"})
            continue
        # a repeated (student, task) row overrides the earlier one
        accepted[(grade.student_id, grade.task_id)] = grade

    imported = len(accepted)
    created = sum(1 for grade in accepted.values() if upsert_grade(db, grade))

    db.commit()
    errors.sort(key=lambda e: e["line"])
    if errors:
        logger.warning("class %s: grade import skipped %d row(s)", class_id, len(errors))
    logger.info("class %s: imported %d grades (%d new)", class_id, imported, created)
    return {"imported": imported, "created": created, "skipped": len(errors), "errors": errors}
