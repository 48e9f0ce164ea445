"""
services/summary.py

Builds the student x period grade table behind the gradebook summary and the
analytics dashboard. Pure read-time computation over already loaded records.

Malformed input degrades instead of aborting the batch:
- a grade for an unknown task is skipped (OrphanGradeReference)
- a task with max_points <= 0 is skipped for that student and reported in
  unresolved_tasks (InvalidTaskDefinition)
- an inf/nan score or entered period percentage counts as ungraded
  (InvalidScore)
All of these are logged to the `gradebook.diagnostics` logger and, when a list is passed
as `diagnostics`, collected as GradeIssue entries for the admin view.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from services.errors import GradebookError, InvalidScore, InvalidTaskDefinition, OrphanGradeReference
from services.grading import (
    DETAILED_SCALE,
    SIMPLE_SCALE,
    GradeScale,
    aggregate,
    classify_optional,
    normalize,
    percentage_to_fraction,
    round_percentage,
)
from services.records import CategoryRecord, GradeRecord, PeriodRecord, StudentRecord, TaskRecord

logger = logging.getLogger(__name__)
diagnostics_logger = logging.getLogger("gradebook.diagnostics")


@dataclass(frozen=True)
class GradeIssue:
    kind: str  # "orphan_grade" | "invalid_task" | "invalid_score"
    student_id: Any
    task_id: Any
    message: str


@dataclass
class StudentPeriodSummary:
    student_id: Any
    student_name: str
    period_grades: Dict[Any, Optional[float]]
    period_letters: Dict[Any, Optional[str]]
    final_average: Optional[float]
    final_letter: Optional[str]
    unresolved_tasks: List[Any] = field(default_factory=list)
    # unrounded values, used for class-level statistics
    raw_period_grades: Dict[Any, Optional[float]] = field(default_factory=dict, repr=False)
    raw_final_average: Optional[float] = field(default=None, repr=False)

    def to_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "period_grades": dict(self.period_grades),
            "period_letters": dict(self.period_letters),
            "final_average": self.final_average,
            "final_letter": self.final_letter,
            "unresolved_tasks": list(self.unresolved_tasks),
        }


def _report(diagnostics: Optional[list], kind: str, student_id, task_id, exc: GradebookError) -> None:
    diagnostics_logger.warning("%s: %s", kind, exc.message)
    if diagnostics is not None:
        diagnostics.append(GradeIssue(kind=kind, student_id=student_id, task_id=task_id, message=exc.message))


# ==========================================================
# [1] Task bucketing
# ==========================================================
def bucket_tasks_by_period(
    tasks: Iterable[TaskRecord], periods: Sequence[PeriodRecord]
) -> Dict[Any, List[TaskRecord]]:
    """
    Group tasks by period. An explicit period_id wins; otherwise the task lands in
    the first period whose date range contains its due date. Tasks matching no
    period are left out (logged).
    """
    buckets: Dict[Any, List[TaskRecord]] = {p.id: [] for p in periods}
    for task in tasks:
        if task.period_id is not None:
            if task.period_id in buckets:
                buckets[task.period_id].append(task)
            else:
                logger.warning("task %s references unknown period %s", task.id, task.period_id)
            continue

        period = next((p for p in periods if p.contains(task.due_date)), None)
        if period is None:
            logger.debug("task %s (due %s) matches no grading period", task.id, task.due_date)
            continue
        buckets[period.id].append(task)
    return buckets


# ==========================================================
# [2] Per-period percentage
# ==========================================================
def _resolve_task(task_index: Mapping[Any, TaskRecord], grade: GradeRecord) -> TaskRecord:
    try:
        return task_index[grade.task_id]
    except KeyError:
        raise OrphanGradeReference(grade.student_id, grade.task_id) from None


def _period_percentage(
    student_id,
    tasks: Sequence[TaskRecord],
    scores: Mapping[Tuple[Any, Any], Optional[float]],
    categories: Optional[Mapping[Any, CategoryRecord]],
    unresolved: List[Any],
    diagnostics: Optional[list],
) -> Optional[float]:
    graded: List[Tuple[TaskRecord, Optional[float]]] = []
    for task in tasks:
        try:
            fraction = normalize(scores.get((student_id, task.id)), task.max_points, task.id)
        except InvalidTaskDefinition as exc:
            unresolved.append(task.id)
            _report(diagnostics, "invalid_task", student_id, task.id, exc)
            continue
        graded.append((task, fraction))

    # two levels (tasks -> category -> period) only when every task has a known category
    if categories and graded and all(task.category_id in categories for task, _ in graded):
        by_category: Dict[Any, List[Tuple[Optional[float], float]]] = defaultdict(list)
        for task, fraction in graded:
            by_category[task.category_id].append((fraction, task.weight))
        return aggregate(
            (percentage_to_fraction(aggregate(items)), categories[category_id].weight)
            for category_id, items in by_category.items()
        )

    return aggregate((fraction, task.weight) for task, fraction in graded)


def _override_percentage(overrides, student_id, period_id, diagnostics: Optional[list]) -> Optional[float]:
    value = overrides.get((student_id, period_id))
    if value is not None and not math.isfinite(value):
        exc = InvalidScore(student_id, None, value, period_id=period_id)
        _report(diagnostics, "invalid_score", student_id, None, exc)
        return None
    return value


def _period_weights(periods: Sequence[PeriodRecord]) -> Dict[Any, float]:
    # no declared weights at all -> plain mean over graded periods
    if all(p.weight is None for p in periods):
        return {p.id: 1.0 for p in periods}
    undeclared = [p.name or p.id for p in periods if p.weight is None]
    if undeclared:
        logger.warning("periods without a weight count 0 toward the final average: %s", undeclared)
    return {p.id: (p.weight or 0.0) for p in periods}


# ==========================================================
# [3] Summary builder
# ==========================================================
def build_summary(
    roster: Sequence[StudentRecord],
    periods: Sequence[PeriodRecord],
    tasks_by_period: Mapping[Any, Sequence[TaskRecord]],
    grades: Iterable[GradeRecord],
    categories: Optional[Iterable[CategoryRecord]] = None,
    scale: GradeScale = SIMPLE_SCALE,
    period_overrides: Optional[Mapping[Tuple[Any, Any], Optional[float]]] = None,
    diagnostics: Optional[list] = None,
    digits: Optional[int] = None,
) -> List[StudentPeriodSummary]:
    """
    One StudentPeriodSummary per roster entry, in roster order.

    period_overrides switches to "summary" calculation mode: period percentages
    are taken from it as entered (missing key = ungraded) instead of being
    recomputed from tasks. The final average is always the period-weighted
    aggregate of the graded periods.
    """
    task_index = {task.id: task for tasks in tasks_by_period.values() for task in tasks}

    scores: Dict[Tuple[Any, Any], Optional[float]] = {}
    for grade in grades:
        try:
            task = _resolve_task(task_index, grade)
        except OrphanGradeReference as exc:
            _report(diagnostics, "orphan_grade", grade.student_id, grade.task_id, exc)
            continue
        if grade.score is not None and not math.isfinite(grade.score):
            exc = InvalidScore(grade.student_id, task.id, grade.score)
            _report(diagnostics, "invalid_score", grade.student_id, task.id, exc)
            continue
        scores[(grade.student_id, task.id)] = grade.score

    category_index = {c.id: c for c in categories} if categories is not None else None
    weights = _period_weights(periods)

    summaries: List[StudentPeriodSummary] = []
    for student in roster:
        unresolved: List[Any] = []
        raw: Dict[Any, Optional[float]] = {}
        for period in periods:
            if period_overrides is not None:
                raw[period.id] = _override_percentage(period_overrides, student.id, period.id, diagnostics)
            else:
                raw[period.id] = _period_percentage(
                    student.id,
                    tasks_by_period.get(period.id, ()),
                    scores,
                    category_index,
                    unresolved,
                    diagnostics,
                )

        raw_final = aggregate(
            (percentage_to_fraction(raw[p.id]), weights[p.id]) for p in periods
        )

        rounded = {pid: round_percentage(value, digits) for pid, value in raw.items()}
        final = round_percentage(raw_final, digits)
        summaries.append(
            StudentPeriodSummary(
                student_id=student.id,
                student_name=student.name,
                period_grades=rounded,
                period_letters={pid: classify_optional(v, scale) for pid, v in rounded.items()},
                final_average=final,
                final_letter=classify_optional(final, scale),
                unresolved_tasks=unresolved,
                raw_period_grades=raw,
                raw_final_average=raw_final,
            )
        )

    logger.debug("built summary: %d students x %d periods", len(roster), len(periods))
    return summaries


# ==========================================================
# [4] Class analytics
# ==========================================================
DISTRIBUTION_BANDS: List[Tuple[float, str]] = [
    (90, "90-100"),
    (80, "80-89"),
    (70, "70-79"),
    (60, "60-69"),
]
DISTRIBUTION_FLOOR = "0-59"


def _mean(values: Iterable[Optional[float]]) -> Optional[float]:
    # every graded student counts once
    return aggregate((percentage_to_fraction(v), 1.0) for v in values)


def _distribution_band(value: float) -> str:
    for lower, label in DISTRIBUTION_BANDS:
        if value >= lower:
            return label
    return DISTRIBUTION_FLOOR


def build_class_analytics(
    summaries: Sequence[StudentPeriodSummary],
    periods: Sequence[PeriodRecord],
    scale: GradeScale = DETAILED_SCALE,
    threshold: float = 65.0,
    digits: Optional[int] = None,
) -> dict:
    """
    Class dashboard over a built summary: per-period and final class averages,
    per-student performance, score distribution, ranking and low performers.
    Ungraded students are counted separately, never averaged in as zero.
    """
    period_averages = []
    for period in periods:
        avg = round_percentage(_mean(s.raw_period_grades.get(period.id) for s in summaries), digits)
        period_averages.append({
            "period_id": period.id,
            "period_name": period.name,
            "average": avg,
            "letter_grade": classify_optional(avg, scale),
        })

    final_avg = round_percentage(_mean(s.raw_final_average for s in summaries), digits)

    student_performance = []
    for s in summaries:
        final = round_percentage(s.raw_final_average, digits)
        student_performance.append({
            "student_id": s.student_id,
            "student_name": s.student_name,
            "period_averages": [
                {"period_id": p.id, "average": round_percentage(s.raw_period_grades.get(p.id), digits)}
                for p in periods
            ],
            "final_average": final,
            "letter_grade": classify_optional(final, scale),
        })

    graded = [p for p in student_performance if p["final_average"] is not None]
    ungraded_count = len(student_performance) - len(graded)

    distribution = {DISTRIBUTION_FLOOR: 0}
    distribution.update({label: 0 for _, label in reversed(DISTRIBUTION_BANDS)})
    for p in graded:
        distribution[_distribution_band(p["final_average"])] += 1

    ranked = sorted(graded, key=lambda p: (-p["final_average"], p["student_name"]))
    rankings = [
        {"rank": idx, "student_id": p["student_id"], "student_name": p["student_name"],
         "final_average": p["final_average"]}
        for idx, p in enumerate(ranked, start=1)
    ]

    low_performers = [
        {"student_id": p["student_id"], "student_name": p["student_name"],
         "final_average": p["final_average"], "letter_grade": p["letter_grade"]}
        for p in ranked if p["final_average"] < threshold
    ]

    return {
        "period_averages": period_averages,
        "final_average": {"score": final_avg, "letter_grade": classify_optional(final_avg, scale)},
        "student_performance": student_performance,
        "overview": {
            "student_count": len(student_performance),
            "graded_count": len(graded),
            "ungraded_count": ungraded_count,
            "highest": ranked[0]["final_average"] if ranked else None,
            "lowest": ranked[-1]["final_average"] if ranked else None,
            "need_guidance": len(low_performers),
        },
        "distribution": distribution,
        "rankings": rankings,
        "low_performers": {"threshold": threshold, "count": len(low_performers), "students": low_performers},
        "grade_scale": scale.name,
    }
