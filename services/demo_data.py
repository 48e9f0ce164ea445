"""
services/demo_data.py

Seeded sample summary for demos and local development. Only used when
DEMO_DATA_FALLBACK is switched on, and every use is logged.
"""

import logging
import random
from typing import Optional, Sequence

from services.grading import SIMPLE_SCALE, GradeScale, aggregate, classify, round_percentage
from services.records import PeriodRecord, StudentRecord
from services.summary import StudentPeriodSummary

logger = logging.getLogger(__name__)

DEMO_STUDENTS = [
    StudentRecord(id=1, name="Alice Johnson"),
    StudentRecord(id=2, name="Bob Smith"),
    StudentRecord(id=3, name="Carla Reyes"),
    StudentRecord(id=4, name="Daniel Kim"),
]

DEMO_PERIODS = [
    PeriodRecord(id=1, name="Prelims", weight=25),
    PeriodRecord(id=2, name="Midterms", weight=25),
    PeriodRecord(id=3, name="Semi-Finals", weight=25),
    PeriodRecord(id=4, name="Finals", weight=25),
]


def generate_demo_summary(
    roster: Optional[Sequence[StudentRecord]] = None,
    periods: Optional[Sequence[PeriodRecord]] = None,
    seed: int = 0,
    scale: GradeScale = SIMPLE_SCALE,
) -> list:
    """Period grades in 70~99, deterministic for a given seed."""
    roster = roster or DEMO_STUDENTS
    periods = periods or DEMO_PERIODS
    rng = random.Random(seed)

    summaries = []
    for student in roster:
        raw = {p.id: float(rng.randint(70, 99)) for p in periods}
        final = aggregate((raw[p.id] / 100, p.weight if p.weight is not None else 1.0) for p in periods)
        final_rounded = round_percentage(final)
        summaries.append(
            StudentPeriodSummary(
                student_id=student.id,
                student_name=student.name,
                period_grades=dict(raw),
                period_letters={pid: classify(v, scale) for pid, v in raw.items()},
                final_average=final_rounded,
                final_letter=None if final_rounded is None else classify(final_rounded, scale),
                raw_period_grades=raw,
                raw_final_average=final,
            )
        )
    logger.warning("serving generated demo grade summary for %d students", len(summaries))
    return summaries
