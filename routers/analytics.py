from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.settings import settings
from database.db import get_db
from dependencies.classes import get_owned_class
from models.classes import SchoolClass
from schemas.common import ok
from services.grading import get_scale
from services.gradebook_service import compute_class_summary
from services.summary import build_class_analytics

router = APIRouter(prefix="/classes/{class_id}", tags=["analytics"])


# ✅ [DASHBOARD] class averages, distribution, rankings and low performers
@router.get("/analytics")
def get_class_analytics(school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    scale = get_scale(settings.ANALYTICS_GRADE_SCALE)
    summaries, periods = compute_class_summary(db, school_class.id, scale=scale)
    data = build_class_analytics(
        summaries,
        periods,
        scale=scale,
        threshold=settings.LOW_PERFORMER_THRESHOLD,
    )
    data["class"] = {"id": school_class.id, "name": school_class.name, "section": school_class.section}
    return ok(data)
