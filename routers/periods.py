from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.classes import get_owned_class
from models.classes import SchoolClass
from models.periods import Period as PeriodModel
from schemas.common import ok
from schemas.gradebook import PeriodIn, PeriodsIn
from services.gradebook_service import replace_periods

router = APIRouter(prefix="/classes/{class_id}/periods", tags=["periods"])


def _period_to_dict(p: PeriodModel) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "start_date": str(p.start_date),
        "end_date": str(p.end_date),
        "weight": p.weight,
    }


# ✅ [READ] grading periods, in calendar order
@router.get("/")
def read_periods(school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    records = (
        db.query(PeriodModel)
        .filter(PeriodModel.class_id == school_class.id)
        .order_by(PeriodModel.start_date, PeriodModel.id)
        .all()
    )
    return ok([_period_to_dict(p) for p in records])


# ✅ [CREATE] add one period
@router.post("/", status_code=201)
def create_period(
    payload: PeriodIn,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    period = PeriodModel(class_id=school_class.id, **payload.model_dump(exclude={"id"}))
    db.add(period)
    db.commit()
    db.refresh(period)
    return ok(_period_to_dict(period), "Period created successfully")


# ✅ [REPLACE] the whole period set
@router.put("/")
def update_periods(
    payload: PeriodsIn,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    rows = replace_periods(db, school_class.id, payload.periods)
    rows.sort(key=lambda p: (p.start_date, p.id))
    return ok([_period_to_dict(p) for p in rows], "Periods updated successfully")
