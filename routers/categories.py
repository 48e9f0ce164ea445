from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.classes import get_owned_class
from models.categories import Category as CategoryModel
from models.classes import SchoolClass
from schemas.common import ok
from schemas.gradebook import CategoriesIn
from services.gradebook_service import replace_categories

router = APIRouter(prefix="/classes/{class_id}/categories", tags=["categories"])


def _category_to_dict(c: CategoryModel) -> dict:
    return {"id": c.id, "name": c.name, "weight": c.weight}


# ✅ [READ] categories of a class
@router.get("/")
def read_categories(school_class: SchoolClass = Depends(get_owned_class), db: Session = Depends(get_db)):
    records = (
        db.query(CategoryModel)
        .filter(CategoryModel.class_id == school_class.id)
        .order_by(CategoryModel.id)
        .all()
    )
    return ok([_category_to_dict(c) for c in records])


# ✅ [REPLACE] the whole category set (weights not summing to 100 are only logged)
@router.put("/")
def update_categories(
    payload: CategoriesIn,
    school_class: SchoolClass = Depends(get_owned_class),
    db: Session = Depends(get_db),
):
    rows = replace_categories(db, school_class.id, payload.categories)
    return ok([_category_to_dict(c) for c in rows], "Categories updated successfully")
