from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from database.db import get_db
from dependencies.security import CurrentUser, require_staff
from models.classes import SchoolClass
from services.gradebook_service import get_class_or_404


def check_class_access(user: CurrentUser, school_class: SchoolClass) -> None:
    if not user.is_admin and school_class.teacher_id != user.sub:
        raise HTTPException(status_code=403, detail="You do not have access to this class")


def get_owned_class(
    class_id: int,
    user: CurrentUser = Depends(require_staff),
    db: Session = Depends(get_db),
) -> SchoolClass:
    """404 for unknown classes, 403 unless the caller teaches it (admins pass)."""
    school_class = get_class_or_404(db, class_id)
    check_class_access(user, school_class)
    return school_class
