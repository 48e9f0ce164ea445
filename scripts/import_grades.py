import logging
import sys

from sqlalchemy.orm import Session

from database.db import SessionLocal
from database.init_db import create_tables
from services.csv_io import import_grades_csv

logger = logging.getLogger(__name__)

USAGE = "usage: python -m scripts.import_grades <class_id> <csv_path>"


def migrate_grades(class_id: int, csv_path: str) -> dict:
    with open(csv_path, newline="", encoding="utf-8-sig") as csvfile:
        text = csvfile.read()

    db: Session = SessionLocal()
    try:
        result = import_grades_csv(db, class_id, text)
    finally:
        db.close()

    for err in result["errors"]:
        logger.warning("line %s: %s", err["line"], err["error"])
    logger.info(
        "✅ class %s: %d grade(s) imported (%d new), %d row(s) skipped",
        class_id, result["imported"], result["created"], result["skipped"],
    )
    return result


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2 or not args[0].isdigit():
        print(USAGE, file=sys.stderr)
        return 2
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    create_tables()
    migrate_grades(int(args[0]), args[1])
    return 0


if __name__ == "__main__":
    sys.exit(main())
