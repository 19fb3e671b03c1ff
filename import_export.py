# UNI-TEL - Academic tracker
# Copyright (C) 2026 (linuxdev)
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.


"""Bulk JSON import and export.

Import understands ``{"semesters": [{"number": 1, "subjects": [...]}]}``
and only creates semesters and subjects. The export nests each semester's
subjects the same way, so an exported file can be imported again.
"""

from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError

import crud_ops
import schemas
from errors import AcademicError
from logger import get_logger
from validation import clean_text_fields, ensure_valid, validate_semester, validate_subject

logger = get_logger(__name__)


def _import_semester(db, user_id, semester_data, result):
    ensure_valid(validate_semester({"number": semester_data.number}))
    semester = crud_ops.get_semester_by_number(db, user_id, semester_data.number)
    if semester is None:
        semester = crud_ops.create_semester(db, user_id, semester_data.number, source_json_import=True)
    result.imported_counts["semesters"] += 1

    for subject_data in semester_data.subjects:
        data = clean_text_fields({
            "semester_id": semester.id,
            "name": subject_data.name,
            "credits": subject_data.credits,
            "grade": subject_data.grade or None,
        })
        try:
            ensure_valid(validate_subject(data))
            existing = crud_ops.get_subject_by_name(db, semester.id, data["name"])
            if existing is None:
                crud_ops.create_subject(db, user_id, dict(data, source_json_import=True))
            else:
                crud_ops.update_subject(db, user_id, existing.id,
                                        {"credits": data["credits"], "grade": data["grade"]})
            result.imported_counts["subjects"] += 1
        except AcademicError as exc:
            db.rollback()
            result.errors.append(f"Subject {subject_data.name}: {exc.message}")
        except SQLAlchemyError as exc:
            db.rollback()
            result.errors.append(f"Subject {subject_data.name}: {getattr(exc, 'orig', None) or exc}")

    if semester_data.attendance:
        result.warnings.append(f"Semester {semester_data.number}: attendance is not imported")
    if semester_data.marks:
        result.warnings.append(f"Semester {semester_data.number}: marks are not imported")


def import_into_db(db, user_id: str, data: schemas.ImportData) -> schemas.ImportResult:
    result = schemas.ImportResult(success=True, message="")

    if not data.semesters:
        return schemas.ImportResult(success=False, message="No semesters data provided")

    for semester_data in data.semesters:
        try:
            _import_semester(db, user_id, semester_data, result)
        except AcademicError as exc:
            db.rollback()
            result.errors.append(f"Semester {semester_data.number}: {exc.message}")
        except SQLAlchemyError as exc:
            db.rollback()
            result.errors.append(f"Semester {semester_data.number}: {getattr(exc, 'orig', None) or exc}")

    total = result.imported_counts["semesters"] + result.imported_counts["subjects"]
    if total == 0:
        result.success = False
        result.message = "No data was imported successfully"
    else:
        result.message = f"Successfully imported {total} records"
        if result.errors:
            result.message += f" with {len(result.errors)} errors"
    return result


async def import_academic_data(store, user_id: str, data: schemas.ImportData) -> schemas.ImportResult:
    logger.info("importing %d semesters for %s", len(data.semesters), user_id)
    try:
        result = await store.execute(lambda db: import_into_db(db, user_id, data))
    finally:
        # Partial imports still change rows
        store.invalidate_user(user_id)
    logger.info("import for %s: %s", user_id, result.message)
    return result


def _profile_dict(profile):
    if profile is None:
        return None
    return schemas.Profile.model_validate(profile).model_dump(mode="json")


async def export_academic_data(store, user_id: str) -> dict:
    profile = await store.execute(lambda db: _profile_dict(crud_ops.get_profile(db, user_id)))
    semesters = await store.semesters.list(user_id)
    subjects = await store.subjects.list(user_id)
    attendance = await store.attendance.list(user_id)
    marks = await store.marks.list(user_id)

    numbers = {s.id: s.number for s in semesters}
    exported_semesters = []
    for semester in semesters:
        exported_semesters.append({
            "number": semester.number,
            "sgpa": semester.sgpa,
            "total_credits": semester.total_credits,
            "subjects": [
                {"name": s.name, "credits": s.credits, "grade": s.grade}
                for s in subjects if s.semester_id == semester.id
            ],
        })

    def flat(records):
        rows = []
        for record in records:
            row = record.model_dump(mode="json", exclude={"user_id"})
            row["semester_number"] = numbers.get(record.semester_id)
            rows.append(row)
        return rows

    return {
        "profile": profile,
        "semesters": exported_semesters,
        "subjects": flat(subjects),
        "attendance": flat(attendance),
        "marks": flat(marks),
        "exportedAt": datetime.now(timezone.utc).isoformat(),
    }
