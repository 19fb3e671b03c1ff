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


"""Input checks run before anything is written.

Each ``validate_*`` function takes the complete (merged) record as a dict and
returns a list of messages; ``ensure_valid`` turns a non-empty list into
ValidationFailed.
"""

import re

import bleach

import grade_calc
from errors import ValidationFailed

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

TEXT_FIELDS = ("name", "subject_name", "exam_type", "note", "full_name", "email", "college")


def sanitize(text):
    if text is None:
        return None
    return bleach.clean(str(text), tags=[], strip=True).strip()


def clean_text_fields(data: dict) -> dict:
    cleaned = dict(data)
    for field in TEXT_FIELDS:
        if field in cleaned and cleaned[field] is not None:
            cleaned[field] = sanitize(cleaned[field])
    return cleaned


def ensure_valid(errors):
    if errors:
        raise ValidationFailed(errors)


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_semester(data: dict, existing=()):
    errors = []
    number = data.get("number")
    if not _is_int(number) or number < 1:
        errors.append("Semester number must be a positive integer")
    elif any(s.number == number and s.id != data.get("id") for s in existing):
        errors.append(f"Semester {number} already exists")
    return errors


def validate_subject(data: dict, siblings=()):
    """siblings: the other subjects of the same semester"""
    errors = []
    name = (data.get("name") or "").strip()
    if not name:
        errors.append("Subject name is required")
    elif not 2 <= len(name) <= 100:
        errors.append("Subject name must be between 2 and 100 characters")
    elif any(s.name.lower() == name.lower() and s.id != data.get("id") for s in siblings):
        errors.append(f"Subject '{name}' already exists in this semester")

    credits = data.get("credits")
    if not _is_int(credits) or not 1 <= credits <= 10:
        errors.append("Credits must be between 1 and 10")

    grade = data.get("grade")
    if grade is not None and not grade_calc.is_valid_grade(grade):
        errors.append("Invalid grade letter")

    if not data.get("semester_id"):
        errors.append("Semester ID is required")
    return errors


def validate_attendance(data: dict):
    errors = []
    if not (data.get("subject_name") or "").strip():
        errors.append("Subject name is required")

    total = data.get("total_classes")
    attended = data.get("attended_classes")
    if not _is_int(total) or total < 0:
        errors.append("Total classes cannot be negative")
    if not _is_int(attended) or attended < 0:
        errors.append("Attended classes cannot be negative")
    if _is_int(total) and _is_int(attended) and attended > total:
        errors.append("Attended classes cannot exceed total classes")

    if not data.get("semester_id"):
        errors.append("Semester ID is required")
    return errors


def validate_marks(data: dict):
    errors = []
    if not (data.get("subject_name") or "").strip():
        errors.append("Subject name is required")
    if not (data.get("exam_type") or "").strip():
        errors.append("Exam type is required")

    total = data.get("total_marks")
    obtained = data.get("obtained_marks")
    if not _is_number(total) or total < 0:
        errors.append("Total marks cannot be negative")
    if not _is_number(obtained) or obtained < 0:
        errors.append("Obtained marks cannot be negative")
    if _is_number(total) and _is_number(obtained) and obtained > total:
        errors.append("Obtained marks cannot exceed total marks")

    weightage = data.get("weightage", 100)
    if not _is_number(weightage) or not 0 <= weightage <= 100:
        errors.append("Weightage must be between 0 and 100")

    exam_time = data.get("exam_time")
    if exam_time and not TIME_RE.match(exam_time):
        errors.append("Exam time must be in HH:MM format")

    if not data.get("semester_id"):
        errors.append("Semester ID is required")
    return errors
