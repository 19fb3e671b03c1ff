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


"""Grade and metric calculations.

Everything here is a pure function over plain numbers, grade letters and
records. Records may be dicts, ORM rows or pydantic models; only the
``credits``/``grade`` or ``obtained_marks``/``total_marks``/``weightage``
fields are read.
"""

from enum import Enum
from typing import Iterable, NamedTuple, Optional

from config import CONFIG
from errors import InvalidGradeError


class Grade(str, Enum):
    S = "S"
    A_PLUS = "A+"
    A = "A"
    A_MINUS = "A-"
    B_PLUS = "B+"
    B = "B"
    B_MINUS = "B-"
    C_PLUS = "C+"
    C = "C"
    C_MINUS = "C-"
    D = "D"
    E = "E"
    F = "F"
    I = "I"


GRADE_POINTS = {
    "S": 10.0,
    "A+": 9.5,
    "A": 9.0,
    "A-": 8.5,
    "B+": 7.5,
    "B": 7.0,
    "B-": 6.5,
    "C+": 5.5,
    "C": 5.0,
    "C-": 4.5,
    "D": 4.0,
    "E": 0.0,
    "F": 0.0,
    "I": 0.0,
}

# Grades that leave the subject pending (failed or incomplete)
BACKLOG_GRADES = frozenset({"E", "F", "I"})


class AttendanceStatus(NamedTuple):
    status: str
    color_class: str


def _field(record, name, default=None):
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)


def _grade_value(grade) -> Optional[str]:
    if isinstance(grade, Grade):
        return grade.value
    return grade


def is_valid_grade(grade) -> bool:
    return _grade_value(grade) in GRADE_POINTS


def grade_to_points(grade) -> float:
    """Grade points for a letter grade; raises InvalidGradeError for anything off the scale."""
    value = _grade_value(grade)
    if value not in GRADE_POINTS:
        raise InvalidGradeError(grade)
    return GRADE_POINTS[value]


def is_backlog(grade) -> bool:
    return _grade_value(grade) in BACKLOG_GRADES


def compute_sgpa(subjects: Iterable) -> float:
    """Credit-weighted grade point average.

    Subjects without a grade (or with one off the scale) count in neither
    the numerator nor the denominator. Returns 0.0 when nothing is graded.
    """
    total_credits = 0
    weighted_points = 0.0
    for subject in subjects:
        grade = _field(subject, "grade")
        if not is_valid_grade(grade):
            continue
        credits = _field(subject, "credits") or 0
        total_credits += credits
        weighted_points += credits * grade_to_points(grade)
    if total_credits == 0:
        return 0.0
    return weighted_points / total_credits


# CGPA uses the same formula; the caller picks the cumulative subject set.
compute_cgpa = compute_sgpa


def subjects_through_semester(subjects, semesters, number: int) -> list:
    """Subjects belonging to semesters 1..number, for a CGPA as of that semester."""
    semester_ids = {_field(s, "id") for s in semesters if _field(s, "number") <= number}
    return [s for s in subjects if _field(s, "semester_id") in semester_ids]


def round_gpa(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(value, 2)


def attendance_percentage(attended: int, total: int) -> float:
    if not total:
        return 0.0
    return attended / total * 100


def get_attendance_status(percentage: float, good: float | None = None,
                          warning: float | None = None) -> AttendanceStatus:
    if good is None:
        good = CONFIG["attendance_good_threshold"]
    if warning is None:
        warning = CONFIG["attendance_warning_threshold"]
    if percentage >= good:
        return AttendanceStatus("Good", "bg-green-100 text-green-800")
    if percentage >= warning:
        return AttendanceStatus("Warning", "bg-yellow-100 text-yellow-800")
    return AttendanceStatus("Critical", "bg-red-100 text-red-800")


def raw_percentage(obtained: float, total: float) -> float:
    if not total:
        return 0.0
    return obtained / total * 100


def weighted_percentage(percentage: float, weightage: float | None = 100) -> float:
    if weightage is None:
        weightage = 100
    return percentage * weightage / 100


def subject_overall(records: Iterable) -> float:
    """Overall standing of one subject across its exam records.

    Weightage-weighted mean of the raw percentages. When the weightages add
    up to nothing, falls back to the plain mean.
    """
    records = list(records)
    if not records:
        return 0.0
    percentages = []
    weights = []
    for record in records:
        percentages.append(raw_percentage(_field(record, "obtained_marks") or 0,
                                          _field(record, "total_marks") or 0))
        weightage = _field(record, "weightage")
        weights.append(100 if weightage is None else weightage)
    weight_sum = sum(weights)
    if weight_sum <= 0:
        return sum(percentages) / len(percentages)
    return sum(p * w for p, w in zip(percentages, weights)) / weight_sum


def get_performance_label(percentage: float) -> str:
    if percentage >= 90:
        return "Excellent"
    if percentage >= 75:
        return "Good"
    if percentage >= 60:
        return "Average"
    return "Poor"
