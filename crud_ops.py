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


from sqlalchemy.orm import Session
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from models import Profile, Semester, Subject, AttendanceRecord, MarksRecord
from errors import RecordNotFoundError, PermissionDeniedError
import grade_calc


def _commit(db: Session):
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _save(db: Session, row):
    db.add(row)
    _commit(db)
    db.refresh(row)
    return row


def get_owned(db: Session, model, record_id: int, user_id: str, label: str):
    """Fetch a row and make sure it belongs to user_id"""
    row = db.query(model).filter(model.id == record_id).first()
    if not row:
        raise RecordNotFoundError(f"{label} not found")
    if row.user_id != user_id:
        raise PermissionDeniedError(f"You do not have permission to modify this {label.lower()}")
    return row


def _apply(row, updates: dict):
    for field, value in updates.items():
        setattr(row, field, value)


# Profiles

def get_profile(db: Session, user_id: str):
    return db.query(Profile).filter(Profile.user_id == user_id).first()


def upsert_profile(db: Session, user_id: str, updates: dict):
    profile = get_profile(db, user_id) or Profile(user_id=user_id)
    _apply(profile, updates)
    return _save(db, profile)


# Semesters

def get_semesters(db: Session, user_id: str):
    return db.query(Semester).filter(Semester.user_id == user_id).order_by(Semester.number).all()


def get_semester_by_number(db: Session, user_id: str, number: int):
    return db.query(Semester).filter(Semester.user_id == user_id, Semester.number == number).first()


def create_semester(db: Session, user_id: str, number: int, source_json_import: bool = False):
    semester = Semester(user_id=user_id, number=number, total_credits=0,
                        source_json_import=source_json_import)
    return _save(db, semester)


def update_semester(db: Session, user_id: str, semester_id: int, updates: dict):
    semester = get_owned(db, Semester, semester_id, user_id, "Semester")
    _apply(semester, updates)
    return _save(db, semester)


def delete_semester(db: Session, user_id: str, semester_id: int):
    # Subjects, attendance and marks go with it in the same commit
    semester = get_owned(db, Semester, semester_id, user_id, "Semester")
    db.delete(semester)
    _commit(db)
    return semester_id


def recalculate_semester_sgpa(db: Session, semester: Semester):
    subjects = db.query(Subject).filter(Subject.semester_id == semester.id).all()
    graded = [s for s in subjects if grade_calc.is_valid_grade(s.grade)]
    semester.sgpa = grade_calc.compute_sgpa(graded) if graded else None
    semester.total_credits = sum(s.credits for s in subjects)
    return semester


# Subjects

def get_subjects(db: Session, user_id: str, semester_id: int | None = None):
    query = db.query(Subject).filter(Subject.user_id == user_id)
    if semester_id is not None:
        query = query.filter(Subject.semester_id == semester_id)
    return query.order_by(Subject.semester_id, Subject.name).all()


def get_subject_by_name(db: Session, semester_id: int, name: str):
    return db.query(Subject).filter(
        Subject.semester_id == semester_id,
        func.lower(Subject.name) == name.lower()
    ).first()


def _grade_points(grade):
    return grade_calc.grade_to_points(grade) if grade else None


def create_subject(db: Session, user_id: str, data: dict):
    semester = get_owned(db, Semester, data["semester_id"], user_id, "Semester")
    subject = Subject(user_id=user_id, **data)
    subject.grade_points = _grade_points(subject.grade)
    db.add(subject)
    db.flush()
    recalculate_semester_sgpa(db, semester)
    return _save(db, subject)


def update_subject(db: Session, user_id: str, subject_id: int, updates: dict):
    subject = get_owned(db, Subject, subject_id, user_id, "Subject")
    semesters = [subject.semester]
    if updates.get("semester_id", subject.semester_id) != subject.semester_id:
        # Moving to another semester: both totals change
        semesters.append(get_owned(db, Semester, updates["semester_id"], user_id, "Semester"))
    _apply(subject, updates)
    subject.grade_points = _grade_points(subject.grade)
    db.flush()
    for semester in semesters:
        recalculate_semester_sgpa(db, semester)
    return _save(db, subject)


def delete_subject(db: Session, user_id: str, subject_id: int):
    subject = get_owned(db, Subject, subject_id, user_id, "Subject")
    semester = subject.semester
    db.delete(subject)
    db.flush()
    recalculate_semester_sgpa(db, semester)
    _commit(db)
    return subject_id


# Attendance

def get_attendance(db: Session, user_id: str, semester_id: int | None = None):
    query = db.query(AttendanceRecord).filter(AttendanceRecord.user_id == user_id)
    if semester_id is not None:
        query = query.filter(AttendanceRecord.semester_id == semester_id)
    return query.order_by(AttendanceRecord.semester_id, AttendanceRecord.subject_name).all()


def _refresh_attendance(record: AttendanceRecord):
    record.percentage = grade_calc.attendance_percentage(record.attended_classes, record.total_classes)


def create_attendance(db: Session, user_id: str, data: dict):
    get_owned(db, Semester, data["semester_id"], user_id, "Semester")
    record = AttendanceRecord(user_id=user_id, **data)
    _refresh_attendance(record)
    return _save(db, record)


def update_attendance(db: Session, user_id: str, record_id: int, updates: dict):
    record = get_owned(db, AttendanceRecord, record_id, user_id, "Attendance record")
    _apply(record, updates)
    _refresh_attendance(record)
    return _save(db, record)


def delete_attendance(db: Session, user_id: str, record_id: int):
    record = get_owned(db, AttendanceRecord, record_id, user_id, "Attendance record")
    db.delete(record)
    _commit(db)
    return record_id


# Marks

def get_marks(db: Session, user_id: str, semester_id: int | None = None):
    query = db.query(MarksRecord).filter(MarksRecord.user_id == user_id)
    if semester_id is not None:
        query = query.filter(MarksRecord.semester_id == semester_id)
    return query.order_by(MarksRecord.semester_id, MarksRecord.subject_name, MarksRecord.exam_type).all()


def _refresh_marks(record: MarksRecord):
    record.percentage = grade_calc.raw_percentage(record.obtained_marks, record.total_marks)
    record.weighted_percentage = grade_calc.weighted_percentage(record.percentage, record.weightage)


def create_marks(db: Session, user_id: str, data: dict):
    get_owned(db, Semester, data["semester_id"], user_id, "Semester")
    record = MarksRecord(user_id=user_id, **data)
    if record.weightage is None:
        record.weightage = 100
    _refresh_marks(record)
    return _save(db, record)


def update_marks(db: Session, user_id: str, record_id: int, updates: dict):
    record = get_owned(db, MarksRecord, record_id, user_id, "Marks record")
    _apply(record, updates)
    _refresh_marks(record)
    return _save(db, record)


def delete_marks(db: Session, user_id: str, record_id: int):
    record = get_owned(db, MarksRecord, record_id, user_id, "Marks record")
    db.delete(record)
    _commit(db)
    return record_id


# Aggregates

def get_user_academic_summary(db: Session, user_id: str):
    semesters = get_semesters(db, user_id)
    subjects = get_subjects(db, user_id)
    sgpas = [s.sgpa for s in semesters if s.sgpa is not None]
    graded = [s for s in subjects if grade_calc.is_valid_grade(s.grade)]
    return {
        "user_id": user_id,
        "total_semesters": len(semesters),
        "total_subjects": len(subjects),
        "total_credits": sum(s.credits for s in subjects),
        "average_sgpa": sum(sgpas) / len(sgpas) if sgpas else None,
        "cgpa": grade_calc.compute_cgpa(graded) if graded else None,
        "backlogs": sum(1 for s in subjects if grade_calc.is_backlog(s.grade)),
    }


def find_consistency_issues(db: Session, user_id: str):
    """Rows whose stored derived values disagree with a fresh calculation"""
    issues = []
    for semester in get_semesters(db, user_id):
        graded = [s for s in semester.subjects if grade_calc.is_valid_grade(s.grade)]
        expected = grade_calc.compute_sgpa(graded) if graded else None
        if (expected is None) != (semester.sgpa is None) or (
                expected is not None and abs(expected - semester.sgpa) > 1e-6):
            issues.append({
                "table_name": "semesters",
                "issue_type": "sgpa_mismatch",
                "issue_description": f"Semester {semester.number} SGPA {semester.sgpa} should be {expected}",
                "record_id": semester.id,
            })
    for subject in get_subjects(db, user_id):
        if subject.grade and not grade_calc.is_valid_grade(subject.grade):
            issues.append({
                "table_name": "subjects",
                "issue_type": "invalid_grade",
                "issue_description": f"{subject.name} has unknown grade {subject.grade}",
                "record_id": subject.id,
            })
        elif subject.grade_points != _grade_points(subject.grade):
            issues.append({
                "table_name": "subjects",
                "issue_type": "grade_points_mismatch",
                "issue_description": f"{subject.name} grade points {subject.grade_points} do not match grade {subject.grade}",
                "record_id": subject.id,
            })
    for record in get_attendance(db, user_id):
        if record.attended_classes > record.total_classes:
            issues.append({
                "table_name": "attendance_records",
                "issue_type": "attended_exceeds_total",
                "issue_description": f"{record.subject_name}: attended {record.attended_classes} of {record.total_classes}",
                "record_id": record.id,
            })
    return issues
