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


from sqlalchemy import Column, Integer, String, ForeignKey, Float, DateTime, Date, Boolean, CheckConstraint, UniqueConstraint, Index, func
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    college = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Semester(Base):
    __tablename__ = "semesters"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    number = Column(Integer, nullable=False)
    sgpa = Column(Float, nullable=True)  # recalculated from subjects
    total_credits = Column(Integer, nullable=False, default=0)
    source_json_import = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    subjects = relationship("Subject", back_populates="semester", cascade="all, delete-orphan")
    attendance_records = relationship("AttendanceRecord", back_populates="semester", cascade="all, delete-orphan")
    marks_records = relationship("MarksRecord", back_populates="semester", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("user_id", "number", name="uq_semester_user_number"),
        CheckConstraint("number >= 1", name="check_semester_number"),
        CheckConstraint("total_credits >= 0", name="check_semester_credits"),
    )


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    credits = Column(Integer, nullable=False)
    grade = Column(String(2), nullable=True)
    grade_points = Column(Float, nullable=True)
    source_json_import = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    semester = relationship("Semester", back_populates="subjects")

    __table_args__ = (
        CheckConstraint("credits >= 1 AND credits <= 10", name="check_subject_credits"),
    )


# Subject names are unique per semester regardless of case
Index("uq_subject_semester_name", Subject.semester_id, func.lower(Subject.name), unique=True)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id", ondelete="CASCADE"), nullable=False)
    subject_name = Column(String(100), nullable=False)
    total_classes = Column(Integer, nullable=False, default=0)
    attended_classes = Column(Integer, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0.0)
    note = Column(String, nullable=True)
    source_json_import = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    semester = relationship("Semester", back_populates="attendance_records")

    __table_args__ = (
        CheckConstraint(
            "attended_classes >= 0 AND total_classes >= 0 AND attended_classes <= total_classes",
            name="check_attendance_classes",
        ),
    )


class MarksRecord(Base):
    __tablename__ = "marks_records"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    semester_id = Column(Integer, ForeignKey("semesters.id", ondelete="CASCADE"), nullable=False)
    subject_name = Column(String(100), nullable=False)
    exam_type = Column(String(50), nullable=False)
    total_marks = Column(Float, nullable=False, default=0)
    obtained_marks = Column(Float, nullable=False, default=0)
    percentage = Column(Float, nullable=False, default=0.0)
    weightage = Column(Float, nullable=False, default=100)
    weighted_percentage = Column(Float, nullable=False, default=0.0)
    exam_date = Column(Date, nullable=True)
    exam_time = Column(String(5), nullable=True)  # "HH:MM"
    source_json_import = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    semester = relationship("Semester", back_populates="marks_records")

    __table_args__ = (
        CheckConstraint(
            "obtained_marks >= 0 AND obtained_marks <= total_marks",
            name="check_marks_values",
        ),
        CheckConstraint("weightage >= 0 AND weightage <= 100", name="check_marks_weightage"),
    )
