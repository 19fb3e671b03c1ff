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


from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class ProfileBase(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    college: Optional[str] = None


class ProfileUpdate(ProfileBase):
    pass


class Profile(ProfileBase):
    user_id: str

    class Config:
        from_attributes = True


class SemesterBase(BaseModel):
    number: int


class SemesterCreate(SemesterBase):
    source_json_import: bool = False


class SemesterUpdate(BaseModel):
    number: Optional[int] = None


class Semester(SemesterBase):
    id: int
    user_id: str
    sgpa: Optional[float] = None
    total_credits: int = 0
    source_json_import: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SubjectBase(BaseModel):
    semester_id: int
    name: str
    credits: int
    grade: Optional[str] = None


class SubjectCreate(SubjectBase):
    source_json_import: bool = False


class SubjectUpdate(BaseModel):
    name: Optional[str] = None
    credits: Optional[int] = None
    grade: Optional[str] = None


class Subject(SubjectBase):
    id: int
    user_id: str
    grade_points: Optional[float] = None
    source_json_import: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AttendanceBase(BaseModel):
    semester_id: int
    subject_name: str
    total_classes: int = 0
    attended_classes: int = 0
    note: Optional[str] = None


class AttendanceCreate(AttendanceBase):
    source_json_import: bool = False


class AttendanceUpdate(BaseModel):
    subject_name: Optional[str] = None
    total_classes: Optional[int] = None
    attended_classes: Optional[int] = None
    note: Optional[str] = None


class AttendanceRecord(AttendanceBase):
    id: int
    user_id: str
    percentage: float = 0.0
    source_json_import: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MarksBase(BaseModel):
    semester_id: int
    subject_name: str
    exam_type: str
    total_marks: float = 0
    obtained_marks: float = 0
    weightage: float = 100
    exam_date: Optional[date] = None
    exam_time: Optional[str] = None


class MarksCreate(MarksBase):
    source_json_import: bool = False


class MarksUpdate(BaseModel):
    subject_name: Optional[str] = None
    exam_type: Optional[str] = None
    total_marks: Optional[float] = None
    obtained_marks: Optional[float] = None
    weightage: Optional[float] = None
    exam_date: Optional[date] = None
    exam_time: Optional[str] = None


class MarksRecord(MarksBase):
    id: int
    user_id: str
    percentage: float = 0.0
    weighted_percentage: float = 0.0
    source_json_import: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AcademicSummary(BaseModel):
    user_id: str
    total_semesters: int = 0
    total_subjects: int = 0
    total_credits: int = 0
    average_sgpa: Optional[float] = None
    cgpa: Optional[float] = None
    backlogs: int = 0


class ExamTypeIn(BaseModel):
    name: str


class ImportSubject(BaseModel):
    name: str
    credits: int
    grade: Optional[str] = None


class ImportSemester(BaseModel):
    number: int
    subjects: List[ImportSubject] = Field(default_factory=list)
    # Accepted so old export files load, but never imported
    attendance: Optional[list] = None
    marks: Optional[list] = None


class ImportData(BaseModel):
    semesters: List[ImportSemester] = Field(default_factory=list)


class ImportResult(BaseModel):
    success: bool
    message: str
    imported_counts: Dict[str, int] = Field(default_factory=lambda: {"semesters": 0, "subjects": 0})
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class ConsistencyIssue(BaseModel):
    table_name: str
    issue_type: str
    issue_description: str
    record_id: int
