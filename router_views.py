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


from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

import analytics
import crud_ops
import schemas
from cache_layer import AcademicStore, get_store
from import_export import export_academic_data, import_academic_data
from router_auth import require_user

router = APIRouter(prefix="/api")


def unwrap(result):
    """Turn a MutationResult into a response body or raise its error"""
    if not result.ok:
        raise result.exception
    return result.data


def require_confirmation(confirm: bool, what: str):
    if not confirm:
        raise HTTPException(status_code=409, detail=f"Deleting this {what} requires confirmation")


# Semesters

@router.get("/semesters")
async def list_semesters(user_id: str = Depends(require_user), store: AcademicStore = Depends(get_store)):
    return await store.semesters.list(user_id)


@router.post("/semesters", status_code=201)
async def create_semester(data: schemas.SemesterCreate, user_id: str = Depends(require_user),
                          store: AcademicStore = Depends(get_store)):
    return unwrap(await store.semesters.create(user_id, data.model_dump()))


@router.patch("/semesters/{semester_id}")
async def update_semester(semester_id: int, data: schemas.SemesterUpdate, user_id: str = Depends(require_user),
                          store: AcademicStore = Depends(get_store)):
    return unwrap(await store.semesters.update(user_id, semester_id, data.model_dump(exclude_unset=True)))


@router.delete("/semesters/{semester_id}")
async def delete_semester(semester_id: int, confirm: bool = False, user_id: str = Depends(require_user),
                          store: AcademicStore = Depends(get_store)):
    # Takes its subjects, attendance and marks with it
    require_confirmation(confirm, "semester")
    return unwrap(await store.semesters.delete(user_id, semester_id))


# Subjects

@router.get("/subjects")
async def list_subjects(semester_id: Optional[int] = None, user_id: str = Depends(require_user),
                        store: AcademicStore = Depends(get_store)):
    return await store.subjects.list(user_id, semester_id)


@router.post("/subjects", status_code=201)
async def create_subject(data: schemas.SubjectCreate, user_id: str = Depends(require_user),
                         store: AcademicStore = Depends(get_store)):
    return unwrap(await store.subjects.create(user_id, data.model_dump()))


@router.patch("/subjects/{subject_id}")
async def update_subject(subject_id: int, data: schemas.SubjectUpdate, user_id: str = Depends(require_user),
                         store: AcademicStore = Depends(get_store)):
    return unwrap(await store.subjects.update(user_id, subject_id, data.model_dump(exclude_unset=True)))


@router.delete("/subjects/{subject_id}")
async def delete_subject(subject_id: int, confirm: bool = False, user_id: str = Depends(require_user),
                         store: AcademicStore = Depends(get_store)):
    require_confirmation(confirm, "subject")
    return unwrap(await store.subjects.delete(user_id, subject_id))


# Attendance

@router.get("/attendance")
async def list_attendance(semester_id: Optional[int] = None, user_id: str = Depends(require_user),
                          store: AcademicStore = Depends(get_store)):
    return await store.attendance.list(user_id, semester_id)


@router.post("/attendance", status_code=201)
async def create_attendance(data: schemas.AttendanceCreate, user_id: str = Depends(require_user),
                            store: AcademicStore = Depends(get_store)):
    return unwrap(await store.attendance.create(user_id, data.model_dump()))


@router.patch("/attendance/{record_id}")
async def update_attendance(record_id: int, data: schemas.AttendanceUpdate, user_id: str = Depends(require_user),
                            store: AcademicStore = Depends(get_store)):
    return unwrap(await store.attendance.update(user_id, record_id, data.model_dump(exclude_unset=True)))


@router.delete("/attendance/{record_id}")
async def delete_attendance(record_id: int, confirm: bool = False, user_id: str = Depends(require_user),
                            store: AcademicStore = Depends(get_store)):
    require_confirmation(confirm, "attendance record")
    return unwrap(await store.attendance.delete(user_id, record_id))


# Marks

@router.get("/marks")
async def list_marks(semester_id: Optional[int] = None, user_id: str = Depends(require_user),
                     store: AcademicStore = Depends(get_store)):
    return await store.marks.list(user_id, semester_id)


@router.post("/marks", status_code=201)
async def create_marks(data: schemas.MarksCreate, user_id: str = Depends(require_user),
                       store: AcademicStore = Depends(get_store)):
    return unwrap(await store.marks.create(user_id, data.model_dump()))


@router.patch("/marks/{record_id}")
async def update_marks(record_id: int, data: schemas.MarksUpdate, user_id: str = Depends(require_user),
                       store: AcademicStore = Depends(get_store)):
    return unwrap(await store.marks.update(user_id, record_id, data.model_dump(exclude_unset=True)))


@router.delete("/marks/{record_id}")
async def delete_marks(record_id: int, confirm: bool = False, user_id: str = Depends(require_user),
                       store: AcademicStore = Depends(get_store)):
    require_confirmation(confirm, "marks record")
    return unwrap(await store.marks.delete(user_id, record_id))


# Derived data

@router.get("/summary")
async def academic_summary(user_id: str = Depends(require_user), store: AcademicStore = Depends(get_store)):
    return await store.academic_summary(user_id)


@router.get("/analytics")
async def dashboard_analytics(user_id: str = Depends(require_user), store: AcademicStore = Depends(get_store)):
    return await analytics.dashboard_analytics(store, user_id)


@router.get("/consistency")
async def consistency_issues(user_id: str = Depends(require_user), store: AcademicStore = Depends(get_store)):
    issues = await store.execute(lambda db: crud_ops.find_consistency_issues(db, user_id))
    return [schemas.ConsistencyIssue(**issue) for issue in issues]


# Exam types

@router.get("/exam-types")
async def list_exam_types(user_id: str = Depends(require_user), store: AcademicStore = Depends(get_store)):
    return {
        "defaults": list(store.exam_types.defaults),
        "custom": store.exam_types.custom(user_id),
        "all": store.exam_types.get(user_id),
    }


@router.post("/exam-types", status_code=201)
async def add_exam_type(data: schemas.ExamTypeIn, user_id: str = Depends(require_user),
                        store: AcademicStore = Depends(get_store)):
    if not store.exam_types.add(user_id, data.name):
        raise HTTPException(status_code=409, detail="Exam type is empty or already exists")
    return {"all": store.exam_types.get(user_id)}


@router.delete("/exam-types/{name}")
async def remove_exam_type(name: str, user_id: str = Depends(require_user),
                           store: AcademicStore = Depends(get_store)):
    if not store.exam_types.remove(user_id, name):
        raise HTTPException(status_code=404, detail="Custom exam type not found")
    return {"all": store.exam_types.get(user_id)}


# Import / export

@router.post("/import")
async def import_data(data: schemas.ImportData, user_id: str = Depends(require_user),
                      store: AcademicStore = Depends(get_store)):
    return await import_academic_data(store, user_id, data)


@router.get("/export")
async def export_data(user_id: str = Depends(require_user), store: AcademicStore = Depends(get_store)):
    return await export_academic_data(store, user_id)
