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


"""Cached data access for the academic records.

Reads go through ``QueryCache``: results are cached per key, concurrent
readers of one key share a single repository call, and a response that
started before its key was invalidated is handed back to its callers but
never stored. Reads get one retry after a timeout or a dropped connection.

Writes go through an ``EntityResource``: input is sanitised and validated
first, then the repository runs under the same timeout (no retry), and on
success every dependent cache key is invalidated. The outcome comes back as
a ``MutationResult``.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError

import crud_ops
import schemas
from config import CONFIG
from database import SessionLocal
from errors import AcademicError, RepositoryError, RequestTimeout
from exam_types import registry as exam_type_registry
from logger import get_logger
from validation import (clean_text_fields, ensure_valid, validate_attendance,
                        validate_marks, validate_semester, validate_subject)

logger = get_logger(__name__)

SUMMARY = "academic-summary"


def translate_error(exc: Exception) -> AcademicError:
    if isinstance(exc, AcademicError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return RequestTimeout("The request timed out, please try again")
    if isinstance(exc, SQLAlchemyError):
        return RepositoryError(str(getattr(exc, "orig", None) or exc))
    raise exc


class QueryCache:

    def __init__(self, timeout: float | None = None, retries: int = 1):
        self.timeout = CONFIG["request_timeout"] if timeout is None else timeout
        self.retries = retries
        self._data = {}
        self._inflight = {}
        self._epoch = 0
        self._invalidated = {}

    def __contains__(self, key):
        return key in self._data

    def peek(self, key, default=None):
        return self._data.get(key, default)

    async def run(self, fn: Callable[[], Any]):
        """Run blocking repository work in a thread under the timeout"""
        return await asyncio.wait_for(asyncio.to_thread(fn), self.timeout)

    async def fetch(self, key: tuple, fn: Callable[[], Any]):
        if key in self._data:
            logger.debug("cache hit %s", key)
            return self._data[key]
        task = self._inflight.get(key)
        if task is None:
            logger.debug("cache miss %s", key)
            task = asyncio.ensure_future(self._load(key, fn, self._epoch))
            self._inflight[key] = task
        return await asyncio.shield(task)

    async def _load(self, key, fn, started):
        try:
            value = await self._run_with_retry(key, fn)
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]
        if self._is_stale(key, started):
            logger.debug("discarding stale response for %s", key)
        else:
            self._data[key] = value
        return value

    async def _run_with_retry(self, key, fn):
        attempt = 0
        while True:
            try:
                return await self.run(fn)
            except (asyncio.TimeoutError, OperationalError) as exc:
                if attempt >= self.retries:
                    raise
                attempt += 1
                logger.warning("retrying %s after %s", key, type(exc).__name__)

    def _is_stale(self, key, started):
        return any(self._invalidated.get(key[:i], 0) > started for i in range(1, len(key) + 1))

    def invalidate(self, prefix: tuple):
        """Forget every key that starts with prefix, including in-flight loads"""
        self._epoch += 1
        self._invalidated[prefix] = self._epoch
        n = len(prefix)
        for key in [k for k in self._data if k[:n] == prefix]:
            del self._data[key]
        for key in [k for k in self._inflight if k[:n] == prefix]:
            del self._inflight[key]
        logger.debug("invalidated %s", prefix)


class MutationStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class MutationResult:
    status: MutationStatus
    data: Any = None
    error: Optional[str] = None
    kind: Optional[str] = None
    details: list = field(default_factory=list)
    exception: Optional[AcademicError] = None

    @property
    def ok(self):
        return self.status == MutationStatus.SUCCESS


class EntityResource:
    """list / create / update / delete for one entity type"""

    name = None
    schema = None
    create_schema = None
    update_schema = None
    list_fn = None
    create_fn = None
    update_fn = None
    delete_fn = None
    # Other key spaces that hold values derived from this entity
    dependents = (SUMMARY,)

    def __init__(self, store):
        self.store = store

    def key(self, user_id, semester_id=None):
        if semester_id is None:
            return (self.name, user_id)
        return (self.name, user_id, "semester", semester_id)

    async def list(self, user_id, semester_id=None):
        def work(db):
            rows = self.list_fn(db, user_id, semester_id)
            return [self.schema.model_validate(row) for row in rows]
        return await self.store.read(self.key(user_id, semester_id), work)

    async def get(self, user_id, record_id):
        for record in await self.list(user_id):
            if record.id == record_id:
                return record
        return None

    async def validate(self, user_id, record: dict):
        return []

    def invalidate(self, user_id):
        self.store.cache.invalidate((self.name, user_id))
        for name in self.dependents:
            self.store.cache.invalidate((name, user_id))

    async def create(self, user_id, data: dict, on_state=None):
        data = clean_text_fields(data)

        async def prepare():
            ensure_valid(_unknown_fields(data, self.create_schema))
            ensure_valid(await self.validate(user_id, data))
            return lambda db: self.schema.model_validate(self.create_fn(db, user_id, data))
        return await self._mutate("create", user_id, prepare, on_state)

    async def update(self, user_id, record_id, updates: dict, on_state=None):
        updates = clean_text_fields(updates)

        async def prepare():
            ensure_valid(_unknown_fields(updates, self.update_schema))
            current = await self.get(user_id, record_id)
            # Unknown or foreign ids are left for the repository to reject
            if current is not None:
                merged = current.model_dump()
                merged.update(updates)
                ensure_valid(await self.validate(user_id, merged))
            return lambda db: self.schema.model_validate(self.update_fn(db, user_id, record_id, updates))
        return await self._mutate("update", user_id, prepare, on_state)

    async def delete(self, user_id, record_id, on_state=None):
        async def prepare():
            return lambda db: {"id": self.delete_fn(db, user_id, record_id)}
        return await self._mutate("delete", user_id, prepare, on_state)

    async def _mutate(self, action, user_id, prepare, on_state):
        _notify(on_state, MutationResult(MutationStatus.PENDING))
        try:
            work = await prepare()
            data = await self.store.cache.run(lambda: self.store.in_session(work))
        except Exception as exc:
            error = _mutation_error(exc)
            if isinstance(error, RequestTimeout):
                # The worker thread may still commit
                self.invalidate(user_id)
            logger.info("%s %s failed for %s: %s", action, self.name, user_id, error.message)
            result = MutationResult(MutationStatus.ERROR, error=error.message, kind=error.kind,
                                    details=error.details, exception=error)
        else:
            self.invalidate(user_id)
            result = MutationResult(MutationStatus.SUCCESS, data=data)
        _notify(on_state, result)
        return result


def _notify(on_state, result):
    if on_state is not None:
        on_state(result)


def _unknown_fields(data, schema):
    return [f"Field '{key}' cannot be set here" for key in data if key not in schema.model_fields]


def _mutation_error(exc):
    try:
        return translate_error(exc)
    except Exception:
        logger.exception("unexpected failure while saving")
        return RepositoryError("Something went wrong while saving, please try again")


class SemesterResource(EntityResource):
    name = "semesters"
    schema = schemas.Semester
    create_schema = schemas.SemesterCreate
    update_schema = schemas.SemesterUpdate
    list_fn = staticmethod(lambda db, user_id, semester_id=None: crud_ops.get_semesters(db, user_id))
    update_fn = staticmethod(crud_ops.update_semester)
    delete_fn = staticmethod(crud_ops.delete_semester)
    dependents = ("subjects", "attendance", "marks", SUMMARY)

    @staticmethod
    def create_fn(db, user_id, data):
        return crud_ops.create_semester(db, user_id, data["number"], data.get("source_json_import", False))

    async def validate(self, user_id, record):
        return validate_semester(record, await self.list(user_id))


class SubjectResource(EntityResource):
    name = "subjects"
    schema = schemas.Subject
    create_schema = schemas.SubjectCreate
    update_schema = schemas.SubjectUpdate
    list_fn = staticmethod(crud_ops.get_subjects)
    create_fn = staticmethod(crud_ops.create_subject)
    update_fn = staticmethod(crud_ops.update_subject)
    delete_fn = staticmethod(crud_ops.delete_subject)
    # Subject edits change the semester SGPA/credits and the CGPA
    dependents = ("semesters", SUMMARY)

    async def validate(self, user_id, record):
        siblings = []
        if record.get("semester_id"):
            siblings = await self.list(user_id, record["semester_id"])
        return validate_subject(record, siblings)


class AttendanceResource(EntityResource):
    name = "attendance"
    schema = schemas.AttendanceRecord
    create_schema = schemas.AttendanceCreate
    update_schema = schemas.AttendanceUpdate
    list_fn = staticmethod(crud_ops.get_attendance)
    create_fn = staticmethod(crud_ops.create_attendance)
    update_fn = staticmethod(crud_ops.update_attendance)
    delete_fn = staticmethod(crud_ops.delete_attendance)

    async def validate(self, user_id, record):
        return validate_attendance(record)


class MarksResource(EntityResource):
    name = "marks"
    schema = schemas.MarksRecord
    create_schema = schemas.MarksCreate
    update_schema = schemas.MarksUpdate
    list_fn = staticmethod(crud_ops.get_marks)
    create_fn = staticmethod(crud_ops.create_marks)
    update_fn = staticmethod(crud_ops.update_marks)
    delete_fn = staticmethod(crud_ops.delete_marks)

    async def validate(self, user_id, record):
        return validate_marks(record)


class AcademicStore:
    """Everything the views need to read and change a user's records"""

    def __init__(self, session_factory=None, timeout=None, retries=1, exam_types=None):
        self.session_factory = session_factory or SessionLocal
        self.cache = QueryCache(timeout=timeout, retries=retries)
        self.exam_types = exam_types or exam_type_registry
        self.semesters = SemesterResource(self)
        self.subjects = SubjectResource(self)
        self.attendance = AttendanceResource(self)
        self.marks = MarksResource(self)

    @property
    def resources(self):
        return (self.semesters, self.subjects, self.attendance, self.marks)

    def in_session(self, work):
        db = self.session_factory()
        try:
            return work(db)
        finally:
            db.close()

    async def academic_summary(self, user_id):
        def work(db):
            return schemas.AcademicSummary(**crud_ops.get_user_academic_summary(db, user_id))
        return await self.read((SUMMARY, user_id), work)

    async def read(self, key, work):
        """Cached read; errors come back translated"""
        try:
            return await self.cache.fetch(key, lambda: self.in_session(work))
        except Exception as exc:
            error = translate_error(exc)
            if error is exc:
                raise
            raise error from exc

    async def execute(self, work):
        """One-off repository work outside the entity resources; errors come back translated"""
        try:
            return await self.cache.run(lambda: self.in_session(work))
        except Exception as exc:
            error = translate_error(exc)
            if error is exc:
                raise
            raise error from exc

    def invalidate_user(self, user_id):
        for resource in self.resources:
            self.cache.invalidate((resource.name, user_id))
        self.cache.invalidate((SUMMARY, user_id))


_store = None


def get_store() -> AcademicStore:
    """FastAPI dependency; tests override it with a store on their own engine"""
    global _store
    if _store is None:
        _store = AcademicStore()
    return _store
