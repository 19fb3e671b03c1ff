import asyncio
import time
import unittest
from unittest import mock

import crud_ops
from cache_layer import MutationStatus, QueryCache
from errors import PermissionDeniedError
from models import AttendanceRecord, MarksRecord, Semester, Subject
from support import make_store, run


class QueryCacheTests(unittest.TestCase):

    def test_second_read_is_served_from_cache(self):
        cache = QueryCache(timeout=5)
        calls = []

        def fetch():
            calls.append(1)
            return ["row"]

        async def scenario():
            await cache.fetch(("subjects", "u"), fetch)
            return await cache.fetch(("subjects", "u"), fetch)

        self.assertEqual(run(scenario()), ["row"])
        self.assertEqual(len(calls), 1)

    def test_concurrent_reads_share_one_fetch(self):
        cache = QueryCache(timeout=5)
        calls = []

        def fetch():
            calls.append(1)
            time.sleep(0.05)
            return ["row"]

        async def scenario():
            return await asyncio.gather(
                cache.fetch(("semesters", "u"), fetch),
                cache.fetch(("semesters", "u"), fetch),
                cache.fetch(("semesters", "u"), fetch),
            )

        results = run(scenario())
        self.assertEqual(len(calls), 1)
        self.assertEqual(results, [["row"]] * 3)

    def test_invalidate_drops_every_key_under_prefix(self):
        cache = QueryCache(timeout=5)

        async def scenario():
            await cache.fetch(("subjects", "u"), lambda: 1)
            await cache.fetch(("subjects", "u", "semester", 3), lambda: 2)
            await cache.fetch(("subjects", "other"), lambda: 3)
            cache.invalidate(("subjects", "u"))

        run(scenario())
        self.assertNotIn(("subjects", "u"), cache)
        self.assertNotIn(("subjects", "u", "semester", 3), cache)
        self.assertIn(("subjects", "other"), cache)

    def test_response_started_before_invalidation_is_not_stored(self):
        cache = QueryCache(timeout=5)

        def slow():
            time.sleep(0.1)
            return "old"

        async def scenario():
            pending = asyncio.ensure_future(cache.fetch(("marks", "u"), slow))
            await asyncio.sleep(0.02)
            cache.invalidate(("marks", "u"))
            old = await pending
            fresh = await cache.fetch(("marks", "u"), lambda: "new")
            return old, fresh

        old, fresh = run(scenario())
        self.assertEqual(old, "old")
        self.assertEqual(fresh, "new")
        self.assertEqual(cache.peek(("marks", "u")), "new")

    def test_read_is_retried_once_after_timeout(self):
        cache = QueryCache(timeout=0.05, retries=1)
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                time.sleep(0.2)
            return "ok"

        self.assertEqual(run(cache.fetch(("semesters", "u"), flaky)), "ok")
        self.assertEqual(len(attempts), 2)

    def test_read_gives_up_after_one_retry(self):
        cache = QueryCache(timeout=0.05, retries=1)
        attempts = []

        def stalled():
            attempts.append(1)
            time.sleep(0.2)

        with self.assertRaises(asyncio.TimeoutError):
            run(cache.fetch(("semesters", "u"), stalled))
        self.assertEqual(len(attempts), 2)
        self.assertNotIn(("semesters", "u"), cache)


class StoreTestCase(unittest.TestCase):

    def setUp(self):
        self.store = make_store()
        self.user = "student-1"

    def ok(self, coro):
        result = run(coro)
        self.assertEqual(result.status, MutationStatus.SUCCESS, result.error)
        return result.data

    def semester(self, number=1):
        return self.ok(self.store.semesters.create(self.user, {"number": number}))

    def subject(self, semester_id, name, credits, grade=None):
        return self.ok(self.store.subjects.create(self.user, {
            "semester_id": semester_id, "name": name, "credits": credits, "grade": grade,
        }))

    def count(self, model, **filters):
        db = self.store.session_factory()
        try:
            return db.query(model).filter_by(**filters).count()
        finally:
            db.close()


class SemesterAndSubjectTests(StoreTestCase):

    def test_subject_gets_grade_points(self):
        semester = self.semester()
        subject = self.subject(semester.id, "Maths", 4, "A")
        self.assertEqual(subject.grade_points, 9.0)
        ungraded = self.subject(semester.id, "Physics", 3)
        self.assertIsNone(ungraded.grade_points)

    def test_grade_change_refreshes_cached_sgpa(self):
        semester = self.semester()
        self.subject(semester.id, "Maths", 4, "A")
        physics = self.subject(semester.id, "Physics", 2)

        semesters = run(self.store.semesters.list(self.user))
        self.assertEqual(semesters[0].sgpa, 9.0)
        self.assertEqual(semesters[0].total_credits, 6)

        self.ok(self.store.subjects.update(self.user, physics.id, {"grade": "B"}))

        semesters = run(self.store.semesters.list(self.user))
        self.assertAlmostEqual(semesters[0].sgpa, 50 / 6)
        summary = run(self.store.academic_summary(self.user))
        self.assertAlmostEqual(summary.cgpa, 50 / 6)

    def test_semester_without_grades_has_no_sgpa(self):
        semester = self.semester()
        self.subject(semester.id, "Maths", 4)
        self.assertIsNone(run(self.store.semesters.list(self.user))[0].sgpa)

    def test_mutation_reports_pending_then_success(self):
        states = []
        run(self.store.semesters.create(self.user, {"number": 1}, on_state=lambda r: states.append(r.status)))
        self.assertEqual(states, [MutationStatus.PENDING, MutationStatus.SUCCESS])

    def test_duplicate_subject_name_is_rejected_case_insensitively(self):
        semester = self.semester()
        self.subject(semester.id, "Data Structures", 4, "A")
        result = run(self.store.subjects.create(self.user, {
            "semester_id": semester.id, "name": "data structures", "credits": 3,
        }))
        self.assertEqual(result.status, MutationStatus.ERROR)
        self.assertEqual(result.kind, "validation")

    def test_same_subject_name_in_another_semester_is_fine(self):
        first = self.semester(1)
        second = self.semester(2)
        self.subject(first.id, "Maths", 4)
        self.subject(second.id, "Maths", 4)

    def test_validation_errors_never_reach_the_repository(self):
        semester = self.semester()
        with mock.patch.object(self.store.subjects, "create_fn") as create_fn:
            result = run(self.store.subjects.create(self.user, {
                "semester_id": semester.id, "name": "X", "credits": 12, "grade": "Q",
            }))
        create_fn.assert_not_called()
        self.assertEqual(result.kind, "validation")
        self.assertEqual(len(result.details), 3)

    def test_unexpected_failure_is_reported_as_error(self):
        semester = self.semester()
        states = []
        with mock.patch.object(self.store.subjects, "create_fn", side_effect=RuntimeError("disk on fire")):
            result = run(self.store.subjects.create(self.user, {
                "semester_id": semester.id, "name": "Maths", "credits": 4,
            }, on_state=lambda r: states.append(r.status)))
        self.assertEqual(states, [MutationStatus.PENDING, MutationStatus.ERROR])
        self.assertEqual(result.kind, "repository")
        self.assertEqual(self.count(Subject), 0)

    def test_unknown_fields_are_rejected(self):
        semester = self.semester()
        with mock.patch.object(self.store.subjects, "create_fn") as create_fn:
            result = run(self.store.subjects.create(self.user, {
                "semester_id": semester.id, "name": "Maths", "credits": 4, "bogus": 1,
            }))
        create_fn.assert_not_called()
        self.assertEqual(result.kind, "validation")
        self.assertEqual(result.details, ["Field 'bogus' cannot be set here"])

    def test_subject_cannot_be_moved_through_update(self):
        semester = self.semester()
        maths = self.subject(semester.id, "Maths", 4, "A")
        foreign = run(self.store.semesters.create("someone-else", {"number": 1})).data

        result = run(self.store.subjects.update(self.user, maths.id, {"semester_id": foreign.id}))
        self.assertEqual(result.kind, "validation")

        semesters = run(self.store.semesters.list(self.user))
        self.assertEqual((semesters[0].sgpa, semesters[0].total_credits), (9.0, 4))
        self.assertEqual(self.count(Subject, semester_id=semester.id), 1)

    def test_repository_move_recalculates_both_semesters(self):
        first = self.semester(1)
        second = self.semester(2)
        maths = self.subject(first.id, "Maths", 4, "A")
        self.subject(first.id, "Physics", 2, "B")
        foreign = run(self.store.semesters.create("someone-else", {"number": 1})).data

        db = self.store.session_factory()
        try:
            with self.assertRaises(PermissionDeniedError):
                crud_ops.update_subject(db, self.user, maths.id, {"semester_id": foreign.id})
            crud_ops.update_subject(db, self.user, maths.id, {"semester_id": second.id})
            old = db.get(Semester, first.id)
            new = db.get(Semester, second.id)
            self.assertEqual((old.sgpa, old.total_credits), (7.0, 2))
            self.assertEqual((new.sgpa, new.total_credits), (9.0, 4))
        finally:
            db.close()

    def test_timed_out_write_still_invalidates(self):
        semester = self.semester()
        run(self.store.semesters.list(self.user))
        self.assertEqual(run(self.store.subjects.list(self.user)), [])

        def slow_create(db, user_id, data):
            time.sleep(0.2)
            return crud_ops.create_subject(db, user_id, data)

        self.store.cache.timeout = 0.05
        with mock.patch.object(self.store.subjects, "create_fn", slow_create):
            result = run(self.store.subjects.create(self.user, {
                "semester_id": semester.id, "name": "Maths", "credits": 4, "grade": "A",
            }))
        self.assertEqual(result.kind, "timeout")

        # the write finished in its thread after the caller gave up
        self.store.cache.timeout = 5
        self.assertEqual([s.name for s in run(self.store.subjects.list(self.user))], ["Maths"])
        self.assertEqual(run(self.store.semesters.list(self.user))[0].sgpa, 9.0)

    def test_duplicate_semester_number(self):
        self.semester(1)
        result = run(self.store.semesters.create(self.user, {"number": 1}))
        self.assertEqual(result.kind, "validation")
        result = run(self.store.semesters.create(self.user, {"number": 0}))
        self.assertEqual(result.kind, "validation")

    def test_subject_names_are_sanitised(self):
        semester = self.semester()
        subject = self.subject(semester.id, "<b>Algebra</b>", 3)
        self.assertEqual(subject.name, "Algebra")

    def test_cannot_add_subject_to_another_users_semester(self):
        semester = self.semester()
        result = run(self.store.subjects.create("intruder", {
            "semester_id": semester.id, "name": "Maths", "credits": 3,
        }))
        self.assertEqual(result.kind, "permission")

    def test_summary_counts_backlogs(self):
        first = self.semester(1)
        second = self.semester(2)
        self.subject(first.id, "Maths", 4, "A")
        self.subject(first.id, "Physics", 3, "F")
        self.subject(second.id, "Chemistry", 3, "I")
        self.subject(second.id, "Biology", 2)
        summary = run(self.store.academic_summary(self.user))
        self.assertEqual(summary.total_semesters, 2)
        self.assertEqual(summary.total_subjects, 4)
        self.assertEqual(summary.total_credits, 12)
        self.assertEqual(summary.backlogs, 2)
        self.assertAlmostEqual(summary.cgpa, 36 / 10)

    def test_deleting_subject_updates_semester(self):
        semester = self.semester()
        self.subject(semester.id, "Maths", 4, "A")
        physics = self.subject(semester.id, "Physics", 2, "B")
        run(self.store.semesters.list(self.user))
        self.ok(self.store.subjects.delete(self.user, physics.id))
        semesters = run(self.store.semesters.list(self.user))
        self.assertEqual(semesters[0].sgpa, 9.0)
        self.assertEqual(semesters[0].total_credits, 4)


class AttendanceAndMarksTests(StoreTestCase):

    def setUp(self):
        super().setUp()
        self.sem = self.semester()

    def attendance(self, total, attended):
        return run(self.store.attendance.create(self.user, {
            "semester_id": self.sem.id, "subject_name": "Maths",
            "total_classes": total, "attended_classes": attended,
        }))

    def marks(self, total, obtained, weightage=100):
        return run(self.store.marks.create(self.user, {
            "semester_id": self.sem.id, "subject_name": "Maths", "exam_type": "Quiz",
            "total_marks": total, "obtained_marks": obtained, "weightage": weightage,
        }))

    def test_attendance_percentage_is_derived(self):
        record = self.attendance(40, 30).data
        self.assertEqual(record.percentage, 75.0)
        self.assertEqual(self.attendance(0, 0).data.percentage, 0.0)

    def test_attended_cannot_exceed_total(self):
        result = self.attendance(10, 11)
        self.assertEqual(result.kind, "validation")
        self.assertEqual(self.count(AttendanceRecord), 0)

    def test_update_checked_against_merged_record(self):
        record = self.attendance(10, 8).data
        result = run(self.store.attendance.update(self.user, record.id, {"total_classes": 5}))
        self.assertEqual(result.kind, "validation")
        result = run(self.store.attendance.update(self.user, record.id, {"attended_classes": 12}))
        self.assertEqual(result.kind, "validation")

        stored = run(self.store.attendance.list(self.user))[0]
        self.assertEqual((stored.attended_classes, stored.total_classes), (8, 10))

        updated = self.ok(self.store.attendance.update(self.user, record.id, {"attended_classes": 9}))
        self.assertEqual(updated.percentage, 90.0)

    def test_marks_are_derived(self):
        record = self.marks(50, 45, weightage=30).data
        self.assertEqual(record.percentage, 90.0)
        self.assertAlmostEqual(record.weighted_percentage, 27.0)

    def test_marks_bounds(self):
        self.assertEqual(self.marks(50, 51).kind, "validation")
        self.assertEqual(self.marks(50, -1).kind, "validation")
        self.assertEqual(self.marks(50, 40, weightage=120).kind, "validation")
        self.assertEqual(self.count(MarksRecord), 0)
        zero = self.marks(0, 0)
        self.assertTrue(zero.ok)
        self.assertEqual(zero.data.percentage, 0.0)

    def test_delete_checks_ownership(self):
        record = self.attendance(10, 8).data
        result = run(self.store.attendance.delete("intruder", record.id))
        self.assertEqual(result.kind, "permission")
        result = run(self.store.attendance.delete(self.user, 9999))
        self.assertEqual(result.kind, "not_found")
        self.assertEqual(result.error, "Attendance record not found")
        self.assertEqual(self.count(AttendanceRecord), 1)

    def test_deleting_semester_cascades(self):
        other = self.semester(2)
        self.subject(self.sem.id, "Maths", 4, "A")
        self.subject(other.id, "Physics", 4, "B")
        self.attendance(10, 8)
        self.marks(50, 40)

        # warm the caches so the delete has to invalidate them
        run(self.store.subjects.list(self.user))
        run(self.store.attendance.list(self.user, self.sem.id))
        run(self.store.marks.list(self.user))

        self.ok(self.store.semesters.delete(self.user, self.sem.id))

        for resource in self.store.resources:
            records = run(resource.list(self.user))
            self.assertFalse([r for r in records if getattr(r, "semester_id", None) == self.sem.id])
        self.assertEqual(run(self.store.attendance.list(self.user, self.sem.id)), [])
        self.assertEqual(self.count(Subject, semester_id=self.sem.id), 0)
        self.assertEqual(self.count(AttendanceRecord), 0)
        self.assertEqual(self.count(MarksRecord), 0)
        self.assertEqual(self.count(Subject), 1)
