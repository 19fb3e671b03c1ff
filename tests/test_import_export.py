import unittest

import schemas
from import_export import export_academic_data, import_academic_data
from support import make_store, run


def subject_rows(store, user):
    semesters = {s.id: s.number for s in run(store.semesters.list(user))}
    return sorted(
        (semesters[s.semester_id], s.name, s.credits, s.grade)
        for s in run(store.subjects.list(user))
    )


class ImportTests(unittest.TestCase):

    def setUp(self):
        self.store = make_store()
        self.user = "student-1"

    def test_imports_semesters_and_subjects(self):
        data = schemas.ImportData.model_validate({"semesters": [
            {"number": 1, "subjects": [
                {"name": "Maths", "credits": 4, "grade": "A"},
                {"name": "Physics", "credits": 2, "grade": "B"},
            ]},
            {"number": 2},
        ]})
        result = run(import_academic_data(self.store, self.user, data))
        self.assertTrue(result.success)
        self.assertEqual(result.imported_counts, {"semesters": 2, "subjects": 2})
        self.assertEqual(result.message, "Successfully imported 4 records")

        semesters = run(self.store.semesters.list(self.user))
        self.assertEqual([s.number for s in semesters], [1, 2])
        self.assertTrue(all(s.source_json_import for s in semesters))
        self.assertAlmostEqual(semesters[0].sgpa, 50 / 6)

    def test_attendance_and_marks_are_not_imported(self):
        data = schemas.ImportData.model_validate({"semesters": [{
            "number": 1,
            "attendance": [{"subject_name": "Maths", "total_classes": 10, "attended_classes": 9}],
            "marks": [{"subject_name": "Maths", "exam_type": "Quiz", "total_marks": 10, "obtained_marks": 9}],
        }]})
        result = run(import_academic_data(self.store, self.user, data))
        self.assertTrue(result.success)
        self.assertEqual(len(result.warnings), 2)
        self.assertEqual(run(self.store.attendance.list(self.user)), [])
        self.assertEqual(run(self.store.marks.list(self.user)), [])

    def test_bad_rows_are_reported_without_stopping(self):
        data = schemas.ImportData.model_validate({"semesters": [
            {"number": 0, "subjects": [{"name": "Lost", "credits": 3}]},
            {"number": 1, "subjects": [
                {"name": "Maths", "credits": 40, "grade": "A"},
                {"name": "Physics", "credits": 3, "grade": "Z"},
                {"name": "Chemistry", "credits": 3, "grade": "B"},
            ]},
        ]})
        result = run(import_academic_data(self.store, self.user, data))
        self.assertTrue(result.success)
        self.assertEqual(result.imported_counts, {"semesters": 1, "subjects": 1})
        self.assertEqual(len(result.errors), 3)
        self.assertTrue(result.message.endswith("with 3 errors"))

    def test_empty_import(self):
        result = run(import_academic_data(self.store, self.user, schemas.ImportData()))
        self.assertFalse(result.success)
        self.assertEqual(result.message, "No semesters data provided")

    def test_reimport_updates_existing_subjects(self):
        first = schemas.ImportData.model_validate({"semesters": [
            {"number": 1, "subjects": [{"name": "Maths", "credits": 4, "grade": "B"}]},
        ]})
        second = schemas.ImportData.model_validate({"semesters": [
            {"number": 1, "subjects": [{"name": "maths", "credits": 4, "grade": "A"}]},
        ]})
        run(import_academic_data(self.store, self.user, first))
        run(self.store.semesters.list(self.user))
        run(import_academic_data(self.store, self.user, second))
        self.assertEqual(subject_rows(self.store, self.user), [(1, "Maths", 4, "A")])
        self.assertEqual(run(self.store.semesters.list(self.user))[0].sgpa, 9.0)


class ExportTests(unittest.TestCase):

    def setUp(self):
        self.store = make_store()
        self.user = "student-1"
        data = schemas.ImportData.model_validate({"semesters": [
            {"number": 1, "subjects": [
                {"name": "Maths", "credits": 4, "grade": "A"},
                {"name": "Physics", "credits": 2, "grade": None},
            ]},
            {"number": 2, "subjects": [{"name": "Chemistry", "credits": 3, "grade": "C+"}]},
        ]})
        run(import_academic_data(self.store, self.user, data))
        sem = run(self.store.semesters.list(self.user))[0]
        run(self.store.attendance.create(self.user, {
            "semester_id": sem.id, "subject_name": "Maths", "total_classes": 10, "attended_classes": 9,
        }))

    def test_export_shape(self):
        exported = run(export_academic_data(self.store, self.user))
        self.assertEqual(set(exported), {"profile", "semesters", "subjects", "attendance", "marks", "exportedAt"})
        self.assertIsNone(exported["profile"])
        self.assertEqual(len(exported["subjects"]), 3)
        self.assertEqual(exported["attendance"][0]["semester_number"], 1)
        self.assertEqual(exported["marks"], [])

    def test_round_trip(self):
        exported = run(export_academic_data(self.store, self.user))
        fresh = make_store()
        result = run(import_academic_data(fresh, "student-2", schemas.ImportData.model_validate(exported)))
        self.assertTrue(result.success)
        self.assertEqual(subject_rows(fresh, "student-2"), subject_rows(self.store, self.user))
