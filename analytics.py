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


from collections import OrderedDict
from datetime import date

import grade_calc


def _mean(values):
    values = list(values)
    return sum(values) / len(values) if values else None


def semester_performance_trends(semesters, subjects, attendance, marks):
    trends = []
    for semester in sorted(semesters, key=lambda s: s.number):
        own_subjects = [s for s in subjects if s.semester_id == semester.id]
        own_attendance = [a for a in attendance if a.semester_id == semester.id]
        to_date = grade_calc.subjects_through_semester(subjects, semesters, semester.number)
        trends.append({
            "semester_number": semester.number,
            "sgpa": grade_calc.round_gpa(semester.sgpa),
            "cgpa_to_date": grade_calc.round_gpa(grade_calc.compute_cgpa(to_date)),
            "total_credits": semester.total_credits,
            "subjects_count": len(own_subjects),
            "average_attendance": _mean(a.percentage for a in own_attendance),
            "total_marks_records": sum(1 for m in marks if m.semester_id == semester.id),
        })
    return trends


def grade_distribution(subjects):
    graded = [s for s in subjects if grade_calc.is_valid_grade(s.grade)]
    buckets = OrderedDict((g, {"count": 0, "total_credits": 0}) for g in grade_calc.GRADE_POINTS)
    for subject in graded:
        buckets[subject.grade]["count"] += 1
        buckets[subject.grade]["total_credits"] += subject.credits
    return [
        {
            "grade": grade,
            "count": bucket["count"],
            "percentage": bucket["count"] / len(graded) * 100,
            "total_credits": bucket["total_credits"],
        }
        for grade, bucket in buckets.items() if bucket["count"]
    ]


def attendance_analytics(attendance):
    records = []
    counts = {"Good": 0, "Warning": 0, "Critical": 0}
    for record in attendance:
        status = grade_calc.get_attendance_status(record.percentage)
        counts[status.status] += 1
        records.append({
            "id": record.id,
            "semester_id": record.semester_id,
            "subject_name": record.subject_name,
            "percentage": record.percentage,
            "status": status.status,
            "color_class": status.color_class,
        })
    return {
        "total_subjects": len(records),
        "average_attendance": _mean(r.percentage for r in attendance) or 0.0,
        "good_attendance_count": counts["Good"],
        "warning_attendance_count": counts["Warning"],
        "critical_attendance_count": counts["Critical"],
        "records": records,
    }


def subject_standings(marks):
    """Overall percentage per (semester, subject) across its exams"""
    grouped = OrderedDict()
    for record in marks:
        grouped.setdefault((record.semester_id, record.subject_name), []).append(record)
    standings = []
    for (semester_id, subject_name), records in grouped.items():
        overall = grade_calc.subject_overall(records)
        standings.append({
            "semester_id": semester_id,
            "subject_name": subject_name,
            "exams": len(records),
            "overall_percentage": overall,
            "performance": grade_calc.get_performance_label(overall),
        })
    return standings


def marks_performance(marks):
    counts = {"Excellent": 0, "Good": 0, "Average": 0, "Poor": 0}
    for record in marks:
        counts[grade_calc.get_performance_label(record.percentage)] += 1
    return {
        "total_exams": len(marks),
        "average_percentage": _mean(m.percentage for m in marks) or 0.0,
        "excellent_performance_count": counts["Excellent"],
        "good_performance_count": counts["Good"],
        "average_performance_count": counts["Average"],
        "poor_performance_count": counts["Poor"],
        "subjects": subject_standings(marks),
    }


def upcoming_exams(marks, today=None):
    today = today or date.today()
    scheduled = [m for m in marks if m.exam_date and m.exam_date >= today]
    scheduled.sort(key=lambda m: (m.exam_date, m.exam_time or ""))
    return [
        {
            "id": m.id,
            "subject_name": m.subject_name,
            "exam_type": m.exam_type,
            "exam_date": m.exam_date.isoformat(),
            "exam_time": m.exam_time,
            "days_left": (m.exam_date - today).days,
        }
        for m in scheduled
    ]

EXCELLENT_GRADES = ("S", "A+", "A")


def _insight(kind, title, description, badge):
    return {"type": kind, "title": title, "description": description, "badge": badge}


def academic_insights(semesters, subjects, attendance, marks=(), limit=6):
    """Short remarks on standing, attendance, grades and SGPA trend"""
    insights = []
    graded = [s for s in subjects if grade_calc.is_valid_grade(s.grade)]

    if graded:
        cgpa = grade_calc.compute_cgpa(graded)
        shown = f"{cgpa:.2f}"
        if cgpa >= 9.0:
            insights.append(_insight("achievement", "Outstanding Performance!",
                                     f"Your CGPA of {shown} is exceptional. Keep up the excellent work!",
                                     "Top Performer"))
        elif cgpa >= 8.0:
            insights.append(_insight("success", "Great Performance",
                                     f"Your CGPA of {shown} shows strong academic performance.", "Excellent"))
        elif cgpa >= 7.0:
            insights.append(_insight("info", "Good Progress",
                                     f"Your CGPA of {shown} is good. Aim for 8.0+ to improve further.", "On Track"))
        elif cgpa < 6.0:
            insights.append(_insight("warning", "Needs Improvement",
                                     f"Your CGPA of {shown} needs attention. Focus on improving grades.",
                                     "Action Needed"))

    held = [a for a in attendance if a.total_classes > 0]
    if held:
        percentages = [grade_calc.attendance_percentage(a.attended_classes, a.total_classes) for a in held]
        average = _mean(percentages)
        low = sum(1 for pct in percentages if pct < 75)
        if average >= 90:
            insights.append(_insight("achievement", "Excellent Attendance",
                                     f"Your average attendance of {round(average)}% is outstanding!", "Perfect"))
        elif low:
            plural = "s" if low > 1 else ""
            insights.append(_insight("warning", "Low Attendance Alert",
                                     f"{low} subject{plural} have attendance below 75%.", "Attention"))

    if graded:
        excellent = sum(1 for s in graded if s.grade in EXCELLENT_GRADES) / len(graded) * 100
        if excellent >= 70:
            insights.append(_insight("achievement", "Excellent Grades",
                                     f"{round(excellent)}% of your subjects have excellent grades (A or above).",
                                     "Outstanding"))
        if len(graded) >= 3 and not any(grade_calc.is_backlog(s.grade) for s in graded):
            insights.append(_insight("success", "No Backlogs!",
                                     "Congratulations! You have cleared all subjects with passing grades.", "Clear"))

    with_sgpa = sorted((s for s in semesters if s.sgpa is not None), key=lambda s: s.number)
    if len(with_sgpa) >= 2:
        change = with_sgpa[-1].sgpa - with_sgpa[-2].sgpa
        if change > 0.5:
            insights.append(_insight("success", "Significant Improvement",
                                     f"Your SGPA improved by {change:.2f} points in the last semester!", "Rising"))
        elif change < -0.5:
            insights.append(_insight("warning", "Performance Decline",
                                     f"Your SGPA decreased by {abs(change):.2f} points. Focus on improvement.",
                                     "Declining"))

    scored = [m for m in marks if m.total_marks > 0]
    if scored:
        average = _mean(grade_calc.raw_percentage(m.obtained_marks, m.total_marks) for m in scored)
        if average >= 90:
            insights.append(_insight("achievement", "Excellent Exam Scores",
                                     f"Your average exam score is {round(average)}%. Outstanding performance!",
                                     "Top Scores"))
    return insights[:limit]


def _achievement(kind, description, current, target):
    progress = min(current / target * 100, 100.0) if target else 0.0
    return {
        "achievement_type": kind,
        "achievement_description": description,
        "achieved": bool(target) and current >= target,
        "progress_percentage": progress,
        "target_value": target,
        "current_value": current,
    }


def academic_achievements(semesters, subjects, attendance):
    graded = [s for s in subjects if grade_calc.is_valid_grade(s.grade)]
    cleared = sum(1 for s in graded if not grade_calc.is_backlog(s.grade))
    held = [a for a in attendance if a.total_classes > 0]
    average_attendance = _mean(a.percentage for a in held) or 0.0
    return [
        _achievement("cgpa", "Reach a CGPA of 8.0",
                     grade_calc.round_gpa(grade_calc.compute_cgpa(graded)), 8.0),
        _achievement("attendance", "Keep average attendance at 75% or above", average_attendance, 75.0),
        _achievement("clearance", "Clear every graded subject", cleared, len(graded)),
        _achievement("semesters", "Complete 8 semesters", len(semesters), 8),
    ]


async def dashboard_analytics(store, user_id, today=None):
    semesters = await store.semesters.list(user_id)
    subjects = await store.subjects.list(user_id)
    attendance = await store.attendance.list(user_id)
    marks = await store.marks.list(user_id)
    return {
        "semester_trends": semester_performance_trends(semesters, subjects, attendance, marks),
        "grade_distribution": grade_distribution(subjects),
        "attendance": attendance_analytics(attendance),
        "marks": marks_performance(marks),
        "upcoming_exams": upcoming_exams(marks, today),
        "insights": academic_insights(semesters, subjects, attendance, marks),
        "achievements": academic_achievements(semesters, subjects, attendance),
    }
