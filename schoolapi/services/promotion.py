"""End-of-year promotion.

Every enrolled student gets one outcome from their average over the year's
published, approved exam results:

    average >= promotion_average   promoted (or waitlist when no class fits)
    average >= repeat_average      repeat
    otherwise                      dropped

Promoted students are placed in a class one grade level up. Candidate classes
are tried strictest placement threshold first; a class is taken when the
student meets its `placement_min_average` and it still has room.
"""
import logging

from fastapi import HTTPException

from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.academic_year import AcademicYear
from schoolapi.models.school_class import SchoolClass
from schoolapi.models.student import Enrollment

logger = logging.getLogger(__name__)

PROMOTION_STATUSES = ("promoted", "waitlist", "repeat", "dropped")


def classify(average, promotion_average, repeat_average):
    if average >= promotion_average:
        return "promoted"
    if average >= repeat_average:
        return "repeat"
    return "dropped"


def pick_destination(average, candidates, placed):
    """First candidate the student qualifies for with a free seat; `placed` counts seats taken so far."""
    for candidate in candidates:
        if average < (candidate["placement_min_average"] or 0):
            continue
        capacity = candidate["capacity"]
        if capacity is not None and placed.get(candidate["id"], 0) >= capacity:
            continue
        return candidate
    return None


class PromotionService:
    def __init__(self, conn, admin_id):
        self.conn = conn
        self.admin_id = admin_id
        self.years = AcademicYear(conn, admin_id)
        self.classes = SchoolClass(conn, admin_id)

    def check_ready(self, year):
        if year["current_term"] != year["number_of_terms"]:
            raise HTTPException(status_code=400, detail="Promotions can only run in the final term")
        last_term = self.conn.execute(
            "SELECT id FROM terms WHERE academic_year_id = ? AND term_number = ?",
            (year["id"], year["number_of_terms"]),
        ).fetchone()
        if last_term is None:
            raise HTTPException(status_code=400, detail="Final term not found for this academic year")
        row = self.conn.execute("""
            SELECT COUNT(*) AS total, SUM(CASE WHEN is_published = 1 THEN 1 ELSE 0 END) AS published
            FROM exams WHERE term_id = ?
        """, (last_term["id"],)).fetchone()
        if not row["total"] or int(row["published"] or 0) < row["total"]:
            raise HTTPException(status_code=400, detail="All final term exams must be published before promotion")

    def _classes_with_students(self, year_id):
        rows = self.conn.execute("""
            SELECT DISTINCT c.id, c.class_name, c.grade_level
            FROM classes c
            JOIN student_enrollments se ON se.class_id = c.id
            WHERE c.admin_id = ? AND se.academic_year_id = ? AND se.status IN ('active', 'completed')
            ORDER BY c.grade_level, c.id
        """, (self.admin_id, year_id)).fetchall()
        return rows_to_dicts(rows)

    def _student_averages(self, year_id, class_id):
        rows = self.conn.execute("""
            SELECT se.id AS enrollment_id, se.student_id, COALESCE(AVG(er.marks_obtained), 0) AS avg_marks
            FROM student_enrollments se
            LEFT JOIN exam_results er
                ON er.student_id = se.student_id AND er.approval_status = 'approved'
                AND er.exam_id IN (SELECT id FROM exams WHERE academic_year_id = ? AND is_published = 1)
            WHERE se.class_id = ? AND se.academic_year_id = ? AND se.status IN ('active', 'completed')
            GROUP BY se.id, se.student_id
            ORDER BY avg_marks DESC, se.student_id
        """, (year_id, class_id, year_id)).fetchall()
        return [
            {"enrollment_id": r["enrollment_id"], "student_id": r["student_id"],
             "average": float(r["avg_marks"]), "rank": rank}
            for rank, r in enumerate(rows, start=1)
        ]

    def plan(self, year):
        """Outcome for every enrolled student, grouped by source class. Writes nothing."""
        placed = {}
        plans = []
        for school_class in self._classes_with_students(year["id"]):
            candidates = self.classes.next_grade_candidates(school_class["grade_level"])
            students = []
            for student in self._student_averages(year["id"], school_class["id"]):
                outcome = classify(student["average"], year["promotion_average"], year["repeat_average"])
                destination = None
                if outcome == "promoted":
                    destination = pick_destination(student["average"], candidates, placed)
                    if destination is None:
                        outcome = "waitlist"
                    else:
                        placed[destination["id"]] = placed.get(destination["id"], 0) + 1
                students.append(dict(student, outcome=outcome,
                                     destination_id=destination["id"] if destination else None,
                                     destination_name=destination["class_name"] if destination else None))
            plans.append({"class": school_class, "students": students})
        return plans

    def process(self, year_id):
        year = self.years.get_or_404(year_id)
        self.check_ready(year)

        ts = now_iso()
        results = []
        for class_plan in self.plan(year):
            counts = {status: 0 for status in PROMOTION_STATUSES}
            for student in class_plan["students"]:
                counts[student["outcome"]] += 1
                status = "completed" if student["outcome"] == "promoted" else "active"
                self.conn.execute("""
                    UPDATE student_enrollments
                    SET status = ?, promotion_status = ?, class_average = ?, promoted_to_class_id = ?, updated_at = ?
                    WHERE id = ?
                """, (status, student["outcome"], round(student["average"], 2), student["destination_id"], ts,
                      student["enrollment_id"]))
            school_class = class_plan["class"]
            logger.info(f"Promotion {school_class['class_name']}: promoted={counts['promoted']} "
                        f"waitlist={counts['waitlist']} repeat={counts['repeat']} dropped={counts['dropped']}")
            results.append(dict(counts, class_id=school_class["id"], class_name=school_class["class_name"],
                                total_students=len(class_plan["students"])))
        return results

    def preview(self, year_id):
        year = self.years.get_or_404(year_id)
        preview = []
        for class_plan in self.plan(year):
            destinations = {}
            counts = {status: 0 for status in PROMOTION_STATUSES}
            for student in class_plan["students"]:
                counts[student["outcome"]] += 1
                if student["destination_id"]:
                    entry = destinations.setdefault(student["destination_id"], {
                        "class_id": student["destination_id"],
                        "class_name": student["destination_name"],
                        "count": 0,
                    })
                    entry["count"] += 1
            school_class = class_plan["class"]
            preview.append({
                "class_id": school_class["id"],
                "class_name": school_class["class_name"],
                "total_students": len(class_plan["students"]),
                "destinations": list(destinations.values()),
                "overflow": counts["waitlist"],
                "repeat": counts["repeat"],
                "dropped": counts["dropped"],
            })
        return preview

    def stats(self, year_id):
        self.years.get_or_404(year_id)
        rows = self.conn.execute("""
            SELECT promotion_status, COUNT(*) AS count
            FROM student_enrollments
            WHERE academic_year_id = ?
            GROUP BY promotion_status
        """, (year_id,)).fetchall()
        stats = {status: 0 for status in PROMOTION_STATUSES}
        stats["pending"] = 0
        for row in rows:
            stats[row["promotion_status"] or "pending"] = int(row["count"])
        stats["total"] = sum(stats.values())
        return stats

    def manual_assign(self, student_id, target_year_id, class_id, override_capacity=False):
        self.years.get_or_404(target_year_id)
        school_class = self.classes.get_or_404(class_id)
        student = self.conn.execute(
            "SELECT id FROM students WHERE id = ? AND admin_id = ?", (student_id, self.admin_id)
        ).fetchone()
        if student is None:
            raise HTTPException(status_code=404, detail="Student not found")
        enrollments = Enrollment(self.conn)
        if enrollments.exists_for_year(student_id, target_year_id):
            raise HTTPException(status_code=400, detail="Student already enrolled in the target academic year")

        capacity = school_class["capacity"]
        if capacity is not None and not override_capacity:
            if self.classes.active_enrollment_count(class_id, target_year_id) >= capacity:
                raise HTTPException(status_code=409, detail="Class is at full capacity")
        return enrollments.enroll(student_id, class_id, target_year_id)

    def rollover(self, source_year_id, target_year_id, include_waitlist=False):
        self.years.get_or_404(source_year_id)
        self.years.get_or_404(target_year_id)
        statuses = ["promoted", "repeat"] + (["waitlist"] if include_waitlist else [])
        placeholders = ", ".join("?" for _ in statuses)
        rows = self.conn.execute(f"""
            SELECT se.*, c.grade_level
            FROM student_enrollments se
            JOIN classes c ON se.class_id = c.id
            WHERE se.academic_year_id = ? AND c.admin_id = ? AND se.promotion_status IN ({placeholders})
            ORDER BY c.grade_level, se.class_average DESC, se.student_id
        """, [source_year_id, self.admin_id] + statuses).fetchall()

        enrollments = Enrollment(self.conn)
        created, skipped, errors = 0, 0, []
        for row in rows:
            if enrollments.exists_for_year(row["student_id"], target_year_id):
                skipped += 1
                continue

            if row["promotion_status"] == "promoted":
                class_id = row["promoted_to_class_id"]
            elif row["promotion_status"] == "repeat":
                class_id = row["class_id"]
            else:
                class_id = self._waitlist_placement(row, target_year_id)

            if class_id is None:
                errors.append({"student_id": row["student_id"], "message": "No class with capacity available"})
                continue
            enrollments.create({
                "student_id": row["student_id"],
                "class_id": class_id,
                "academic_year_id": target_year_id,
                "status": "active",
            })
            created += 1

        logger.info(f"Rollover {source_year_id} -> {target_year_id}: created={created} skipped={skipped} "
                    f"errors={len(errors)}")
        return {"created": created, "skipped": skipped, "errors": errors}

    def _waitlist_placement(self, enrollment, target_year_id):
        average = float(enrollment["class_average"] or 0)
        candidates = sorted(
            self.classes.next_grade_candidates(enrollment["grade_level"]),
            key=lambda c: (c["placement_min_average"] or 0, c["id"]),
        )
        for candidate in candidates:
            if average < (candidate["placement_min_average"] or 0):
                continue
            capacity = candidate["capacity"]
            if capacity is None or self.classes.active_enrollment_count(candidate["id"], target_year_id) < capacity:
                return candidate["id"]
        return None

    def legacy_promote(self, year_id):
        """Pass/fail promotion on `passing_percentage`, recording attendance alongside the average."""
        year = self.years.get_or_404(year_id)
        ts = now_iso()
        summary = {"promoted": 0, "graduated": 0, "failed": 0}
        for school_class in self._classes_with_students(year_id):
            has_next = bool(self.classes.next_grade_candidates(school_class["grade_level"]))
            for student in self._student_averages(year_id, school_class["id"]):
                attendance = self.conn.execute("""
                    SELECT COUNT(*) AS total, SUM(CASE WHEN status = 'present' THEN 1 ELSE 0 END) AS present
                    FROM attendance WHERE student_id = ? AND academic_year_id = ?
                """, (student["student_id"], year_id)).fetchone()
                total = int(attendance["total"] or 0)
                attendance_pct = round(int(attendance["present"] or 0) / total * 100, 2) if total else 0

                if student["average"] >= year["passing_percentage"]:
                    outcome = "promoted" if has_next else "graduated"
                else:
                    outcome = "failed"
                summary[outcome] += 1
                self.conn.execute("""
                    UPDATE student_enrollments
                    SET promotion_status = ?, class_average = ?, attendance_percentage = ?, updated_at = ?
                    WHERE id = ?
                """, (outcome, round(student["average"], 2), attendance_pct, ts, student["enrollment_id"]))
        logger.info(f"Legacy promotion for year {year_id}: {summary}")
        return summary
