import logging
from typing import Optional

from fastapi import HTTPException

from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.base import TableModel

logger = logging.getLogger(__name__)

# Used when an admin has not configured any grade ranges
DEFAULT_SCALE = [
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
]

FAIL_GRADE = {"grade_label": "F", "grade_point": 0.00, "description": "Fail", "is_passing": False}


def letter_grade(score: float) -> str:
    for minimum, label in DEFAULT_SCALE:
        if score >= minimum:
            return label
    return "F"


def _preset(rows):
    keys = ("grade_label", "min_score", "max_score", "grade_point", "description", "is_passing")
    return [dict(zip(keys, row)) for row in rows]


PRESETS = {
    "gpa_5": _preset([
        ("A", 90, 100, 5.0, "Outstanding", True),
        ("B", 80, 89.99, 4.0, "Excellent", True),
        ("C", 70, 79.99, 3.0, "Good", True),
        ("D", 60, 69.99, 2.0, "Satisfactory", True),
        ("E", 50, 59.99, 1.0, "Pass", True),
        ("F", 0, 49.99, 0.0, "Fail", False),
    ]),
    "gpa_4": _preset([
        ("A", 90, 100, 4.0, "Excellent", True),
        ("B", 80, 89.99, 3.0, "Good", True),
        ("C", 70, 79.99, 2.0, "Average", True),
        ("D", 60, 69.99, 1.0, "Below Average", True),
        ("F", 0, 59.99, 0.0, "Fail", False),
    ]),
    "average": _preset([
        ("A", 85, 100, None, "Excellent", True),
        ("B", 70, 84.99, None, "Very Good", True),
        ("C", 60, 69.99, None, "Good", True),
        ("D", 50, 59.99, None, "Pass", True),
        ("E", 40, 49.99, None, "Weak Pass", True),
        ("F", 0, 39.99, None, "Fail", False),
    ]),
}


class GradingSystem(TableModel):
    table = "grading_system"
    label = "Grade range"
    fields = ("academic_year_id", "grade_label", "min_score", "max_score",
              "grade_point", "description", "is_passing", "is_active")

    def get_scheme(self, academic_year_id: Optional[int] = None):
        query = "SELECT * FROM grading_system WHERE admin_id = ? AND is_active = 1"
        params = [self.admin_id]
        if academic_year_id:
            # Year specific ranges win over the admin defaults
            query += (" AND (academic_year_id = ? OR academic_year_id IS NULL)"
                      " ORDER BY CASE WHEN academic_year_id IS NULL THEN 1 ELSE 0 END, min_score DESC")
            params.append(academic_year_id)
        else:
            query += " AND academic_year_id IS NULL ORDER BY min_score DESC"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def calculate(self, score: float, academic_year_id: Optional[int] = None):
        scheme = self.get_scheme(academic_year_id)
        if not scheme:
            label = letter_grade(score)
            return {"grade_label": label, "grade_point": None, "description": None, "is_passing": label != "F"}

        for grade in scheme:
            if grade["min_score"] <= score <= grade["max_score"]:
                return {
                    "grade_label": grade["grade_label"],
                    "grade_point": grade["grade_point"],
                    "description": grade["description"],
                    "is_passing": bool(grade["is_passing"]),
                }
        return dict(FAIL_GRADE)

    def has_overlap(self, min_score, max_score, academic_year_id=None, exclude_id=None):
        query = """
            SELECT id FROM grading_system
            WHERE admin_id = ? AND is_active = 1
            AND (
                (? BETWEEN min_score AND max_score)
                OR (? BETWEEN min_score AND max_score)
                OR (min_score BETWEEN ? AND ?)
                OR (max_score BETWEEN ? AND ?)
            )
        """
        params = [self.admin_id, min_score, max_score, min_score, max_score, min_score, max_score]
        if academic_year_id:
            query += " AND academic_year_id = ?"
            params.append(academic_year_id)
        else:
            query += " AND academic_year_id IS NULL"
        if exclude_id:
            query += " AND id != ?"
            params.append(exclude_id)
        return self.conn.execute(query, params).fetchone() is not None

    @staticmethod
    def validate_range(min_score, max_score):
        if not (0 <= min_score <= 100 and 0 <= max_score <= 100):
            raise HTTPException(status_code=400, detail="Scores must be between 0 and 100")
        if min_score >= max_score:
            raise HTTPException(status_code=400, detail="min_score must be less than max_score")

    def create_range(self, data):
        self.validate_range(data["min_score"], data["max_score"])
        if self.has_overlap(data["min_score"], data["max_score"], data.get("academic_year_id")):
            raise HTTPException(status_code=400, detail="Score range overlaps with existing grade range")
        data = dict(data, grade_label=data["grade_label"].upper(), is_active=True)
        return self.create(data)

    def update_range(self, range_id, data):
        existing = self.get_or_404(range_id)
        min_score = data.get("min_score", existing["min_score"])
        max_score = data.get("max_score", existing["max_score"])
        self.validate_range(min_score, max_score)
        if self.has_overlap(min_score, max_score, existing["academic_year_id"], exclude_id=range_id):
            raise HTTPException(status_code=400, detail="Score range overlaps with existing grade range")
        if data.get("grade_label"):
            data = dict(data, grade_label=data["grade_label"].upper())
        return self.update(range_id, data)

    def deactivate(self, range_id):
        self.get_or_404(range_id)
        return self.update(range_id, {"is_active": False})

    def create_preset(self, preset_type, academic_year_id=None):
        if preset_type not in PRESETS:
            raise HTTPException(status_code=400, detail="Invalid preset type. Available: gpa_5, gpa_4, average")
        created = 0
        for grade in PRESETS[preset_type]:
            if self.has_overlap(grade["min_score"], grade["max_score"], academic_year_id):
                logger.info(f"Preset {preset_type}: skipped overlapping range {grade['grade_label']}")
                continue
            self.create(dict(grade, academic_year_id=academic_year_id, is_active=True))
            created += 1
        return created

    def statistics(self, academic_year_id):
        rows = self.conn.execute("""
            SELECT gs.grade_label, gs.description,
                   COUNT(er.id) AS student_count,
                   AVG(er.total_score) AS avg_score
            FROM grading_system gs
            LEFT JOIN exams e ON e.admin_id = gs.admin_id AND e.academic_year_id = ?
            LEFT JOIN exam_results er ON er.exam_id = e.id AND er.grade = gs.grade_label
            WHERE gs.admin_id = ? AND gs.is_active = 1
            AND (gs.academic_year_id = ? OR gs.academic_year_id IS NULL)
            GROUP BY gs.grade_label, gs.description
            ORDER BY MAX(gs.min_score) DESC
        """, (academic_year_id, self.admin_id, academic_year_id)).fetchall()
        stats = rows_to_dicts(rows)
        for row in stats:
            if row["avg_score"] is not None:
                row["avg_score"] = round(float(row["avg_score"]), 2)
        return stats


class Grade(TableModel):
    table = "grades"
    label = "Grade"
    tenant_column = None
    fields = ("student_id", "subject_id", "academic_year_id", "score", "percentage", "grade", "remarks")

    def update_or_create(self, student_id, subject_id, academic_year_id, score, percentage=None,
                         grade=None, remarks=None):
        ts = now_iso()
        row = self.conn.execute("""
            INSERT INTO grades (student_id, subject_id, academic_year_id, score, percentage, grade, remarks,
                                created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (student_id, subject_id, academic_year_id) DO UPDATE SET
                score = excluded.score,
                percentage = excluded.percentage,
                grade = excluded.grade,
                remarks = excluded.remarks,
                updated_at = excluded.updated_at
            RETURNING id
        """, (student_id, subject_id, academic_year_id, score, percentage, grade, remarks, ts, ts)).fetchone()
        return row[0]

    def for_student(self, student_id, academic_year_id=None):
        query = """
            SELECT g.*, s.subject_name, s.subject_code
            FROM grades g
            JOIN subjects s ON g.subject_id = s.id
            WHERE g.student_id = ?
        """
        params = [student_id]
        if academic_year_id:
            query += " AND g.academic_year_id = ?"
            params.append(academic_year_id)
        query += " ORDER BY s.subject_name"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())
