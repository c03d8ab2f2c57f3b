import re

from fastapi import HTTPException

from schoolapi.database import rows_to_dicts
from schoolapi.models.base import TableModel


def parse_grade_level(class_name: str) -> int:
    """'JSS 2B' -> 2, 'Grade 10' -> 10, 'Nursery' -> 0"""
    match = re.search(r"\d+", class_name or "")
    return int(match.group()) if match else 0


class SchoolClass(TableModel):
    table = "classes"
    label = "Class"
    default_order = "grade_level, class_name"
    fields = ("class_name", "grade_level", "section", "capacity", "placement_min_average")

    def create_class(self, data):
        data = dict(data)
        if data.get("grade_level") is None:
            data["grade_level"] = parse_grade_level(data["class_name"])
        if data.get("placement_min_average") is None:
            data["placement_min_average"] = 0
        return self.create(data)

    def list_with_counts(self, academic_year_id=None):
        rows = self.conn.execute("""
            SELECT c.*,
                   (SELECT COUNT(*) FROM student_enrollments se
                    WHERE se.class_id = c.id AND se.academic_year_id = ? AND se.status = 'active') AS student_count,
                   (SELECT COUNT(*) FROM subjects s WHERE s.class_id = c.id) AS subject_count
            FROM classes c
            WHERE c.admin_id = ?
            ORDER BY c.grade_level, c.class_name
        """, (academic_year_id, self.admin_id)).fetchall()
        return rows_to_dicts(rows)

    def delete_class(self, class_id):
        self.get_or_404(class_id)
        enrolled = self.conn.execute(
            "SELECT COUNT(*) FROM student_enrollments WHERE class_id = ?", (class_id,)
        ).fetchone()[0]
        if enrolled:
            raise HTTPException(status_code=400, detail="Cannot delete class with enrolled students")
        return self.delete(class_id)

    def subjects(self, class_id):
        rows = self.conn.execute("""
            SELECT s.*, t.name AS teacher_name
            FROM subjects s
            LEFT JOIN teachers t ON s.teacher_id = t.id
            WHERE s.class_id = ? AND s.admin_id = ?
            ORDER BY s.subject_name
        """, (class_id, self.admin_id)).fetchall()
        return rows_to_dicts(rows)

    def students(self, class_id, academic_year_id):
        rows = self.conn.execute("""
            SELECT st.*, se.id AS enrollment_id, se.status AS enrollment_status
            FROM students st
            JOIN student_enrollments se ON se.student_id = st.id
            WHERE se.class_id = ? AND se.academic_year_id = ? AND se.status = 'active' AND st.admin_id = ?
            ORDER BY st.name
        """, (class_id, academic_year_id, self.admin_id)).fetchall()
        return rows_to_dicts(rows)

    def next_grade_candidates(self, grade_level):
        """Destination classes for promotion, strictest placement threshold first."""
        rows = self.conn.execute("""
            SELECT * FROM classes
            WHERE admin_id = ? AND grade_level = ?
            ORDER BY placement_min_average DESC, id
        """, (self.admin_id, grade_level + 1)).fetchall()
        return rows_to_dicts(rows)

    def active_enrollment_count(self, class_id, academic_year_id):
        return self.conn.execute("""
            SELECT COUNT(*) FROM student_enrollments
            WHERE class_id = ? AND academic_year_id = ? AND status = 'active'
        """, (class_id, academic_year_id)).fetchone()[0]
