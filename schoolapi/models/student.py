from fastapi import HTTPException

from schoolapi.database import INTEGRITY_ERRORS, rows_to_dicts
from schoolapi.models.base import TableModel


class Student(TableModel):
    table = "students"
    label = "Student"
    default_order = "name"
    fields = ("id_number", "name", "email", "phone", "gender", "date_of_birth", "status",
              "house_id", "house_block_id", "is_registered", "suspension_status",
              "suspension_reason", "suspension_start_date", "suspension_end_date")

    def list_students(self, academic_year_id=None, class_id=None):
        query = """
            SELECT st.*, se.class_id, c.class_name
            FROM students st
            LEFT JOIN student_enrollments se
                ON se.student_id = st.id AND se.academic_year_id = ? AND se.status = 'active'
            LEFT JOIN classes c ON se.class_id = c.id
            WHERE st.admin_id = ?
        """
        params = [academic_year_id, self.admin_id]
        if class_id:
            query += " AND se.class_id = ?"
            params.append(class_id)
        query += " ORDER BY st.name"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def with_enrollment(self, student_id, academic_year_id=None):
        student = self.get_or_404(student_id)
        row = self.conn.execute("""
            SELECT se.*, c.class_name, c.grade_level
            FROM student_enrollments se
            JOIN classes c ON se.class_id = c.id
            WHERE se.student_id = ? AND se.academic_year_id = ?
        """, (student_id, academic_year_id)).fetchone()
        student["enrollment"] = dict(row) if row else None
        return student


class Enrollment(TableModel):
    table = "student_enrollments"
    label = "Enrollment"
    tenant_column = None
    fields = ("student_id", "class_id", "academic_year_id", "status", "promotion_status",
              "class_average", "attendance_percentage", "promoted_to_class_id")

    def enroll(self, student_id, class_id, academic_year_id):
        try:
            return self.create({
                "student_id": student_id,
                "class_id": class_id,
                "academic_year_id": academic_year_id,
                "status": "active",
            })
        except INTEGRITY_ERRORS:
            raise HTTPException(status_code=409, detail="Student already enrolled for this academic year")

    def active_for(self, student_id, academic_year_id):
        row = self.conn.execute("""
            SELECT * FROM student_enrollments
            WHERE student_id = ? AND academic_year_id = ? AND status = 'active'
            LIMIT 1
        """, (student_id, academic_year_id)).fetchone()
        return dict(row) if row else None

    def exists_for_year(self, student_id, academic_year_id):
        row = self.conn.execute(
            "SELECT id FROM student_enrollments WHERE student_id = ? AND academic_year_id = ?",
            (student_id, academic_year_id),
        ).fetchone()
        return row is not None

    def history(self, student_id):
        rows = self.conn.execute("""
            SELECT se.*, c.class_name, ay.year_name
            FROM student_enrollments se
            JOIN classes c ON se.class_id = c.id
            JOIN academic_years ay ON se.academic_year_id = ay.id
            WHERE se.student_id = ?
            ORDER BY ay.start_date DESC
        """, (student_id,)).fetchall()
        return rows_to_dicts(rows)

    def by_promotion_status(self, academic_year_id, promotion_status):
        rows = self.conn.execute("""
            SELECT se.*, st.name AS student_name, st.id_number, c.class_name, c.grade_level
            FROM student_enrollments se
            JOIN students st ON se.student_id = st.id
            JOIN classes c ON se.class_id = c.id
            WHERE se.academic_year_id = ? AND se.promotion_status = ?
            ORDER BY c.grade_level, se.class_average DESC
        """, (academic_year_id, promotion_status)).fetchall()
        return rows_to_dicts(rows)
