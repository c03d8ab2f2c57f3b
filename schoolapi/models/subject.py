from fastapi import HTTPException

from schoolapi.database import rows_to_dicts
from schoolapi.models.base import TableModel


class Subject(TableModel):
    table = "subjects"
    label = "Subject"
    updated_column = None
    default_order = "subject_name"
    fields = ("class_id", "subject_name", "subject_code", "teacher_id", "description")

    def list_with_class(self, class_id=None):
        query = """
            SELECT s.*, c.class_name, t.name AS teacher_name
            FROM subjects s
            JOIN classes c ON s.class_id = c.id
            LEFT JOIN teachers t ON s.teacher_id = t.id
            WHERE s.admin_id = ?
        """
        params = [self.admin_id]
        if class_id:
            query += " AND s.class_id = ?"
            params.append(class_id)
        query += " ORDER BY c.grade_level, s.subject_name"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def delete_subject(self, subject_id):
        self.get_or_404(subject_id)
        results = self.conn.execute(
            "SELECT COUNT(*) FROM exam_results WHERE subject_id = ?", (subject_id,)
        ).fetchone()[0]
        grades = self.conn.execute(
            "SELECT COUNT(*) FROM grades WHERE subject_id = ?", (subject_id,)
        ).fetchone()[0]
        if results or grades:
            raise HTTPException(status_code=400, detail="Cannot delete subject with existing results")
        return self.delete(subject_id)
