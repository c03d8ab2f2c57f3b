import logging

from fastapi import HTTPException

from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.academic_year import AcademicYear, Term
from schoolapi.models.base import TableModel
from schoolapi.models.grading import GradingSystem

logger = logging.getLogger(__name__)


class Exam(TableModel):
    table = "exams"
    label = "Exam"
    updated_column = None
    default_order = "exam_date, id"
    fields = ("academic_year_id", "term_id", "class_id", "exam_name", "exam_type", "exam_date",
              "total_marks", "is_published", "published_at")

    def list_for_year(self, year_id, class_id=None):
        query = """
            SELECT e.*, t.term_number, c.class_name
            FROM exams e
            LEFT JOIN terms t ON e.term_id = t.id
            LEFT JOIN classes c ON e.class_id = c.id
            WHERE e.admin_id = ? AND e.academic_year_id = ?
        """
        params = [self.admin_id, year_id]
        if class_id:
            # School wide exams apply to every class
            query += " AND (e.class_id = ? OR e.class_id IS NULL)"
            params.append(class_id)
        query += " ORDER BY e.exam_date, e.id"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def publish(self, exam_id):
        exam = self.get_or_404(exam_id)
        if exam["is_published"]:
            raise HTTPException(status_code=400, detail="Exam already published")

        self.update(exam_id, {"is_published": True, "published_at": now_iso()})
        toggled = False
        if exam["term_id"]:
            self.conn.execute(
                "UPDATE terms SET exams_published = exams_published + 1 WHERE id = ?", (exam["term_id"],)
            )
            term = self.conn.execute("SELECT * FROM terms WHERE id = ?", (exam["term_id"],)).fetchone()
            if term["exams_published"] >= term["exams_required"]:
                year = AcademicYear(self.conn, self.admin_id).get_or_404(exam["academic_year_id"])
                toggled = Term(self.conn).check_and_toggle(year)
        logger.info(f"Exam {exam_id} published (term toggled: {toggled})")
        return toggled

    def delete_exam(self, exam_id):
        exam = self.get_or_404(exam_id)
        if exam["is_published"] and exam["term_id"]:
            self.conn.execute(
                "UPDATE terms SET exams_published = exams_published - 1 WHERE id = ? AND exams_published > 0",
                (exam["term_id"],),
            )
        return self.delete(exam_id)


class ExamResult(TableModel):
    table = "exam_results"
    label = "Exam result"
    tenant_column = None
    fields = ("exam_id", "student_id", "subject_id", "test_score", "exam_score", "total_score",
              "marks_obtained", "average_score", "grade", "remarks", "approval_status")

    @staticmethod
    def compute_scores(marks_obtained=None, test_score=None, exam_score=None):
        if test_score is None and exam_score is None:
            if marks_obtained is None:
                raise HTTPException(status_code=400, detail="marks_obtained or test_score/exam_score is required")
            test_score, exam_score, total = 0.0, float(marks_obtained), float(marks_obtained)
        else:
            test_score = float(test_score or 0)
            exam_score = float(exam_score or 0)
            total = test_score + exam_score
        if not 0 <= total <= 100 or test_score < 0 or exam_score < 0:
            raise HTTPException(status_code=400, detail="Scores must be between 0 and 100")
        return test_score, exam_score, total

    def record(self, exam, data, admin_id):
        for table, key, label in (("students", "student_id", "Student"), ("subjects", "subject_id", "Subject")):
            found = self.conn.execute(
                f"SELECT id FROM {table} WHERE id = ? AND admin_id = ?", (data[key], admin_id)
            ).fetchone()
            if found is None:
                raise HTTPException(status_code=404, detail=f"{label} not found")

        test_score, exam_score, total = self.compute_scores(
            data.get("marks_obtained"), data.get("test_score"), data.get("exam_score")
        )
        grade = GradingSystem(self.conn, admin_id).calculate(total, exam["academic_year_id"])
        ts = now_iso()
        row = self.conn.execute("""
            INSERT INTO exam_results (exam_id, student_id, subject_id, test_score, exam_score, total_score,
                                      marks_obtained, average_score, grade, remarks, approval_status,
                                      created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (exam_id, student_id, subject_id) DO UPDATE SET
                test_score = excluded.test_score,
                exam_score = excluded.exam_score,
                total_score = excluded.total_score,
                marks_obtained = excluded.marks_obtained,
                average_score = excluded.average_score,
                grade = excluded.grade,
                remarks = excluded.remarks,
                approval_status = excluded.approval_status,
                updated_at = excluded.updated_at
            RETURNING id
        """, (
            exam["id"], data["student_id"], data["subject_id"], test_score, exam_score, total,
            total, total, grade["grade_label"], data.get("remarks"),
            data.get("approval_status") or "approved", ts, ts,
        )).fetchone()
        return row[0], grade["grade_label"], total

    def for_exam(self, exam_id, subject_id=None):
        query = """
            SELECT er.*, st.name AS student_name, st.id_number, sb.subject_name
            FROM exam_results er
            JOIN students st ON er.student_id = st.id
            JOIN subjects sb ON er.subject_id = sb.id
            WHERE er.exam_id = ?
        """
        params = [exam_id]
        if subject_id:
            query += " AND er.subject_id = ?"
            params.append(subject_id)
        query += " ORDER BY sb.subject_name, er.average_score DESC, er.student_id"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def for_student(self, student_id, admin_id, academic_year_id=None):
        query = """
            SELECT er.*, e.exam_name, e.exam_type, e.academic_year_id, sb.subject_name
            FROM exam_results er
            JOIN exams e ON er.exam_id = e.id
            JOIN subjects sb ON er.subject_id = sb.id
            WHERE er.student_id = ? AND e.admin_id = ?
        """
        params = [student_id, admin_id]
        if academic_year_id:
            query += " AND e.academic_year_id = ?"
            params.append(academic_year_id)
        query += " ORDER BY e.exam_date, sb.subject_name"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def set_approval(self, result_id, status, admin_id):
        row = self.conn.execute("""
            SELECT er.id FROM exam_results er
            JOIN exams e ON er.exam_id = e.id
            WHERE er.id = ? AND e.admin_id = ?
        """, (result_id, admin_id)).fetchone()
        if row is None:
            raise HTTPException(status_code=404, detail="Exam result not found")
        return self.update(result_id, {"approval_status": status})
