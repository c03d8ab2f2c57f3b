import logging

from fastapi import HTTPException

from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.exam import Exam

logger = logging.getLogger(__name__)


def competition_positions(scores):
    """Positions for scores already sorted high to low; ties share a place (90, 90, 80 -> 1, 1, 3)."""
    positions = []
    position = 0
    previous = None
    for index, score in enumerate(scores):
        if previous is None or score < previous:
            position = index + 1
        positions.append(position)
        previous = score
    return positions


class RankingService:
    def __init__(self, conn, admin_id):
        self.conn = conn
        self.admin_id = admin_id

    def _exam(self, exam_id):
        return Exam(self.conn, self.admin_id).get_or_404(exam_id)

    def calculate_subject(self, exam_id, subject_id, class_id):
        exam = self._exam(exam_id)
        rows = self.conn.execute("""
            SELECT er.id, er.student_id, er.average_score
            FROM exam_results er
            JOIN student_enrollments se
                ON se.student_id = er.student_id AND se.academic_year_id = ? AND se.class_id = ?
            WHERE er.exam_id = ? AND er.subject_id = ? AND er.approval_status = 'approved'
            ORDER BY er.average_score DESC, er.student_id
        """, (exam["academic_year_id"], class_id, exam_id, subject_id)).fetchall()

        # Students whose results were rejected since the last run drop out
        self.conn.execute(
            "DELETE FROM subject_rankings WHERE exam_id = ? AND subject_id = ? AND class_id = ?",
            (exam_id, subject_id, class_id),
        )
        self.conn.execute("""
            UPDATE exam_results SET subject_position = NULL, subject_total_students = NULL
            WHERE exam_id = ? AND subject_id = ? AND student_id IN (
                SELECT student_id FROM student_enrollments WHERE academic_year_id = ? AND class_id = ?
            )
        """, (exam_id, subject_id, exam["academic_year_id"], class_id))

        total = len(rows)
        ts = now_iso()
        positions = competition_positions([float(r["average_score"] or 0) for r in rows])
        for row, position in zip(rows, positions):
            self.conn.execute("""
                INSERT INTO subject_rankings (exam_id, subject_id, class_id, student_id, average_score,
                                              position, total_students, is_published, calculated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT (exam_id, subject_id, student_id) DO UPDATE SET
                    class_id = excluded.class_id,
                    average_score = excluded.average_score,
                    position = excluded.position,
                    total_students = excluded.total_students,
                    is_published = 0,
                    calculated_at = excluded.calculated_at
            """, (exam_id, subject_id, class_id, row["student_id"], row["average_score"], position, total, ts))
            self.conn.execute(
                "UPDATE exam_results SET subject_position = ?, subject_total_students = ? WHERE id = ?",
                (position, total, row["id"]),
            )
        logger.info(f"Subject rankings: exam={exam_id} subject={subject_id} class={class_id} students={total}")
        return total

    def calculate_class(self, exam_id, class_id):
        exam = self._exam(exam_id)
        rows = self.conn.execute("""
            SELECT er.student_id,
                   AVG(er.average_score) AS avg_score,
                   SUM(er.total_score) AS sum_score,
                   COUNT(er.subject_id) AS subject_count
            FROM exam_results er
            JOIN student_enrollments se
                ON se.student_id = er.student_id AND se.academic_year_id = ? AND se.class_id = ?
            WHERE er.exam_id = ? AND er.approval_status = 'approved'
            GROUP BY er.student_id
            ORDER BY avg_score DESC, sum_score DESC, er.student_id
        """, (exam["academic_year_id"], class_id, exam_id)).fetchall()

        self.conn.execute("DELETE FROM class_rankings WHERE exam_id = ? AND class_id = ?", (exam_id, class_id))

        total = len(rows)
        ts = now_iso()
        positions = competition_positions([float(r["avg_score"] or 0) for r in rows])
        for row, position in zip(rows, positions):
            self.conn.execute("""
                INSERT INTO class_rankings (exam_id, class_id, student_id, average_score, total_score,
                                            subject_count, position, total_students, is_published, calculated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, 0, ?)
                ON CONFLICT (exam_id, class_id, student_id) DO UPDATE SET
                    average_score = excluded.average_score,
                    total_score = excluded.total_score,
                    subject_count = excluded.subject_count,
                    position = excluded.position,
                    total_students = excluded.total_students,
                    is_published = 0,
                    calculated_at = excluded.calculated_at
            """, (exam_id, class_id, row["student_id"], round(float(row["avg_score"] or 0), 2),
                  float(row["sum_score"] or 0), int(row["subject_count"]), position, total, ts))
        logger.info(f"Class rankings: exam={exam_id} class={class_id} students={total}")
        return total

    def calculate_all(self, exam_id):
        exam = self._exam(exam_id)
        rows = self.conn.execute("""
            SELECT DISTINCT se.class_id, er.subject_id
            FROM exam_results er
            JOIN student_enrollments se
                ON se.student_id = er.student_id AND se.academic_year_id = ?
            WHERE er.exam_id = ? AND er.approval_status = 'approved'
            ORDER BY se.class_id, er.subject_id
        """, (exam["academic_year_id"], exam_id)).fetchall()

        subjects_by_class = {}
        for row in rows:
            subjects_by_class.setdefault(row["class_id"], []).append(row["subject_id"])

        summary = []
        for class_id, subject_ids in subjects_by_class.items():
            for subject_id in subject_ids:
                self.calculate_subject(exam_id, subject_id, class_id)
            students = self.calculate_class(exam_id, class_id)
            summary.append({"class_id": class_id, "subjects_ranked": len(subject_ids), "students_ranked": students})
        return summary

    def subject_rankings(self, exam_id, subject_id, class_id=None):
        self._exam(exam_id)
        query = """
            SELECT sr.*, st.name AS student_name, st.id_number
            FROM subject_rankings sr
            JOIN students st ON sr.student_id = st.id
            WHERE sr.exam_id = ? AND sr.subject_id = ? AND sr.is_published = 1
        """
        params = [exam_id, subject_id]
        if class_id:
            query += " AND sr.class_id = ?"
            params.append(class_id)
        query += " ORDER BY sr.position, sr.student_id"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def class_rankings(self, exam_id, class_id):
        self._exam(exam_id)
        rows = self.conn.execute("""
            SELECT cr.*, st.name AS student_name, st.id_number
            FROM class_rankings cr
            JOIN students st ON cr.student_id = st.id
            WHERE cr.exam_id = ? AND cr.class_id = ? AND cr.is_published = 1
            ORDER BY cr.position, cr.student_id
        """, (exam_id, class_id)).fetchall()
        return rows_to_dicts(rows)

    def publish(self, exam_id, subject_id=None):
        self._exam(exam_id)
        if subject_id:
            cur = self.conn.execute(
                "UPDATE subject_rankings SET is_published = 1 WHERE exam_id = ? AND subject_id = ?",
                (exam_id, subject_id),
            )
            return cur.rowcount
        published = self.conn.execute(
            "UPDATE subject_rankings SET is_published = 1 WHERE exam_id = ?", (exam_id,)
        ).rowcount
        published += self.conn.execute(
            "UPDATE class_rankings SET is_published = 1 WHERE exam_id = ?", (exam_id,)
        ).rowcount
        if not published:
            raise HTTPException(status_code=400, detail="No rankings calculated for this exam")
        return published
