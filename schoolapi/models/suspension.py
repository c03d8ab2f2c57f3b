import logging

from fastapi import HTTPException

from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.base import TableModel
from schoolapi.models.student import Student

logger = logging.getLogger(__name__)

SUSPENSION_TYPES = ("in_school", "out_of_school")


class Suspension(TableModel):
    table = "student_suspensions"
    label = "Suspension"
    updated_column = None
    default_order = "created_at DESC, id DESC"
    fields = ("student_id", "reason", "start_date", "end_date", "suspension_type", "status", "lifted_at")

    def suspend(self, data):
        Student(self.conn, self.admin_id).get_or_404(data["student_id"])
        if data["end_date"] < data["start_date"]:
            raise HTTPException(status_code=400, detail="end_date cannot be before start_date")

        self.conn.execute("""
            UPDATE students
            SET suspension_status = 'suspended', suspension_reason = ?,
                suspension_start_date = ?, suspension_end_date = ?, updated_at = ?
            WHERE id = ? AND admin_id = ?
        """, (data["reason"], data["start_date"].isoformat(), data["end_date"].isoformat(), now_iso(),
              data["student_id"], self.admin_id))
        suspension_id = self.create(dict(data, status="active"))
        logger.info(f"Student {data['student_id']} suspended ({data['suspension_type']}) "
                    f"from {data['start_date']} to {data['end_date']}")
        return suspension_id

    def lift(self, student_id):
        student = Student(self.conn, self.admin_id).get_or_404(student_id)
        if student["suspension_status"] != "suspended":
            raise HTTPException(status_code=400, detail="Student is not suspended")

        ts = now_iso()
        self.conn.execute("""
            UPDATE students
            SET suspension_status = 'active', suspension_reason = NULL,
                suspension_start_date = NULL, suspension_end_date = NULL, updated_at = ?
            WHERE id = ? AND admin_id = ?
        """, (ts, student_id, self.admin_id))
        cur = self.conn.execute("""
            UPDATE student_suspensions SET status = 'completed', lifted_at = ?
            WHERE student_id = ? AND admin_id = ? AND status = 'active'
        """, (ts, student_id, self.admin_id))
        logger.info(f"Suspension lifted for student {student_id}")
        return cur.rowcount

    def history(self, student_id):
        rows = self.conn.execute("""
            SELECT * FROM student_suspensions
            WHERE student_id = ? AND admin_id = ?
            ORDER BY created_at DESC, id DESC
        """, (student_id, self.admin_id)).fetchall()
        return rows_to_dicts(rows)

    def active(self):
        rows = self.conn.execute("""
            SELECT st.id AS student_id, st.name, st.id_number, ss.id AS suspension_id, ss.reason,
                   ss.start_date, ss.end_date, ss.suspension_type
            FROM students st
            JOIN student_suspensions ss ON ss.student_id = st.id AND ss.status = 'active'
            WHERE st.admin_id = ? AND st.suspension_status = 'suspended'
            ORDER BY ss.start_date DESC
        """, (self.admin_id,)).fetchall()
        return rows_to_dicts(rows)
