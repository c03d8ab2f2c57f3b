import logging

from schoolapi import config
from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.base import TableModel

logger = logging.getLogger(__name__)

STATUSES = ("present", "absent", "late", "excused")


def absence_streak(statuses):
    """Consecutive 'absent' marks at the head of a newest-first list of statuses."""
    streak = 0
    for status in statuses:
        if (status or "").lower() != "absent":
            break
        streak += 1
    return streak


class Attendance(TableModel):
    table = "attendance"
    label = "Attendance record"
    fields = ("student_id", "subject_id", "class_id", "academic_year_id", "date", "status", "remarks")

    def mark(self, student_id, subject_id, class_id, academic_year_id, date, status, remarks=None):
        ts = now_iso()
        row = self.conn.execute("""
            INSERT INTO attendance (admin_id, student_id, subject_id, class_id, academic_year_id, date, status,
                                    remarks, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (student_id, subject_id, date) DO UPDATE SET
                status = excluded.status,
                remarks = excluded.remarks,
                class_id = excluded.class_id,
                academic_year_id = excluded.academic_year_id,
                updated_at = excluded.updated_at
            RETURNING id
        """, (self.admin_id, student_id, subject_id, class_id, academic_year_id, date, status, remarks,
              ts, ts)).fetchone()
        return row[0]

    def current_streak(self, student_id, subject_id):
        rows = self.conn.execute("""
            SELECT status FROM attendance
            WHERE student_id = ? AND subject_id = ?
            ORDER BY date DESC
            LIMIT 3
        """, (student_id, subject_id)).fetchall()
        return absence_streak([r["status"] for r in rows])

    def track_absences(self, student_id, subject_id, date, year):
        """Upsert the term's strike record and escalate once per streak."""
        streak = self.current_streak(student_id, subject_id)
        term = year.get("current_term") or 1
        existing = self.conn.execute("""
            SELECT * FROM attendance_strikes
            WHERE student_id = ? AND academic_year_id = ? AND term = ?
        """, (student_id, year["id"], term)).fetchone()

        already_escalated = bool(existing and existing["notification_sent"])
        reached = streak >= config.ABSENCE_STREAK_THRESHOLD
        should_escalate = reached and not already_escalated

        sent_at = None
        if reached:
            sent_at = existing["notification_sent_at"] if already_escalated else now_iso()

        self.conn.execute("""
            INSERT INTO attendance_strikes (student_id, academic_year_id, term, absence_count, last_absence_date,
                                            notification_sent, notification_sent_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT (student_id, academic_year_id, term) DO UPDATE SET
                absence_count = excluded.absence_count,
                last_absence_date = excluded.last_absence_date,
                notification_sent = excluded.notification_sent,
                notification_sent_at = excluded.notification_sent_at
        """, (student_id, year["id"], term, streak, date, int(reached), sent_at))

        if should_escalate:
            logger.warning(f"Student {student_id} has missed {streak} consecutive classes "
                           f"in subject {subject_id} (latest on {date})")
        return streak, should_escalate

    def for_student(self, student_id, academic_year_id, subject_id=None, start=None, end=None):
        query = """
            SELECT a.*, s.subject_name
            FROM attendance a
            LEFT JOIN subjects s ON a.subject_id = s.id
            WHERE a.student_id = ? AND a.admin_id = ?
        """
        params = [student_id, self.admin_id]
        if academic_year_id:
            query += " AND a.academic_year_id = ?"
            params.append(academic_year_id)
        if subject_id:
            query += " AND a.subject_id = ?"
            params.append(subject_id)
        if start:
            query += " AND a.date >= ?"
            params.append(start)
        if end:
            query += " AND a.date <= ?"
            params.append(end)
        query += " ORDER BY a.date DESC"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def stats(self, student_id, academic_year_id):
        row = self.conn.execute("""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN status = 'present' THEN 1 ELSE 0 END) AS present,
                   SUM(CASE WHEN status = 'absent' THEN 1 ELSE 0 END) AS absent,
                   SUM(CASE WHEN status = 'late' THEN 1 ELSE 0 END) AS late,
                   SUM(CASE WHEN status = 'excused' THEN 1 ELSE 0 END) AS excused
            FROM attendance
            WHERE student_id = ? AND admin_id = ? AND academic_year_id = ?
        """, (student_id, self.admin_id, academic_year_id)).fetchone()
        stats = {key: int(row[key] or 0) for key in ("total", "present", "absent", "late", "excused")}
        stats["percentage"] = round(stats["present"] / stats["total"] * 100, 2) if stats["total"] else 0
        return stats

    def for_class(self, class_id, academic_year_id, date, subject_id=None):
        join = "LEFT JOIN attendance a ON a.student_id = st.id AND a.academic_year_id = ? AND a.date = ?"
        params = [academic_year_id, date]
        if subject_id:
            join += " AND a.subject_id = ?"
            params.append(subject_id)
        rows = self.conn.execute(f"""
            SELECT st.id AS student_id, st.name, st.id_number, st.email,
                   a.id AS attendance_id, a.status, a.remarks, a.date, a.subject_id
            FROM students st
            JOIN student_enrollments se ON se.student_id = st.id AND se.academic_year_id = ?
            {join}
            WHERE se.class_id = ? AND st.admin_id = ?
            ORDER BY st.name
        """, [academic_year_id] + params + [class_id, self.admin_id]).fetchall()
        return rows_to_dicts(rows)

    def strikes(self, academic_year_id, escalated_only=False):
        query = """
            SELECT s.*, st.name AS student_name, st.id_number
            FROM attendance_strikes s
            JOIN students st ON s.student_id = st.id
            WHERE s.academic_year_id = ? AND st.admin_id = ?
        """
        if escalated_only:
            query += " AND s.notification_sent = 1"
        query += " ORDER BY s.absence_count DESC, st.name"
        return rows_to_dicts(self.conn.execute(query, (academic_year_id, self.admin_id)).fetchall())
