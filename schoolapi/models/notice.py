from datetime import date, timedelta

from schoolapi.database import rows_to_dicts
from schoolapi.models.base import TableModel

AUDIENCES = ("all", "students", "teachers", "parents")


class Notice(TableModel):
    table = "notices"
    label = "Notice"
    default_order = "date DESC, id DESC"
    fields = ("title", "description", "date", "target_audience")

    def for_audience(self, audience):
        rows = self.conn.execute("""
            SELECT * FROM notices
            WHERE admin_id = ? AND (target_audience = ? OR target_audience = 'all')
            ORDER BY date DESC, id DESC
        """, (self.admin_id, audience)).fetchall()
        return rows_to_dicts(rows)

    def stats(self, today=None):
        today = today or date.today()
        week_ahead = (today + timedelta(days=7)).isoformat()
        today = today.isoformat()
        row = self.conn.execute("""
            SELECT COUNT(*) AS total,
                   SUM(CASE WHEN target_audience = 'all' THEN 1 ELSE 0 END) AS all_audience,
                   SUM(CASE WHEN target_audience = 'students' THEN 1 ELSE 0 END) AS students,
                   SUM(CASE WHEN target_audience = 'teachers' THEN 1 ELSE 0 END) AS teachers,
                   SUM(CASE WHEN target_audience = 'parents' THEN 1 ELSE 0 END) AS parents,
                   SUM(CASE WHEN date >= ? THEN 1 ELSE 0 END) AS active,
                   SUM(CASE WHEN date < ? THEN 1 ELSE 0 END) AS expired,
                   SUM(CASE WHEN date >= ? AND date <= ? THEN 1 ELSE 0 END) AS upcoming
            FROM notices
            WHERE admin_id = ?
        """, (today, today, today, week_ahead, self.admin_id)).fetchone()
        return {key: int(value or 0) for key, value in dict(row).items()}
