from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.base import TableModel

USER_TYPES = ("student", "teacher", "parent")
STATUSES = ("pending", "in_progress", "resolved", "rejected")


class Complaint(TableModel):
    table = "complaints"
    label = "Complaint"
    default_order = "created_at DESC, id DESC"
    fields = ("user_id", "user_type", "subject", "category", "complaint", "status", "response", "resolved_at")

    def list_complaints(self, status=None):
        query = "SELECT * FROM complaints WHERE admin_id = ?"
        params = [self.admin_id]
        if status:
            query += " AND status = ?"
            params.append(status)
        query += " ORDER BY created_at DESC, id DESC"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def for_user(self, user_type, user_id):
        rows = self.conn.execute("""
            SELECT * FROM complaints
            WHERE admin_id = ? AND user_type = ? AND user_id = ?
            ORDER BY created_at DESC, id DESC
        """, (self.admin_id, user_type, user_id)).fetchall()
        return rows_to_dicts(rows)

    def set_status(self, complaint_id, status, response=None):
        self.get_or_404(complaint_id)
        data = {"status": status, "resolved_at": now_iso() if status == "resolved" else None}
        if response is not None:
            data["response"] = response
        return self.update(complaint_id, data)

    def stats(self):
        rows = self.conn.execute(
            "SELECT status, COUNT(*) AS count FROM complaints WHERE admin_id = ? GROUP BY status",
            (self.admin_id,),
        ).fetchall()
        stats = {status: 0 for status in STATUSES}
        for row in rows:
            stats[row["status"]] = int(row["count"])
        stats["total"] = sum(stats.values())
        return stats
