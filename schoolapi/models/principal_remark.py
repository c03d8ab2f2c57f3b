from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.base import TableModel


class PrincipalRemark(TableModel):
    """One closing remark per class per term of a year."""

    table = "principal_remarks"
    label = "Remark"
    fields = ("academic_year_id", "class_id", "term", "remarks", "principal_name", "principal_signature")

    def save(self, data):
        """Returns (remark_id, created)."""
        existing = self.find_one(academic_year_id=data["academic_year_id"], class_id=data["class_id"],
                                 term=data["term"])
        if existing is None:
            return self.create(data), True
        self.conn.execute("""
            UPDATE principal_remarks
            SET remarks = ?, principal_name = ?, principal_signature = ?, updated_at = ?
            WHERE id = ?
        """, (data["remarks"], data["principal_name"], data.get("principal_signature"), now_iso(),
              existing["id"]))
        return existing["id"], False

    def for_year(self, academic_year_id):
        rows = self.conn.execute("""
            SELECT pr.*, c.class_name
            FROM principal_remarks pr
            JOIN classes c ON pr.class_id = c.id
            WHERE pr.admin_id = ? AND pr.academic_year_id = ?
            ORDER BY pr.term, c.grade_level, c.class_name
        """, (self.admin_id, academic_year_id)).fetchall()
        return rows_to_dicts(rows)
