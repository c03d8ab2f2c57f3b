from fastapi import HTTPException

from schoolapi.database import INTEGRITY_ERRORS, rows_to_dicts
from schoolapi.models.base import TableModel

TERM_LABELS = {"1": "1st Term", "2": "2nd Term", "3": "Full Year"}


def normalize_term(term) -> str:
    term = str(term).strip()
    return TERM_LABELS.get(term, term)


class FeesPayment(TableModel):
    table = "fees_payments"
    label = "Payment"
    default_order = "payment_date DESC, id DESC"
    fields = ("student_id", "academic_year_id", "term", "amount", "payment_date", "payment_method",
              "receipt_number", "remarks", "status", "is_tuition_fee")

    @staticmethod
    def from_request(data):
        """Map request field names onto stored columns."""
        data = dict(data)
        if "reference_number" in data:
            data["receipt_number"] = data.pop("reference_number")
        if "notes" in data:
            data["remarks"] = data.pop("notes")
        if data.get("term") is not None:
            data["term"] = normalize_term(data["term"])
        return data

    def record_payment(self, data):
        try:
            return self.create(self.from_request(data))
        except INTEGRITY_ERRORS:
            raise HTTPException(status_code=409, detail="Payment already recorded for this student and term")

    def update_payment(self, payment_id, data):
        self.get_or_404(payment_id)
        try:
            return self.update(payment_id, self.from_request(data))
        except INTEGRITY_ERRORS:
            raise HTTPException(status_code=409, detail="Payment already recorded for this student and term")

    def list_payments(self, academic_year_id=None, term=None, status=None, student_id=None):
        query = """
            SELECT fp.*, st.name AS student_name, st.id_number, c.class_name
            FROM fees_payments fp
            JOIN students st ON fp.student_id = st.id
            LEFT JOIN student_enrollments se
                ON se.student_id = fp.student_id AND se.academic_year_id = fp.academic_year_id
            LEFT JOIN classes c ON se.class_id = c.id
            WHERE fp.admin_id = ?
        """
        params = [self.admin_id]
        if academic_year_id:
            query += " AND fp.academic_year_id = ?"
            params.append(academic_year_id)
        if term:
            query += " AND fp.term = ?"
            params.append(normalize_term(term))
        if status:
            query += " AND fp.status = ?"
            params.append(status)
        if student_id:
            query += " AND fp.student_id = ?"
            params.append(student_id)
        query += " ORDER BY fp.payment_date DESC, fp.id DESC"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())

    def stats(self, academic_year_id, term=None):
        query = """
            SELECT COUNT(*) AS total_payments,
                   COALESCE(SUM(amount), 0) AS total_amount,
                   COALESCE(SUM(CASE WHEN status = 'paid' THEN amount ELSE 0 END), 0) AS paid_amount,
                   COALESCE(SUM(CASE WHEN status = 'pending' THEN amount ELSE 0 END), 0) AS pending_amount,
                   COALESCE(SUM(CASE WHEN status = 'overdue' THEN amount ELSE 0 END), 0) AS overdue_amount
            FROM fees_payments
            WHERE admin_id = ? AND academic_year_id = ?
        """
        params = [self.admin_id, academic_year_id]
        if term:
            query += " AND term = ?"
            params.append(normalize_term(term))
        row = self.conn.execute(query, params).fetchone()
        stats = dict(row)
        stats["total_payments"] = int(stats["total_payments"])
        for key in ("total_amount", "paid_amount", "pending_amount", "overdue_amount"):
            stats[key] = round(float(stats[key]), 2)
        return stats

    def has_paid_tuition(self, student_id, academic_year_id):
        row = self.conn.execute("""
            SELECT id FROM fees_payments
            WHERE student_id = ? AND academic_year_id = ? AND is_tuition_fee = 1 AND status = 'paid'
            LIMIT 1
        """, (student_id, academic_year_id)).fetchone()
        return row is not None
