import logging

from fastapi import HTTPException

from schoolapi import config
from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.base import TableModel
from schoolapi.models.fee import FeesPayment

logger = logging.getLogger(__name__)


class House(TableModel):
    table = "houses"
    label = "House"
    default_order = "house_name"
    fields = ("house_name", "house_color", "house_motto", "points")

    def create_house(self, data):
        house_id = self.create(dict(data, points=0))
        ts = now_iso()
        self.conn.cursor().executemany(
            "INSERT INTO house_blocks (house_id, block_name, capacity, created_at) VALUES (?, ?, ?, ?)",
            [(house_id, f"Block {name}", config.HOUSE_BLOCK_CAPACITY, ts) for name in config.HOUSE_BLOCKS],
        )
        return house_id

    def list_with_counts(self):
        rows = self.conn.execute("""
            SELECT h.*,
                   (SELECT COUNT(*) FROM students st WHERE st.house_id = h.id) AS total_students,
                   (SELECT COUNT(*) FROM house_masters hm
                    WHERE hm.house_id = h.id AND hm.is_active = 1) AS house_master_count
            FROM houses h
            WHERE h.admin_id = ?
            ORDER BY h.house_name
        """, (self.admin_id,)).fetchall()
        return rows_to_dicts(rows)

    def blocks(self, house_id):
        rows = self.conn.execute("""
            SELECT b.*,
                   (SELECT COUNT(*) FROM students st WHERE st.house_block_id = b.id) AS current_occupancy
            FROM house_blocks b
            WHERE b.house_id = ?
            ORDER BY b.block_name
        """, (house_id,)).fetchall()
        return rows_to_dicts(rows)

    def masters(self, house_id):
        rows = self.conn.execute("""
            SELECT hm.*, t.name AS teacher_name, t.email AS teacher_email
            FROM house_masters hm
            LEFT JOIN teachers t ON hm.teacher_id = t.id
            WHERE hm.house_id = ? AND hm.is_active = 1
            ORDER BY t.name
        """, (house_id,)).fetchall()
        return rows_to_dicts(rows)

    def details(self, house_id):
        house = self.get_or_404(house_id)
        house["blocks"] = self.blocks(house_id)
        house["house_masters"] = self.masters(house_id)
        return house

    def assign_master(self, house_id, teacher_id):
        self.get_or_404(house_id)
        teacher = self.conn.execute(
            "SELECT id FROM teachers WHERE id = ? AND admin_id = ?", (teacher_id, self.admin_id)
        ).fetchone()
        if teacher is None:
            raise HTTPException(status_code=404, detail="Teacher not found")
        self.conn.execute("""
            INSERT INTO house_masters (house_id, teacher_id, is_active, assigned_at)
            VALUES (?, ?, 1, ?)
            ON CONFLICT (house_id, teacher_id) DO UPDATE SET is_active = 1, assigned_at = excluded.assigned_at
        """, (house_id, teacher_id, now_iso()))

    def eligible_students(self, academic_year_id):
        rows = self.conn.execute("""
            SELECT DISTINCT st.id, st.name, st.id_number, st.email
            FROM students st
            JOIN fees_payments fp ON fp.student_id = st.id
            WHERE st.admin_id = ? AND st.is_registered = 0 AND st.house_id IS NULL
            AND fp.academic_year_id = ? AND fp.is_tuition_fee = 1 AND fp.status = 'paid'
            ORDER BY st.name
        """, (self.admin_id, academic_year_id)).fetchall()
        return rows_to_dicts(rows)

    def register_student(self, student_id, house_id, block_id, academic_year_id):
        self.get_or_404(house_id)
        if not FeesPayment(self.conn, self.admin_id).has_paid_tuition(student_id, academic_year_id):
            raise HTTPException(status_code=400, detail="Student must pay tuition fee before house registration")

        block = self.conn.execute(
            "SELECT * FROM house_blocks WHERE id = ? AND house_id = ?", (block_id, house_id)
        ).fetchone()
        if block is None:
            raise HTTPException(status_code=400, detail="Block does not belong to this house")
        occupancy = self.conn.execute(
            "SELECT COUNT(*) FROM students WHERE house_block_id = ?", (block_id,)
        ).fetchone()[0]
        if block["capacity"] is not None and occupancy >= block["capacity"]:
            raise HTTPException(status_code=400, detail="House block is full")

        cur = self.conn.execute("""
            UPDATE students
            SET house_id = ?, house_block_id = ?, is_registered = 1, updated_at = ?
            WHERE id = ? AND admin_id = ? AND is_registered = 0
        """, (house_id, block_id, now_iso(), student_id, self.admin_id))
        if cur.rowcount == 0:
            raise HTTPException(status_code=400, detail="Student already registered or not found")

        self.conn.execute("""
            INSERT INTO house_registration_logs (student_id, house_id, house_block_id, academic_year_id,
                                                 registered_by, registered_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (student_id, house_id, block_id, academic_year_id, self.admin_id, now_iso()))
        logger.info(f"Student {student_id} registered to house {house_id} block {block_id}")

    def students(self, house_id, block_id=None):
        self.get_or_404(house_id)
        query = """
            SELECT st.id, st.name, st.id_number, st.email, st.house_block_id, b.block_name
            FROM students st
            LEFT JOIN house_blocks b ON st.house_block_id = b.id
            WHERE st.house_id = ? AND st.admin_id = ?
        """
        params = [house_id, self.admin_id]
        if block_id:
            query += " AND st.house_block_id = ?"
            params.append(block_id)
        query += " ORDER BY st.name"
        return rows_to_dicts(self.conn.execute(query, params).fetchall())
