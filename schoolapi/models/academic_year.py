import logging
from datetime import date, timedelta
from typing import Optional

from fastapi import HTTPException

from schoolapi import config
from schoolapi.database import now_iso, rows_to_dicts
from schoolapi.models.base import TableModel

logger = logging.getLogger(__name__)


def split_terms(start: date, end: date, number_of_terms: int):
    """Split a school year into equal terms; the last term absorbs the remainder."""
    days = (end - start).days // number_of_terms
    terms = []
    for i in range(number_of_terms):
        term_start = start + timedelta(days=i * days)
        if i == number_of_terms - 1:
            term_end = end
        else:
            term_end = term_start + timedelta(days=days - 1)
        terms.append((i + 1, term_start, term_end))
    return terms


def term_exam_plan(term_number: int, term_start: date, term_end: date, exams_per_term: int):
    """Exams created automatically for a term: an optional mid-term test plus a final."""
    plan = []
    if exams_per_term == 2:
        midpoint = term_start + (term_end - term_start) // 2
        plan.append((f"Term {term_number} - Test", "test", midpoint))
    plan.append((f"Term {term_number} - Final", "final", term_end))
    return plan


class AcademicYear(TableModel):
    table = "academic_years"
    label = "Academic year"
    default_order = "start_date DESC, id DESC"
    fields = (
        "year_name", "start_date", "end_date", "number_of_terms", "exams_per_term", "grading_type",
        "is_current", "auto_calculate_position", "status", "current_term", "total_terms",
        "term_1_fee", "term_1_min_payment", "term_2_fee", "term_2_min_payment",
        "term_3_fee", "term_3_min_payment",
        "promotion_average", "repeat_average", "drop_average", "passing_percentage",
    )

    @staticmethod
    def apply_fee_defaults(data):
        number_of_terms = data.get("number_of_terms") or 3
        for n in (1, 2, 3):
            fee_key, min_key = f"term_{n}_fee", f"term_{n}_min_payment"
            if n > number_of_terms:
                data[fee_key] = None
                data[min_key] = None
            elif data.get(fee_key) is not None and data.get(min_key) is None:
                data[min_key] = round(data[fee_key] * 0.5, 2)
        return data

    @staticmethod
    def validate_thresholds(data):
        promotion = data.get("promotion_average")
        repeat = data.get("repeat_average")
        drop = data.get("drop_average")
        if promotion is not None and repeat is not None and repeat > promotion:
            raise HTTPException(status_code=400, detail="repeat_average cannot exceed promotion_average")
        if repeat is not None and drop is not None and drop > repeat:
            raise HTTPException(status_code=400, detail="drop_average cannot exceed repeat_average")

    def create_year(self, data):
        if data["end_date"] <= data["start_date"]:
            raise HTTPException(status_code=400, detail="end_date must be after start_date")

        data = dict(data)
        data.setdefault("promotion_average", config.PROMOTION_AVERAGE)
        data.setdefault("repeat_average", config.REPEAT_AVERAGE)
        data.setdefault("drop_average", config.DROP_AVERAGE)
        data.setdefault("passing_percentage", config.PASSING_PERCENTAGE)
        self.validate_thresholds(data)
        self.apply_fee_defaults(data)

        if data.get("is_current"):
            self.clear_current()

        data["status"] = "active"
        data["current_term"] = 1
        data["total_terms"] = data["number_of_terms"]
        year_id = self.create(data)

        Term(self.conn).build_for_year(
            year_id, self.admin_id, data["start_date"], data["end_date"],
            data["number_of_terms"], data["exams_per_term"],
        )
        logger.info(f"Academic year {data['year_name']} (id={year_id}) created with "
                    f"{data['number_of_terms']} terms for admin {self.admin_id}")
        return year_id

    def update_year(self, year_id, data):
        existing = self.get_or_404(year_id)
        merged = dict(existing, **data)
        if str(merged["end_date"]) <= str(merged["start_date"]):
            raise HTTPException(status_code=400, detail="end_date must be after start_date")
        self.validate_thresholds(merged)
        if "number_of_terms" in data and data["number_of_terms"] != existing["number_of_terms"]:
            raise HTTPException(status_code=400, detail="Use the terms endpoint to change the number of terms")
        if any(key.endswith("_fee") for key in data):
            data = self.apply_fee_defaults(dict(data, number_of_terms=existing["number_of_terms"]))
        if data.get("is_current"):
            self.clear_current()
        return self.update(year_id, data)

    def get_current(self):
        row = self.conn.execute(
            "SELECT * FROM academic_years WHERE admin_id = ? AND is_current = 1 ORDER BY id DESC LIMIT 1",
            (self.admin_id,),
        ).fetchone()
        return dict(row) if row else None

    def require_current(self, status_code=400):
        year = self.get_current()
        if year is None:
            raise HTTPException(status_code=status_code, detail="No current academic year set")
        return year

    def resolve(self, year_id: Optional[int] = None):
        """The requested year, or the current one when no id is given."""
        if year_id:
            return self.get_or_404(year_id)
        return self.require_current()

    def clear_current(self):
        self.conn.execute(
            "UPDATE academic_years SET is_current = 0, updated_at = ? WHERE admin_id = ?",
            (now_iso(), self.admin_id),
        )

    def set_current(self, year_id):
        self.get_or_404(year_id)
        self.clear_current()
        self.update(year_id, {"is_current": True})

    def mark_completed(self, year_id):
        self.update(year_id, {"status": "completed", "is_current": False})


class Term(TableModel):
    table = "terms"
    label = "Term"
    tenant_column = None
    updated_column = None
    default_order = "term_number"
    fields = ("academic_year_id", "term_number", "term_name", "start_date", "end_date",
              "is_current", "exams_required", "exams_published")

    def build_for_year(self, year_id, admin_id, start, end, number_of_terms, exams_per_term):
        ts = now_iso()
        for term_number, term_start, term_end in split_terms(start, end, number_of_terms):
            term_id = self.create({
                "academic_year_id": year_id,
                "term_number": term_number,
                "term_name": f"Term {term_number}",
                "start_date": term_start,
                "end_date": term_end,
                "is_current": term_number == 1,
                "exams_required": exams_per_term,
                "exams_published": 0,
            })
            for exam_name, exam_type, exam_date in term_exam_plan(term_number, term_start, term_end, exams_per_term):
                self.conn.execute("""
                    INSERT INTO exams (admin_id, academic_year_id, term_id, exam_name, exam_type, exam_date,
                                       total_marks, is_published, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, 100, 0, ?)
                """, (admin_id, year_id, term_id, exam_name, exam_type, exam_date.isoformat(), ts))

    def recreate_for_year(self, year, exams_per_term, total_terms=3):
        published = self.conn.execute(
            "SELECT COUNT(*) FROM exams WHERE academic_year_id = ? AND is_published = 1", (year["id"],)
        ).fetchone()[0]
        if published:
            raise HTTPException(status_code=400, detail="Cannot recreate terms after exams have been published")

        self.conn.execute("DELETE FROM exams WHERE academic_year_id = ? AND term_id IS NOT NULL", (year["id"],))
        self.conn.execute("DELETE FROM terms WHERE academic_year_id = ?", (year["id"],))
        self.build_for_year(
            year["id"], year["admin_id"],
            date.fromisoformat(year["start_date"]), date.fromisoformat(year["end_date"]),
            total_terms, exams_per_term,
        )
        self.conn.execute("""
            UPDATE academic_years
            SET number_of_terms = ?, total_terms = ?, exams_per_term = ?, current_term = 1, updated_at = ?
            WHERE id = ?
        """, (total_terms, total_terms, exams_per_term, now_iso(), year["id"]))
        return self.for_year(year["id"])

    def for_year(self, year_id):
        rows = self.conn.execute(
            "SELECT * FROM terms WHERE academic_year_id = ? ORDER BY term_number", (year_id,)
        ).fetchall()
        return rows_to_dicts(rows)

    def get_by_number(self, year_id, term_number):
        row = self.conn.execute(
            "SELECT * FROM terms WHERE academic_year_id = ? AND term_number = ?", (year_id, term_number)
        ).fetchone()
        return dict(row) if row else None

    def set_current_term(self, year_id, term_number):
        self.conn.execute("UPDATE terms SET is_current = 0 WHERE academic_year_id = ?", (year_id,))
        self.conn.execute(
            "UPDATE terms SET is_current = 1 WHERE academic_year_id = ? AND term_number = ?", (year_id, term_number)
        )
        self.conn.execute(
            "UPDATE academic_years SET current_term = ?, updated_at = ? WHERE id = ?",
            (term_number, now_iso(), year_id),
        )

    def check_and_toggle(self, year) -> bool:
        """Move the year to its next term once the current term's exams are all published."""
        term = self.get_by_number(year["id"], year["current_term"])
        if term is None:
            return False
        if term["exams_published"] >= term["exams_required"] and year["current_term"] < year["total_terms"]:
            next_term = year["current_term"] + 1
            self.set_current_term(year["id"], next_term)
            logger.info(f"Academic year {year['id']} advanced to term {next_term}")
            return True
        return False

    def manual_toggle(self, year, term_number: int):
        if not 1 <= term_number <= year["total_terms"]:
            raise HTTPException(status_code=400, detail=f"term_number must be between 1 and {year['total_terms']}")
        if self.get_by_number(year["id"], term_number) is None:
            raise HTTPException(status_code=404, detail="Term not found")
        self.set_current_term(year["id"], term_number)

    def current_for_admin(self, admin_id: Optional[int]):
        year = AcademicYear(self.conn, admin_id).require_current(status_code=404)
        term = self.get_by_number(year["id"], year["current_term"])
        if term is None:
            raise HTTPException(status_code=404, detail="Current term not found")
        return term
