import logging

from fastapi import HTTPException

from schoolapi.database import rows_to_dicts
from schoolapi.models.base import TableModel, to_db_value
from schoolapi.models.school_class import SchoolClass
from schoolapi.models.student import Enrollment, Student
from schoolapi.models.subject import Subject
from schoolapi.models.teacher import Teacher

logger = logging.getLogger(__name__)

DAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Week order rather than alphabetical
DAY_ORDER = "CASE te.day_of_week " + " ".join(f"WHEN '{day}' THEN {i}" for i, day in enumerate(DAYS)) + " END"

SLOT_FIELDS = ("class_id", "subject_id", "teacher_id", "day_of_week", "start_time", "end_time")


def group_by_day(entries):
    grouped = {}
    for entry in entries:
        grouped.setdefault(entry["day_of_week"], []).append(entry)
    return grouped


class Timetable(TableModel):
    table = "timetable_entries"
    label = "Timetable entry"
    fields = ("academic_year_id", "class_id", "subject_id", "teacher_id", "day_of_week", "start_time",
              "end_time", "room_number", "notes", "is_active")

    def conflicts(self, academic_year_id, class_id, teacher_id, day_of_week, start_time, end_time,
                  exclude_id=None):
        """Active entries on the same day whose slot overlaps [start_time, end_time)."""
        start_time, end_time = to_db_value(start_time), to_db_value(end_time)
        query = """
            SELECT
                SUM(CASE WHEN class_id = ? THEN 1 ELSE 0 END) AS class_conflicts,
                SUM(CASE WHEN teacher_id = ? THEN 1 ELSE 0 END) AS teacher_conflicts
            FROM timetable_entries
            WHERE admin_id = ? AND academic_year_id = ? AND day_of_week = ? AND is_active = 1
                AND start_time < ? AND end_time > ?
        """
        params = [class_id, teacher_id, self.admin_id, academic_year_id, day_of_week, end_time, start_time]
        if exclude_id:
            query += " AND id != ?"
            params.append(exclude_id)
        row = self.conn.execute(query, params).fetchone()
        class_conflict = bool(row["class_conflicts"])
        teacher_conflict = bool(row["teacher_conflicts"])
        return {
            "has_conflicts": class_conflict or teacher_conflict,
            "class_conflicts": class_conflict,
            "teacher_conflicts": teacher_conflict,
        }

    def _check_slot(self, data, academic_year_id, exclude_id=None):
        if to_db_value(data["end_time"]) <= to_db_value(data["start_time"]):
            raise HTTPException(status_code=400, detail="end_time must be after start_time")
        SchoolClass(self.conn, self.admin_id).get_or_404(data["class_id"])
        Subject(self.conn, self.admin_id).get_or_404(data["subject_id"])
        Teacher(self.conn, self.admin_id).get_or_404(data["teacher_id"])
        found = self.conflicts(academic_year_id, data["class_id"], data["teacher_id"], data["day_of_week"],
                               data["start_time"], data["end_time"], exclude_id)
        if found["has_conflicts"]:
            clash = "class" if found["class_conflicts"] else "teacher"
            raise HTTPException(status_code=409, detail=f"Schedule conflict detected for this {clash}")

    def create_entry(self, data, academic_year_id):
        self._check_slot(data, academic_year_id)
        return self.create(dict(data, academic_year_id=academic_year_id, is_active=1))

    def update_entry(self, entry_id, changes):
        entry = self.get_or_404(entry_id)
        if any(field in changes for field in SLOT_FIELDS):
            merged = dict(entry, **changes)
            self._check_slot(merged, entry["academic_year_id"], exclude_id=entry_id)
        return self.update(entry_id, changes)

    def bulk_create(self, entries, academic_year_id):
        """Creates what fits; clashing or invalid entries are reported, not raised."""
        created, errors = 0, []
        for data in entries:
            try:
                self.create_entry(data, academic_year_id)
            except HTTPException as e:
                errors.append(f"{data['day_of_week']} {to_db_value(data['start_time'])}: {e.detail}")
                continue
            created += 1
        logger.info(f"Timetable bulk create: created={created} rejected={len(errors)}")
        return created, errors

    def _listing(self, where, params):
        rows = self.conn.execute(f"""
            SELECT te.*, s.subject_name, s.subject_code, t.name AS teacher_name, c.class_name
            FROM timetable_entries te
            JOIN subjects s ON te.subject_id = s.id
            JOIN teachers t ON te.teacher_id = t.id
            JOIN classes c ON te.class_id = c.id
            WHERE te.admin_id = ? AND te.academic_year_id = ? AND te.is_active = 1 AND {where}
            ORDER BY {DAY_ORDER}, te.start_time
        """, [self.admin_id] + list(params)).fetchall()
        return rows_to_dicts(rows)

    def for_class(self, class_id, academic_year_id):
        return self._listing("te.class_id = ?", (academic_year_id, class_id))

    def for_teacher(self, teacher_id, academic_year_id):
        return self._listing("te.teacher_id = ?", (academic_year_id, teacher_id))

    def for_student(self, student_id, academic_year_id):
        Student(self.conn, self.admin_id).get_or_404(student_id)
        enrollment = Enrollment(self.conn).active_for(student_id, academic_year_id)
        if enrollment is None:
            raise HTTPException(status_code=404, detail="Student not enrolled in any class")
        return self._listing("te.class_id = ?", (academic_year_id, enrollment["class_id"]))
