import logging

import pandas as pd

from schoolapi.database import fetch_data_df

logger = logging.getLogger(__name__)


def df_to_records(df):
    """DataFrame -> JSON-safe list of dicts (NaN becomes None)."""
    if df.empty:
        return []
    return df.astype(object).where(pd.notnull(df), None).to_dict(orient="records")


def _results_df(admin_id, year_id, class_id=None):
    query = """
        SELECT er.student_id, er.subject_id, er.total_score, st.name AS student_name,
               se.class_id, c.class_name, sb.subject_name
        FROM exam_results er
        JOIN exams e ON er.exam_id = e.id
        JOIN students st ON er.student_id = st.id
        JOIN subjects sb ON er.subject_id = sb.id
        JOIN student_enrollments se ON se.student_id = er.student_id AND se.academic_year_id = e.academic_year_id
        JOIN classes c ON se.class_id = c.id
        WHERE e.admin_id = ? AND e.academic_year_id = ? AND er.approval_status = 'approved'
    """
    params = [admin_id, year_id]
    if class_id:
        query += " AND se.class_id = ?"
        params.append(class_id)
    return fetch_data_df(query, params)


def class_performance(admin_id, year):
    df = _results_df(admin_id, year["id"])
    if df.empty:
        return []
    passing = float(year["passing_percentage"] or 40)
    per_student = df.groupby(["class_id", "class_name", "student_id"], as_index=False)["total_score"].mean()
    per_student["passed"] = per_student["total_score"] >= passing
    report = per_student.groupby(["class_id", "class_name"], as_index=False).agg(
        students=("student_id", "nunique"),
        average_score=("total_score", "mean"),
        highest_score=("total_score", "max"),
        lowest_score=("total_score", "min"),
        passed=("passed", "sum"),
    )
    report["pass_rate"] = (report["passed"] / report["students"] * 100).round(2)
    report["average_score"] = report["average_score"].round(2)
    report["highest_score"] = report["highest_score"].round(2)
    report["lowest_score"] = report["lowest_score"].round(2)
    report["passed"] = report["passed"].astype(int)
    return df_to_records(report.sort_values("average_score", ascending=False))


def subject_performance(admin_id, year, class_id=None):
    df = _results_df(admin_id, year["id"], class_id)
    if df.empty:
        return []
    report = df.groupby(["subject_id", "subject_name"], as_index=False).agg(
        results=("total_score", "count"),
        average_score=("total_score", "mean"),
        highest_score=("total_score", "max"),
        lowest_score=("total_score", "min"),
    )
    report["average_score"] = report["average_score"].round(2)
    return df_to_records(report.sort_values("average_score", ascending=False))


def top_performers(admin_id, year, class_id=None, limit=10):
    df = _results_df(admin_id, year["id"], class_id)
    if df.empty:
        return []
    report = df.groupby(["student_id", "student_name", "class_name"], as_index=False).agg(
        average_score=("total_score", "mean"),
        subjects=("subject_id", "nunique"),
    )
    report["average_score"] = report["average_score"].round(2)
    report = report.sort_values(["average_score", "student_id"], ascending=[False, True]).head(limit)
    return df_to_records(report)


def attendance_summary(admin_id, year, start=None, end=None, class_id=None):
    query = """
        SELECT a.status, a.student_id, c.id AS class_id, c.class_name
        FROM attendance a
        JOIN student_enrollments se ON se.student_id = a.student_id AND se.academic_year_id = a.academic_year_id
        JOIN classes c ON se.class_id = c.id
        WHERE a.admin_id = ? AND a.academic_year_id = ?
    """
    params = [admin_id, year["id"]]
    if start:
        query += " AND a.date >= ?"
        params.append(start)
    if end:
        query += " AND a.date <= ?"
        params.append(end)
    if class_id:
        query += " AND c.id = ?"
        params.append(class_id)
    df = fetch_data_df(query, params)
    if df.empty:
        return []
    counts = pd.crosstab([df["class_id"], df["class_name"]], df["status"])
    for status in ("present", "absent", "late", "excused"):
        if status not in counts.columns:
            counts[status] = 0
    counts = counts[["present", "absent", "late", "excused"]].reset_index()
    counts["total"] = counts[["present", "absent", "late", "excused"]].sum(axis=1)
    counts["attendance_rate"] = (counts["present"] / counts["total"] * 100).round(2)
    counts.columns.name = None
    return df_to_records(counts)


def financial_overview(admin_id, year):
    df = fetch_data_df(
        "SELECT term, status, amount FROM fees_payments WHERE admin_id = ? AND academic_year_id = ?",
        [admin_id, year["id"]],
    )
    if df.empty:
        return {"total_amount": 0.0, "by_status": {}, "by_term": []}
    by_status = df.groupby("status")["amount"].sum().round(2)
    by_term = df.pivot_table(index="term", columns="status", values="amount", aggfunc="sum", fill_value=0)
    by_term["total"] = by_term.sum(axis=1)
    by_term = by_term.round(2).reset_index()
    by_term.columns.name = None
    return {
        "total_amount": round(float(df["amount"].sum()), 2),
        "by_status": {status: float(amount) for status, amount in by_status.items()},
        "by_term": df_to_records(by_term),
    }


def dashboard(admin_id, year=None):
    counts = fetch_data_df("""
        SELECT
            (SELECT COUNT(*) FROM students WHERE admin_id = ?) AS students,
            (SELECT COUNT(*) FROM teachers WHERE admin_id = ?) AS teachers,
            (SELECT COUNT(*) FROM classes WHERE admin_id = ?) AS classes,
            (SELECT COUNT(*) FROM subjects WHERE admin_id = ?) AS subjects,
            (SELECT COUNT(*) FROM complaints WHERE admin_id = ? AND status = 'pending') AS pending_complaints,
            (SELECT COUNT(*) FROM student_suspensions WHERE admin_id = ? AND status = 'active') AS active_suspensions
    """, [admin_id] * 6)
    stats = {key: int(value) for key, value in counts.iloc[0].items()}

    stats["fees_collected"] = 0.0
    stats["average_attendance"] = 0.0
    if year:
        fees = fetch_data_df(
            "SELECT amount FROM fees_payments WHERE admin_id = ? AND academic_year_id = ? AND status = 'paid'",
            [admin_id, year["id"]],
        )
        stats["fees_collected"] = round(float(fees["amount"].sum()), 2) if not fees.empty else 0.0
        attendance = fetch_data_df(
            "SELECT status FROM attendance WHERE admin_id = ? AND academic_year_id = ?",
            [admin_id, year["id"]],
        )
        if not attendance.empty:
            stats["average_attendance"] = round(float((attendance["status"] == "present").mean() * 100), 2)
    return stats
