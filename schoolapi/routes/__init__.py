from schoolapi.routes import (
    academic_years,
    attendance,
    classes,
    complaints,
    exams,
    fees,
    grading,
    houses,
    notices,
    principal_remarks,
    promotions,
    rankings,
    reports,
    students,
    subjects,
    suspensions,
    teachers,
    terms,
    timetable,
)

ROUTERS = [
    academic_years.router,
    terms.router,
    exams.router,
    classes.router,
    subjects.router,
    teachers.router,
    students.router,
    attendance.router,
    fees.router,
    notices.router,
    complaints.router,
    houses.router,
    suspensions.router,
    grading.router,
    rankings.router,
    promotions.router,
    reports.router,
    timetable.router,
    principal_remarks.router,
]
