from schoolapi.models.academic_year import AcademicYear, Term
from schoolapi.models.attendance import Attendance
from schoolapi.models.complaint import Complaint
from schoolapi.models.exam import Exam, ExamResult
from schoolapi.models.fee import FeesPayment
from schoolapi.models.grading import Grade, GradingSystem
from schoolapi.models.house import House
from schoolapi.models.notice import Notice
from schoolapi.models.principal_remark import PrincipalRemark
from schoolapi.models.school_class import SchoolClass
from schoolapi.models.student import Enrollment, Student
from schoolapi.models.subject import Subject
from schoolapi.models.suspension import Suspension
from schoolapi.models.teacher import Teacher
from schoolapi.models.timetable import Timetable

__all__ = [
    "AcademicYear",
    "Attendance",
    "Complaint",
    "Enrollment",
    "Exam",
    "ExamResult",
    "FeesPayment",
    "Grade",
    "GradingSystem",
    "House",
    "Notice",
    "PrincipalRemark",
    "SchoolClass",
    "Student",
    "Subject",
    "Suspension",
    "Teacher",
    "Term",
    "Timetable",
]
