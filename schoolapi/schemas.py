import datetime as dt
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


def required_if_sent(value):
    """Partial updates may omit a required column but never null it."""
    if value is None:
        raise ValueError("cannot be null")
    return value


# --- ACADEMIC YEAR / TERM MODELS ---

class AcademicYearCreateRequest(BaseModel):
    year_name: str = Field(..., min_length=1)
    start_date: dt.date
    end_date: dt.date
    number_of_terms: Literal[2, 3] = 3
    exams_per_term: Literal[1, 2] = 1
    grading_type: Literal["average", "gpa_5", "gpa_4", "custom"] = "average"
    is_current: bool = False
    auto_calculate_position: bool = True
    term_1_fee: Optional[float] = None
    term_1_min_payment: Optional[float] = None
    term_2_fee: Optional[float] = None
    term_2_min_payment: Optional[float] = None
    term_3_fee: Optional[float] = None
    term_3_min_payment: Optional[float] = None
    promotion_average: Optional[float] = Field(None, ge=0, le=100)
    repeat_average: Optional[float] = Field(None, ge=0, le=100)
    drop_average: Optional[float] = Field(None, ge=0, le=100)
    passing_percentage: Optional[float] = Field(None, ge=0, le=100)


class AcademicYearUpdateRequest(BaseModel):
    year_name: Optional[str] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    number_of_terms: Optional[Literal[2, 3]] = None
    grading_type: Optional[Literal["average", "gpa_5", "gpa_4", "custom"]] = None
    is_current: Optional[bool] = None
    auto_calculate_position: Optional[bool] = None
    term_1_fee: Optional[float] = None
    term_1_min_payment: Optional[float] = None
    term_2_fee: Optional[float] = None
    term_2_min_payment: Optional[float] = None
    term_3_fee: Optional[float] = None
    term_3_min_payment: Optional[float] = None
    promotion_average: Optional[float] = Field(None, ge=0, le=100)
    repeat_average: Optional[float] = Field(None, ge=0, le=100)
    drop_average: Optional[float] = Field(None, ge=0, le=100)
    passing_percentage: Optional[float] = Field(None, ge=0, le=100)

    check_required = field_validator("year_name", "start_date", "end_date")(required_if_sent)


class TermRecreateRequest(BaseModel):
    academic_year_id: int
    exams_per_term: Literal[1, 2] = 1
    total_terms: Literal[2, 3] = 3


class TermToggleRequest(BaseModel):
    term_number: int
    academic_year_id: Optional[int] = None


# --- EXAM MODELS ---

class ExamCreateRequest(BaseModel):
    exam_name: str = Field(..., min_length=1)
    exam_type: str = Field(..., min_length=1)
    exam_date: dt.date
    class_id: Optional[int] = None
    term_id: Optional[int] = None
    total_marks: float = 100


class ExamResultRequest(BaseModel):
    student_id: int
    exam_id: int
    subject_id: int
    marks_obtained: Optional[float] = None
    test_score: Optional[float] = None
    exam_score: Optional[float] = None
    remarks: Optional[str] = None
    approval_status: Optional[Literal["pending", "approved", "rejected"]] = None


class ResultApprovalRequest(BaseModel):
    approval_status: Literal["pending", "approved", "rejected"]


# --- CLASS / SUBJECT / TEACHER MODELS ---

class ClassCreateRequest(BaseModel):
    class_name: str = Field(..., min_length=1)
    grade_level: Optional[int] = None
    section: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    placement_min_average: Optional[float] = Field(None, ge=0, le=100)


class ClassUpdateRequest(BaseModel):
    class_name: Optional[str] = None
    grade_level: Optional[int] = None
    section: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    placement_min_average: Optional[float] = Field(None, ge=0, le=100)

    check_required = field_validator("class_name")(required_if_sent)


class SubjectCreateRequest(BaseModel):
    subject_name: str = Field(..., min_length=1)
    class_id: int
    subject_code: str = Field(..., min_length=1)
    teacher_id: Optional[int] = None
    description: Optional[str] = None


class SubjectUpdateRequest(BaseModel):
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    teacher_id: Optional[int] = None
    description: Optional[str] = None

    check_required = field_validator("subject_name", "subject_code")(required_if_sent)


class TeacherRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    qualification: Optional[str] = None


class TeacherUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    qualification: Optional[str] = None

    check_required = field_validator("name")(required_if_sent)


# --- STUDENT MODELS ---

class StudentCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)
    id_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[dt.date] = None
    class_id: Optional[int] = None


class StudentUpdateRequest(BaseModel):
    name: Optional[str] = None
    id_number: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    date_of_birth: Optional[dt.date] = None
    status: Optional[str] = None

    check_required = field_validator("name")(required_if_sent)


class EnrollRequest(BaseModel):
    class_id: int
    academic_year_id: Optional[int] = None


# --- ATTENDANCE / FEES MODELS ---

class AttendanceMarkRequest(BaseModel):
    student_id: int
    subject_id: int
    date: dt.date
    status: Literal["present", "absent", "late", "excused"]
    remarks: Optional[str] = None


class FeePaymentCreateRequest(BaseModel):
    student_id: int
    term: Union[str, int]
    amount: float = Field(..., gt=0)
    payment_date: dt.date
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    status: Literal["paid", "pending", "overdue"] = "paid"
    is_tuition_fee: bool = True


class FeePaymentUpdateRequest(BaseModel):
    term: Optional[Union[str, int]] = None
    amount: Optional[float] = Field(None, gt=0)
    payment_date: Optional[dt.date] = None
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[Literal["paid", "pending", "overdue"]] = None
    is_tuition_fee: Optional[bool] = None


# --- NOTICE / COMPLAINT MODELS ---

class NoticeCreateRequest(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    date: dt.date
    target_audience: Literal["all", "students", "teachers", "parents"] = "all"


class NoticeUpdateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[dt.date] = None
    target_audience: Optional[Literal["all", "students", "teachers", "parents"]] = None

    check_required = field_validator("title", "description", "date", "target_audience")(required_if_sent)


class ComplaintCreateRequest(BaseModel):
    complaint: str = Field(..., min_length=1)
    user_type: Literal["student", "teacher", "parent"]
    user_id: Optional[int] = None
    subject: Optional[str] = None
    category: Optional[str] = None


class ComplaintStatusRequest(BaseModel):
    status: Literal["pending", "in_progress", "resolved", "rejected"]
    response: Optional[str] = None


# --- HOUSE / SUSPENSION MODELS ---

class HouseCreateRequest(BaseModel):
    house_name: str = Field(..., min_length=1)
    house_color: Optional[str] = None
    house_motto: Optional[str] = None


class HouseUpdateRequest(BaseModel):
    house_name: Optional[str] = None
    house_color: Optional[str] = None
    house_motto: Optional[str] = None
    points: Optional[int] = None

    check_required = field_validator("house_name")(required_if_sent)


class HouseMasterRequest(BaseModel):
    teacher_id: int
    house_id: int


class HouseRegistrationRequest(BaseModel):
    student_id: int
    house_id: int
    house_block_id: int


class SuspensionRequest(BaseModel):
    student_id: int
    reason: str = Field(..., min_length=1)
    start_date: dt.date
    end_date: dt.date
    suspension_type: Literal["in_school", "out_of_school"]


# --- GRADING MODELS ---

class GradeRangeCreateRequest(BaseModel):
    grade_label: str = Field(..., min_length=1)
    min_score: float
    max_score: float
    grade_point: Optional[float] = None
    description: Optional[str] = None
    is_passing: bool = True
    academic_year_id: Optional[int] = None


class GradeRangeUpdateRequest(BaseModel):
    grade_label: Optional[str] = None
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    grade_point: Optional[float] = None
    description: Optional[str] = None
    is_passing: Optional[bool] = None


class GradePresetRequest(BaseModel):
    preset_type: str
    academic_year_id: Optional[int] = None


class GradeCalculateRequest(BaseModel):
    score: float = Field(..., ge=0, le=100)
    academic_year_id: Optional[int] = None


class GradeUpsertRequest(BaseModel):
    student_id: int
    subject_id: int
    score: float = Field(..., ge=0, le=100)
    percentage: Optional[float] = Field(None, ge=0, le=100)
    remarks: Optional[str] = None
    academic_year_id: Optional[int] = None


# --- PROMOTION MODELS ---

class ManualAssignRequest(BaseModel):
    student_id: int
    target_academic_year_id: int
    class_id: int
    override_capacity: bool = False


class RolloverRequest(BaseModel):
    source_academic_year_id: int
    target_academic_year_id: int
    include_waitlist: bool = False


# --- RANKING MODELS ---

class SubjectRankingRequest(BaseModel):
    exam_id: int
    subject_id: int
    class_id: int


class ClassRankingRequest(BaseModel):
    exam_id: int
    class_id: int


# --- TIMETABLE / REMARKS MODELS ---

Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class TimetableSlot(BaseModel):
    class_id: int
    teacher_id: int
    day_of_week: Weekday
    start_time: dt.time
    end_time: dt.time

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ConflictCheckRequest(TimetableSlot):
    exclude_id: Optional[int] = None


class TimetableEntryRequest(TimetableSlot):
    subject_id: int
    room_number: Optional[str] = None
    notes: Optional[str] = None


class TimetableEntryUpdateRequest(BaseModel):
    class_id: Optional[int] = None
    subject_id: Optional[int] = None
    teacher_id: Optional[int] = None
    day_of_week: Optional[Weekday] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    room_number: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None

    check_required = field_validator("class_id", "subject_id", "teacher_id", "day_of_week", "start_time",
                                     "end_time")(required_if_sent)


class TimetableBulkRequest(BaseModel):
    entries: List[TimetableEntryRequest] = Field(..., min_length=1)


class PrincipalRemarkRequest(BaseModel):
    academic_year_id: int
    class_id: int
    term: int = Field(..., ge=1, le=3)
    remarks: str = Field(..., min_length=1)
    principal_name: str = Field(..., min_length=1)
    principal_signature: Optional[str] = None
