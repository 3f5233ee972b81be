"""Persisted entities of the result portal."""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

Season = Literal["Spring", "Summer", "Fall"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Admin(BaseModel):
    """An administrator account. ``password`` holds a bcrypt hash."""

    id: int
    email: str
    password: str
    name: str
    created_at: datetime = Field(default_factory=_now)


class Semester(BaseModel):
    """An academic semester that student records are filed under."""

    id: int
    name: str
    year: int
    season: Season = "Spring"
    is_active: bool = False
    created_at: datetime = Field(default_factory=_now)


class StudentRecord(BaseModel):
    """A student's exam result with the scanned marksheet it came from."""

    id: int
    name: str
    tu_regd: str
    result: Literal["Passed", "Failed"]
    grade: str | None = None
    marks: int | None = None
    total_marks: int | None = None
    subject: str | None = None
    program: str | None = None
    faculty: str | None = None
    needs_review: bool = False
    semester_id: int | None = None
    image_path: str
    pdf_path: str
    original_filename: str
    file_size: int
    uploaded_by: int
    uploaded_at: datetime = Field(default_factory=_now)


class FileUpload(BaseModel):
    """Audit entry for an uploaded marksheet image."""

    id: int
    filename: str
    original_name: str
    file_path: str
    file_size: int
    mime_type: str
    uploaded_by: int
    uploaded_at: datetime = Field(default_factory=_now)


class Database(BaseModel):
    """Complete on-disk state of the JSON store."""

    admins: list[Admin] = Field(default_factory=list)
    semesters: list[Semester] = Field(default_factory=list)
    student_records: list[StudentRecord] = Field(default_factory=list)
    file_uploads: list[FileUpload] = Field(default_factory=list)
    next_ids: dict[str, int] = Field(
        default_factory=lambda: {
            "admin": 1,
            "semester": 1,
            "student_record": 1,
            "file_upload": 1,
        }
    )
