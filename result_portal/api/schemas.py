"""Pydantic request/response schemas for the FastAPI endpoints.

JSON keys are camelCase (``tuRegd``, ``totalMarks``) to match the
portal's existing clients; Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class CamelModel(BaseModel):
    """Base schema serializing with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class LoginRequest(CamelModel):
    email: str = Field(pattern=_EMAIL_PATTERN)
    password: str = Field(min_length=1)


class AdminResponse(CamelModel):
    id: int
    email: str
    name: str
    created_at: datetime | None = None


class LoginResponse(CamelModel):
    token: str
    admin: AdminResponse


class VerifyResponse(CamelModel):
    admin: AdminResponse


class AdminCreateRequest(CamelModel):
    email: str = Field(pattern=_EMAIL_PATTERN)
    name: str = Field(min_length=2)
    password: str = Field(min_length=8)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)
    confirm_password: str = Field(min_length=1)

    @model_validator(mode="after")
    def passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords don't match")
        return self


class UpdateProfileRequest(CamelModel):
    name: str = Field(min_length=2)
    email: str = Field(pattern=_EMAIL_PATTERN)
    current_password: str = Field(min_length=1)


class SemesterRequest(CamelModel):
    name: str = Field(min_length=1)
    year: int = Field(ge=2000, le=2100)
    season: Literal["Spring", "Summer", "Fall"]
    is_active: bool = False


class SemesterUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1)
    year: int | None = Field(default=None, ge=2000, le=2100)
    season: Literal["Spring", "Summer", "Fall"] | None = None
    is_active: bool | None = None


class SemesterResponse(CamelModel):
    id: int
    name: str
    year: int
    season: str
    is_active: bool
    created_at: datetime


class StudentSearchRequest(CamelModel):
    name: str = Field(min_length=1)
    tu_regd: str = Field(min_length=1)


class StudentResultResponse(CamelModel):
    """Public view of a student's result."""

    id: int
    name: str
    tu_regd: str
    result: str
    grade: str | None = None
    marks: int | None = None
    total_marks: int | None = None
    subject: str | None = None
    program: str | None = None
    faculty: str | None = None
    semester_id: int | None = None
    uploaded_at: datetime


class StudentRecordResponse(StudentResultResponse):
    """Administrative view of a stored record."""

    needs_review: bool
    original_filename: str
    file_size: int
    uploaded_by: int


class ExtractedFieldsResponse(CamelModel):
    name: str
    tu_regd: str
    result: str
    grade: str | None = None
    marks: int | None = None
    total_marks: int | None = None
    subject: str | None = None
    program: str | None = None
    faculty: str | None = None
    needs_review: bool = False


class UploadItemResponse(CamelModel):
    filename: str
    success: bool
    extracted: ExtractedFieldsResponse | None = None
    record_id: int | None = None
    error: str | None = None


class UploadResponse(CamelModel):
    total_documents: int
    successful: int
    failed: int
    results: list[UploadItemResponse]


class FileUploadResponse(CamelModel):
    id: int
    filename: str
    original_name: str
    file_size: int
    mime_type: str
    uploaded_by: int
    uploaded_at: datetime


class ActivityResponse(CamelModel):
    id: str
    type: str
    description: str
    status: str
    user: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class MessageResponse(CamelModel):
    message: str


class HealthResponse(CamelModel):
    status: str
    version: str
    tesseract_available: bool
