"""FastAPI application for the university result portal.

Students look up their result by name and T.U. registration number.
Administrators upload scanned marksheets, which are read with OCR and
stored as student records, and manage semesters and admin accounts.
"""

import asyncio
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocket, WebSocketDisconnect

from result_portal import __version__
from result_portal.auth.security import create_access_token, verify_password
from result_portal.errors import (
    ConflictError,
    NotFoundError,
    PolicyError,
    ResultPortalError,
)
from result_portal.extraction.models import OCRResult
from result_portal.ocr.tesseract_engine import TesseractEngine
from result_portal.storage.models import Semester, StudentRecord
from result_portal.utils.logger import get_logger

from .deps import CurrentAdmin, Services, ServicesDep
from .schemas import (
    ActivityResponse,
    AdminCreateRequest,
    AdminResponse,
    ChangePasswordRequest,
    ExtractedFieldsResponse,
    FileUploadResponse,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SemesterRequest,
    SemesterResponse,
    SemesterUpdateRequest,
    StudentRecordResponse,
    StudentResultResponse,
    StudentSearchRequest,
    UpdateProfileRequest,
    UploadItemResponse,
    UploadResponse,
    VerifyResponse,
)

logger = get_logger(__name__)

HEALTH_INTERVAL_SECONDS = 5.0

app = FastAPI(
    title="University Result Portal API",
    description="Publish exam results from scanned marksheets",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg"}

_ERROR_STATUS: dict[type[ResultPortalError], int] = {
    NotFoundError: 404,
    ConflictError: 409,
    PolicyError: 400,
}


@app.exception_handler(ResultPortalError)
async def domain_error_handler(request: Request, exc: ResultPortalError) -> JSONResponse:
    status_code = next(
        (code for kind, code in _ERROR_STATUS.items() if isinstance(exc, kind)), 500
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        tesseract_available=TesseractEngine.is_available(),
    )


# Authentication and admin accounts


@app.post("/api/admin/login", response_model=LoginResponse)
async def login(body: LoginRequest, services: ServicesDep) -> LoginResponse:
    """Exchange admin credentials for a bearer token."""
    admin = services.storage.get_admin_by_email(body.email)
    if admin is None or not verify_password(body.password, admin.password):
        await services.tracker.log_activity(
            "login", f"Failed login attempt for {body.email}", status="warning"
        )
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(admin.id, admin.email, services.config.auth)
    await services.tracker.log_activity(
        "login", f"Admin {admin.name} logged in", user=admin.email
    )
    return LoginResponse(token=token, admin=AdminResponse.model_validate(admin))


@app.get("/api/admin/verify", response_model=VerifyResponse)
async def verify(admin: CurrentAdmin) -> VerifyResponse:
    return VerifyResponse(admin=AdminResponse.model_validate(admin))


@app.post("/api/admin/change-password", response_model=MessageResponse)
async def change_password(
    body: ChangePasswordRequest, admin: CurrentAdmin, services: ServicesDep
) -> MessageResponse:
    if not verify_password(body.current_password, admin.password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    services.storage.update_admin_password(admin.id, body.new_password)
    await services.tracker.log_activity(
        "admin_action", "Password changed", user=admin.email
    )
    return MessageResponse(message="Password changed successfully")


@app.put("/api/admin/profile", response_model=AdminResponse)
async def update_profile(
    body: UpdateProfileRequest, admin: CurrentAdmin, services: ServicesDep
) -> AdminResponse:
    if not verify_password(body.current_password, admin.password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    updated = services.storage.update_admin_profile(admin.id, body.name, body.email)
    return AdminResponse.model_validate(updated)


@app.get("/api/admin/admins", response_model=list[AdminResponse])
async def list_admins(admin: CurrentAdmin, services: ServicesDep) -> list[AdminResponse]:
    return [AdminResponse.model_validate(a) for a in services.storage.list_admins()]


@app.post("/api/admin/admins", response_model=AdminResponse, status_code=201)
async def create_admin(
    body: AdminCreateRequest, admin: CurrentAdmin, services: ServicesDep
) -> AdminResponse:
    created = services.storage.create_admin(body.email, body.password, body.name)
    await services.tracker.log_activity(
        "admin_action", f"Admin {created.email} created", user=admin.email
    )
    return AdminResponse.model_validate(created)


@app.delete("/api/admin/admins/{admin_id}", response_model=MessageResponse)
async def delete_admin(
    admin_id: int, admin: CurrentAdmin, services: ServicesDep
) -> MessageResponse:
    if admin_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    services.storage.delete_admin(admin_id)
    await services.tracker.log_activity(
        "admin_action", f"Admin {admin_id} deleted", user=admin.email
    )
    return MessageResponse(message="Admin deleted successfully")


# Semesters


@app.get("/api/admin/semesters", response_model=list[SemesterResponse])
async def list_semesters(
    admin: CurrentAdmin, services: ServicesDep
) -> list[SemesterResponse]:
    return [SemesterResponse.model_validate(s) for s in services.storage.list_semesters()]


@app.post("/api/admin/semesters", response_model=SemesterResponse, status_code=201)
async def create_semester(
    body: SemesterRequest, admin: CurrentAdmin, services: ServicesDep
) -> SemesterResponse:
    semester = services.storage.create_semester(
        body.name, body.year, body.season, body.is_active
    )
    await services.tracker.log_activity(
        "admin_action", f"Semester {semester.name} created", user=admin.email
    )
    return SemesterResponse.model_validate(semester)


@app.put("/api/admin/semesters/{semester_id}", response_model=SemesterResponse)
async def update_semester(
    semester_id: int,
    body: SemesterUpdateRequest,
    admin: CurrentAdmin,
    services: ServicesDep,
) -> SemesterResponse:
    semester = services.storage.update_semester(semester_id, **body.model_dump())
    return SemesterResponse.model_validate(semester)


@app.delete("/api/admin/semesters/{semester_id}", response_model=MessageResponse)
async def delete_semester(
    semester_id: int, admin: CurrentAdmin, services: ServicesDep
) -> MessageResponse:
    removed = services.storage.delete_semester(semester_id)
    _remove_record_files(services, removed)
    await services.tracker.log_activity(
        "admin_action",
        f"Semester {semester_id} deleted with {len(removed)} records",
        user=admin.email,
    )
    return MessageResponse(message="Semester deleted successfully")


@app.post("/api/admin/semesters/{semester_id}/activate", response_model=SemesterResponse)
async def activate_semester(
    semester_id: int, admin: CurrentAdmin, services: ServicesDep
) -> SemesterResponse:
    semester = services.storage.set_active_semester(semester_id)
    return SemesterResponse.model_validate(semester)


# Marksheet upload and student records


def _store_record(
    services: Services,
    filename: str,
    content: bytes,
    mime_type: str,
    result: OCRResult,
    semester: Semester | None,
    admin_id: int,
) -> StudentRecord:
    """Persist an extracted marksheet, undoing partial writes on failure."""
    image_path = pdf_path = None
    record = None
    try:
        image_path = services.files.save_upload(content, filename)
        pdf_path = services.files.convert_to_pdf(image_path)
        record = services.storage.create_student_record(
            name=result.name,
            tu_regd=result.tu_regd,
            result=str(result.result),
            grade=result.grade,
            marks=result.marks,
            total_marks=result.total_marks,
            subject=result.subject,
            program=result.program,
            faculty=result.faculty,
            needs_review=result.needs_review,
            semester_id=semester.id if semester else None,
            image_path=str(image_path),
            pdf_path=str(pdf_path),
            original_filename=filename,
            file_size=len(content),
            uploaded_by=admin_id,
        )
        services.storage.create_file_upload(
            filename=Path(image_path).name,
            original_name=filename,
            file_path=str(image_path),
            file_size=len(content),
            mime_type=mime_type,
            uploaded_by=admin_id,
        )
    except Exception:
        if record is not None:
            services.storage.delete_student_record(record.id)
        services.files.remove(image_path, pdf_path)
        raise
    return record


def _remove_record_files(services: Services, records: list[StudentRecord]) -> None:
    for record in records:
        services.files.remove(record.image_path, record.pdf_path)


@app.post("/api/admin/upload", response_model=UploadResponse)
async def upload_marksheets(
    admin: CurrentAdmin,
    services: ServicesDep,
    files: Annotated[list[UploadFile], File(alias="studentImages")],
    semester_id: Annotated[int | None, Form(alias="semesterId")] = None,
) -> UploadResponse:
    """Read uploaded marksheet images and store one record per file.

    Each file succeeds or fails independently; failures are reported in
    the per-file results rather than aborting the batch.
    """
    limits = services.config.storage
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(files) > limits.max_files_per_upload:
        raise HTTPException(
            status_code=400,
            detail=f"At most {limits.max_files_per_upload} files per upload",
        )

    if semester_id is not None:
        semester = services.storage.get_semester(semester_id)
        if semester is None:
            raise HTTPException(status_code=404, detail="Semester not found")
    else:
        semester = services.storage.get_active_semester()

    items: dict[int, UploadItemResponse] = {}
    accepted: list[tuple[int, UploadFile, bytes]] = []
    for index, upload in enumerate(files):
        filename = upload.filename or "unknown"
        if upload.content_type not in _ALLOWED_CONTENT_TYPES:
            items[index] = UploadItemResponse(
                filename=filename, success=False, error="Only JPG/JPEG files are allowed"
            )
            continue
        content = await upload.read()
        if len(content) > limits.max_upload_bytes:
            items[index] = UploadItemResponse(
                filename=filename, success=False, error="File exceeds the upload size limit"
            )
            continue
        accepted.append((index, upload, content))

    outcomes = await run_in_threadpool(
        services.orchestrator.process_batch,
        [(upload.filename or "unknown", content) for _, upload, content in accepted],
    )

    for (index, upload, content), outcome in zip(accepted, outcomes):
        if not outcome.success:
            items[index] = UploadItemResponse(
                filename=outcome.filename, success=False, error=outcome.error
            )
            continue
        try:
            record = await run_in_threadpool(
                _store_record,
                services,
                outcome.filename,
                content,
                upload.content_type or "image/jpeg",
                outcome.result,
                semester,
                admin.id,
            )
        except (OSError, ResultPortalError) as exc:
            logger.error("Failed to store %s: %s", outcome.filename, exc)
            items[index] = UploadItemResponse(
                filename=outcome.filename, success=False, error=str(exc)
            )
            continue
        items[index] = UploadItemResponse(
            filename=outcome.filename,
            success=True,
            extracted=ExtractedFieldsResponse.model_validate(outcome.result.to_dict()),
            record_id=record.id,
        )

    results = [items[i] for i in range(len(files))]
    successful = sum(1 for item in results if item.success)
    await services.tracker.log_activity(
        "upload",
        f"Processed {len(results)} marksheets ({successful} succeeded)",
        status="success" if successful == len(results) else "warning",
        user=admin.email,
        metadata={"successful": successful, "failed": len(results) - successful},
    )
    return UploadResponse(
        total_documents=len(results),
        successful=successful,
        failed=len(results) - successful,
        results=results,
    )


@app.get("/api/admin/records", response_model=list[StudentRecordResponse])
async def list_records(
    admin: CurrentAdmin,
    services: ServicesDep,
    semester_id: Annotated[int | None, Query(alias="semesterId")] = None,
) -> list[StudentRecordResponse]:
    return [
        StudentRecordResponse.model_validate(r)
        for r in services.storage.list_student_records(semester_id)
    ]


@app.delete("/api/admin/records/{record_id}", response_model=MessageResponse)
async def delete_record(
    record_id: int, admin: CurrentAdmin, services: ServicesDep
) -> MessageResponse:
    record = services.storage.delete_student_record(record_id)
    _remove_record_files(services, [record])
    await services.tracker.log_activity(
        "admin_action", f"Record for {record.tu_regd} deleted", user=admin.email
    )
    return MessageResponse(message="Record deleted successfully")


@app.delete("/api/admin/records", response_model=MessageResponse)
async def delete_all_records(admin: CurrentAdmin, services: ServicesDep) -> MessageResponse:
    removed = services.storage.delete_all_student_records()
    _remove_record_files(services, removed)
    await services.tracker.log_activity(
        "admin_action", f"All {len(removed)} records deleted", user=admin.email
    )
    return MessageResponse(message=f"Deleted {len(removed)} records")


@app.get("/api/admin/uploads", response_model=list[FileUploadResponse])
async def list_uploads(
    admin: CurrentAdmin, services: ServicesDep
) -> list[FileUploadResponse]:
    return [FileUploadResponse.model_validate(u) for u in services.storage.list_file_uploads()]


@app.get("/api/admin/activities", response_model=list[ActivityResponse])
async def list_activities(
    admin: CurrentAdmin,
    services: ServicesDep,
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> list[ActivityResponse]:
    return [
        ActivityResponse.model_validate(e)
        for e in services.tracker.recent(limit)
    ]


# Public endpoints


@app.post("/api/get-result", response_model=StudentResultResponse)
async def get_result(body: StudentSearchRequest, services: ServicesDep) -> StudentResultResponse:
    """Find a student's result by name and T.U. registration number."""
    record = services.storage.find_student_record(body.name, body.tu_regd)
    if record is None:
        await services.tracker.log_activity(
            "search", f"No result found for {body.tu_regd}", status="warning"
        )
        raise HTTPException(status_code=404, detail="No matching record found")

    await services.tracker.log_activity("search", f"Result viewed for {record.tu_regd}")
    return StudentResultResponse.model_validate(record)


def _record_file(services: Services, record_id: int, attribute: str) -> tuple[StudentRecord, Path]:
    record = services.storage.get_student_record(record_id)
    path = Path(getattr(record, attribute)) if record else None
    if record is None or path is None or not path.exists():
        raise HTTPException(status_code=404, detail="File not found")
    return record, path


@app.get("/api/preview/{record_id}")
async def preview_image(record_id: int, services: ServicesDep) -> FileResponse:
    _, path = _record_file(services, record_id, "image_path")
    return FileResponse(
        path,
        media_type="image/jpeg",
        headers={"Cache-Control": "public, max-age=31536000"},
    )


@app.get("/api/download/{record_id}")
async def download_pdf(record_id: int, services: ServicesDep) -> FileResponse:
    record, path = _record_file(services, record_id, "pdf_path")
    await services.tracker.log_activity("download", f"PDF downloaded for {record.tu_regd}")
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=f"{record.name}_{record.tu_regd}.pdf",
    )


@app.websocket("/ws/activity")
async def activity_feed(websocket: WebSocket, services: ServicesDep) -> None:
    """Stream activity events, with a health snapshot every few seconds."""
    tracker = services.tracker
    await tracker.connect(websocket)
    try:
        while True:
            try:
                await asyncio.wait_for(
                    websocket.receive_text(), timeout=HEALTH_INTERVAL_SECONDS
                )
            except asyncio.TimeoutError:
                await websocket.send_json(
                    {"type": "health", "data": tracker.system_health()}
                )
    except WebSocketDisconnect:
        logger.debug("Activity feed client disconnected")
    finally:
        tracker.disconnect(websocket)
