"""JSON-file persistence for admins, semesters, and student records.

The whole database lives in one JSON document that is rewritten
atomically after every change. A process-wide lock serializes access
so the API's worker threads can share a single store.
"""

import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from result_portal.auth.security import hash_password
from result_portal.errors import ConflictError, NotFoundError, PolicyError
from result_portal.utils.config import AuthConfig
from result_portal.utils.logger import get_logger

from .models import Admin, Database, FileUpload, Season, Semester, StudentRecord

logger = get_logger(__name__)


def _same(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


class JsonStorage:
    """Thread-safe store backed by a single JSON file.

    Args:
        path: Location of the database file; parent directories are created.
        bcrypt_rounds: Cost factor for new password hashes.
    """

    def __init__(self, path: Path, bcrypt_rounds: int = 10) -> None:
        self.path = Path(path)
        self.bcrypt_rounds = bcrypt_rounds
        self._lock = threading.RLock()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.data = self._load()

    def _load(self) -> Database:
        if not self.path.exists():
            data = Database()
            self._write(data)
            return data
        try:
            return Database.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (ValidationError, ValueError) as exc:
            logger.error("Database file %s is corrupt, starting empty: %s", self.path, exc)
            data = Database()
            self._write(data)
            return data

    def _write(self, data: Database) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(data.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    @contextmanager
    def _transaction(self) -> Iterator[Database]:
        """Yield a copy of the database and swap it in once it is on disk.

        If the body raises or the write fails, ``self.data`` is untouched.
        """
        with self._lock:
            draft = self.data.model_copy(deep=True)
            yield draft
            self._write(draft)
            self.data = draft

    @staticmethod
    def _next_id(data: Database, kind: str) -> int:
        value = data.next_ids.get(kind, 1)
        data.next_ids[kind] = value + 1
        return value

    # Admins

    def get_admin_by_email(self, email: str) -> Admin | None:
        with self._lock:
            return next((a for a in self.data.admins if _same(a.email, email)), None)

    def get_admin_by_id(self, admin_id: int) -> Admin | None:
        with self._lock:
            return next((a for a in self.data.admins if a.id == admin_id), None)

    @staticmethod
    def _require_admin(data: Database, admin_id: int) -> Admin:
        admin = next((a for a in data.admins if a.id == admin_id), None)
        if admin is None:
            raise NotFoundError("Admin not found")
        return admin

    def create_admin(self, email: str, password: str, name: str) -> Admin:
        with self._transaction() as data:
            if any(_same(a.email, email) for a in data.admins):
                raise ConflictError("An admin with this email already exists")
            admin = Admin(
                id=self._next_id(data, "admin"),
                email=email.strip(),
                password=hash_password(password, self.bcrypt_rounds),
                name=name,
            )
            data.admins.append(admin)
        logger.info("Created admin %s", admin.email)
        return admin

    def list_admins(self) -> list[Admin]:
        with self._lock:
            return list(self.data.admins)

    def update_admin_password(self, admin_id: int, new_password: str) -> None:
        with self._transaction() as data:
            admin = self._require_admin(data, admin_id)
            admin.password = hash_password(new_password, self.bcrypt_rounds)

    def update_admin_profile(self, admin_id: int, name: str, email: str) -> Admin:
        with self._transaction() as data:
            admin = self._require_admin(data, admin_id)
            if any(_same(a.email, email) and a.id != admin_id for a in data.admins):
                raise ConflictError("Email already in use by another admin")
            admin.name = name
            admin.email = email.strip()
        return admin

    def delete_admin(self, admin_id: int) -> None:
        with self._transaction() as data:
            if len(data.admins) <= 1:
                raise PolicyError("Cannot delete the last admin")
            data.admins.remove(self._require_admin(data, admin_id))
        logger.info("Deleted admin %d", admin_id)

    # Semesters

    def create_semester(
        self, name: str, year: int, season: Season = "Spring", is_active: bool = False
    ) -> Semester:
        with self._transaction() as data:
            semester = Semester(
                id=self._next_id(data, "semester"),
                name=name,
                year=year,
                season=season,
                is_active=is_active,
            )
            if is_active:
                for other in data.semesters:
                    other.is_active = False
            data.semesters.append(semester)
        return semester

    def list_semesters(self) -> list[Semester]:
        with self._lock:
            return sorted(self.data.semesters, key=lambda s: s.year, reverse=True)

    def get_semester(self, semester_id: int) -> Semester | None:
        with self._lock:
            return next((s for s in self.data.semesters if s.id == semester_id), None)

    def get_active_semester(self) -> Semester | None:
        with self._lock:
            return next((s for s in self.data.semesters if s.is_active), None)

    @staticmethod
    def _require_semester(data: Database, semester_id: int) -> Semester:
        semester = next((s for s in data.semesters if s.id == semester_id), None)
        if semester is None:
            raise NotFoundError("Semester not found")
        return semester

    def update_semester(self, semester_id: int, **changes: Any) -> Semester:
        """Apply the non-``None`` values in ``changes`` to a semester."""
        with self._transaction() as data:
            semester = self._require_semester(data, semester_id)
            for key in ("name", "year", "season"):
                if changes.get(key) is not None:
                    setattr(semester, key, changes[key])
            if changes.get("is_active") is not None:
                if changes["is_active"]:
                    for other in data.semesters:
                        other.is_active = False
                semester.is_active = changes["is_active"]
        return semester

    def delete_semester(self, semester_id: int) -> list[StudentRecord]:
        """Delete a semester together with the records filed under it.

        Returns:
            The student records removed with the semester.
        """
        with self._transaction() as data:
            data.semesters.remove(self._require_semester(data, semester_id))
            removed = [r for r in data.student_records if r.semester_id == semester_id]
            data.student_records = [
                r for r in data.student_records if r.semester_id != semester_id
            ]
        return removed

    def set_active_semester(self, semester_id: int) -> Semester:
        return self.update_semester(semester_id, is_active=True)

    # Student records

    def create_student_record(self, **fields: Any) -> StudentRecord:
        with self._transaction() as data:
            record = StudentRecord(id=self._next_id(data, "student_record"), **fields)
            data.student_records.append(record)
        logger.info("Stored student record %d for %s", record.id, record.tu_regd)
        return record

    def find_student_record(self, name: str, tu_regd: str) -> StudentRecord | None:
        """Look up a record by name and registration, ignoring case and padding."""
        with self._lock:
            return next(
                (
                    r
                    for r in self.data.student_records
                    if _same(r.name, name) and _same(r.tu_regd, tu_regd)
                ),
                None,
            )

    def get_student_record(self, record_id: int) -> StudentRecord | None:
        with self._lock:
            return next(
                (r for r in self.data.student_records if r.id == record_id), None
            )

    def list_student_records(self, semester_id: int | None = None) -> list[StudentRecord]:
        with self._lock:
            records = [
                r
                for r in self.data.student_records
                if semester_id is None or r.semester_id == semester_id
            ]
        return sorted(records, key=lambda r: r.uploaded_at, reverse=True)

    def delete_student_record(self, record_id: int) -> StudentRecord:
        with self._transaction() as data:
            record = next((r for r in data.student_records if r.id == record_id), None)
            if record is None:
                raise NotFoundError("Student record not found")
            data.student_records.remove(record)
        return record

    def delete_all_student_records(self) -> list[StudentRecord]:
        with self._transaction() as data:
            removed = data.student_records
            data.student_records = []
        return removed

    # File uploads

    def create_file_upload(self, **fields: Any) -> FileUpload:
        with self._transaction() as data:
            upload = FileUpload(id=self._next_id(data, "file_upload"), **fields)
            data.file_uploads.append(upload)
        return upload

    def list_file_uploads(self) -> list[FileUpload]:
        with self._lock:
            uploads = list(self.data.file_uploads)
        return sorted(uploads, key=lambda u: u.uploaded_at, reverse=True)

    def seed_defaults(self, auth: AuthConfig) -> None:
        """Create the bootstrap admin and an active semester on a fresh store."""
        with self._lock:
            if not self.get_admin_by_email(auth.default_admin_email):
                self.create_admin(
                    email=auth.default_admin_email,
                    password=auth.default_admin_password,
                    name=auth.default_admin_name,
                )
                logger.info("Default admin created")
            if not self.data.semesters:
                self.create_semester("Spring 2025", 2025, "Spring", is_active=True)
                logger.info("Default semester created")
