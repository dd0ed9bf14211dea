"""
Student Manager Module - QR Roster System

This module holds the record-level business rules of the roster. Every
operation loads the full record set from the store, mutates it and writes it
back while holding the store lock.

Features:
- Student registration with email uniqueness enforcement
- Student lookup by id
- Check-in tracking (last access timestamp)
- Student deletion
- QR artifact reference attachment

Lookups are linear scans over the record set, O(n) per operation. That is
fine for a classroom roster; a larger deployment would back the store with an
index keyed by id and email.
"""

import logging
from typing import Callable, List, Optional

from roster.modules.errors import DuplicateEmailError, PersistenceError, ValidationError
from roster.modules.id_generator import generate_student_id
from roster.modules.record_store import RecordStore, StudentRecord, utc_now_iso


class StudentManager:
    """
    Roster service for the QR roster system.
    Composes a record store and an id factory; holds no state of its own.
    """

    def __init__(self, record_store: RecordStore,
                 id_factory: Callable[[], str] = generate_student_id):
        """
        Initialize the student manager.

        Args:
            record_store (RecordStore): Store holding the record set
            id_factory (Callable[[], str]): Produces new student ids
        """
        self.store = record_store
        self.id_factory = id_factory
        self.logger = logging.getLogger(__name__)

    def list_students(self) -> List[StudentRecord]:
        """
        Get all students in insertion order.

        Returns:
            List[StudentRecord]: Stored students
        """
        return self._load().students

    def get_student_count(self) -> int:
        return len(self.list_students())

    def add_student(self, name: str, email: str) -> StudentRecord:
        """
        Register a new student.

        Args:
            name (str): Display name
            email (str): Email address, unique across the roster (exact match)

        Returns:
            StudentRecord: The created record

        Raises:
            ValidationError: If name or email is blank
            DuplicateEmailError: If the email is already registered
            PersistenceError: If the record set cannot be read or written
        """
        name = (name or '').strip()
        email = (email or '').strip()

        if not name:
            raise ValidationError('name')
        if not email:
            raise ValidationError('email')

        with self.store.locked():
            record_set = self._load()

            if any(student.email == email for student in record_set.students):
                self.logger.warning(f"Rejected duplicate email: {email}")
                raise DuplicateEmailError(email)

            student = StudentRecord(
                id=self.id_factory(),
                name=name,
                email=email,
                created_at=utc_now_iso()
            )
            record_set.students.append(student)
            self._save(record_set)

        self.logger.info(f"Student created successfully: {email} (ID: {student.id})")
        return student

    def get_student_by_id(self, student_id: str) -> Optional[StudentRecord]:
        """
        Get student by id.

        Args:
            student_id (str): Student id

        Returns:
            StudentRecord: Student or None
        """
        return self._find(self.list_students(), student_id)

    def touch_access(self, student_id: str) -> Optional[StudentRecord]:
        """
        Record a check-in visit for a student.

        Args:
            student_id (str): Student id

        Returns:
            StudentRecord: Updated student, or None if no such student exists
        """
        with self.store.locked():
            record_set = self._load()
            student = self._find(record_set.students, student_id)
            if student is None:
                return None

            student.last_access_at = utc_now_iso()
            self._save(record_set)

        self.logger.info(f"Student {student_id} checked in at {student.last_access_at}")
        return student

    def attach_qr_code(self, student_id: str, qr_code_path: Optional[str]) -> Optional[StudentRecord]:
        """
        Store the QR artifact reference on a student record.

        Args:
            student_id (str): Student id
            qr_code_path (str): Public URL or data URI of the artifact, None to clear it

        Returns:
            StudentRecord: Updated student, or None if the student no longer exists
        """
        with self.store.locked():
            record_set = self._load()
            student = self._find(record_set.students, student_id)
            if student is None:
                return None

            student.qr_code_path = qr_code_path
            self._save(record_set)

        return student

    def delete_student(self, student_id: str) -> bool:
        """
        Remove a student from the roster.

        Args:
            student_id (str): Student id

        Returns:
            bool: True if a record was removed
        """
        with self.store.locked():
            record_set = self._load()
            remaining = [student for student in record_set.students if student.id != student_id]

            if len(remaining) == len(record_set.students):
                return False

            record_set.students = remaining
            self._save(record_set)

        self.logger.info(f"Student {student_id} deleted")
        return True

    @staticmethod
    def _find(students: List[StudentRecord], student_id: str) -> Optional[StudentRecord]:
        return next((student for student in students if student.id == student_id), None)

    def _load(self):
        try:
            return self.store.load()
        except PersistenceError as e:
            self.logger.error(f"Failed to load student records: {str(e)}")
            raise

    def _save(self, record_set):
        try:
            self.store.save(record_set)
        except PersistenceError as e:
            self.logger.error(f"Failed to save student records: {str(e)}")
            raise
