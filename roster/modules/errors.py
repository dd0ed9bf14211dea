"""
Errors Module - QR Roster System

Exception types shared by the record store, the student manager and the QR
generator. The HTTP layer maps each of them to a status code and a
human-readable message.
"""

from typing import Optional


class RosterError(Exception):
    """Base class for all roster errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RosterError):
    """A required field is missing, blank or malformed."""

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"Missing required field: {field}")
        self.field = field


class DuplicateEmailError(RosterError):
    """A student with the same email address is already registered."""

    def __init__(self, email: str):
        super().__init__(f"Email address {email} already exists")
        self.email = email


class NotFoundError(RosterError):
    """No student record exists for the given id."""

    def __init__(self, student_id: str):
        super().__init__(f"Student not found: {student_id}")
        self.student_id = student_id


class PersistenceError(RosterError):
    """Reading or writing the record set failed."""


class QrGenerationError(RosterError):
    """The QR encoder or the artifact write failed for one student."""

    def __init__(self, student_id: str, message: Optional[str] = None):
        super().__init__(message or f"QR code generation failed for student {student_id}")
        self.student_id = student_id
