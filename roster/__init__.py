# QR Roster System - Roster Package
"""
Core package for the QR Roster System.
Contains the record store, student manager and QR code generator.
"""

__version__ = "1.0.0"
__description__ = "A Flask-based student roster with per-student QR check-in codes"

# Import core components for easy access
from .modules.errors import (
    RosterError, ValidationError, DuplicateEmailError, NotFoundError,
    PersistenceError, QrGenerationError
)
from .modules.record_store import (
    StudentRecord, RecordSet, RecordStore, JsonFileRecordStore, MemoryRecordStore
)
from .modules.id_generator import generate_student_id
from .modules.student_manager import StudentManager
from .modules.qr_generator import QRGenerator

__all__ = [
    'RosterError',
    'ValidationError',
    'DuplicateEmailError',
    'NotFoundError',
    'PersistenceError',
    'QrGenerationError',
    'StudentRecord',
    'RecordSet',
    'RecordStore',
    'JsonFileRecordStore',
    'MemoryRecordStore',
    'generate_student_id',
    'StudentManager',
    'QRGenerator'
]
