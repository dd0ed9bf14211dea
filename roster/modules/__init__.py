# QR Roster System - Modules Package
"""
Core business logic modules for the QR Roster System.

- errors: exception types shared across modules
- record_store: student records and their persistence backends
- id_generator: student id generation
- student_manager: roster operations
- qr_generator: QR code issuance and management
"""
