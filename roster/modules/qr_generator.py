"""
QR Code Generator Module - QR Roster System

This module turns a student id into a scannable check-in artifact. The QR code
encodes the student's check-in URL (<base>/student/<id>); the resulting PNG is
kept either as a standalone file in the QR output folder or inline on the
student record as a base64 data URI.

Features:
- Check-in URL derivation from an explicitly configured base URL
- Fixed-size PNG rendering (medium error correction, 2-module border)
- Artifact persistence and reference attachment
- Artifact revocation and raw byte access for downloads
- Batch regeneration with per-student failure isolation

QR issuance is not transactional with student creation: a failed issue leaves
the student usable and the code can be regenerated later.
"""

import base64
import io
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import qrcode
from PIL import Image
from werkzeug.utils import secure_filename

from roster.modules.errors import (
    NotFoundError, PersistenceError, QrGenerationError, RosterError
)
from roster.modules.record_store import StudentRecord

DEFAULT_BASE_URL = 'http://localhost:5000'
QR_PUBLIC_PREFIX = '/qr-codes'
DATA_URI_PREFIX = 'data:image/png;base64,'
STORAGE_MODES = ('file', 'inline')


class QRGenerator:
    """
    QR code issuer for student check-in URLs.
    Renders, stores, serves and revokes one PNG artifact per student.
    """

    def __init__(self, student_manager, output_dir, base_url: Optional[str] = None,
                 storage: str = 'file', settings: Optional[Dict[str, Any]] = None):
        """
        Initialize the QR code generator.

        Args:
            student_manager (StudentManager): Service used to attach artifact references
            output_dir (str | Path): Folder for file artifacts
            base_url (str): Public origin for check-in URLs, DEFAULT_BASE_URL when unset
            storage (str): 'file' or 'inline'
            settings (dict): Overrides for the default rendering settings
        """
        if storage not in STORAGE_MODES:
            raise ValueError(f"Unknown QR storage mode: {storage}")

        self.logger = logging.getLogger(__name__)
        self.students = student_manager
        self.output_dir = Path(output_dir)
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip('/')
        self.storage = storage

        # Default QR code settings
        self.default_settings = {
            'error_correction': qrcode.constants.ERROR_CORRECT_M,  # ~15% error correction
            'box_size': 10,  # Module size before scaling to the final width
            'border': 2,
            'width': 256,  # Final image width in pixels
            'fill_color': 'black',
            'back_color': 'white'
        }
        if settings:
            self.default_settings.update(settings)

        self.logger.debug(f"QR generator using base URL {self.base_url}, storage {self.storage}")

    def get_student_page_url(self, student_id: str) -> str:
        return f"{self.base_url}/student/{student_id}"

    def get_qr_filename(self, student_id: str) -> str:
        return secure_filename(f"qr-{student_id}.png")

    def get_qr_file_path(self, student_id: str) -> Path:
        return self.output_dir / self.get_qr_filename(student_id)

    def get_qr_public_url(self, student_id: str) -> str:
        return f"{QR_PUBLIC_PREFIX}/{self.get_qr_filename(student_id)}"

    def ensure_qr_directory(self):
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def render_qr_png(self, data: str) -> bytes:
        """
        Encode data as a square PNG QR code.

        Args:
            data (str): Payload to encode

        Returns:
            bytes: PNG image data
        """
        settings = self.default_settings

        qr = qrcode.QRCode(
            version=None,
            error_correction=settings['error_correction'],
            box_size=settings['box_size'],
            border=settings['border']
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(
            fill_color=settings['fill_color'],
            back_color=settings['back_color']
        ).get_image().convert('RGB')

        width = settings['width']
        if img.size != (width, width):
            img = img.resize((width, width), Image.Resampling.NEAREST)

        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        return buffer.getvalue()

    def issue(self, student: StudentRecord) -> str:
        """
        Generate the check-in QR code for a student and attach it to the record.

        Args:
            student (StudentRecord): Student to issue the code for

        Returns:
            str: Artifact reference stored in the record's qr_code_path

        Raises:
            QrGenerationError: If rendering or writing the artifact fails
            NotFoundError: If the student was deleted before the reference was attached
        """
        url = self.get_student_page_url(student.id)

        try:
            png = self.render_qr_png(url)
        except Exception as e:
            self.logger.error(f"QR code generation failed for student {student.id}: {str(e)}")
            raise QrGenerationError(student.id) from e

        if self.storage == 'inline':
            reference = DATA_URI_PREFIX + base64.b64encode(png).decode('ascii')
        else:
            file_path = self.get_qr_file_path(student.id)
            try:
                self.ensure_qr_directory()
                self._write_file(file_path, png)
            except OSError as e:
                self.logger.error(f"Failed to save QR code image to {file_path}: {str(e)}")
                raise QrGenerationError(student.id, f"Failed to save QR code image: {e}") from e
            reference = self.get_qr_public_url(student.id)

        if self.students.attach_qr_code(student.id, reference) is None:
            if self.storage == 'file':
                self._remove_file(student.id)
            raise NotFoundError(student.id)

        student.qr_code_path = reference
        self.logger.info(f"QR code generated successfully for student {student.id}")
        return reference

    def revoke(self, student_id: str):
        """
        Remove a student's QR artifact. A missing artifact is not an error.

        Args:
            student_id (str): Student id
        """
        if self.storage == 'file':
            self._remove_file(student_id)

        try:
            self.students.attach_qr_code(student_id, None)
        except PersistenceError as e:
            self.logger.warning(f"Failed to clear QR reference for student {student_id}: {str(e)}")

    def read(self, student_id: str) -> Optional[bytes]:
        """
        Get the raw PNG bytes of a student's QR artifact.

        Args:
            student_id (str): Student id

        Returns:
            bytes: PNG data, or None if no artifact exists
        """
        if self.storage == 'inline':
            student = self.students.get_student_by_id(student_id)
            if student is None or not (student.qr_code_path or '').startswith(DATA_URI_PREFIX):
                return None
            return base64.b64decode(student.qr_code_path[len(DATA_URI_PREFIX):])

        file_path = self.get_qr_file_path(student_id)
        try:
            return file_path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            self.logger.error(f"Error reading QR file {file_path}: {str(e)}")
            return None

    def regenerate_all(self) -> Dict[str, Any]:
        """
        Re-issue QR codes for every student in the roster.
        One student's failure never stops the batch.

        Returns:
            dict: Batch regeneration results
        """
        students = self.students.list_students()
        results = {
            'success': True,
            'total_students': len(students),
            'successful': 0,
            'failed': 0,
            'errors': []
        }

        for student in students:
            try:
                self.issue(student)
                results['successful'] += 1
                self.logger.info(f"QR code regenerated for student: {student.name}")

            except RosterError as e:
                results['failed'] += 1
                results['errors'].append({
                    'student_id': student.id,
                    'error': e.message
                })
                self.logger.error(f"Failed to regenerate QR for {student.name}: {e.message}")

        if results['failed'] > 0:
            results['success'] = False

        self.logger.info(f"Batch QR generation completed: {results['successful']}/{results['total_students']} successful")
        return results

    def _remove_file(self, student_id: str):
        file_path = self.get_qr_file_path(student_id)
        try:
            file_path.unlink()
            self.logger.info(f"QR code image removed: {file_path}")
        except FileNotFoundError:
            self.logger.warning(f"QR file not found: {file_path}")
        except OSError as e:
            self.logger.warning(f"Failed to remove QR file {file_path}: {str(e)}")

    def _write_file(self, file_path: Path, png: bytes):
        # Readers see either the previous image or the new one, never a partial file
        fd, tmp_path = tempfile.mkstemp(
            dir=str(file_path.parent),
            prefix=f".{file_path.name}.",
            suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(png)
            os.replace(tmp_path, file_path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
