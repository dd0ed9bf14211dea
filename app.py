"""
Flask QR Roster System - Main Application

This module is the entry point of the QR roster system. It builds the Flask
application, wires the record store, student manager and QR generator
together, and exposes them as a JSON API.

Features:
- Student registration with automatic QR code issuance
- Student listing and deletion
- Check-in URL that records the last access time
- QR code download
- Batch QR regeneration (API and `flask regenerate-qr`)

Run with `flask --app app run` or `python app.py`.
"""

import io
import logging
import re

import click
from flask import Blueprint, Flask, current_app, jsonify, request, send_file, send_from_directory

from config import LOG_FORMAT, get_qr_settings, init_config
from roster.modules.errors import (
    DuplicateEmailError, PersistenceError, RosterError, ValidationError
)
from roster.modules.qr_generator import QRGenerator
from roster.modules.record_store import JsonFileRecordStore, MemoryRecordStore
from roster.modules.student_manager import StudentManager

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

bp = Blueprint('roster', __name__, cli_group=None)


def build_record_store(settings):
    """Create the record store selected by STORAGE_BACKEND"""
    if settings['STORAGE_BACKEND'] == 'memory':
        return MemoryRecordStore()
    return JsonFileRecordStore(settings['DATA_FILE'])


def create_app(config_name=None, overrides=None, record_store=None):
    """
    Create and configure the Flask application.

    Args:
        config_name (str): Key of the configuration class, FLASK_ENV when omitted
        overrides (dict): Config values applied on top of the configuration class
        record_store (RecordStore): Store to use instead of the configured backend

    Returns:
        Flask: Configured application
    """
    app = Flask(__name__)
    init_config(app, config_name, overrides)

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO),
        format=LOG_FORMAT
    )

    # Initialize system components
    store = record_store if record_store is not None else build_record_store(app.config)
    student_manager = StudentManager(store)
    qr_generator = QRGenerator(
        student_manager,
        app.config['QR_CODES_FOLDER'],
        base_url=app.config.get('PUBLIC_BASE_URL'),
        storage=app.config['QR_STORAGE'],
        settings=get_qr_settings(app.config)
    )

    app.extensions['roster'] = {
        'store': store,
        'student_manager': student_manager,
        'qr_generator': qr_generator
    }
    app.register_blueprint(bp)

    logger.info(f"QR roster initialized with {app.config['STORAGE_BACKEND']} storage")
    return app


def _student_manager() -> StudentManager:
    return current_app.extensions['roster']['student_manager']


def _qr_generator() -> QRGenerator:
    return current_app.extensions['roster']['qr_generator']


def _validate_student_input(data):
    """Return stripped (name, email) or raise ValidationError"""
    if not isinstance(data, dict):
        data = {}

    name = data.get('name')
    email = data.get('email')
    name = name.strip() if isinstance(name, str) else ''
    email = email.strip() if isinstance(email, str) else ''

    if not name or not email:
        raise ValidationError(
            'name' if not name else 'email',
            'Name and email are required.'
        )

    if not EMAIL_PATTERN.match(email):
        raise ValidationError('email', 'Invalid email address format.')

    return name, email


def _error(message, status):
    return jsonify({'success': False, 'error': message}), status


@bp.route('/health')
def health_check():
    """Health check endpoint"""
    return jsonify({'status': 'healthy', 'service': 'qr-roster'})


@bp.route('/api/students', methods=['GET'])
def list_students():
    """List all students in registration order"""
    try:
        students = _student_manager().list_students()
        return jsonify({
            'success': True,
            'data': [student.to_dict() for student in students]
        })

    except PersistenceError as e:
        logger.error(f"Error fetching students: {str(e)}")
        return _error('Failed to load the student list.', 500)


@bp.route('/api/students', methods=['POST'])
def create_student():
    """Register a student and issue their QR code"""
    try:
        name, email = _validate_student_input(request.get_json(silent=True))
        student = _student_manager().add_student(name, email)

    except ValidationError as e:
        return _error(e.message, 400)

    except DuplicateEmailError as e:
        return _error(e.message, 409)

    except PersistenceError as e:
        logger.error(f"Error adding student: {str(e)}")
        return _error('Failed to add student.', 500)

    # The student exists from here on, whether or not the QR code is issued
    try:
        _qr_generator().issue(student)
    except RosterError as e:
        logger.error(f"QR generation failed for student {student.id}: {e.message}")

    return jsonify({
        'success': True,
        'data': student.to_dict(),
        'message': 'Student added successfully.'
    }), 201


def _check_in(student_id):
    try:
        student = _student_manager().touch_access(student_id)

    except PersistenceError as e:
        logger.error(f"Error fetching student {student_id}: {str(e)}")
        return _error('Failed to load student information.', 500)

    if student is None:
        return _error('Student not found.', 404)

    return jsonify({'success': True, 'data': student.to_dict()})


@bp.route('/api/students/<student_id>', methods=['GET'])
def get_student(student_id):
    """Fetch a student and record the visit"""
    return _check_in(student_id)


@bp.route('/student/<student_id>')
def student_check_in(student_id):
    """Check-in URL encoded in each student's QR code"""
    return _check_in(student_id)


@bp.route('/api/students/<student_id>', methods=['DELETE'])
def delete_student(student_id):
    """Delete a student and revoke their QR code"""
    try:
        deleted = _student_manager().delete_student(student_id)

    except PersistenceError as e:
        logger.error(f"Error deleting student {student_id}: {str(e)}")
        return _error('Failed to delete student.', 500)

    if not deleted:
        return _error('Student to delete was not found.', 404)

    _qr_generator().revoke(student_id)

    return jsonify({
        'success': True,
        'message': 'Student deleted successfully.'
    })


@bp.route('/api/qr/<student_id>', methods=['GET'])
def download_qr_code(student_id):
    """Download a student's QR code as a PNG attachment"""
    try:
        student = _student_manager().get_student_by_id(student_id)
        if student is None:
            return _error('Student not found.', 404)

        png = _qr_generator().read(student_id)
        if png is None:
            return _error('QR code file not found.', 404)

    except PersistenceError as e:
        logger.error(f"Error downloading QR code for {student_id}: {str(e)}")
        return _error('Failed to download QR code.', 500)

    return send_file(
        io.BytesIO(png),
        mimetype='image/png',
        as_attachment=True,
        download_name=f"QR_{student.name}.png"
    )


@bp.route('/api/qr/regenerate', methods=['POST'])
def regenerate_qr_codes():
    """Re-issue QR codes for every student"""
    try:
        results = _qr_generator().regenerate_all()

    except PersistenceError as e:
        logger.error(f"QR regeneration failed: {str(e)}")
        return _error('Failed to regenerate QR codes.', 500)

    return jsonify({
        'success': results['success'],
        'data': results,
        'message': f"Regenerated {results['successful']}/{results['total_students']} QR codes."
    })


@bp.route('/qr-codes/<path:filename>')
def serve_qr_code(filename):
    """Serve stored QR code images"""
    if current_app.config['QR_STORAGE'] != 'file':
        return _error('QR code file not found.', 404)
    return send_from_directory(current_app.config['QR_CODES_FOLDER'], filename, mimetype='image/png')


@bp.cli.command('regenerate-qr')
def regenerate_qr_command():
    """Regenerate QR codes for all students."""
    results = _qr_generator().regenerate_all()
    click.echo(f"Regenerated {results['successful']}/{results['total_students']} QR codes")
    for error in results['errors']:
        click.echo(f"  {error['student_id']}: {error['error']}", err=True)


@bp.cli.command('list-students')
def list_students_command():
    """List registered students."""
    students = _student_manager().list_students()
    for student in students:
        last_access = student.last_access_at or 'never'
        click.echo(f"{student.id}\t{student.name}\t{student.email}\tlast access: {last_access}")
    click.echo(f"{len(students)} student(s)")


if __name__ == '__main__':
    app = create_app()

    # Run the application
    app.run(debug=app.config['DEBUG'], host='0.0.0.0', port=5000)
