import pytest

from app import create_app
from roster.modules.qr_generator import QRGenerator
from roster.modules.record_store import JsonFileRecordStore, MemoryRecordStore
from roster.modules.student_manager import StudentManager


@pytest.fixture
def memory_store():
    return MemoryRecordStore()


@pytest.fixture
def json_store(tmp_path):
    return JsonFileRecordStore(tmp_path / 'data' / 'students.json')


@pytest.fixture
def student_manager(json_store):
    return StudentManager(json_store)


@pytest.fixture
def qr_output_dir(tmp_path):
    return tmp_path / 'qr-codes'


@pytest.fixture
def qr_generator(student_manager, qr_output_dir):
    return QRGenerator(student_manager, qr_output_dir, base_url='http://testserver')


@pytest.fixture
def app(tmp_path):
    return create_app('testing', overrides={
        'STORAGE_BACKEND': 'file',
        'DATA_FILE': tmp_path / 'data' / 'students.json',
        'QR_STORAGE': 'file',
        'QR_CODES_FOLDER': tmp_path / 'qr-codes',
    })


@pytest.fixture
def client(app):
    return app.test_client()
