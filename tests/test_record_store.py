import json
import threading

import pytest

from roster.modules.errors import PersistenceError
from roster.modules.record_store import (
    JsonFileRecordStore, MemoryRecordStore, RecordSet, StudentRecord, STORAGE_KEY
)
from roster.modules.student_manager import StudentManager


def make_record(student_id='1-abc', name='Kim', email='kim@x.com', **kwargs):
    return StudentRecord(id=student_id, name=name, email=email,
                         created_at='2025-01-01T00:00:00.000000+00:00', **kwargs)


class TestStudentRecord:

    def test_to_dict_uses_camel_case_and_omits_absent_fields(self):
        data = make_record().to_dict()

        assert data == {
            'id': '1-abc',
            'name': 'Kim',
            'email': 'kim@x.com',
            'createdAt': '2025-01-01T00:00:00.000000+00:00',
        }

    def test_optional_fields_survive_a_round_trip(self):
        record = make_record(last_access_at='2025-01-02T00:00:00+00:00',
                             qr_code_path='/qr-codes/qr-1-abc.png')

        assert StudentRecord.from_dict(record.to_dict()) == record

    def test_record_set_ignores_unknown_keys(self):
        record_set = RecordSet.from_dict({
            'students': [dict(make_record().to_dict(), extra='ignored')],
            'lastUpdated': '2025-01-01T00:00:00+00:00',
            'version': 3,
        })

        assert record_set.students == [make_record()]
        assert record_set.last_updated == '2025-01-01T00:00:00+00:00'


class TestJsonFileRecordStore:

    def test_load_without_data_returns_empty_set_and_creates_file(self, tmp_path):
        data_file = tmp_path / 'nested' / 'students.json'
        store = JsonFileRecordStore(data_file)

        record_set = store.load()

        assert record_set.students == []
        assert record_set.last_updated
        assert data_file.exists()
        assert json.loads(data_file.read_text(encoding='utf-8'))['students'] == []

    def test_save_writes_normative_document(self, json_store):
        json_store.save(RecordSet(students=[make_record(qr_code_path='/qr-codes/qr-1-abc.png')]))

        document = json.loads(json_store.data_file.read_text(encoding='utf-8'))

        assert set(document) == {'students', 'lastUpdated'}
        assert document['students'][0]['qrCodePath'] == '/qr-codes/qr-1-abc.png'
        assert 'lastAccessAt' not in document['students'][0]

    def test_save_refreshes_last_updated(self, json_store):
        record_set = RecordSet(last_updated='2000-01-01T00:00:00+00:00')

        json_store.save(record_set)

        assert record_set.last_updated > '2000-01-01T00:00:00+00:00'
        assert json_store.load().last_updated == record_set.last_updated

    def test_save_of_load_keeps_records(self, json_store):
        json_store.save(RecordSet(students=[
            make_record('1-a', 'Kim', 'kim@x.com'),
            make_record('2-b', 'Lee', 'lee@x.com'),
        ]))
        before = json_store.load()

        json_store.save(json_store.load())
        after = json_store.load()

        assert [(s.id, s.name, s.email) for s in after.students] == \
            [(s.id, s.name, s.email) for s in before.students]

    def test_save_leaves_no_temp_files(self, json_store):
        json_store.save(RecordSet(students=[make_record()]))
        json_store.save(RecordSet(students=[]))

        assert [p.name for p in json_store.data_file.parent.iterdir()] == ['students.json']

    def test_malformed_document_raises_persistence_error(self, json_store):
        json_store.data_file.parent.mkdir(parents=True)
        json_store.data_file.write_text('{not json', encoding='utf-8')

        with pytest.raises(PersistenceError):
            json_store.load()

    def test_document_with_incomplete_record_raises_persistence_error(self, json_store):
        json_store.data_file.parent.mkdir(parents=True)
        json_store.data_file.write_text(json.dumps({'students': [{'id': 'x'}]}), encoding='utf-8')

        with pytest.raises(PersistenceError):
            json_store.load()

    def test_unwritable_location_raises_persistence_error(self, tmp_path):
        blocker = tmp_path / 'blocker'
        blocker.write_text('not a directory')
        store = JsonFileRecordStore(blocker / 'students.json')

        with pytest.raises(PersistenceError):
            store.save(RecordSet())

    def test_locked_is_reentrant(self, json_store):
        with json_store.locked():
            with json_store.locked() as store:
                assert store is json_store

    def test_first_use_does_not_overwrite_a_concurrent_save(self, json_store, monkeypatch):
        manager = StudentManager(json_store)
        creating = threading.Event()
        resume = threading.Event()
        original_write = json_store._write
        calls = []

        def slow_first_write(record_set):
            calls.append(record_set)
            if len(calls) == 1:
                creating.set()
                resume.wait(timeout=5)
            original_write(record_set)

        monkeypatch.setattr(json_store, '_write', slow_first_write)

        reader = threading.Thread(target=manager.list_students)
        reader.start()
        assert creating.wait(timeout=5)

        writer = threading.Thread(target=manager.add_student, args=('Kim', 'kim@x.com'))
        writer.start()
        writer.join(timeout=0.2)
        resume.set()
        reader.join(timeout=5)
        writer.join(timeout=5)

        assert [s.email for s in manager.list_students()] == ['kim@x.com']


class TestMemoryRecordStore:

    def test_load_without_data_returns_empty_set(self, memory_store):
        assert memory_store.load().students == []

    def test_save_then_load(self, memory_store):
        memory_store.save(RecordSet(students=[make_record()]))

        assert memory_store.load().students == [make_record()]

    def test_save_refreshes_last_updated(self, memory_store):
        record_set = RecordSet(last_updated='2000-01-01T00:00:00+00:00')

        memory_store.save(record_set)

        assert record_set.last_updated > '2000-01-01T00:00:00+00:00'
        assert memory_store.load().last_updated == record_set.last_updated

    def test_loaded_records_are_copies(self, memory_store):
        memory_store.save(RecordSet(students=[make_record()]))

        memory_store.load().students[0].name = 'Changed'

        assert memory_store.load().students[0].name == 'Kim'

    def test_instances_are_isolated(self):
        first = MemoryRecordStore()
        second = MemoryRecordStore()

        first.save(RecordSet(students=[make_record()]))

        assert second.load().students == []

    def test_uses_single_key_of_given_mapping(self):
        storage = {}
        store = MemoryRecordStore(storage)

        store.save(RecordSet(students=[make_record()]))

        assert list(storage) == [STORAGE_KEY]
        assert json.loads(storage[STORAGE_KEY])['students'][0]['email'] == 'kim@x.com'

    def test_corrupt_blob_raises_persistence_error(self):
        store = MemoryRecordStore({STORAGE_KEY: '[1, 2'})

        with pytest.raises(PersistenceError):
            store.load()
