"""
Record Store Module - QR Roster System

This module owns the persisted student record set. The whole set is read and
rewritten on every mutation; there are no partial or delta updates. Two
backends implement the same load/save contract:

- JsonFileRecordStore: a single JSON document on disk
- MemoryRecordStore: a single serialized blob under one key of a mapping

Both expose a re-entrant lock through locked() so that a load-mutate-save
sequence is never interleaved with another one in the same process. Writers in
other processes are not coordinated; the last write wins.
"""

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

from roster.modules.errors import PersistenceError

STORAGE_KEY = 'qr-system-students'


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec='microseconds')


@dataclass
class StudentRecord:
    """Data structure for one roster entry."""
    id: str
    name: str
    email: str
    created_at: str
    last_access_at: Optional[str] = None
    qr_code_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'createdAt': self.created_at,
        }
        if self.last_access_at is not None:
            data['lastAccessAt'] = self.last_access_at
        if self.qr_code_path is not None:
            data['qrCodePath'] = self.qr_code_path
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StudentRecord':
        return cls(
            id=data['id'],
            name=data['name'],
            email=data['email'],
            created_at=data['createdAt'],
            last_access_at=data.get('lastAccessAt'),
            qr_code_path=data.get('qrCodePath'),
        )


@dataclass
class RecordSet:
    """The persisted aggregate: students in insertion order plus a last-updated marker."""
    students: List[StudentRecord] = field(default_factory=list)
    last_updated: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'students': [student.to_dict() for student in self.students],
            'lastUpdated': self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RecordSet':
        return cls(
            students=[StudentRecord.from_dict(item) for item in data.get('students') or []],
            last_updated=data.get('lastUpdated') or utc_now_iso(),
        )


class RecordStore:
    """
    Base class for record set persistence.
    Subclasses implement load() and save(); callers that mutate the set wrap
    the whole load-mutate-save sequence in locked().
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._lock = threading.RLock()

    @contextmanager
    def locked(self):
        """
        Context manager holding the store lock for one load-mutate-save unit.

        Yields:
            RecordStore: This store
        """
        with self._lock:
            yield self

    def load(self) -> RecordSet:
        raise NotImplementedError

    def save(self, record_set: RecordSet) -> None:
        raise NotImplementedError


class JsonFileRecordStore(RecordStore):
    """Record store backed by one JSON file."""

    def __init__(self, data_file):
        """
        Initialize the store with the path of its JSON document.

        Args:
            data_file (str | Path): Path to the students JSON file
        """
        super().__init__()
        self.data_file = Path(data_file)

    def ensure_data_file(self):
        """
        Create the data directory and an empty document if none exists yet.
        Safe to call any number of times.
        """
        # Check and create under the lock so a concurrent save is never replaced
        with self._lock:
            if self.data_file.exists():
                return

            try:
                self.data_file.parent.mkdir(parents=True, exist_ok=True)
                self._write(RecordSet())
                self.logger.info(f"Created empty record set at {self.data_file}")
            except OSError as e:
                self.logger.error(f"Failed to create data file {self.data_file}: {str(e)}")
                raise PersistenceError(f"Failed to create data file: {e}") from e

    def load(self) -> RecordSet:
        """
        Read the full record set from disk.

        Returns:
            RecordSet: Current aggregate, empty on first use

        Raises:
            PersistenceError: If the file cannot be read or parsed
        """
        self.ensure_data_file()

        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return RecordSet.from_dict(data)

        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Failed to read students data from {self.data_file}: {str(e)}")
            raise PersistenceError(f"Failed to read students data: {e}") from e

    def save(self, record_set: RecordSet) -> None:
        """
        Replace the stored record set and refresh its last-updated marker.

        Args:
            record_set (RecordSet): Aggregate to persist

        Raises:
            PersistenceError: If the file cannot be written
        """
        record_set.last_updated = utc_now_iso()

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            self._write(record_set)
        except OSError as e:
            self.logger.error(f"Failed to save students data to {self.data_file}: {str(e)}")
            raise PersistenceError(f"Failed to save students data: {e}") from e

    def _write(self, record_set: RecordSet):
        # Write a sibling temp file, then swap it in so readers never see a torn document
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.data_file.parent),
            prefix=f".{self.data_file.name}.",
            suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(record_set.to_dict(), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.data_file)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


class MemoryRecordStore(RecordStore):
    """
    Record store keeping the serialized record set under one key of a mapping.
    Records are copied in and out as JSON, so callers never share objects with
    the stored state.
    """

    def __init__(self, storage: Optional[MutableMapping[str, str]] = None,
                 key: str = STORAGE_KEY):
        super().__init__()
        self.storage = storage if storage is not None else {}
        self.key = key

    def load(self) -> RecordSet:
        raw = self.storage.get(self.key)
        if raw is None:
            return RecordSet()

        try:
            return RecordSet.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Failed to read students data from key {self.key}: {str(e)}")
            raise PersistenceError(f"Failed to read students data: {e}") from e

    def save(self, record_set: RecordSet) -> None:
        record_set.last_updated = utc_now_iso()

        try:
            self.storage[self.key] = json.dumps(record_set.to_dict(), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Failed to save students data under key {self.key}: {str(e)}")
            raise PersistenceError(f"Failed to save students data: {e}") from e
