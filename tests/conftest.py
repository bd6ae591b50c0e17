"""Shared test fixtures: an in-memory stand-in for the Firestore client."""

import copy
import operator
from datetime import datetime, timezone

import pytest
from google.cloud.firestore import ArrayUnion

from HIVE.core import config


_OPS = {
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = copy.deepcopy(data)

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentRef:
    def __init__(self, db, collection, doc_id):
        self._db = db
        self._collection = collection
        self.id = doc_id

    @property
    def _docs(self):
        return self._db.data.setdefault(self._collection, {})

    def get(self):
        return FakeSnapshot(self, self._docs.get(self.id))

    def set(self, data, merge=False):
        if merge and self.id in self._docs:
            self._docs[self.id].update(copy.deepcopy(data))
        else:
            self._docs[self.id] = copy.deepcopy(data)

    def update(self, data):
        if self.id not in self._docs:
            raise KeyError(f"No document to update: {self._collection}/{self.id}")
        self._db.update_calls.append((self._collection, self.id))
        doc = self._docs[self.id]
        for field, value in data.items():
            if isinstance(value, ArrayUnion):
                current = list(doc.get(field) or [])
                for item in value.values:
                    if item not in current:
                        current.append(copy.deepcopy(item))
                doc[field] = current
            else:
                doc[field] = copy.deepcopy(value)


class FakeQuery:
    def __init__(self, db, collection, filters=()):
        self._db = db
        self._collection = collection
        self._filters = tuple(filters)

    def where(self, field, op, value):
        return FakeQuery(self._db, self._collection, self._filters + ((field, op, value),))

    def _matches(self, data):
        for field, op, value in self._filters:
            # Firestore never matches documents missing the field
            if field not in data:
                return False
            try:
                if not _OPS[op](data[field], value):
                    return False
            except TypeError:
                return False
        return True

    def stream(self):
        docs = self._db.data.get(self._collection, {})
        for doc_id in sorted(docs):
            if self._matches(docs[doc_id]):
                yield FakeDocumentRef(self._db, self._collection, doc_id).get()

    def get(self):
        return list(self.stream())


class FakeCollection(FakeQuery):
    def __init__(self, db, name):
        super().__init__(db, name)

    def document(self, doc_id):
        return FakeDocumentRef(self._db, self._collection, doc_id)


class FakeBatch:
    def __init__(self, db):
        self._db = db
        self._writes = []

    def update(self, reference, data):
        self._writes.append((reference, data))

    def commit(self):
        if self._db.fail_next_commit:
            self._db.fail_next_commit = False
            raise RuntimeError("simulated commit failure")
        # all-or-nothing: every target must exist before anything is applied
        for reference, _ in self._writes:
            if not reference.get().exists:
                raise KeyError(f"No document to update: {reference.id}")
        for reference, data in self._writes:
            reference.update(data)
        self._db.commits.append(len(self._writes))


class FakeFirestore:
    project = "hive-test"

    def __init__(self):
        self.data = {}
        self.commits = []
        self.update_calls = []
        self.fail_next_commit = False

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def event(self, event_id):
        return copy.deepcopy(self.data[config.EVENTS_COLLECTION][event_id])


@pytest.fixture
def db():
    return FakeFirestore()


@pytest.fixture
def now():
    return datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def add_event(db):
    """Factory: store an event document and return its id."""
    def _add(event_id, **fields):
        db.collection(config.EVENTS_COLLECTION).document(event_id).set(fields)
        return event_id
    return _add


@pytest.fixture
def add_user(db):
    """Factory: store a user document with the given role."""
    def _add(user_id, role="public"):
        db.collection(config.USERS_COLLECTION).document(user_id).set({"role": role})
        return user_id
    return _add
