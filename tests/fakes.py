"""
In-memory stand-in for google.cloud.firestore.Client.

Covers what the stores use: collections, documents with auto ids,
FieldFilter queries, order_by, limit, collection groups, snapshot
listeners and write batches with preconditions and the Increment,
SERVER_TIMESTAMP and DELETE_FIELD transforms.

Documents live in one dict keyed by path. Every write goes through a
batch; a batch whose precondition fails applies nothing.
"""

import uuid
from datetime import datetime, timedelta, timezone

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore import DELETE_FIELD, SERVER_TIMESTAMP, Increment

ASCENDING = "ASCENDING"
DESCENDING = "DESCENDING"

_MISSING = object()


def _clone(value):
    # deepcopy would replace the SERVER_TIMESTAMP and DELETE_FIELD sentinels
    if isinstance(value, dict):
        return {k: _clone(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clone(v) for v in value]
    return value


def _parent_path(path):
    return path.rsplit('/', 1)[0]


def _merge(target, updates):
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target[key] = value


class FakeDocumentSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self._data = data

    @property
    def id(self):
        return self.reference.id

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return _clone(self._data) if self._data is not None else None


class FakeDocumentReference:
    def __init__(self, client, path):
        self._client = client
        self.path = path

    @property
    def id(self):
        return self.path.rsplit('/', 1)[-1]

    @property
    def parent(self):
        return FakeCollectionReference(self._client, _parent_path(self.path))

    def collection(self, name):
        return FakeCollectionReference(self._client, f"{self.path}/{name}")

    def get(self):
        return FakeDocumentSnapshot(self, self._client._docs.get(self.path))

    def create(self, data):
        batch = self._client.batch()
        batch.create(self, data)
        batch.commit()

    def set(self, data, merge=False):
        batch = self._client.batch()
        batch.set(self, data, merge=merge)
        batch.commit()

    def update(self, data):
        batch = self._client.batch()
        batch.update(self, data)
        batch.commit()

    def delete(self, option=None):
        batch = self._client.batch()
        batch.delete(self, option=option)
        batch.commit()

    def __eq__(self, other):
        return isinstance(other, FakeDocumentReference) and other.path == self.path

    def __hash__(self):
        return hash(self.path)

    def __repr__(self):
        return f"<FakeDocumentReference {self.path}>"


class FakeWatch:
    def __init__(self, client, query, callback):
        self._client = client
        self.query = query
        self.callback = callback
        self.active = True

    def notify(self, read_time):
        self.callback(list(self.query.stream()), [], read_time)

    def unsubscribe(self):
        self.active = False
        if self in self._client._watches:
            self._client._watches.remove(self)


class FakeQuery:
    def __init__(self, client, path=None, group=None, filters=(), orders=(), limit=None):
        self._client = client
        self._path = path
        self._group = group
        self._filters = tuple(filters)
        self._orders = tuple(orders)
        self._limit = limit

    def _copy(self, **changes):
        state = {
            'path': self._path, 'group': self._group, 'filters': self._filters,
            'orders': self._orders, 'limit': self._limit,
        }
        state.update(changes)
        return FakeQuery(self._client, **state)

    def where(self, field_path=None, op_string=None, value=None, filter=None):
        if filter is not None:
            field_path, op_string, value = filter.field_path, filter.op_string, filter.value
        return self._copy(filters=self._filters + ((field_path, op_string, value),))

    def order_by(self, field_path, direction=ASCENDING):
        return self._copy(orders=self._orders + ((field_path, direction),))

    def limit(self, count):
        return self._copy(limit=count)

    def _in_scope(self, path):
        parent = _parent_path(path)
        if self._group is not None:
            return parent.rsplit('/', 1)[-1] == self._group
        return parent == self._path

    @staticmethod
    def _matches(data, field, op, value):
        actual = data.get(field, _MISSING)
        if actual is _MISSING:
            return False
        if op == '==':
            return actual == value
        if op == '!=':
            return actual != value
        if op == '<':
            return actual < value
        if op == '<=':
            return actual <= value
        if op == '>':
            return actual > value
        if op == '>=':
            return actual >= value
        if op == 'in':
            return actual in value
        if op == 'array-contains':
            return isinstance(actual, list) and value in actual
        raise ValueError(f"Unsupported operator {op}")

    def stream(self):
        rows = []
        for path in sorted(self._client._docs):
            if not self._in_scope(path):
                continue
            data = self._client._docs[path]
            if not all(self._matches(data, f, op, v) for f, op, v in self._filters):
                continue
            if any(field not in data for field, _ in self._orders):
                continue
            rows.append((path, data))

        for field, direction in reversed(self._orders):
            rows.sort(key=lambda row: row[1][field], reverse=(direction == DESCENDING))

        if self._limit is not None:
            rows = rows[:self._limit]

        for path, data in rows:
            yield FakeDocumentSnapshot(FakeDocumentReference(self._client, path), data)

    def get(self):
        return list(self.stream())

    def on_snapshot(self, callback):
        watch = FakeWatch(self._client, self, callback)
        self._client._watches.append(watch)
        watch.notify(self._client.now)
        return watch


class FakeCollectionReference(FakeQuery):
    def __init__(self, client, path):
        super().__init__(client, path=path)

    @property
    def id(self):
        return self._path.rsplit('/', 1)[-1]

    def document(self, document_id=None):
        document_id = document_id or uuid.uuid4().hex[:20]
        return FakeDocumentReference(self._client, f"{self._path}/{document_id}")

    def list_documents(self):
        return [FakeDocumentReference(self._client, path)
                for path in sorted(self._client._docs)
                if _parent_path(path) == self._path]


class FakePrecondition:
    def __init__(self, exists=None):
        self.exists = exists


class FakeWriteBatch:
    MAX_WRITES = 500

    def __init__(self, client):
        self._client = client
        self._ops = []

    def create(self, reference, data):
        self._ops.append(('create', reference.path, _clone(data), None))

    def set(self, reference, data, merge=False):
        self._ops.append(('set', reference.path, _clone(data), merge))

    def update(self, reference, data):
        self._ops.append(('update', reference.path, _clone(data), None))

    def delete(self, reference, option=None):
        self._ops.append(('delete', reference.path, None, option))

    def commit(self):
        if len(self._ops) > self.MAX_WRITES:
            raise google_exceptions.InvalidArgument(
                f"maximum {self.MAX_WRITES} writes allowed per request")

        now = self._client._advance_clock()
        staged = _clone(self._client._docs)

        for op, path, data, extra in self._ops:
            current = staged.get(path)
            if op == 'create':
                if current is not None:
                    raise google_exceptions.AlreadyExists(f"Document already exists: {path}")
                staged[path] = self._apply({}, data, now)
            elif op == 'set':
                base = _clone(current) if (extra and current is not None) else {}
                staged[path] = self._apply(base, data, now, merge=bool(extra))
            elif op == 'update':
                if current is None:
                    raise google_exceptions.NotFound(f"No document to update: {path}")
                staged[path] = self._apply(_clone(current), data, now)
            elif op == 'delete':
                if extra is not None and extra.exists and current is None:
                    raise google_exceptions.NotFound(f"No document to delete: {path}")
                staged.pop(path, None)

        self._client._docs = staged
        self._client.commits += 1
        self._client.writes += len(self._ops)
        self._ops = []

        for watch in list(self._client._watches):
            watch.notify(now)
        return now

    @staticmethod
    def _apply(target, data, now, merge=False):
        for key, value in data.items():
            if value is DELETE_FIELD:
                target.pop(key, None)
            elif value is SERVER_TIMESTAMP:
                target[key] = now
            elif isinstance(value, Increment):
                current = target.get(key, 0)
                target[key] = (current if isinstance(current, (int, float)) else 0) + value.value
            elif merge and isinstance(value, dict) and isinstance(target.get(key), dict):
                _merge(target[key], value)
            else:
                target[key] = value
        return target


class FakeFirestore:
    """
    The client. `commits` and `writes` count successful batches and
    their operations; `now` is the timestamp of the latest commit.
    """

    def __init__(self, start=None):
        self._docs = {}
        self._watches = []
        self.commits = 0
        self.writes = 0
        self.now = start or datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)

    def _advance_clock(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now

    def tick(self, **delta):
        """Move the clock forward, e.g. tick(days=2)."""
        self.now = self.now + timedelta(**delta)

    def collection(self, *path):
        return FakeCollectionReference(self, '/'.join(path))

    def document(self, *path):
        return FakeDocumentReference(self, '/'.join(path))

    def collection_group(self, collection_id):
        return FakeQuery(self, group=collection_id)

    def batch(self):
        return FakeWriteBatch(self)

    def write_option(self, exists=None, **kwargs):
        return FakePrecondition(exists=exists)

    def get_all(self, references):
        for reference in references:
            yield reference.get()

    # Test helpers

    def dump(self):
        """Deep copy of every stored document, keyed by path."""
        return _clone(self._docs)

    def paths(self, prefix=''):
        return sorted(p for p in self._docs if p.startswith(prefix))
