"""
Shared pytest fixtures for the package store test suite.

Fixtures are reusable test setup/data automatically available to all tests.
Just add fixture name as a function parameter to use it.

Types:
    - Fakes: In-memory stand-ins for the Firestore client surface
    - Data: Sample package records and raw documents
    - Components: Pre-configured class instances ready to use
    - Mocks: MagicMock Firestore clients for error paths
"""

import copy
import itertools
import threading
from unittest.mock import MagicMock

import pytest

from database.firebase.package_store_connector import PackageStoreConnector
from models.package import PackageRecord


# ==============================================================================
# FAKES
# ==============================================================================

class FakeDocumentSnapshot:
    """Point-in-time view of a document, like google.cloud.firestore.DocumentSnapshot."""

    def __init__(self, document_id, data):
        self.id = document_id
        self._data = copy.deepcopy(data)
        self.exists = data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self.exists else None


class FakeWatch:
    """Stand-in for google.cloud.firestore_v1.watch.Watch."""

    def __init__(self, collection, callback):
        self.collection = collection
        self.callback = callback
        self.is_active = True
        self.unsubscribed = False

    def unsubscribe(self):
        self.is_active = False
        self.unsubscribed = True
        self.collection.remove_watch(self)


class FakeDocumentReference:
    def __init__(self, collection, document_id):
        self.collection = collection
        self.id = document_id

    def get(self, timeout=None):
        self.collection.record_call("document.get", timeout)
        return self.collection.snapshot_of(self.id)

    def set(self, data, timeout=None):
        self.collection.record_call("document.set", timeout)
        self.collection.write(self.id, data)

    def delete(self, timeout=None):
        self.collection.record_call("document.delete", timeout)
        self.collection.remove(self.id)


class FakeCollection:
    """In-memory collection that notifies snapshot listeners on every write."""

    def __init__(self, name):
        self.name = name
        self.calls = []
        self._documents = {}
        self._watches = []
        self._lock = threading.Lock()
        self._ids = itertools.count(1)

    # Firestore surface

    def document(self, document_id):
        return FakeDocumentReference(self, document_id)

    def get(self, timeout=None):
        self.record_call("collection.get", timeout)
        return self.snapshots()

    def add(self, data, timeout=None):
        self.record_call("collection.add", timeout)
        document_id = f"auto{next(self._ids):04d}"
        self.write(document_id, data)
        return object(), FakeDocumentReference(self, document_id)

    def on_snapshot(self, callback):
        watch = FakeWatch(self, callback)
        with self._lock:
            self._watches.append(watch)
        callback(self.snapshots(), [], "initial")
        return watch

    # Test helpers

    def seed(self, document_id, data):
        """Store a document without notifying listeners."""
        with self._lock:
            self._documents[document_id] = copy.deepcopy(data)

    def stored(self, document_id):
        with self._lock:
            return copy.deepcopy(self._documents.get(document_id))

    def keys(self):
        with self._lock:
            return list(self._documents)

    def count_calls(self, name):
        return sum(1 for call, _ in self.calls if call == name)

    @property
    def watch_count(self):
        with self._lock:
            return len(self._watches)

    def record_call(self, name, timeout):
        self.calls.append((name, timeout))

    def snapshot_of(self, document_id):
        with self._lock:
            return FakeDocumentSnapshot(document_id, self._documents.get(document_id))

    def snapshots(self):
        with self._lock:
            return [FakeDocumentSnapshot(key, data) for key, data in self._documents.items()]

    def write(self, document_id, data):
        with self._lock:
            self._documents[document_id] = copy.deepcopy(data)
        self._notify()

    def remove(self, document_id):
        with self._lock:
            self._documents.pop(document_id, None)
        self._notify()

    def remove_watch(self, watch):
        with self._lock:
            if watch in self._watches:
                self._watches.remove(watch)

    def _notify(self):
        with self._lock:
            watches = list(self._watches)
        for watch in watches:
            watch.callback(self.snapshots(), [], "change")


class FakeFirestore:
    def __init__(self):
        self.collections = {}

    def collection(self, name):
        return self.collections.setdefault(name, FakeCollection(name))


# ==============================================================================
# DATA FIXTURES
# ==============================================================================

@pytest.fixture
def sample_package() -> PackageRecord:
    """Package that has not been stored yet."""
    return PackageRecord(
        title="Family Weekend",
        description="Two nights in the garden villa",
        price=1_500_000,
        promo_price=1_250_000,
        features=["breakfast", "pool access"],
        max_guests=4,
        image_url="https://example.com/villa.jpg",
    )


@pytest.fixture
def sample_document() -> dict:
    """Raw stored fields for a valid package document."""
    return {
        "title": "Honeymoon Suite",
        "description": "Ocean view, late checkout",
        "price": 2_000_000,
        "promo_price": None,
        "features": ["spa", "dinner"],
        "max_guests": 2,
        "image_url": None,
        "is_active": True,
    }


# ==============================================================================
# COMPONENT FIXTURES
# ==============================================================================

@pytest.fixture
def fake_firestore() -> FakeFirestore:
    return FakeFirestore()


@pytest.fixture
def fake_firestore_factory():
    """Builds fresh in-memory clients, for tests that need one per example."""
    return FakeFirestore


@pytest.fixture
def package_collection(fake_firestore) -> FakeCollection:
    return fake_firestore.collection("package")


@pytest.fixture
def store(fake_firestore) -> PackageStoreConnector:
    """PackageStoreConnector over the in-memory collection."""
    return PackageStoreConnector(
        firestore_client=fake_firestore,
        request_timeout=3.0,
        liveness_interval=0.05,
    )


# ==============================================================================
# MOCKS
# ==============================================================================

@pytest.fixture
def mock_firestore():
    """Mock Firestore client with collection/document chain."""
    return MagicMock()


@pytest.fixture
def mock_store(mock_firestore) -> PackageStoreConnector:
    """PackageStoreConnector with mocked Firestore client."""
    return PackageStoreConnector(firestore_client=mock_firestore, request_timeout=3.0)
