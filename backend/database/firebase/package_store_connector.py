"""
Firestore-backed store for lodging packages.
"""

import asyncio
import logging
import weakref
from typing import Any, List, Optional, Type

from database.exceptions import (
    NotFoundFailure,
    PackageStoreError,
    ReadFailure,
    WriteFailure,
)
from database.firebase.firebase_connector import FirebaseConnector, init_firestore_client
from database.firebase.package_id_index import PackageIdIndex
from models.package import InvalidPackageDocument, PackageRecord
from shared.config import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    get_package_collection,
    get_request_timeout,
)

logger = logging.getLogger(__name__)

DEFAULT_LIVENESS_INTERVAL_SECONDS = 5.0

_CLOSED = object()


class PackageSubscription:
    """
    Live sequence of full package lists, one per collection change.

    The Firestore listener is attached lazily on the first `__anext__`. It is
    detached by `aclose()`, by cancelling the consumer while it waits, or when
    the subscription is dropped (e.g. after `break` out of `async for`). Only
    the newest unread list is buffered. When the listener dies on its own,
    iteration raises ReadFailure; resubscribe to recover.
    """

    def __init__(self, connector: "PackageStoreConnector", liveness_interval: float):
        self._connector = connector
        self._liveness_interval = liveness_interval
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._watch = None
        self._closed = False

    @property
    def is_listening(self) -> bool:
        return self._watch is not None and not self._closed

    def __aiter__(self):
        return self

    async def __anext__(self) -> List[PackageRecord]:
        if self._closed:
            raise StopAsyncIteration
        if self._watch is None:
            self._start()

        while True:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=self._liveness_interval)
            except asyncio.TimeoutError:
                if self._closed:
                    raise StopAsyncIteration
                if not self._watch.is_active:
                    self._detach()
                    raise self._connector._failure(
                        ReadFailure, "subscribe", RuntimeError("snapshot listener terminated")
                    )
                continue
            except asyncio.CancelledError:
                self._detach()
                raise

            if item is _CLOSED:
                raise StopAsyncIteration
            return item

    async def aclose(self) -> None:
        """Detach the Firestore listener and end the sequence."""
        if self._closed:
            return
        self._detach()
        if self._queue is not None:
            self._offer(_CLOSED)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    def __del__(self):
        if not self._closed:
            self._detach()

    def _start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue(maxsize=1)
        try:
            self._watch = self._connector._collection_ref().on_snapshot(_weak_snapshot_callback(self))
        except Exception as e:
            self._closed = True
            raise self._connector._failure(ReadFailure, "subscribe", e) from e
        logger.info(f"Attached snapshot listener to '{self._connector.collection}'")

    def _detach(self) -> None:
        self._closed = True
        if self._watch is not None:
            self._watch.unsubscribe()
            logger.info(f"Detached snapshot listener from '{self._connector.collection}'")

    def _on_snapshot(self, documents, changes, read_time) -> None:
        # Runs on the Firestore listener thread
        if self._closed:
            return
        records = self._connector._records_from_snapshot(documents)
        logger.debug(f"Snapshot of '{self._connector.collection}' at {read_time}: {len(records)} packages")
        try:
            self._loop.call_soon_threadsafe(self._offer, records)
        except RuntimeError as e:
            logger.warning(f"Dropping snapshot for '{self._connector.collection}', event loop is closed: {e}")

    def _offer(self, item: Any) -> None:
        # A snapshot scheduled before close must not evict the close sentinel
        if self._closed and item is not _CLOSED:
            return
        # Latest snapshot wins
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(item)


def _weak_snapshot_callback(subscription: PackageSubscription):
    """
    Snapshot callback that does not keep the subscription alive.

    The Watch holds its callback for as long as it listens, so a strong
    reference would stop an abandoned subscription from ever being finalized.
    """
    subscription_ref = weakref.ref(subscription)

    def on_snapshot(documents, changes, read_time):
        target = subscription_ref()
        if target is not None:
            target._on_snapshot(documents, changes, read_time)

    return on_snapshot


class PackageStoreConnector(FirebaseConnector):
    """
    Firestore wrapper for lodging packages.

    Request/response operations are coroutines that run the blocking SDK
    call in a worker thread with a per-request timeout. Integer package ids
    are derived from document keys and resolved through a PackageIdIndex,
    falling back to a collection scan on a miss.
    """

    DEFAULT_COLLECTION = "package"

    def __init__(
        self,
        firestore_client,
        collection: str = DEFAULT_COLLECTION,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        liveness_interval: float = DEFAULT_LIVENESS_INTERVAL_SECONDS,
    ):
        super().__init__(firestore_client, collection)
        self.request_timeout = request_timeout
        self.liveness_interval = liveness_interval
        self.id_index = PackageIdIndex(collection)
        logger.info(f"Initialized PackageStoreConnector with collection: {collection}")

    def subscribe(self) -> PackageSubscription:
        """Live sequence of the full package list, emitted on every collection change."""
        return PackageSubscription(self, self.liveness_interval)

    async def create(self, record: PackageRecord) -> PackageRecord:
        """
        Add a new package document.

        Returns:
            PackageRecord: The record bound to its new document key and derived id

        Raises:
            WriteFailure: If the write does not complete
        """
        try:
            _, doc_ref = await asyncio.to_thread(self._add_document, record.to_firestore())
        except Exception as e:
            raise self._failure(WriteFailure, "create", e) from e

        self.id_index.register(doc_ref.id)
        created = record.with_document_key(doc_ref.id)
        logger.info(f"Created package {created.document_key} (id {created.id})")
        return created

    async def get_by_id(self, package_id: int) -> Optional[PackageRecord]:
        """
        Get a package by its derived id.

        Returns None when no document matches or the matching document
        cannot be parsed.

        Raises:
            ReadFailure: If the fetch fails
            IdentifierCollision: If the id is derived from more than one key
        """
        snapshot = await self._find_document(package_id, ReadFailure, "get")
        if snapshot is None:
            return None
        try:
            return PackageRecord.from_document(snapshot.id, snapshot.to_dict())
        except InvalidPackageDocument as e:
            logger.warning(f"Package {snapshot.id} (id {package_id}) is not a valid package: {e}")
            return None

    async def get_all(self) -> List[PackageRecord]:
        """
        Get every package in the collection at this point in time.

        Raises:
            ReadFailure: If the collection fetch fails
        """
        try:
            documents = await asyncio.to_thread(self._fetch_documents)
        except Exception as e:
            raise self._failure(ReadFailure, "get", e) from e
        return self._records_from_snapshot(documents)

    async def update(self, record: PackageRecord) -> PackageRecord:
        """
        Overwrite the document whose derived id equals `record.id`.

        Raises:
            NotFoundFailure: If no document matches; nothing is written
            WriteFailure: If the lookup or the write fails
            IdentifierCollision: If the id is derived from more than one key
        """
        snapshot = await self._find_document(record.id, WriteFailure, "update")
        if snapshot is None:
            raise self._not_found("update", record.id)

        try:
            await asyncio.to_thread(self._set_document, snapshot.id, record.to_firestore())
        except Exception as e:
            raise self._failure(WriteFailure, "update", e) from e

        logger.info(f"Updated package {snapshot.id} (id {record.id})")
        return record.with_document_key(snapshot.id)

    async def delete_by_id(self, package_id: int) -> None:
        """
        Delete the document whose derived id equals `package_id`.

        Raises:
            NotFoundFailure: If no document matches
            WriteFailure: If the lookup or the delete fails
            IdentifierCollision: If the id is derived from more than one key
        """
        snapshot = await self._find_document(package_id, WriteFailure, "delete")
        if snapshot is None:
            raise self._not_found("delete", package_id)
        await self.delete_by_document_key(snapshot.id)

    async def delete_by_document_key(self, document_key: str) -> None:
        """
        Delete a package by its Firestore document key, without a scan.

        Raises:
            WriteFailure: If the delete fails
        """
        try:
            await asyncio.to_thread(self._delete_document, document_key)
        except Exception as e:
            raise self._failure(WriteFailure, "delete", e) from e

        self.id_index.discard(document_key)
        logger.info(f"Deleted package {document_key}")

    async def _find_document(
        self,
        package_id: int,
        failure_cls: Type[PackageStoreError],
        operation: str,
    ):
        """
        Resolve a package id to its document snapshot.

        Unknown, stale and ambiguous ids are rechecked against a fresh
        collection scan; a collision only raises if the scan still has it.
        """
        document_key = self.id_index.unique_key(package_id)
        try:
            if document_key is not None:
                snapshot = await asyncio.to_thread(self._fetch_document, document_key)
                if snapshot.exists:
                    return snapshot
                self.id_index.discard(document_key)

            documents = await asyncio.to_thread(self._fetch_documents)
        except Exception as e:
            raise self._failure(failure_cls, operation, e) from e

        self.id_index.rebuild(document.id for document in documents)
        document_key = self.id_index.resolve(package_id)
        if document_key is None:
            return None
        return next(document for document in documents if document.id == document_key)

    def _records_from_snapshot(self, documents) -> List[PackageRecord]:
        """Map documents to records, dropping any that do not parse."""
        documents = list(documents)
        self.id_index.rebuild(document.id for document in documents)

        records = []
        for document in documents:
            try:
                records.append(PackageRecord.from_document(document.id, document.to_dict()))
            except InvalidPackageDocument as e:
                logger.debug(f"Skipping package {document.id}: {e}")
        return records

    def _failure(self, failure_cls: Type[PackageStoreError], operation: str, cause: Exception) -> PackageStoreError:
        message = f"Package {operation} failed in collection '{self.collection}': {cause}"
        logger.error(message)
        return failure_cls(message, operation=operation, collection=self.collection, cause=cause)

    def _not_found(self, operation: str, package_id: int) -> NotFoundFailure:
        logger.warning(f"Cannot {operation} - package id {package_id} not found in '{self.collection}'")
        return NotFoundFailure(
            f"Package id {package_id} not found in collection '{self.collection}'",
            operation=operation,
            collection=self.collection,
        )

    # Blocking SDK calls, run via asyncio.to_thread

    def _fetch_documents(self) -> list:
        return list(self._collection_ref().get(timeout=self.request_timeout))

    def _fetch_document(self, document_key: str):
        return self._document_ref(document_key).get(timeout=self.request_timeout)

    def _add_document(self, fields: dict):
        return self._collection_ref().add(fields, timeout=self.request_timeout)

    def _set_document(self, document_key: str, fields: dict) -> None:
        self._document_ref(document_key).set(fields, timeout=self.request_timeout)

    def _delete_document(self, document_key: str) -> None:
        self._document_ref(document_key).delete(timeout=self.request_timeout)


def create_package_store(firestore_client=None) -> PackageStoreConnector:
    """Build a PackageStoreConnector from environment configuration."""
    if firestore_client is None:
        firestore_client = init_firestore_client()
    return PackageStoreConnector(
        firestore_client,
        collection=get_package_collection(),
        request_timeout=get_request_timeout(),
    )
