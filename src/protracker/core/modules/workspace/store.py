"""Document store adapters.

A workspace lives in a single document keyed by its access code. The store is
schemaless: it only ever sees plain JSON-compatible data and knows nothing about
projects or steps beyond the ``id``/``revision`` keys used for compare-and-set.
"""

import asyncio
import contextlib
import copy
from collections.abc import Awaitable, Callable
from typing import Any, Protocol
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient
from pymongo.asynchronous.change_stream import AsyncChangeStream
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import OperationFailure, PyMongoError

from protracker.errors import TransportUnavailableError, WriteError

logger = structlog.get_logger(__name__)

Document = dict[str, Any]
ChangeCallback = Callable[[Document | None], Awaitable[None]]

# Pause before reopening a change stream that failed
CHANGE_STREAM_RETRY_SECONDS = 1.0


class Subscription:
    """Handle for a live document subscription."""

    def __init__(self, on_cancel: Callable[[], None]) -> None:
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop receiving changes. Safe to call more than once."""
        if self._active:
            self._active = False
            self._on_cancel()


class DocumentStore(Protocol):
    """Operations the application needs from a remote document service."""

    async def document_exists(self, collection: str, key: str) -> bool: ...

    async def get_document(self, collection: str, key: str) -> Document | None: ...

    async def set_document_merge(self, collection: str, key: str, partial: Document) -> None: ...

    async def create_document_if_absent(
        self, collection: str, key: str, initial: Document, stamps: Document
    ) -> bool: ...

    async def replace_array_item(
        self,
        collection: str,
        key: str,
        field: str,
        item_id: str,
        expected_revision: int,
        item: Document,
        extra: Document | None = None,
    ) -> bool: ...

    async def push_array_items(
        self, collection: str, key: str, field: str, items: list[Document], extra: Document | None = None
    ) -> None: ...

    async def remove_array_item(
        self, collection: str, key: str, field: str, item_id: str, extra: Document | None = None
    ) -> bool: ...

    async def subscribe(self, collection: str, key: str, callback: ChangeCallback) -> Subscription: ...

    async def close(self) -> None: ...


def _watch_pipeline(key: str) -> list[Document]:
    return [{"$match": {"documentKey._id": key}}]


def _revision_of(item: Any) -> int:
    if isinstance(item, dict):
        return int(item.get("revision") or 0)
    return 0


class MemoryDocumentStore:
    """In-process document store for tests and local development.

    Writes are serialized by a lock. Subscribers are notified after every
    write, outside the lock, with a private copy of the document.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._subscribers: dict[tuple[str, str], list[ChangeCallback]] = {}
        self._lock = asyncio.Lock()

    def _documents(self, collection: str) -> dict[str, Document]:
        return self._collections.setdefault(collection, {})

    async def document_exists(self, collection: str, key: str) -> bool:
        return key in self._documents(collection)

    async def get_document(self, collection: str, key: str) -> Document | None:
        doc = self._documents(collection).get(key)
        return copy.deepcopy(doc) if doc is not None else None

    async def set_document_merge(self, collection: str, key: str, partial: Document) -> None:
        async with self._lock:
            doc = self._documents(collection).setdefault(key, {})
            doc.update(copy.deepcopy(partial))
        await self._notify(collection, key)

    async def create_document_if_absent(
        self, collection: str, key: str, initial: Document, stamps: Document
    ) -> bool:
        """Insert ``initial`` when the key is new; either way merge ``stamps``.

        Returns True if the document was created.
        """
        async with self._lock:
            documents = self._documents(collection)
            created = key not in documents
            if created:
                documents[key] = copy.deepcopy(initial)
            documents[key].update(copy.deepcopy(stamps))
        await self._notify(collection, key)
        return created

    async def replace_array_item(
        self,
        collection: str,
        key: str,
        field: str,
        item_id: str,
        expected_revision: int,
        item: Document,
        extra: Document | None = None,
    ) -> bool:
        async with self._lock:
            doc = self._documents(collection).get(key)
            items = doc.get(field) if doc is not None else None
            if not isinstance(items, list):
                return False
            for index, existing in enumerate(items):
                if isinstance(existing, dict) and existing.get("id") == item_id:
                    if _revision_of(existing) != expected_revision:
                        return False
                    items[index] = copy.deepcopy(item)
                    doc.update(copy.deepcopy(extra or {}))
                    break
            else:
                return False
        await self._notify(collection, key)
        return True

    async def push_array_items(
        self, collection: str, key: str, field: str, items: list[Document], extra: Document | None = None
    ) -> None:
        async with self._lock:
            doc = self._documents(collection).setdefault(key, {})
            existing = doc.get(field)
            doc[field] = copy.deepcopy(items) + (existing if isinstance(existing, list) else [])
            doc.update(copy.deepcopy(extra or {}))
        await self._notify(collection, key)

    async def remove_array_item(
        self, collection: str, key: str, field: str, item_id: str, extra: Document | None = None
    ) -> bool:
        async with self._lock:
            doc = self._documents(collection).get(key)
            items = doc.get(field) if doc is not None else None
            if not isinstance(items, list):
                return False
            kept = [i for i in items if not (isinstance(i, dict) and i.get("id") == item_id)]
            if len(kept) == len(items):
                return False
            doc[field] = kept
            doc.update(copy.deepcopy(extra or {}))
        await self._notify(collection, key)
        return True

    async def subscribe(self, collection: str, key: str, callback: ChangeCallback) -> Subscription:
        callbacks = self._subscribers.setdefault((collection, key), [])
        callbacks.append(callback)

        def remove() -> None:
            if callback in callbacks:
                callbacks.remove(callback)

        await callback(await self.get_document(collection, key))
        return Subscription(remove)

    async def close(self) -> None:
        self._subscribers.clear()

    async def _notify(self, collection: str, key: str) -> None:
        for callback in list(self._subscribers.get((collection, key), [])):
            try:
                await callback(await self.get_document(collection, key))
            except Exception:
                logger.exception("subscriber_callback_failed", collection=collection)


class MongoDocumentStore:
    """Document store backed by MongoDB.

    Live subscriptions use change streams, which require a replica set.
    """

    def __init__(self, database: AsyncDatabase[Document]) -> None:
        self._database = database
        self._watch_tasks: set[asyncio.Task[None]] = set()

    @classmethod
    def from_url(cls, database_url: str) -> "MongoDocumentStore":
        client: AsyncMongoClient[Document] = AsyncMongoClient(database_url)
        return cls(client.get_database(urlparse(database_url).path[1:]))

    def _collection(self, name: str) -> AsyncCollection[Document]:
        return self._database.get_collection(name)

    async def document_exists(self, collection: str, key: str) -> bool:
        try:
            return await self._collection(collection).count_documents({"_id": key}, limit=1) > 0
        except PyMongoError as e:
            raise TransportUnavailableError(f"Could not check workspace: {e}") from e

    async def get_document(self, collection: str, key: str) -> Document | None:
        try:
            doc = await self._collection(collection).find_one({"_id": key})
        except PyMongoError as e:
            raise TransportUnavailableError(f"Could not read workspace: {e}") from e
        if doc is not None:
            doc.pop("_id", None)
        return doc

    async def set_document_merge(self, collection: str, key: str, partial: Document) -> None:
        if not partial:
            return
        await self._write(self._collection(collection).update_one({"_id": key}, {"$set": partial}, upsert=True))

    async def create_document_if_absent(
        self, collection: str, key: str, initial: Document, stamps: Document
    ) -> bool:
        # initial and stamps must not share keys, Mongo rejects conflicting update paths
        update: Document = {"$setOnInsert": initial}
        if stamps:
            update["$set"] = stamps
        result = await self._write(self._collection(collection).update_one({"_id": key}, update, upsert=True))
        return result.upserted_id is not None

    async def replace_array_item(
        self,
        collection: str,
        key: str,
        field: str,
        item_id: str,
        expected_revision: int,
        item: Document,
        extra: Document | None = None,
    ) -> bool:
        revision_match: Document = {"revision": expected_revision}
        if expected_revision == 0:
            # Documents written before revisions existed carry no revision key
            revision_match = {"$or": [{"revision": 0}, {"revision": {"$exists": False}}]}
        query = {"_id": key, field: {"$elemMatch": {"id": item_id, **revision_match}}}
        update = {"$set": {f"{field}.$": item, **(extra or {})}}
        result = await self._write(self._collection(collection).update_one(query, update))
        return result.matched_count == 1

    async def push_array_items(
        self, collection: str, key: str, field: str, items: list[Document], extra: Document | None = None
    ) -> None:
        update: Document = {"$push": {field: {"$each": items, "$position": 0}}}
        if extra:
            update["$set"] = extra
        await self._write(self._collection(collection).update_one({"_id": key}, update, upsert=True))

    async def remove_array_item(
        self, collection: str, key: str, field: str, item_id: str, extra: Document | None = None
    ) -> bool:
        update: Document = {"$pull": {field: {"id": item_id}}}
        if extra:
            update["$set"] = extra
        result = await self._write(self._collection(collection).update_one({"_id": key}, update))
        return result.modified_count == 1

    async def subscribe(self, collection: str, key: str, callback: ChangeCallback) -> Subscription:
        """Deliver the current document, then every later change.

        The stream is opened before the first read so no change can fall
        between the two.
        """
        pipeline = _watch_pipeline(key)
        try:
            stream = await self._collection(collection).watch(pipeline, full_document="updateLookup")
        except PyMongoError as e:
            raise TransportUnavailableError(f"Could not watch workspace: {e}") from e
        try:
            await callback(await self.get_document(collection, key))
        except BaseException:
            await stream.close()
            raise
        task = asyncio.create_task(self._watch(collection, key, stream, callback))
        self._watch_tasks.add(task)
        task.add_done_callback(self._watch_tasks.discard)
        return Subscription(task.cancel)

    async def close(self) -> None:
        for task in list(self._watch_tasks):
            task.cancel()
        await self._database.client.aclose()

    async def _watch(
        self, collection: str, key: str, stream: AsyncChangeStream[Document] | None, callback: ChangeCallback
    ) -> None:
        resume_token: Any = None
        caught_up = True
        while True:
            try:
                if stream is None:
                    stream = await self._collection(collection).watch(
                        _watch_pipeline(key), full_document="updateLookup", resume_after=resume_token
                    )
                    if resume_token is None:
                        # Nothing to resume from, so catch up with a fresh read
                        caught_up = False
                        await callback(await self.get_document(collection, key))
                        caught_up = True
                async with stream:
                    async for change in stream:
                        resume_token = stream.resume_token
                        doc = None if change["operationType"] == "delete" else change.get("fullDocument")
                        if doc is not None:
                            doc.pop("_id", None)
                        await callback(doc)
                return
            except (PyMongoError, TransportUnavailableError):
                logger.exception("change_stream_failed", collection=collection)
                if stream is None or not caught_up:
                    # The resume point may have expired, or the catch-up read failed; start over
                    resume_token = None
                elif stream.resume_token is not None:
                    resume_token = stream.resume_token
                if stream is not None:
                    with contextlib.suppress(PyMongoError):
                        await stream.close()
                stream = None
                await asyncio.sleep(CHANGE_STREAM_RETRY_SECONDS)

    async def _write(self, operation: Awaitable[Any]) -> Any:
        try:
            return await operation
        except OperationFailure as e:
            raise WriteError("Could not save workspace", code=str(e.code)) from e
        except PyMongoError as e:
            raise WriteError("Could not save workspace", code=type(e).__name__) from e


def create_document_store(database_url: str) -> DocumentStore:
    """Pick a store implementation from the database URL scheme."""
    scheme = urlparse(database_url).scheme
    if scheme == "memory":
        return MemoryDocumentStore()
    if scheme in ("mongodb", "mongodb+srv"):
        return MongoDocumentStore.from_url(database_url)
    raise ValueError(f"Unsupported database url scheme: '{scheme}'")
