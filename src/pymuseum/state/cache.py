"""Local mirror of the visitor's favourites and ratings.

Reads are served from memory; every mutation persists the whole
collection snapshot to durable storage before returning, so a read right
after a write always observes it.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Union

from pydantic import ValidationError

from pymuseum._constants import FAVOURITES_KEY, RATINGS_KEY
from pymuseum.models.records import FavouriteRecord, RatingRecord
from pymuseum.state.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

CachedRecord = Union[FavouriteRecord, RatingRecord]


class CacheCollection(StrEnum):
    FAVOURITES = FAVOURITES_KEY
    RATINGS = RATINGS_KEY


_RECORD_TYPES: dict[CacheCollection, type[FavouriteRecord] | type[RatingRecord]] = {
    CacheCollection.FAVOURITES: FavouriteRecord,
    CacheCollection.RATINGS: RatingRecord,
}


class LocalCacheStore:
    """Synchronous, total key-value mirror of two record collections."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._collections: dict[CacheCollection, dict[int, CachedRecord]] = {}

    def _load(self, collection: CacheCollection) -> dict[int, CachedRecord]:
        loaded = self._collections.get(collection)
        if loaded is not None:
            return loaded

        record_type = _RECORD_TYPES[collection]
        items: dict[int, CachedRecord] = {}
        raw = self._storage.get(collection.value)
        if isinstance(raw, list):
            for entry in raw:
                try:
                    record = record_type.model_validate(entry)
                except ValidationError:
                    _logger.debug("Skipping unreadable %s entry: %r", collection.value, entry)
                    continue
                items[record.key] = record
        self._collections[collection] = items
        return items

    def _persist(self, collection: CacheCollection) -> None:
        items = self._load(collection)
        self._storage.set(collection.value, [record.model_dump(mode="json") for record in items.values()])

    def get(self, collection: CacheCollection) -> list[CachedRecord]:
        """Records of *collection* in insertion order."""
        return list(self._load(collection).values())

    def find(self, collection: CacheCollection, key: int) -> CachedRecord | None:
        return self._load(collection).get(key)

    def contains(self, collection: CacheCollection, key: int) -> bool:
        return key in self._load(collection)

    def upsert(self, collection: CacheCollection, record: CachedRecord) -> None:
        """Insert or replace the record with ``record.key``.

        A replaced record keeps its position in the collection.
        """
        record_type = _RECORD_TYPES[collection]
        if not isinstance(record, record_type):
            raise TypeError(f"{collection.value} holds {record_type.__name__}, got {type(record).__name__}")
        self._load(collection)[record.key] = record
        self._persist(collection)

    def remove(self, collection: CacheCollection, key: int) -> None:
        """Remove the record with *key*; removing an absent key is a no-op."""
        items = self._load(collection)
        if items.pop(key, None) is not None:
            self._persist(collection)

    def restore(self, collection: CacheCollection, key: int, previous: CachedRecord | None) -> None:
        """Put *key* back to a previously captured value (``None`` meaning absent)."""
        if previous is None:
            self.remove(collection, key)
        else:
            self.upsert(collection, previous)

    def clear(self) -> None:
        """Drop both collections from memory and from durable storage."""
        self._collections.clear()
        for collection in CacheCollection:
            self._storage.remove(collection.value)
