"""
# Challenge Cache

The challenge catalog is large and changes slowly, while the admin reflection tools search
it on every page load. `ChallengeCache` keeps a searchable in-memory copy, persisted to
Redis as a JSON blob so a restarted process can serve searches without re-reading the
catalog.

## Loading

- `initialize()`: use the persisted blob when it parses; a corrupt or incompatible blob is
  deleted and replaced by a full catalog fetch. No blob means a full fetch too.
- `force_refresh()`: always fetch and overwrite the blob (the admin "refresh" button).

A failed catalog fetch keeps whatever entries were loaded before. Redis problems never
fail a load: an unreadable blob counts as a miss and a failed write is only logged.

## Searching

`search(query)` matches id, title and status case-insensitively and returns at most
`CHALLENGE_SEARCH_LIMIT` entries. It returns nothing until the first load has finished,
and nothing for a blank query.

The persisted blob is not invalidated across processes; call `force_refresh()` after the
catalog changes.
"""

import asyncio
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from pulse_admin.config import settings
from pulse_admin.database.document_store import Document, DocumentStore, document_store
from pulse_admin.database.paths import StoragePath
from pulse_admin.errors import StoreError
from pulse_admin.managers.logging_manager import get_logger
from pulse_admin.managers.redis_manager import RedisManager, redis_manager
from pulse_admin.models.challenge_models import ChallengeSummary
from pulse_admin.models.result_models import ServiceResult

logger = get_logger(prefix="[ChallengeCache]")

_ENTRIES_ADAPTER = TypeAdapter(List[ChallengeSummary])

# Errors a blob store may raise without making the cache unusable.
BLOB_STORE_ERRORS = (RedisError, OSError)


class ChallengeCatalog:
    """Reads challenge summaries from the challenge collection."""

    def __init__(self, store: Optional[DocumentStore] = None):
        self.store = store or document_store

    @staticmethod
    def summarize(challenge_id: str, data: Document) -> ChallengeSummary:
        # Catalog documents nest the display fields under `challenge`.
        nested = data.get("challenge")
        source = nested if isinstance(nested, dict) else data
        return ChallengeSummary(id=challenge_id, title=source.get("title"), status=source.get("status"))

    async def fetch_all(self) -> List[ChallengeSummary]:
        """
        Raises:
            StoreError: If the collection cannot be read.
        """
        documents = await self.store.list_documents(StoragePath.of(settings.CHALLENGES_COLLECTION))
        summaries = []
        for challenge_id, data in documents:
            try:
                summaries.append(self.summarize(challenge_id, data))
            except ValidationError as e:
                logger.warning("Skipping unreadable challenge %s: %s", challenge_id, e)
        logger.info("Fetched %d challenges from the catalog", len(summaries))
        return summaries


class ChallengeCache:
    def __init__(
        self,
        catalog: Optional[ChallengeCatalog] = None,
        blob_store: Optional[RedisManager] = None,
        cache_key: Optional[str] = None,
        max_results: Optional[int] = None,
        ttl: Optional[int] = None,
    ):
        self.catalog = catalog or ChallengeCatalog()
        self.blob_store = blob_store or redis_manager
        self.cache_key = cache_key or settings.CHALLENGE_CACHE_KEY
        self.max_results = max_results or settings.CHALLENGE_SEARCH_LIMIT
        self.ttl = settings.CHALLENGE_CACHE_TTL_SECONDS if ttl is None else ttl
        self._entries: List[ChallengeSummary] = []
        self._loaded = False
        self._lock = asyncio.Lock()

    @property
    def is_loading(self) -> bool:
        """True until the first load attempt has finished."""
        return not self._loaded

    @property
    def entries(self) -> List[ChallengeSummary]:
        return list(self._entries)

    async def initialize(self) -> ServiceResult:
        """
        Load from the persisted blob, falling back to the catalog.

        Returns:
            `ServiceResult` whose value is the number of cached entries.
        """
        async with self._lock:
            cached = await self._read_blob()
            if cached is not None:
                self._entries = cached
                self._loaded = True
                logger.info("Loaded %d challenges from the persisted cache", len(cached))
                return ServiceResult.success(len(cached))
            return await self._refresh()

    async def force_refresh(self) -> ServiceResult:
        """Re-read the catalog and overwrite the persisted blob."""
        async with self._lock:
            return await self._refresh()

    async def _refresh(self) -> ServiceResult:
        try:
            entries = await self.catalog.fetch_all()
        except StoreError as e:
            logger.error("Failed to fetch challenges, keeping %d cached: %s", len(self._entries), e, exc_info=True)
            return ServiceResult.from_exception(e)
        finally:
            self._loaded = True

        self._entries = entries
        await self._write_blob(entries)
        return ServiceResult.success(len(entries))

    async def _read_blob(self) -> Optional[List[ChallengeSummary]]:
        try:
            raw = await self.blob_store.get(self.cache_key)
        except UnicodeDecodeError as e:
            # The client decodes replies as UTF-8; a foreign blob fails before parsing.
            await self._discard_blob(e)
            return None
        except BLOB_STORE_ERRORS as e:
            logger.warning("Could not read persisted challenge cache, treating as a miss: %s", e)
            return None

        if raw is None:
            logger.debug("No persisted challenge cache under %s", self.cache_key)
            return None

        try:
            return _ENTRIES_ADAPTER.validate_json(raw)
        except (ValidationError, UnicodeDecodeError) as e:
            await self._discard_blob(e)
            return None

    async def _discard_blob(self, reason: Exception) -> None:
        logger.warning("Discarding corrupt challenge cache %s: %s", self.cache_key, reason)
        try:
            await self.blob_store.delete(self.cache_key)
        except BLOB_STORE_ERRORS as e:
            logger.warning("Could not delete corrupt challenge cache: %s", e)

    async def _write_blob(self, entries: List[ChallengeSummary]) -> None:
        try:
            await self.blob_store.set(self.cache_key, _ENTRIES_ADAPTER.dump_json(entries).decode("utf-8"), ttl=self.ttl)
        except BLOB_STORE_ERRORS as e:
            logger.error("Failed to persist challenge cache: %s", e, exc_info=True)

    def search(self, query: str) -> ServiceResult:
        """Up to `max_results` entries matching `query`, in catalog order."""
        if self.is_loading or not query or not query.strip():
            return ServiceResult.success([])

        needle = query.strip()
        matches = []
        for entry in self._entries:
            if entry.matches(needle):
                matches.append(entry)
                if len(matches) >= self.max_results:
                    break
        return ServiceResult.success(matches)


# Global instance
challenge_cache = ChallengeCache()
