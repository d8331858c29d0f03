"""
# Reflection Service

CRUD and cross-partition listing for daily reflections.

Reflections are partitioned by day (`reflections/{MM-DD-YYYY}`); inside a day there is one
`general` slot and one slot per challenge. The store cannot answer "latest reflections
across all days" in one call, so `list()` fans out:

1. `list_partitions(limit)`: the `limit` most recent day partitions, asking for more when
   some of them turn out to be empty.
2. `read_partition_contents(date_key)`: the general slot plus every challenge slot of one
   day; partitions are read concurrently and a failing partition contributes nothing.
3. `merge_reflections(batches, limit)`: pure flatten, sort by date (newest first), truncate.

Every operation returns a `ServiceResult`; store failures are logged and reported, never
raised. A malformed reflection id is treated as "not found".

## Usage Example

```python
result = await reflection_service.create(
    CreateReflectionRequest(date=date(2025, 1, 3), text="What did you learn today?")
)
latest = await reflection_service.list(limit=30)
```
"""

import asyncio
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from pulse_admin.config import settings
from pulse_admin.database.document_store import Document, DocumentStore, document_store
from pulse_admin.errors import ContentValidationError, MalformedIdError, StoreError
from pulse_admin.managers.logging_manager import get_logger
from pulse_admin.models.reflection_models import CreateReflectionRequest, ReflectionRecord
from pulse_admin.models.result_models import ErrorCode, ServiceResult
from pulse_admin.services.reflection_ids import (
    GENERAL_CONTEXT,
    challenges_container,
    context_key_for,
    date_key_for,
    decode_id,
    encode_id,
    is_date_key,
    parse_date_key,
    partition_path,
    path_for,
    reflections_root,
)
from pulse_admin.utils.datetime_utils import utcnow

logger = get_logger(prefix="[ReflectionService]")


def merge_reflections(batches: Iterable[List[ReflectionRecord]], limit: int) -> List[ReflectionRecord]:
    """
    Flatten per-partition batches, order newest first by `date`, keep the first `limit`.

    Sorting uses the stored date value rather than the `MM-DD-YYYY` key, which does not
    order correctly across years. The sort is stable, so records of the same day keep
    their in-partition order (general first, then challenges by id).
    """
    flattened = [record for batch in batches for record in batch]
    flattened.sort(key=lambda record: record.date, reverse=True)
    return flattened[:limit]


class ReflectionService:
    """
    Repository for daily reflections.

    Writes go to the slot computed from the reflection's day and context; a write always
    replaces the slot's previous occupant (the day's general reflection, or that
    challenge's reflection for the day).
    """

    def __init__(self, store: Optional[DocumentStore] = None):
        self.store = store or document_store

    @staticmethod
    def _hydrate(date_key: str, context_key: str, data: Document) -> ReflectionRecord:
        fields: Dict[str, Any] = {k: v for k, v in data.items() if k not in ("id", "date_key", "context_key")}
        fields.setdefault("date", parse_date_key(date_key))
        return ReflectionRecord(
            id=encode_id(date_key, context_key),
            date_key=date_key,
            context_key=context_key,
            **fields,
        )

    async def create(self, request: CreateReflectionRequest) -> ServiceResult:
        """
        Store a reflection in its day/context slot, replacing any previous occupant.

        `created_at` is kept from the slot's previous occupant when the caller does not
        supply one; `updated_at` defaults to now. Unset optional references are omitted
        from the stored document.

        Returns:
            `ServiceResult` with the stored `ReflectionRecord`, or a `validation_error`
            (empty text, unusable challenge id) / `store_error` failure.
        """
        text = request.text.strip()
        if not text:
            logger.warning("Rejected reflection for %s: empty text", request.date.date())
            return ServiceResult.from_exception(ContentValidationError("text", "must not be empty"))

        date_key = date_key_for(request.date)
        context_key = context_key_for(request.challenge_id)

        try:
            reflection_id = encode_id(date_key, context_key)
        except MalformedIdError as e:
            logger.warning("Rejected reflection with unusable challenge id %r: %s", request.challenge_id, e)
            return ServiceResult.failure(ErrorCode.VALIDATION_ERROR, str(e))

        path = path_for(date_key, context_key)
        now = utcnow()
        data = request.model_dump(exclude_none=True)
        data.update(text=text, date_key=date_key, context_key=context_key)
        data.setdefault("updated_at", now)

        try:
            if request.created_at is None:
                existing = await self.store.get(path)
                data["created_at"] = existing.get("created_at", now) if existing else now

            await self.store.set(path, data)
            await self.store.merge(partition_path(date_key), {"date": request.date, "date_key": date_key})
        except StoreError as e:
            logger.error("Failed to create reflection %s: %s", reflection_id, e, exc_info=True)
            return ServiceResult.from_exception(e)

        logger.info("Created reflection %s", reflection_id)
        return ServiceResult.success(self._hydrate(date_key, context_key, data))

    async def get(self, reflection_id: str) -> ServiceResult:
        """
        Fetch one reflection. `value` is `None` when nothing is stored under the id or
        the id is malformed.
        """
        try:
            identity = decode_id(reflection_id)
        except MalformedIdError as e:
            logger.warning("Treating malformed reflection id as not found: %s", e)
            return ServiceResult.success(None)

        try:
            data = await self.store.get(path_for(*identity))
        except StoreError as e:
            logger.error("Failed to fetch reflection %s: %s", reflection_id, e, exc_info=True)
            return ServiceResult.from_exception(e)

        if data is None:
            logger.debug("Reflection not found: %s", reflection_id)
            return ServiceResult.success(None)

        try:
            return ServiceResult.success(self._hydrate(identity.date_key, identity.context_key, data))
        except ValidationError as e:
            logger.error("Stored reflection %s is unreadable: %s", reflection_id, e)
            return ServiceResult.failure(ErrorCode.STORE_ERROR, f"Stored reflection {reflection_id} is unreadable")

    async def delete(self, reflection_id: str) -> ServiceResult:
        """
        Remove a reflection. Idempotent: `ok` even when nothing was stored (or the id is
        malformed); `value` tells whether a document was actually removed.
        """
        try:
            identity = decode_id(reflection_id)
        except MalformedIdError as e:
            logger.warning("Treating malformed reflection id as not found: %s", e)
            return ServiceResult.success(False)

        try:
            deleted = await self.store.delete(path_for(*identity))
        except StoreError as e:
            logger.error("Failed to delete reflection %s: %s", reflection_id, e, exc_info=True)
            return ServiceResult.from_exception(e)

        if deleted:
            logger.info("Deleted reflection %s", reflection_id)
        return ServiceResult.success(deleted)

    async def list_partitions(self, limit: int) -> List[str]:
        """Date keys of the `limit` most recent partitions, newest first."""
        documents = await self.store.list_documents(reflections_root(), order_by="date", descending=True, limit=limit)
        return [key for key, _ in documents]

    async def read_partition_contents(self, date_key: str) -> List[ReflectionRecord]:
        """
        All reflections stored for one day: the general slot (if any) first, then every
        challenge slot ordered by challenge id. Unreadable documents are skipped.
        """
        general, challenges = await asyncio.gather(
            self.store.get(path_for(date_key, GENERAL_CONTEXT)),
            self.store.list_documents(challenges_container(date_key)),
            return_exceptions=True,
        )
        # Both reads settle before either failure propagates; a store failure wins.
        failures = [outcome for outcome in (general, challenges) if isinstance(outcome, BaseException)]
        if failures:
            raise next((e for e in failures if isinstance(e, StoreError)), failures[0])

        entries = [(GENERAL_CONTEXT, general)] if general is not None else []
        entries.extend(challenges)

        records: List[ReflectionRecord] = []
        for context_key, data in entries:
            try:
                records.append(self._hydrate(date_key, context_key, data))
            except (ValidationError, MalformedIdError) as e:
                logger.error("Skipping unreadable reflection %s/%s: %s", date_key, context_key, e)
        return records

    async def _read_partition_or_skip(self, date_key: str) -> List[ReflectionRecord]:
        try:
            return await self.read_partition_contents(date_key)
        except StoreError as e:
            logger.warning("Skipping reflection partition %s: %s", date_key, e)
            return []

    async def list(self, limit: Optional[int] = None) -> ServiceResult:
        """
        The `limit` most recent reflections across all days, newest first.

        A partition whose read fails is logged and left out; only a failure to list the
        partitions themselves fails the whole call. Partition markers outlive their
        records, so empty partitions are skipped and older ones read in their place
        until `limit` non-empty partitions are found or the partitions run out.
        """
        limit = settings.REFLECTION_LIST_DEFAULT_LIMIT if limit is None else limit
        if limit <= 0:
            return ServiceResult.from_exception(ContentValidationError("limit", "must be a positive integer"))

        batches: Dict[str, List[ReflectionRecord]] = {}
        wanted = limit
        while True:
            try:
                date_keys = await self.list_partitions(wanted)
            except StoreError as e:
                logger.error("Failed to list reflection partitions: %s", e, exc_info=True)
                return ServiceResult.from_exception(e)

            unread = [date_key for date_key in date_keys if date_key not in batches]
            contents = await asyncio.gather(*(self._read_partition_or_skip(date_key) for date_key in unread))
            batches.update(zip(unread, contents))

            filled = sum(1 for batch in batches.values() if batch)
            if filled >= limit or len(date_keys) < wanted:
                break
            wanted += limit - filled

        reflections = merge_reflections(batches.values(), limit)
        logger.debug("Listed %d reflections from %d partitions", len(reflections), len(batches))
        return ServiceResult.success(reflections)

    async def list_for_date(self, date_key: str) -> ServiceResult:
        """Every reflection stored for one `MM-DD-YYYY` day."""
        if not is_date_key(date_key):
            return ServiceResult.failure(ErrorCode.MALFORMED_ID, f"Date key must be MM-DD-YYYY, got {date_key!r}")

        try:
            return ServiceResult.success(await self.read_partition_contents(date_key))
        except StoreError as e:
            logger.error("Failed to read reflections for %s: %s", date_key, e, exc_info=True)
            return ServiceResult.from_exception(e)


# Global instance
reflection_service = ReflectionService()
