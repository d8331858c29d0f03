"""
# Access Request Service

Registry of programming-access requests and their moderation state.

## Storage

Each request lives at `programming-access/{sha256(normalized email)}`. Keying the
document by the email hash makes "one request per email" structural: `submit()` is a
single atomic upsert, with `created_at` (and the default `requested` status) written only
when the document is first created. Resubmitting therefore refreshes the request without
regressing its creation time or demoting an already approved user.

## Status Transitions

Any status may be set from any other. Moving to `active` stamps `approved_at` (again on
every activation) and, when known, `approved_by`; other transitions leave both untouched.

Every operation returns a `ServiceResult`.
"""

import hashlib
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from pulse_admin.config import settings
from pulse_admin.database.document_store import Document, DocumentStore, document_store
from pulse_admin.database.paths import PATH_SEPARATOR, StoragePath
from pulse_admin.errors import ContentValidationError, StoreError
from pulse_admin.managers.logging_manager import get_logger
from pulse_admin.models.access_models import AccessRequest, AccessStatus, AccessStatusSummary
from pulse_admin.models.result_models import ErrorCode, ServiceResult
from pulse_admin.utils.datetime_utils import utcnow

logger = get_logger(prefix="[AccessRequestService]")

# Fields the registry owns; a submitted payload cannot set them directly.
PROTECTED_FIELDS = ("id", "created_at", "approved_at", "approved_by")


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def access_key_for(email: str) -> str:
    """Document key for an email: hex SHA-256 of its normalized form."""
    return hashlib.sha256(normalize_email(email).encode("utf-8")).hexdigest()


def filter_access_requests(
    requests: Iterable[AccessRequest], term: Optional[str] = None, status: Optional[AccessStatus] = None
) -> List[AccessRequest]:
    """Case-insensitive substring match on email and name, optionally restricted to one status."""
    needle = (term or "").strip().lower()
    matches = []
    for request in requests:
        if status is not None and request.status != status:
            continue
        if needle and not any(needle in (field or "").lower() for field in (request.email, request.name)):
            continue
        matches.append(request)
    return matches


def _is_storable_field(name: str) -> bool:
    # MongoDB reads dots as nested paths and a leading '$' as an operator.
    return bool(name) and "." not in name and not name.startswith("$")


def _coerce_status(value: Union[str, AccessStatus]) -> AccessStatus:
    try:
        return AccessStatus(value)
    except ValueError as e:
        allowed = ", ".join(s.value for s in AccessStatus)
        raise ContentValidationError("status", f"must be one of {allowed}, got {value!r}") from e


class AccessRequestService:
    def __init__(self, store: Optional[DocumentStore] = None):
        self.store = store or document_store

    @staticmethod
    def _root() -> StoragePath:
        return StoragePath.of(settings.ACCESS_REQUESTS_COLLECTION)

    def _path_for(self, request_id: str) -> Optional[StoragePath]:
        if not request_id or PATH_SEPARATOR in request_id:
            return None
        return self._root().child(request_id)

    @staticmethod
    def _hydrate(request_id: str, data: Document) -> AccessRequest:
        return AccessRequest(id=request_id, **{k: v for k, v in data.items() if k != "id"})

    def _hydrate_all(self, documents: List[tuple]) -> List[AccessRequest]:
        requests = []
        for request_id, data in documents:
            try:
                requests.append(self._hydrate(request_id, data))
            except ValidationError as e:
                logger.error("Skipping unreadable access request %s: %s", request_id, e)
        return requests

    async def submit(self, payload: Dict[str, Any]) -> ServiceResult:
        """
        Record an access request, creating it or refreshing the existing one for the
        same (case-insensitive) email.

        Args:
            payload: Submitted form fields. `email` is required; `status` is optional;
                every other field is stored verbatim. Field names
                containing `.` or starting with `$` are rejected.

        Returns:
            `ServiceResult` whose value is the request id.
        """
        email = normalize_email(payload.get("email"))
        if not email:
            logger.warning("Rejected access request without email")
            return ServiceResult.from_exception(ContentValidationError("email", "must not be empty"))

        for field in payload:
            if not _is_storable_field(field):
                logger.warning("Rejected access request for %s: unusable field name %r", email, field)
                return ServiceResult.from_exception(
                    ContentValidationError(field, "field names must not contain '.' or start with '$'")
                )

        data = {k: v for k, v in payload.items() if k not in PROTECTED_FIELDS and v is not None}
        try:
            if "status" in data:
                data["status"] = _coerce_status(data["status"]).value
        except ContentValidationError as e:
            logger.warning("Rejected access request for %s: %s", email, e)
            return ServiceResult.from_exception(e)

        now = utcnow()
        data.update(email=email, updated_at=now)
        on_insert: Document = {"created_at": now}
        if "status" not in data:
            on_insert["status"] = AccessStatus.REQUESTED.value

        request_id = access_key_for(email)
        try:
            await self.store.merge(self._root().child(request_id), data, on_insert=on_insert)
        except StoreError as e:
            logger.error("Failed to record access request for %s: %s", email, e, exc_info=True)
            return ServiceResult.from_exception(e)

        logger.info("Recorded access request %s for %s", request_id, email)
        return ServiceResult.success(request_id)

    async def get(self, request_id: str) -> ServiceResult:
        """One request by id; `value` is `None` when absent."""
        path = self._path_for(request_id)
        if path is None:
            return ServiceResult.success(None)
        try:
            data = await self.store.get(path)
        except StoreError as e:
            logger.error("Failed to fetch access request %s: %s", request_id, e, exc_info=True)
            return ServiceResult.from_exception(e)
        if data is None:
            return ServiceResult.success(None)
        try:
            return ServiceResult.success(self._hydrate(request_id, data))
        except ValidationError as e:
            logger.error("Stored access request %s is unreadable: %s", request_id, e)
            return ServiceResult.failure(ErrorCode.STORE_ERROR, f"Stored access request {request_id} is unreadable")

    async def list(self) -> ServiceResult:
        """All requests, newest first by `created_at`."""
        try:
            documents = await self.store.list_documents(self._root(), order_by="created_at", descending=True)
        except StoreError as e:
            logger.error("Failed to list access requests: %s", e, exc_info=True)
            return ServiceResult.from_exception(e)
        return ServiceResult.success(self._hydrate_all(documents))

    async def set_status(
        self, request_id: str, status: Union[str, AccessStatus], approved_by: Optional[str] = None
    ) -> ServiceResult:
        """
        Move a request to `status`.

        Returns:
            `ServiceResult` with the updated `AccessRequest`; `not_found` when no request
            has this id.
        """
        try:
            new_status = _coerce_status(status)
        except ContentValidationError as e:
            return ServiceResult.from_exception(e)

        path = self._path_for(request_id)
        if path is None:
            return ServiceResult.failure(ErrorCode.NOT_FOUND, f"Access request {request_id!r} not found")

        now = utcnow()
        fields: Document = {"status": new_status.value, "updated_at": now}
        if new_status == AccessStatus.ACTIVE:
            fields["approved_at"] = now
            if approved_by:
                fields["approved_by"] = approved_by

        try:
            updated = await self.store.update(path, fields)
        except StoreError as e:
            logger.error("Failed to set status of access request %s: %s", request_id, e, exc_info=True)
            return ServiceResult.from_exception(e)

        if not updated:
            logger.warning("Status change for unknown access request %s", request_id)
            return ServiceResult.failure(ErrorCode.NOT_FOUND, f"Access request {request_id!r} not found")

        logger.info("Access request %s is now %s (by %s)", request_id, new_status.value, approved_by or "unknown")
        return await self.get(request_id)

    async def check_access(self, email: str) -> ServiceResult:
        """The active request for `email`, or `None`. Used as an authorization gate."""
        normalized = normalize_email(email)
        if not normalized:
            return ServiceResult.success(None)
        try:
            documents = await self.store.list_documents(
                self._root(), where={"email": normalized, "status": AccessStatus.ACTIVE.value}, limit=1
            )
        except StoreError as e:
            logger.error("Failed to check access for %s: %s", normalized, e, exc_info=True)
            return ServiceResult.from_exception(e)
        requests = self._hydrate_all(documents)
        return ServiceResult.success(requests[0] if requests else None)

    async def delete(self, request_id: str) -> ServiceResult:
        path = self._path_for(request_id)
        if path is None:
            return ServiceResult.success(False)
        try:
            deleted = await self.store.delete(path)
        except StoreError as e:
            logger.error("Failed to delete access request %s: %s", request_id, e, exc_info=True)
            return ServiceResult.from_exception(e)
        if deleted:
            logger.info("Deleted access request %s", request_id)
        return ServiceResult.success(deleted)

    async def search(self, term: Optional[str] = None, status: Optional[Union[str, AccessStatus]] = None) -> ServiceResult:
        """Requests whose email or name contains `term`, optionally with the given status."""
        try:
            wanted = _coerce_status(status) if status is not None else None
        except ContentValidationError as e:
            return ServiceResult.from_exception(e)

        result = await self.list()
        if not result.ok:
            return result
        return ServiceResult.success(filter_access_requests(result.value, term, wanted))

    async def count_by_status(self) -> ServiceResult:
        result = await self.list()
        if not result.ok:
            return result

        counts = {s.value: 0 for s in AccessStatus}
        for request in result.value:
            counts[request.status.value] += 1
        return ServiceResult.success(AccessStatusSummary(**counts, total=len(result.value)))


# Global instance
access_request_service = AccessRequestService()
