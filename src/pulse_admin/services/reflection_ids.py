"""
# Reflection Identifier Codec

Pure functions mapping a reflection's logical identity (calendar day + context) to
its flat external ID and to its storage path.

## ID Grammar

```
{MM}-{DD}-{YYYY}-{context}
```

- The date part is always three fixed-width numeric groups.
- `context` is `general` or a challenge id, and **may itself contain hyphens**
  (`01-03-2025-abc-def-123` is the `abc-def-123` challenge reflection for Jan 3 2025).
  Decoding therefore takes the first three segments as the date and re-joins the rest.

External callers may build IDs directly from this grammar.

## Storage Layout

```
reflections/{dateKey}                              partition marker
reflections/{dateKey}/general/general              the day's general reflection
reflections/{dateKey}/challenges/{challengeId}     one per challenge
```
"""

import re
from datetime import datetime
from typing import NamedTuple, Optional

from pulse_admin.config import settings
from pulse_admin.database.paths import PATH_SEPARATOR, StoragePath
from pulse_admin.errors import MalformedIdError
from pulse_admin.models.reflection_models import ReflectionDate
from pulse_admin.utils.datetime_utils import start_of_day

GENERAL_CONTEXT = "general"
GENERAL_CONTAINER = "general"
CHALLENGES_CONTAINER = "challenges"

ID_SEPARATOR = "-"
DATE_KEY_FORMAT = "%m-%d-%Y"
DATE_KEY_PATTERN = re.compile(r"^\d{2}-\d{2}-\d{4}$")


class ReflectionIdentity(NamedTuple):
    date_key: str
    context_key: str


def is_date_key(value: str) -> bool:
    return bool(DATE_KEY_PATTERN.match(value))


def date_key_for(value: ReflectionDate) -> str:
    """`MM-DD-YYYY` for the calendar day of `value`."""
    return start_of_day(value).strftime(DATE_KEY_FORMAT)


def parse_date_key(date_key: str) -> datetime:
    """Midnight UTC of the day named by `date_key`. Raises `ValueError` if it is not a real date."""
    if not is_date_key(date_key):
        raise ValueError(f"date key must be MM-DD-YYYY, got {date_key!r}")
    return start_of_day(datetime.strptime(date_key, DATE_KEY_FORMAT))


def context_key_for(challenge_id: Optional[str] = None) -> str:
    return challenge_id or GENERAL_CONTEXT


def _check_context(context_key: str, reflection_id: str) -> None:
    if not context_key:
        raise MalformedIdError(reflection_id, "context part is empty")
    if PATH_SEPARATOR in context_key:
        raise MalformedIdError(reflection_id, f"context must not contain {PATH_SEPARATOR!r}")


def encode_id(date_key: str, context_key: str) -> str:
    """
    Build the flat reflection ID.

    Raises:
        MalformedIdError: If `date_key` is not `MM-DD-YYYY` or `context_key` is empty.
    """
    reflection_id = f"{date_key}{ID_SEPARATOR}{context_key}"
    if not is_date_key(date_key):
        raise MalformedIdError(reflection_id, "date part must be MM-DD-YYYY")
    _check_context(context_key, reflection_id)
    return reflection_id


def decode_id(reflection_id: str) -> ReflectionIdentity:
    """
    Split a reflection ID back into `(date_key, context_key)`.

    Raises:
        MalformedIdError: Fewer than four segments, a date part outside the
            `MM-DD-YYYY` grammar, or an empty context.
    """
    segments = reflection_id.split(ID_SEPARATOR)
    if len(segments) < 4:
        raise MalformedIdError(reflection_id, f"expected at least 4 segments, got {len(segments)}")

    date_key = ID_SEPARATOR.join(segments[:3])
    context_key = ID_SEPARATOR.join(segments[3:])
    if not is_date_key(date_key):
        raise MalformedIdError(reflection_id, "date part must be MM-DD-YYYY")
    _check_context(context_key, reflection_id)
    return ReflectionIdentity(date_key, context_key)


def reflections_root() -> StoragePath:
    return StoragePath.of(settings.REFLECTIONS_COLLECTION)


def partition_path(date_key: str) -> StoragePath:
    return reflections_root().child(date_key)


def challenges_container(date_key: str) -> StoragePath:
    return partition_path(date_key).child(CHALLENGES_CONTAINER)


def path_for(date_key: str, context_key: str) -> StoragePath:
    """Storage path of the slot a reflection occupies."""
    if context_key == GENERAL_CONTEXT:
        return partition_path(date_key).child(GENERAL_CONTAINER, GENERAL_CONTEXT)
    return challenges_container(date_key).child(context_key)
