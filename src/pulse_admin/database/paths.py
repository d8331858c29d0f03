"""
Storage paths for the hierarchical document store.

A path alternates container and document names, Firestore style:

- `reflections` is a container (odd number of segments)
- `reflections/01-03-2025` is a document (even number of segments)
- `reflections/01-03-2025/challenges` is a sub-container of that document
"""

from typing import Tuple

from pydantic import BaseModel, ConfigDict, field_validator

PATH_SEPARATOR = "/"


class StoragePath(BaseModel):
    """Immutable address of a container or document."""

    model_config = ConfigDict(frozen=True)

    segments: Tuple[str, ...]

    @field_validator("segments")
    @classmethod
    def validate_segments(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("a storage path needs at least one segment")
        for segment in v:
            if not segment or PATH_SEPARATOR in segment:
                raise ValueError(f"invalid path segment: {segment!r}")
        return v

    @classmethod
    def of(cls, *segments: str) -> "StoragePath":
        return cls(segments=tuple(segments))

    @property
    def is_document(self) -> bool:
        return len(self.segments) % 2 == 0

    @property
    def is_container(self) -> bool:
        return not self.is_document

    @property
    def collection_name(self) -> str:
        """Name of the top-level container."""
        return self.segments[0]

    @property
    def key(self) -> str:
        return self.segments[-1]

    @property
    def parent(self) -> "StoragePath":
        if len(self.segments) == 1:
            raise ValueError(f"{self} has no parent")
        return StoragePath(segments=self.segments[:-1])

    def child(self, *segments: str) -> "StoragePath":
        return StoragePath(segments=self.segments + tuple(segments))

    def __str__(self) -> str:
        return PATH_SEPARATOR.join(self.segments)
