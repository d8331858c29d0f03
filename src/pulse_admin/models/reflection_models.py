from datetime import date, datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from pulse_admin.utils.datetime_utils import ensure_utc, start_of_day

ReflectionDate = Union[date, datetime]


class CreateReflectionRequest(BaseModel):
    """
    Input for a new daily reflection.

    Optional cross-references are trimmed, and blank values dropped, so they are
    omitted from the stored document rather than written as empty strings or nulls.
    """

    date: datetime = Field(..., description="Calendar day the reflection is for (time of day ignored)")
    text: str = Field(..., description="Prompt body; must be non-empty")
    exercise_id: Optional[str] = Field(None, description="Linked exercise from the exercise catalog")
    exercise_name: Optional[str] = Field(None, description="Display name of the linked exercise")
    challenge_id: Optional[str] = Field(None, description="Challenge this reflection is scoped to; general if unset")
    challenge_name: Optional[str] = Field(None, description="Display name of the linked challenge")
    created_at: Optional[datetime] = Field(None, description="Defaults to now")
    updated_at: Optional[datetime] = Field(None, description="Defaults to now")

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Any:
        if isinstance(v, (date, datetime)):
            return start_of_day(v)
        return v

    @field_validator("date")
    @classmethod
    def midnight_utc(cls, v: datetime) -> datetime:
        return start_of_day(v)

    @field_validator("exercise_id", "exercise_name", "challenge_id", "challenge_name", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("created_at", "updated_at")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v) if v is not None else None


class ReflectionRecord(BaseModel):
    """A stored daily reflection, hydrated with its synthesized identifier."""

    id: str = Field(..., description="MM-DD-YYYY-{context}")
    date_key: str = Field(..., description="MM-DD-YYYY partition key")
    context_key: str = Field(..., description="'general' or a challenge id")
    date: datetime
    text: str
    exercise_id: Optional[str] = None
    exercise_name: Optional[str] = None
    challenge_id: Optional[str] = None
    challenge_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("date", "created_at", "updated_at", mode="before")
    @classmethod
    def as_utc(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return ensure_utc(v)
        if isinstance(v, date):
            return start_of_day(v)
        return v


class ReflectionListResponse(BaseModel):
    reflections: List[ReflectionRecord]
    count: int


class DeleteReflectionResponse(BaseModel):
    id: str
    deleted: bool = Field(..., description="False when nothing was stored under the id")

