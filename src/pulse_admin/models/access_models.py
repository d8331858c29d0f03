"""
Models for programming-access moderation requests.

An access request is an open-ended map: the registry owns a handful of typed fields
(`email`, `status`, timestamps, approval stamps) and stores every other submitted field
(role flags, use-case flags, free text) verbatim. Both models below therefore allow
extra fields and hand them back untouched.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class AccessStatus(str, Enum):
    """Moderation state. Any state may be set from any other."""

    REQUESTED = "requested"
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


class AccessRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Registry-assigned document id")
    email: str = Field(..., description="Lower-cased email, the deduplication key")
    status: AccessStatus = Field(..., description="Current moderation state")
    name: Optional[str] = Field(None, description="Requester display name, if submitted")
    created_at: datetime = Field(..., description="First submission time, never regressed")
    updated_at: datetime = Field(..., description="Last write time")
    approved_at: Optional[datetime] = Field(None, description="Last transition to active")
    approved_by: Optional[str] = Field(None, description="Admin who last activated the request")


class SubmitAccessRequest(BaseModel):
    """Request body for a new or repeated access submission."""

    model_config = ConfigDict(extra="allow")

    email: EmailStr = Field(..., description="Requester email; matched case-insensitively")
    status: Optional[AccessStatus] = Field(None, description="Initial state; 'requested' when omitted")
    name: Optional[str] = Field(None, description="Requester display name")


class UpdateAccessStatusRequest(BaseModel):
    status: AccessStatus
    approved_by: Optional[str] = Field(None, description="Overrides the acting admin from the request headers")


class AccessStatusSummary(BaseModel):
    requested: int = 0
    active: int = 0
    deactivated: int = 0
    total: int = 0


class SubmitAccessResponse(BaseModel):
    id: str
    email: str
    message: str = "Access request recorded"
