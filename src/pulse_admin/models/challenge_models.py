from typing import List, Optional

from pydantic import BaseModel, Field


class ChallengeSummary(BaseModel):
    """
    Read-only mirror of a challenge catalog entry, kept only for admin search.
    """

    id: str = Field(..., description="Challenge collection id")
    title: Optional[str] = Field(None, description="Challenge title")
    status: Optional[str] = Field(None, description="Catalog status, e.g. 'published'")

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on id, title and status."""
        needle = query.lower()
        return any(needle in field.lower() for field in (self.id, self.title, self.status) if field)


class ChallengeSearchResponse(BaseModel):
    results: List[ChallengeSummary]
    loading: bool = Field(False, description="True while the challenge list is still being loaded")


class ChallengeRefreshResponse(BaseModel):
    count: int
    message: str
