"""
Vote Schemas - request/response models for vote submission

A vote's judgment is a tagged variant: a voter who has seen the movie gives a
quality rating, a voter who has not gives an interest level. Both share the
1-6 scale and are stored in the same `vibe` column.
"""

from datetime import datetime
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from movie_poll.models.vote import MIN_VIBE, MAX_VIBE


class SeenJudgment(BaseModel):
    """Voter has seen the movie: rating 1 (indifferent) to 6 (rewatch-worthy)"""
    kind: Literal["seen"] = "seen"
    rating: int = Field(..., ge=MIN_VIBE, le=MAX_VIBE, strict=True)

    @property
    def seen(self) -> bool:
        return True

    @property
    def vibe(self) -> int:
        return self.rating


class InterestJudgment(BaseModel):
    """Voter has not seen the movie: interest 1 (low priority) to 6 (very interested)"""
    kind: Literal["interested"] = "interested"
    level: int = Field(..., ge=MIN_VIBE, le=MAX_VIBE, strict=True)

    @property
    def seen(self) -> bool:
        return False

    @property
    def vibe(self) -> int:
        return self.level


Judgment = Annotated[Union[SeenJudgment, InterestJudgment], Field(discriminator="kind")]


def judgment_from_vote(seen: bool, vibe: int) -> Union[SeenJudgment, InterestJudgment]:
    """Rebuild the tagged judgment from stored columns"""
    if seen:
        return SeenJudgment(rating=vibe)
    return InterestJudgment(level=vibe)


class VoteSubmit(BaseModel):
    """Schema for submitting (or re-submitting) a vote"""
    movie_id: int = Field(..., description="Internal movie ID", gt=0)
    judgment: Judgment

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"movie_id": 12, "judgment": {"kind": "interested", "level": 5}}
        }
    )


class VoteResponse(BaseModel):
    """Stored vote (matches database model)"""
    id: int
    movie_id: int
    user_name: str
    device_id: str
    seen: bool
    vibe: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VoteResult(BaseModel):
    """Outcome of a submission: `created` is false when an existing vote was updated"""
    created: bool
    vote: VoteResponse


class VoteList(BaseModel):
    votes: List[VoteResponse]
    count: int
