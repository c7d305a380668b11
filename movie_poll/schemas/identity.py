"""
Identity Schemas - voter name onboarding
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from movie_poll.schemas.validation import clean_display_name


class NameRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v):
        return clean_display_name(v)


class NameCheckResponse(BaseModel):
    """
    Result of checking a candidate name.

    - existing: the device already used a very similar name; pick one of device_names
    - similar: other voters used similar names; similar_names are suggestions
    - new: nothing close was found
    """
    status: Literal["existing", "similar", "new"]
    device_names: List[str] = []
    closest_match: Optional[str] = None
    similarity: Optional[float] = None
    similar_names: List[str] = []


class ConfirmNameRequest(NameRequest):
    confirmed: bool = True


class VoterSession(BaseModel):
    """Token binding a voter name to the current device"""
    user_name: str
    device_id: str
    voter_token: Optional[str] = None
    token_type: str = "bearer"
    message: str


class DeviceNamesResponse(BaseModel):
    device_id: str
    names: List[str]
    most_recent_name: Optional[str] = None
