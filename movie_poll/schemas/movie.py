"""
Movie Schemas - catalog requests and responses
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from movie_poll.schemas.validation import SafeStringMixin


class MovieCreate(BaseModel, SafeStringMixin):
    """Manually added movie"""
    title: str = Field(..., min_length=1, max_length=300)
    year: Optional[int] = Field(None, ge=1870, le=2200)
    tmdb_id: Optional[int] = Field(None, gt=0)
    overview: Optional[str] = Field(None, max_length=5000)
    poster_path: Optional[str] = None
    release_date: Optional[str] = None
    runtime: Optional[int] = Field(None, ge=0)

    @field_validator("title")
    @classmethod
    def clean_title(cls, v):
        v = cls.strip_html(cls.validate_no_script(v)).strip()
        if not v:
            raise ValueError("Title must not be empty")
        return v

    @field_validator("overview")
    @classmethod
    def clean_overview(cls, v):
        if v is None:
            return v
        return cls.strip_html(cls.validate_no_script(v))


class MovieResponse(BaseModel):
    id: int
    tmdb_id: Optional[int] = None
    title: str
    year: Optional[int] = None
    overview: Optional[str] = None
    release_date: Optional[str] = None
    poster_path: Optional[str] = None
    backdrop_path: Optional[str] = None
    runtime: Optional[int] = None
    original_language: Optional[str] = None
    vote_average: Optional[float] = None
    popularity: Optional[float] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MovieImportResult(BaseModel):
    created: bool
    movie: MovieResponse
