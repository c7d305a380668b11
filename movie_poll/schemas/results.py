"""
Results Schemas - appeal rankings and aggregate statistics
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ResultSummary(BaseModel):
    """One ranked movie in the results view"""
    movie_id: int
    title: str
    year: Optional[int] = None
    poster_path: Optional[str] = None
    overview: Optional[str] = None
    appeal_score: float = Field(..., description="Appeal score (0-9.5)")
    total_votes: int
    unique_voters: int
    seen_count: int
    not_seen_count: int
    visibility_ratio: float = Field(..., description="Seen votes / total votes")
    calculated_at: Optional[datetime] = None


class VotingStats(BaseModel):
    total_movies: int
    total_votes: int
    unique_voters: int
    movies_with_votes: int
    average_appeal_score: float
    most_voted_movie: str
    most_voted_count: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_movies": 25,
                "total_votes": 140,
                "unique_voters": 7,
                "movies_with_votes": 22,
                "average_appeal_score": 4.85,
                "most_voted_movie": "Heat",
                "most_voted_count": 9
            }
        }
    )


class RecomputeResult(BaseModel):
    movies_scored: int
    calculated_at: datetime


class VoterStats(BaseModel):
    user_name: str
    device_id: str
    vote_count: int
    movies_seen_count: int
    movies_not_seen_count: int
    average_vibe: float
    last_seen: Optional[datetime] = None


class DuplicateGroup(BaseModel):
    """Movies sharing a normalized title (and year, when grouping by year)"""
    title_key: str
    year: Optional[int] = None
    movie_ids: List[int]
    vote_counts: List[int]


class MergedGroup(BaseModel):
    title_key: str
    canonical_id: int
    removed_ids: List[int]
    votes_moved: int
    votes_merged: int


class DuplicateCleanupResult(BaseModel):
    groups: List[MergedGroup]
    removed_count: int
