"""
Admin Routes for poll management

Features:
- Appeal score recompute
- Catalog management (manual add, TMDB import/refresh, delete)
- Vote and voter cleanup
- Duplicate movie detection and merge
- Poll statistics

All endpoints require an admin token via the get_current_admin dependency.
Mutations that change votes recompute appeal scores before answering.
"""

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.orm import Session

from movie_poll.database import get_db
from movie_poll.models.admin_user import AdminUser
from movie_poll.models.user_device import UserDevice
from movie_poll.schemas.movie import MovieCreate, MovieResponse, MovieImportResult
from movie_poll.schemas.results import (
    RecomputeResult,
    VoterStats,
    DuplicateGroup,
    DuplicateCleanupResult,
)
from movie_poll.schemas.vote import VoteList
from movie_poll.services.appeal_service import AppealService
from movie_poll.services.movie_service import MovieService
from movie_poll.services.tmdb_service import TMDBService
from movie_poll.services.vote_service import VoteService
from movie_poll.utils.dependencies import get_appeal_service, get_current_admin, get_tmdb_service

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ==================== APPEAL ====================

@router.post("/appeal/recompute", response_model=RecomputeResult)
def recompute_appeal(
    current_admin: AdminUser = Depends(get_current_admin),
    appeal_service: AppealService = Depends(get_appeal_service),
    db: Session = Depends(get_db)
):
    """Rebuild every movie's appeal score from the current votes"""
    count = appeal_service.recompute(db)
    return {"movies_scored": count, "calculated_at": datetime.now(timezone.utc)}


# ==================== MOVIES ====================

@router.post("/movies", response_model=MovieResponse, status_code=status.HTTP_201_CREATED)
def add_movie(
    movie_data: MovieCreate,
    current_admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Add a movie by hand"""
    return MovieService.add_movie(db, movie_data)


@router.post("/movies/import/{tmdb_id}", response_model=MovieImportResult)
def import_movie(
    tmdb_id: int = Path(..., gt=0, description="TMDB movie ID"),
    current_admin: AdminUser = Depends(get_current_admin),
    tmdb: TMDBService = Depends(get_tmdb_service),
    db: Session = Depends(get_db)
):
    """
    Import a movie from TMDB

    Importing a movie that is already in the catalog returns it unchanged
    with `created: false`.
    """
    movie, created = MovieService.import_from_tmdb(db, tmdb, tmdb_id)
    return {"created": created, "movie": movie}


@router.post("/movies/{movie_id}/refresh", response_model=MovieResponse)
def refresh_movie(
    movie_id: int = Path(..., gt=0),
    current_admin: AdminUser = Depends(get_current_admin),
    tmdb: TMDBService = Depends(get_tmdb_service),
    db: Session = Depends(get_db)
):
    """Reload a movie's metadata from TMDB"""
    return MovieService.refresh_from_tmdb(db, tmdb, movie_id)


@router.delete("/movies/{movie_id}")
def delete_movie(
    movie_id: int = Path(..., gt=0),
    current_admin: AdminUser = Depends(get_current_admin),
    appeal_service: AppealService = Depends(get_appeal_service),
    db: Session = Depends(get_db)
):
    """Delete a movie together with its votes"""
    MovieService.delete_movie(db, movie_id)
    appeal_service.recompute(db)
    return {
        "message": f"Movie {movie_id} deleted",
        "deleted_at": datetime.now(timezone.utc).isoformat(),
        "deleted_by": current_admin.username
    }


@router.get("/tmdb/search")
def search_tmdb(
    query: str = Query(..., min_length=1, max_length=200),
    page: int = Query(1, ge=1, le=500),
    current_admin: AdminUser = Depends(get_current_admin),
    tmdb: TMDBService = Depends(get_tmdb_service)
):
    """Search TMDB for movies to import"""
    data = tmdb.search_movies(query, page)
    return {
        "page": data.get("page", page),
        "total_results": data.get("total_results", 0),
        "results": [
            {
                "tmdb_id": item.get("id"),
                "title": item.get("title"),
                "release_date": item.get("release_date"),
                "poster_path": item.get("poster_path"),
                "overview": item.get("overview"),
            }
            for item in data.get("results", [])
        ]
    }


# ==================== VOTES ====================

@router.get("/votes", response_model=VoteList)
def list_votes(
    current_admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    votes = VoteService.get_all_votes(db)
    return {"votes": votes, "count": len(votes)}


@router.delete("/votes")
def delete_all_votes(
    confirm: bool = Query(False, description="Must be true to delete every vote"),
    current_admin: AdminUser = Depends(get_current_admin),
    appeal_service: AppealService = Depends(get_appeal_service),
    db: Session = Depends(get_db)
):
    """
    Delete every vote

    **Dangerous**: requires `confirm=true`
    """
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Must set confirm=true to delete all votes"
        )

    count = VoteService.delete_all_votes(db)
    appeal_service.recompute(db)
    return {
        "message": f"Deleted {count} votes",
        "deleted_count": count,
        "deleted_at": datetime.now(timezone.utc).isoformat(),
        "deleted_by": current_admin.username
    }


# ==================== VOTERS ====================

@router.get("/voters", response_model=List[VoterStats])
def list_voters(
    current_admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Per-voter statistics, most active first"""
    return VoteService.get_voter_stats(db)


@router.delete("/voters")
def delete_voter(
    user_name: str = Query(..., min_length=1),
    device_id: str = Query(..., min_length=1),
    current_admin: AdminUser = Depends(get_current_admin),
    appeal_service: AppealService = Depends(get_appeal_service),
    db: Session = Depends(get_db)
):
    """Delete one voter's votes and device entry"""
    count = VoteService.delete_voter(db, user_name, device_id)
    appeal_service.recompute(db)
    return {
        "message": f"Deleted voter {user_name}",
        "deleted_votes": count,
        "deleted_at": datetime.now(timezone.utc).isoformat()
    }


# ==================== DUPLICATES ====================

@router.get("/duplicates", response_model=List[DuplicateGroup])
def list_duplicates(
    include_year: bool = Query(False, description="Only group movies with the same year"),
    current_admin: AdminUser = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    return MovieService.find_duplicates(db, include_year)


@router.post("/duplicates/cleanup", response_model=DuplicateCleanupResult)
def cleanup_duplicates(
    include_year: bool = Query(False, description="Only merge movies with the same year"),
    current_admin: AdminUser = Depends(get_current_admin),
    appeal_service: AppealService = Depends(get_appeal_service),
    db: Session = Depends(get_db)
):
    """
    Merge duplicate movies into one canonical movie per group

    The copy with the most votes is kept (lowest ID on ties); votes on the
    other copies move to it.
    """
    result = MovieService.remove_duplicates(db, include_year)
    appeal_service.recompute(db)
    return result


# ==================== STATS ====================

@router.get("/stats")
def get_admin_stats(
    current_admin: AdminUser = Depends(get_current_admin),
    appeal_service: AppealService = Depends(get_appeal_service),
    db: Session = Depends(get_db)
):
    """Voting statistics plus device and duplicate counts"""
    appeal_service.recompute(db)
    stats = appeal_service.get_voting_stats(db)
    stats["known_devices"] = db.query(UserDevice.device_id).distinct().count()
    stats["duplicate_groups"] = len(MovieService.find_duplicates(db))
    stats["generated_at"] = datetime.now(timezone.utc).isoformat()
    return stats
