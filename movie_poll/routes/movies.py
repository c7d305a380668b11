from typing import List

from fastapi import APIRouter, Depends, Path
from sqlalchemy.orm import Session

from movie_poll.config import Settings
from movie_poll.database import get_db
from movie_poll.schemas.movie import MovieResponse
from movie_poll.services.movie_service import MovieService
from movie_poll.utils.dependencies import get_settings

router = APIRouter(prefix="/api/movies", tags=["Movies"])


# Movies on the ballot
@router.get("", response_model=List[MovieResponse])
def list_movies(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Movies up for voting, ordered by title"""
    return MovieService.list_movies(db, settings.movie_limit)


@router.get("/{movie_id}", response_model=MovieResponse)
def get_movie(
    movie_id: int = Path(..., gt=0),
    db: Session = Depends(get_db)
):
    return MovieService.get_movie(db, movie_id)
