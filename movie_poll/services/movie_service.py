"""
Movie Service - catalog management and duplicate cleanup
"""

from collections import defaultdict
from typing import Dict, List, Optional, Tuple
import logging

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from movie_poll.models.movie import Movie
from movie_poll.models.vote import Vote
from movie_poll.schemas.movie import MovieCreate
from movie_poll.services.tmdb_service import TMDBService

logger = logging.getLogger(__name__)


def normalize_title(title: str) -> str:
    return " ".join(title.split()).lower()


def _release_year(release_date: Optional[str]) -> Optional[int]:
    if release_date and len(release_date) >= 4 and release_date[:4].isdigit():
        return int(release_date[:4])
    return None


def _apply_tmdb_details(movie: Movie, details: Dict) -> None:
    movie.title = details.get("title") or movie.title or "Unknown"
    movie.overview = details.get("overview")
    movie.release_date = details.get("release_date")
    movie.year = _release_year(details.get("release_date")) or movie.year
    movie.poster_path = details.get("poster_path")
    movie.backdrop_path = details.get("backdrop_path")
    movie.runtime = details.get("runtime")
    movie.original_language = details.get("original_language")
    movie.vote_average = details.get("vote_average", 0.0)
    movie.vote_count = details.get("vote_count", 0)
    movie.popularity = details.get("popularity", 0.0)


class MovieService:
    """Service for the movie catalog"""

    @staticmethod
    def list_movies(db: Session, limit: int = 0) -> List[Movie]:
        """All movies ordered by title; limit <= 0 means no limit"""
        query = db.query(Movie).order_by(Movie.title.asc(), Movie.id.asc())
        if limit > 0:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def get_movie(db: Session, movie_id: int) -> Movie:
        movie = db.query(Movie).filter(Movie.id == movie_id).first()
        if not movie:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Movie {movie_id} not found"
            )
        return movie

    @staticmethod
    def add_movie(db: Session, movie_data: MovieCreate) -> Movie:
        """
        Add a movie by hand.

        Raises:
            HTTPException: 409 if a movie with the same TMDB ID already exists
        """
        if movie_data.tmdb_id is not None:
            existing = db.query(Movie).filter(Movie.tmdb_id == movie_data.tmdb_id).first()
            if existing:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Movie already exists (id={existing.id})"
                )

        movie = Movie(**movie_data.model_dump())
        if movie.year is None:
            movie.year = _release_year(movie.release_date)
        db.add(movie)
        db.commit()
        db.refresh(movie)
        logger.info(f"Added movie {movie.id}: {movie.title}")
        return movie

    @staticmethod
    def import_from_tmdb(db: Session, tmdb: TMDBService, tmdb_id: int) -> Tuple[Movie, bool]:
        """
        Import a movie from TMDB by its catalog ID.

        Returns:
            (movie, created) - the existing movie and False when already imported
        """
        existing = db.query(Movie).filter(Movie.tmdb_id == tmdb_id).first()
        if existing:
            return existing, False

        details = tmdb.get_movie_details(tmdb_id)
        movie = Movie(tmdb_id=tmdb_id)
        _apply_tmdb_details(movie, details)
        db.add(movie)
        db.commit()
        db.refresh(movie)
        logger.info(f"Imported TMDB movie {tmdb_id} as {movie.id}: {movie.title}")
        return movie, True

    @staticmethod
    def refresh_from_tmdb(db: Session, tmdb: TMDBService, movie_id: int) -> Movie:
        """Overwrite a movie's metadata with fresh TMDB data"""
        movie = MovieService.get_movie(db, movie_id)
        if movie.tmdb_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Movie has no TMDB ID"
            )

        details = tmdb.get_movie_details(movie.tmdb_id)
        _apply_tmdb_details(movie, details)
        db.commit()
        db.refresh(movie)
        return movie

    @staticmethod
    def delete_movie(db: Session, movie_id: int) -> None:
        """Delete a movie; its votes and appeal row are removed by cascade"""
        movie = MovieService.get_movie(db, movie_id)
        try:
            db.delete(movie)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Deleted movie {movie_id}")

    # ==================== DUPLICATES ====================

    @staticmethod
    def _vote_counts(db: Session) -> Dict[int, int]:
        return dict(
            db.query(Vote.movie_id, func.count(Vote.id)).group_by(Vote.movie_id).all()
        )

    @staticmethod
    def find_duplicates(db: Session, include_year: bool = False) -> List[Dict]:
        """
        Group movies by normalized title (and year when include_year is set).

        Returns:
            Groups with more than one member, largest first
        """
        groups = defaultdict(list)
        for movie in db.query(Movie).order_by(Movie.id.asc()).all():
            key = (normalize_title(movie.title), movie.year if include_year else None)
            groups[key].append(movie.id)

        vote_counts = MovieService._vote_counts(db)
        duplicates = [
            {
                "title_key": title_key,
                "year": year,
                "movie_ids": movie_ids,
                "vote_counts": [vote_counts.get(movie_id, 0) for movie_id in movie_ids],
            }
            for (title_key, year), movie_ids in groups.items()
            if len(movie_ids) > 1
        ]
        duplicates.sort(key=lambda group: (-len(group["movie_ids"]), group["title_key"]))
        return duplicates

    @staticmethod
    def _merge_group(db: Session, movie_ids: List[int], vote_counts: List[int]) -> Dict:
        """
        Fold a duplicate group into its canonical movie (most votes, then lowest id).
        Caller owns the transaction.
        """
        canonical_id = max(zip(movie_ids, vote_counts), key=lambda item: (item[1], -item[0]))[0]
        moved = merged = 0
        removed_ids = []

        for movie_id in movie_ids:
            if movie_id == canonical_id:
                continue

            for vote in db.query(Vote).filter(Vote.movie_id == movie_id).order_by(Vote.id).all():
                clash = db.query(Vote).filter(
                    Vote.movie_id == canonical_id,
                    Vote.user_name == vote.user_name,
                    Vote.device_id == vote.device_id
                ).first()

                if clash is None:
                    vote.movie_id = canonical_id
                    moved += 1
                else:
                    # Same voter judged both copies; keep the latest judgment
                    if vote.updated_at > clash.updated_at:
                        clash.vibe = vote.vibe
                        clash.seen = vote.seen
                        clash.updated_at = vote.updated_at
                    db.delete(vote)
                    merged += 1
                db.flush()

            db.query(Movie).filter(Movie.id == movie_id).delete(synchronize_session=False)
            removed_ids.append(movie_id)

        return {
            "canonical_id": canonical_id,
            "removed_ids": removed_ids,
            "votes_moved": moved,
            "votes_merged": merged,
        }

    @staticmethod
    def remove_duplicates(db: Session, include_year: bool = False) -> Dict:
        """
        Merge every duplicate group, one transaction per group.

        A failing group is rolled back and the error is raised; groups merged
        before it stay merged.
        """
        merged_groups = []
        for group in MovieService.find_duplicates(db, include_year):
            try:
                result = MovieService._merge_group(db, group["movie_ids"], group["vote_counts"])
                db.commit()
            except Exception:
                db.rollback()
                logger.error(f"Failed to merge duplicates of '{group['title_key']}'", exc_info=True)
                raise

            logger.info(
                f"Merged duplicates of '{group['title_key']}' into movie {result['canonical_id']}, "
                f"removed {result['removed_ids']}"
            )
            merged_groups.append({"title_key": group["title_key"], **result})

        db.expire_all()
        return {
            "groups": merged_groups,
            "removed_count": sum(len(group["removed_ids"]) for group in merged_groups),
        }
