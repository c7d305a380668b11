"""
Vote Service - record and read voter judgments

A vote is keyed by (movie, voter name, device). Submitting again for the
same key updates the stored judgment instead of adding a row.
"""

from datetime import datetime, timezone
from typing import Dict, List, Tuple, Union
import logging

from fastapi import HTTPException, status
from sqlalchemy import case, func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from movie_poll.models.movie import Movie
from movie_poll.models.user_device import UserDevice
from movie_poll.models.vote import Vote, MIN_VIBE, MAX_VIBE
from movie_poll.schemas.vote import SeenJudgment, InterestJudgment
from movie_poll.services.identity_service import IdentityService

logger = logging.getLogger(__name__)

VOTE_KEY = ["movie_id", "user_name", "device_id"]

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class VoteService:
    """Service for vote submission and vote queries"""

    @staticmethod
    def _validate(db: Session, movie_id: int, user_name: str, device_id: str, vibe: int) -> None:
        """Reject a vote before anything is written"""
        if not user_name or not user_name.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Voter name is required"
            )
        if not device_id or not device_id.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Device ID is required"
            )
        if isinstance(vibe, bool) or not isinstance(vibe, int) or not MIN_VIBE <= vibe <= MAX_VIBE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Vibe must be an integer between {MIN_VIBE} and {MAX_VIBE}"
            )
        if db.query(Movie.id).filter(Movie.id == movie_id).first() is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Movie {movie_id} not found"
            )

    @staticmethod
    def _upsert(db: Session, values: Dict, now: datetime) -> None:
        """
        Insert-or-update on the unique (movie_id, user_name, device_id) key
        as a single statement where the dialect supports ON CONFLICT.
        """
        insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(Vote).values(**values, created_at=now, updated_at=now)
            stmt = stmt.on_conflict_do_update(
                index_elements=VOTE_KEY,
                set_={"vibe": values["vibe"], "seen": values["seen"], "updated_at": now},
            )
            db.execute(stmt)
            return

        # Other backends: lock the row, then write
        existing = db.query(Vote).filter_by(**{k: values[k] for k in VOTE_KEY}).with_for_update().first()
        if existing is None:
            try:
                with db.begin_nested():
                    db.add(Vote(**values, created_at=now, updated_at=now))
                return
            except IntegrityError:
                # Lost the race to a concurrent insert of the same key
                existing = db.query(Vote).filter_by(**{k: values[k] for k in VOTE_KEY}).with_for_update().one()
        existing.vibe = values["vibe"]
        existing.seen = values["seen"]
        existing.updated_at = now

    @staticmethod
    def submit_vote(
        db: Session,
        movie_id: int,
        user_name: str,
        device_id: str,
        judgment: Union[SeenJudgment, InterestJudgment],
    ) -> Tuple[Vote, bool]:
        """
        Record a voter's judgment on a movie.

        Args:
            db: Database session
            movie_id: Internal movie ID
            user_name: Voter display name
            device_id: Device the vote comes from
            judgment: Seen rating or interest level

        Returns:
            (stored vote, created) - created is False when an existing vote was updated

        Raises:
            HTTPException: 400 for invalid input, 404 for an unknown movie
        """
        vibe = judgment.vibe
        VoteService._validate(db, movie_id, user_name, device_id, vibe)

        values = {
            "movie_id": movie_id,
            "user_name": user_name,
            "device_id": device_id,
            "seen": judgment.seen,
            "vibe": vibe,
        }
        now = datetime.now(timezone.utc)

        try:
            VoteService._upsert(db, values, now)
            IdentityService.touch_device(db, device_id, user_name)
            db.commit()
        except Exception:
            db.rollback()
            logger.error(f"Failed to store vote for movie {movie_id} by {user_name}", exc_info=True)
            raise

        vote = db.query(Vote).filter_by(
            movie_id=movie_id, user_name=user_name, device_id=device_id
        ).populate_existing().one()

        # Only the write that inserted the row stamped created_at with its own `now`
        created = _as_utc(vote.created_at) == now
        logger.debug(f"Vote {'created' if created else 'updated'}: {vote}")
        return vote, created

    @staticmethod
    def get_voter_votes(db: Session, user_name: str, device_id: str) -> List[Vote]:
        """Votes cast by one voter on one device, newest first"""
        return db.query(Vote).filter(
            Vote.user_name == user_name,
            Vote.device_id == device_id
        ).order_by(Vote.created_at.desc(), Vote.id.desc()).all()

    @staticmethod
    def get_all_votes(db: Session) -> List[Vote]:
        return db.query(Vote).order_by(Vote.created_at.desc(), Vote.id.desc()).all()

    @staticmethod
    def delete_all_votes(db: Session) -> int:
        """
        Delete every vote (appeal rows go with them via the caller's recompute).

        Returns:
            Number of votes deleted
        """
        try:
            count = db.query(Vote).delete(synchronize_session=False)
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Deleted all votes ({count})")
        return count

    @staticmethod
    def get_voter_stats(db: Session) -> List[Dict]:
        """
        Per-voter statistics, one entry per (name, device), most active first.
        """
        rows = db.query(
            Vote.user_name,
            Vote.device_id,
            func.count(Vote.id).label("vote_count"),
            func.count(case((Vote.seen.is_(True), 1))).label("seen_count"),
            func.avg(Vote.vibe).label("average_vibe"),
        ).group_by(Vote.user_name, Vote.device_id).all()

        last_seen = {
            (entry.device_id, entry.user_name): entry.last_seen
            for entry in db.query(UserDevice).all()
        }

        stats = [
            {
                "user_name": row.user_name,
                "device_id": row.device_id,
                "vote_count": row.vote_count,
                "movies_seen_count": row.seen_count,
                "movies_not_seen_count": row.vote_count - row.seen_count,
                "average_vibe": round(float(row.average_vibe or 0.0), 2),
                "last_seen": last_seen.get((row.device_id, row.user_name)),
            }
            for row in rows
        ]
        stats.sort(key=lambda s: (-s["vote_count"], s["user_name"]))
        return stats

    @staticmethod
    def delete_voter(db: Session, user_name: str, device_id: str) -> int:
        """
        Delete a voter's votes and their device-name entry.

        Raises:
            HTTPException: 404 if the voter has neither votes nor a device entry
        """
        try:
            deleted_votes = db.query(Vote).filter(
                Vote.user_name == user_name,
                Vote.device_id == device_id
            ).delete(synchronize_session=False)
            deleted_devices = db.query(UserDevice).filter(
                UserDevice.user_name == user_name,
                UserDevice.device_id == device_id
            ).delete(synchronize_session=False)

            if not deleted_votes and not deleted_devices:
                db.rollback()
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Voter not found"
                )
            db.commit()
        except HTTPException:
            raise
        except Exception:
            db.rollback()
            raise

        logger.info(f"Deleted voter {user_name} ({device_id}) with {deleted_votes} votes")
        return deleted_votes
