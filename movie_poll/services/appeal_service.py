"""
Appeal Service - rank movies by how appealing they are to watch together

The score favors movies the group is interested in but has not seen, with
small bonuses for engagement, known quality and agreement, and a penalty when
one voter dominates a movie's votes. The snapshot table is always rebuilt in
full: incremental updates are not supported.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from sqlalchemy import and_, case, distinct, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from movie_poll.config import DEFAULT_PARTICIPATION_THRESHOLD
from movie_poll.models.appeal import Appeal
from movie_poll.models.movie import Movie
from movie_poll.models.vote import Vote

logger = logging.getLogger(__name__)

MAX_APPEAL_SCORE = 9.5
INTEREST_WEIGHT = 2.5
NOVELTY_WEIGHT = 1.0
PARTICIPATION_WEIGHT = 0.5
QUALITY_WEIGHT = 1.0
QUALITY_GATE_INTEREST = 1.5
CONSENSUS_WEIGHT = 0.5
HIGH_VIBE = 2
CONCENTRATION_LIMIT = 0.6
CONCENTRATION_WEIGHT = 2.0


@dataclass(frozen=True)
class MovieAggregate:
    """Per-movie vote statistics the appeal score is computed from"""
    movie_id: int
    total_votes: int
    unique_voters: int
    seen_count: int
    not_seen_count: int
    avg_rating: Optional[float]
    avg_interest: Optional[float]
    high_rating_count: int
    high_interest_count: int
    top_user_concentration: float

    @property
    def visibility_ratio(self) -> float:
        if self.total_votes <= 0:
            return 0.0
        return self.seen_count / self.total_votes


def calculate_appeal_score(
    aggregate: MovieAggregate,
    participation_threshold: int = DEFAULT_PARTICIPATION_THRESHOLD,
) -> float:
    """
    Compute the appeal score (0-9.5) for one movie.

    Args:
        aggregate: Vote statistics for the movie
        participation_threshold: Minimum votes before the movie is scored

    Returns:
        Appeal score, 0.0 for movies below the participation threshold
    """
    total = aggregate.total_votes
    if total < participation_threshold or total <= 0:
        return 0.0

    # Interest from voters who have not seen it yet
    base_appeal = 0.0
    if aggregate.avg_interest is not None:
        base_appeal = (aggregate.avg_interest - 1.0) * INTEREST_WEIGHT

    novelty_bonus = (aggregate.not_seen_count / total) * NOVELTY_WEIGHT

    participation_bonus = 0.0
    if aggregate.unique_voters > 0:
        participation_bonus = (total / aggregate.unique_voters) * PARTICIPATION_WEIGHT

    quality_bonus = 0.0
    if aggregate.avg_rating is not None and aggregate.seen_count > 0:
        quality_bonus = (aggregate.avg_rating - 1.0) * QUALITY_WEIGHT

    # Weak interest cannot be rescued by a few good ratings
    if aggregate.avg_interest is not None and aggregate.avg_interest < QUALITY_GATE_INTEREST:
        quality_bonus = 0.0

    consensus_bonus = (
        aggregate.high_rating_count / total + aggregate.high_interest_count / total
    ) * CONSENSUS_WEIGHT

    concentration_penalty = 0.0
    if aggregate.top_user_concentration > CONCENTRATION_LIMIT:
        concentration_penalty = (aggregate.top_user_concentration - CONCENTRATION_LIMIT) * CONCENTRATION_WEIGHT

    score = (
        base_appeal
        + novelty_bonus
        + participation_bonus
        + quality_bonus
        + consensus_bonus
        - concentration_penalty
    )
    return min(max(score, 0.0), MAX_APPEAL_SCORE)


def _as_float(value) -> Optional[float]:
    # AVG comes back as Decimal on PostgreSQL
    return float(value) if value is not None else None


class AppealService:
    """Recomputes and reads the appeal snapshot"""

    def __init__(self, participation_threshold: int = DEFAULT_PARTICIPATION_THRESHOLD):
        self.participation_threshold = participation_threshold

    @staticmethod
    def aggregate_votes(db: Session) -> List[MovieAggregate]:
        """
        Aggregate the vote table per movie.

        Only movies with at least one vote are returned, ordered by movie id.
        """
        is_seen = Vote.seen.is_(True)
        not_seen = Vote.seen.is_(False)

        rows = db.query(
            Vote.movie_id,
            func.count(Vote.id).label("total_votes"),
            func.count(distinct(Vote.user_name)).label("unique_voters"),
            func.count(case((is_seen, 1))).label("seen_count"),
            func.count(case((not_seen, 1))).label("not_seen_count"),
            func.avg(case((is_seen, Vote.vibe))).label("avg_rating"),
            func.avg(case((not_seen, Vote.vibe))).label("avg_interest"),
            func.count(case((and_(is_seen, Vote.vibe >= HIGH_VIBE), 1))).label("high_rating_count"),
            func.count(case((and_(not_seen, Vote.vibe >= HIGH_VIBE), 1))).label("high_interest_count"),
        ).group_by(Vote.movie_id).order_by(Vote.movie_id).all()

        # Votes cast by each voter name per movie (a name may vote from several devices)
        per_voter = db.query(
            Vote.movie_id.label("movie_id"),
            func.count(Vote.id).label("vote_count"),
        ).group_by(Vote.movie_id, Vote.user_name).subquery()

        top_voter_counts: Dict[int, int] = dict(
            db.query(per_voter.c.movie_id, func.max(per_voter.c.vote_count))
            .group_by(per_voter.c.movie_id)
            .all()
        )

        aggregates = []
        for row in rows:
            total = row.total_votes
            top_count = top_voter_counts.get(row.movie_id, 0)
            aggregates.append(MovieAggregate(
                movie_id=row.movie_id,
                total_votes=total,
                unique_voters=row.unique_voters,
                seen_count=row.seen_count,
                not_seen_count=row.not_seen_count,
                avg_rating=_as_float(row.avg_rating),
                avg_interest=_as_float(row.avg_interest),
                high_rating_count=row.high_rating_count,
                high_interest_count=row.high_interest_count,
                top_user_concentration=top_count / total if total else 0.0,
            ))
        return aggregates

    def recompute(self, db: Session) -> int:
        """
        Replace every appeal row with a fresh computation.

        Runs as one transaction: on any failure the previous snapshot is
        restored by rollback and the error is re-raised.

        Returns:
            Number of movies scored
        """
        calculated_at = datetime.now(timezone.utc)
        try:
            db.query(Appeal).delete(synchronize_session=False)

            aggregates = self.aggregate_votes(db)
            for aggregate in aggregates:
                db.add(Appeal(
                    movie_id=aggregate.movie_id,
                    appeal_score=calculate_appeal_score(aggregate, self.participation_threshold),
                    total_votes=aggregate.total_votes,
                    unique_voters=aggregate.unique_voters,
                    seen_count=aggregate.seen_count,
                    visibility_ratio=aggregate.visibility_ratio,
                    calculated_at=calculated_at,
                ))

            db.commit()
        except Exception:
            db.rollback()
            logger.error("Appeal recompute failed, previous snapshot kept", exc_info=True)
            raise

        logger.info(f"Recomputed appeal for {len(aggregates)} movies (threshold={self.participation_threshold})")
        return len(aggregates)

    @staticmethod
    def get_results_summary(db: Session) -> List[Dict]:
        """
        Ranked results for every movie that has votes.

        Movies without an appeal row yet are reported with zeros.
        Ordered by appeal score, then total votes, then title.
        """
        voted_movie_ids = db.query(Vote.movie_id).distinct()
        score = func.coalesce(Appeal.appeal_score, 0.0)
        total = func.coalesce(Appeal.total_votes, 0)

        rows = db.query(Movie, Appeal).outerjoin(
            Appeal, Appeal.movie_id == Movie.id
        ).filter(
            Movie.id.in_(voted_movie_ids)
        ).order_by(
            score.desc(), total.desc(), Movie.title.asc()
        ).all()

        results = []
        for movie, appeal in rows:
            total_votes = appeal.total_votes if appeal else 0
            seen_count = appeal.seen_count if appeal else 0
            results.append({
                "movie_id": movie.id,
                "title": movie.title,
                "year": movie.year,
                "poster_path": movie.poster_path,
                "overview": movie.overview,
                "appeal_score": appeal.appeal_score if appeal else 0.0,
                "total_votes": total_votes,
                "unique_voters": appeal.unique_voters if appeal else 0,
                "seen_count": seen_count,
                "not_seen_count": total_votes - seen_count,
                "visibility_ratio": appeal.visibility_ratio if appeal else 0.0,
                "calculated_at": appeal.calculated_at if appeal else None,
            })
        return results

    @staticmethod
    def get_voting_stats(db: Session) -> Dict:
        """Overall voting statistics for the results and admin dashboards"""
        total_movies = db.query(func.count(Movie.id)).scalar() or 0
        total_votes = db.query(func.count(Vote.id)).scalar() or 0
        unique_voters = db.query(func.count(distinct(Vote.user_name))).scalar() or 0
        movies_with_votes = db.query(func.count(distinct(Vote.movie_id))).scalar() or 0

        # Dashboard-only figure, degrade to zero
        try:
            average_appeal = _as_float(db.query(func.avg(Appeal.appeal_score)).scalar()) or 0.0
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Could not read average appeal score: {str(e)}")
            average_appeal = 0.0

        vote_count = func.count(Vote.id).label("vote_count")
        most_voted = db.query(Movie.title, vote_count).join(
            Vote, Vote.movie_id == Movie.id
        ).group_by(Movie.id, Movie.title).order_by(vote_count.desc(), Movie.id.asc()).first()

        return {
            "total_movies": total_movies,
            "total_votes": total_votes,
            "unique_voters": unique_voters,
            "movies_with_votes": movies_with_votes,
            "average_appeal_score": round(average_appeal, 2),
            "most_voted_movie": most_voted.title if most_voted else "None",
            "most_voted_count": most_voted.vote_count if most_voted else 0,
        }
