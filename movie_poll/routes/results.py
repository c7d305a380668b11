"""
Results Routes - ranked appeal scores

Scores are recomputed from the votes on every request, so the view never
lags behind the latest submissions.
"""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from movie_poll.database import get_db
from movie_poll.schemas.results import ResultSummary, VotingStats
from movie_poll.services.appeal_service import AppealService
from movie_poll.utils.dependencies import get_appeal_service

router = APIRouter(prefix="/api/results", tags=["Results"])


@router.get("", response_model=List[ResultSummary])
def get_results(
    db: Session = Depends(get_db),
    appeal_service: AppealService = Depends(get_appeal_service)
):
    """Movies with votes, highest appeal first"""
    appeal_service.recompute(db)
    return appeal_service.get_results_summary(db)


@router.get("/stats", response_model=VotingStats)
def get_stats(
    db: Session = Depends(get_db),
    appeal_service: AppealService = Depends(get_appeal_service)
):
    appeal_service.recompute(db)
    return appeal_service.get_voting_stats(db)
