"""
Vote Routes - submit and review votes

Requires a voter token from /api/identity/confirm. The token carries the
(name, device) pair a vote is keyed on.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from movie_poll.database import get_db
from movie_poll.schemas.vote import VoteSubmit, VoteResult, VoteList
from movie_poll.services.vote_service import VoteService
from movie_poll.utils.dependencies import VoterIdentity, get_current_voter

router = APIRouter(prefix="/api/votes", tags=["Votes"])


# ==================== VOTE ENDPOINTS ====================

@router.post("", response_model=VoteResult, status_code=status.HTTP_201_CREATED)
def submit_vote(
    vote_data: VoteSubmit,
    response: Response,
    voter: VoterIdentity = Depends(get_current_voter),
    db: Session = Depends(get_db)
):
    """
    Add a vote, or replace the voter's earlier vote for the same movie

    - **movie_id**: internal movie ID
    - **judgment**: `{"kind": "seen", "rating": 1-6}` or `{"kind": "interested", "level": 1-6}`

    Answers 201 when a vote was created and 200 when an existing one was updated.
    """
    vote, created = VoteService.submit_vote(
        db, vote_data.movie_id, voter.user_name, voter.device_id, vote_data.judgment
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return {"created": created, "vote": vote}


@router.get("/me", response_model=VoteList)
def get_my_votes(
    voter: VoterIdentity = Depends(get_current_voter),
    db: Session = Depends(get_db)
):
    """Votes cast under the current name on the current device"""
    votes = VoteService.get_voter_votes(db, voter.user_name, voter.device_id)
    return {"votes": votes, "count": len(votes)}
