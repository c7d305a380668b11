"""
Identity Routes - name onboarding for voters

Voters have no accounts. A device picks a display name, the name is checked
against names seen before, and once confirmed the (name, device) pair is
issued a voter token used for voting.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from movie_poll.config import Settings
from movie_poll.database import get_db
from movie_poll.schemas.identity import (
    NameRequest,
    NameCheckResponse,
    ConfirmNameRequest,
    VoterSession,
    DeviceNamesResponse,
)
from movie_poll.services.identity_service import IdentityService
from movie_poll.utils.dependencies import get_device_id, get_settings
from movie_poll.utils.security import create_voter_token

router = APIRouter(prefix="/api/identity", tags=["Identity"])


@router.post("/check", response_model=NameCheckResponse)
def check_name(
    payload: NameRequest,
    device_id: str = Depends(get_device_id),
    db: Session = Depends(get_db)
):
    """
    Check a typed name before using it

    - **existing**: this device already used a very similar name
    - **similar**: other voters used similar names (suggestions)
    - **new**: nothing close found
    """
    return IdentityService.check_name(db, payload.name, device_id)


@router.post("/confirm", response_model=VoterSession)
def confirm_name(
    payload: ConfirmNameRequest,
    device_id: str = Depends(get_device_id),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Bind the name to this device and start a voter session"""
    if not payload.confirmed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name must be confirmed"
        )

    IdentityService.remember_device_name(db, device_id, payload.name)
    return {
        "user_name": payload.name,
        "device_id": device_id,
        "voter_token": create_voter_token(payload.name, device_id, settings),
        "message": f"Voting as {payload.name}",
    }


@router.get("/me", response_model=DeviceNamesResponse)
def get_device_names(
    device_id: str = Depends(get_device_id),
    db: Session = Depends(get_db)
):
    """Names this device has used, most recent first"""
    names = IdentityService.get_device_names(db, device_id)
    return {
        "device_id": device_id,
        "names": names,
        "most_recent_name": names[0] if names else None,
    }
