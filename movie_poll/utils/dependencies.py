from dataclasses import dataclass
from typing import Optional

from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from movie_poll.config import Settings
from movie_poll.database import get_db
from movie_poll.models.admin_user import AdminUser
from movie_poll.services.appeal_service import AppealService
from movie_poll.services.tmdb_service import TMDBService
from movie_poll.utils.security import ADMIN_TOKEN, VOTER_TOKEN, decode_token

security = HTTPBearer()


@dataclass(frozen=True)
class VoterIdentity:
    user_name: str
    device_id: str


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_appeal_service(settings: Settings = Depends(get_settings)) -> AppealService:
    return AppealService(participation_threshold=settings.participation_threshold)


def get_tmdb_service(settings: Settings = Depends(get_settings)) -> TMDBService:
    return TMDBService(api_key=settings.tmdb_api_key)


def get_device_id(
    x_device_id: Optional[str] = Header(None),
    device_id: Optional[str] = Cookie(None),
) -> str:
    """Device identifier from the X-Device-ID header, falling back to the device_id cookie"""
    value = (x_device_id or device_id or "").strip()
    if not value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Device ID is required")
    if len(value) > 100:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Device ID is too long")
    return value


# Dependency to get the current authenticated admin
async def get_current_admin(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> AdminUser:
    payload = decode_token(credentials.credentials, settings)
    if payload is None or payload.get("type") != ADMIN_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    admin = db.query(AdminUser).filter(AdminUser.id == payload.get("admin_id")).first()
    if not admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin not found")

    return admin


# Dependency to get the voter bound to this session
async def get_current_voter(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> VoterIdentity:
    payload = decode_token(credentials.credentials, settings)
    if payload is None or payload.get("type") != VOTER_TOKEN:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user_name = payload.get("sub")
    device_id = payload.get("device_id")
    if not user_name or not device_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not authenticated")

    return VoterIdentity(user_name=user_name, device_id=device_id)
