from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from movie_poll.config import Settings
from movie_poll.database import get_db
from movie_poll.models.admin_user import AdminUser
from movie_poll.schemas.auth import AdminLogin, AdminResponse, TokenResponse
from movie_poll.services.admin_service import AdminService
from movie_poll.utils.dependencies import get_current_admin, get_settings

# Define router
router = APIRouter(prefix="/api/auth", tags=["Authentication"])

# Admin login
@router.post("/login", response_model=TokenResponse)
def login(
    credentials: AdminLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Login with admin username and password"""
    return AdminService.login_admin(db, credentials, settings)

# Get current authenticated admin
@router.get("/me", response_model=AdminResponse)
def get_me(current_admin: AdminUser = Depends(get_current_admin)):
    """Get current authenticated admin"""
    return current_admin
