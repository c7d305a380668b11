from datetime import datetime, timezone
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from movie_poll.config import Settings
from movie_poll.models.admin_user import AdminUser
from movie_poll.schemas.auth import AdminLogin
from movie_poll.utils.security import create_admin_token, hash_password, verify_password

logger = logging.getLogger(__name__)


class AdminService:
    @staticmethod
    def ensure_admin(db: Session, username: str, password: str) -> AdminUser:
        """Create the shared admin account if it does not exist yet"""
        admin = db.query(AdminUser).filter(AdminUser.username == username).first()
        if admin:
            return admin

        admin = AdminUser(username=username, password_hash=hash_password(password))
        db.add(admin)
        db.commit()
        db.refresh(admin)
        logger.info(f"Created admin user '{username}'")
        return admin

    @staticmethod
    def login_admin(db: Session, credentials: AdminLogin, settings: Settings) -> dict:
        admin = db.query(AdminUser).filter(AdminUser.username == credentials.username).first()

        if not admin:
            logger.warning(f"Admin login failed: unknown username {credentials.username}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

        if not verify_password(credentials.password, admin.password_hash):
            logger.warning(f"Admin login failed: incorrect password for {credentials.username}")
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

        admin.last_login = datetime.now(timezone.utc)
        db.commit()
        db.refresh(admin)

        access_token = create_admin_token(admin.id, admin.username, settings)
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.access_token_expire_minutes * 60,
            "admin": admin
        }
