from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

from movie_poll.config import Settings

# Argon2id password hashing (argon2-cffi backend)
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ADMIN_TOKEN = "admin"
VOTER_TOKEN = "voter"


# Password hashing and verification
def hash_password(password: str) -> str:
    """Hash a password with Argon2id"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    return pwd_context.verify(plain_password, hashed_password)


# JWT token creation and decoding
def create_token(
    data: dict,
    settings: Settings,
    token_type: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire, "type": token_type})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_admin_token(admin_id: int, username: str, settings: Settings) -> str:
    return create_token(
        {"sub": username, "admin_id": admin_id},
        settings,
        ADMIN_TOKEN,
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_voter_token(user_name: str, device_id: str, settings: Settings) -> str:
    """Voter session: the (name, device) pair votes are keyed on"""
    return create_token(
        {"sub": user_name, "device_id": device_id},
        settings,
        VOTER_TOKEN,
        timedelta(days=settings.voter_token_expire_days),
    )


def decode_token(token: str, settings: Settings) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
