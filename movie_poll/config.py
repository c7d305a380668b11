"""
Application settings

Values are read from the environment (and an optional .env file) once, then
passed explicitly to create_app(). Handlers reach them through the
get_settings dependency.
"""

import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

DEFAULT_PARTICIPATION_THRESHOLD = 3


class Settings(BaseModel):
    """Runtime configuration for the movie poll service"""

    database_url: str = "sqlite:///./movie_poll.db"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 3600
    db_echo: bool = False

    # Votes needed before a movie gets a non-zero appeal score
    participation_threshold: int = Field(DEFAULT_PARTICIPATION_THRESHOLD, ge=0)
    movie_limit: int = Field(25, ge=0)

    secret_key: str = "fallback-secret-key"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    voter_token_expire_days: int = 30

    admin_username: str = "admin"
    admin_password: Optional[str] = None

    tmdb_api_key: Optional[str] = None

    environment: str = "development"
    frontend_url: Optional[str] = None
    log_level: str = "INFO"

    @property
    def allowed_origins(self) -> List[str]:
        origins = [
            "http://localhost:3000",
            "http://localhost:5173",
        ]
        if self.frontend_url:
            origins.append(self.frontend_url)
        return origins

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./movie_poll.db"),
            db_pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
            db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),
            db_pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", 30)),
            db_pool_recycle=int(os.getenv("DB_POOL_RECYCLE", 3600)),
            db_echo=os.getenv("DB_ECHO", "false").lower() == "true",
            participation_threshold=int(
                os.getenv("PARTICIPATION_THRESHOLD", DEFAULT_PARTICIPATION_THRESHOLD)
            ),
            movie_limit=int(os.getenv("MOVIE_LIMIT", 25)),
            secret_key=os.getenv("SECRET_KEY", "fallback-secret-key"),
            algorithm=os.getenv("ALGORITHM", "HS256"),
            access_token_expire_minutes=int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30)),
            voter_token_expire_days=int(os.getenv("VOTER_TOKEN_EXPIRE_DAYS", 30)),
            admin_username=os.getenv("ADMIN_USERNAME", "admin"),
            admin_password=os.getenv("ADMIN_PASSWORD"),
            tmdb_api_key=os.getenv("TMDB_API_KEY"),
            environment=os.getenv("ENVIRONMENT", "development"),
            frontend_url=os.getenv("FRONTEND_URL"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
