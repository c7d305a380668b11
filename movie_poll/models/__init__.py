"""
Import all models to ensure they are registered with SQLAlchemy
"""
from movie_poll.models.movie import Movie
from movie_poll.models.vote import Vote
from movie_poll.models.appeal import Appeal
from movie_poll.models.user_device import UserDevice
from movie_poll.models.admin_user import AdminUser

__all__ = [
    "Movie",
    "Vote",
    "Appeal",
    "UserDevice",
    "AdminUser"
]
