from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from movie_poll.database import Base

MIN_VIBE = 1
MAX_VIBE = 6


class Vote(Base):
    """
    One voter's judgment on one movie.

    `vibe` means a quality rating when `seen` is true and an interest level
    when `seen` is false. Voter identity is the (user_name, device_id) pair.
    """
    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, index=True)
    user_name = Column(String(100), nullable=False, index=True)
    device_id = Column(String(100), nullable=False, index=True)
    seen = Column(Boolean, nullable=False)
    vibe = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    # Relationships
    movie = relationship("Movie", back_populates="votes")

    # One current vote per movie per voter per device
    __table_args__ = (
        UniqueConstraint("movie_id", "user_name", "device_id", name="uniq_vote_user_movie"),
        CheckConstraint(f"vibe >= {MIN_VIBE} AND vibe <= {MAX_VIBE}", name="check_vibe_range"),
    )

    def __repr__(self):
        return f"<Vote(movie_id={self.movie_id}, user_name={self.user_name}, seen={self.seen}, vibe={self.vibe})>"
