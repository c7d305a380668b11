from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from movie_poll.database import Base


class Appeal(Base):
    """
    Appeal snapshot for one movie.
    Rows are only written by AppealService.recompute, which replaces the whole table.
    """
    __tablename__ = "appeals"

    id = Column(Integer, primary_key=True, index=True)
    movie_id = Column(Integer, ForeignKey("movies.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    appeal_score = Column(Float, nullable=False, index=True)
    total_votes = Column(Integer, nullable=False, default=0)
    unique_voters = Column(Integer, nullable=False, default=0)
    seen_count = Column(Integer, nullable=False, default=0)
    visibility_ratio = Column(Float, nullable=False, default=0.0)
    calculated_at = Column(DateTime(timezone=True), nullable=False)

    movie = relationship("Movie", back_populates="appeal")
