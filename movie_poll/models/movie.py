from sqlalchemy import Column, Integer, String, Float, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from movie_poll.database import Base


class Movie(Base):
    __tablename__ = "movies"

    id = Column(Integer, primary_key=True, index=True)
    tmdb_id = Column(Integer, unique=True, nullable=True, index=True)
    title = Column(String, nullable=False, index=True)
    year = Column(Integer, nullable=True)
    overview = Column(String)
    release_date = Column(String)
    poster_path = Column(String)
    backdrop_path = Column(String)
    runtime = Column(Integer)
    original_language = Column(String)
    vote_average = Column(Float, default=0.0)
    vote_count = Column(Integer, default=0)
    popularity = Column(Float, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    votes = relationship("Vote", back_populates="movie", cascade="all, delete-orphan", passive_deletes=True)
    appeal = relationship("Appeal", back_populates="movie", uselist=False, cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self):
        return f"<Movie(id={self.id}, title={self.title}, year={self.year})>"
