from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from movie_poll.database import Base


class UserDevice(Base):
    """Names a device has used, most recent identified by last_seen"""
    __tablename__ = "user_devices"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String(100), nullable=False, index=True)
    user_name = Column(String(100), nullable=False)
    last_seen = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("device_id", "user_name", name="uniq_device_user_name"),
    )
