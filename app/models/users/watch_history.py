from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.cores.db import Base, utc_now


class WatchHistory(Base):
    __tablename__ = "watch_history"
    __table_args__ = (UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    watched_at = Column(DateTime, default=utc_now, nullable=False)

    user = relationship("User")
    video = relationship("Video")

    def __repr__(self):
        return f"<WatchHistory(user_id={self.user_id}, video_id={self.video_id}, watched_at={self.watched_at})>"
