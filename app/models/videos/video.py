from sqlalchemy import Column, Integer, String, Text, Float, Boolean, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from app.cores.db import Base, utc_now


class Video(Base):
    __tablename__ = "videos"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    duration = Column(Float, nullable=False, default=0)
    video_file = Column(String(500), nullable=False)
    video_file_id = Column(String(255), nullable=True)
    thumbnail = Column(String(500), nullable=False)
    thumbnail_id = Column(String(255), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_published = Column(Boolean, nullable=False, default=True)
    views = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    owner = relationship("User", back_populates="videos")

    def __repr__(self):
        return f"<Video(id={self.id}, title={self.title}, owner_id={self.owner_id}, is_published={self.is_published})>"
