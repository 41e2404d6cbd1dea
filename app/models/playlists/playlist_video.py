from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.cores.db import Base, utc_now


class PlaylistVideo(Base):
    __tablename__ = "playlist_videos"
    __table_args__ = (UniqueConstraint("playlist_id", "video_id", name="uq_playlist_video"),)

    id = Column(Integer, primary_key=True, index=True)
    playlist_id = Column(Integer, ForeignKey("playlists.id", ondelete="CASCADE"), nullable=False, index=True)
    video_id = Column(Integer, ForeignKey("videos.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    added_at = Column(DateTime, default=utc_now, nullable=False)

    playlist = relationship("Playlist")
    video = relationship("Video")

    def __repr__(self):
        return f"<PlaylistVideo(playlist_id={self.playlist_id}, video_id={self.video_id}, position={self.position})>"
