from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from app.cores.db import Base, utc_now


class Playlist(Base):
    __tablename__ = "playlists"
    # name_key guarda el nombre en minúsculas para la unicidad por dueño
    __table_args__ = (UniqueConstraint("owner_id", "name_key", name="uq_playlist_owner_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), nullable=False)
    name_key = Column(String(50), nullable=False)
    description = Column(String(500), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    owner = relationship("User")

    def __repr__(self):
        return f"<Playlist(id={self.id}, name={self.name}, owner_id={self.owner_id}, is_public={self.is_public})>"
