from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from app.cores.db import Base, utc_now


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    fullname = Column(String(50), nullable=False)
    password = Column(String(255), nullable=False)
    avatar = Column(String(500), nullable=False)
    avatar_id = Column(String(255), nullable=True)
    cover_image = Column(String(500), nullable=True)
    cover_image_id = Column(String(255), nullable=True)
    refresh_token = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    videos = relationship("Video", back_populates="owner", passive_deletes=True)

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, email={self.email})>"
