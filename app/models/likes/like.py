import enum
from dataclasses import dataclass

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from app.cores.db import Base, utc_now


class LikeTargetKind(str, enum.Enum):
    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"


@dataclass(frozen=True)
class LikeTarget:
    """Exactly one liked entity: its kind plus its id."""
    kind: LikeTargetKind
    target_id: int


class Like(Base):
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("liked_by_id", "target_kind", "target_id", name="uq_like_actor_target"),
        Index("ix_likes_target", "target_kind", "target_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    liked_by_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_kind = Column(String(10), nullable=False)
    target_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    liked_by = relationship("User")

    @property
    def target(self) -> LikeTarget:
        return LikeTarget(LikeTargetKind(self.target_kind), self.target_id)

    def __repr__(self):
        return f"<Like(liked_by_id={self.liked_by_id}, target={self.target_kind}:{self.target_id})>"
