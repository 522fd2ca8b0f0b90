"""Catalog entries. A movie carries one video_url; a series carries ordered episodes."""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, BigInteger, Float, DateTime, Text, JSON, ForeignKey
from sqlalchemy.orm import relationship
from mflix.database import Base


class ContentType(str, enum.Enum):
    MOVIE = "movie"
    SERIES = "series"


class Visibility(str, enum.Enum):
    FREE = "free"
    PAID = "paid"


class Content(Base):
    __tablename__ = "contents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    type = Column(String(10), nullable=False, default=ContentType.MOVIE.value)
    genre = Column(JSON, nullable=False, default=list)
    release_year = Column(Integer, nullable=True)
    rating = Column(Float, nullable=True)
    video_url = Column(String(1024), nullable=True)  # absolute origin URL; empty for series
    thumbnail_url = Column(String(1024), nullable=False, default="")
    duration = Column(Integer, nullable=True)
    access = Column(String(10), nullable=False, default=Visibility.FREE.value)
    file_size = Column(BigInteger, nullable=True)  # bytes
    target_age_group = Column(String(10), nullable=False, default="all")
    target_gender = Column(String(10), nullable=False, default="all")
    uploaded_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    episodes = relationship(
        "Episode",
        order_by="Episode.position",
        cascade="all, delete-orphan",
        back_populates="content",
    )


class Episode(Base):
    __tablename__ = "episodes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    content_id = Column(String(36), ForeignKey("contents.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    title = Column(String(255), nullable=False)
    video_url = Column(String(1024), nullable=True)
    duration = Column(Integer, nullable=True)
    thumbnail_url = Column(String(1024), nullable=True)

    content = relationship("Content", back_populates="episodes")
