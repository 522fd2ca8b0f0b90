from datetime import datetime
from typing import Literal
from pydantic import BaseModel, Field

ContentTypeField = Literal["movie", "series"]
AccessField = Literal["free", "paid"]
AgeGroupField = Literal["kids", "teens", "adults", "all"]
TargetGenderField = Literal["male", "female", "all"]


class EpisodeIn(BaseModel):
    title: str | None = None
    video_url: str
    duration: int | None = None
    thumbnail_url: str | None = None


class EpisodeResponse(BaseModel):
    title: str
    video_url: str | None
    duration: int | None
    thumbnail_url: str | None

    class Config:
        from_attributes = True


class ContentCreate(BaseModel):
    title: str | None = None
    description: str = ""
    type: ContentTypeField = "movie"
    genre: list[str] = []
    release_year: int | None = Field(None, ge=1800, le=2200)
    rating: float | None = Field(None, ge=0, le=10)
    video_url: str | None = None
    thumbnail_url: str | None = None
    duration: int | None = None
    episodes: list[EpisodeIn] = []
    access: AccessField = "free"
    file_size: int | None = Field(None, ge=0)
    target_age_group: AgeGroupField = "all"
    target_gender: TargetGenderField = "all"


class ContentUpdate(BaseModel):
    """Partial update; fields left out stay unchanged."""
    title: str | None = None
    description: str | None = None
    genre: list[str] | None = None
    release_year: int | None = None
    rating: float | None = Field(None, ge=0, le=10)
    video_url: str | None = None
    thumbnail_url: str | None = None
    duration: int | None = None
    access: AccessField | None = None
    file_size: int | None = Field(None, ge=0)
    target_age_group: AgeGroupField | None = None
    target_gender: TargetGenderField | None = None


class ContentResponse(BaseModel):
    id: str
    title: str
    description: str
    type: str
    genre: list[str]
    release_year: int | None
    rating: float | None
    video_url: str | None
    thumbnail_url: str
    duration: int | None
    episodes: list[EpisodeResponse]
    access: str
    file_size: int | None
    target_age_group: str
    target_gender: str
    uploaded_at: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
