"""Catalog queries and writes for the content router, and the record lookup behind the stream relay."""
import re
from datetime import date, datetime, time
from sqlalchemy.orm import Session, selectinload, sessionmaker
from mflix.models.content import Content, ContentType, Episode
from mflix.schemas.content import ContentCreate, ContentUpdate

BYTES_PER_MB = 1024 * 1024

SORT_ORDERS = {
    "title_asc": (Content.title.asc(),),
    "title_desc": (Content.title.desc(),),
    "size_asc": (Content.file_size.asc(),),
    "size_desc": (Content.file_size.desc(),),
    "date_new": (Content.uploaded_at.desc(),),
    "date_old": (Content.uploaded_at.asc(),),
}


class ContentCatalog:
    """Record lookup for the stream relay. The session is closed before the record is returned."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get_content_by_id(self, content_id: str) -> Content | None:
        with self.session_factory() as db:
            # episodes are loaded up front; the record is detached once the session closes
            return (
                db.query(Content)
                .options(selectinload(Content.episodes))
                .filter(Content.id == content_id)
                .first()
            )


def _split(value: str | None) -> list[str]:
    return [v for v in (value or "").split(",") if v]


def thumbnail_for(video_url: str | None) -> str:
    """Poster frame URL convention of the media host: same path with a .jpg extension."""
    if not video_url:
        return ""
    return re.sub(r"\.[^/.]+$", ".jpg", video_url)


def list_content(
    db: Session,
    type: str | None = None,
    genre: str | None = None,
    access: str | None = None,
    target_age_group: str | None = None,
    target_gender: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    size_min: float | None = None,
    size_max: float | None = None,
    sort: str | None = None,
) -> list[Content]:
    q = db.query(Content)
    if type and type != "all" and _split(type):
        q = q.filter(Content.type.in_(_split(type)))
    if _split(access):
        q = q.filter(Content.access.in_(_split(access)))
    if _split(target_age_group):
        q = q.filter(Content.target_age_group.in_(_split(target_age_group)))
    if _split(target_gender):
        q = q.filter(Content.target_gender.in_(_split(target_gender)))
    if date_from:
        q = q.filter(Content.uploaded_at >= datetime.combine(date_from, time.min))
    if date_to:
        q = q.filter(Content.uploaded_at <= datetime.combine(date_to, time.max))
    if size_min is not None:
        q = q.filter(Content.file_size >= size_min * BYTES_PER_MB)
    if size_max is not None:
        q = q.filter(Content.file_size <= size_max * BYTES_PER_MB)
    q = q.order_by(*SORT_ORDERS.get(sort or "", SORT_ORDERS["date_new"]))
    items = q.all()

    # genre is a JSON list column; match any requested genre in Python
    genres = set(_split(genre)) if genre != "all" else set()
    if genres:
        items = [c for c in items if genres.intersection(c.genre or [])]
    return items


def create_content(db: Session, body: ContentCreate) -> Content:
    """Build a movie or series record. Caller must db.commit()."""
    is_series = body.type == ContentType.SERIES.value
    content = Content(
        title=body.title or ("Untitled Series" if is_series else "Untitled"),
        description=body.description,
        type=body.type,
        genre=body.genre,
        release_year=body.release_year,
        rating=body.rating,
        duration=None if is_series else body.duration,
        access=body.access,
        file_size=body.file_size or 0,
        target_age_group=body.target_age_group,
        target_gender=body.target_gender,
    )
    if is_series:
        content.video_url = ""
        for i, ep in enumerate(body.episodes):
            content.episodes.append(Episode(
                position=i,
                title=ep.title or f"Episode {i + 1}",
                video_url=ep.video_url,
                duration=ep.duration,
                thumbnail_url=ep.thumbnail_url or thumbnail_for(ep.video_url),
            ))
        first = content.episodes[0].thumbnail_url if content.episodes else ""
        content.thumbnail_url = body.thumbnail_url or first
    else:
        content.video_url = body.video_url or ""
        content.thumbnail_url = body.thumbnail_url or thumbnail_for(body.video_url)
    db.add(content)
    return content


def update_content(content: Content, body: ContentUpdate) -> Content:
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        setattr(content, field, value)
    return content
