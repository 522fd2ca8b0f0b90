"""
Simple audience-matched recommendations.
- Audience: target_age_group in (user's group, "all"); target_gender in (user's gender, "all")
- Preferred genres first, then top up from the rest of the audience match
- Falls back to the whole catalog when nothing matches
"""
from sqlalchemy.orm import Session
from mflix.models.content import Content
from mflix.models.user import User

MAX_RESULTS = 20
MIN_GENRE_MATCHES = 10


def age_group(age: int | None) -> str | None:
    if age is None or age < 0:
        return None
    if age <= 12:
        return "kids"
    if age <= 19:
        return "teens"
    return "adults"


def _ranked(items: list[Content]) -> list[Content]:
    # rating desc, then newest; unrated items sort last
    by_date = sorted(items, key=lambda c: c.created_at, reverse=True)
    return sorted(by_date, key=lambda c: c.rating if c.rating is not None else float("-inf"), reverse=True)


def recommend_for(db: Session, user: User | None) -> list[Content]:
    group = age_group(user.age) if user else None
    gender = user.gender if user and user.gender else None

    q = db.query(Content).filter(Content.target_age_group.in_([group or "all", "all"]))
    if gender:
        q = q.filter(Content.target_gender.in_([gender, "all"]))
    audience = _ranked(q.all())

    preferred = set(user.preferred_genres or []) if user else set()
    items: list[Content] = []
    if preferred:
        items = [c for c in audience if preferred.intersection(c.genre or [])][:MAX_RESULTS]

    if len(items) < MIN_GENRE_MATCHES:
        chosen = {c.id for c in items}
        rest = [c for c in audience if c.id not in chosen]
        items = items + rest[:MAX_RESULTS - len(items)]

    if not items:
        items = _ranked(db.query(Content).all())[:MAX_RESULTS]
    return items
