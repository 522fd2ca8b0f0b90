"""Map a catalog record to the absolute origin URL its bytes are fetched from. No network I/O."""
from mflix.models.content import ContentType


def _clean(url: str | None) -> str | None:
    url = (url or "").strip()
    return url or None


def resolve(record) -> str | None:
    """Origin URL of a movie, or None when the record has no video."""
    if record.type == ContentType.SERIES.value:
        # Series play per episode; see resolve_episode
        return None
    return _clean(record.video_url)


def resolve_episode(record, index: int) -> str | None:
    """Origin URL of the episode at 0-based index, or None when out of range or empty."""
    episodes = list(record.episodes or [])
    if index < 0 or index >= len(episodes):
        return None
    return _clean(episodes[index].video_url)
