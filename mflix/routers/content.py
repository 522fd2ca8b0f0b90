"""
Catalog CRUD (admin writes, public reads) and the video stream relay.
Stream endpoints accept an optional Bearer token: free titles play anonymously,
paid titles need an active subscription. Range requests are passed to the origin for seeking.
"""
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session, sessionmaker
from mflix.auth import CredentialVerifier, get_bearer_credential, get_current_user_admin
from mflix.config import get_settings
from mflix.database import get_db, get_session_factory
from mflix.models.content import Content, ContentType
from mflix.models.user import User
from mflix.schemas.content import ContentCreate, ContentResponse, ContentUpdate
from mflix.services.catalog import ContentCatalog, create_content, list_content, update_content
from mflix.services.origin_transport import OriginTransports, UpstreamConnectError, get_origin_transports
from mflix.services.stream_proxy import AccessDenied, ContentNotFound, RelayResponse, StreamProxy

router = APIRouter(prefix="/api/content", tags=["content"])
settings = get_settings()


def _get_or_404(content_id: str, db: Session) -> Content:
    content = db.query(Content).filter(Content.id == content_id).first()
    if not content:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Content not found")
    return content


def get_stream_proxy(
    session_factory: sessionmaker = Depends(get_session_factory),
    transports: OriginTransports = Depends(get_origin_transports),
) -> StreamProxy:
    return StreamProxy(
        catalog=ContentCatalog(session_factory),
        verifier=CredentialVerifier(session_factory),
        transports=transports,
        chunk_size=settings.stream_chunk_size,
        allow_origin=settings.stream_allow_origin,
    )


async def _relay(
    proxy: StreamProxy,
    content_id: str,
    request: Request,
    credential: str | None,
    episode: int | None = None,
) -> RelayResponse:
    try:
        session = await proxy.open(
            content_id,
            range_header=request.headers.get("range"),
            credential=credential,
            user_agent=request.headers.get("user-agent"),
            episode=episode,
        )
    except ContentNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AccessDenied as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"reason": e.reason.value, "message": e.message},
        )
    except UpstreamConnectError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to proxy video stream")
    return RelayResponse(session)


# ---------- Public: browse ----------


@router.get("", response_model=list[ContentResponse])
def get_all_content(
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
    db: Session = Depends(get_db),
):
    """List catalog. Filters take comma-separated values; size in MB; sort e.g. title_asc, date_old."""
    return list_content(
        db,
        type=type,
        genre=genre,
        access=access,
        target_age_group=target_age_group,
        target_gender=target_gender,
        date_from=date_from,
        date_to=date_to,
        size_min=size_min,
        size_max=size_max,
        sort=sort,
    )


@router.get("/{content_id}", response_model=ContentResponse)
def get_content_by_id(content_id: str, db: Session = Depends(get_db)):
    return _get_or_404(content_id, db)


# ---------- Stream relay (optional Bearer; paid titles need an active subscription) ----------


@router.get("/{content_id}/stream")
async def stream_content(
    content_id: str,
    request: Request,
    credential: str | None = Depends(get_bearer_credential),
    proxy: StreamProxy = Depends(get_stream_proxy),
):
    """Relay the movie from its origin. Mirrors origin status (200/206/416) and headers."""
    return await _relay(proxy, content_id, request, credential)


@router.get("/{content_id}/episodes/{index}/stream")
async def stream_episode(
    content_id: str,
    index: int,
    request: Request,
    credential: str | None = Depends(get_bearer_credential),
    proxy: StreamProxy = Depends(get_stream_proxy),
):
    """Relay one episode of a series (0-based index)."""
    return await _relay(proxy, content_id, request, credential, episode=index)


# ---------- Admin: create, update, delete ----------


@router.post("", response_model=ContentResponse, status_code=status.HTTP_201_CREATED)
def upload_content(
    body: ContentCreate,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    """Admin: register a movie (video_url) or series (episodes) already hosted on the origin."""
    if body.type == ContentType.SERIES.value and not body.episodes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No episode files provided")
    content = create_content(db, body)
    db.commit()
    db.refresh(content)
    return content


@router.put("/{content_id}", response_model=ContentResponse)
def edit_content(
    content_id: str,
    body: ContentUpdate,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    content = _get_or_404(content_id, db)
    update_content(content, body)
    db.commit()
    db.refresh(content)
    return content


@router.delete("/{content_id}")
def delete_content(
    content_id: str,
    _admin: User = Depends(get_current_user_admin),
    db: Session = Depends(get_db),
):
    content = _get_or_404(content_id, db)
    db.delete(content)
    db.commit()
    return {"success": True}
