import re

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mflix.auth import create_access_token, hash_password
from mflix.config import get_settings
from mflix.database import Base, get_db, get_session_factory
from mflix.main import app
from mflix.models import Content, Episode, User
from mflix.services.mailer import Mailer, get_mailer
from mflix.services.origin_transport import OriginTransports, get_origin_transports

MOVIE_URL = "http://origin.test/videos/movie.mp4"
MOVIE_BYTES = bytes(i % 251 for i in range(1000))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


class FakeOrigin:
    """In-process video origin honouring single byte ranges, like a CDN would."""

    def __init__(self, body: bytes = MOVIE_BYTES):
        self.body = body
        self.requests: list[httpx.Request] = []
        self.refuse = False
        self.extra_headers: dict[str, str] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.refuse:
            raise httpx.ConnectError("Connection refused", request=request)
        size = len(self.body)
        headers = {"Content-Type": "video/mp4", "Accept-Ranges": "bytes", "ETag": '"v1"', **self.extra_headers}
        range_header = request.headers.get("range")
        if not range_header:
            return httpx.Response(200, headers=headers, content=self.body)
        m = re.fullmatch(r"bytes=(\d*)-(\d*)", range_header)
        if not m or not (m.group(1) or m.group(2)):
            return httpx.Response(416, headers={"Content-Range": f"bytes */{size}"})
        if m.group(1):
            start = int(m.group(1))
            end = int(m.group(2)) if m.group(2) else size - 1
        else:
            start = max(0, size - int(m.group(2)))
            end = size - 1
        if start >= size or start > end:
            return httpx.Response(416, headers={"Content-Range": f"bytes */{size}"})
        end = min(end, size - 1)
        headers["Content-Range"] = f"bytes {start}-{end}/{size}"
        return httpx.Response(206, headers=headers, content=self.body[start:end + 1])


@pytest.fixture
def origin():
    return FakeOrigin()


@pytest.fixture
def session_factory(db):
    """Fresh sessions on the test database, as the stream relay opens them."""
    return sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())


@pytest.fixture
def client(db, session_factory, origin):
    def override_get_db():
        yield db

    transports = OriginTransports.from_settings(get_settings(), transport=httpx.MockTransport(origin.handler))
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_origin_transports] = lambda: transports
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(email="viewer@example.com", role="user", status="inactive", plan="none", **kwargs):
        user = User(
            name=kwargs.pop("name", "Viewer"),
            email=email,
            password=hash_password(kwargs.pop("password", "secret123")),
            role=role,
            subscription_status=status,
            subscription_plan=plan,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_content(db):
    def _make(title="Movie", access="free", video_url=MOVIE_URL, episodes=None, **kwargs):
        content = Content(
            title=title,
            description=kwargs.pop("description", ""),
            type="series" if episodes else kwargs.pop("type", "movie"),
            access=access,
            video_url="" if episodes else video_url,
            thumbnail_url=kwargs.pop("thumbnail_url", ""),
            **kwargs,
        )
        for i, url in enumerate(episodes or []):
            content.episodes.append(Episode(position=i, title=f"Episode {i + 1}", video_url=url))
        db.add(content)
        db.commit()
        db.refresh(content)
        return content

    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


class FakeSmtp:
    """Stands in for aiosmtplib.send; keeps messages instead of talking to a server."""

    def __init__(self):
        self.messages = []
        self.error: Exception | None = None

    async def __call__(self, message, **kwargs):
        if self.error:
            raise self.error
        self.messages.append(message)


@pytest.fixture
def smtp():
    return FakeSmtp()


@pytest.fixture
def mailer(smtp):
    mailer = Mailer("smtp.test", 587, sender="mflix <noreply@mflix.test>", send=smtp)
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield mailer
    app.dependency_overrides.pop(get_mailer, None)
