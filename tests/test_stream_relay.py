import asyncio

import httpx
import pytest

from conftest import MOVIE_BYTES, MOVIE_URL
from mflix.services.origin_transport import OriginTransports, PlainOriginTransport, get_origin_transports
from mflix.main import app


def test_unknown_content_is_404_without_upstream(client, origin):
    res = client.get("/api/content/does-not-exist/stream")
    assert res.status_code == 404
    assert origin.requests == []


def test_missing_origin_url_is_404_without_upstream(client, origin, make_content):
    content = make_content(video_url="")
    res = client.get(f"/api/content/{content.id}/stream")
    assert res.status_code == 404
    assert res.json()["detail"] == "No video available for this content"
    assert origin.requests == []


def test_paid_without_token_is_403(client, origin, make_content):
    content = make_content(access="paid")
    res = client.get(f"/api/content/{content.id}/stream")
    assert res.status_code == 403
    assert res.json()["detail"]["reason"] == "no_credential"
    assert origin.requests == []


def test_paid_with_bad_token_is_403(client, origin, make_content):
    content = make_content(access="paid")
    res = client.get(f"/api/content/{content.id}/stream", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 403
    assert res.json()["detail"]["reason"] == "invalid_credential"
    assert origin.requests == []


def test_paid_with_inactive_subscription_is_403(client, origin, make_content, make_user, auth_headers):
    content = make_content(access="paid")
    user = make_user(status="inactive")
    res = client.get(f"/api/content/{content.id}/stream", headers=auth_headers(user))
    assert res.status_code == 403
    assert res.json()["detail"]["reason"] == "subscription_required"
    assert origin.requests == []


def test_paid_with_active_subscription_streams(client, origin, make_content, make_user, auth_headers):
    content = make_content(access="paid")
    user = make_user(status="active", plan="monthly")
    res = client.get(f"/api/content/{content.id}/stream", headers=auth_headers(user))
    assert res.status_code == 200
    assert res.content == MOVIE_BYTES


def test_free_content_streams_with_any_token(client, make_content):
    content = make_content(access="free")
    assert client.get(f"/api/content/{content.id}/stream").status_code == 200
    res = client.get(f"/api/content/{content.id}/stream", headers={"Authorization": "Bearer junk"})
    assert res.status_code == 200


def test_range_is_relayed_as_partial_content(client, origin, make_content):
    content = make_content()
    res = client.get(f"/api/content/{content.id}/stream", headers={"Range": "bytes=100-199"})
    assert res.status_code == 206
    assert res.headers["content-range"] == "bytes 100-199/1000"
    assert res.headers["content-length"] == "100"
    assert res.headers["content-type"] == "video/mp4"
    assert res.headers["accept-ranges"] == "bytes"
    assert res.headers["access-control-allow-origin"] == "*"
    assert len(res.content) == 100
    assert res.content == MOVIE_BYTES[100:200]


@pytest.mark.parametrize("range_header", [None, "bytes=0-0", "bytes=0-499", "bytes=500-", "bytes=-64", "bytes=990-5000"])
def test_relayed_bytes_equal_origin_bytes(client, origin, make_content, range_header):
    content = make_content()
    headers = {"Range": range_header} if range_header else {}
    direct = origin.handler(httpx.Request("GET", MOVIE_URL, headers=headers))
    res = client.get(f"/api/content/{content.id}/stream", headers=headers)
    assert res.status_code == direct.status_code
    assert res.content == direct.content
    assert res.headers.get("content-range") == direct.headers.get("content-range")


def test_unsatisfiable_range_is_passed_through(client, make_content):
    content = make_content()
    res = client.get(f"/api/content/{content.id}/stream", headers={"Range": "bytes=5000-6000"})
    assert res.status_code == 416
    assert res.headers["content-range"] == "bytes */1000"


def test_only_range_and_user_agent_reach_origin(client, origin, make_content):
    content = make_content()
    client.get(
        f"/api/content/{content.id}/stream",
        headers={
            "Range": "bytes=1-2",
            "User-Agent": "ExoPlayer/2.19",
            "Authorization": "Bearer secret-token",
            "Cookie": "session=abc",
        },
    )
    sent = origin.requests[0]
    assert sent.url == httpx.URL(MOVIE_URL)
    assert sent.method == "GET"
    assert sent.headers["range"] == "bytes=1-2"
    assert sent.headers["user-agent"] == "ExoPlayer/2.19"
    assert "authorization" not in sent.headers
    assert "cookie" not in sent.headers


def test_hop_by_hop_headers_dropped_and_cors_replaced(client, origin, make_content):
    origin.extra_headers = {
        "Connection": "close",
        "Keep-Alive": "timeout=5",
        "Access-Control-Allow-Origin": "https://cdn-console.test",
        "Cache-Control": "public, max-age=3600",
    }
    content = make_content()
    res = client.get(f"/api/content/{content.id}/stream")
    assert res.headers["access-control-allow-origin"] == "*"
    assert res.headers["cache-control"] == "public, max-age=3600"
    assert res.headers["etag"] == '"v1"'
    assert "keep-alive" not in res.headers


def test_refused_connection_is_502(client, origin, make_content):
    origin.refuse = True
    content = make_content()
    res = client.get(f"/api/content/{content.id}/stream", headers={"Range": "bytes=0-99"})
    assert res.status_code == 502
    assert res.json() == {"detail": "Failed to proxy video stream"}
    assert len(origin.requests) == 1


def test_slow_origin_headers_time_out_as_502(client, make_content):
    async def never_answers(request):
        await asyncio.sleep(5)
        return httpx.Response(200)

    slow = OriginTransports([
        PlainOriginTransport(httpx.AsyncClient(transport=httpx.MockTransport(never_answers)), headers_timeout=0.05),
    ])
    app.dependency_overrides[get_origin_transports] = lambda: slow
    content = make_content()
    res = client.get(f"/api/content/{content.id}/stream")
    assert res.status_code == 502


def test_unsupported_origin_scheme_is_502(client, origin, make_content):
    content = make_content(video_url="ftp://origin.test/movie.mp4")
    res = client.get(f"/api/content/{content.id}/stream")
    assert res.status_code == 502
    assert origin.requests == []


def test_episode_stream(client, origin, make_content):
    series = make_content(episodes=["http://origin.test/s1e1.mp4", "http://origin.test/s1e2.mp4"])
    res = client.get(f"/api/content/{series.id}/episodes/1/stream", headers={"Range": "bytes=0-9"})
    assert res.status_code == 206
    assert str(origin.requests[0].url) == "http://origin.test/s1e2.mp4"


def test_series_without_episode_index_is_404(client, origin, make_content):
    series = make_content(episodes=["http://origin.test/s1e1.mp4"])
    assert client.get(f"/api/content/{series.id}/stream").status_code == 404
    assert client.get(f"/api/content/{series.id}/episodes/3/stream").status_code == 404
    assert origin.requests == []
