import asyncio

import httpx
import pytest

from posts_service.directory import UserDirectory, UserSnapshot
from shared.errors import NotFoundError, UpstreamError


def directory_with(handler):
    return UserDirectory(base_url="http://users.test", transport=httpx.MockTransport(handler))


def test_get_user_returns_snapshot():
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json={"user_id": 7, "name": "Grace", "avatar": "//avatar/grace"})

    user = asyncio.run(directory_with(handler).get_user(7))
    assert user == UserSnapshot(user_id=7, name="Grace", avatar="//avatar/grace")
    assert seen == ["/users/7"]


def test_unknown_user_is_not_found():
    def handler(request):
        return httpx.Response(404, json={"detail": "User not found"})

    with pytest.raises(NotFoundError):
        asyncio.run(directory_with(handler).get_user(7))


def test_unexpected_status_is_upstream_error():
    def handler(request):
        return httpx.Response(500, text="boom")

    with pytest.raises(UpstreamError):
        asyncio.run(directory_with(handler).get_user(7))


def test_transport_failure_is_upstream_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(directory_with(handler).get_user(7))
    assert exc_info.value.status_code == 502
