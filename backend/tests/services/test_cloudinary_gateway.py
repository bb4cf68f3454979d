"""Cloudinary Gateway: signed uploads and failure classification.

Invariants:
    - Success returns the secure_url as the storage reference
    - 429 / 5xx / timeouts / connection errors are retryable; other 4xx are not
    - A 2xx without a URL is a failure
"""

import hashlib

import httpx
import pytest

from pixnest.core.errors import StorageUnavailableError
from pixnest.infrastructure.cloudinary_gateway import CloudinaryGateway, sign_params


def _gateway(handler):
    return CloudinaryGateway(
        "demo", "key-123", "secret-xyz",
        transport=httpx.MockTransport(handler), clock=lambda: 1700000000,
    )


def test_sign_params_matches_cloudinary_scheme():
    expected = hashlib.sha1(
        b"folder=pixnest_uploads&timestamp=1700000000secret-xyz",
    ).hexdigest()
    assert sign_params(
        {"timestamp": "1700000000", "folder": "pixnest_uploads"}, "secret-xyz",
    ) == expected


async def test_successful_upload_is_signed():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, json={
            "secure_url": "https://res.cloudinary.com/demo/image/upload/v1/pixnest_uploads/a.jpg",
            "public_id": "pixnest_uploads/a",
        })

    gateway = _gateway(handler)
    result = await gateway.upload(b"\xff\xd8\xffdata", "pixnest_uploads", "image/jpeg")
    await gateway.aclose()

    assert result.url.endswith("/pixnest_uploads/a.jpg")
    assert result.public_id == "pixnest_uploads/a"
    assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/image/upload"
    signature = sign_params(
        {"folder": "pixnest_uploads", "timestamp": "1700000000"}, "secret-xyz",
    )
    assert signature.encode() in seen["body"]
    assert b"key-123" in seen["body"]
    assert b"secret-xyz" not in seen["body"]


@pytest.mark.parametrize("status", [429, 500, 502, 503])
async def test_throttling_and_server_errors_are_retryable(status):
    gateway = _gateway(lambda request: httpx.Response(status, text="busy"))
    with pytest.raises(StorageUnavailableError) as exc:
        await gateway.upload(b"x", "f", "image/png")
    assert exc.value.retryable is True
    assert f"HTTP {status}" in exc.value.message


@pytest.mark.parametrize("status", [400, 401, 403])
async def test_client_errors_are_not_retryable(status):
    gateway = _gateway(lambda request: httpx.Response(
        status, json={"error": {"message": "Invalid Signature"}},
    ))
    with pytest.raises(StorageUnavailableError) as exc:
        await gateway.upload(b"x", "f", "image/png")
    assert exc.value.retryable is False
    assert "Invalid Signature" in exc.value.message


async def test_timeout_is_retryable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(StorageUnavailableError, match="timed out") as exc:
        await _gateway(handler).upload(b"x", "f", "image/png")
    assert exc.value.retryable is True


async def test_connection_error_is_retryable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StorageUnavailableError, match="connection") as exc:
        await _gateway(handler).upload(b"x", "f", "image/png")
    assert exc.value.retryable is True


@pytest.mark.parametrize("response", [
    httpx.Response(200, json={"public_id": "a"}),
    httpx.Response(200, json=["unexpected"]),
    httpx.Response(200, text="<html>ok</html>"),
])
async def test_success_without_url_is_failure(response):
    gateway = _gateway(lambda request: response)
    with pytest.raises(StorageUnavailableError) as exc:
        await gateway.upload(b"x", "f", "image/png")
    assert exc.value.retryable is False
