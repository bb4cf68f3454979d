"""Cloudinary Gateway: ObjectStorageGateway over Cloudinary's signed upload API.

Invariants:
    - Every failure surfaces as StorageUnavailableError (core/errors.py)
    - 429 / 5xx / timeouts / connection errors are retryable; other 4xx are not
    - A 2xx without a secure_url is a failure, never a success with an empty reference
    - No retries here: MediaIngestor decides whether to try again

Design Decisions:
    - httpx.AsyncClient over the cloudinary SDK: the SDK is sync-only and the
      upload is a single signed multipart POST
    - Request signature computed here (sha1 scheme, see sign_params); the SDK
      would only contribute that one hash
    - Injectable transport: tests plug in httpx.MockTransport, no network
    - Singleton storage_gateway initialized on startup, mirroring db_manager
"""

import hashlib
import logging
import time
from typing import Callable

import httpx

from pixnest.core.errors import StorageUnavailableError
from pixnest.core.repository_protocols import ObjectStorageGateway, UploadResult

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


def sign_params(params: dict[str, str], api_secret: str) -> str:
    """Cloudinary request signature: sha1 of sorted k=v pairs + secret."""
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return hashlib.sha1((to_sign + api_secret).encode("utf-8")).hexdigest()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or response.text
    return response.text


class CloudinaryGateway:
    """Uploads image bytes to Cloudinary and returns the secure URL."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.upload_url = UPLOAD_URL.format(cloud_name=cloud_name)
        self.api_key = api_key
        self._api_secret = api_secret
        self._clock = clock
        self.client = httpx.AsyncClient(
            timeout=timeout_seconds, transport=transport,
        )

    async def upload(
        self, data: bytes, folder: str, content_type: str,
    ) -> UploadResult:
        params = {"folder": folder, "timestamp": str(int(self._clock()))}
        form = {
            **params,
            "api_key": self.api_key,
            "signature": sign_params(params, self._api_secret),
        }
        files = {"file": ("upload", data, content_type)}

        try:
            response = await self.client.post(
                self.upload_url, data=form, files=files,
            )
        except httpx.TimeoutException:
            raise StorageUnavailableError("upload timed out", retryable=True)
        except httpx.TransportError as e:
            raise StorageUnavailableError(
                f"connection error: {e}", retryable=True,
            )

        if response.status_code == 429 or response.status_code >= 500:
            raise StorageUnavailableError(
                f"HTTP {response.status_code}: {_error_message(response)}",
                retryable=True,
            )
        if response.status_code >= 400:
            raise StorageUnavailableError(
                f"HTTP {response.status_code}: {_error_message(response)}",
                retryable=False,
            )

        try:
            body = response.json()
        except ValueError:
            raise StorageUnavailableError(
                "upload response was not JSON", retryable=False,
            )
        if not isinstance(body, dict):
            body = {}
        url = body.get("secure_url") or body.get("url")
        if not url:
            raise StorageUnavailableError(
                "upload response carried no URL", retryable=False,
            )
        logger.info(
            f"Stored {len(data)} bytes in Cloudinary",
            extra={"folder": folder, "storage_ref": url},
        )
        return UploadResult(url=url, public_id=body.get("public_id"))

    async def aclose(self) -> None:
        await self.client.aclose()


# Singleton (initialized on startup)
storage_gateway: CloudinaryGateway | None = None


def init_storage(
    cloud_name: str, api_key: str, api_secret: str, **kwargs,
) -> None:
    global storage_gateway
    storage_gateway = CloudinaryGateway(
        cloud_name, api_key, api_secret, **kwargs,
    )


def get_storage_gateway() -> ObjectStorageGateway:
    """FastAPI dependency for the object storage gateway."""
    if not storage_gateway:
        raise RuntimeError("Object storage not initialized")
    return storage_gateway
