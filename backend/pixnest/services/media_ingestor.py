"""Media Ingestor: validates an uploaded byte stream and forwards it to object storage.

Invariants:
    - Size and format are validated BEFORE any byte reaches the gateway
    - At most max_bytes + 1 bytes are ever buffered for a single upload
    - Format comes from the content (Pillow), never from filename or declared type
    - A StorageRef is returned only after the gateway confirmed the upload;
      otherwise StorageUnavailableError propagates and nothing downstream may
      reference the content
    - Each gateway attempt is bounded by upload_timeout_seconds

Design Decisions:
    - Retry policy lives here, not in the gateway: exponential backoff with
      ±25% jitter, only for failures the gateway flags as retryable
    - Mismatched mime hints are logged and ignored (content wins)
"""

import asyncio
import logging
import random
from dataclasses import replace

from pixnest.core.detect_image_format import detect_image_format, hint_matches
from pixnest.core.domain_types import ImageFormat, StorageRef
from pixnest.core.errors import (
    ErrorContext, PayloadTooLargeError, StorageUnavailableError,
    UnsupportedMediaError,
)
from pixnest.core.repository_protocols import ByteSource, ObjectStorageGateway

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class MediaIngestor:
    """Buffer (bounded) -> validate -> upload. The single upload path."""

    def __init__(
        self,
        gateway: ObjectStorageGateway,
        max_bytes: int,
        allowed_formats: list[str] | tuple[str, ...] = ("JPEG", "PNG"),
        upload_timeout_seconds: float = 30.0,
        max_retries: int = 2,
        base_delay_ms: int = 500,
    ):
        self.gateway = gateway
        self.max_bytes = max_bytes
        self.allowed_formats = frozenset(
            ImageFormat(f.upper()) for f in allowed_formats
        )
        self.upload_timeout_seconds = upload_timeout_seconds
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms

    async def ingest(
        self,
        source: ByteSource,
        declared_size: int | None,
        mime_hint: str | None,
        folder: str,
        context: ErrorContext | None = None,
    ) -> StorageRef:
        """Validate and store an upload. Returns the storage reference."""
        ctx = (
            replace(context, folder=folder) if context else ErrorContext(folder=folder)
        )
        if declared_size is not None and declared_size > self.max_bytes:
            raise PayloadTooLargeError(self.max_bytes, ctx)

        data = await self._read_bounded(source, ctx)
        fmt = self._validate_format(data, mime_hint, ctx)
        return await self._upload_with_retry(data, fmt, folder, ctx)

    # ─── Validation ──────────────────────────────────────────────

    async def _read_bounded(self, source: ByteSource, ctx: ErrorContext) -> bytes:
        buffer = bytearray()
        while True:
            chunk = await source.read(CHUNK_SIZE)
            if not chunk:
                break
            buffer.extend(chunk)
            if len(buffer) > self.max_bytes:
                raise PayloadTooLargeError(self.max_bytes, ctx)
        if not buffer:
            raise UnsupportedMediaError("No file was uploaded", ctx)
        return bytes(buffer)

    def _validate_format(
        self, data: bytes, mime_hint: str | None, ctx: ErrorContext,
    ) -> ImageFormat:
        fmt = detect_image_format(data)
        if fmt is None or fmt not in self.allowed_formats:
            allowed = ", ".join(sorted(f.value for f in self.allowed_formats))
            raise UnsupportedMediaError(
                f"Unsupported image format (allowed: {allowed})", ctx,
            )
        if not hint_matches(mime_hint, fmt):
            logger.warning(
                f"Declared type {mime_hint!r} disagrees with content ({fmt.value}); "
                "using content",
                extra={"user_id": ctx.user_id, "folder": ctx.folder},
            )
        return fmt

    # ─── Upload ──────────────────────────────────────────────────

    async def _upload_with_retry(
        self, data: bytes, fmt: ImageFormat, folder: str, ctx: ErrorContext,
    ) -> StorageRef:
        for attempt in range(self.max_retries + 1):
            try:
                result = await asyncio.wait_for(
                    self.gateway.upload(data, folder, fmt.content_type),
                    timeout=self.upload_timeout_seconds,
                )
                return StorageRef(result.url)
            except asyncio.TimeoutError:
                error = StorageUnavailableError(
                    f"upload exceeded {self.upload_timeout_seconds}s",
                    retryable=True, context=replace(ctx),
                )
            except StorageUnavailableError as e:
                error = e
                error.context.user_id = ctx.user_id
                error.context.folder = folder

            log_extra = {
                "user_id": ctx.user_id, "folder": folder,
                "size_bytes": len(data), "attempt": attempt + 1,
                "error_code": error.code,
            }
            if not error.retryable or attempt == self.max_retries:
                logger.error(
                    f"Storage upload failed permanently: {error.message}",
                    extra=log_extra,
                )
                raise error
            logger.warning(
                f"Storage upload failed, retrying: {error.message}",
                extra=log_extra,
            )
            await asyncio.sleep(self._backoff_seconds(attempt))

        raise StorageUnavailableError("upload retries exhausted", context=ctx)

    def _backoff_seconds(self, attempt: int) -> float:
        delay_ms = self.base_delay_ms * (2 ** attempt)
        return delay_ms * random.uniform(0.75, 1.25) / 1000
