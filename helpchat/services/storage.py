"""Attachment storage client.

The storage collaborator owns the bytes; this core keeps only the URL it
returns plus the handle needed to revoke the upload later. Transport and
HTTP errors are logged and re-raised as AttachmentStorageError so the API
layer answers with a structured dependency failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from helpchat.core.exceptions import AttachmentStorageError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AttachmentUpload:
    """A file received from the client, not yet stored."""

    filename: str
    content: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class StoredAttachment:
    """An uploaded file: public URL plus the revocation handle."""

    url: str
    handle: str


class AttachmentStorage(Protocol):
    async def upload(
        self, filename: str, content: bytes, content_type: str | None = None
    ) -> StoredAttachment: ...

    async def revoke(self, handle: str) -> None: ...


class HttpAttachmentStorage:
    """AttachmentStorage backed by the storage service's HTTP API.

    POST {base_url}/attachments   multipart "file" → {"url": ..., "handle": ...}
    DELETE {base_url}/attachments/{handle}   404 counts as already revoked
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout
        )

    async def upload(
        self, filename: str, content: bytes, content_type: str | None = None
    ) -> StoredAttachment:
        files = {
            "file": (filename, content, content_type or "application/octet-stream")
        }
        try:
            response = await self._client.post("/attachments", files=files)
            response.raise_for_status()
            body = response.json()
            stored = StoredAttachment(url=body["url"], handle=body["handle"])
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.error("attachment_upload_failed", filename=filename, error=str(e))
            raise AttachmentStorageError("Attachment upload failed") from e

        logger.debug("attachment_uploaded", handle=stored.handle)
        return stored

    async def revoke(self, handle: str) -> None:
        try:
            response = await self._client.delete(f"/attachments/{handle}")
            if response.status_code == 404:
                logger.info("attachment_already_revoked", handle=handle)
                return
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("attachment_revoke_failed", handle=handle, error=str(e))
            raise AttachmentStorageError("Attachment revocation failed") from e

        logger.debug("attachment_revoked", handle=handle)

    async def aclose(self) -> None:
        await self._client.aclose()
