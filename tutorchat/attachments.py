"""
Attachment pipeline: validate size, base64-encode, and build a preview handle.
Each file is prepared independently; a batch keeps the good files and reports the rest.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from dataclasses import dataclass
from typing import Iterable

from tutorchat.errors import AttachmentTooLarge
from tutorchat.schemas import AttachmentKind, AttachmentNotice, AttachmentRef, NoticeReason

logger = logging.getLogger(__name__)

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class FileSource:
    name: str
    byteSize: int
    mimeType: str
    rawBytes: bytes

    @classmethod
    def from_bytes(cls, name: str, data: bytes, mime_type: str | None = None) -> "FileSource":
        return cls(name=name, byteSize=len(data), mimeType=mime_type or "", rawBytes=data)


def _resolve_mime(source: FileSource) -> str:
    mime = (source.mimeType or "").strip().lower()
    if mime:
        return mime
    guessed, _ = mimetypes.guess_type(source.name)
    return guessed or "application/octet-stream"


def prepare(source: FileSource, *, limit: int = MAX_ATTACHMENT_BYTES) -> AttachmentRef:
    """Raises AttachmentTooLarge when the file is over `limit` bytes."""
    size = max(source.byteSize, len(source.rawBytes))
    if size > limit:
        raise AttachmentTooLarge(source.name, size, limit)

    mime = _resolve_mime(source)
    payload = base64.b64encode(source.rawBytes).decode("ascii")
    kind = AttachmentKind.image if mime.startswith("image/") else AttachmentKind.file
    return AttachmentRef(
        kind=kind,
        name=source.name,
        mimeType=mime,
        previewHandle=f"data:{mime};base64,{payload}",
        encodedPayload=payload,
    )


@dataclass
class BatchResult:
    accepted: list[AttachmentRef]
    notices: list[AttachmentNotice]


async def prepare_batch(
    sources: Iterable[FileSource], *, limit: int = MAX_ATTACHMENT_BYTES
) -> BatchResult:
    """
    Prepare every file concurrently and wait for all of them to settle.
    Output order follows input order.
    """
    sources = list(sources)
    results = await asyncio.gather(
        *(asyncio.to_thread(prepare, s, limit=limit) for s in sources),
        return_exceptions=True,
    )

    accepted: list[AttachmentRef] = []
    notices: list[AttachmentNotice] = []
    for source, result in zip(sources, results):
        if isinstance(result, AttachmentTooLarge):
            logger.info("Attachment rejected (too large): %s", source.name)
            notices.append(
                AttachmentNotice(name=source.name, reason=NoticeReason.too_large, detail=str(result))
            )
        elif isinstance(result, Exception):
            logger.warning("Attachment rejected (unreadable): %s: %s", source.name, result)
            notices.append(
                AttachmentNotice(name=source.name, reason=NoticeReason.unreadable, detail=str(result))
            )
        elif isinstance(result, BaseException):
            raise result
        else:
            accepted.append(result)
    return BatchResult(accepted=accepted, notices=notices)
