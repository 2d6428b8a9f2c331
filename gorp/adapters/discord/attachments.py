"""Image attachment ingestion — download, validate, and base64-encode."""

import asyncio
import base64
import sys
from typing import List, Optional, Sequence

import aiohttp

from gorp.config import __version__
from gorp.domain.models import AttachmentData
from gorp.ports.inbound import AttachmentRef

ALLOWED_IMAGE_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/bmp",
    "image/tiff",
    "image/svg+xml",
})

MAX_IMAGE_BYTES = 5 * 1024 * 1024
DOWNLOAD_TIMEOUT_SECONDS = 30
MAX_PARALLEL_DOWNLOADS = 3


def _log(msg: str):
    print(msg, file=sys.stderr)


def is_allowed_image(ref: AttachmentRef) -> bool:
    return (ref.content_type or "").lower() in ALLOWED_IMAGE_TYPES


class AttachmentProcessor:
    """Implements AttachmentPort. A failing attachment becomes an error marker."""

    def __init__(
        self,
        max_parallel: int = MAX_PARALLEL_DOWNLOADS,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        max_bytes: int = MAX_IMAGE_BYTES,
    ):
        self._semaphore = asyncio.Semaphore(max_parallel)
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._max_bytes = max_bytes
        self._headers = {"User-Agent": f"Gorp-Discord-Bot/{__version__}"}

    async def process(self, refs: Sequence[AttachmentRef]) -> List[AttachmentData]:
        images = [r for r in refs if is_allowed_image(r)]
        skipped = [r for r in refs if not is_allowed_image(r)]
        if skipped:
            _log(
                f"[attachments] filtered out {len(skipped)} non-image attachment(s): "
                + ", ".join(f"{r.name} ({r.content_type})" for r in skipped)
            )
        if not images:
            return []

        results = await asyncio.gather(*(self._guarded(r) for r in images))
        failed = sum(1 for r in results if r.error)
        _log(f"[attachments] processed {len(results)} image(s): {len(results) - failed} ok, {failed} failed")
        return list(results)

    async def _guarded(self, ref: AttachmentRef) -> AttachmentData:
        async with self._semaphore:
            return await self.download_and_encode(ref)

    async def download_and_encode(self, ref: AttachmentRef) -> AttachmentData:
        error = self._validate(ref)
        if error:
            return self._failed(ref, error)

        try:
            async with aiohttp.ClientSession(timeout=self._timeout) as session:
                async with session.get(ref.url, headers=self._headers) as resp:
                    if resp.status >= 400:
                        return self._failed(ref, f"Failed to download image: HTTP {resp.status}")
                    payload = await resp.read()
        except asyncio.TimeoutError:
            return self._failed(ref, f"Download timed out after {self._timeout.total:g}s")
        except Exception as e:
            return self._failed(ref, str(e) or type(e).__name__)

        if len(payload) > self._max_bytes:
            return self._failed(ref, f"Image too large: {len(payload) / (1024 * 1024):.1f}MB")

        return AttachmentData(
            name=ref.name,
            content_type=ref.content_type,
            url=ref.url,
            size=ref.size or len(payload),
            data=base64.b64encode(payload).decode("ascii"),
        )

    def _validate(self, ref: AttachmentRef) -> Optional[str]:
        if not (ref.content_type or "").lower().startswith("image/"):
            return f"Not an image: {ref.content_type}"
        if not is_allowed_image(ref):
            return f"Unsupported image type: {ref.content_type}"
        if ref.size > self._max_bytes:
            return (
                f"Image too large: {ref.size / (1024 * 1024):.1f}MB "
                f"(max: {self._max_bytes // (1024 * 1024)}MB)"
            )
        return None

    @staticmethod
    def _failed(ref: AttachmentRef, error: str) -> AttachmentData:
        _log(f"[attachments] {ref.name}: {error}")
        return AttachmentData(
            name=ref.name,
            content_type=ref.content_type or "unknown",
            url=ref.url,
            size=ref.size,
            error=error,
        )
