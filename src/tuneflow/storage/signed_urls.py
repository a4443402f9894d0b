"""Resolve private storage keys to pre-signed download URLs."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import httpx

from tuneflow.core.config import settings
from tuneflow.core.http import auth_headers

logger = logging.getLogger(__name__)

S3_SCHEME = "s3://"


def is_storage_key(value: Optional[str]) -> bool:
    """True for storage keys (``s3://...`` or bare ``type/uuid.ext`` paths)."""
    if not value:
        return False
    if value.startswith(S3_SCHEME):
        return True
    return not value.startswith(("http://", "https://", "/uploads/"))


@dataclass
class CachedUrl:
    url: str
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at


class SignedUrlResolver:
    """Fetch and cache pre-signed URLs from the backend.

    URLs are cached in memory for ``cache_seconds`` (shorter than their
    one-hour validity). When the backend cannot sign a key, the key itself
    is returned so callers can degrade gracefully.
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        cache_seconds: Optional[int] = None,
    ):
        self.access_token = access_token
        self.client = client
        self.cache_seconds = (
            cache_seconds if cache_seconds is not None else settings.SIGNED_URL_CACHE_SECONDS
        )
        self._cache: Dict[str, CachedUrl] = {}

    async def _fetch(self, clean_key: str) -> str:
        headers = auth_headers(self.access_token)
        url = f"{settings.api_base_url}/s3/signed-url"
        params = {"key": clean_key}

        if self.client is not None:
            response = await self.client.get(url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=settings.REQUEST_TIMEOUT) as client:
                response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()["url"]

    async def get_signed_url(self, key: str) -> str:
        """Return a signed URL for ``key``; non-keys come back unchanged."""
        if not is_storage_key(key):
            return key

        cached = self._cache.get(key)
        if cached and not cached.is_expired():
            return cached.url

        clean_key = key[len(S3_SCHEME):] if key.startswith(S3_SCHEME) else key
        try:
            signed_url = await self._fetch(clean_key)
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Failed to get signed URL",
                extra={"storage_key": key, "error": str(e)},
            )
            return key

        self._cache[key] = CachedUrl(url=signed_url, expires_at=time.time() + self.cache_seconds)
        return signed_url

    async def get_signed_urls(self, keys: Iterable[str]) -> Dict[str, str]:
        """Resolve several keys concurrently."""
        unique_keys = list(dict.fromkeys(keys))
        urls = await asyncio.gather(*(self.get_signed_url(key) for key in unique_keys))
        return dict(zip(unique_keys, urls))

    async def get_display_url(self, value: Optional[str]) -> str:
        """URL suitable for display: signed for storage keys, as-is otherwise."""
        if not value:
            return ""
        return await self.get_signed_url(value)

    def clear_cache(self) -> None:
        """Forget every cached URL, e.g. on logout."""
        self._cache.clear()
