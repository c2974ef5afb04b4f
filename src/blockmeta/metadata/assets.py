"""Resolve image-valued properties into durable asset references.

Covers come either as remote URLs or as inline ``data:`` URIs. Both are
uploaded to the host's asset store. Resolution is best effort: on any
failure the original value is kept and the extraction carries on.
"""

from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass, replace
from typing import Iterable

import httpx
from loguru import logger

from blockmeta.app.protocols import AssetStoreProtocol
from blockmeta.core.config import AssetConfig
from blockmeta.core.exceptions import AssetResolutionError
from blockmeta.core.types import Property, Rule

IMAGE_SUBTYPE = "image"

DATA_URI_PATTERN = re.compile(r"^data:([^;,]+);base64,(.+)$", re.DOTALL)


@dataclass(frozen=True)
class AssetResolution:
    """Outcome of resolving one image value.

    Attributes:
        original: Value before resolution.
        value: Asset reference when resolved, otherwise the original value.
        resolved: Whether an upload succeeded.
        error: Why resolution fell back to the original, if it did.
    """

    original: str
    value: str
    resolved: bool
    error: str | None = None

    @classmethod
    def fallback(cls, original: str, error: str) -> "AssetResolution":
        return cls(original=original, value=original, resolved=False, error=error)


def is_image_candidate(prop: Property) -> bool:
    """True for ``subType: image`` properties holding an http(s) or data URI."""
    if prop.sub_type != IMAGE_SUBTYPE or not isinstance(prop.value, str):
        return False
    return prop.value.startswith("http") or prop.value.startswith("data:")


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    """Split a base64 data URI into its mime type and raw bytes.

    Raises:
        AssetResolutionError: If the URI is not ``data:<mime>;base64,<data>``
            or the payload does not decode.
    """
    match = DATA_URI_PATTERN.match(uri.strip())
    if match is None:
        raise AssetResolutionError("data URI does not match data:<mime>;base64,<data>")

    mime_type, payload = match.groups()
    try:
        data = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise AssetResolutionError(f"invalid base64 payload: {e}") from e
    if not data:
        raise AssetResolutionError("data URI payload is empty")
    return mime_type, data


class AssetResolver:
    """Uploads cover images through the host asset store."""

    def __init__(
        self,
        assets: AssetStoreProtocol,
        config: AssetConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            assets: Host asset store.
            config: Download settings.
            client: Optional shared client for the direct-download fallback.
        """
        self._assets = assets
        self._config = config or AssetConfig()
        self._client = client

    async def resolve(self, value: str, referer: str | None = None) -> AssetResolution:
        """Resolve one image value. Never raises."""
        try:
            if value.startswith("data:"):
                asset = await self._resolve_inline(value)
            else:
                asset = await self._resolve_remote(value, referer)
        except AssetResolutionError as e:
            logger.warning(f"Keeping original image {value[:80]}: {e}")
            return AssetResolution.fallback(value, str(e))
        except Exception as e:
            logger.warning(f"Keeping original image {value[:80]}: {type(e).__name__}: {e}")
            return AssetResolution.fallback(value, f"{type(e).__name__}: {e}")

        logger.debug(f"Resolved image {value[:80]} -> {asset}")
        return AssetResolution(original=value, value=asset, resolved=True)

    async def _resolve_inline(self, value: str) -> str:
        mime_type, data = decode_data_uri(value)
        asset = await self._assets.upload_asset_from_bytes(mime_type, data)
        if not asset:
            raise AssetResolutionError("asset store returned no reference")
        return asset

    async def _resolve_remote(self, url: str, referer: str | None) -> str:
        try:
            asset = await self._assets.upload_asset_from_url(url)
            if asset:
                return asset
            logger.debug(f"Upload by reference returned nothing for {url}")
        except Exception as e:
            logger.debug(f"Upload by reference failed for {url}: {e}, downloading")

        mime_type, data = await self._download(url, referer)
        asset = await self._assets.upload_asset_from_bytes(mime_type, data)
        if not asset:
            raise AssetResolutionError("asset store returned no reference")
        return asset

    async def _download(self, url: str, referer: str | None) -> tuple[str, bytes]:
        headers = {"User-Agent": self._config.download_user_agent}
        if referer:
            headers["Referer"] = referer

        try:
            if self._client is not None:
                response = await self._client.get(url, headers=headers)
            else:
                async with httpx.AsyncClient(
                    timeout=self._config.timeout_seconds, follow_redirects=True
                ) as client:
                    response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise AssetResolutionError(f"download failed: {e}") from e

        if not response.is_success:
            raise AssetResolutionError(f"download failed: HTTP {response.status_code}")

        content_type = response.headers.get("Content-Type", "")
        mime_type = content_type.split(";")[0].strip() or self._config.default_mime_type
        return mime_type, response.content

    async def resolve_properties(
        self,
        properties: Iterable[Property],
        rule: Rule,
        referer: str | None = None,
    ) -> tuple[list[Property], list[AssetResolution]]:
        """Resolve every image property when the rule asks for cover download.

        Returns:
            The properties with resolved values, and one resolution per
            image property attempted.
        """
        properties = list(properties)
        if not rule.download_cover:
            return properties, []

        resolved: list[Property] = []
        resolutions: list[AssetResolution] = []
        for prop in properties:
            if not is_image_candidate(prop):
                resolved.append(prop)
                continue
            resolution = await self.resolve(prop.value, referer=referer)
            resolutions.append(resolution)
            resolved.append(replace(prop, value=resolution.value))
        return resolved, resolutions
