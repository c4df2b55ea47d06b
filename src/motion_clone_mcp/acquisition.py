"""Source acquisition: direct download, browser-assisted download, or local copy.

Each request variant maps to one strategy via ``select_strategy``. The only
branch is a direct download that comes back suspiciously small (an auth
error page rather than media): it is discarded and the URL is retried once
through a real browser. There is never a third attempt.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urljoin, urlparse

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import ServerConfig, get_config
from .errors import (
    AcquisitionError,
    AuthRejectedError,
    DownloadTooLargeError,
    NoVideoFound,
    PageTimeoutError,
    SourceNotFoundError,
)
from .models.acquisition import (
    DIRECT_MEDIA_EXTENSIONS,
    DirectUrlRequest,
    LocalPathRequest,
    PageUrlRequest,
    StrategyName,
    VideoAsset,
    media_type_for,
)
from .scratch import ScratchArea

logger = logging.getLogger(__name__)

_VIDEO_URL_SUFFIXES = {".mp4", ".m4v", ".webm", ".mov"}
_AUTH_STATUSES = {401, 403}
_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/126.0 Safari/537.36"
)

# Evaluated in the page: the first <video>'s resolved source, if any.
_DOM_VIDEO_SRC_JS = """() => {
  const video = document.querySelector('video');
  if (!video) return null;
  const source = video.querySelector('source[src]');
  return video.currentSrc || video.src || (source ? source.src : null) || null;
}"""

Request = DirectUrlRequest | PageUrlRequest | LocalPathRequest


def select_strategy(
    request: Request,
    fetched_size: int | None = None,
    *,
    threshold: int = 1024,
) -> StrategyName:
    """Pick the acquisition strategy for *request*.

    Args:
        request: The classified source.
        fetched_size: Bytes returned by a completed direct download, if any.
        threshold: Direct payloads below this size are treated as auth errors.
    """
    if isinstance(request, LocalPathRequest):
        return "local"
    if isinstance(request, PageUrlRequest):
        return "browser"
    if fetched_size is not None and fetched_size < threshold:
        return "browser"
    return "direct"


def _suffix_for(url: str) -> str:
    suffix = Path(urlparse(url).path).suffix.lower()
    return suffix if suffix in DIRECT_MEDIA_EXTENSIONS else ".mp4"


async def _download(
    url: str,
    dest: Path,
    *,
    max_bytes: int,
    headers: dict[str, str] | None = None,
    cookies: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """Stream *url* into *dest*, returning the byte count.

    Raises:
        AuthRejectedError: On 401/403.
        DownloadTooLargeError: When the body exceeds *max_bytes*.
        AcquisitionError: On any other HTTP or transport failure.
    """
    accumulated = 0
    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=60,
            headers={"User-Agent": _USER_AGENT, **(headers or {})},
            cookies=cookies,
            transport=transport,
        ) as client:
            async with client.stream("GET", url) as resp:
                if resp.status_code in _AUTH_STATUSES:
                    raise AuthRejectedError(
                        f"Host rejected download of {url} (HTTP {resp.status_code})"
                    )
                resp.raise_for_status()
                with dest.open("wb") as f:
                    async for chunk in resp.aiter_bytes():
                        accumulated += len(chunk)
                        if accumulated > max_bytes:
                            raise DownloadTooLargeError(
                                f"Response exceeds size limit ({max_bytes} bytes)"
                            )
                        f.write(chunk)
    except AcquisitionError:
        dest.unlink(missing_ok=True)
        raise
    except httpx.HTTPStatusError as exc:
        dest.unlink(missing_ok=True)
        raise AcquisitionError(
            f"Download of {url} failed with HTTP {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        dest.unlink(missing_ok=True)
        raise AcquisitionError(f"Network failure downloading {url}: {exc}") from exc

    logger.info("Downloaded %s (%d bytes) to %s", url, accumulated, dest)
    return accumulated


class AcquisitionStrategy(ABC):
    """Turns one kind of request into a ``VideoAsset`` inside the scratch area."""

    name: StrategyName

    def __init__(self, cfg: ServerConfig | None = None) -> None:
        self.cfg = cfg or get_config()

    @abstractmethod
    async def fetch(self, request: Request, scratch: ScratchArea) -> VideoAsset:
        ...


class DirectFetchStrategy(AcquisitionStrategy):
    """Unauthenticated GET of a media URL."""

    name: StrategyName = "direct"

    def __init__(
        self,
        cfg: ServerConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(cfg)
        self.transport = transport

    async def fetch(self, request: Request, scratch: ScratchArea) -> VideoAsset:
        if not isinstance(request, DirectUrlRequest):
            raise TypeError("DirectFetchStrategy only handles direct URLs")
        dest = scratch.video_path(_suffix_for(request.url))
        size = await _download(
            request.url,
            dest,
            max_bytes=self.cfg.max_download_bytes,
            transport=self.transport,
        )
        return VideoAsset(
            path=str(dest),
            size_bytes=size,
            mime_type=media_type_for(request.url),
            source=request.url,
            strategy=self.name,
        )


@dataclass
class PageProbe:
    """What a rendered page revealed about its video."""

    network_urls: list[str] = field(default_factory=list)
    dom_url: str | None = None
    final_url: str = ""
    cookies: dict[str, str] = field(default_factory=dict)


def _looks_like_video(url: str, content_type: str) -> bool:
    if not url.startswith(("http://", "https://")):
        return False
    if content_type.lower().startswith("video/"):
        return True
    return Path(urlparse(url).path).suffix.lower() in _VIDEO_URL_SUFFIXES


def pick_video_url(probe: PageProbe) -> str:
    """Prefer the first network-observed media URL, then the DOM ``<video>`` source.

    Raises:
        NoVideoFound: When neither yields a downloadable http(s) URL.
    """
    if probe.network_urls:
        return probe.network_urls[0]
    if probe.dom_url:
        resolved = urljoin(probe.final_url, probe.dom_url)
        if resolved.startswith(("http://", "https://")):
            return resolved
    raise NoVideoFound(f"No video found on {probe.final_url or 'page'}")


async def probe_page(url: str, *, timeout: int) -> PageProbe:
    """Load *url* in headless Chromium and record every video-like response.

    Raises:
        PageTimeoutError: When navigation exceeds *timeout* seconds.
        AcquisitionError: On any other browser failure (launch, DNS,
            refused connection, script evaluation).
    """
    probe = PageProbe(final_url=url)

    def _on_response(response) -> None:
        content_type = response.headers.get("content-type", "")
        if _looks_like_video(response.url, content_type) and response.url not in probe.network_urls:
            probe.network_urls.append(response.url)

    try:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True)
            try:
                page = await browser.new_page(user_agent=_USER_AGENT)
                page.set_default_navigation_timeout(timeout * 1000)
                page.on("response", _on_response)
                logger.info("Loading %s", url)
                await page.goto(url, wait_until="networkidle")
                probe.dom_url = await page.evaluate(_DOM_VIDEO_SRC_JS)
                probe.final_url = page.url
                probe.cookies = {
                    c["name"]: c["value"] for c in await page.context.cookies()
                }
            finally:
                await browser.close()
    except PlaywrightTimeoutError as exc:
        raise PageTimeoutError(f"Timed out after {timeout}s loading {url}") from exc
    except PlaywrightError as exc:
        raise AcquisitionError(f"Browser failed loading {url}: {exc}") from exc

    logger.info(
        "Page probe %s: %d network video URL(s), dom=%s",
        url, len(probe.network_urls), probe.dom_url,
    )
    return probe


class BrowserStrategy(AcquisitionStrategy):
    """Render the page, find the clip's URL, download it with the page's cookies."""

    name: StrategyName = "browser"

    def __init__(
        self,
        cfg: ServerConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(cfg)
        self.transport = transport

    async def fetch(self, request: Request, scratch: ScratchArea) -> VideoAsset:
        if isinstance(request, LocalPathRequest):
            raise TypeError("BrowserStrategy needs a URL")
        probe = await probe_page(request.url, timeout=self.cfg.navigation_timeout)
        media_url = pick_video_url(probe)
        dest = scratch.video_path(_suffix_for(media_url))
        size = await _download(
            media_url,
            dest,
            max_bytes=self.cfg.max_download_bytes,
            headers={"Referer": probe.final_url},
            cookies=probe.cookies,
            transport=self.transport,
        )
        return VideoAsset(
            path=str(dest),
            size_bytes=size,
            mime_type=media_type_for(media_url),
            source=request.url,
            strategy=self.name,
        )


class LocalFileStrategy(AcquisitionStrategy):
    """Copy an existing clip into the scratch area."""

    name: StrategyName = "local"

    async def fetch(self, request: Request, scratch: ScratchArea) -> VideoAsset:
        if not isinstance(request, LocalPathRequest):
            raise TypeError("LocalFileStrategy only handles local paths")
        src = Path(request.path).expanduser().resolve()
        if not src.exists():
            raise SourceNotFoundError(f"Video file not found: {request.path}")
        if not src.is_file():
            raise AcquisitionError(f"Not a file: {request.path}")
        dest = scratch.video_path(_suffix_for(src.name))
        await asyncio.to_thread(shutil.copyfile, src, dest)
        return VideoAsset(
            path=str(dest),
            size_bytes=dest.stat().st_size,
            mime_type=media_type_for(src.name),
            source=str(src),
            strategy=self.name,
        )


def build_strategies(
    cfg: ServerConfig | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[StrategyName, AcquisitionStrategy]:
    return {
        "direct": DirectFetchStrategy(cfg, transport),
        "browser": BrowserStrategy(cfg, transport),
        "local": LocalFileStrategy(cfg),
    }


async def acquire(
    request: Request,
    scratch: ScratchArea,
    *,
    strategies: dict[StrategyName, AcquisitionStrategy] | None = None,
    cfg: ServerConfig | None = None,
) -> VideoAsset:
    """Acquire *request* into *scratch*, with at most one browser fallback.

    Raises:
        AcquisitionError: When the chosen strategy (or its single fallback) fails,
            including ``SourceNotFoundError`` for a missing local path.
    """
    cfg = cfg or get_config()
    strategies = strategies or build_strategies(cfg)
    threshold = cfg.auth_payload_threshold_bytes

    first = select_strategy(request, threshold=threshold)
    try:
        asset = await strategies[first].fetch(request, scratch)
    except AuthRejectedError:
        if first != "direct":
            raise
        logger.warning("Direct download of %s rejected, falling back to browser", request.url)
        asset = None
        fetched_size = 0
    else:
        fetched_size = asset.size_bytes

    if first != "direct":
        return asset

    second = select_strategy(request, fetched_size, threshold=threshold)
    if second == "direct":
        return asset

    if asset is not None:
        logger.warning(
            "Direct download of %s returned %d bytes (< %d), likely an auth error page; "
            "falling back to browser",
            request.url, fetched_size, threshold,
        )
        Path(asset.path).unlink(missing_ok=True)
    return await strategies[second].fetch(request, scratch)
