"""Acquisition request variants and the acquired video asset."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

DIRECT_MEDIA_EXTENSIONS: dict[str, str] = {
    ".mp4": "video/mp4",
    ".m4v": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".gif": "image/gif",
}

StrategyName = Literal["direct", "browser", "local"]


class DirectUrlRequest(BaseModel):
    """URL that should point straight at a media file."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["direct_url"] = "direct_url"
    url: str = Field(min_length=1)


class PageUrlRequest(BaseModel):
    """URL of an HTML page that embeds the clip."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["page_url"] = "page_url"
    url: str = Field(min_length=1)


class LocalPathRequest(BaseModel):
    """Path to a clip already on disk."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["local_path"] = "local_path"
    path: str = Field(min_length=1)


AcquisitionRequest = Annotated[
    Union[DirectUrlRequest, PageUrlRequest, LocalPathRequest],
    Field(discriminator="kind"),
]


def media_type_for(name: str) -> str:
    """MIME type guessed from a file name or URL path; mp4 when unknown."""
    suffix = Path(urlparse(name).path or name).suffix.lower()
    return DIRECT_MEDIA_EXTENSIONS.get(suffix, "video/mp4")


def classify_source(source: str) -> DirectUrlRequest | PageUrlRequest | LocalPathRequest:
    """Turn a raw user-supplied reference into exactly one request variant.

    http(s) URLs whose path ends in a known media extension are direct
    downloads, any other http(s) URL is a page. Everything else is a path.
    """
    value = source.strip()
    if not value:
        raise ValueError("Source is empty — pass a URL or a local file path")

    parsed = urlparse(value)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        if Path(parsed.path).suffix.lower() in DIRECT_MEDIA_EXTENSIONS:
            return DirectUrlRequest(url=value)
        return PageUrlRequest(url=value)
    if parsed.scheme and parsed.scheme not in ("file",) and len(parsed.scheme) > 1:
        raise ValueError(f"Unsupported URL scheme '{parsed.scheme}://' — use http(s) or a local path")
    if parsed.scheme == "file":
        value = parsed.path
    return LocalPathRequest(path=value)


class VideoAsset(BaseModel):
    """Clip bytes written into the session's scratch area."""

    path: str
    size_bytes: int
    mime_type: str
    source: str
    strategy: StrategyName

    def read_bytes(self) -> bytes:
        return Path(self.path).read_bytes()
