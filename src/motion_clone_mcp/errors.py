"""Error taxonomy for the clone pipeline and the structured tool error model."""

from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    ACQUISITION_FAILED = "ACQUISITION_FAILED"
    AUTH_REJECTED = "AUTH_REJECTED"
    NO_VIDEO_FOUND = "NO_VIDEO_FOUND"
    PAGE_TIMEOUT = "PAGE_TIMEOUT"
    NETWORK_ERROR = "NETWORK_ERROR"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    MEDIA_UNSUPPORTED = "MEDIA_UNSUPPORTED"
    ANALYSIS_OVERLOADED = "ANALYSIS_OVERLOADED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    DEPENDENCY_MISSING = "DEPENDENCY_MISSING"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNKNOWN = "UNKNOWN"


class AcquisitionError(Exception):
    """The clip could not be turned into local bytes."""

    category = ErrorCategory.ACQUISITION_FAILED


class AuthRejectedError(AcquisitionError):
    """The host refused the request and no fallback strategy remains."""

    category = ErrorCategory.AUTH_REJECTED


class NoVideoFound(AcquisitionError):
    """The page loaded but exposed no video URL, on the network or in the DOM."""

    category = ErrorCategory.NO_VIDEO_FOUND


class PageTimeoutError(AcquisitionError):
    """Page navigation exceeded the configured timeout."""

    category = ErrorCategory.PAGE_TIMEOUT


class DownloadTooLargeError(AcquisitionError):
    """Response body exceeded ``max_download_bytes``."""

    category = ErrorCategory.FILE_TOO_LARGE


class SourceNotFoundError(AcquisitionError):
    """A local source path does not exist."""

    category = ErrorCategory.FILE_NOT_FOUND


class CorruptOrUnsupportedMedia(Exception):
    """ffmpeg could not decode the clip into a complete frame sequence."""


class DependencyMissingError(RuntimeError):
    """A required external binary (ffmpeg, ffprobe) is not on PATH."""


class SubprocessError(Exception):
    """Raised when ffmpeg or ffprobe exits with a non-zero code."""

    def __init__(self, command: list[str], returncode: int, stderr: str = "") -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"Command {command[0]!r} exited with code {returncode}: {stderr.strip()[-300:]}"
        )


class AnalysisError(Exception):
    """Motion analysis failed; the session may continue with frames only."""

    def __init__(self, message: str, *, attempts: int, overloaded: bool) -> None:
        self.attempts = attempts
        self.overloaded = overloaded
        super().__init__(message)


class InvalidTransition(Exception):
    """An iteration event does not apply to the current phase."""


class SessionNotFoundError(KeyError):
    """No live clone session has the given ID."""

    def __str__(self) -> str:
        return f"Session {self.args[0]} not found or expired"


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False


_RESTART_HINT = "Check the source and start a new session with clone_start"


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, NoVideoFound):
        return (
            error.category,
            "No video element or media response on that page — pass a direct media URL or a local file",
        )
    if isinstance(error, AuthRejectedError):
        return (
            error.category,
            "Host rejected both direct and browser download — download the clip manually and pass its path",
        )
    if isinstance(error, SourceNotFoundError):
        return (error.category, "File not found. Check the path and start a new session with clone_start")
    if isinstance(error, AcquisitionError):
        return (error.category, _RESTART_HINT)
    if isinstance(error, CorruptOrUnsupportedMedia):
        return (
            ErrorCategory.MEDIA_UNSUPPORTED,
            "ffmpeg could not decode the clip — re-export it as mp4 and start a new session",
        )
    if isinstance(error, DependencyMissingError):
        return (
            ErrorCategory.DEPENDENCY_MISSING,
            "Install ffmpeg (includes ffprobe): brew install ffmpeg or apt-get install ffmpeg",
        )
    if isinstance(error, AnalysisError):
        if error.overloaded:
            return (
                ErrorCategory.ANALYSIS_OVERLOADED,
                "Gemini stayed overloaded — retry later or continue using the sampled frames as ground truth",
            )
        return (
            ErrorCategory.ANALYSIS_FAILED,
            "Analysis failed — continue using the sampled frames as ground truth",
        )
    if isinstance(error, InvalidTransition):
        return (
            ErrorCategory.INVALID_TRANSITION,
            "Check clone_status for the current phase before sending this event",
        )
    if isinstance(error, SessionNotFoundError):
        return (
            ErrorCategory.SESSION_NOT_FOUND,
            "Session expired or was closed — start a new one with clone_start",
        )
    if isinstance(error, FileNotFoundError):
        return (ErrorCategory.FILE_NOT_FOUND, "File not found — check the path")
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Request timed out — try again or check connectivity",
        )
    if isinstance(error, httpx.HTTPError):
        return (
            ErrorCategory.NETWORK_ERROR,
            "Network request failed — check the URL and connectivity",
        )
    if isinstance(error, ValueError):
        return (ErrorCategory.INVALID_ARGUMENT, "Bad request — check input format")

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.NETWORK_ERROR,
        ErrorCategory.PAGE_TIMEOUT,
        ErrorCategory.ANALYSIS_OVERLOADED,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
    ).model_dump(mode="json")
