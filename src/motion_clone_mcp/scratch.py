"""Per-session scratch directory holding every transient artifact."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

VIDEO_STEM = "source"
FRAMES_DIRNAME = "frames"
ANALYSIS_FILENAME = "analysis.md"
PREVIEW_DIRNAME = "preview"
COMPONENT_RELPATH = Path(PREVIEW_DIRNAME) / "src" / "Animation.jsx"


class ScratchArea:
    """Owns ``<scratch_dir>/<session_id>`` and everything written below it."""

    def __init__(self, root: Path) -> None:
        self.root = root

    @classmethod
    def create(cls, base_dir: str | Path, session_id: str) -> ScratchArea:
        root = Path(base_dir).expanduser() / session_id
        root.mkdir(parents=True, exist_ok=False)
        return cls(root)

    def video_path(self, suffix: str) -> Path:
        return self.root / f"{VIDEO_STEM}{suffix}"

    @property
    def frames_dir(self) -> Path:
        return self.root / FRAMES_DIRNAME

    @property
    def analysis_path(self) -> Path:
        return self.root / ANALYSIS_FILENAME

    @property
    def preview_dir(self) -> Path:
        return self.root / PREVIEW_DIRNAME

    @property
    def component_path(self) -> Path:
        return self.root / COMPONENT_RELPATH

    def listing(self) -> list[str]:
        """Relative paths of every file currently in the scratch area."""
        if not self.root.exists():
            return []
        return sorted(
            str(p.relative_to(self.root)) for p in self.root.rglob("*") if p.is_file()
        )

    def cleanup(self) -> int:
        """Delete the whole scratch area. Returns the number of files removed."""
        if not self.root.exists():
            return 0
        removed = len(self.listing())
        shutil.rmtree(self.root)
        logger.info("Removed scratch area %s (%d file(s))", self.root, removed)
        return removed
