"""In-memory registry of clone sessions and the side effects of their transitions."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .config import get_config
from .errors import InvalidTransition, SessionNotFoundError
from .iteration import initial_state, transition
from .models.acquisition import VideoAsset
from .models.frames import AnalysisSpec, FrameSet
from .models.iteration import Cancel, IterationEvent, IterationState, Phase, Revised
from .models.session import SessionStatus
from .scaffold import write_component, write_scaffold
from .scratch import ScratchArea

logger = logging.getLogger(__name__)


@dataclass
class CloneSession:
    """Everything one video-to-component run owns."""

    session_id: str
    source: str
    scratch: ScratchArea
    asset: VideoAsset | None = None
    frames: FrameSet | None = None
    analysis: AnalysisSpec | None = None
    iteration: IterationState | None = None
    created_at: datetime = field(default_factory=datetime.now)
    last_active: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        self.last_active = datetime.now()

    def status(self) -> SessionStatus:
        return SessionStatus(
            session_id=self.session_id,
            scratch_dir=str(self.scratch.root),
            asset=self.asset,
            frame_count=self.frames.count if self.frames else 0,
            has_analysis=self.analysis is not None,
            iteration=self.iteration,
            scratch_files=self.scratch.listing(),
        )


class SessionStore:
    """Process-wide session registry with TTL eviction.

    Sessions that end without approval take their scratch area with them.
    Approved sessions leave it in place for export.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, CloneSession] = {}

    def create(self, source: str) -> CloneSession:
        """Create a new session with an empty scratch area, evicting stale ones first."""
        self._evict_expired()
        cfg = get_config()
        if len(self._sessions) >= cfg.max_sessions:
            oldest_id = min(self._sessions, key=lambda k: self._sessions[k].last_active)
            self._discard(oldest_id)

        sid = uuid.uuid4().hex[:12]
        session = CloneSession(
            session_id=sid,
            source=source,
            scratch=ScratchArea.create(cfg.scratch_dir, sid),
        )
        self._sessions[sid] = session
        return session

    def get(self, session_id: str) -> CloneSession | None:
        self._evict_expired()
        return self._sessions.get(session_id)

    def require(self, session_id: str) -> CloneSession:
        """Like ``get`` but raises ``SessionNotFoundError`` and refreshes ``last_active``."""
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.touch()
        return session

    def begin_iteration(self, session_id: str, component_source: str) -> IterationState:
        """Write the first draft plus the preview shell and enter iteration 1."""
        session = self.require(session_id)
        if session.iteration is not None:
            raise InvalidTransition(
                f"Iteration already started (phase {session.iteration.phase.value})"
            )
        state = initial_state(component_source)
        write_scaffold(session.scratch)
        write_component(session.scratch, component_source)
        session.iteration = state
        return state

    def apply(self, session_id: str, event: IterationEvent) -> IterationState:
        """Advance the session's iteration state and carry out what the new phase implies."""
        session = self.require(session_id)
        if session.iteration is None:
            if isinstance(event, Cancel):
                return self.abort(session_id)
            raise InvalidTransition("No component draft yet — call clone_begin_iteration first")

        state = transition(session.iteration, event)
        if isinstance(event, Revised):
            write_component(session.scratch, event.source)
        session.iteration = state

        if state.phase is Phase.ABORTED:
            self._discard(session_id)
            logger.info("Session %s aborted at iteration %d", session_id, state.iteration_number)
        elif state.phase is Phase.APPROVED:
            logger.info(
                "Session %s approved at iteration %d: %s",
                session_id, state.iteration_number, session.scratch.component_path,
            )
        return state

    def abort(self, session_id: str) -> IterationState:
        """Cancel from any non-terminal point, including before the first draft."""
        session = self.require(session_id)
        if session.iteration is not None:
            return self.apply(session_id, Cancel())
        self._discard(session_id)
        logger.info("Session %s aborted before iteration", session_id)
        return IterationState(phase=Phase.ABORTED)

    def _discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return
        approved = session.iteration is not None and session.iteration.phase is Phase.APPROVED
        if not approved:
            session.scratch.cleanup()

    def _evict_expired(self) -> int:
        """Drop sessions idle past the configured timeout. Returns count evicted."""
        timeout = timedelta(hours=get_config().session_timeout_hours)
        now = datetime.now()
        expired = [sid for sid, s in self._sessions.items() if now - s.last_active > timeout]
        for sid in expired:
            self._discard(sid)
        return len(expired)

    def clear(self) -> int:
        """Discard every session (server shutdown). Returns count discarded."""
        ids = list(self._sessions)
        for sid in ids:
            self._discard(sid)
        return len(ids)

    @property
    def count(self) -> int:
        return len(self._sessions)


session_store = SessionStore()
