"""In-memory lifecycle tracking for upload sessions: OPEN -> MERGING -> CLOSED."""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from common.exceptions import SessionBusyError
from common.types import SessionState

logger = logging.getLogger(__name__)


@dataclass
class SessionRecord:
    """
    Lifecycle entry for one upload identifier.
    """
    upload_id: str
    state: SessionState = SessionState.OPEN
    active_writes: int = 0
    updated_at: float = field(default_factory=time.time)


class SessionRegistry:
    """
    Tracks the state of every upload session seen by this process.

    Chunk writes hold a shared claim on a session; merge and abandon take an
    exclusive claim that moves the session to MERGING. The two kinds of claim
    never overlap: a write during a merge and a merge during a write both
    fail with SessionBusyError.
    """

    def __init__(self):
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def get_state(self, upload_id: str) -> Optional[SessionState]:
        """
        Get the current state of a session.

        Returns:
            SessionState, or None if the session was never seen
        """
        with self._lock:
            record = self._sessions.get(upload_id)
            return record.state if record else None

    def active_writes(self, upload_id: str) -> int:
        with self._lock:
            record = self._sessions.get(upload_id)
            return record.active_writes if record else 0

    def begin_write(self, upload_id: str) -> None:
        """
        Register an in-flight chunk write. Reopens a CLOSED session.

        Raises:
            SessionBusyError: If the session is being merged
        """
        with self._lock:
            record = self._sessions.get(upload_id)
            if record is None:
                record = SessionRecord(upload_id=upload_id)
                self._sessions[upload_id] = record
                logger.debug(f"Opened session {upload_id}")
            elif record.state == SessionState.MERGING:
                raise SessionBusyError(f"Upload {upload_id} is being merged; chunk rejected")
            elif record.state == SessionState.CLOSED:
                record.state = SessionState.OPEN
                logger.debug(f"Reopened session {upload_id}")

            record.active_writes += 1
            record.updated_at = time.time()

    def end_write(self, upload_id: str) -> None:
        with self._lock:
            record = self._sessions.get(upload_id)
            if record is not None and record.active_writes > 0:
                record.active_writes -= 1
                record.updated_at = time.time()

    def begin_exclusive(self, upload_id: str) -> None:
        """
        Move a session to MERGING.

        Raises:
            SessionBusyError: If the session is already merging or has writes in flight
        """
        with self._lock:
            record = self._sessions.get(upload_id)
            if record is None:
                record = SessionRecord(upload_id=upload_id)
                self._sessions[upload_id] = record

            if record.state == SessionState.MERGING:
                raise SessionBusyError(f"Upload {upload_id} is already being merged")
            if record.active_writes > 0:
                raise SessionBusyError(
                    f"Upload {upload_id} has {record.active_writes} chunk write(s) in flight"
                )

            record.state = SessionState.MERGING
            record.updated_at = time.time()

    def end_exclusive(self, upload_id: str, closed: bool) -> None:
        """
        Leave MERGING: CLOSED when the namespace was consumed, OPEN otherwise.
        """
        with self._lock:
            record = self._sessions.get(upload_id)
            if record is None:
                return
            record.state = SessionState.CLOSED if closed else SessionState.OPEN
            record.updated_at = time.time()

    @contextmanager
    def writing(self, upload_id: str) -> Iterator[None]:
        """Hold a shared write claim on a session for the duration of the block."""
        self.begin_write(upload_id)
        try:
            yield
        finally:
            self.end_write(upload_id)

    @contextmanager
    def exclusive(self, upload_id: str) -> Iterator[None]:
        """
        Hold the session in MERGING for the duration of the block.

        The session ends CLOSED if the block completes and OPEN if it raises,
        so a failed merge can be retried.
        """
        self.begin_exclusive(upload_id)
        try:
            yield
        except BaseException:
            self.end_exclusive(upload_id, closed=False)
            raise
        self.end_exclusive(upload_id, closed=True)

    def prune_closed(self, max_age_seconds: float) -> int:
        """
        Forget CLOSED sessions older than max_age_seconds.

        Returns:
            Number of records removed
        """
        cutoff = time.time() - max_age_seconds
        with self._lock:
            stale = [
                upload_id for upload_id, record in self._sessions.items()
                if record.state == SessionState.CLOSED and record.updated_at < cutoff
            ]
            for upload_id in stale:
                del self._sessions[upload_id]
        return len(stale)
