"""Background task that abandons upload sessions left idle in staging."""

import asyncio
import logging
import time
from typing import List, Optional

from assembly.merge_engine import MergeEngine
from common.exceptions import SessionBusyError, SessionNotFoundError, UploadError
from staging.chunk_store import ChunkStore
from staging.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

REAP_INTERVAL_SECONDS = 3600
SESSION_TTL_SECONDS = 24 * 3600


class StaleSessionReaper:
    """
    Background task that periodically removes staging namespaces whose
    newest chunk is older than the session TTL.
    """

    def __init__(
        self,
        chunk_store: ChunkStore,
        merge_engine: MergeEngine,
        registry: SessionRegistry,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        interval_seconds: float = REAP_INTERVAL_SECONDS,
    ):
        """
        Initialize reaper task.

        Args:
            chunk_store: Staging store to scan
            merge_engine: Engine used to abandon stale sessions
            registry: Session registry, pruned of old CLOSED records each cycle
            ttl_seconds: Idle time after which a session is abandoned (0 disables)
            interval_seconds: Time between scans
        """
        self.chunk_store = chunk_store
        self.merge_engine = merge_engine
        self.registry = registry
        self.ttl_seconds = ttl_seconds
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    async def start(self) -> None:
        """Start the background reaper task."""
        if not self.enabled:
            logger.info("Stale session reaper disabled (TTL is 0)")
            return

        if self._running:
            logger.warning("Stale session reaper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(
            f"Started stale session reaper (ttl: {self.ttl_seconds}s, interval: {self.interval_seconds}s)"
        )

    async def stop(self) -> None:
        """Stop the background reaper task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Stopped stale session reaper")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await asyncio.to_thread(self.run_once)

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in stale session reaper: {e}", exc_info=True)

    def run_once(self, now: Optional[float] = None) -> List[str]:
        """
        Execute one reaping cycle.

        Args:
            now: Reference timestamp (defaults to the current time)

        Returns:
            Upload identifiers that were abandoned
        """
        now = time.time() if now is None else now
        cutoff = now - self.ttl_seconds
        reaped = []

        for upload_id in self.chunk_store.list_namespaces():
            modified = self.chunk_store.last_modified(upload_id)
            if modified is None or modified >= cutoff:
                continue

            try:
                if not self.merge_engine.abandon_if_idle(upload_id, cutoff):
                    logger.debug(f"Skipped upload {upload_id}: received a chunk during the scan")
                    continue
                reaped.append(upload_id)
                logger.info(f"Reaped stale upload {upload_id} (idle {now - modified:.0f}s)")
            except (SessionBusyError, SessionNotFoundError) as e:
                logger.debug(f"Skipped upload {upload_id}: {e}")
            except UploadError as e:
                logger.warning(f"Failed to reap upload {upload_id}: {e}")

        pruned = self.registry.prune_closed(self.ttl_seconds)
        if reaped or pruned:
            logger.info(f"Reaper cycle complete: {len(reaped)} sessions reaped, {pruned} records pruned")

        return reaped
