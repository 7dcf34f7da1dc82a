"""Polling for DAST scan progress.

The server offers no push channel for scan completion, so a ``ProgressPoller``
asks for progress on a fixed interval while a scan is active. It polls once
immediately, then every ``interval`` seconds, and stops the first time the
server reports the scan as no longer active, firing ``on_complete(scan_id)``
exactly once. A failed poll is logged and the next tick tries again.

Stopping the poller only stops polling; cancelling the scan itself is a
separate API call.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from campground.errors import CampgroundError
from campground.models import ScanProgress

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0

ProgressFetcher = Callable[[str, str], ScanProgress]


class PollState(str, Enum):
    """States of a progress poller."""

    IDLE = "idle"
    POLLING = "polling"
    COMPLETED = "completed"


class ProgressPoller:
    """Tracks one scan's progress until it finishes.

    Bound to a ``(scan_id, project_id, is_active)`` triple; ``update`` with a
    different triple restarts polling, mirroring a view that re-renders with
    new arguments. ``start`` must be called from a running event loop.
    """

    def __init__(
        self,
        fetch: ProgressFetcher,
        scan_id: Optional[str],
        project_id: Optional[str],
        is_active: bool,
        on_complete: Optional[Callable[[str], None]] = None,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_progress: Optional[Callable[[ScanProgress], None]] = None,
    ):
        """Initialize the poller.

        Args:
            fetch: Called as ``fetch(project_id, scan_id)``, e.g.
                   ``CampgroundClient.get_scan_progress``.
            scan_id: Scan to follow.
            project_id: Project owning the scan.
            is_active: Whether the caller believes the scan is still running.
            on_complete: Called with the scan id once the scan finishes.
            interval: Seconds between polls.
            on_progress: Called with every accepted report.
        """
        self.fetch = fetch
        self.scan_id = scan_id
        self.project_id = project_id
        self.is_active = is_active
        self.on_complete = on_complete
        self.on_progress = on_progress
        self.interval = interval

        self.state = PollState.IDLE
        self.progress: Optional[float] = None
        self.status: Optional[str] = None
        self.phase: Optional[str] = None
        self._has_completed = False
        self._task: Optional[asyncio.Task] = None

    @property
    def is_polling(self) -> bool:
        return self.state is PollState.POLLING

    @property
    def has_completed(self) -> bool:
        return self._has_completed

    def _can_poll(self) -> bool:
        return bool(self.is_active and self.scan_id and self.project_id and not self._has_completed)

    def start(self) -> bool:
        """Schedule polling on the running event loop.

        Returns:
            False if polling is already running, the scan is not active,
            or it has already completed.
        """
        if self._task is not None and not self._task.done():
            return False
        if not self._can_poll():
            return False

        self.state = PollState.POLLING
        self._task = asyncio.get_running_loop().create_task(self.run())
        return True

    def stop(self) -> None:
        """Stop polling. Completion state is kept."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        if self.state is PollState.POLLING:
            logger.info(f"Stopped polling scan {self.scan_id}")
            self.state = PollState.IDLE

    def close(self) -> None:
        """Release the poller; same as ``stop``."""
        self.stop()

    def update(self, scan_id: Optional[str], project_id: Optional[str], is_active: bool) -> None:
        """Rebind to a new triple, restarting or stopping polling as needed."""
        if (scan_id, project_id, is_active) == (self.scan_id, self.project_id, self.is_active):
            return

        self.stop()
        if (scan_id, project_id) != (self.scan_id, self.project_id):
            self._has_completed = False
            self.progress = None
            self.status = None
            self.phase = None
            if self.state is PollState.COMPLETED:
                self.state = PollState.IDLE

        self.scan_id = scan_id
        self.project_id = project_id
        self.is_active = is_active
        if is_active:
            self.start()

    async def run(self) -> None:
        """Poll until the scan finishes or polling is stopped."""
        if not self._can_poll():
            return

        self.state = PollState.POLLING
        logger.info(f"Polling progress for scan {self.scan_id} every {self.interval}s")
        try:
            while self.state is PollState.POLLING:
                report = await asyncio.to_thread(self._fetch)
                if report is not None and self.state is PollState.POLLING:
                    self._apply(report)
                if self.state is not PollState.POLLING:
                    break
                await asyncio.sleep(self.interval)
        finally:
            # A restart may already own the state by the time a cancelled loop unwinds
            current = self._task is None or self._task is asyncio.current_task()
            if current and self.state is PollState.POLLING:
                self.state = PollState.IDLE

    def poll_once(self) -> Optional[ScanProgress]:
        """Fetch and apply one progress report synchronously.

        Returns:
            The report, or None if the fetch failed or the scan had already
            completed.
        """
        if self._has_completed:
            return None
        report = self._fetch()
        if report is not None:
            self._apply(report)
        return report

    def _fetch(self) -> Optional[ScanProgress]:
        try:
            return self.fetch(self.project_id, self.scan_id)
        except (CampgroundError, httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning(f"Failed to fetch progress for scan {self.scan_id}: {e}")
            return None

    def _apply(self, report: ScanProgress) -> None:
        # Late responses after completion must not fire the callback again
        if self._has_completed:
            return

        self.progress = report.progress
        self.status = report.status
        self.phase = report.phase
        if self.on_progress is not None:
            self.on_progress(report)

        if report.is_active:
            return

        self._has_completed = True
        self.state = PollState.COMPLETED
        logger.info(f"Scan {self.scan_id} finished with status {report.status}")
        if self.on_complete is not None:
            self.on_complete(self.scan_id)
