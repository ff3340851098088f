# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Periodic progress logging for long-running scans."""

import logging
import threading
import time
from collections.abc import Sequence
from typing import Literal

from plscan.filesystem import InputFile

logger = logging.getLogger(__name__)

ProgressStatus = Literal["idle", "running", "stopped"]

DEFAULT_INTERVAL_SECONDS = 10.0


class ProgressReport:
    """Log scan progress from a background thread on a fixed interval.

    The report moves from ``idle`` to ``running`` on ``start`` and to the
    terminal ``stopped`` state on ``stop`` or ``cancel``. ``next_file`` is
    called from the scan loop while the ticker reads the counter from its
    own thread; the counter is guarded by a lock.
    """

    def __init__(
        self,
        name: str = "Report about progress of code analyzer",
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        track_current_file: bool = True,
    ) -> None:
        """Initialize progress report.

        Args:
            name: Background thread name.
            interval_seconds: Seconds between two progress lines.
            track_current_file: Name the file at the counter position in
                progress lines. Only meaningful when files complete in the
                order given to ``start``.

        Raises:
            ValueError: If ``interval_seconds`` is not greater than zero.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._name = name
        self._interval_seconds = interval_seconds
        self._track_current_file = track_current_file
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._files: list[InputFile] = []
        self._count = 0
        self._started_at = 0.0
        self._status: ProgressStatus = "idle"

    @property
    def status(self) -> ProgressStatus:
        return self._status

    @property
    def track_current_file(self) -> bool:
        return self._track_current_file

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def start(self, files: Sequence[InputFile]) -> None:
        """Start the background ticker.

        Args:
            files: Files the scan is about to process.

        Raises:
            RuntimeError: If the report was already started.
        """
        if self._status != "idle":
            raise RuntimeError(f"Progress report cannot start from {self._status}")
        self._files = list(files)
        self._started_at = time.monotonic()
        self._status = "running"
        logger.info("%s source files to be analyzed", len(self._files))
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()

    def next_file(self) -> None:
        with self._lock:
            self._count += 1

    def stop(self) -> None:
        """Stop the ticker and log the final summary.

        Calling ``stop`` again, or after ``cancel``, does nothing.
        """
        if not self._halt():
            return
        total = len(self._files)
        logger.info(
            "%s/%s source files have been analyzed elapsed_seconds=%.1f",
            self.count,
            total,
            time.monotonic() - self._started_at,
        )

    def cancel(self) -> None:
        """Stop the ticker without a final summary."""
        self._halt()

    def _halt(self) -> bool:
        if self._status != "running":
            self._status = "stopped"
            return False
        self._status = "stopped"
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        return True

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval_seconds):
            self._log_progress()

    def _log_progress(self) -> None:
        count = self.count
        total = len(self._files)
        if self._track_current_file and count < total:
            logger.info(
                "%s of %s files analyzed, current file: %s",
                count,
                total,
                self._files[count].key,
            )
        else:
            logger.info("%s of %s files analyzed", count, total)
