from __future__ import annotations

import asyncio
import logging
import threading
from typing import Awaitable, Callable, Optional


logger = logging.getLogger(__name__)

ErrorCallback = Callable[[BaseException], None]


class ReloadCoalescer:
    """
    Single-flight scheduler for an expensive async `reload()`.

    - At most one reload runs at a time.
    - Triggers during a running reload collapse into exactly one follow-up run.
    - A failed reload is logged (and passed to `on_error`) and never suppresses
      the pending follow-up.

    `trigger()` must be called from the event loop thread. The flag check and
    the decision to start happen without yielding, so no lock is needed.
    """

    def __init__(
        self,
        reload: Callable[[], Awaitable[None]],
        *,
        name: str = "reload",
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._reload = reload
        self._name = name
        self._on_error = on_error
        self._in_progress = False
        self._requested = False
        self._task: Optional[asyncio.Task[None]] = None
        self._idle = asyncio.Event()
        self._idle.set()
        self.started = 0
        self.succeeded = 0
        self.failed = 0

    @property
    def in_progress(self) -> bool:
        return self._in_progress

    @property
    def requested(self) -> bool:
        return self._requested

    def trigger(self) -> bool:
        """Request a reload. Returns True if one was started by this call."""
        if self._in_progress:
            if not self._requested:
                logger.info("%s already in progress, queuing another run", self._name)
            self._requested = True
            return False

        loop = asyncio.get_running_loop()
        self._in_progress = True
        self.started += 1
        self._idle.clear()
        logger.info("Starting %s (run #%d)", self._name, self.started)
        self._task = loop.create_task(self._run())
        return True

    async def _run(self) -> None:
        try:
            await self._reload()
        except Exception as ex:
            self.failed += 1
            logger.exception("Error during %s", self._name)
            if self._on_error is not None:
                try:
                    self._on_error(ex)
                except Exception:
                    logger.exception("%s error callback failed", self._name)
        else:
            self.succeeded += 1
            logger.info("%s completed successfully", self._name)
        finally:
            self._in_progress = False
            if self._requested:
                logger.info("Processing queued %s request", self._name)
                self._requested = False
                self.trigger()
            else:
                self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until no reload is running or pending."""
        while self._in_progress:
            await self._idle.wait()


class ThreadedReloadCoalescer:
    """
    Same coalescing contract for a blocking `reload()` under threads.

    The check-and-set runs under a lock; reloads execute on one worker thread
    that loops while follow-up runs are pending.
    """

    def __init__(
        self,
        reload: Callable[[], None],
        *,
        name: str = "reload",
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._reload = reload
        self._name = name
        self._on_error = on_error
        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._in_progress = False
        self._requested = False
        self.started = 0
        self.succeeded = 0
        self.failed = 0

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._in_progress

    @property
    def requested(self) -> bool:
        with self._lock:
            return self._requested

    def trigger(self) -> bool:
        with self._lock:
            if self._in_progress:
                self._requested = True
                return False
            self._in_progress = True
            self._idle.clear()
        worker = threading.Thread(target=self._worker, name=f"{self._name}-worker", daemon=True)
        worker.start()
        return True

    def _worker(self) -> None:
        while True:
            with self._lock:
                self.started += 1
            logger.info("Starting %s (run #%d)", self._name, self.started)
            try:
                self._reload()
            except Exception as ex:
                with self._lock:
                    self.failed += 1
                logger.exception("Error during %s", self._name)
                if self._on_error is not None:
                    try:
                        self._on_error(ex)
                    except Exception:
                        logger.exception("%s error callback failed", self._name)
            else:
                with self._lock:
                    self.succeeded += 1

            with self._lock:
                if not self._requested:
                    self._in_progress = False
                    self._idle.set()
                    return
                self._requested = False
            logger.info("Processing queued %s request", self._name)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Block until idle. Returns False on timeout."""
        return self._idle.wait(timeout)


__all__ = ["ReloadCoalescer", "ThreadedReloadCoalescer"]
