"""Resettable activity countdown.

ActivityTimer fires exactly once after a period with no activity. Every
request handler calls reset(); a single shutdown watcher consumes the
expiration signal returned by expired().

The countdown is owned by one daemon thread that sleeps on a condition
variable until the current deadline. reset() only moves the deadline under
the lock, so the hot path never waits on the countdown itself and only the
most recent reset matters.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future

logger = logging.getLogger(__name__)


class ActivityTimer:
    """Thread-safe countdown that resets on activity and fires once.

    The countdown is armed on construction, so a service that never sees a
    single request still expires after ``duration`` seconds.

    Example:
        timer = ActivityTimer(300.0)
        timer.reset()  # on every request
        timer.expired().result()  # blocks until 300s of silence
    """

    def __init__(self, duration: float, *, name: str = "activity-timer") -> None:
        """Create and arm the countdown.

        Args:
            duration: Seconds of silence before the timer fires.
            name: Name of the countdown thread.

        Raises:
            ValueError: If duration is not positive.
        """
        if duration <= 0:
            raise ValueError(f"duration must be positive, got {duration}")

        self._duration = float(duration)
        self._cond = threading.Condition(threading.Lock())
        now = time.monotonic()
        self._last_reset = now
        self._deadline = now + self._duration
        self._fired = False
        self._stopped = False
        self._consumed = False
        self._expired: Future[float] = Future()

        self._thread = threading.Thread(
            target=self._countdown, name=name, daemon=True
        )
        self._thread.start()

    @property
    def duration(self) -> float:
        """Seconds of silence before the timer fires."""
        return self._duration

    @property
    def fired(self) -> bool:
        """True once the expiration signal has been delivered."""
        with self._cond:
            return self._fired

    @property
    def idle_seconds(self) -> float:
        """Seconds since the most recent reset (or construction)."""
        with self._cond:
            return time.monotonic() - self._last_reset

    @property
    def remaining(self) -> float:
        """Seconds until the timer fires, 0.0 once fired or stopped."""
        with self._cond:
            if self._fired or self._stopped:
                return 0.0
            return max(0.0, self._deadline - time.monotonic())

    def reset(self) -> None:
        """Re-arm the countdown to fire ``duration`` seconds from now.

        Safe to call from any number of threads. Ignored once the timer has
        fired or been stopped.
        """
        with self._cond:
            if self._fired or self._stopped:
                return
            self._last_reset = time.monotonic()
            self._deadline = self._last_reset + self._duration
            # The countdown thread re-reads the deadline when it wakes, so
            # pushing it later needs no notify.

    def expired(self) -> Future[float]:
        """Return the one-shot expiration signal.

        The future resolves with the monotonic deadline at which the timer
        fired. It is cancelled if the timer is stopped first.

        Returns:
            Future completed exactly once.

        Raises:
            RuntimeError: If the signal already has a consumer.
        """
        with self._cond:
            if self._consumed:
                raise RuntimeError("expiration signal already has a consumer")
            self._consumed = True
        return self._expired

    def stop(self) -> None:
        """Disarm the countdown without firing. Idempotent."""
        with self._cond:
            if self._fired or self._stopped:
                return
            self._stopped = True
            self._cond.notify_all()
        self._expired.cancel()
        logger.debug("Activity timer stopped")

    def _countdown(self) -> None:
        """Wait for the deadline to pass without a reset, then fire."""
        with self._cond:
            while True:
                if self._stopped:
                    return
                remaining = self._deadline - time.monotonic()
                if remaining <= 0:
                    self._fired = True
                    deadline = self._deadline
                    break
                # wait() releases the lock, so resetters are never blocked
                self._cond.wait(remaining)

        logger.debug("Activity timer fired after %.3fs idle", self._duration)
        self._expired.set_result(deadline)
