"""
Temporal Stabilizer Module

Debounces resolved command codes: a code is dispatched only after it has
been resolved continuously for the stability window, and never twice in a
row. The stabilizer is the single owner of the last-dispatched command; the
pipeline worker and the no-detection monitor both go through its lock.
"""

import logging
import threading
import time

from enum import Enum
from typing import Callable, Optional

from config import PipelineConfig

logger = logging.getLogger(__name__)


class StabilizerPhase(Enum):
    IDLE = 'idle'
    CANDIDATING = 'candidating'
    STABLE = 'stable'


class TemporalStabilizer:
    """Idle -> Candidating(code, t0) -> Stable(code) debounce machine."""

    def __init__(self,
                 config: dict = None,
                 dispatch: Callable[[str], None] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize stabilizer.

        Args:
            config: Optional config dict, uses PipelineConfig.STABILIZER if None
            dispatch: Called with each command to send, under the state lock
            clock: Time source used when callers do not pass `now`
        """
        self.config = config or PipelineConfig.STABILIZER
        self.window = float(self.config['STABILITY_WINDOW'])
        self._dispatch = dispatch
        self._clock = clock
        self._lock = threading.RLock()
        self._phase = StabilizerPhase.IDLE
        self._candidate: Optional[str] = None
        self._candidate_since = 0.0
        self._last_update: Optional[float] = None
        self._last_dispatched: Optional[str] = None

    def set_dispatch(self, dispatch: Callable[[str], None]) -> None:
        with self._lock:
            self._dispatch = dispatch

    def _emit(self, code: str) -> str:
        self._last_dispatched = code
        logger.info("Dispatching %s", code)
        if self._dispatch is not None:
            self._dispatch(code)
        return code

    def update(self, code: str, now: Optional[float] = None) -> Optional[str]:
        """
        Feed the code resolved for the current frame.

        Args:
            code: Resolved command code
            now: Timestamp in seconds (defaults to the clock)

        Returns:
            The code if it was dispatched by this call, else None
        """
        now = self._clock() if now is None else now
        with self._lock:
            self._last_update = now
            if self._phase is StabilizerPhase.IDLE or code != self._candidate:
                # No credit carried over from the previous candidate
                self._phase = StabilizerPhase.CANDIDATING
                self._candidate = code
                self._candidate_since = now
                return None

            if self._phase is StabilizerPhase.CANDIDATING and now - self._candidate_since >= self.window:
                self._phase = StabilizerPhase.STABLE
                if code != self._last_dispatched:
                    return self._emit(code)
            return None

    def offer_fallback(self,
                       code: str,
                       now: Optional[float] = None,
                       stale_after: Optional[float] = None,
                       confirm: Optional[Callable[[], bool]] = None) -> Optional[str]:
        """
        Inject a command from outside the frame loop (no-detection timeout).

        Ignored while a candidate is being stabilized or when it would repeat
        the last dispatched command. A candidate counts as abandoned once no
        frame has reached `update` for `stale_after` seconds; it is dropped and
        the injection goes ahead. After an injection the machine returns to
        Idle so a later frame has to re-stabilize its code.

        Args:
            code: Command to inject
            now: Timestamp in seconds (defaults to the clock)
            stale_after: Seconds without updates after which a candidate is
                abandoned; None keeps every candidate
            confirm: Re-checked under the lock right before sending; the
                injection is cancelled when it returns False

        Returns:
            The code if it was dispatched by this call, else None
        """
        now = self._clock() if now is None else now
        with self._lock:
            if self._phase is StabilizerPhase.CANDIDATING:
                if stale_after is None or self._last_update is None:
                    return None
                if now - self._last_update < stale_after:
                    return None
            if code == self._last_dispatched:
                return None
            if confirm is not None and not confirm():
                return None
            if self._phase is StabilizerPhase.CANDIDATING:
                logger.debug("Dropping stale candidate %s", self._candidate)
            self._phase = StabilizerPhase.IDLE
            self._candidate = None
            return self._emit(code)

    def reset(self) -> None:
        with self._lock:
            self._phase = StabilizerPhase.IDLE
            self._candidate = None
            self._candidate_since = 0.0
            self._last_update = None
            self._last_dispatched = None

    @property
    def phase(self) -> StabilizerPhase:
        with self._lock:
            return self._phase

    @property
    def candidate(self) -> Optional[str]:
        with self._lock:
            return self._candidate

    @property
    def candidate_since(self) -> float:
        with self._lock:
            return self._candidate_since

    @property
    def is_stable(self) -> bool:
        return self.phase is StabilizerPhase.STABLE

    @property
    def last_dispatched(self) -> Optional[str]:
        with self._lock:
            return self._last_dispatched
