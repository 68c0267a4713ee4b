"""
Dispatch Module

Bounded outbound queue between the stabilizer and the transport, plus the
low-frequency monitor that injects the no-detection command when nothing
has been seen for a while.

Threads:
- pipeline worker: enqueues via the stabilizer
- consumer: drains FIFO, enforces the minimum interval between sends
- monitor: ticks every MONITOR['TICK'] seconds
"""

import logging
import threading
import time

from collections import deque
from typing import Callable, List, Optional

from config import PipelineConfig
from .entities import DetectionState
from .stabilizer import TemporalStabilizer
from .transport import Transport

logger = logging.getLogger(__name__)


class DispatchQueue:
    """Multi-producer / single-consumer command queue with de-duplication."""

    def __init__(self,
                 transport: Transport,
                 config: dict = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize dispatch queue.

        Args:
            transport: Receives each command as newline-terminated bytes
            config: Optional config dict, uses PipelineConfig.DISPATCH if None
            clock: Time source for the send interval
            sleep: Used to wait out the send interval
        """
        self.config = config or PipelineConfig.DISPATCH
        self.transport = transport
        self.min_interval = float(self.config['MIN_COMMAND_INTERVAL'])
        self.depth = int(self.config['QUEUE_DEPTH'])
        self._clock = clock
        self._sleep = sleep
        self._pending = deque()
        self._cond = threading.Condition()
        self._closed = False
        self._thread: Optional[threading.Thread] = None
        self._last_send_time: Optional[float] = None
        self.sent_count = 0
        self.failed_count = 0
        self.dropped_count = 0

    def enqueue(self, command: str) -> bool:
        """
        Add a command, replacing any identical pending entry.

        When full, the oldest pending command is dropped. Never blocks.

        Returns:
            False if the queue has been stopped
        """
        with self._cond:
            if self._closed:
                return False
            if command in self._pending:
                self._pending = deque(c for c in self._pending if c != command)
            if len(self._pending) >= self.depth:
                dropped = self._pending.popleft()
                self.dropped_count += 1
                logger.warning("Dispatch queue full, dropped %s", dropped)
            self._pending.append(command)
            self._cond.notify()
            return True

    @property
    def pending(self) -> List[str]:
        with self._cond:
            return list(self._pending)

    def _take(self, block: bool = True) -> Optional[str]:
        with self._cond:
            while block and not self._pending and not self._closed:
                self._cond.wait()
            if self._closed or not self._pending:
                return None
            return self._pending.popleft()

    def _send(self, command: str) -> bool:
        if self._last_send_time is not None:
            remaining = self.min_interval - (self._clock() - self._last_send_time)
            if remaining > 0:
                self._sleep(remaining)

        payload = f"{command}\n".encode('ascii')
        try:
            ok = bool(self.transport.send(payload))
        except Exception as exc:
            # Transport faults must never stop the consumer
            logger.warning("Transport raised while sending %s: %s", command, exc)
            ok = False
        self._last_send_time = self._clock()

        if ok:
            self.sent_count += 1
        else:
            self.failed_count += 1
            logger.warning("Command %s not delivered", command)
        return ok

    def drain_once(self) -> Optional[str]:
        """Send the oldest pending command on the calling thread, if any."""
        command = self._take(block=False)
        if command is not None:
            self._send(command)
        return command

    def _run(self) -> None:
        while True:
            command = self._take()
            if command is None:
                break
            self._send(command)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        with self._cond:
            self._closed = False
        self._thread = threading.Thread(target=self._run, name='dispatch-consumer', daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        """Stop accepting work; pending commands are discarded."""
        with self._cond:
            self._closed = True
            self._pending.clear()
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None


class DetectionMonitor:
    """Injects the no-detection command after DETECTION_TIMEOUT without detections."""

    def __init__(self,
                 state: DetectionState,
                 stabilizer: TemporalStabilizer,
                 config: dict = None,
                 no_detection: str = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize monitor.

        Args:
            state: Shared detection state written by the pipeline worker
            stabilizer: Owner of the last-dispatched command
            config: Optional config dict, uses PipelineConfig.MONITOR if None
            no_detection: Command to inject, uses the configured sentinel if None
            clock: Time source
        """
        self.config = config or PipelineConfig.MONITOR
        self.state = state
        self.stabilizer = stabilizer
        self.timeout = float(self.config['DETECTION_TIMEOUT'])
        self.tick = float(self.config['TICK'])
        self.no_detection = no_detection or PipelineConfig.COMMANDS['NO_DETECTION']
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def check(self, now: Optional[float] = None) -> Optional[str]:
        """
        One monitor tick; returns the injected command, if any.

        A candidate left behind by frames that stopped arriving is abandoned
        after the same timeout. Staleness is checked again under the
        stabilizer lock, so a detection stored before the worker reaches the
        stabilizer cancels the injection.
        """
        now = self._clock() if now is None else now
        if not self._timed_out(now):
            return None
        return self.stabilizer.offer_fallback(
            self.no_detection, now,
            stale_after=self.timeout,
            confirm=lambda: self._timed_out(now)
        )

    def _timed_out(self, now: float) -> bool:
        return self.state.seconds_since_detection(now) > self.timeout

    def _run(self) -> None:
        while not self._stop.wait(self.tick):
            self.check()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name='detection-monitor', daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
