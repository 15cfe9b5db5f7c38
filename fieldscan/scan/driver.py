"""Cycle scheduler and session control surface.

One background thread runs one cycle at a time and sleeps for the delay the
state machine asks for. Stopping bumps a generation counter: a cycle that
finishes its OCR after the stop sees a stale generation and its observation is
dropped instead of applied. Resetting bumps a session epoch the same way, so an
observation taken before the reset never lands in the fresh session.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, List, Optional

from fieldscan.errors import CaptureSourceError
from fieldscan.scan.sources import FrameSource
from fieldscan.scan.state_machine import BaseScanner, SessionSnapshot


class ScanDriver:
    def __init__(self, scanner: BaseScanner, source: Optional[FrameSource] = None):
        self.logger = logging.getLogger(__name__)
        self.scanner = scanner
        self.config = scanner.config
        self.source = source
        self.session = scanner.new_session()
        self._state_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._generation = 0
        self._epoch = 0
        self._running = False
        # True from spawn until the loop commits to exiting, under _state_lock
        self._loop_active = False
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Open the source and begin scheduling cycles.

        Raises :class:`CaptureSourceError` when the source cannot be opened;
        nothing is scheduled in that case.
        """
        if self._running:
            return
        if self.source is None:
            raise CaptureSourceError("No capture source selected")
        self.source.open()
        with self._state_lock:
            gen, stop_event = self._arm()
            self._running = True
        self._spawn(gen, stop_event)
        self.logger.info("Scanning started")

    def _arm(self):
        # caller holds _state_lock
        self._generation += 1
        self._stop_event = threading.Event()
        self._loop_active = True
        return self._generation, self._stop_event

    def _spawn(self, gen: int, stop_event: threading.Event) -> None:
        self._thread = threading.Thread(
            target=self._loop, args=(gen, stop_event), name="fieldscan-cycle", daemon=True
        )
        self._thread.start()

    def _loop(self, gen: int, stop_event: threading.Event) -> None:
        delay = 0.0
        while not stop_event.wait(delay):
            next_delay = self.tick(gen)
            if next_delay is not None:
                delay = next_delay
                continue
            with self._state_lock:
                if gen != self._generation:
                    return
                if not self.session.done:
                    # reset() landed after the cycle finished; keep going
                    delay = 0.0
                    continue
                self._loop_active = False
                return

    def tick(self, gen: Optional[int] = None) -> Optional[float]:
        """Run one cycle now. Returns the delay before the next one, or ``None`` to stop.

        If another cycle is still in flight this one is deferred by the busy
        back-off instead of running concurrently.
        """
        if not self._cycle_lock.acquire(blocking=False):
            return self.config.busy_delay
        try:
            with self._state_lock:
                if self.session.done:
                    return None
                epoch = self._epoch
            try:
                frame = self.source.read() if self.source is not None else None
            except Exception:
                self.logger.exception("Frame capture failed")
                frame = None

            observation = self.scanner.observe(frame)

            with self._state_lock:
                if gen is not None and (gen != self._generation or not self._running):
                    self.logger.debug("Dropping result of a cycle that finished after stop")
                    return None
                if epoch != self._epoch:
                    self.logger.debug("Dropping result of a cycle that started before reset")
                    return 0.0
                return self.scanner.apply(self.session, observation)
        finally:
            self._cycle_lock.release()

    def stop(self, wait: bool = True) -> None:
        """Cancel the pending cycle and release the source"""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            self._generation += 1
            self._loop_active = False
            self._stop_event.set()
        thread = self._thread
        if wait and thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.config.ocr_timeout + 1.0)
        if self.source is not None:
            self.source.close()
        self.logger.info("Scanning stopped")

    def reset(self) -> None:
        """Clear all histories and confirmations; keeps scanning if capture is active"""
        with self._state_lock:
            self.session.reset()
            self._epoch += 1
            restart = self._running and not self._loop_active
            if restart:
                gen, stop_event = self._arm()
        if restart:
            self._spawn(gen, stop_event)
        self.logger.info("Session reset")


    def set_active_source(self, source: FrameSource) -> None:
        """Swap the capture source, restarting the loop if it was running"""
        was_running = self._running
        if was_running:
            self.stop()
        self.source = source
        if was_running:
            self.start()

    def reinitialize_engine(self, **engine_options: Any) -> None:
        """Recreate the OCR engine (e.g. another language profile) between cycles"""
        with self._cycle_lock:
            self.scanner.recognizer.session.reinitialize(**engine_options)

    def snapshot(self) -> SessionSnapshot:
        with self._state_lock:
            return self.session.snapshot()

    def pop_notifications(self) -> List[str]:
        with self._state_lock:
            return self.session.pop_notifications()

    def run_until_done(self, max_cycles: int = 100, sleep=time.sleep) -> SessionSnapshot:
        """Drive cycles on the calling thread; handy for still images and scripts"""
        if self.source is None:
            raise CaptureSourceError("No capture source selected")
        self.source.open()
        try:
            for _ in range(max_cycles):
                delay = self.tick()
                if delay is None:
                    break
                sleep(delay)
        finally:
            self.source.close()
        return self.snapshot()
