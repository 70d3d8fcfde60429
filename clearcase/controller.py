"""
clearcase/controller.py
Debounced organize controller.

Every text change:
  1. fast scan on the calling thread, merged immediately   (FAST_UPDATED)
  2. debounce timer (re)started                             (DEBOUNCING)
  3. timer fires → heavy parse on a worker, hard timeout    (PARSING)
  4. result merged                                          (MERGED)
     or, on timeout / any parse error, fast result only     (ERROR_FALLBACK → MERGED)

A heavy result is only merged if the text it was computed from is still the
current text. Results are cached per instance by SHA-1 of the text.
"""

import hashlib
import logging
import threading
from collections import OrderedDict, deque
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from enum import Enum
from typing import Callable, Deque, Optional

from clearcase.models.record import FastScanResult, ParseOutcome, StructuredIncident
from clearcase.parsers.fast_scan import quick_scan
from clearcase.text import to_str

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SEC = 0.5
DEFAULT_TIMEOUT_SEC  = 10.0
DEFAULT_CACHE_SIZE   = 128
HISTORY_LEN          = 64

Parser      = Callable[[str], StructuredIncident]
MergeFn     = Callable[[ParseOutcome], None]


class ControllerState(Enum):
    IDLE           = 'idle'
    FAST_UPDATED   = 'fast_updated'
    DEBOUNCING     = 'debouncing'
    PARSING        = 'parsing'
    MERGED         = 'merged'
    ERROR_FALLBACK = 'error_fallback'


# ── WORKER STRATEGY ──────────────────────────────────────────

class ParseRunner:
    """
    Runs the heavy parser on a single background worker when one can be
    created, otherwise directly on the calling thread. Callers see the same
    interface either way.

    The direct path cannot enforce the timeout; a worker-side parse that
    overruns is abandoned (not interrupted) and its result ignored. The worker
    it occupies is retired with it, so the next job gets a fresh worker
    instead of queueing behind the overrun.
    """

    def __init__(self, executor_factory: Optional[Callable[[], ThreadPoolExecutor]] = None):
        self._factory  = executor_factory or (
            lambda: ThreadPoolExecutor(max_workers=1, thread_name_prefix='clearcase-parse')
        )
        self._executor: Optional[ThreadPoolExecutor] = None
        self._failed   = False
        self._closed   = False
        self._lock     = threading.Lock()
        self.last_mode = ''    # 'worker' / 'direct'

    def _get_executor(self) -> Optional[ThreadPoolExecutor]:
        with self._lock:
            if self._closed or self._failed:
                return None
            if self._executor is None:
                try:
                    self._executor = self._factory()
                except Exception as e:
                    logger.warning(f"Parse worker unavailable, parsing on the calling thread: {e}")
                    self._failed = True
                    return None
            return self._executor

    def run(self, fn: Parser, text: str, timeout: float) -> StructuredIncident:
        """Return fn(text). Raises TimeoutError past `timeout`, or whatever fn raises."""
        executor = self._get_executor()
        if executor is not None:
            try:
                future = executor.submit(fn, text)
            except RuntimeError as e:
                # executor shut down underneath us
                logger.warning(f"Parse worker rejected job, parsing directly: {e}")
            else:
                self.last_mode = 'worker'
                try:
                    return future.result(timeout=timeout)
                except FuturesTimeout:
                    future.cancel()
                    self._retire(executor)
                    raise TimeoutError(f"structured parse exceeded {timeout}s") from None
        self.last_mode = 'direct'
        return fn(text)

    def _retire(self, executor: ThreadPoolExecutor) -> None:
        """Drop a worker still busy with an abandoned parse; its thread exits when the parse returns."""
        with self._lock:
            if self._executor is executor:
                self._executor = None
        executor.shutdown(wait=False)
        logger.warning("Parse worker retired after a timeout; the next parse starts a new one")

    def close(self) -> None:
        with self._lock:
            self._closed = True
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=False)


# ── CONTROLLER ───────────────────────────────────────────────

class OrganizeController:

    def __init__(
        self,
        parser:        Parser,
        debounce_sec:  float                   = DEFAULT_DEBOUNCE_SEC,
        timeout_sec:   float                   = DEFAULT_TIMEOUT_SEC,
        runner:        Optional[ParseRunner]   = None,
        timer_factory: Callable                = threading.Timer,
        cache_size:    int                     = DEFAULT_CACHE_SIZE,
        scanner:       Callable[[str], FastScanResult] = quick_scan,
    ):
        self.parser        = parser
        self.debounce_sec  = debounce_sec
        self.timeout_sec   = timeout_sec
        self.runner        = runner or ParseRunner()
        self.timer_factory = timer_factory
        self.cache_size    = cache_size
        self.scanner       = scanner

        # RLock: a merge callback may call run() again on the same thread
        self._lock         = threading.RLock()
        self._state        = ControllerState.IDLE
        self._current_text: Optional[str] = None
        self._generation   = 0
        self._timer        = None
        self._cache: 'OrderedDict[str, StructuredIncident]' = OrderedDict()
        self._parse_count  = 0
        self.history: Deque[ControllerState] = deque(maxlen=HISTORY_LEN)

    # ── STATE ────────────────────────────────────────────────
    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def parse_count(self) -> int:
        """Heavy parser invocations so far (cache hits excluded)."""
        return self._parse_count

    def _set_state(self, state: ControllerState) -> None:
        self._state = state
        self.history.append(state)

    # ── PUBLIC ───────────────────────────────────────────────
    def run(self, text: str, merge: MergeFn, immediate: bool = False) -> Optional[ParseOutcome]:
        """
        Handle one text change. The fast result is merged before returning.
        With immediate=True the heavy parse runs now and its outcome is
        returned (None if a newer text superseded it).
        """
        text = to_str(text)
        fast = self.scanner(text)

        with self._lock:
            self._cancel_timer()
            self._generation  += 1
            generation         = self._generation
            self._current_text = text
            self._set_state(ControllerState.FAST_UPDATED)
            merge(ParseOutcome(fast=fast, status='fast'))
            if generation != self._generation:
                # the merge callback already submitted newer text
                return None

            if immediate:
                timer = None
            else:
                timer = self.timer_factory(
                    self.debounce_sec, self._on_timer, args=(text, fast, merge, generation),
                )
                timer.daemon = True
                self._timer  = timer
                self._set_state(ControllerState.DEBOUNCING)

        if timer is not None:
            timer.start()
            return None
        return self._parse_and_merge(text, fast, merge, generation)

    def cancel(self) -> None:
        """Drop the pending timer; any in-flight parse becomes stale."""
        with self._lock:
            self._cancel_timer()
            self._generation  += 1
            self._current_text = None
            self._set_state(ControllerState.IDLE)

    def close(self) -> None:
        self.cancel()
        self.runner.close()

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    # ── INTERNALS ────────────────────────────────────────────
    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, text: str, fast: FastScanResult, merge: MergeFn, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self._parse_and_merge(text, fast, merge, generation)

    @staticmethod
    def _key(text: str) -> str:
        return hashlib.sha1(text.encode('utf-8')).hexdigest()

    def _cache_get(self, key: str) -> Optional[StructuredIncident]:
        with self._lock:
            hit = self._cache.get(key)
            if hit is not None:
                self._cache.move_to_end(key)
            return hit

    def _cache_put(self, key: str, value: StructuredIncident) -> None:
        if self.cache_size <= 0:
            return
        with self._lock:
            self._cache[key] = value
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

    def _set_cycle_state(self, state: ControllerState, generation: int) -> None:
        """State change for one edit cycle; ignored once a newer edit owns the state."""
        with self._lock:
            if generation == self._generation:
                self._set_state(state)

    def _parse_and_merge(
        self, text: str, fast: FastScanResult, merge: MergeFn, generation: int,
    ) -> Optional[ParseOutcome]:
        key    = self._key(text)
        cached = self._cache_get(key)

        if cached is not None:
            logger.debug(f"Parse cache hit ({len(text)} chars)")
            outcome = ParseOutcome(fast=fast, structured=cached, status='structured', cached=True)
        else:
            with self._lock:
                self._parse_count += 1
            self._set_cycle_state(ControllerState.PARSING, generation)
            try:
                structured = self.runner.run(self.parser, text, self.timeout_sec)
            except Exception as e:
                logger.warning(f"Structured parse failed, keeping fast result: {type(e).__name__}: {e}")
                self._set_cycle_state(ControllerState.ERROR_FALLBACK, generation)
                outcome = ParseOutcome(fast=fast, status='fallback', error=str(e) or type(e).__name__)
            else:
                self._cache_put(key, structured)
                outcome = ParseOutcome(fast=fast, structured=structured, status='structured')

        with self._lock:
            if self._current_text != text:
                logger.debug("Discarding stale parse result")
                return None
            merge(outcome)
            self._set_cycle_state(ControllerState.MERGED, generation)
        return outcome
