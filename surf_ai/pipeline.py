"""Debounced, cached, time-bounded enhancement of surf narratives.

The pipeline is a small state machine:

    Idle -> Debouncing -> Validating -> {Resolved | TimedOut | Failed}

`submit()` is the debounced entry point used for live updates: every trigger
restarts a short timer and only the last trigger inside the window is
processed. `process()` is the synchronous Validating step: it joins an
in-flight call for the same (narrative, context) key, serves the TTL cache,
applies the duplicate-call guard and otherwise calls the external service on
a worker thread under a hard timeout.

Every outcome, including fallbacks, is cached. Nothing here raises to the
caller: failures resolve to the original narrative (or a fixed apology on
timeout) tagged with a reason code.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeout
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from surf_ai.cache import EnhancementCache, InMemoryEnhancementCache, make_cache_key
from surf_ai.domain import EnhancementContext, EnhancementReason, EnhancementResult, PipelineState
from surf_ai.enhancement_client import (
    EnhancementNotConfigured,
    EnhancementServiceError,
    MalformedEnhancementResponse,
)
from surf_ai.narration import EnhancedOutputRejected, validate_enhanced_output
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="surf_ai/pipeline")

TIMEOUT_MESSAGE = (
    "🤖 Surf AI is taking too long to paddle out. Check the numbers above and trust your eyes."
)


class TextEnhancer(Protocol):
    """Anything that turns a narrative into an enhanced string (or raises)."""

    def enhance(self, narrative: str, context: EnhancementContext) -> str:
        ...


@dataclass
class _PendingTrigger:
    """A debounced trigger waiting for its timer.

    `timer` stays None while another enhancement is in flight; it is armed
    once the in-flight work drains.
    """
    token: int
    key: str
    narrative: str
    context: EnhancementContext
    future: Future
    timer: Optional[threading.Timer] = None

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()


def _completed(result: EnhancementResult) -> Future:
    fut: Future = Future()
    fut.set_result(result)
    return fut


class EnhancementPipeline:
    """Owns the cache, the in-flight tracker and both timers."""

    def __init__(
        self,
        client: TextEnhancer,
        cache: EnhancementCache | None = None,
        *,
        debounce_seconds: float = 0.5,
        timeout_seconds: float = 10.0,
        duplicate_window_seconds: float = 2.0,
        min_chars: int = 10,
        max_chars: int = 400,
        max_ratio: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        max_workers: int = 4,
    ) -> None:
        self.client = client
        self.cache = cache if cache is not None else InMemoryEnhancementCache(clock=clock)
        self.debounce_seconds = debounce_seconds
        self.timeout_seconds = timeout_seconds
        self.duplicate_window_seconds = duplicate_window_seconds
        self.min_chars = min_chars
        self.max_chars = max_chars
        self.max_ratio = max_ratio
        self._clock = clock

        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="surf-enhance")
        self._inflight: dict[str, Future] = {}
        self._recent_calls: dict[str, float] = {}
        self._pending: Optional[_PendingTrigger] = None
        self._trigger_seq = 0
        self._firing = 0
        self._last_enhanced: Optional[tuple[str, EnhancementResult]] = None
        self._state = PipelineState.IDLE
        self._closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        with self._lock:
            return self._state

    @property
    def is_validating(self) -> bool:
        """True while a trigger is debouncing or a call is in flight."""
        with self._lock:
            return self._pending is not None or self._firing > 0 or bool(self._inflight)

    @staticmethod
    def key_for(narrative: str, context: EnhancementContext | None = None) -> str:
        return make_cache_key(narrative, context)

    def peek(self, key: str) -> Optional[EnhancementResult]:
        """Return a cached result for `key` without triggering anything."""
        result = self.cache.get(key)
        if result is None:
            return None
        return result.model_copy(update={"cached": True})

    # ------------------------------------------------------------------
    # Debounced entry point
    # ------------------------------------------------------------------

    def submit(self, narrative: str, context: EnhancementContext | None = None) -> Future:
        """
        Schedule enhancement of `narrative` after the debounce window.

        Returns a Future resolving to an EnhancementResult. A trigger that is
        superseded by a different narrative before its timer fires has its
        Future cancelled; re-submitting the same key inside the window keeps
        the same Future and restarts the timer. While an enhancement for
        another key is in flight the trigger is held and its timer only
        starts once that call settles.
        """
        context = context or EnhancementContext()
        key = make_cache_key(narrative, context)

        with self._lock:
            if self._closed:
                raise RuntimeError("EnhancementPipeline is closed")

            if self._last_enhanced is not None and self._last_enhanced[0] == key:
                logger.debug("Narrative %s already enhanced; serving last result", key[:12])
                return _completed(self._last_enhanced[1].model_copy(update={"cached": True}))

            inflight = self._inflight.get(key)
            if inflight is not None:
                logger.debug("Joining in-flight enhancement for %s", key[:12])
                return inflight

            future: Future
            previous = self._pending
            if previous is not None:
                previous.cancel_timer()
                if previous.key == key:
                    future = previous.future
                else:
                    logger.debug("Trigger %s superseded by %s", previous.key[:12], key[:12])
                    previous.future.cancel()
                    future = Future()
            else:
                future = Future()

            self._trigger_seq += 1
            self._pending = _PendingTrigger(token=self._trigger_seq, key=key, narrative=narrative,
                                            context=context, future=future)
            if self._inflight:
                logger.debug("Holding trigger %s until in-flight enhancement settles", key[:12])
            else:
                self._arm(self._pending)
            return future

    def _arm(self, pending: _PendingTrigger) -> None:
        """Start the debounce timer for `pending`. Lock held."""
        timer = threading.Timer(self.debounce_seconds, self._fire, args=(pending.token,))
        timer.daemon = True
        pending.timer = timer
        self._state = PipelineState.DEBOUNCING
        timer.start()

    def _fire(self, token: int) -> None:
        """Debounce timer callback: run the Validating step for the last trigger."""
        with self._lock:
            pending = self._pending
            if pending is None or pending.token != token or self._closed:
                return
            self._pending = None
            if not pending.future.set_running_or_notify_cancel():
                self._state = PipelineState.IDLE
                return
            self._firing += 1

        try:
            result = self.process(pending.narrative, pending.context)
        except Exception as exc:
            logger.exception("Enhancement trigger %s failed: %s", pending.key[:12], exc)
            result = EnhancementResult(text=pending.narrative, was_enhanced=False,
                                       reason=EnhancementReason.SERVICE_ERROR,
                                       detail="Enhancement service temporarily unavailable",
                                       original_length=len(pending.narrative))
        finally:
            with self._lock:
                self._firing -= 1
        pending.future.set_result(result)

    # ------------------------------------------------------------------
    # Validating step
    # ------------------------------------------------------------------

    def process(self, narrative: str, context: EnhancementContext | None = None) -> EnhancementResult:
        """Resolve one narrative now: in-flight join, cache, duplicate guard, external call."""
        context = context or EnhancementContext()
        key = make_cache_key(narrative, context)

        with self._lock:
            inflight = self._inflight.get(key)
        if inflight is not None:
            return self._await_shared(inflight, narrative)

        # cache reads stay outside the lock; the Redis backend does network I/O
        cached = self._cached(key)
        if cached is not None:
            return cached

        duplicate = False
        with self._lock:
            inflight = self._inflight.get(key)
            if inflight is None:
                now = self._clock()
                issued_at = self._recent_calls.get(key)
                if issued_at is not None and now - issued_at < self.duplicate_window_seconds:
                    duplicate = True
                else:
                    shared: Future = Future()
                    shared.set_running_or_notify_cancel()
                    self._inflight[key] = shared
                    self._recent_calls[key] = now
                    self._prune_recent(now)
                    self._state = PipelineState.VALIDATING

        if inflight is not None:
            return self._await_shared(inflight, narrative)
        if duplicate:
            # the earlier call may have finished since the first cache read
            cached = self._cached(key)
            if cached is not None:
                return cached
            logger.info("Duplicate enhancement call for %s within %.1fs; not re-issuing",
                        key[:12], self.duplicate_window_seconds)
            return EnhancementResult(text=narrative, was_enhanced=False,
                                     reason=EnhancementReason.DUPLICATE,
                                     detail="Duplicate call protection")

        result: EnhancementResult | None = None
        try:
            result = self._call_service(narrative, context)
            self.cache.set(key, result)
        finally:
            if result is None:
                result = EnhancementResult(text=narrative, was_enhanced=False,
                                           reason=EnhancementReason.SERVICE_ERROR,
                                           detail="Enhancement aborted")
            with self._lock:
                self._inflight.pop(key, None)
                if result.was_enhanced:
                    self._last_enhanced = (key, result)
                held = self._pending
                if not self._inflight and held is not None and held.timer is None and not self._closed:
                    self._arm(held)
                self._settle(result)
            shared.set_result(result)
        return result

    def _cached(self, key: str) -> Optional[EnhancementResult]:
        """Cache lookup; on a hit settle the state and flag the copy as cached."""
        cached = self.cache.get(key)
        if cached is None:
            return None
        logger.debug("Enhancement cache hit for %s", key[:12])
        with self._lock:
            self._settle(cached)
        return cached.model_copy(update={"cached": True})

    def _await_shared(self, shared: Future, narrative: str) -> EnhancementResult:
        """Wait for another caller's in-flight call for the same key."""
        try:
            # the owner is itself bounded by timeout_seconds; the margin covers bookkeeping
            return shared.result(timeout=self.timeout_seconds + 1.0)
        except FuturesTimeout:
            return EnhancementResult(text=TIMEOUT_MESSAGE, was_enhanced=False,
                                     reason=EnhancementReason.TIMED_OUT,
                                     original_length=len(narrative))
        except CancelledError:
            return EnhancementResult(text=narrative, was_enhanced=False,
                                     reason=EnhancementReason.SERVICE_ERROR,
                                     detail="Enhancement cancelled")

    def _call_service(self, narrative: str, context: EnhancementContext) -> EnhancementResult:
        """Call the external service under the hard timeout and validate the reply."""
        def fallback(reason: EnhancementReason, detail: str | None = None) -> EnhancementResult:
            return EnhancementResult(text=narrative, was_enhanced=False, reason=reason,
                                     detail=detail, original_length=len(narrative))

        if not getattr(self.client, "configured", True):
            logger.info("Enhancement service not configured; using rule-based narrative")
            return fallback(EnhancementReason.NOT_CONFIGURED, "Enhancement API key not configured")

        started = self._clock()
        try:
            call = self._executor.submit(self.client.enhance, narrative, context)
        except RuntimeError as exc:
            logger.warning("Enhancement executor unavailable: %s", exc)
            return fallback(EnhancementReason.SERVICE_ERROR, str(exc))

        try:
            raw = call.result(timeout=self.timeout_seconds)
        except FuturesTimeout:
            call.cancel()
            logger.warning("Enhancement timed out after %.1fs (narrative length %d)",
                           self.timeout_seconds, len(narrative))
            return EnhancementResult(text=TIMEOUT_MESSAGE, was_enhanced=False,
                                     reason=EnhancementReason.TIMED_OUT,
                                     detail=f"No response within {self.timeout_seconds:g}s",
                                     original_length=len(narrative))
        except EnhancementNotConfigured as exc:
            return fallback(EnhancementReason.NOT_CONFIGURED, str(exc))
        except EnhancementServiceError as exc:
            logger.warning("Enhancement service error (status=%s, narrative length %d): %s",
                           exc.status_code, len(narrative), exc)
            return fallback(EnhancementReason.SERVICE_ERROR, str(exc))
        except MalformedEnhancementResponse as exc:
            logger.warning("Malformed enhancement response: %s", exc)
            return fallback(EnhancementReason.MALFORMED_RESPONSE, str(exc))
        except Exception as exc:
            logger.exception("Unexpected enhancement failure: %s", exc)
            return fallback(EnhancementReason.SERVICE_ERROR, "Enhancement service temporarily unavailable")

        if raw is not None and not isinstance(raw, str):
            logger.warning("Enhancement returned %s instead of text", type(raw).__name__)
            return fallback(EnhancementReason.MALFORMED_RESPONSE,
                            f"Enhancement returned {type(raw).__name__}, not text")

        try:
            text = validate_enhanced_output(raw, narrative, min_chars=self.min_chars,
                                            max_chars=self.max_chars, max_ratio=self.max_ratio)
        except EnhancedOutputRejected as exc:
            logger.warning("Rejected enhancement (%s): original %d chars, reply %d chars",
                           exc.reason.value, len(narrative), len(raw or ""))
            return fallback(exc.reason, str(exc))

        logger.info("Enhanced narrative in %.2fs (%d -> %d chars)",
                    self._clock() - started, len(narrative), len(text))
        return EnhancementResult(text=text, was_enhanced=True,
                                 original_length=len(narrative), enhanced_length=len(text))

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _settle(self, result: EnhancementResult) -> None:
        """Move to the terminal state for `result` unless other work is pending. Lock held."""
        if self._inflight:
            self._state = PipelineState.VALIDATING
            return
        if self._pending is not None:
            self._state = PipelineState.DEBOUNCING
            return
        if result.was_enhanced:
            self._state = PipelineState.RESOLVED
        elif result.reason == EnhancementReason.TIMED_OUT:
            self._state = PipelineState.TIMED_OUT
        else:
            self._state = PipelineState.FAILED

    def _prune_recent(self, now: float) -> None:
        stale = [k for k, ts in self._recent_calls.items() if now - ts >= self.duplicate_window_seconds]
        for k in stale:
            del self._recent_calls[k]

    def close(self) -> None:
        """Cancel the debounce timer and stop the worker pool without waiting."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending, self._pending = self._pending, None
            self._state = PipelineState.IDLE
        if pending is not None:
            pending.cancel_timer()
            pending.future.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("EnhancementPipeline closed")

    def __enter__(self) -> "EnhancementPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
