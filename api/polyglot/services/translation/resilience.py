"""Retry, timeout and circuit-breaker protection for provider calls.

Every provider call made by a strategy goes through a ResilientCaller:

    tenacity retry -> open-breaker gate -> timed provider call -> breaker outcome

The breaker is shared by all calls of one caller, so a provider outage trips
it for every concurrent request. While it is open calls fail immediately
without touching the provider.

pybreaker holds its lock for as long as the function given to
``CircuitBreaker.call`` runs, so the provider call itself happens outside the
breaker and only its outcome is passed through ``CircuitBreaker.call``. This
keeps per-item fan-out parallel while pybreaker still owns the state machine.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, List, Optional, Tuple, TypeVar

from polyglot.core.exceptions import TranslationFailureError
from polyglot.metrics.translation_metrics import (
    circuit_breaker_state,
    circuit_breaker_transitions_total,
    translation_provider_calls_total,
    translation_provider_retries_total,
)
from pybreaker import CircuitBreaker, CircuitBreakerError, CircuitBreakerListener
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATE_VALUES = {"closed": 0, "half-open": 1, "open": 2}


class ProviderTimeoutError(Exception):
    """Raised when a single provider call exceeds its timeout."""


class BreakerEventListener(CircuitBreakerListener):
    """Records circuit breaker transitions as (from_state, to_state) events."""

    def __init__(self, breaker_name: str, max_events: int = 100):
        self.breaker_name = breaker_name
        self.opened_at: Optional[float] = None
        self._events: deque = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def state_change(self, cb, old_state, new_state) -> None:
        from_state = getattr(old_state, "name", None) or "none"
        to_state = getattr(new_state, "name", None) or "none"
        with self._lock:
            self._events.append((from_state, to_state, time.time()))
            if to_state == "open":
                self.opened_at = time.monotonic()

        circuit_breaker_transitions_total.labels(
            breaker=self.breaker_name, from_state=from_state, to_state=to_state
        ).inc()
        circuit_breaker_state.labels(breaker=self.breaker_name).set(
            STATE_VALUES.get(to_state, 0)
        )

        log = logger.warning if to_state == "open" else logger.info
        log(f"Circuit breaker '{self.breaker_name}' {from_state} -> {to_state}")

    @property
    def transitions(self) -> List[Tuple[str, str]]:
        with self._lock:
            return [(old, new) for old, new, _ in self._events]


def _succeed() -> None:
    return None


def _fail(exc: BaseException) -> None:
    raise exc


class ResilientCaller:
    """Wrap provider calls with a timeout, retries and a circuit breaker.

    Args:
        name: Breaker name used in logs and metrics.
        max_attempts: Attempts per call, including the first one.
        wait_min: Minimum backoff between attempts in seconds.
        wait_max: Maximum backoff between attempts in seconds.
        fail_max: Consecutive failures that open the breaker.
        reset_timeout: Seconds the breaker stays open before a trial call.
        call_timeout: Seconds a single attempt may take. None disables it.
        max_workers: Threads available for timed calls.
    """

    def __init__(
        self,
        name: str = "translation-provider",
        max_attempts: int = 3,
        wait_min: float = 1.0,
        wait_max: float = 10.0,
        fail_max: int = 5,
        reset_timeout: int = 60,
        call_timeout: Optional[float] = 30.0,
        max_workers: int = 16,
    ):
        self.name = name
        self.reset_timeout = reset_timeout
        self.call_timeout = call_timeout
        self.listener = BreakerEventListener(name)
        # ValueError marks a permanent input problem: not retried, not a failure
        self.circuit_breaker = CircuitBreaker(
            fail_max=fail_max,
            reset_timeout=reset_timeout,
            exclude=[ValueError],
            listeners=[self.listener],
            name=name,
        )
        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=1, min=wait_min, max=wait_max),
            retry=retry_if_not_exception_type((CircuitBreakerError, ValueError)),
            before_sleep=self._before_sleep,
            reraise=True,
        )
        self._executor = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
            if call_timeout
            else None
        )
        # One slot per worker, so the timeout only measures execution
        self._slots = threading.BoundedSemaphore(max_workers)
        circuit_breaker_state.labels(breaker=name).set(0)

    @classmethod
    def from_settings(cls, settings, name: str = "translation-provider"):
        return cls(
            name=name,
            max_attempts=settings.RETRY_MAX_ATTEMPTS,
            wait_min=settings.RETRY_WAIT_MIN_SECONDS,
            wait_max=settings.RETRY_WAIT_MAX_SECONDS,
            fail_max=settings.CIRCUIT_BREAKER_FAIL_MAX,
            reset_timeout=settings.CIRCUIT_BREAKER_RESET_TIMEOUT,
            call_timeout=settings.PROVIDER_CALL_TIMEOUT_SECONDS,
            max_workers=settings.TRANSLATION_MAX_CONCURRENCY * 4,
        )

    @property
    def state(self) -> str:
        return self.circuit_breaker.current_state

    @property
    def is_open(self) -> bool:
        return self.circuit_breaker.current_state == "open"

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Call a provider function with full protection.

        Args:
            func: Blocking provider function
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Whatever func returns

        Raises:
            TranslationFailureError: When retries are exhausted or the breaker
                rejects the call
        """
        try:
            result = self._retrying.copy()(self._attempt, func, *args, **kwargs)
        except CircuitBreakerError as e:
            translation_provider_calls_total.labels(outcome="rejected").inc()
            raise TranslationFailureError(
                f"circuit breaker '{self.name}' is open",
                retry_after=self.reset_timeout,
            ) from e
        except Exception as e:
            translation_provider_calls_total.labels(outcome="failure").inc()
            raise TranslationFailureError(f"{type(e).__name__}: {e}") from e

        translation_provider_calls_total.labels(outcome="success").inc()
        return result

    def _attempt(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        self._reject_if_open()
        try:
            result = self._timed_call(func, *args, **kwargs)
        except Exception as exc:
            # Re-raises exc, or CircuitBreakerError when this failure trips it
            self.circuit_breaker.call(_fail, exc)
            raise
        self.circuit_breaker.call(_succeed)
        return result

    def _reject_if_open(self) -> None:
        if self.circuit_breaker.current_state != "open":
            return
        opened_at = self.listener.opened_at
        if opened_at is None or time.monotonic() - opened_at < self.reset_timeout:
            raise CircuitBreakerError(
                f"Circuit breaker '{self.name}' is open, call rejected"
            )

    def _timed_call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        if self._executor is None:
            return func(*args, **kwargs)

        self._slots.acquire()
        try:
            future = self._executor.submit(func, *args, **kwargs)
        except BaseException:
            self._slots.release()
            raise
        future.add_done_callback(lambda _: self._slots.release())

        try:
            return future.result(timeout=self.call_timeout)
        except FutureTimeoutError as e:
            # The worker thread cannot be interrupted; its result is discarded
            future.cancel()
            translation_provider_calls_total.labels(outcome="timeout").inc()
            raise ProviderTimeoutError(
                f"Provider call exceeded {self.call_timeout}s"
            ) from e

    def _before_sleep(self, retry_state: RetryCallState) -> None:
        translation_provider_retries_total.inc()
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            f"Provider call attempt {retry_state.attempt_number} failed "
            f"({type(exception).__name__}: {exception}), retrying"
        )

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "state": self.state,
            "fail_counter": self.circuit_breaker.fail_counter,
            "transitions": self.listener.transitions,
        }

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
