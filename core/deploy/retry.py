from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple, Type, TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Politique de retry à délai fixe et nombre de tentatives borné.

    L'opération et l'émission d'événements entre deux tentatives restent
    séparées : `on_retry` reçoit le numéro de tentative et l'exception.
    Quand les tentatives sont épuisées, `tenacity.RetryError` est levée.
    """

    max_attempts: int
    delay_ms: int
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def run(
        self,
        operation: Callable[[], T],
        on_retry: Optional[Callable[[int, BaseException], None]] = None,
    ) -> T:
        def _before_sleep(state: RetryCallState) -> None:
            if on_retry is not None and state.outcome is not None:
                on_retry(state.attempt_number, state.outcome.exception())

        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_fixed(self.delay_ms / 1000),
            retry=retry_if_exception_type(self.retry_on),
            before_sleep=_before_sleep,
            sleep=self.sleep,
        )
        return retrying(operation)


DNS_RETRY_POLICY = RetryPolicy(max_attempts=100, delay_ms=3000)
POD_READY_RETRY_POLICY = RetryPolicy(max_attempts=10, delay_ms=10000)
