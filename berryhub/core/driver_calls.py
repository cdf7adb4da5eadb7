"""Guarded invocation of driver plugin code."""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import TypeVar
from uuid import UUID

from berryhub.core.errors import DriverFailureError, DriverTimeoutError

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)


def call_driver(
    operation: str,
    func: Callable[[], T],
    *,
    driver_id: UUID | str,
    device_id: str | None,
    timeout_s: float | None = None,
) -> T:
    """Run `func` and translate any failure into `DriverFailureError`.

    With `timeout_s` the call runs on a worker thread and `DriverTimeoutError`
    is raised once the deadline passes. The worker is not interrupted; the
    driver call finishes in the background and its result is discarded.
    """
    if timeout_s is None:
        try:
            return func()
        except Exception as exc:
            _log_failure(operation, driver_id, device_id, exc)
            raise DriverFailureError(f"Driver failed during {operation}") from exc

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"berryhub-{operation}")
    try:
        future = executor.submit(func)
        try:
            return future.result(timeout=timeout_s)
        except FutureTimeoutError as exc:
            LOGGER.error(
                "Driver %s timed out after %.1fs during %s for device %s",
                driver_id,
                timeout_s,
                operation,
                device_id,
            )
            raise DriverTimeoutError(f"Driver did not complete {operation} within {timeout_s}s") from exc
        except Exception as exc:
            _log_failure(operation, driver_id, device_id, exc)
            raise DriverFailureError(f"Driver failed during {operation}") from exc
    finally:
        executor.shutdown(wait=False)


def _log_failure(operation: str, driver_id: UUID | str, device_id: str | None, exc: Exception) -> None:
    LOGGER.error(
        "Driver %s failed during %s for device %s",
        driver_id,
        operation,
        device_id,
        exc_info=exc,
    )
