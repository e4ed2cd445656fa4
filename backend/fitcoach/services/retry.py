# fitcoach/services/retry.py
# Exponential backoff around outbound httpx calls
# - 4xx: caller error, raise at once
# - 5xx / transport error: wait base_delay * 2**attempt, try again
# - budget spent: RetryExhausted with the last status/error

from __future__ import annotations
import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from fitcoach.services.errors import NonRetryableHTTPError, RetryExhausted

log = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def _body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


def with_retries(attempts: int = 3, base_delay: float = 1.0, sleep: Optional[Sleep] = None):
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    def deco(fn: Callable[..., Awaitable[httpx.Response]]):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs) -> httpx.Response:
            pause = sleep or asyncio.sleep
            last_error: Optional[BaseException] = None
            last_status: Optional[int] = None

            for attempt in range(attempts):
                try:
                    resp = await fn(*args, **kwargs)
                except httpx.TransportError as e:
                    last_error, last_status = e, None
                    log.warning("%s: attempt %d/%d failed: %s", fn.__name__, attempt + 1, attempts, e)
                else:
                    if resp.status_code < 400:
                        return resp
                    if resp.status_code < 500:
                        body = _body(resp)
                        log.error("%s: rejected with %d (no retry): %s", fn.__name__, resp.status_code, body)
                        raise NonRetryableHTTPError(resp.status_code, body)
                    last_error, last_status = None, resp.status_code
                    log.warning(
                        "%s: attempt %d/%d got %d", fn.__name__, attempt + 1, attempts, resp.status_code
                    )

                if attempt < attempts - 1:
                    await pause(base_delay * (2 ** attempt))

            raise RetryExhausted(attempts, last_error=last_error, last_status=last_status)

        return wrapper

    return deco
