import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type
import httpx
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_fixed
from tubenotes.utils.logger import logger

def poll_retry(
    max_attempts: int,
    interval: float,
    retry_on: Tuple[Type[BaseException], ...],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncRetrying:
    """Fixed-interval retry used by the device-code poll loop; the final failure is re-raised."""
    return AsyncRetrying(
        sleep=sleep,
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(retry_on + (httpx.HTTPError,)),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )
