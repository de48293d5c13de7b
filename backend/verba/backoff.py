from __future__ import annotations
import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .errors import TRANSIENT_MARKERS


logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUSES = (429, 503)


def _status_of(error: BaseException) -> Optional[int]:
	status = getattr(error, "status", None)
	if isinstance(status, int):
		return status
	# httpx.HTTPStatusError and friends
	response = getattr(error, "response", None)
	code = getattr(response, "status_code", None)
	return code if isinstance(code, int) else None


def is_retryable(error: BaseException) -> bool:
	"""Rate limits, overload and transport hiccups are worth another try."""
	if _status_of(error) in RETRYABLE_STATUSES:
		return True
	message = str(error)
	return any(marker in message for marker in TRANSIENT_MARKERS)


def delay_for(attempt: int, base_delay_ms: int) -> int:
	return base_delay_ms * (2 ** attempt)


async def execute(
	operation: Callable[[], Awaitable[T]],
	max_attempts: int = 4,
	base_delay_ms: int = 1000,
	*,
	is_retryable: Callable[[BaseException], bool] = is_retryable,
	sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
	"""Run ``operation`` and retry transient failures with exponential backoff.

	The wait after failed attempt ``n`` (0-indexed) is ``base_delay_ms * 2**n``.
	Non-retryable errors, and the error of the final attempt, propagate as-is.
	"""
	if max_attempts < 1:
		raise ValueError("max_attempts must be at least 1")
	attempt = 0
	while True:
		try:
			return await operation()
		except Exception as err:
			if not is_retryable(err) or attempt >= max_attempts - 1:
				raise
			delay_ms = delay_for(attempt, base_delay_ms)
			logger.warning(
				"Retry attempt %d/%d after %dms: %s",
				attempt + 1,
				max_attempts - 1,
				delay_ms,
				err,
			)
			await sleep(delay_ms / 1000)
			attempt += 1
