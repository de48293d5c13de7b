from __future__ import annotations
from typing import Any, Optional


TRANSIENT_MARKERS = ("overloaded", "timeout", "network", "MAX_TOKENS")


class VerbaError(Exception):
	"""Base error for request handling.

	``status_code`` and ``detail`` are what the client sees; the exception
	message (``str(exc)``) is for logs only and may carry upstream payloads.
	"""
	status_code: int = 500
	detail: str = "Internal server error"
	# When set, the message itself is safe to show to the client
	expose_message: bool = False

	def __init__(self, message: Optional[str] = None, *, raw: Any = None) -> None:
		super().__init__(message or self.detail)
		self.raw = raw


class BadRequest(VerbaError):
	status_code = 400
	detail = "Bad request"
	expose_message = True


class Unauthorized(VerbaError):
	status_code = 401
	detail = "Unauthorized"
	expose_message = True


class NotFound(VerbaError):
	status_code = 404
	detail = "Not found"
	expose_message = True


class OnboardingIncomplete(VerbaError):
	status_code = 400
	detail = "Complete onboarding first"


class ContentBlocked(VerbaError):
	status_code = 400
	detail = "Content blocked by safety guidelines"


class EmptyGeneration(VerbaError):
	detail = "Could not generate lesson"


class MalformedOutput(VerbaError):
	detail = "Invalid lesson format"


class IncompleteLesson(VerbaError):
	detail = "Incomplete lesson data"


class ConversationConflict(VerbaError):
	status_code = 409
	detail = "Conversation was updated concurrently, please retry"


class UpstreamError(VerbaError):
	"""Failure talking to the completion provider.

	``status`` is the provider's HTTP status when there was a response.
	"""

	def __init__(self, message: str, *, status: Optional[int] = None, raw: Any = None) -> None:
		super().__init__(message, raw=raw)
		self.status = status

	@property
	def status_code(self) -> int:  # type: ignore[override]
		if self.status == 429:
			return 429
		message = str(self)
		if self.status == 503 or any(marker in message for marker in TRANSIENT_MARKERS):
			return 503
		return 500

	@property
	def detail(self) -> str:  # type: ignore[override]
		code = self.status_code
		if code == 429:
			return "Too many requests. Please wait a moment and try again."
		if code == 503:
			return "Service temporarily unavailable. Please try again in a moment."
		return "Internal server error"


class InternalError(VerbaError):
	pass
