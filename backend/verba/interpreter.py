from __future__ import annotations
import json
import logging
import re
from typing import Dict, Optional

from .errors import ContentBlocked, EmptyGeneration, IncompleteLesson, MalformedOutput
from .gemini_client import CompletionResult
from .models import LEVELS
from .turns import Lesson, lesson_from_mapping


logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)
_SECTION_RE = re.compile(r"^\s*(title|greeting|lesson|practice)\s*:\s*(.*)$", re.IGNORECASE)


def strip_code_fence(text: str) -> str:
	"""Remove a surrounding Markdown code fence such as ```json ... ```."""
	stripped = text.strip()
	match = _FENCE_RE.match(stripped)
	if match:
		return match.group(1).strip()
	return stripped


def _checked_text(result: CompletionResult) -> str:
	text = (result.text or "").strip()
	if result.block_reason and not text:
		logger.error("Gemini content was blocked. Reason: %s", result.block_reason)
		raise ContentBlocked(f"Blocked by provider: {result.block_reason}", raw=result.raw)
	if not text:
		logger.error("Gemini returned empty text: %s", json.dumps(result.raw, ensure_ascii=False))
		raise EmptyGeneration("Completion contained no text", raw=result.raw)
	return text


def interpret_text(result: CompletionResult) -> str:
	return _checked_text(result)


def parse_lesson_text(text: str) -> Dict[str, str]:
	"""Decode the labelled plain-text lesson format.

	A line without a label continues the previous section.
	"""
	sections: Dict[str, str] = {}
	current: Optional[str] = None
	for line in text.splitlines():
		match = _SECTION_RE.match(line)
		if match:
			current = match.group(1).lower()
			sections[current] = match.group(2).strip()
		elif current is not None and line.strip():
			sections[current] = f"{sections[current]} {line.strip()}".strip()
	return sections


def interpret_lesson(result: CompletionResult, output_format: str = "json") -> Lesson:
	text = strip_code_fence(_checked_text(result))
	if output_format == "text":
		data = parse_lesson_text(text)
		if not data:
			logger.error("Failed to parse lesson sections: %s", text)
			raise MalformedOutput("No labelled lesson sections found", raw=text)
	else:
		try:
			data = json.loads(text)
		except ValueError as err:
			logger.error("Failed to parse JSON: %s", text)
			raise MalformedOutput(f"Lesson is not valid JSON: {err}", raw=text) from err
	try:
		return lesson_from_mapping(data)
	except IncompleteLesson:
		logger.error("Incomplete lesson structure: %s", data)
		raise


def normalize_level(text: str) -> Optional[str]:
	"""Map a classifier answer onto one of the known levels."""
	lowered = (text or "").strip().lower()
	for level in LEVELS:
		if level.lower() in lowered:
			return level
	return None
