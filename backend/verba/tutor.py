"""Completion calls shared by the onboarding, lesson and profile routes.

Every call goes through the backoff executor with the configured policy.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from . import backoff
from .errors import ContentBlocked, EmptyGeneration
from .gemini_client import CompletionResult, GeminiClient
from .interpreter import interpret_text, normalize_level
from .prompts import NEUTRAL_GOAL, classification_prompt, goal_cleaning_prompt, level_classification_prompt
from .settings import settings


logger = logging.getLogger(__name__)

ONBOARDING_CONFIG: Dict[str, Any] = {"temperature": 0.7, "maxOutputTokens": 300}
LESSON_CONFIG: Dict[str, Any] = {"temperature": 0.65, "topP": 0.9, "topK": 40, "maxOutputTokens": 1024}


async def complete(
	client: GeminiClient,
	contents: List[Dict[str, Any]],
	*,
	system_instruction: Optional[str] = None,
	generation_config: Optional[Dict[str, Any]] = None,
) -> CompletionResult:
	return await backoff.execute(
		lambda: client.generate_content(
			contents,
			system_instruction=system_instruction,
			generation_config=generation_config,
		),
		settings.retry_max_attempts,
		settings.retry_base_delay_ms,
	)


async def ask(client: GeminiClient, prompt: str) -> str:
	"""Single-shot command prompt; returns the stripped answer text."""
	result = await backoff.execute(
		lambda: client.generate(prompt),
		settings.retry_max_attempts,
		settings.retry_base_delay_ms,
	)
	return interpret_text(result)


async def clean_goal(client: GeminiClient, text: str) -> str:
	try:
		cleaned = await ask(client, goal_cleaning_prompt(text))
	except (EmptyGeneration, ContentBlocked):
		# Nothing usable, or the provider refused the text outright
		cleaned = ""
	cleaned = cleaned.strip().strip('"').strip()
	return cleaned or NEUTRAL_GOAL


async def classify_message(client: GeminiClient, message: str) -> str:
	"""One of "goal", "level", "goal and level" or "none"."""
	try:
		answer = (await ask(client, classification_prompt(message))).lower()
	except EmptyGeneration:
		return "none"
	has_goal = "goal" in answer
	has_level = "level" in answer
	if has_goal and has_level:
		return "goal and level"
	if has_goal:
		return "goal"
	if has_level:
		return "level"
	return "none"


async def classify_level(client: GeminiClient, message: str) -> Optional[str]:
	try:
		answer = await ask(client, level_classification_prompt(message))
	except EmptyGeneration:
		answer = ""
	level = normalize_level(answer)
	if level is None:
		logger.warning("Level classifier gave an unknown answer: %r", answer)
	return level
