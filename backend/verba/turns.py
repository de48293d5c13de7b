"""Conversation turns as stored and as used inside the service.

Stored turns are ``{"role", "content"}`` mappings where an assistant lesson is
JSON text in ``content``. Inside the service a turn is either a ``TextTurn``
or a ``LessonTurn``; conversion happens only through ``decode_turn`` and
``encode_turn``.
"""
from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel

from .errors import IncompleteLesson


class Lesson(BaseModel):
	title: str
	greeting: str
	lesson: str
	practice: str

	def flatten(self) -> str:
		return " ".join(part for part in (self.greeting, self.lesson, self.practice) if part)

	def to_json(self) -> str:
		return json.dumps(self.model_dump(), ensure_ascii=False)


LESSON_FIELDS = ("title", "greeting", "lesson", "practice")


def lesson_from_mapping(data: Any) -> Lesson:
	"""Validate a decoded object as a lesson.

	``greeting`` has to be present but may be empty; the other fields must be
	non-empty strings.
	"""
	if not isinstance(data, Mapping):
		raise IncompleteLesson("Lesson is not an object", raw=data)
	greeting = data.get("greeting")
	if greeting is None or not isinstance(greeting, str):
		raise IncompleteLesson("Lesson is missing greeting", raw=data)
	values: Dict[str, str] = {"greeting": greeting}
	for key in ("title", "lesson", "practice"):
		value = data.get(key)
		if not isinstance(value, str) or not value.strip():
			raise IncompleteLesson(f"Lesson is missing {key}", raw=data)
		values[key] = value
	return Lesson(**values)


def try_decode_lesson(content: Any) -> Optional[Lesson]:
	if isinstance(content, Lesson):
		return content
	if isinstance(content, str):
		try:
			content = json.loads(content)
		except ValueError:
			return None
	try:
		return lesson_from_mapping(content)
	except IncompleteLesson:
		return None


@dataclass(frozen=True)
class TextTurn:
	role: str
	text: str


@dataclass(frozen=True)
class LessonTurn:
	lesson: Lesson
	role: str = "assistant"


Turn = Union[TextTurn, LessonTurn]


def decode_turn(raw: Mapping[str, Any]) -> Turn:
	"""Never raises on odd content; unusable lesson data degrades to text."""
	role = "assistant" if raw.get("role") == "assistant" else "user"
	content = raw.get("content")
	if content is None:
		text = ""
	elif isinstance(content, str):
		text = content
	else:
		text = json.dumps(content, ensure_ascii=False)
	if role == "user":
		return TextTurn(role=role, text=text)
	lesson_data = raw.get("lessonData")
	if lesson_data is None:
		lesson_data = raw.get("lesson_data")
	lesson = try_decode_lesson(lesson_data) if lesson_data is not None else None
	if lesson is None and text:
		lesson = try_decode_lesson(text)
	if lesson is not None:
		return LessonTurn(lesson=lesson)
	return TextTurn(role=role, text=text)


def encode_turn(turn: Turn) -> Dict[str, str]:
	if isinstance(turn, LessonTurn):
		return {"role": turn.role, "content": turn.lesson.to_json()}
	return {"role": turn.role, "content": turn.text}
