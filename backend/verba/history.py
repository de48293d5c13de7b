from __future__ import annotations
from typing import Any, Dict, Iterable, List, Mapping, Union

from .turns import LessonTurn, TextTurn, Turn, decode_turn


def _to_content(turn: Turn) -> Dict[str, Any]:
	if isinstance(turn, LessonTurn):
		# Give the model what the tutor said, not the raw JSON
		return {"role": "model", "parts": [{"text": turn.lesson.flatten()}]}
	role = "model" if turn.role == "assistant" else "user"
	return {"role": role, "parts": [{"text": turn.text}]}


def map_history(history: Iterable[Union[Turn, Mapping[str, Any]]]) -> List[Dict[str, Any]]:
	"""Map stored turns to Gemini ``contents`` entries, one entry per turn."""
	contents: List[Dict[str, Any]] = []
	for item in history:
		turn = item if isinstance(item, (TextTurn, LessonTurn)) else decode_turn(item)
		contents.append(_to_content(turn))
	return contents
