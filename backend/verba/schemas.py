from __future__ import annotations
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .turns import Lesson


class ChatRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	message: str
	# Raw turns as the client holds them: {role, content, lessonData?}
	conversation_history: List[Dict[str, Any]] = Field(default_factory=list, alias="conversationHistory")


class LessonRequest(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	message: str
	# Omitted history means "use what the server has stored"
	conversation_history: Optional[List[Dict[str, Any]]] = Field(default=None, alias="conversationHistory")


class LessonResponse(BaseModel):
	lesson: Lesson
